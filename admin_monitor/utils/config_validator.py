"""配置验证工具"""

from typing import Dict, Any

from .exceptions import ConfigError


def _is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def _validate_port(section: str, port: Any) -> None:
    if not isinstance(port, int) or isinstance(port, bool) or port <= 0 or port > 65535:
        raise ConfigError(f"{section}.port 必须是1-65535之间的整数: {port}")


class ConfigValidator:
    """配置验证器"""

    @staticmethod
    def validate_global_config(global_config: Dict[str, Any]) -> None:
        """
        验证全局配置

        Raises:
            ConfigError: 配置验证失败
        """
        if not isinstance(global_config, dict):
            raise ConfigError("global 配置必须是字典类型")

        log_level = global_config.get('log_level')
        if log_level is not None:
            valid_levels = ['DEBUG', 'INFO', 'WARNING', 'ERROR', 'CRITICAL']
            if str(log_level).upper() not in valid_levels:
                raise ConfigError(f"log_level 必须是以下值之一: {valid_levels}")

        for key in ('overall_deadline', 'service_timeout', 'metrics_period_minutes'):
            value = global_config.get(key)
            if value is not None and (not _is_number(value) or value <= 0):
                raise ConfigError(f"{key} 必须是正数")

        capacity = global_config.get('metrics_capacity')
        if capacity is not None:
            if not isinstance(capacity, int) or isinstance(capacity, bool) or capacity <= 0:
                raise ConfigError("metrics_capacity 必须是正整数")

    @staticmethod
    def validate_service_urls(service_urls: Dict[str, Any]) -> None:
        """
        验证被监控服务的基础地址

        Raises:
            ConfigError: 配置验证失败
        """
        if not isinstance(service_urls, dict):
            raise ConfigError("service_urls 配置必须是字典类型")

        for service_name, base_url in service_urls.items():
            if not isinstance(base_url, str) or not base_url.startswith(('http://', 'https://')):
                raise ConfigError(f"服务 '{service_name}' 的地址必须是 http(s) URL: {base_url}")

    @staticmethod
    def validate_alert_thresholds(alerts_config: Dict[str, Any]) -> None:
        """
        验证告警阈值

        Raises:
            ConfigError: 配置验证失败
        """
        if not isinstance(alerts_config, dict):
            raise ConfigError("alerts 配置必须是字典类型")

        for key, value in alerts_config.items():
            if not _is_number(value) or value < 0:
                raise ConfigError(f"告警阈值 {key} 必须是非负数: {value}")

    @staticmethod
    def validate_dependency_config(config: Dict[str, Any]) -> None:
        """
        验证依赖相关配置段

        Raises:
            ConfigError: 配置验证失败
        """
        for section in ('storage', 'connection_strings', 'database', 'message_broker'):
            value = config.get(section)
            if value is not None and not isinstance(value, dict):
                raise ConfigError(f"{section} 配置必须是字典类型")

        broker = config.get('message_broker') or {}
        if 'port' in broker:
            _validate_port('message_broker', broker['port'])

        database = config.get('database') or {}
        if 'port' in database:
            _validate_port('database', database['port'])
