"""配置管理器"""

import copy
import os
from typing import Dict, Any, Optional

import yaml

from ..models.alert import AlertThresholds
from ..utils.config_validator import ConfigValidator
from ..utils.exceptions import ConfigError
from ..utils.log_manager import get_logger

DEFAULT_CONFIG: Dict[str, Any] = {
    'global': {
        'log_level': 'INFO',
        'overall_deadline': 10,
        'service_timeout': 5,
        'metrics_capacity': 10000,
        'metrics_period_minutes': 15,
    },
    'service_urls': {},
    'alerts': AlertThresholds().to_dict(),
    'storage': {'path': None},
    'connection_strings': {'cache': None},
    'database': {},
    'message_broker': {'host': 'localhost', 'port': 5672},
}


def _merge(defaults: Dict[str, Any], overrides: Dict[str, Any]) -> Dict[str, Any]:
    """按配置段合并，用户配置覆盖默认值"""
    merged = copy.deepcopy(defaults)
    for key, value in overrides.items():
        if isinstance(value, dict) and isinstance(merged.get(key), dict):
            merged[key].update(value)
        else:
            merged[key] = value
    return merged


class ConfigManager:
    """配置管理器，负责YAML配置文件的加载、默认值填充和验证

    config_path 为 None 时只使用默认配置。
    """

    def __init__(self, config_path: Optional[str] = None):
        """
        初始化配置管理器

        Args:
            config_path: 配置文件路径
        """
        self.config_path = config_path
        self.config: Dict[str, Any] = copy.deepcopy(DEFAULT_CONFIG)
        self.last_modified: Optional[float] = None
        self.logger = get_logger('config_manager')

    def load_config(self) -> Dict[str, Any]:
        """
        加载YAML配置文件

        Returns:
            Dict[str, Any]: 合并默认值后的配置字典

        Raises:
            ConfigError: 配置加载或验证失败
        """
        if self.config_path is None:
            self.logger.info("未指定配置文件，使用默认配置")
            self.config = copy.deepcopy(DEFAULT_CONFIG)
            return self.config

        self.logger.info(f"开始加载配置文件: {self.config_path}")

        try:
            with open(self.config_path, 'r', encoding='utf-8') as file:
                raw_config = yaml.safe_load(file)
        except FileNotFoundError:
            self.logger.error(f"配置文件不存在: {self.config_path}")
            raise ConfigError(f"配置文件不存在: {self.config_path}",
                              config_path=self.config_path)
        except PermissionError:
            self.logger.error(f"没有权限读取配置文件: {self.config_path}")
            raise ConfigError(f"没有权限读取配置文件: {self.config_path}",
                              config_path=self.config_path)
        except yaml.YAMLError as e:
            self.logger.error(f"YAML格式错误: {e}")
            raise ConfigError(f"YAML格式错误: {e}", config_path=self.config_path)

        if raw_config is None:
            raw_config = {}
        if not isinstance(raw_config, dict):
            raise ConfigError("配置文件根节点必须是字典类型", config_path=self.config_path)

        self._validate_config(raw_config)

        first_load = self.last_modified is None
        old_config = self.config
        self.config = _merge(DEFAULT_CONFIG, raw_config)
        self.last_modified = os.path.getmtime(self.config_path)

        self.logger.info(
            f"配置加载成功，包含 {len(self.get_service_urls())} 个被监控服务")
        if not first_load and old_config != self.config:
            self._log_config_changes(old_config, self.config)

        return self.config

    def _validate_config(self, config: Dict[str, Any]) -> None:
        """
        验证配置文件内容

        Raises:
            ConfigError: 配置验证失败
        """
        if 'global' in config:
            ConfigValidator.validate_global_config(config['global'])
        if 'service_urls' in config:
            ConfigValidator.validate_service_urls(config['service_urls'])
        if 'alerts' in config:
            ConfigValidator.validate_alert_thresholds(config['alerts'])
        ConfigValidator.validate_dependency_config(config)

    def get_global_config(self) -> Dict[str, Any]:
        return self.config.get('global', {})

    def get_service_urls(self) -> Dict[str, str]:
        """被监控服务名称到基础地址的映射"""
        return dict(self.config.get('service_urls') or {})

    def get_alert_thresholds(self) -> AlertThresholds:
        """
        获取当前告警阈值

        每次调用都读取最新配置，配置热更新后立即生效。
        """
        return AlertThresholds.from_dict(self.config.get('alerts', {}))

    def get_storage_path(self) -> Optional[str]:
        return (self.config.get('storage') or {}).get('path')

    def get_cache_connection_string(self) -> Optional[str]:
        return (self.config.get('connection_strings') or {}).get('cache')

    def get_database_config(self) -> Dict[str, Any]:
        return dict(self.config.get('database') or {})

    def get_message_broker_config(self) -> Dict[str, Any]:
        return dict(self.config.get('message_broker') or {})

    def is_config_changed(self) -> bool:
        """
        检查配置文件是否已修改

        Returns:
            bool: 配置文件是否已修改
        """
        if self.config_path is None:
            return False
        try:
            current_modified = os.path.getmtime(self.config_path)
        except OSError:
            return False
        return self.last_modified is None or current_modified > self.last_modified

    def reload_config(self) -> Dict[str, Any]:
        """
        重新加载配置文件

        Raises:
            ConfigError: 配置重新加载失败，此时保留旧配置
        """
        self.logger.info("重新加载配置文件")
        return self.load_config()

    def _log_config_changes(self, old_config: Dict[str, Any], new_config: Dict[str, Any]) -> None:
        """记录配置变更"""
        old_services = old_config.get('service_urls') or {}
        new_services = new_config.get('service_urls') or {}

        added_services = set(new_services) - set(old_services)
        if added_services:
            self.logger.info(f"新增服务: {', '.join(sorted(added_services))}")

        removed_services = set(old_services) - set(new_services)
        if removed_services:
            self.logger.info(f"删除服务: {', '.join(sorted(removed_services))}")

        if old_config.get('alerts') != new_config.get('alerts'):
            self.logger.info(f"告警阈值已修改: {new_config.get('alerts')}")

        for section in ('global', 'storage', 'connection_strings', 'database', 'message_broker'):
            if old_config.get(section) != new_config.get(section):
                self.logger.info(f"{section} 配置已修改")
