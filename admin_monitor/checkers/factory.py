"""健康检查器工厂"""

from typing import Dict, Type, Any
from .base import BaseHealthChecker
from ..utils.exceptions import CheckerError


class HealthCheckerFactory:
    """健康检查器工厂类，按类型名称创建检查器"""

    def __init__(self):
        self._checkers: Dict[str, Type[BaseHealthChecker]] = {}

    def register_checker(self, checker_type: str, checker_class: Type[BaseHealthChecker]):
        """
        注册健康检查器类

        Args:
            checker_type: 检查器类型名称
            checker_class: 健康检查器类

        Raises:
            CheckerError: 注册失败
        """
        if not issubclass(checker_class, BaseHealthChecker):
            raise CheckerError(f"检查器类 {checker_class.__name__} 必须继承自 BaseHealthChecker")

        if checker_type in self._checkers:
            raise CheckerError(f"类型 '{checker_type}' 已经注册了检查器")

        self._checkers[checker_type] = checker_class

    def unregister_checker(self, checker_type: str):
        """取消注册健康检查器类"""
        self._checkers.pop(checker_type, None)

    def create_checker(self, name: str, config: Dict[str, Any]) -> BaseHealthChecker:
        """
        创建健康检查器实例

        Args:
            name: 探测目标名称
            config: 探测配置，必须包含 'type'

        Returns:
            BaseHealthChecker: 健康检查器实例

        Raises:
            CheckerError: 创建失败
        """
        checker_type = config.get('type')
        if not checker_type:
            raise CheckerError(f"'{name}' 缺少 'type' 配置", target_name=name)

        if checker_type not in self._checkers:
            raise CheckerError(f"不支持的检查器类型: '{checker_type}'", target_name=name)

        checker = self._checkers[checker_type](name, config)
        if not checker.validate_config():
            raise CheckerError(f"'{name}' 的配置验证失败", target_name=name)

        return checker

    def get_supported_types(self) -> list:
        """获取支持的检查器类型列表"""
        return list(self._checkers.keys())

    def is_type_supported(self, checker_type: str) -> bool:
        """检查是否支持指定类型"""
        return checker_type in self._checkers


# 全局工厂实例
health_checker_factory = HealthCheckerFactory()


def register_checker(checker_type: str):
    """
    装饰器：注册健康检查器类

    Args:
        checker_type: 检查器类型名称
    """
    def decorator(checker_class: Type[BaseHealthChecker]):
        health_checker_factory.register_checker(checker_type, checker_class)
        return checker_class

    return decorator
