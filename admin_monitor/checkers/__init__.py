"""健康检查器模块"""

from .base import BaseHealthChecker, DependencyHealthChecker
from .broker_checker import BrokerHealthChecker
from .cache_checker import CacheHealthChecker
from .database_checker import DatabaseHealthChecker
from .factory import HealthCheckerFactory, health_checker_factory, register_checker
from .service_checker import ServiceHealthChecker
from .storage_checker import StorageHealthChecker

__all__ = ['BaseHealthChecker', 'DependencyHealthChecker', 'HealthCheckerFactory',
           'health_checker_factory', 'register_checker', 'ServiceHealthChecker',
           'DatabaseHealthChecker', 'BrokerHealthChecker', 'CacheHealthChecker',
           'StorageHealthChecker']
