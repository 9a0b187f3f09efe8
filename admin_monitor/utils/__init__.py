"""工具模块"""

from .exceptions import (
    MonitorError, ConfigError, CheckerError, ProbeTimeoutError, ProbeConnectionError,
    ProbeProtocolError, DependencyUnavailableError, ConfigurationMissingError,
    MetricsStoreError
)
from .log_manager import LogManager, LogLevel, get_logger, configure_logging, log_manager

__all__ = [
    'MonitorError', 'ConfigError', 'CheckerError', 'ProbeTimeoutError',
    'ProbeConnectionError', 'ProbeProtocolError', 'DependencyUnavailableError',
    'ConfigurationMissingError', 'MetricsStoreError',
    'LogManager', 'LogLevel', 'get_logger', 'configure_logging', 'log_manager'
]
