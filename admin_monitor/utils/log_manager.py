"""
日志管理器模块

统一管理监控平面内所有组件的日志记录器，支持控制台输出、
按文件大小轮转的文件输出以及运行时调整日志级别。
"""

import logging
import logging.handlers
import sys
from pathlib import Path
from typing import Optional, Dict, Any
from enum import Enum


LOGGER_PREFIX = 'admin_monitor'


class LogLevel(Enum):
    """日志级别枚举"""
    DEBUG = logging.DEBUG
    INFO = logging.INFO
    WARNING = logging.WARNING
    ERROR = logging.ERROR
    CRITICAL = logging.CRITICAL


class LogManager:
    """
    日志管理器类

    所有组件通过 get_logger 获取挂在 admin_monitor 命名空间下的记录器，
    处理器只挂在命名空间根记录器上，重新配置时统一替换。
    """

    _instance: Optional['LogManager'] = None
    _initialized: bool = False

    def __new__(cls) -> 'LogManager':
        """单例模式实现"""
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __init__(self):
        if self._initialized:
            return

        self._file_format = (
            '%(asctime)s - %(name)s - %(levelname)s - '
            '[%(filename)s:%(lineno)d] - %(message)s'
        )
        self._console_format = '%(asctime)s - %(levelname)s - %(name)s - %(message)s'
        self._date_format = '%Y-%m-%d %H:%M:%S'

        self._log_level = LogLevel.INFO
        self._log_file: Optional[str] = None
        self._max_file_size = 10 * 1024 * 1024  # 10MB
        self._backup_count = 5
        self._enable_console = True

        self._root = logging.getLogger(LOGGER_PREFIX)
        self._root.propagate = False
        self._apply()

        self._initialized = True

    def configure(self, config: Dict[str, Any]) -> None:
        """
        配置日志管理器

        Args:
            config: 日志配置字典，可选键：
                - log_level: 日志级别 (DEBUG, INFO, WARNING, ERROR, CRITICAL)
                - log_file: 日志文件路径，为空时不写文件
                - max_file_size: 最大文件大小（字节）
                - backup_count: 备份文件数量
                - enable_console: 是否启用控制台输出
        """
        if config.get('log_level'):
            level_str = str(config['log_level']).upper()
            if not hasattr(LogLevel, level_str):
                raise ValueError(f"无效的日志级别: {level_str}")
            self._log_level = LogLevel[level_str]

        if 'log_file' in config:
            self._log_file = config['log_file']
        if 'max_file_size' in config:
            self._max_file_size = config['max_file_size']
        if 'backup_count' in config:
            self._backup_count = config['backup_count']
        if 'enable_console' in config:
            self._enable_console = config['enable_console']

        self._apply()

    def _apply(self) -> None:
        """按当前配置重建根记录器的处理器"""
        for handler in list(self._root.handlers):
            self._root.removeHandler(handler)
            handler.close()

        self._root.setLevel(self._log_level.value)

        if self._enable_console:
            console_handler = logging.StreamHandler(sys.stdout)
            console_handler.setFormatter(
                logging.Formatter(self._console_format, datefmt=self._date_format))
            self._root.addHandler(console_handler)

        if self._log_file:
            Path(self._log_file).parent.mkdir(parents=True, exist_ok=True)
            file_handler = logging.handlers.RotatingFileHandler(
                self._log_file,
                maxBytes=self._max_file_size,
                backupCount=self._backup_count,
                encoding='utf-8'
            )
            file_handler.setFormatter(
                logging.Formatter(self._file_format, datefmt=self._date_format))
            self._root.addHandler(file_handler)

    def get_logger(self, name: str) -> logging.Logger:
        """
        获取指定名称的日志记录器

        Args:
            name: 组件名称，如 'checker.cache'

        Returns:
            admin_monitor 命名空间下的日志记录器
        """
        if name.startswith(LOGGER_PREFIX):
            return logging.getLogger(name)
        return logging.getLogger(f'{LOGGER_PREFIX}.{name}')

    def set_level(self, level: LogLevel) -> None:
        """设置全局日志级别"""
        self._log_level = level
        self._root.setLevel(level.value)

    def get_log_stats(self) -> Dict[str, Any]:
        """获取日志配置信息"""
        return {
            'log_level': self._log_level.name,
            'log_file': self._log_file,
            'console_logging_enabled': self._enable_console,
            'handlers_count': len(self._root.handlers)
        }

    def cleanup(self) -> None:
        """关闭所有处理器"""
        for handler in list(self._root.handlers):
            self._root.removeHandler(handler)
            handler.close()


# 全局日志管理器实例
log_manager = LogManager()


def get_logger(name: str) -> logging.Logger:
    """获取日志记录器的便捷函数"""
    return log_manager.get_logger(name)


def configure_logging(config: Dict[str, Any]) -> None:
    """配置日志系统的便捷函数"""
    log_manager.configure(config)
