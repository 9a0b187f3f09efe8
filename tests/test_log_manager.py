"""日志管理器测试"""

import logging
import logging.handlers

import pytest

from admin_monitor.utils.log_manager import (
    LogManager, LogLevel, LOGGER_PREFIX, log_manager, get_logger, configure_logging
)


class TestLogManager:
    """测试日志管理器"""

    def teardown_method(self):
        """恢复默认配置"""
        log_manager.configure({'log_level': 'INFO', 'log_file': None, 'enable_console': True})

    def test_singleton(self):
        """测试单例模式"""
        assert LogManager() is LogManager()
        assert LogManager() is log_manager

    def test_get_logger_uses_prefix(self):
        """测试记录器挂在统一命名空间下"""
        logger = get_logger('checker.cache')

        assert logger.name == f'{LOGGER_PREFIX}.checker.cache'
        assert get_logger(f'{LOGGER_PREFIX}.web').name == f'{LOGGER_PREFIX}.web'

    def test_root_logger_does_not_propagate(self):
        """测试命名空间根记录器不向上传播"""
        assert logging.getLogger(LOGGER_PREFIX).propagate is False

    def test_configure_level(self):
        """测试配置日志级别"""
        configure_logging({'log_level': 'debug'})

        assert logging.getLogger(LOGGER_PREFIX).level == logging.DEBUG
        assert log_manager.get_log_stats()['log_level'] == 'DEBUG'

    def test_configure_invalid_level(self):
        """测试无效日志级别"""
        with pytest.raises(ValueError):
            log_manager.configure({'log_level': 'VERBOSE'})

    def test_configure_log_file(self, tmp_path):
        """测试配置日志文件"""
        log_file = tmp_path / 'logs' / 'monitor.log'
        log_manager.configure({'log_file': str(log_file), 'enable_console': False})

        handlers = logging.getLogger(LOGGER_PREFIX).handlers
        assert len(handlers) == 1
        assert isinstance(handlers[0], logging.handlers.RotatingFileHandler)

        get_logger('test').info("写入文件")
        for handler in handlers:
            handler.flush()
        assert "写入文件" in log_file.read_text(encoding='utf-8')

    def test_reconfigure_replaces_handlers(self):
        """测试重复配置不会叠加处理器"""
        log_manager.configure({'log_level': 'INFO'})
        log_manager.configure({'log_level': 'WARNING'})

        assert len(logging.getLogger(LOGGER_PREFIX).handlers) == 1

    def test_set_level(self):
        """测试运行时调整级别"""
        log_manager.set_level(LogLevel.ERROR)

        assert logging.getLogger(LOGGER_PREFIX).level == logging.ERROR
