"""配置文件监控器

监听配置文件变更并重新加载，告警阈值等配置无需重启即可生效。
"""

import asyncio
import os
from typing import Callable, Optional, List, Dict, Any

from watchdog.events import FileSystemEventHandler
from watchdog.observers import Observer

from .config_manager import ConfigManager
from ..utils.exceptions import ConfigError
from ..utils.log_manager import get_logger

ChangeCallback = Callable[[Dict[str, Any], Dict[str, Any]], None]


class ConfigFileHandler(FileSystemEventHandler):
    """配置文件变更事件处理器"""

    def __init__(self, config_path: str, callback: Callable[[], None]):
        self.config_path = config_path
        self.callback = callback
        self.logger = get_logger('config_watcher')

    def on_modified(self, event):
        if not event.is_directory and os.path.abspath(event.src_path) == self.config_path:
            self.logger.info(f"检测到配置文件变更: {self.config_path}")
            self.callback()


class ConfigWatcher:
    """配置文件监控器，支持热更新"""

    def __init__(self, config_manager: ConfigManager):
        """
        初始化配置监控器

        Args:
            config_manager: 配置管理器实例
        """
        self.config_manager = config_manager
        self.observer: Optional[Observer] = None
        self.logger = get_logger('config_watcher')
        self.change_callbacks: List[ChangeCallback] = []
        self._running = False

    def add_change_callback(self, callback: ChangeCallback):
        """
        添加配置变更回调函数

        Args:
            callback: 回调函数，参数为 (旧配置, 新配置)
        """
        self.change_callbacks.append(callback)

    def remove_change_callback(self, callback: ChangeCallback):
        if callback in self.change_callbacks:
            self.change_callbacks.remove(callback)

    def _on_config_changed(self):
        """重新加载配置并通知回调，加载失败时保留旧配置"""
        if not self.config_manager.is_config_changed():
            return

        old_config = self.config_manager.config
        try:
            new_config = self.config_manager.reload_config()
        except ConfigError as e:
            self.logger.error(f"配置重新加载失败，继续使用旧配置: {e}")
            return

        self.logger.info("配置文件已重新加载")
        for callback in list(self.change_callbacks):
            try:
                callback(old_config, new_config)
            except Exception as e:
                self.logger.error(f"配置变更回调执行失败: {e}", exc_info=True)

    def start_watching(self):
        """开始监控配置文件"""
        if self._running:
            self.logger.warning("配置监控器已经在运行")
            return

        if self.config_manager.config_path is None:
            self.logger.info("未指定配置文件，不启动配置监控")
            return

        config_path = os.path.abspath(self.config_manager.config_path)
        try:
            self.observer = Observer()
            self.observer.schedule(
                ConfigFileHandler(config_path, self._on_config_changed),
                os.path.dirname(config_path),
                recursive=False
            )
            self.observer.start()
        except Exception as e:
            self.logger.error(f"启动配置监控失败: {e}")
            raise ConfigError(f"启动配置监控失败: {e}", config_path=config_path)

        self._running = True
        self.logger.info(f"开始监控配置文件: {config_path}")

    def stop_watching(self):
        """停止监控配置文件"""
        if not self._running:
            return

        if self.observer:
            self.observer.stop()
            self.observer.join()
            self.observer = None

        self._running = False
        self.logger.info("配置文件监控已停止")

    def is_running(self) -> bool:
        return self._running

    async def watch_config_changes_async(self, check_interval: int = 5):
        """
        轮询方式监控配置变更，作为文件系统事件的补充

        Args:
            check_interval: 检查间隔（秒）
        """
        self.logger.info(f"开始异步监控配置文件变更，检查间隔: {check_interval}秒")

        while True:
            try:
                self._on_config_changed()
                await asyncio.sleep(check_interval)
            except asyncio.CancelledError:
                self.logger.info("配置监控任务已取消")
                break
            except Exception as e:
                self.logger.error(f"配置监控过程中发生错误: {e}")
                await asyncio.sleep(check_interval)

    def __enter__(self):
        self.start_watching()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.stop_watching()
