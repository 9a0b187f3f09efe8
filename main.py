#!/usr/bin/env python3
"""
管理控制台监控平面主程序入口

装配健康聚合器、指标存储、告警服务和管理接口，
启动 aiohttp 服务并处理配置热更新和信号关闭。
"""

import argparse
import asyncio
import logging
import signal
import sys
from typing import Optional, Dict, Any

from aiohttp import web

from admin_monitor import __version__
from admin_monitor.alerts.service import AlertService
from admin_monitor.models.health_check import HealthStatus
from admin_monitor.services.config_manager import ConfigManager
from admin_monitor.services.config_watcher import ConfigWatcher
from admin_monitor.services.health_aggregator import HealthAggregator
from admin_monitor.services.metrics_store import MetricsStore
from admin_monitor.services.metrics_summarizer import MetricsSummarizer
from admin_monitor.utils.exceptions import MonitorError, ConfigError
from admin_monitor.utils.log_manager import log_manager, get_logger
from admin_monitor.utils.resource_monitor import ResourceMonitor
from admin_monitor.web.app import create_app


class AdminMonitorApp:
    """监控平面主应用程序类"""

    def __init__(self, config_path: Optional[str] = None):
        """初始化应用程序

        Args:
            config_path: 配置文件路径，为空时使用默认配置
        """
        self.config_path = config_path
        self.logger: Optional[logging.Logger] = None
        self.is_running = False
        self.shutdown_event = asyncio.Event()

        self.config_manager: Optional[ConfigManager] = None
        self.config_watcher: Optional[ConfigWatcher] = None
        self.metrics_store: Optional[MetricsStore] = None
        self.aggregator: Optional[HealthAggregator] = None
        self.summarizer: Optional[MetricsSummarizer] = None
        self.alert_service: Optional[AlertService] = None
        self.web_app: Optional[web.Application] = None
        self.runner: Optional[web.AppRunner] = None
        self.loop: Optional[asyncio.AbstractEventLoop] = None

        self.background_tasks = set()

    def initialize(self):
        """初始化应用程序组件

        Raises:
            ConfigError: 配置错误
            MonitorError: 组件初始化失败
        """
        self.config_manager = ConfigManager(self.config_path)
        self.config_manager.load_config()
        global_config = self.config_manager.get_global_config()

        self._configure_logging(global_config)
        self.logger = get_logger('main')
        self.logger.info("开始初始化监控平面")

        self.metrics_store = MetricsStore(global_config.get('metrics_capacity', 10000))
        self.aggregator = HealthAggregator.from_config(self.config_manager)
        self.summarizer = MetricsSummarizer(
            self.metrics_store,
            resource_monitor=ResourceMonitor(self.config_manager.get_storage_path())
        )
        self.alert_service = AlertService(
            self.aggregator,
            self.summarizer,
            thresholds_provider=self.config_manager.get_alert_thresholds
        )
        self.web_app = create_app(
            self.aggregator,
            self.metrics_store,
            summarizer=self.summarizer,
            alert_service=self.alert_service,
            metrics_period_minutes=global_config.get('metrics_period_minutes', 15)
        )

        self.config_watcher = ConfigWatcher(self.config_manager)
        self.config_watcher.add_change_callback(self._on_config_changed_callback)

        self.logger.info("监控平面组件初始化完成")

    def _configure_logging(self, global_config: Dict[str, Any]):
        """配置日志系统"""
        log_manager.configure({
            'log_level': global_config.get('log_level', 'INFO'),
            'log_file': global_config.get('log_file'),
            'max_file_size': global_config.get('max_log_size', 10 * 1024 * 1024),
            'backup_count': global_config.get('log_backup_count', 5)
        })

    def _on_config_changed_callback(self, old_config: Dict[str, Any],
                                    new_config: Dict[str, Any]):
        """配置文件变更回调

        watchdog 在观察者线程中调用本方法，检查器的替换转交给事件循环执行，
        保证与正在进行的健康检查不交错。告警阈值在下次评估时自动读取新值。
        """
        loop = self.loop
        if loop is not None and loop.is_running():
            try:
                running_loop = asyncio.get_running_loop()
            except RuntimeError:
                running_loop = None
            if running_loop is not loop:
                loop.call_soon_threadsafe(self._apply_config, new_config)
                return
        self._apply_config(new_config)

    def _apply_config(self, new_config: Dict[str, Any]):
        """应用新配置，重建检查器并更新日志设置"""
        try:
            self._configure_logging(new_config.get('global', {}))
            self.aggregator.reconfigure(self.config_manager)
            self.logger.info("配置重新加载完成")
        except MonitorError as e:
            self.logger.error(f"应用新配置失败: {e}", exc_info=True)

    async def start(self, host: str = '0.0.0.0', port: int = 8080):
        """启动应用程序并等待关闭信号"""
        if self.is_running:
            self.logger.warning("应用程序已经在运行")
            return

        self.is_running = True
        self.loop = asyncio.get_running_loop()
        try:
            self.config_watcher.start_watching()

            self.runner = web.AppRunner(self.web_app)
            await self.runner.setup()
            await web.TCPSite(self.runner, host, port).start()
            self.logger.info(f"管理接口已启动: http://{host}:{port}")

            await self.shutdown_event.wait()
        finally:
            await self.stop()

    async def stop(self):
        """停止应用程序"""
        if not self.is_running:
            return

        self.logger.info("正在停止监控平面...")
        self.is_running = False

        if self.config_watcher:
            self.config_watcher.stop_watching()

        for task in self.background_tasks:
            if not task.done():
                task.cancel()
        if self.background_tasks:
            await asyncio.gather(*self.background_tasks, return_exceptions=True)
        self.background_tasks.clear()

        if self.runner:
            await self.runner.cleanup()
            self.runner = None

        if self.aggregator:
            await self.aggregator.close()

        self.logger.info("监控平面已停止")
        log_manager.cleanup()

    def shutdown(self):
        """触发应用程序关闭"""
        if self.logger:
            self.logger.info("收到关闭信号")
        self.shutdown_event.set()


def create_argument_parser() -> argparse.ArgumentParser:
    """创建命令行参数解析器"""
    parser = argparse.ArgumentParser(
        prog='admin-monitor',
        description='管理控制台监控平面 - 检查服务和依赖健康状态、汇总请求指标并评估告警',
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
示例用法:
  %(prog)s config.yaml                    # 使用指定配置文件启动管理接口
  %(prog)s --validate config.yaml        # 验证配置文件格式
  %(prog)s --check-once config.yaml      # 执行一次健康检查并输出告警
  %(prog)s --version                      # 显示版本信息
        """
    )

    parser.add_argument('config_file', nargs='?', help='YAML配置文件路径')
    parser.add_argument('--version', '-v', action='version',
                        version=f'%(prog)s {__version__}')
    parser.add_argument('--validate', action='store_true', help='验证配置文件格式并退出')
    parser.add_argument('--check-once', action='store_true',
                        help='执行一次健康检查和告警评估后退出')
    parser.add_argument('--log-level',
                        choices=['DEBUG', 'INFO', 'WARNING', 'ERROR', 'CRITICAL'],
                        help='设置日志级别（覆盖配置文件设置）')
    parser.add_argument('--host', default='0.0.0.0', help='管理接口监听地址')
    parser.add_argument('--port', type=int, default=8080, help='管理接口监听端口')

    return parser


def validate_config_file(config_path: Optional[str]) -> bool:
    """验证配置文件

    Returns:
        验证是否成功
    """
    try:
        config_manager = ConfigManager(config_path)
        config_manager.load_config()
        HealthAggregator.from_config(config_manager)
    except MonitorError as e:
        print(f"❌ 配置文件验证失败: {e}")
        return False

    service_urls = config_manager.get_service_urls()
    print("✅ 配置文件验证成功!")
    print(f"   - 被监控服务数量: {len(service_urls)}")
    for service_name, base_url in service_urls.items():
        print(f"     * {service_name} ({base_url})")
    print(f"   - 告警阈值: {config_manager.get_alert_thresholds().to_dict()}")
    return True


async def check_once(app: AdminMonitorApp) -> bool:
    """执行一次健康检查并输出告警

    Returns:
        所有目标是否都健康
    """
    health = await app.aggregator.check_all()
    print(f"整体状态: {health.overall_status.value} "
          f"(总耗时 {health.total_response_time_ms:.0f}ms)")

    for service in health.services:
        print(f"   {service.service_name}: {service.status.value} "
              f"({service.response_time_ms:.0f}ms) {service.error_message or ''}")
    for dependency in health.dependencies:
        print(f"   {dependency.name}: {dependency.status.value} "
              f"({dependency.response_time_ms:.0f}ms) {dependency.error_message or ''}")

    alerts = await app.alert_service.check_and_log_alerts()
    print(f"当前告警数量: {len(alerts)}")

    await app.aggregator.close()
    return all(record.status == HealthStatus.HEALTHY
               for record in [*health.services, *health.dependencies])


async def main():
    """主函数"""
    parser = create_argument_parser()
    args = parser.parse_args()

    if args.validate:
        success = validate_config_file(args.config_file)
        sys.exit(0 if success else 1)

    app = AdminMonitorApp(args.config_file)
    try:
        app.initialize()
        if args.log_level:
            log_manager.configure({'log_level': args.log_level})

        if args.check_once:
            success = await check_once(app)
            sys.exit(0 if success else 1)

        loop = asyncio.get_running_loop()
        for sig in (signal.SIGINT, signal.SIGTERM):
            try:
                loop.add_signal_handler(sig, app.shutdown)
            except NotImplementedError:
                signal.signal(sig, lambda signum, frame: app.shutdown())

        print(f"管理控制台监控平面 v{__version__} 已启动，按 Ctrl+C 停止程序")
        await app.start(args.host, args.port)

    except ConfigError as e:
        print(f"配置错误: {e}", file=sys.stderr)
        sys.exit(1)
    except MonitorError as e:
        print(f"监控平面错误: {e}", file=sys.stderr)
        sys.exit(1)


def run():
    """命令行入口"""
    if sys.platform == "win32":
        asyncio.set_event_loop_policy(asyncio.WindowsProactorEventLoopPolicy())

    asyncio.run(main())


if __name__ == "__main__":
    run()
