"""健康聚合器

并发执行所有服务和依赖的探测，汇总为一次系统健康快照
"""

import asyncio
import time
from datetime import datetime
from typing import Dict, Any, List, Optional, Sequence

from ..checkers import health_checker_factory
from ..checkers.base import BaseHealthChecker, DependencyHealthChecker, HealthRecord
from ..checkers.service_checker import ServiceHealthChecker
from ..models.health_check import (
    HealthStatus, SystemHealthStatus, ServiceHealthRecord, DependencyHealthRecord,
    SystemHealthCheck
)
from ..utils.log_manager import get_logger

DEFAULT_OVERALL_DEADLINE = 10.0


def determine_overall_status(statuses: Sequence[HealthStatus]) -> SystemHealthStatus:
    """
    根据当前所有探测目标的状态计算系统整体状态

    不健康数 >= 2 为 Critical，恰好1个为 Unhealthy，否则有降级为 Degraded，
    其余为 Healthy。Unknown 不参与计数。
    """
    unhealthy_count = sum(1 for status in statuses if status == HealthStatus.UNHEALTHY)
    degraded_count = sum(1 for status in statuses if status == HealthStatus.DEGRADED)

    if unhealthy_count >= 2:
        return SystemHealthStatus.CRITICAL
    if unhealthy_count == 1:
        return SystemHealthStatus.UNHEALTHY
    if degraded_count > 0:
        return SystemHealthStatus.DEGRADED
    return SystemHealthStatus.HEALTHY


class HealthAggregator:
    """健康聚合器

    每个探测目标一个任务，统一在总截止时间内等待；
    截止时仍未完成的任务被取消并报告为 Unknown，不会被静默丢弃。
    """

    def __init__(self,
                 service_checkers: Sequence[ServiceHealthChecker],
                 dependency_checkers: Sequence[DependencyHealthChecker],
                 overall_deadline: float = DEFAULT_OVERALL_DEADLINE):
        """
        初始化健康聚合器

        Args:
            service_checkers: 服务检查器列表
            dependency_checkers: 依赖检查器列表
            overall_deadline: 整批检查的总截止时间（秒）
        """
        self.service_checkers: List[ServiceHealthChecker] = list(service_checkers)
        self.dependency_checkers: List[DependencyHealthChecker] = list(dependency_checkers)
        self.overall_deadline = overall_deadline
        self.logger = get_logger('health_aggregator')

    @classmethod
    def from_config(cls, config_manager) -> 'HealthAggregator':
        """
        根据配置创建聚合器

        Args:
            config_manager: ConfigManager 实例

        Raises:
            CheckerError: 检查器创建失败
        """
        service_checkers, dependency_checkers = cls._build_checkers(config_manager)
        overall_deadline = config_manager.get_global_config().get(
            'overall_deadline', DEFAULT_OVERALL_DEADLINE)
        return cls(service_checkers, dependency_checkers, overall_deadline)

    @staticmethod
    def _build_checkers(config_manager):
        service_timeout = config_manager.get_global_config().get('service_timeout', 5)

        service_checkers = [
            health_checker_factory.create_checker(
                name, {'type': 'service', 'base_url': base_url, 'timeout': service_timeout})
            for name, base_url in config_manager.get_service_urls().items()
        ]

        dependency_configs: List[Dict[str, Any]] = [
            {**config_manager.get_database_config(), 'type': 'database'},
            {**config_manager.get_message_broker_config(), 'type': 'message_broker'},
            {'type': 'cache',
             'connection_string': config_manager.get_cache_connection_string()},
            {'type': 'file_storage', 'path': config_manager.get_storage_path()},
        ]
        dependency_checkers = [
            health_checker_factory.create_checker(config['type'], config)
            for config in dependency_configs
        ]
        return service_checkers, dependency_checkers

    def reconfigure(self, config_manager) -> None:
        """
        按新配置重建检查器，同名目标保留最近一次故障时间

        Raises:
            CheckerError: 检查器创建失败，此时保留原有检查器
        """
        service_checkers, dependency_checkers = self._build_checkers(config_manager)

        previous = {checker.name: checker for checker in self.all_checkers()}
        for checker in service_checkers + dependency_checkers:
            old_checker = previous.get(checker.name)
            if old_checker is not None:
                checker.last_incident = old_checker.last_incident

        self.service_checkers = service_checkers
        self.dependency_checkers = dependency_checkers
        self.overall_deadline = config_manager.get_global_config().get(
            'overall_deadline', self.overall_deadline)
        self.logger.info(
            f"健康聚合器已重新配置: {len(service_checkers)} 个服务, "
            f"{len(dependency_checkers)} 个依赖")

    def all_checkers(self) -> List[BaseHealthChecker]:
        return [*self.service_checkers, *self.dependency_checkers]

    def _unfinished_record(self, checker: BaseHealthChecker, status: HealthStatus,
                           message: str, deadline: float) -> HealthRecord:
        """为未完成或异常的任务生成占位记录"""
        if isinstance(checker, DependencyHealthChecker):
            record = DependencyHealthRecord(
                name=checker.display_name or checker.name,
                kind=checker.kind,
                status=status,
                error_message=message
            )
        else:
            record = ServiceHealthRecord(
                service_name=checker.name,
                base_url=getattr(checker, 'base_url', ''),
                status=status,
                error_message=message
            )
        if status == HealthStatus.UNKNOWN:
            record.response_time_ms = deadline * 1000
        record.last_incident_timestamp = checker.last_incident
        return record

    def _collect_result(self, task: asyncio.Task, checker: BaseHealthChecker,
                        deadline: float) -> HealthRecord:
        if task.cancelled():
            self.logger.warning(f"{checker.name} 健康检查在 {deadline}s 内未完成")
            return self._unfinished_record(
                checker, HealthStatus.UNKNOWN,
                f"健康检查在 {deadline}s 内未完成", deadline)

        error = task.exception()
        if error is not None:
            self.logger.error(f"{checker.name} 健康检查抛出异常: {error}")
            return self._unfinished_record(
                checker, HealthStatus.UNHEALTHY, f"健康检查异常: {error}", deadline)

        return task.result()

    async def check_all(self) -> SystemHealthCheck:
        """
        立即检查所有服务和依赖

        Returns:
            SystemHealthCheck: 系统健康快照
        """
        start_time = time.time()
        check_time = datetime.now()
        # 本次检查使用开始时的检查器快照，期间的重新配置从下一次检查生效
        service_checkers = list(self.service_checkers)
        checkers = service_checkers + list(self.dependency_checkers)
        deadline = self.overall_deadline

        tasks = [asyncio.create_task(checker.check_health()) for checker in checkers]
        if tasks:
            _, pending = await asyncio.wait(tasks, timeout=deadline)
            for task in pending:
                task.cancel()
            if pending:
                await asyncio.gather(*pending, return_exceptions=True)

        records = [self._collect_result(task, checker, deadline)
                   for task, checker in zip(tasks, checkers)]
        services = records[:len(service_checkers)]
        dependencies = records[len(service_checkers):]

        health_check = SystemHealthCheck(
            check_time=check_time,
            services=services,
            dependencies=dependencies,
            overall_status=determine_overall_status([record.status for record in records]),
            total_response_time_ms=(time.time() - start_time) * 1000
        )

        self.logger.info(
            f"健康检查完成: 整体状态 {health_check.overall_status.value}, "
            f"{len(services)} 个服务, {len(dependencies)} 个依赖, "
            f"总耗时 {health_check.total_response_time_ms:.0f}ms")
        return health_check

    async def check_service(self, service_name: str) -> Optional[ServiceHealthRecord]:
        """
        立即检查指定服务

        Returns:
            检查结果，服务未配置时返回None
        """
        for checker in self.service_checkers:
            if checker.name == service_name:
                return await checker.check_health()

        self.logger.error(f"服务 {service_name} 的检查器不存在")
        return None

    async def close(self):
        """关闭所有检查器"""
        for checker in self.all_checkers():
            try:
                await checker.close()
            except Exception as e:
                self.logger.warning(f"关闭检查器 {checker.name} 时出错: {e}")
