"""健康检查器基类"""

import time
from abc import ABC, abstractmethod
from datetime import datetime
from typing import Dict, Any, Optional, Union

from ..models.health_check import (
    HealthStatus, DependencyType, ServiceHealthRecord, DependencyHealthRecord
)
from ..utils.log_manager import get_logger

# 延迟分级阈值（毫秒）
HEALTHY_LATENCY_MS = 500
DEGRADED_LATENCY_MS = 2000

HealthRecord = Union[ServiceHealthRecord, DependencyHealthRecord]


def classify_service_latency(response_time_ms: float) -> HealthStatus:
    """按响应时间对服务分级：<500ms 健康，<2000ms 降级，其余不健康"""
    if response_time_ms < HEALTHY_LATENCY_MS:
        return HealthStatus.HEALTHY
    if response_time_ms < DEGRADED_LATENCY_MS:
        return HealthStatus.DEGRADED
    return HealthStatus.UNHEALTHY


def classify_dependency_latency(response_time_ms: float) -> HealthStatus:
    """依赖只区分健康和降级，慢不等于不可用"""
    if response_time_ms < HEALTHY_LATENCY_MS:
        return HealthStatus.HEALTHY
    return HealthStatus.DEGRADED


class BaseHealthChecker(ABC):
    """健康检查器抽象基类

    check_health 的实现必须捕获自身的所有异常并转换为健康记录，
    不允许异常逃逸到聚合器。
    """

    def __init__(self, name: str, config: Dict[str, Any]):
        """
        初始化健康检查器

        Args:
            name: 探测目标名称
            config: 探测配置参数
        """
        self.name = name
        self.config = config
        self.checker_type = self.__class__.__name__.replace('HealthChecker', '').lower()
        self.logger = get_logger(f'checker.{self.checker_type}.{self.name}')
        # 最近一次故障时间，跨多次检查保留
        self.last_incident: Optional[datetime] = None

    @abstractmethod
    async def check_health(self) -> HealthRecord:
        """
        执行健康检查并返回结果

        Returns:
            HealthRecord: 健康检查结果
        """
        pass

    @abstractmethod
    def validate_config(self) -> bool:
        """
        验证配置参数是否有效

        Returns:
            bool: 配置是否有效
        """
        pass

    def get_timeout(self) -> float:
        """
        获取超时时间配置

        Returns:
            float: 超时时间（秒）
        """
        return self.config.get('timeout', 5)

    @staticmethod
    def _elapsed_ms(start_time: float) -> float:
        return (time.time() - start_time) * 1000

    def _stamp_incident(self, record: HealthRecord) -> HealthRecord:
        """不健康时记录故障时间，并把最近一次故障时间带到结果上"""
        if record.status == HealthStatus.UNHEALTHY:
            self.last_incident = datetime.now()
        record.last_incident_timestamp = self.last_incident
        return record

    async def close(self):
        """释放检查器持有的资源"""
        pass


class DependencyHealthChecker(BaseHealthChecker):
    """基础设施依赖检查器基类"""

    kind: DependencyType
    display_name: str = ''

    def _new_record(self) -> DependencyHealthRecord:
        return DependencyHealthRecord(
            name=self.display_name or self.name,
            kind=self.kind,
            status=HealthStatus.UNKNOWN,
            check_time=datetime.now()
        )

    def _fail(self, record: DependencyHealthRecord, message: str) -> DependencyHealthRecord:
        record.status = HealthStatus.UNHEALTHY
        record.error_message = message
        return record
