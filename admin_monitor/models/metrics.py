"""请求指标相关的数据模型"""

from dataclasses import dataclass, field, asdict
from datetime import datetime, timedelta
from typing import Dict, Any, List


@dataclass(frozen=True)
class MetricSample:
    """单次请求的指标样本，创建后不可变"""
    service_name: str
    endpoint: str
    response_time_ms: float
    is_success: bool
    timestamp: datetime = field(default_factory=datetime.now)


@dataclass
class EndpointMetrics:
    """单个端点的统计"""
    endpoint: str
    request_count: int = 0
    average_response_time_ms: float = 0.0
    error_rate: float = 0.0

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass
class ServiceMetricsSummary:
    """服务在统计周期内的指标汇总

    window_truncated 为 True 表示样本队列已满且最旧样本仍在统计周期内，
    即周期内较早的样本可能已被淘汰。
    """
    service_name: str
    request_count: int = 0
    success_count: int = 0
    error_count: int = 0
    error_rate: float = 0.0
    average_response_time_ms: float = 0.0
    p95_response_time_ms: float = 0.0
    p99_response_time_ms: float = 0.0
    endpoints: Dict[str, EndpointMetrics] = field(default_factory=dict)
    window_truncated: bool = False

    def to_dict(self) -> Dict[str, Any]:
        data = asdict(self)
        data['endpoints'] = {
            name: metrics.to_dict() for name, metrics in self.endpoints.items()
        }
        return data


@dataclass
class SystemResourceMetrics:
    """主机资源使用情况"""
    cpu_usage_percent: float = 0.0
    memory_usage_bytes: int = 0
    memory_total_bytes: int = 0
    memory_usage_percent: float = 0.0
    disk_usage_bytes: int = 0
    disk_total_bytes: int = 0
    disk_usage_percent: float = 0.0
    thread_count: int = 0


@dataclass
class DatabaseMetrics:
    """数据库指标"""
    total_queries: int = 0
    average_query_time_ms: float = 0.0
    p95_query_time_ms: float = 0.0
    slow_queries: int = 0
    active_connections: int = 0
    connection_pool_size: int = 0


@dataclass
class MessageQueueMetrics:
    """消息队列指标"""
    queue_name: str = 'default'
    queue_depth: int = 0
    messages_processed: int = 0
    failed_messages: int = 0
    failure_rate: float = 0.0


@dataclass
class SystemMetrics:
    """系统指标快照，按统计周期生成"""
    generated_at: datetime = field(default_factory=datetime.now)
    collection_period: timedelta = timedelta(minutes=15)
    service_metrics: List[ServiceMetricsSummary] = field(default_factory=list)
    system_resources: SystemResourceMetrics = field(default_factory=SystemResourceMetrics)
    database_metrics: DatabaseMetrics = field(default_factory=DatabaseMetrics)
    message_queue_metrics: MessageQueueMetrics = field(default_factory=MessageQueueMetrics)

    def to_dict(self) -> Dict[str, Any]:
        return {
            'generated_at': self.generated_at.isoformat(),
            'collection_period_seconds': self.collection_period.total_seconds(),
            'service_metrics': [summary.to_dict() for summary in self.service_metrics],
            'system_resources': asdict(self.system_resources),
            'database_metrics': asdict(self.database_metrics),
            'message_queue_metrics': asdict(self.message_queue_metrics)
        }
