"""数据模型模块"""

from .alert import Alert, AlertSeverity, AlertThresholds
from .health_check import (
    HealthStatus, SystemHealthStatus, DependencyType,
    ServiceHealthRecord, DependencyHealthRecord, SystemHealthCheck
)
from .metrics import (
    MetricSample, EndpointMetrics, ServiceMetricsSummary, SystemResourceMetrics,
    DatabaseMetrics, MessageQueueMetrics, SystemMetrics
)

__all__ = [
    'Alert', 'AlertSeverity', 'AlertThresholds',
    'HealthStatus', 'SystemHealthStatus', 'DependencyType',
    'ServiceHealthRecord', 'DependencyHealthRecord', 'SystemHealthCheck',
    'MetricSample', 'EndpointMetrics', 'ServiceMetricsSummary', 'SystemResourceMetrics',
    'DatabaseMetrics', 'MessageQueueMetrics', 'SystemMetrics'
]
