"""告警评估

根据最新的健康快照、指标快照和阈值生成告警列表。纯函数：不保存状态，
不做跨调用的去重，每次调用只依据传入的快照重新计算。
"""

from datetime import datetime
from typing import Callable, Iterable, List, Optional

from ..models.alert import Alert, AlertSeverity, AlertThresholds
from ..models.health_check import (
    HealthStatus, DependencyType, SystemHealthCheck, DependencyHealthRecord
)
from ..models.metrics import SystemMetrics
from ..utils.log_manager import get_logger

logger = get_logger('alert_evaluator')


def _graded(value: float, critical_threshold: float) -> AlertSeverity:
    return AlertSeverity.CRITICAL if value > critical_threshold else AlertSeverity.WARNING


def _health_alerts(health: SystemHealthCheck, now: datetime) -> List[Alert]:
    alerts = []

    for service in health.services:
        if service.status == HealthStatus.UNHEALTHY:
            alerts.append(Alert(
                type='Service',
                title=f"服务宕机: {service.service_name}",
                message=f"{service.service_name} 当前不健康。{service.error_message or ''}".strip(),
                severity=AlertSeverity.CRITICAL,
                created_at=service.last_incident_timestamp or now
            ))
        elif service.status == HealthStatus.DEGRADED:
            alerts.append(Alert(
                type='Service',
                title=f"服务降级: {service.service_name}",
                message=(f"{service.service_name} 性能下降，"
                         f"响应时间: {service.response_time_ms:.0f}ms"),
                severity=AlertSeverity.WARNING,
                created_at=service.check_time
            ))

    for dependency in health.dependencies:
        if dependency.status == HealthStatus.UNHEALTHY:
            alerts.append(Alert(
                type='Dependency',
                title=f"依赖不可用: {dependency.name}",
                message=f"{dependency.name} 当前不健康。{dependency.error_message or ''}".strip(),
                severity=AlertSeverity.CRITICAL,
                created_at=dependency.last_incident_timestamp or now
            ))

    return alerts


def _storage_usage(health: SystemHealthCheck) -> Optional[float]:
    storage: Optional[DependencyHealthRecord] = next(
        (d for d in health.dependencies if d.kind == DependencyType.FILE_STORAGE), None)
    if storage is None or not storage.additional_info:
        return None
    usage = storage.additional_info.get('UsagePercent')
    try:
        return float(usage)
    except (TypeError, ValueError):
        return None


def _disk_alerts(health: SystemHealthCheck, thresholds: AlertThresholds,
                 now: datetime) -> List[Alert]:
    usage_percent = _storage_usage(health)
    if usage_percent is None or usage_percent < thresholds.disk_usage_threshold:
        return []

    severity = (AlertSeverity.CRITICAL if usage_percent >= thresholds.disk_critical_threshold
                else AlertSeverity.WARNING)
    return [Alert(
        type='Resource',
        title="磁盘空间不足",
        message=f"磁盘使用率已达 {usage_percent:.1f}%，请及时清理空间。",
        severity=severity,
        created_at=now
    )]


def _performance_alerts(metrics: SystemMetrics, thresholds: AlertThresholds,
                        now: datetime) -> List[Alert]:
    alerts = []
    error_rate_threshold = thresholds.error_rate_threshold
    response_time_threshold = thresholds.response_time_threshold_ms

    for summary in metrics.service_metrics:
        if summary.error_rate > error_rate_threshold:
            alerts.append(Alert(
                type='Performance',
                title=f"错误率过高: {summary.service_name}",
                message=(f"{summary.service_name} 错误率为 {summary.error_rate:.2f}% "
                         f"(阈值: {error_rate_threshold}%)"),
                severity=_graded(summary.error_rate, error_rate_threshold * 2),
                created_at=now
            ))

        if summary.average_response_time_ms > response_time_threshold:
            alerts.append(Alert(
                type='Performance',
                title=f"响应时间过长: {summary.service_name}",
                message=(f"{summary.service_name} 平均响应时间为 "
                         f"{summary.average_response_time_ms:.0f}ms "
                         f"(阈值: {response_time_threshold:.0f}ms)"),
                severity=_graded(summary.average_response_time_ms, response_time_threshold * 2),
                created_at=now
            ))

    return alerts


def _resource_alerts(metrics: SystemMetrics, thresholds: AlertThresholds,
                     now: datetime) -> List[Alert]:
    alerts = []
    resources = metrics.system_resources

    if resources.cpu_usage_percent > thresholds.cpu_usage_threshold:
        alerts.append(Alert(
            type='Resource',
            title="CPU使用率过高",
            message=f"CPU使用率为 {resources.cpu_usage_percent:.1f}%",
            severity=_graded(resources.cpu_usage_percent, thresholds.cpu_critical_threshold),
            created_at=now
        ))

    if resources.memory_usage_percent > thresholds.memory_usage_threshold:
        alerts.append(Alert(
            type='Resource',
            title="内存使用率过高",
            message=f"内存使用率为 {resources.memory_usage_percent:.1f}%",
            severity=_graded(resources.memory_usage_percent, thresholds.memory_critical_threshold),
            created_at=now
        ))

    slow_queries = metrics.database_metrics.slow_queries
    if slow_queries > thresholds.slow_query_threshold:
        minutes = metrics.collection_period.total_seconds() / 60
        alerts.append(Alert(
            type='Database',
            title="数据库慢查询",
            message=f"最近 {minutes:.0f} 分钟内检测到 {slow_queries} 条慢查询",
            severity=AlertSeverity.WARNING,
            created_at=now
        ))

    return alerts


def sort_alerts(alerts: Iterable[Alert]) -> List[Alert]:
    """按级别从高到低排序，同级别按创建时间从新到旧"""
    return sorted(alerts, key=lambda alert: (alert.severity.rank, alert.created_at), reverse=True)


def evaluate_alerts(health: Optional[SystemHealthCheck],
                    metrics: Optional[SystemMetrics],
                    thresholds: Optional[AlertThresholds] = None,
                    now: Optional[datetime] = None) -> List[Alert]:
    """
    评估当前告警

    Args:
        health: 健康快照，可为空
        metrics: 指标快照，可为空
        thresholds: 告警阈值，默认使用内置阈值
        now: 评估时间，默认 datetime.now()

    Returns:
        List[Alert]: 排好序的告警列表，可能为空；不会抛出异常
    """
    thresholds = thresholds or AlertThresholds()
    now = now or datetime.now()

    rules: List[Callable[[], List[Alert]]] = []
    if health is not None:
        rules.append(lambda: _health_alerts(health, now))
        rules.append(lambda: _disk_alerts(health, thresholds, now))
    if metrics is not None:
        rules.append(lambda: _performance_alerts(metrics, thresholds, now))
        rules.append(lambda: _resource_alerts(metrics, thresholds, now))

    alerts: List[Alert] = []
    for rule in rules:
        try:
            alerts.extend(rule())
        except Exception as e:
            # 单条规则遇到畸形快照时跳过，其余规则照常评估
            logger.error(f"告警规则评估失败: {e}", exc_info=True)

    return sort_alerts(alerts)
