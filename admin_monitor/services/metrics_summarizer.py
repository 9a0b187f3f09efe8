"""指标汇总器

从 MetricsStore 的快照计算统计周期内的请求量、错误率、平均响应时间、
P95/P99 以及按端点的细分统计。只读，不需要额外的同步。
"""

import math
from collections import defaultdict
from datetime import datetime, timedelta
from typing import Callable, Dict, List, Optional, Sequence

from .metrics_store import MetricsStore
from ..models.metrics import (
    MetricSample, EndpointMetrics, ServiceMetricsSummary, SystemMetrics,
    SystemResourceMetrics, DatabaseMetrics, MessageQueueMetrics
)
from ..utils.log_manager import get_logger
from ..utils.resource_monitor import ResourceMonitor

DEFAULT_PERIOD = timedelta(minutes=15)


def nearest_rank(sorted_values: Sequence[float], percentile: int) -> float:
    """
    最近秩法计算百分位数

    Args:
        sorted_values: 已升序排列的数值
        percentile: 百分位（1-100）

    Returns:
        float: 百分位数值，序列为空时为0
    """
    if not sorted_values:
        return 0.0
    rank = math.ceil(percentile * len(sorted_values) / 100)
    return sorted_values[max(rank, 1) - 1]


def _error_rate(error_count: int, request_count: int) -> float:
    return error_count / request_count * 100 if request_count else 0.0


def summarize_samples(service_name: str, samples: Sequence[MetricSample]) -> ServiceMetricsSummary:
    """对已过滤的样本计算汇总统计"""
    summary = ServiceMetricsSummary(service_name=service_name)
    if not samples:
        return summary

    request_count = len(samples)
    success_count = sum(1 for sample in samples if sample.is_success)
    response_times = sorted(sample.response_time_ms for sample in samples)

    summary.request_count = request_count
    summary.success_count = success_count
    summary.error_count = request_count - success_count
    summary.error_rate = _error_rate(summary.error_count, request_count)
    summary.average_response_time_ms = sum(response_times) / request_count
    summary.p95_response_time_ms = nearest_rank(response_times, 95)
    summary.p99_response_time_ms = nearest_rank(response_times, 99)

    grouped: Dict[str, List[MetricSample]] = defaultdict(list)
    for sample in samples:
        grouped[sample.endpoint].append(sample)

    for endpoint, endpoint_samples in grouped.items():
        total = len(endpoint_samples)
        errors = sum(1 for sample in endpoint_samples if not sample.is_success)
        summary.endpoints[endpoint] = EndpointMetrics(
            endpoint=endpoint,
            request_count=total,
            average_response_time_ms=sum(s.response_time_ms for s in endpoint_samples) / total,
            error_rate=_error_rate(errors, total)
        )

    return summary


class MetricsSummarizer:
    """指标汇总器"""

    def __init__(self,
                 store: MetricsStore,
                 resource_monitor: Optional[ResourceMonitor] = None,
                 database_metrics_provider: Optional[Callable[[datetime], DatabaseMetrics]] = None,
                 queue_metrics_provider: Optional[Callable[[], MessageQueueMetrics]] = None):
        """
        初始化指标汇总器

        Args:
            store: 指标存储
            resource_monitor: 主机资源监控器，为空时资源指标全为0
            database_metrics_provider: 数据库指标来源，参数为统计起始时间
            queue_metrics_provider: 消息队列指标来源
        """
        self.store = store
        self.resource_monitor = resource_monitor
        self.database_metrics_provider = database_metrics_provider
        self.queue_metrics_provider = queue_metrics_provider
        self.logger = get_logger('metrics_summarizer')

    def summarize(self, service_name: str, period: timedelta = DEFAULT_PERIOD,
                  now: Optional[datetime] = None) -> ServiceMetricsSummary:
        """
        汇总服务在统计周期内的指标

        Args:
            service_name: 服务名称
            period: 统计周期，只包含 timestamp >= now - period 的样本
            now: 当前时间，默认 datetime.now()

        Returns:
            ServiceMetricsSummary: 汇总结果，没有样本时各项为0
        """
        cutoff_time = (now or datetime.now()) - period
        snapshot = self.store.snapshot(service_name)
        samples = [sample for sample in snapshot if sample.timestamp >= cutoff_time]

        summary = summarize_samples(service_name, samples)
        summary.window_truncated = (
            len(snapshot) >= self.store.capacity and snapshot[0].timestamp >= cutoff_time
        )
        if summary.window_truncated:
            self.logger.debug(
                f"服务 {service_name} 的样本队列已满，统计周期内较早的样本可能已被淘汰")
        return summary

    def summarize_all(self, period: timedelta = DEFAULT_PERIOD,
                      now: Optional[datetime] = None) -> List[ServiceMetricsSummary]:
        """汇总所有已记录服务的指标"""
        now = now or datetime.now()
        return [self.summarize(name, period, now) for name in sorted(self.store.service_names())]

    def _collect_resources(self) -> SystemResourceMetrics:
        if self.resource_monitor is None:
            return SystemResourceMetrics()
        try:
            return self.resource_monitor.collect()
        except Exception as e:
            self.logger.error(f"采集资源指标失败: {e}")
            return SystemResourceMetrics()

    def _collect_database_metrics(self, since: datetime) -> DatabaseMetrics:
        if self.database_metrics_provider is None:
            return DatabaseMetrics()
        try:
            return self.database_metrics_provider(since)
        except Exception as e:
            self.logger.error(f"获取数据库指标失败: {e}")
            return DatabaseMetrics()

    def _collect_queue_metrics(self) -> MessageQueueMetrics:
        if self.queue_metrics_provider is None:
            return MessageQueueMetrics()
        try:
            return self.queue_metrics_provider()
        except Exception as e:
            self.logger.error(f"获取消息队列指标失败: {e}")
            return MessageQueueMetrics()

    def get_system_metrics(self, period: timedelta = DEFAULT_PERIOD,
                           now: Optional[datetime] = None) -> SystemMetrics:
        """
        生成系统指标快照

        Args:
            period: 统计周期

        Returns:
            SystemMetrics: 各服务汇总加上资源、数据库和消息队列指标
        """
        now = now or datetime.now()
        return SystemMetrics(
            generated_at=now,
            collection_period=period,
            service_metrics=self.summarize_all(period, now),
            system_resources=self._collect_resources(),
            database_metrics=self._collect_database_metrics(now - period),
            message_queue_metrics=self._collect_queue_metrics()
        )
