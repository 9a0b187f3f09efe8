"""指标汇总器测试"""

from datetime import datetime, timedelta
from unittest.mock import Mock

import pytest

from admin_monitor.models.metrics import (
    DatabaseMetrics, MessageQueueMetrics, SystemResourceMetrics
)
from admin_monitor.services.metrics_store import MetricsStore
from admin_monitor.services.metrics_summarizer import MetricsSummarizer, nearest_rank

NOW = datetime(2026, 1, 1, 12, 0)


class TestNearestRank:
    """测试最近秩百分位"""

    def test_one_to_hundred(self):
        values = list(range(1, 101))

        assert nearest_rank(values, 95) == 95
        assert nearest_rank(values, 99) == 99
        assert nearest_rank(values, 100) == 100

    def test_small_sample(self):
        assert nearest_rank([10, 20, 30], 95) == 30
        assert nearest_rank([10, 20, 30], 1) == 10

    def test_empty(self):
        assert nearest_rank([], 95) == 0.0


class TestMetricsSummarizer:
    """测试MetricsSummarizer类"""

    def setup_method(self):
        self.store = MetricsStore()
        self.summarizer = MetricsSummarizer(self.store)

    def test_no_samples(self):
        """测试没有样本时各项为0"""
        summary = self.summarizer.summarize('Users', timedelta(minutes=15), NOW)

        assert summary.request_count == 0
        assert summary.error_rate == 0.0
        assert summary.average_response_time_ms == 0.0
        assert summary.p95_response_time_ms == 0.0
        assert summary.endpoints == {}
        assert summary.window_truncated is False

    def test_percentiles_and_average(self):
        """测试1到100毫秒的样本"""
        for ms in range(1, 101):
            self.store.record('Users', 'GET /api/users', ms, True, NOW - timedelta(seconds=ms))

        summary = self.summarizer.summarize('Users', timedelta(minutes=15), NOW)

        assert summary.request_count == 100
        assert summary.success_count == 100
        assert summary.average_response_time_ms == pytest.approx(50.5)
        assert summary.p95_response_time_ms == 95
        assert summary.p99_response_time_ms == 99

    def test_error_rate(self):
        """测试错误率计算"""
        for i in range(100):
            self.store.record('Users', 'GET /', 10, i >= 12, NOW)

        summary = self.summarizer.summarize('Users', timedelta(minutes=15), NOW)

        assert summary.error_count == 12
        assert summary.error_rate == pytest.approx(12.0)

    def test_period_filter(self):
        """测试只统计周期内的样本"""
        self.store.record('Users', 'GET /', 1000, False, NOW - timedelta(minutes=20))
        self.store.record('Users', 'GET /', 10, True, NOW - timedelta(minutes=15))
        self.store.record('Users', 'GET /', 20, True, NOW - timedelta(minutes=1))

        summary = self.summarizer.summarize('Users', timedelta(minutes=15), NOW)

        assert summary.request_count == 2
        assert summary.error_rate == 0.0
        assert summary.average_response_time_ms == pytest.approx(15)

    def test_endpoint_breakdown(self):
        """测试按端点细分统计"""
        self.store.record('Users', 'GET /api/users', 10, True, NOW)
        self.store.record('Users', 'GET /api/users', 30, False, NOW)
        self.store.record('Users', 'POST /api/users', 50, True, NOW)

        summary = self.summarizer.summarize('Users', timedelta(minutes=15), NOW)

        users_get = summary.endpoints['GET /api/users']
        assert users_get.request_count == 2
        assert users_get.average_response_time_ms == pytest.approx(20)
        assert users_get.error_rate == pytest.approx(50)
        assert summary.endpoints['POST /api/users'].error_rate == 0.0

    def test_window_truncated_when_full(self):
        """测试队列已满且最旧样本仍在周期内"""
        summarizer = MetricsSummarizer(MetricsStore(capacity=5))
        for i in range(6):
            summarizer.store.record('Users', 'GET /', i, True, NOW - timedelta(seconds=i))

        summary = summarizer.summarize('Users', timedelta(minutes=15), NOW)

        assert summary.request_count == 5
        assert summary.window_truncated is True

    def test_window_not_truncated_when_oldest_outside_period(self):
        """测试队列已满但最旧样本已超出周期"""
        summarizer = MetricsSummarizer(MetricsStore(capacity=3))
        summarizer.store.record('Users', 'GET /', 1, True, NOW - timedelta(hours=1))
        summarizer.store.record('Users', 'GET /', 1, True, NOW)
        summarizer.store.record('Users', 'GET /', 1, True, NOW)

        summary = summarizer.summarize('Users', timedelta(minutes=15), NOW)

        assert summary.request_count == 2
        assert summary.window_truncated is False

    def test_summarize_all_sorted(self):
        self.store.record('Orders', 'GET /', 1, True, NOW)
        self.store.record('Billing', 'GET /', 1, True, NOW)

        summaries = self.summarizer.summarize_all(timedelta(minutes=15), NOW)

        assert [s.service_name for s in summaries] == ['Billing', 'Orders']

    def test_system_metrics_defaults(self):
        """测试未配置各指标来源时使用空指标"""
        metrics = self.summarizer.get_system_metrics(timedelta(minutes=5), NOW)

        assert metrics.generated_at == NOW
        assert metrics.collection_period == timedelta(minutes=5)
        assert metrics.system_resources == SystemResourceMetrics()
        assert metrics.database_metrics == DatabaseMetrics()
        assert metrics.message_queue_metrics == MessageQueueMetrics()

    def test_system_metrics_providers(self):
        """测试资源、数据库和队列指标来源"""
        resources = SystemResourceMetrics(cpu_usage_percent=42.0)
        resource_monitor = Mock()
        resource_monitor.collect.return_value = resources
        database_provider = Mock(return_value=DatabaseMetrics(slow_queries=3))
        queue_provider = Mock(return_value=MessageQueueMetrics(queue_depth=7))

        summarizer = MetricsSummarizer(self.store, resource_monitor,
                                       database_provider, queue_provider)
        metrics = summarizer.get_system_metrics(timedelta(minutes=15), NOW)

        assert metrics.system_resources.cpu_usage_percent == 42.0
        assert metrics.database_metrics.slow_queries == 3
        assert metrics.message_queue_metrics.queue_depth == 7
        database_provider.assert_called_once_with(NOW - timedelta(minutes=15))

    def test_system_metrics_provider_failure(self):
        """测试指标来源出错时回退为空指标"""
        resource_monitor = Mock()
        resource_monitor.collect.side_effect = OSError("psutil error")
        summarizer = MetricsSummarizer(
            self.store, resource_monitor,
            database_metrics_provider=Mock(side_effect=RuntimeError("db down")))

        metrics = summarizer.get_system_metrics(timedelta(minutes=15), NOW)

        assert metrics.system_resources == SystemResourceMetrics()
        assert metrics.database_metrics == DatabaseMetrics()
