"""数据模型测试"""

from datetime import datetime, timedelta

import pytest

from admin_monitor.models.alert import Alert, AlertSeverity, AlertThresholds
from admin_monitor.models.health_check import (
    HealthStatus, SystemHealthStatus, DependencyType,
    ServiceHealthRecord, DependencyHealthRecord, SystemHealthCheck
)
from admin_monitor.models.metrics import (
    MetricSample, EndpointMetrics, ServiceMetricsSummary, SystemMetrics
)


class TestHealthModels:
    """测试健康检查模型"""

    def test_status_values(self):
        """测试状态枚举取值"""
        assert HealthStatus.DEGRADED.value == 'Degraded'
        assert SystemHealthStatus.CRITICAL.value == 'Critical'
        assert DependencyType.MESSAGE_BROKER.value == 'MessageBroker'

    def test_service_record_defaults(self):
        """测试服务记录默认值"""
        record = ServiceHealthRecord(service_name='Users', base_url='http://users')

        assert record.status == HealthStatus.UNKNOWN
        assert record.response_time_ms == 0.0
        assert record.error_message is None
        assert record.last_incident_timestamp is None
        assert isinstance(record.check_time, datetime)

    def test_service_record_to_dict(self):
        """测试服务记录序列化"""
        incident = datetime(2026, 1, 1, 8, 30)
        record = ServiceHealthRecord(
            service_name='Users',
            base_url='http://users',
            status=HealthStatus.UNHEALTHY,
            response_time_ms=5000,
            error_message='请求超时',
            last_incident_timestamp=incident,
            check_time=datetime(2026, 1, 1, 9, 0)
        )

        data = record.to_dict()
        assert data['status'] == 'Unhealthy'
        assert data['last_incident_timestamp'] == '2026-01-01T08:30:00'
        assert data['check_time'] == '2026-01-01T09:00:00'

    def test_dependency_record_to_dict(self):
        """测试依赖记录序列化"""
        record = DependencyHealthRecord(
            name='FileStorage',
            kind=DependencyType.FILE_STORAGE,
            status=HealthStatus.HEALTHY,
            additional_info={'UsagePercent': 42.0}
        )

        data = record.to_dict()
        assert data['kind'] == 'FileStorage'
        assert data['additional_info'] == {'UsagePercent': 42.0}
        assert data['last_incident_timestamp'] is None

    def test_system_health_to_dict(self):
        """测试系统健康快照序列化"""
        health = SystemHealthCheck(
            services=[ServiceHealthRecord(service_name='A', base_url='http://a')],
            overall_status=SystemHealthStatus.DEGRADED
        )

        data = health.to_dict()
        assert data['overall_status'] == 'Degraded'
        assert len(data['services']) == 1
        assert data['dependencies'] == []


class TestMetricsModels:
    """测试指标模型"""

    def test_metric_sample_is_immutable(self):
        """测试指标样本不可变"""
        sample = MetricSample('Users', 'GET /api/users', 12.5, True)

        with pytest.raises(Exception):
            sample.response_time_ms = 1.0

    def test_summary_to_dict_includes_endpoints(self):
        """测试汇总序列化包含端点细分"""
        summary = ServiceMetricsSummary(
            service_name='Users',
            request_count=2,
            endpoints={'GET /a': EndpointMetrics('GET /a', 2, 10.0, 50.0)}
        )

        data = summary.to_dict()
        assert data['endpoints']['GET /a']['error_rate'] == 50.0
        assert data['window_truncated'] is False

    def test_system_metrics_to_dict(self):
        """测试系统指标序列化"""
        metrics = SystemMetrics(collection_period=timedelta(minutes=5))

        data = metrics.to_dict()
        assert data['collection_period_seconds'] == 300
        assert data['system_resources']['cpu_usage_percent'] == 0.0
        assert data['message_queue_metrics']['queue_name'] == 'default'


class TestAlertModels:
    """测试告警模型"""

    def test_severity_rank(self):
        """测试告警级别排序权重"""
        assert AlertSeverity.CRITICAL.rank > AlertSeverity.WARNING.rank > AlertSeverity.INFO.rank

    def test_alert_to_dict(self):
        """测试告警序列化"""
        alert = Alert(type='Service', title='服务宕机: A', message='A 当前不健康',
                      severity=AlertSeverity.CRITICAL)

        data = alert.to_dict()
        assert data['severity'] == 'Critical'
        assert data['is_read'] is False

    def test_thresholds_defaults(self):
        """测试默认阈值"""
        thresholds = AlertThresholds()

        assert thresholds.error_rate_threshold == 5.0
        assert thresholds.response_time_threshold_ms == 2000.0
        assert thresholds.disk_usage_threshold == 90.0

    def test_thresholds_from_dict_ignores_unknown_keys(self):
        """测试从字典创建阈值时忽略未知键"""
        thresholds = AlertThresholds.from_dict({'error_rate_threshold': 1.5, 'unknown': 3})

        assert thresholds.error_rate_threshold == 1.5
        assert thresholds.cpu_usage_threshold == 80.0

    def test_thresholds_from_none(self):
        """测试空配置使用默认阈值"""
        assert AlertThresholds.from_dict(None) == AlertThresholds()
