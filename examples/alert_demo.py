#!/usr/bin/env python3
"""
告警评估演示

展示监控平面的指标和告警流程，包括：
1. 向指标存储写入模拟请求
2. 汇总统计周期内的指标
3. 结合健康快照评估告警
"""

import random
from datetime import datetime, timedelta

from admin_monitor.alerts.evaluator import evaluate_alerts
from admin_monitor.models.alert import AlertThresholds
from admin_monitor.models.health_check import (
    HealthStatus, DependencyType, ServiceHealthRecord, DependencyHealthRecord,
    SystemHealthCheck
)
from admin_monitor.services.health_aggregator import determine_overall_status
from admin_monitor.services.metrics_store import MetricsStore
from admin_monitor.services.metrics_summarizer import MetricsSummarizer


def demo_alerts():
    """演示告警评估"""
    print("🚨 告警评估演示")
    print("=" * 50)

    print("📋 1. 写入模拟请求")
    print("-" * 30)
    store = MetricsStore(capacity=1000)
    now = datetime.now()
    for i in range(500):
        timestamp = now - timedelta(seconds=random.randint(0, 600))
        store.record('Users', 'GET /api/users', random.uniform(20, 200), random.random() > 0.02,
                     timestamp)
        store.record('Payments', 'POST /api/payments', random.uniform(800, 3000),
                     random.random() > 0.12, timestamp)
    print(f"   - Users 样本数: {store.sample_count('Users')}")
    print(f"   - Payments 样本数: {store.sample_count('Payments')}")
    print()

    print("📊 2. 指标汇总")
    print("-" * 30)
    summarizer = MetricsSummarizer(store)
    metrics = summarizer.get_system_metrics(timedelta(minutes=15))
    for summary in metrics.service_metrics:
        print(f"   {summary.service_name}: 请求 {summary.request_count}, "
              f"错误率 {summary.error_rate:.2f}%, 平均 {summary.average_response_time_ms:.0f}ms, "
              f"P95 {summary.p95_response_time_ms:.0f}ms, P99 {summary.p99_response_time_ms:.0f}ms")
    print()

    print("🔍 3. 告警评估")
    print("-" * 30)
    services = [
        ServiceHealthRecord('Users', 'http://users', HealthStatus.HEALTHY, 120),
        ServiceHealthRecord('Bookings', 'http://bookings', HealthStatus.DEGRADED, 900),
        ServiceHealthRecord('Payments', 'http://payments', HealthStatus.UNHEALTHY, 5000,
                            error_message='请求超时', last_incident_timestamp=now),
    ]
    storage = DependencyHealthRecord(
        'FileStorage', DependencyType.FILE_STORAGE, HealthStatus.UNHEALTHY,
        additional_info={'UsagePercent': 96.0})
    health = SystemHealthCheck(
        services=services,
        dependencies=[storage],
        overall_status=determine_overall_status(
            [record.status for record in [*services, storage]])
    )
    print(f"整体状态: {health.overall_status.value}")

    for alert in evaluate_alerts(health, metrics, AlertThresholds()):
        emoji = {"Critical": "❌", "Warning": "⚠️", "Info": "ℹ️"}[alert.severity.value]
        print(f"   {emoji} [{alert.severity.value}] {alert.type} - {alert.title}: {alert.message}")

    print("\n🎉 告警评估演示完成!")


if __name__ == "__main__":
    demo_alerts()
