"""告警服务

把健康聚合器、指标汇总器和告警评估串联起来，供管理接口调用。
告警阈值在每次评估时从配置读取，配置热更新后立即生效。
"""

import asyncio
from datetime import datetime, timedelta
from typing import Callable, List

from .evaluator import evaluate_alerts
from ..models.alert import Alert, AlertSeverity, AlertThresholds
from ..services.health_aggregator import HealthAggregator
from ..services.metrics_summarizer import MetricsSummarizer, DEFAULT_PERIOD
from ..utils.log_manager import get_logger


class AlertService:
    """告警服务"""

    def __init__(self,
                 aggregator: HealthAggregator,
                 summarizer: MetricsSummarizer,
                 thresholds_provider: Callable[[], AlertThresholds] = AlertThresholds):
        """
        初始化告警服务

        Args:
            aggregator: 健康聚合器
            summarizer: 指标汇总器
            thresholds_provider: 返回当前阈值的可调用对象，如 ConfigManager.get_alert_thresholds
        """
        self.aggregator = aggregator
        self.summarizer = summarizer
        self.thresholds_provider = thresholds_provider
        self.logger = get_logger('alert_service')

    async def get_active_alerts(self, period: timedelta = DEFAULT_PERIOD) -> List[Alert]:
        """
        重新检查系统并返回当前告警

        Args:
            period: 指标统计周期

        Returns:
            List[Alert]: 排好序的告警列表
        """
        health = await self.aggregator.check_all()
        # 资源采样包含阻塞的磁盘查询
        metrics = await asyncio.get_running_loop().run_in_executor(
            None, self.summarizer.get_system_metrics, period)
        return evaluate_alerts(health, metrics, self.thresholds_provider())

    async def check_and_log_alerts(self, period: timedelta = DEFAULT_PERIOD) -> List[Alert]:
        """
        评估告警并逐条记录日志

        通知发送和持久化由外部系统负责，这里只输出日志。

        Returns:
            List[Alert]: 当前告警，评估失败时为空列表
        """
        try:
            alerts = await self.get_active_alerts(period)
        except Exception as e:
            self.logger.error(f"检查告警时发生异常: {e}", exc_info=True)
            return []

        for alert in alerts:
            self.logger.warning(
                f"告警: {alert.type} - [{alert.severity.value}] {alert.title} - {alert.message}")
        return alerts

    def create_alert(self, alert_type: str, title: str, message: str,
                     severity: str = AlertSeverity.INFO.value) -> Alert:
        """
        手动创建告警

        Args:
            alert_type: 告警类型
            title: 标题
            message: 内容
            severity: 级别名称，Info / Warning / Critical

        Returns:
            Alert: 新建的告警

        Raises:
            ValueError: 级别名称无效
        """
        alert = Alert(
            type=alert_type,
            title=title,
            message=message,
            severity=AlertSeverity(severity),
            created_at=datetime.now()
        )
        self.logger.warning(f"手动创建告警: {alert.type} - {alert.title}")
        return alert
