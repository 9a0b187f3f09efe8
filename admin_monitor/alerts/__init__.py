"""告警模块"""

from .evaluator import evaluate_alerts, sort_alerts
from .service import AlertService

__all__ = ['evaluate_alerts', 'sort_alerts', 'AlertService']
