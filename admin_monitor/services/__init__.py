"""服务模块"""

from .config_manager import ConfigManager
from .config_watcher import ConfigWatcher
from .health_aggregator import HealthAggregator, determine_overall_status
from .metrics_store import MetricsStore
from .metrics_summarizer import MetricsSummarizer

__all__ = ['ConfigManager', 'ConfigWatcher', 'HealthAggregator', 'determine_overall_status',
           'MetricsStore', 'MetricsSummarizer']
