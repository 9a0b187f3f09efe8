"""管理控制台的健康、指标与告警模块"""

__version__ = "1.0.0"
