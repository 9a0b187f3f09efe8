"""告警相关的数据模型"""

from dataclasses import dataclass, field, asdict
from datetime import datetime
from enum import Enum
from typing import Dict, Any


class AlertSeverity(Enum):
    """告警级别"""
    INFO = 'Info'
    WARNING = 'Warning'
    CRITICAL = 'Critical'

    @property
    def rank(self) -> int:
        """排序权重，数值越大越严重"""
        return _SEVERITY_RANK[self]


_SEVERITY_RANK = {
    AlertSeverity.INFO: 1,
    AlertSeverity.WARNING: 2,
    AlertSeverity.CRITICAL: 3,
}


@dataclass
class Alert:
    """告警消息模型

    每次评估都重新生成，跨调用没有身份标识。
    """
    type: str  # "Service", "Dependency", "Resource", "Performance", "Database"
    title: str
    message: str
    severity: AlertSeverity
    created_at: datetime = field(default_factory=datetime.now)
    is_read: bool = False

    def to_dict(self) -> Dict[str, Any]:
        return {
            'type': self.type,
            'title': self.title,
            'message': self.message,
            'severity': self.severity.value,
            'created_at': self.created_at.isoformat(),
            'is_read': self.is_read
        }


@dataclass(frozen=True)
class AlertThresholds:
    """告警阈值配置"""
    error_rate_threshold: float = 5.0
    response_time_threshold_ms: float = 2000.0
    disk_usage_threshold: float = 90.0
    disk_critical_threshold: float = 95.0
    cpu_usage_threshold: float = 80.0
    cpu_critical_threshold: float = 90.0
    memory_usage_threshold: float = 80.0
    memory_critical_threshold: float = 90.0
    slow_query_threshold: int = 10

    @classmethod
    def from_dict(cls, config: Dict[str, Any]) -> 'AlertThresholds':
        """从配置字典创建，未知键被忽略"""
        known = {name for name in cls.__dataclass_fields__}
        return cls(**{key: value for key, value in (config or {}).items() if key in known})

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)
