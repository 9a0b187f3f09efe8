"""健康检查相关的数据模型"""

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Dict, Any, Optional, List


class HealthStatus(Enum):
    """单个探测目标的健康状态"""
    HEALTHY = 'Healthy'
    DEGRADED = 'Degraded'
    UNHEALTHY = 'Unhealthy'
    UNKNOWN = 'Unknown'


class SystemHealthStatus(Enum):
    """系统整体健康状态"""
    HEALTHY = 'Healthy'
    DEGRADED = 'Degraded'
    UNHEALTHY = 'Unhealthy'
    CRITICAL = 'Critical'


class DependencyType(Enum):
    """基础设施依赖类型"""
    DATABASE = 'Database'
    MESSAGE_BROKER = 'MessageBroker'
    CACHE = 'Cache'
    FILE_STORAGE = 'FileStorage'


def _isoformat(value: Optional[datetime]) -> Optional[str]:
    return value.isoformat() if value else None


@dataclass
class ServiceHealthRecord:
    """后端服务健康检查结果"""
    service_name: str
    base_url: str
    status: HealthStatus = HealthStatus.UNKNOWN
    response_time_ms: float = 0.0
    error_message: Optional[str] = None
    last_incident_timestamp: Optional[datetime] = None
    check_time: datetime = field(default_factory=datetime.now)

    def to_dict(self) -> Dict[str, Any]:
        return {
            'service_name': self.service_name,
            'base_url': self.base_url,
            'status': self.status.value,
            'response_time_ms': self.response_time_ms,
            'error_message': self.error_message,
            'last_incident_timestamp': _isoformat(self.last_incident_timestamp),
            'check_time': self.check_time.isoformat()
        }


@dataclass
class DependencyHealthRecord:
    """基础设施依赖健康检查结果

    不同依赖类型的附加字段（如磁盘使用率）放在 additional_info 中。
    """
    name: str
    kind: DependencyType
    status: HealthStatus = HealthStatus.UNKNOWN
    response_time_ms: float = 0.0
    error_message: Optional[str] = None
    last_incident_timestamp: Optional[datetime] = None
    check_time: datetime = field(default_factory=datetime.now)
    additional_info: Dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        return {
            'name': self.name,
            'kind': self.kind.value,
            'status': self.status.value,
            'response_time_ms': self.response_time_ms,
            'error_message': self.error_message,
            'last_incident_timestamp': _isoformat(self.last_incident_timestamp),
            'check_time': self.check_time.isoformat(),
            'additional_info': dict(self.additional_info)
        }


@dataclass
class SystemHealthCheck:
    """一次完整健康检查的快照"""
    check_time: datetime = field(default_factory=datetime.now)
    services: List[ServiceHealthRecord] = field(default_factory=list)
    dependencies: List[DependencyHealthRecord] = field(default_factory=list)
    overall_status: SystemHealthStatus = SystemHealthStatus.HEALTHY
    total_response_time_ms: float = 0.0

    def to_dict(self) -> Dict[str, Any]:
        return {
            'check_time': self.check_time.isoformat(),
            'services': [service.to_dict() for service in self.services],
            'dependencies': [dependency.to_dict() for dependency in self.dependencies],
            'overall_status': self.overall_status.value,
            'total_response_time_ms': self.total_response_time_ms
        }
