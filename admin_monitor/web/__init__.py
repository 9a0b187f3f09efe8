"""管理接口模块"""

from .app import create_app
from .middleware import create_request_interceptor, is_monitoring_path

__all__ = ['create_app', 'create_request_interceptor', 'is_monitoring_path']
