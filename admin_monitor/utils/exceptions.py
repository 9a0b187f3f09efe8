"""自定义异常类

探测器内部使用探测异常来区分失败类型，但这些异常不会逃逸出探测器：
它们最终都被转换为带有 error_message 的健康记录。
"""

import traceback
from enum import Enum
from typing import Optional, Dict, Any
from datetime import datetime


class ErrorCode(Enum):
    """错误代码枚举"""
    # 通用错误 (1000-1999)
    UNKNOWN_ERROR = 1000
    INITIALIZATION_ERROR = 1001
    VALIDATION_ERROR = 1002

    # 配置错误 (2000-2999)
    CONFIG_FILE_NOT_FOUND = 2000
    CONFIG_PARSE_ERROR = 2001
    CONFIG_VALIDATION_ERROR = 2002
    CONFIG_RELOAD_ERROR = 2003
    CONFIGURATION_MISSING = 2004

    # 探测错误 (3000-3999)
    CHECKER_INITIALIZATION_ERROR = 3000
    CONNECTION_ERROR = 3001
    TIMEOUT_ERROR = 3002
    INVALID_RESPONSE = 3006
    DEPENDENCY_UNAVAILABLE = 3007

    # 指标错误 (5000-5999)
    METRICS_STORE_ERROR = 5000


class MonitorError(Exception):
    """监控系统基础异常类"""

    def __init__(
        self,
        message: str,
        error_code: ErrorCode = ErrorCode.UNKNOWN_ERROR,
        details: Optional[Dict[str, Any]] = None,
        cause: Optional[Exception] = None,
        recoverable: bool = True
    ):
        super().__init__(message)
        self.message = message
        self.error_code = error_code
        self.details = details or {}
        self.cause = cause
        self.recoverable = recoverable
        self.timestamp = datetime.now()

    def to_dict(self) -> Dict[str, Any]:
        """将异常转换为字典格式"""
        return {
            'error_code': self.error_code.value,
            'error_name': self.error_code.name,
            'message': self.message,
            'details': self.details,
            'recoverable': self.recoverable,
            'timestamp': self.timestamp.isoformat(),
            'cause': str(self.cause) if self.cause else None,
            'traceback': traceback.format_exc() if self.cause else None
        }

    def format_error(self) -> str:
        """格式化错误信息"""
        error_msg = f"[{self.error_code.name}] {self.message}"
        if self.details:
            details_str = ", ".join([f"{k}={v}" for k, v in self.details.items()])
            error_msg += f" (详情: {details_str})"
        if self.cause:
            error_msg += f" (原因: {str(self.cause)})"
        return error_msg


class ConfigError(MonitorError):
    """配置相关异常"""

    def __init__(
        self,
        message: str,
        error_code: ErrorCode = ErrorCode.CONFIG_VALIDATION_ERROR,
        config_path: Optional[str] = None,
        **kwargs
    ):
        details = kwargs.pop('details', {})
        if config_path:
            details['config_path'] = config_path
        super().__init__(message, error_code, details, **kwargs)


class CheckerError(MonitorError):
    """健康检查器相关异常"""

    def __init__(
        self,
        message: str,
        error_code: ErrorCode = ErrorCode.CONNECTION_ERROR,
        target_name: Optional[str] = None,
        **kwargs
    ):
        details = kwargs.pop('details', {})
        if target_name:
            details['target_name'] = target_name
        super().__init__(message, error_code, details, **kwargs)


class ProbeTimeoutError(CheckerError):
    """探测超时"""

    def __init__(self, message: str, **kwargs):
        super().__init__(message, ErrorCode.TIMEOUT_ERROR, **kwargs)


class ProbeConnectionError(CheckerError):
    """无法建立连接"""

    def __init__(self, message: str, **kwargs):
        super().__init__(message, ErrorCode.CONNECTION_ERROR, **kwargs)


class ProbeProtocolError(CheckerError):
    """响应状态码非2xx或响应内容异常"""

    def __init__(self, message: str, **kwargs):
        super().__init__(message, ErrorCode.INVALID_RESPONSE, **kwargs)


class DependencyUnavailableError(CheckerError):
    """依赖已连接但不可用（如查询失败）"""

    def __init__(self, message: str, **kwargs):
        super().__init__(message, ErrorCode.DEPENDENCY_UNAVAILABLE, **kwargs)


class ConfigurationMissingError(CheckerError):
    """依赖未配置，对应 Unknown 状态而非故障"""

    def __init__(self, message: str, **kwargs):
        super().__init__(message, ErrorCode.CONFIGURATION_MISSING, recoverable=False, **kwargs)


class MetricsStoreError(MonitorError):
    """指标存储结构性错误"""

    def __init__(self, message: str, **kwargs):
        super().__init__(message, ErrorCode.METRICS_STORE_ERROR, recoverable=False, **kwargs)
