"""后端服务HTTP健康检查器"""

import asyncio
import json
import time
from datetime import datetime
from typing import Dict, Any, Optional, Tuple

import aiohttp

from .base import BaseHealthChecker, classify_service_latency
from .factory import register_checker
from ..models.health_check import HealthStatus, ServiceHealthRecord
from ..utils.exceptions import ProbeConnectionError, ProbeProtocolError, ProbeTimeoutError


def is_unhealthy_payload(content: str) -> bool:
    """
    判断响应体是否自报告为不健康

    Args:
        content: 响应内容

    Returns:
        bool: JSON对象中 status 字段包含 "unhealthy"（不区分大小写）时为 True
    """
    if not content:
        return False
    try:
        payload = json.loads(content)
    except (ValueError, TypeError):
        return False
    if not isinstance(payload, dict):
        return False
    status = payload.get('status')
    return isinstance(status, str) and 'unhealthy' in status.lower()


def classify_service_response(status_code: int, response_time_ms: float,
                              content: str = '') -> Tuple[HealthStatus, Optional[str]]:
    """
    根据状态码、响应时间和响应内容对服务分级

    Returns:
        tuple: (健康状态, 错误信息)
    """
    if not 200 <= status_code < 300:
        return HealthStatus.UNHEALTHY, f"服务返回状态码: {status_code}"

    status = classify_service_latency(response_time_ms)
    error_message = None
    if status == HealthStatus.UNHEALTHY:
        error_message = f"响应时间过长: {response_time_ms:.0f}ms"

    if is_unhealthy_payload(content):
        status = HealthStatus.UNHEALTHY
        error_message = "服务自报告状态为 unhealthy"

    return status, error_message


@register_checker('service')
class ServiceHealthChecker(BaseHealthChecker):
    """后端服务健康检查器

    依次尝试 /health、/status、/，第一个完成的响应（无论状态码）即为结果，
    整个过程受 timeout 约束，不重试。
    """

    HEALTH_ENDPOINTS = ('/health', '/status', '/')

    def __init__(self, name: str, config: Dict[str, Any]):
        """
        初始化服务健康检查器

        Args:
            name: 服务名称
            config: 服务配置，包含 base_url 和可选的 timeout（秒）
        """
        super().__init__(name, config)
        self.base_url = str(config.get('base_url', '')).rstrip('/')

    def validate_config(self) -> bool:
        """
        验证服务配置

        Returns:
            bool: 配置是否有效
        """
        if not self.base_url.startswith(('http://', 'https://')):
            self.logger.error(f"服务 {self.name} 的地址无效: {self.base_url}")
            return False

        timeout = self.get_timeout()
        if not isinstance(timeout, (int, float)) or timeout <= 0:
            self.logger.error(f"服务 {self.name} 的超时时间无效: {timeout}")
            return False

        return True

    @property
    def timeout_sentinel_ms(self) -> float:
        """连接失败或超时时记录的响应时间"""
        return self.get_timeout() * 1000

    async def _probe_endpoints(self) -> Tuple[int, str]:
        """
        依次请求候选端点

        Returns:
            tuple: (状态码, 响应内容)，只返回2xx响应

        Raises:
            ProbeTimeoutError: 请求超时
            ProbeProtocolError: 第一个完成的响应状态码不是2xx
            ProbeConnectionError: 所有候选端点都无法连接
        """
        timeout = aiohttp.ClientTimeout(total=self.get_timeout())
        last_error: Optional[Exception] = None

        async with aiohttp.ClientSession(timeout=timeout) as session:
            for endpoint in self.HEALTH_ENDPOINTS:
                url = f"{self.base_url}{endpoint}"
                try:
                    async with session.get(url) as response:
                        self.logger.debug(f"{url} 返回状态码 {response.status}")
                        if not 200 <= response.status < 300:
                            raise ProbeProtocolError(
                                f"服务返回状态码: {response.status}",
                                target_name=self.name,
                                details={'url': url, 'status_code': response.status})
                        return response.status, await response.text(errors='replace')
                except asyncio.TimeoutError:
                    raise ProbeTimeoutError(f"请求 {url} 超时", target_name=self.name)
                except aiohttp.ClientError as e:
                    self.logger.debug(f"请求 {url} 失败: {e}")
                    last_error = e

        raise ProbeConnectionError(f"连接失败: {last_error}", target_name=self.name)

    async def check_health(self) -> ServiceHealthRecord:
        """
        执行服务健康检查

        Returns:
            ServiceHealthRecord: 健康检查结果，不会抛出异常
        """
        record = ServiceHealthRecord(
            service_name=self.name,
            base_url=self.base_url,
            check_time=datetime.now()
        )
        start_time = time.time()

        try:
            status_code, content = await asyncio.wait_for(
                self._probe_endpoints(), timeout=self.get_timeout())
            record.response_time_ms = self._elapsed_ms(start_time)
            record.status, record.error_message = classify_service_response(
                status_code, record.response_time_ms, content)

        except (asyncio.TimeoutError, ProbeTimeoutError):
            record.status = HealthStatus.UNHEALTHY
            record.error_message = "请求超时"
            record.response_time_ms = self.timeout_sentinel_ms
        except ProbeProtocolError as e:
            record.status = HealthStatus.UNHEALTHY
            record.error_message = e.message
            record.response_time_ms = self._elapsed_ms(start_time)
        except ProbeConnectionError as e:
            record.status = HealthStatus.UNHEALTHY
            record.error_message = e.message
            record.response_time_ms = self.timeout_sentinel_ms
        except Exception as e:
            record.status = HealthStatus.UNHEALTHY
            record.error_message = f"服务健康检查异常: {e}"
            record.response_time_ms = self._elapsed_ms(start_time)
            self.logger.error(f"检查服务 {self.name} 时发生异常: {e}", exc_info=True)

        self._stamp_incident(record)

        if record.status == HealthStatus.UNHEALTHY:
            self.logger.warning(
                f"服务 {self.name} 不健康，耗时: {record.response_time_ms:.0f}ms，"
                f"错误: {record.error_message}")
        else:
            self.logger.debug(
                f"服务 {self.name} 状态: {record.status.value}，"
                f"耗时: {record.response_time_ms:.0f}ms")

        return record
