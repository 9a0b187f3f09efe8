"""请求拦截中间件

记录管理接口每个请求的耗时和成败，写入 MetricsStore。
"""

import time
from typing import Awaitable, Callable

from aiohttp import web

from ..services.metrics_store import MetricsStore
from ..utils.log_manager import get_logger

# 监控端点自身不记录，避免反馈回路
MONITORING_PATHS = ('/health', '/status', '/metrics')
SLOW_REQUEST_MS = 1000

Handler = Callable[[web.Request], Awaitable[web.StreamResponse]]

logger = get_logger('request_interceptor')


def is_monitoring_path(path: str) -> bool:
    return any(marker in path for marker in MONITORING_PATHS)


def endpoint_key(request: web.Request) -> str:
    """端点标识，优先使用路由模板以避免路径参数造成的基数膨胀"""
    resource = getattr(request.match_info.route, 'resource', None)
    path = resource.canonical if resource is not None else request.path
    return f"{request.method} {path}"


def create_request_interceptor(store: MetricsStore, service_name: str = 'Admin',
                               slow_request_ms: float = SLOW_REQUEST_MS):
    """
    创建请求拦截中间件

    Args:
        store: 指标存储
        service_name: 记录样本时使用的服务名称
        slow_request_ms: 慢请求告警阈值（毫秒）

    Returns:
        aiohttp 中间件
    """

    @web.middleware
    async def request_interceptor(request: web.Request, handler: Handler) -> web.StreamResponse:
        if is_monitoring_path(request.path):
            return await handler(request)

        endpoint = endpoint_key(request)
        start_time = time.perf_counter()
        status_code = 500

        try:
            response = await handler(request)
            status_code = response.status
            return response
        except web.HTTPException as e:
            status_code = e.status
            raise
        except Exception as e:
            logger.error(f"处理请求出错: {request.method} {request.path}: {e}", exc_info=True)
            raise
        finally:
            elapsed_ms = (time.perf_counter() - start_time) * 1000
            store.record(service_name, endpoint, elapsed_ms, status_code < 400)

            if elapsed_ms > slow_request_ms:
                logger.warning(
                    f"慢请求: {request.method} {request.path} 耗时 {elapsed_ms:.0f}ms")

    return request_interceptor
