"""管理接口应用

为外部仪表盘提供只读的健康、指标和告警数据。
"""

import asyncio
import math
from datetime import timedelta
from typing import Optional

from aiohttp import web

from .middleware import create_request_interceptor
from ..alerts.service import AlertService
from ..services.health_aggregator import HealthAggregator
from ..services.metrics_store import MetricsStore
from ..services.metrics_summarizer import MetricsSummarizer
from ..utils.log_manager import get_logger

AGGREGATOR_KEY = web.AppKey('aggregator', HealthAggregator)
SUMMARIZER_KEY = web.AppKey('summarizer', MetricsSummarizer)
ALERT_SERVICE_KEY = web.AppKey('alert_service', AlertService)
PERIOD_KEY = web.AppKey('metrics_period_minutes', float)

# 统计周期上限（分钟），30天
MAX_PERIOD_MINUTES = 60 * 24 * 30

logger = get_logger('web')


def _period_from_query(request: web.Request, default_minutes: float) -> timedelta:
    """解析 ?minutes=N 参数"""
    raw_value = request.query.get('minutes')
    if raw_value is None:
        return timedelta(minutes=default_minutes)
    try:
        minutes = float(raw_value)
    except ValueError:
        raise web.HTTPBadRequest(text=f"minutes 参数无效: {raw_value}")
    if not math.isfinite(minutes) or minutes <= 0:
        raise web.HTTPBadRequest(text=f"minutes 参数必须为正数: {raw_value}")
    if minutes > MAX_PERIOD_MINUTES:
        raise web.HTTPBadRequest(text=f"minutes 参数不能超过 {MAX_PERIOD_MINUTES}: {raw_value}")
    return timedelta(minutes=minutes)


async def get_system_health(request: web.Request) -> web.Response:
    health = await request.app[AGGREGATOR_KEY].check_all()
    return web.json_response(health.to_dict())


async def get_service_health(request: web.Request) -> web.Response:
    service_name = request.match_info['name']
    record = await request.app[AGGREGATOR_KEY].check_service(service_name)
    if record is None:
        raise web.HTTPNotFound(text=f"未配置的服务: {service_name}")
    return web.json_response(record.to_dict())


async def get_system_metrics(request: web.Request) -> web.Response:
    period = _period_from_query(request, request.app[PERIOD_KEY])
    metrics = await asyncio.get_running_loop().run_in_executor(
        None, request.app[SUMMARIZER_KEY].get_system_metrics, period)
    return web.json_response(metrics.to_dict())


async def get_service_metrics(request: web.Request) -> web.Response:
    period = _period_from_query(request, request.app[PERIOD_KEY])
    summary = request.app[SUMMARIZER_KEY].summarize(request.match_info['name'], period)
    return web.json_response(summary.to_dict())


async def get_alerts(request: web.Request) -> web.Response:
    period = _period_from_query(request, request.app[PERIOD_KEY])
    alerts = await request.app[ALERT_SERVICE_KEY].get_active_alerts(period)
    return web.json_response([alert.to_dict() for alert in alerts])


async def create_alert(request: web.Request) -> web.Response:
    """手动创建告警，请求体包含 type、title、message、severity"""
    try:
        payload = await request.json()
    except ValueError:
        raise web.HTTPBadRequest(text="请求体必须是JSON")

    if not isinstance(payload, dict):
        raise web.HTTPBadRequest(text="请求体必须是JSON对象")

    missing = [key for key in ('type', 'title', 'message') if not payload.get(key)]
    if missing:
        raise web.HTTPBadRequest(text=f"缺少字段: {', '.join(missing)}")

    try:
        alert = request.app[ALERT_SERVICE_KEY].create_alert(
            payload['type'], payload['title'], payload['message'],
            payload.get('severity', 'Info'))
    except ValueError:
        raise web.HTTPBadRequest(text=f"无效的告警级别: {payload.get('severity')}")

    return web.json_response(alert.to_dict(), status=201)


def create_app(aggregator: HealthAggregator,
               store: MetricsStore,
               summarizer: Optional[MetricsSummarizer] = None,
               alert_service: Optional[AlertService] = None,
               service_name: str = 'Admin',
               metrics_period_minutes: float = 15) -> web.Application:
    """
    创建管理接口应用

    Args:
        aggregator: 健康聚合器
        store: 指标存储，同时供请求拦截中间件写入
        summarizer: 指标汇总器，默认基于 store 创建
        alert_service: 告警服务，默认使用内置阈值
        service_name: 本服务在指标中的名称
        metrics_period_minutes: 默认指标统计周期（分钟）

    Returns:
        web.Application: aiohttp 应用
    """
    summarizer = summarizer or MetricsSummarizer(store)
    alert_service = alert_service or AlertService(aggregator, summarizer)

    app = web.Application(middlewares=[create_request_interceptor(store, service_name)])
    app[AGGREGATOR_KEY] = aggregator
    app[SUMMARIZER_KEY] = summarizer
    app[ALERT_SERVICE_KEY] = alert_service
    app[PERIOD_KEY] = float(metrics_period_minutes)

    app.router.add_get('/health', get_system_health)
    app.router.add_get('/health/services/{name}', get_service_health)
    app.router.add_get('/metrics', get_system_metrics)
    app.router.add_get('/metrics/services/{name}', get_service_metrics)
    app.router.add_get('/alerts', get_alerts)
    app.router.add_post('/api/alerts', create_alert)

    logger.info("管理接口应用已创建")
    return app
