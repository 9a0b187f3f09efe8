"""缓存健康检查器"""

import asyncio
import time
from typing import Optional

import redis.asyncio as redis

from .base import DependencyHealthChecker, classify_dependency_latency
from .factory import register_checker
from ..models.health_check import DependencyType, DependencyHealthRecord, HealthStatus


@register_checker('cache')
class CacheHealthChecker(DependencyHealthChecker):
    """缓存健康检查器

    缓存是可选依赖，未配置连接串时结果为 Unknown，不视为故障。
    """

    kind = DependencyType.CACHE
    display_name = 'Cache'

    def validate_config(self) -> bool:
        connection_string = self.config.get('connection_string')
        return connection_string is None or isinstance(connection_string, str)

    def _get_url(self) -> Optional[str]:
        """连接串兼容 host:port 简写"""
        connection_string = (self.config.get('connection_string') or '').strip()
        if not connection_string:
            return None
        if '://' not in connection_string:
            connection_string = f'redis://{connection_string}'
        return connection_string

    async def check_health(self) -> DependencyHealthRecord:
        """
        执行缓存健康检查

        Returns:
            DependencyHealthRecord: 健康检查结果，不会抛出异常
        """
        record = self._new_record()
        url = self._get_url()
        if url is None:
            record.status = HealthStatus.UNKNOWN
            record.error_message = "缓存未配置"
            return self._stamp_incident(record)

        start_time = time.time()
        client = None

        try:
            client = redis.from_url(
                url,
                socket_timeout=self.get_timeout(),
                socket_connect_timeout=self.get_timeout()
            )
            ping_result = await asyncio.wait_for(client.ping(), timeout=self.get_timeout())
            record.response_time_ms = self._elapsed_ms(start_time)

            if ping_result:
                record.status = classify_dependency_latency(record.response_time_ms)
            else:
                self._fail(record, "PING命令返回False")

        except asyncio.TimeoutError:
            record.response_time_ms = self._elapsed_ms(start_time)
            self._fail(record, "缓存连接超时")
        except redis.TimeoutError as e:
            record.response_time_ms = self._elapsed_ms(start_time)
            self._fail(record, f"缓存连接超时: {e}")
        except redis.AuthenticationError as e:
            record.response_time_ms = self._elapsed_ms(start_time)
            self._fail(record, f"缓存认证失败: {e}")
        except redis.ConnectionError as e:
            record.response_time_ms = self._elapsed_ms(start_time)
            self._fail(record, f"缓存连接错误: {e}")
        except Exception as e:
            record.response_time_ms = self._elapsed_ms(start_time)
            self._fail(record, f"缓存健康检查异常: {e}")
            self.logger.error(record.error_message, exc_info=True)
        finally:
            if client is not None:
                try:
                    await client.aclose()
                except Exception as e:
                    self.logger.warning(f"关闭缓存连接时出错: {e}")

        if record.status == HealthStatus.UNHEALTHY:
            self.logger.error(f"缓存不健康: {record.error_message}")

        return self._stamp_incident(record)
