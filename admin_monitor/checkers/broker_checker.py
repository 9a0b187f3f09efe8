"""消息代理健康检查器"""

import asyncio
import time

from .base import DependencyHealthChecker, classify_dependency_latency
from .factory import register_checker
from ..models.health_check import DependencyType, DependencyHealthRecord

DEFAULT_BROKER_PORT = 5672


@register_checker('message_broker')
class BrokerHealthChecker(DependencyHealthChecker):
    """消息代理健康检查器

    只做TCP连通性探测，不进行协议握手。
    """

    kind = DependencyType.MESSAGE_BROKER
    display_name = 'MessageBroker'

    def validate_config(self) -> bool:
        port = self.config.get('port', DEFAULT_BROKER_PORT)
        if not isinstance(port, int) or port <= 0 or port > 65535:
            self.logger.error(f"消息代理端口号无效: {port}")
            return False
        return True

    def get_timeout(self) -> float:
        return self.config.get('timeout', 3)

    async def check_health(self) -> DependencyHealthRecord:
        """
        执行消息代理健康检查

        Returns:
            DependencyHealthRecord: 健康检查结果，不会抛出异常
        """
        host = self.config.get('host', 'localhost')
        port = self.config.get('port', DEFAULT_BROKER_PORT)

        record = self._new_record()
        record.additional_info.update({'Host': host, 'Port': port})
        start_time = time.time()

        try:
            _, writer = await asyncio.wait_for(
                asyncio.open_connection(host, port), timeout=self.get_timeout())
            record.response_time_ms = self._elapsed_ms(start_time)
            record.status = classify_dependency_latency(record.response_time_ms)

            writer.close()
            try:
                await writer.wait_closed()
            except OSError as e:
                self.logger.debug(f"关闭消息代理连接时出错: {e}")

        except asyncio.TimeoutError:
            record.response_time_ms = self._elapsed_ms(start_time)
            self._fail(record, f"连接消息代理 {host}:{port} 超时")
            self.logger.error(record.error_message)
        except OSError as e:
            record.response_time_ms = self._elapsed_ms(start_time)
            self._fail(record, f"无法连接消息代理 {host}:{port}: {e}")
            self.logger.error(record.error_message)
        except Exception as e:
            record.response_time_ms = self._elapsed_ms(start_time)
            self._fail(record, f"消息代理健康检查异常: {e}")
            self.logger.error(record.error_message, exc_info=True)

        return self._stamp_incident(record)
