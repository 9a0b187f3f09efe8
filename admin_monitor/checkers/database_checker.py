"""数据库健康检查器"""

import asyncio
import time

import aiomysql

from .base import DependencyHealthChecker, classify_dependency_latency
from .factory import register_checker
from ..models.health_check import DependencyType, DependencyHealthRecord, HealthStatus
from ..utils.exceptions import (
    ProbeConnectionError, DependencyUnavailableError, ConfigurationMissingError
)


@register_checker('database')
class DatabaseHealthChecker(DependencyHealthChecker):
    """数据库健康检查器

    先建立连接，再执行 SELECT 1。连接失败为不健康；
    连接成功但查询失败或往返超过500ms为降级。
    """

    kind = DependencyType.DATABASE
    display_name = 'Database'

    def validate_config(self) -> bool:
        """
        验证数据库配置，未配置 host 视为有效（结果为 Unknown）

        Returns:
            bool: 配置是否有效
        """
        port = self.config.get('port', 3306)
        if not isinstance(port, int) or port <= 0 or port > 65535:
            self.logger.error(f"数据库端口号无效: {port}")
            return False

        username = self.config.get('username')
        if username is not None and not isinstance(username, str):
            self.logger.error(f"数据库用户名类型无效: {type(username)}")
            return False

        return True

    async def _connect(self) -> aiomysql.Connection:
        """
        创建新的数据库连接

        Raises:
            ConfigurationMissingError: 未配置数据库
            ProbeConnectionError: 连接失败
        """
        host = self.config.get('host')
        if not host:
            raise ConfigurationMissingError("数据库未配置", target_name=self.name)

        timeout = self.get_timeout()
        try:
            return await asyncio.wait_for(
                aiomysql.connect(
                    host=host,
                    port=self.config.get('port', 3306),
                    user=self.config.get('username', 'root'),
                    password=self.config.get('password', ''),
                    db=self.config.get('database', ''),
                    connect_timeout=timeout,
                    autocommit=True
                ),
                timeout=timeout
            )
        except asyncio.TimeoutError:
            raise ProbeConnectionError("连接数据库超时", target_name=self.name)
        except Exception as e:
            raise ProbeConnectionError(f"无法连接数据库: {e}", target_name=self.name, cause=e)

    async def _run_test_query(self, connection: aiomysql.Connection) -> None:
        """
        执行测试查询

        Raises:
            DependencyUnavailableError: 查询失败或结果异常
        """
        try:
            async with connection.cursor() as cursor:
                await cursor.execute("SELECT 1")
                result = await cursor.fetchone()
        except Exception as e:
            raise DependencyUnavailableError(
                f"数据库已连接但查询失败: {e}", target_name=self.name, cause=e)

        if not result or result[0] != 1:
            raise DependencyUnavailableError(
                f"数据库已连接但查询结果异常: {result}", target_name=self.name)

    async def check_health(self) -> DependencyHealthRecord:
        """
        执行数据库健康检查

        Returns:
            DependencyHealthRecord: 健康检查结果，不会抛出异常
        """
        record = self._new_record()
        record.additional_info['DatabaseName'] = self.config.get('database') or 'Unknown'
        start_time = time.time()
        connection = None

        try:
            connection = await self._connect()
            await self._run_test_query(connection)
            record.response_time_ms = self._elapsed_ms(start_time)
            record.status = classify_dependency_latency(record.response_time_ms)

        except ConfigurationMissingError as e:
            record.status = HealthStatus.UNKNOWN
            record.error_message = e.message
            self.logger.debug(e.message)
        except DependencyUnavailableError as e:
            record.response_time_ms = self._elapsed_ms(start_time)
            record.status = HealthStatus.DEGRADED
            record.error_message = e.message
            self.logger.warning(e.message)
        except ProbeConnectionError as e:
            record.response_time_ms = self._elapsed_ms(start_time)
            self._fail(record, e.message)
            self.logger.error(e.message)
        except Exception as e:
            record.response_time_ms = self._elapsed_ms(start_time)
            self._fail(record, f"数据库健康检查异常: {e}")
            self.logger.error(f"数据库健康检查异常: {e}", exc_info=True)
        finally:
            if connection is not None:
                try:
                    connection.close()
                except Exception as e:
                    self.logger.warning(f"关闭数据库连接时出错: {e}")

        return self._stamp_incident(record)
