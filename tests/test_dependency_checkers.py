"""测试基础设施依赖健康检查器"""

import asyncio
import socket
from unittest.mock import AsyncMock, MagicMock, Mock, patch

import pytest

from admin_monitor.checkers import cache_checker
from admin_monitor.checkers.broker_checker import BrokerHealthChecker
from admin_monitor.checkers.cache_checker import CacheHealthChecker
from admin_monitor.checkers.database_checker import DatabaseHealthChecker
from admin_monitor.checkers.storage_checker import StorageHealthChecker, classify_disk_usage
from admin_monitor.models.health_check import DependencyType, HealthStatus


def _unused_port() -> int:
    with socket.socket(socket.AF_INET, socket.SOCK_STREAM) as sock:
        sock.bind(('127.0.0.1', 0))
        return sock.getsockname()[1]


def _mock_connection(fetch_result=(1,), execute_error=None):
    """构造 aiomysql 连接模拟对象"""
    cursor = AsyncMock()
    cursor.fetchone.return_value = fetch_result
    if execute_error is not None:
        cursor.execute.side_effect = execute_error

    connection = MagicMock()
    connection.cursor.return_value.__aenter__.return_value = cursor
    return connection


class TestDatabaseHealthChecker:
    """测试数据库健康检查器"""

    CONFIG = {'host': 'db', 'port': 3306, 'username': 'monitor',
              'password': 'secret', 'database': 'admin'}

    def test_validate_config(self):
        assert DatabaseHealthChecker('database', self.CONFIG).validate_config()
        assert DatabaseHealthChecker('database', {}).validate_config()
        assert not DatabaseHealthChecker('database', {'port': 70000}).validate_config()
        assert not DatabaseHealthChecker('database', {'username': 123}).validate_config()

    @pytest.mark.asyncio
    async def test_healthy(self):
        """测试连接和查询都成功"""
        connection = _mock_connection()
        checker = DatabaseHealthChecker('database', self.CONFIG)

        with patch('admin_monitor.checkers.database_checker.aiomysql.connect',
                   new=AsyncMock(return_value=connection)) as mock_connect:
            record = await checker.check_health()

        assert record.status == HealthStatus.HEALTHY
        assert record.kind == DependencyType.DATABASE
        assert record.name == 'Database'
        assert record.additional_info['DatabaseName'] == 'admin'
        assert mock_connect.call_args.kwargs['host'] == 'db'
        connection.close.assert_called_once()

    @pytest.mark.asyncio
    async def test_connection_failure_is_unhealthy(self):
        """测试无法建立连接"""
        checker = DatabaseHealthChecker('database', self.CONFIG)

        with patch('admin_monitor.checkers.database_checker.aiomysql.connect',
                   new=AsyncMock(side_effect=OSError("Connection refused"))):
            record = await checker.check_health()

        assert record.status == HealthStatus.UNHEALTHY
        assert "无法连接数据库" in record.error_message
        assert record.last_incident_timestamp is not None

    @pytest.mark.asyncio
    async def test_query_failure_is_degraded(self):
        """测试连接成功但查询失败"""
        connection = _mock_connection(execute_error=RuntimeError("table locked"))
        checker = DatabaseHealthChecker('database', self.CONFIG)

        with patch('admin_monitor.checkers.database_checker.aiomysql.connect',
                   new=AsyncMock(return_value=connection)):
            record = await checker.check_health()

        assert record.status == HealthStatus.DEGRADED
        assert "查询失败" in record.error_message
        connection.close.assert_called_once()

    @pytest.mark.asyncio
    async def test_unexpected_result_is_degraded(self):
        """测试查询结果异常"""
        connection = _mock_connection(fetch_result=None)
        checker = DatabaseHealthChecker('database', self.CONFIG)

        with patch('admin_monitor.checkers.database_checker.aiomysql.connect',
                   new=AsyncMock(return_value=connection)):
            record = await checker.check_health()

        assert record.status == HealthStatus.DEGRADED

    @pytest.mark.asyncio
    async def test_not_configured_is_unknown(self):
        """测试未配置数据库"""
        checker = DatabaseHealthChecker('database', {})

        with patch('admin_monitor.checkers.database_checker.aiomysql.connect',
                   new=AsyncMock()) as mock_connect:
            record = await checker.check_health()

        assert record.status == HealthStatus.UNKNOWN
        assert record.error_message == "数据库未配置"
        assert record.additional_info['DatabaseName'] == 'Unknown'
        mock_connect.assert_not_called()


class TestBrokerHealthChecker:
    """测试消息代理健康检查器"""

    def test_validate_config(self):
        assert BrokerHealthChecker('message_broker', {'host': 'mq'}).validate_config()
        assert not BrokerHealthChecker('message_broker', {'port': '5672'}).validate_config()

    @pytest.mark.asyncio
    async def test_reachable_is_healthy(self):
        """测试端口可连接"""
        async def on_connect(reader, writer):
            writer.close()

        server = await asyncio.start_server(on_connect, '127.0.0.1', 0)
        port = server.sockets[0].getsockname()[1]
        try:
            checker = BrokerHealthChecker('message_broker', {'host': '127.0.0.1', 'port': port})
            record = await checker.check_health()
        finally:
            server.close()
            await server.wait_closed()

        assert record.status == HealthStatus.HEALTHY
        assert record.kind == DependencyType.MESSAGE_BROKER
        assert record.additional_info == {'Host': '127.0.0.1', 'Port': port}

    @pytest.mark.asyncio
    async def test_refused_is_unhealthy(self):
        """测试端口无法连接"""
        port = _unused_port()
        checker = BrokerHealthChecker('message_broker', {'host': '127.0.0.1', 'port': port})

        record = await checker.check_health()

        assert record.status == HealthStatus.UNHEALTHY
        assert f"127.0.0.1:{port}" in record.error_message

    @pytest.mark.asyncio
    async def test_timeout_is_unhealthy(self):
        """测试连接超时"""
        async def hang(*args, **kwargs):
            await asyncio.sleep(1)

        checker = BrokerHealthChecker('message_broker',
                                      {'host': 'mq', 'port': 5672, 'timeout': 0.05})
        with patch('admin_monitor.checkers.broker_checker.asyncio.open_connection', new=hang):
            record = await checker.check_health()

        assert record.status == HealthStatus.UNHEALTHY
        assert "超时" in record.error_message


class TestCacheHealthChecker:
    """测试缓存健康检查器"""

    @pytest.mark.asyncio
    async def test_ping_ok_is_healthy(self):
        """测试PING成功"""
        client = AsyncMock()
        client.ping.return_value = True
        checker = CacheHealthChecker('cache', {'connection_string': 'cache:6379'})

        with patch.object(cache_checker.redis, 'from_url', return_value=client) as mock_from_url:
            record = await checker.check_health()

        assert record.status == HealthStatus.HEALTHY
        assert record.kind == DependencyType.CACHE
        assert mock_from_url.call_args.args[0] == 'redis://cache:6379'
        client.aclose.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_connection_error_is_unhealthy(self):
        """测试连接错误"""
        client = AsyncMock()
        client.ping.side_effect = cache_checker.redis.ConnectionError("refused")
        checker = CacheHealthChecker('cache', {'connection_string': 'redis://cache:6379/0'})

        with patch.object(cache_checker.redis, 'from_url', return_value=client):
            record = await checker.check_health()

        assert record.status == HealthStatus.UNHEALTHY
        assert "缓存连接错误" in record.error_message
        client.aclose.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_ping_false_is_unhealthy(self):
        client = AsyncMock()
        client.ping.return_value = False
        checker = CacheHealthChecker('cache', {'connection_string': 'redis://cache'})

        with patch.object(cache_checker.redis, 'from_url', return_value=client):
            record = await checker.check_health()

        assert record.status == HealthStatus.UNHEALTHY

    @pytest.mark.asyncio
    async def test_not_configured_is_unknown(self):
        """测试未配置缓存"""
        checker = CacheHealthChecker('cache', {'connection_string': None})

        with patch.object(cache_checker.redis, 'from_url') as mock_from_url:
            record = await checker.check_health()

        assert record.status == HealthStatus.UNKNOWN
        assert record.error_message == "缓存未配置"
        mock_from_url.assert_not_called()


class TestStorageHealthChecker:
    """测试文件存储健康检查器"""

    def test_classify_disk_usage(self):
        assert classify_disk_usage(79.9) == HealthStatus.HEALTHY
        assert classify_disk_usage(80) == HealthStatus.DEGRADED
        assert classify_disk_usage(89.9) == HealthStatus.DEGRADED
        assert classify_disk_usage(90) == HealthStatus.UNHEALTHY

    @pytest.mark.asyncio
    @pytest.mark.parametrize('free, expected', [
        (50, HealthStatus.HEALTHY),
        (15, HealthStatus.DEGRADED),
        (4, HealthStatus.UNHEALTHY),
    ])
    async def test_usage_levels(self, free, expected):
        """测试按磁盘使用率分级"""
        checker = StorageHealthChecker('file_storage', {'path': '/data'})

        with patch('admin_monitor.checkers.storage_checker.psutil.disk_usage',
                   return_value=Mock(total=100, free=free)) as mock_disk_usage:
            record = await checker.check_health()

        assert record.status == expected
        assert record.additional_info['UsagePercent'] == pytest.approx(100 - free)
        assert record.additional_info['AvailableSpaceBytes'] == free
        assert record.additional_info['TotalSpaceBytes'] == 100
        mock_disk_usage.assert_called_once_with('/data')

    @pytest.mark.asyncio
    async def test_unhealthy_message(self):
        checker = StorageHealthChecker('file_storage', {})

        with patch('admin_monitor.checkers.storage_checker.psutil.disk_usage',
                   return_value=Mock(total=100, free=4)):
            record = await checker.check_health()

        assert "96.0%" in record.error_message

    @pytest.mark.asyncio
    async def test_unreadable_volume_is_unhealthy(self):
        checker = StorageHealthChecker('file_storage', {'path': '/missing'})

        with patch('admin_monitor.checkers.storage_checker.psutil.disk_usage',
                   side_effect=FileNotFoundError("/missing")):
            record = await checker.check_health()

        assert record.status == HealthStatus.UNHEALTHY
        assert "/missing" in record.error_message

    @pytest.mark.asyncio
    async def test_real_volume(self, tmp_path):
        """测试读取真实磁盘"""
        checker = StorageHealthChecker('file_storage', {'path': str(tmp_path)})

        record = await checker.check_health()

        assert record.status in (HealthStatus.HEALTHY, HealthStatus.DEGRADED,
                                 HealthStatus.UNHEALTHY)
        assert 0 <= record.additional_info['UsagePercent'] <= 100
