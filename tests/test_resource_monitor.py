"""主机资源监控测试"""

from unittest.mock import Mock, patch

from admin_monitor.utils.resource_monitor import ResourceMonitor


class TestResourceMonitor:
    """测试ResourceMonitor类"""

    def test_collect_real_metrics(self, tmp_path):
        """测试采集真实资源指标"""
        monitor = ResourceMonitor(str(tmp_path))

        metrics = monitor.collect()

        assert 0 <= metrics.cpu_usage_percent <= 100 * 1024
        assert metrics.memory_total_bytes > 0
        assert 0 <= metrics.memory_usage_percent <= 100
        assert metrics.disk_total_bytes > 0
        assert metrics.thread_count >= 1
        assert len(monitor.history) == 1

    def test_collect_with_mocked_psutil(self):
        """测试指标换算"""
        with patch('admin_monitor.utils.resource_monitor.psutil') as mock_psutil:
            mock_psutil.cpu_percent.return_value = 55.0
            mock_psutil.virtual_memory.return_value = Mock(
                total=1000, available=250, percent=75.0)
            mock_psutil.disk_usage.return_value = Mock(total=200, free=50)
            mock_psutil.Process.return_value.num_threads.return_value = 12

            monitor = ResourceMonitor('/data')
            metrics = monitor.collect()

        assert metrics.cpu_usage_percent == 55.0
        assert metrics.memory_usage_bytes == 750
        assert metrics.memory_usage_percent == 75.0
        assert metrics.disk_usage_bytes == 150
        assert metrics.disk_usage_percent == 75.0
        assert metrics.thread_count == 12
        mock_psutil.disk_usage.assert_called_with('/data')

    def test_history_is_bounded(self, tmp_path):
        monitor = ResourceMonitor(str(tmp_path), history_size=2)
        for _ in range(3):
            monitor.collect()

        assert len(monitor.history) == 2
        assert len(monitor.get_history(minutes=1)) == 2
