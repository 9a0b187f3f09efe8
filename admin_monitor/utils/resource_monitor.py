"""主机资源监控模块

采集CPU、内存、磁盘和线程数等资源指标，供系统指标快照使用
"""

import os
from collections import deque
from datetime import datetime, timedelta
from typing import Optional, List, Tuple

import psutil

from ..models.metrics import SystemResourceMetrics
from .log_manager import get_logger


class ResourceMonitor:
    """资源监控器

    每次 collect 都即时采样，并保留最近的采样历史用于查看趋势。
    """

    def __init__(self, storage_path: Optional[str] = None, history_size: int = 100):
        """初始化资源监控器

        Args:
            storage_path: 统计磁盘使用率的路径，默认当前工作目录
            history_size: 历史采样保存数量
        """
        self.storage_path = storage_path or os.getcwd()
        self.history: deque = deque(maxlen=history_size)
        self.logger = get_logger('resource_monitor')
        self.process = psutil.Process()

        # 首次调用 cpu_percent(interval=None) 总是返回0，这里先预热
        psutil.cpu_percent(interval=None)

    def collect(self) -> SystemResourceMetrics:
        """采集当前资源指标

        Returns:
            资源指标对象
        """
        cpu_percent = psutil.cpu_percent(interval=None)

        memory = psutil.virtual_memory()
        memory_used = memory.total - memory.available

        disk = psutil.disk_usage(self.storage_path)
        disk_used = disk.total - disk.free

        metrics = SystemResourceMetrics(
            cpu_usage_percent=cpu_percent,
            memory_usage_bytes=memory_used,
            memory_total_bytes=memory.total,
            memory_usage_percent=memory.percent,
            disk_usage_bytes=disk_used,
            disk_total_bytes=disk.total,
            disk_usage_percent=(disk_used / disk.total * 100) if disk.total else 0.0,
            thread_count=self.process.num_threads()
        )

        self.history.append((datetime.now(), metrics))
        self.logger.debug(
            f"资源指标 - CPU: {metrics.cpu_usage_percent:.1f}%, "
            f"内存: {metrics.memory_usage_percent:.1f}%, "
            f"磁盘: {metrics.disk_usage_percent:.1f}%, "
            f"线程: {metrics.thread_count}"
        )
        return metrics

    def get_history(self, minutes: int = 10) -> List[Tuple[datetime, SystemResourceMetrics]]:
        """获取指定时间范围内的采样历史"""
        cutoff_time = datetime.now() - timedelta(minutes=minutes)
        return [entry for entry in list(self.history) if entry[0] >= cutoff_time]
