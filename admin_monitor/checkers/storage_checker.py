"""文件存储健康检查器"""

import asyncio
import os
import time

import psutil

from .base import DependencyHealthChecker
from .factory import register_checker
from ..models.health_check import DependencyType, DependencyHealthRecord, HealthStatus

# 磁盘使用率分级阈值（百分比）
STORAGE_DEGRADED_PERCENT = 80.0
STORAGE_UNHEALTHY_PERCENT = 90.0


def classify_disk_usage(usage_percent: float) -> HealthStatus:
    """<80% 健康，<90% 降级，其余不健康"""
    if usage_percent < STORAGE_DEGRADED_PERCENT:
        return HealthStatus.HEALTHY
    if usage_percent < STORAGE_UNHEALTHY_PERCENT:
        return HealthStatus.DEGRADED
    return HealthStatus.UNHEALTHY


@register_checker('file_storage')
class StorageHealthChecker(DependencyHealthChecker):
    """文件存储健康检查器，按所在卷的磁盘使用率分级"""

    kind = DependencyType.FILE_STORAGE
    display_name = 'FileStorage'

    def validate_config(self) -> bool:
        path = self.config.get('path')
        return path is None or isinstance(path, str)

    @property
    def storage_path(self) -> str:
        return self.config.get('path') or os.getcwd()

    async def check_health(self) -> DependencyHealthRecord:
        """
        执行文件存储健康检查

        Returns:
            DependencyHealthRecord: 健康检查结果，不会抛出异常
        """
        record = self._new_record()
        start_time = time.time()

        try:
            # disk_usage 在卷挂起时会阻塞，不能直接在事件循环中调用
            disk = await asyncio.get_running_loop().run_in_executor(
                None, psutil.disk_usage, self.storage_path)
            record.response_time_ms = self._elapsed_ms(start_time)

            usage_percent = 100.0 - (disk.free * 100.0 / disk.total)
            record.status = classify_disk_usage(usage_percent)
            record.additional_info = {
                'AvailableSpaceBytes': disk.free,
                'TotalSpaceBytes': disk.total,
                'UsagePercent': usage_percent
            }

            if record.status == HealthStatus.UNHEALTHY:
                record.error_message = f"磁盘使用率已达 {usage_percent:.1f}%"
                self.logger.warning(record.error_message)

        except Exception as e:
            record.response_time_ms = self._elapsed_ms(start_time)
            self._fail(record, f"无法读取存储卷 {self.storage_path}: {e}")
            self.logger.error(record.error_message)

        return self._stamp_incident(record)
