"""请求指标存储

每个服务一个固定容量的样本队列，超出容量时淘汰最旧的样本（按数量而非时间）。

并发模型：
- 写入只有 dict.setdefault 和 deque.append 两步，均为原子操作，写入之间互不阻塞；
- 读取通过 deque.copy 得到时间点快照，不阻塞写入，可能漏掉并发写入的样本，
  但不会读到不完整的样本（样本本身不可变）。
"""

import math
from collections import deque
from datetime import datetime
from typing import Deque, Dict, List, Optional, Tuple

from ..models.metrics import MetricSample
from ..utils.exceptions import MetricsStoreError
from ..utils.log_manager import get_logger

DEFAULT_CAPACITY = 10000


class MetricsStore:
    """按服务划分的有界样本窗口

    由调用方显式创建并注入到请求拦截器和指标汇总器中，
    不同实例之间没有共享状态。
    """

    def __init__(self, capacity: int = DEFAULT_CAPACITY):
        """
        初始化指标存储

        Args:
            capacity: 每个服务保留的最大样本数

        Raises:
            MetricsStoreError: 容量不是正整数
        """
        if not isinstance(capacity, int) or isinstance(capacity, bool) or capacity <= 0:
            raise MetricsStoreError(f"样本容量必须是正整数: {capacity}")

        self.capacity = capacity
        self._queues: Dict[str, Deque[MetricSample]] = {}
        self.logger = get_logger('metrics_store')

    def _queue_for(self, service_name: str) -> Deque[MetricSample]:
        queue = self._queues.get(service_name)
        if queue is None:
            queue = self._queues.setdefault(service_name, deque(maxlen=self.capacity))
        return queue

    def record(self, service_name: str, endpoint: str, response_time_ms: float,
               is_success: bool, timestamp: Optional[datetime] = None) -> MetricSample:
        """
        记录一次请求

        队列满时自动淘汰最旧样本，写入本身不会因容量而失败。

        Args:
            service_name: 服务名称
            endpoint: 端点标识，如 "GET /api/users"
            response_time_ms: 响应时间（毫秒），必须是非负有限数
            is_success: 请求是否成功
            timestamp: 样本时间，默认当前时间

        Returns:
            MetricSample: 写入的样本

        Raises:
            MetricsStoreError: 响应时间无效，此时不写入任何样本
        """
        try:
            elapsed_ms = float(response_time_ms)
        except (TypeError, ValueError):
            raise MetricsStoreError(f"响应时间必须是数字: {response_time_ms!r}")
        if not math.isfinite(elapsed_ms) or elapsed_ms < 0:
            raise MetricsStoreError(f"响应时间必须是非负有限数: {response_time_ms!r}")

        sample = MetricSample(
            service_name=service_name,
            endpoint=endpoint,
            response_time_ms=elapsed_ms,
            is_success=bool(is_success),
            timestamp=timestamp or datetime.now()
        )
        self._queue_for(service_name).append(sample)
        return sample

    def snapshot(self, service_name: str) -> Tuple[MetricSample, ...]:
        """
        获取服务样本的时间点快照，按写入顺序从旧到新

        Args:
            service_name: 服务名称

        Returns:
            样本元组，服务不存在时为空
        """
        queue = self._queues.get(service_name)
        if queue is None:
            return ()
        return tuple(queue.copy())

    def service_names(self) -> List[str]:
        """已有样本的服务名称列表"""
        return list(self._queues.copy().keys())

    def sample_count(self, service_name: str) -> int:
        queue = self._queues.get(service_name)
        return len(queue) if queue is not None else 0

    def is_full(self, service_name: str) -> bool:
        return self.sample_count(service_name) >= self.capacity

    def clear(self, service_name: Optional[str] = None) -> None:
        """清空指定服务或全部服务的样本"""
        if service_name is None:
            self._queues.clear()
            self.logger.info("已清空全部指标样本")
        else:
            self._queues.pop(service_name, None)
            self.logger.info(f"已清空服务 {service_name} 的指标样本")
