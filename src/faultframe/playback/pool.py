"""
Worker Pool
===========

Bounded FIFO of pre-started, not yet released workers.

Design Rules:
    - Owned and mutated by the scheduler only (no locking)
    - Strict FIFO: workers leave in the order they were started
    - Popping an empty pool is a bookkeeping defect, not a runtime condition
"""

import logging
from collections import deque
from typing import Deque, Generic, List, TypeVar

from faultframe.playback.errors import PoolExhausted, PoolOverflow


logger = logging.getLogger(__name__)

T = TypeVar("T")


class WorkerPool(Generic[T]):
    """
    Fixed-capacity FIFO of pooled workers.

    Example:
        pool = WorkerPool(capacity=3)
        pool.push(worker)
        worker = pool.pop(frame_index=0)
    """

    def __init__(self, capacity: int) -> None:
        if capacity < 1:
            raise ValueError("capacity must be >= 1")

        self._capacity = capacity
        self._workers: Deque[T] = deque()

    @property
    def capacity(self) -> int:
        return self._capacity

    @property
    def size(self) -> int:
        """Number of pooled workers."""
        return len(self._workers)

    def __len__(self) -> int:
        return len(self._workers)

    def push(self, worker: T) -> None:
        """Append a started worker at the tail."""
        if len(self._workers) >= self._capacity:
            raise PoolOverflow(f"Worker pool already holds {self._capacity} workers")
        self._workers.append(worker)

    def pop(self, frame_index: int) -> T:
        """
        Take the worker at the head.

        Args:
            frame_index: Frame the worker is taken for (diagnostics only)

        Raises:
            PoolExhausted: If the pool is empty
        """
        if not self._workers:
            logger.error(f"Worker pool exhausted at frame {frame_index}")
            raise PoolExhausted(frame_index, self._capacity, len(self._workers))
        return self._workers.popleft()

    def drain(self) -> List[T]:
        """Remove and return every pooled worker, head first."""
        workers = list(self._workers)
        self._workers.clear()
        return workers
