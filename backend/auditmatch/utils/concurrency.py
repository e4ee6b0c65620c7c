# -*- coding: utf-8 -*-
"""
审计证据匹配 AuditMatch - 合规问题与政策文档的并发证据匹配系统
AuditMatch - Concurrent Compliance Evidence Matching System

Copyright © 2025-2026 WenShape Team
License: PolyForm Noncommercial License 1.0.0

模块说明 / Module Description:
  并发工具 - 批次切分与 settle-all 并发执行
  Concurrency helpers - Batch partitioning and settle-all fan-out.

设计说明 / Design Note:
  settle_all 等待组内所有任务完成（成功或失败），单个任务失败不会中止兄弟任务。
  settle_all awaits every task in a group; one failure never cancels its siblings.
"""

import asyncio
from dataclasses import dataclass
from typing import Any, Awaitable, Generic, Iterable, List, Optional, Sequence, TypeVar

T = TypeVar("T")


@dataclass(frozen=True)
class Settled(Generic[T]):
    """单个任务的结算结果 / Outcome of one task in a settle-all group."""

    value: Optional[T] = None
    error: Optional[BaseException] = None

    @property
    def ok(self) -> bool:
        return self.error is None


def create_batches(items: Sequence[T], batch_size: int) -> List[List[T]]:
    """
    按固定大小切分序列

    Split *items* into consecutive groups of *batch_size*, preserving order.

    Args:
        items: 输入序列 / Input sequence
        batch_size: 批大小（>=1） / Group size (>= 1)

    Returns:
        批次列表 / List of batches

    Example:
        >>> [len(b) for b in create_batches(list(range(7)), 3)]
        [3, 3, 1]
    """
    if batch_size < 1:
        raise ValueError("batch_size must be >= 1")
    items = list(items)
    return [items[i : i + batch_size] for i in range(0, len(items), batch_size)]


async def settle_all(awaitables: Iterable[Awaitable[T]]) -> List[Settled[T]]:
    """
    并行执行并收集所有结果

    Run awaitables concurrently and collect every outcome in input order.

    Exceptions are captured per task; ``asyncio.CancelledError`` is re-raised so
    cancelling the caller still works.
    """
    results = await asyncio.gather(*awaitables, return_exceptions=True)
    settled: List[Settled[Any]] = []
    for result in results:
        if isinstance(result, asyncio.CancelledError):
            raise result
        if isinstance(result, BaseException):
            settled.append(Settled(error=result))
        else:
            settled.append(Settled(value=result))
    return settled


async def sleep_ms(milliseconds: float) -> None:
    """Pause for *milliseconds*; non-positive values return immediately."""
    if milliseconds and milliseconds > 0:
        await asyncio.sleep(milliseconds / 1000.0)
