# -*- coding: utf-8 -*-
"""
审计证据匹配 AuditMatch - 合规问题与政策文档的并发证据匹配系统
AuditMatch - Concurrent Compliance Evidence Matching System

Copyright © 2025-2026 WenShape Team
License: PolyForm Noncommercial License 1.0.0

模块说明 / Module Description:
  TTL 缓存 - 带绝对过期时间的内存缓存，访问时检查过期，支持显式清扫
  TTL cache - In-memory cache with absolute expiry, on-access expiry check and explicit sweep.

实现方式 / Implementation:
  所有读写都在单个事件循环步骤内完成（无 await），因此在 asyncio 单线程模型下无需锁。
  No operation awaits, so under the single-threaded asyncio model no lock is needed.
  Entries are only evicted by expiry, never by size pressure.
"""

import time
from dataclasses import dataclass
from typing import Callable, Dict, Generic, Hashable, Iterator, List, Optional, TypeVar

K = TypeVar("K", bound=Hashable)
V = TypeVar("V")


@dataclass
class CacheEntry(Generic[V]):
    """缓存条目"""
    value: V
    expires_at: float


class TTLCache(Generic[K, V]):
    """
    TTL 缓存

    过期条目永远不会被返回：get 时先检查过期，再返回值。
    An expired entry is never returned: ``get`` checks expiry before returning.

    Attributes:
        name: 缓存名称（用于统计） / Cache name used in stats
        ttl_seconds: 默认存活时间 / Default time-to-live
    """

    def __init__(
        self,
        name: str,
        ttl_seconds: float,
        clock: Callable[[], float] = time.monotonic,
    ):
        """
        初始化缓存

        Args:
            name: 缓存名称
            ttl_seconds: 默认TTL（秒）
            clock: 单调时钟，测试时可替换 / Monotonic clock, injectable for tests
        """
        self.name = name
        self.ttl_seconds = ttl_seconds
        self._clock = clock
        self._entries: Dict[K, CacheEntry[V]] = {}
        self.hits = 0
        self.misses = 0

    def get(self, key: K) -> Optional[V]:
        entry = self._entries.get(key)
        if entry is None:
            self.misses += 1
            return None
        if self._clock() >= entry.expires_at:
            del self._entries[key]
            self.misses += 1
            return None
        self.hits += 1
        return entry.value

    def set(self, key: K, value: V, ttl_seconds: Optional[float] = None) -> None:
        ttl = self.ttl_seconds if ttl_seconds is None else ttl_seconds
        self._entries[key] = CacheEntry(value=value, expires_at=self._clock() + ttl)

    def contains(self, key: K) -> bool:
        """存在且未过期 / Present and not expired (does not touch hit counters)."""
        entry = self._entries.get(key)
        if entry is None:
            return False
        if self._clock() >= entry.expires_at:
            del self._entries[key]
            return False
        return True

    def delete(self, key: K) -> None:
        self._entries.pop(key, None)

    def sweep(self) -> int:
        """
        清扫过期条目

        Evict every expired entry.

        Returns:
            被清除的条目数 / Number of evicted entries
        """
        now = self._clock()
        expired: List[K] = [k for k, e in self._entries.items() if now >= e.expires_at]
        for key in expired:
            del self._entries[key]
        return len(expired)

    def clear(self) -> None:
        self._entries.clear()
        self.hits = 0
        self.misses = 0

    def keys(self) -> Iterator[K]:
        self.sweep()
        return iter(list(self._entries.keys()))

    def __len__(self) -> int:
        self.sweep()
        return len(self._entries)

    def __contains__(self, key: object) -> bool:
        return self.contains(key)  # type: ignore[arg-type]

    def stats(self) -> Dict[str, object]:
        return {
            "name": self.name,
            "size": len(self),
            "ttl_seconds": self.ttl_seconds,
            "hits": self.hits,
            "misses": self.misses,
        }
