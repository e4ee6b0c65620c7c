# -*- coding: utf-8 -*-
"""
审计证据匹配 AuditMatch - 合规问题与政策文档的并发证据匹配系统
AuditMatch - Concurrent Compliance Evidence Matching System

Copyright © 2025-2026 WenShape Team
License: PolyForm Noncommercial License 1.0.0

模块说明 / Module Description:
  请求调度器 - 为推理调用提供并发上限、重试退避与自适应节流
  Request Dispatcher - Concurrency cap, retry with backoff and adaptive pacing for reasoning calls.

调度规则 / Dispatch rules:
  - 并发上限默认 3，排队请求按到达顺序获取名额
    Default cap of 3; queued calls acquire slots in arrival order
  - 每次调用最多重试 3 次，退避 1000/2000/4000 ms；不可重试错误立即失败
    Up to 3 retries with 1000/2000/4000 ms backoff; non-retryable errors fail at once
  - 自适应延迟基于最近 10 次调用调整，供批次间暂停使用
    Adaptive delay tuned over the last 10 calls, used for pauses between batches
"""

import asyncio
import time
from collections import deque
from dataclasses import asdict, dataclass
from typing import Any, Deque, Dict, List, Optional

from auditmatch.exceptions import UpstreamServiceError
from auditmatch.llm_gateway.errors import classify_error, get_retry_delay
from auditmatch.llm_gateway.gateway import LLMGateway
from auditmatch.utils.concurrency import sleep_ms
from auditmatch.utils.logger import get_logger

logger = get_logger(__name__)


@dataclass
class RequestRecord:
    request_type: str
    duration_ms: float
    timestamp: float
    success: bool
    error: Optional[str] = None


class AdaptiveDelayController:
    """
    自适应延迟控制器 / Adaptive delay controller

    After every completed call, over the last ``window`` calls:

    - 失败 > 2: 延迟 ×1.5，上限 5000 ms / more than 2 failures: ×1.5, capped at 5000 ms
    - 平均耗时 > 8000 ms: ×1.2，上限 3000 ms / average above 8000 ms: ×1.2, capped at 3000 ms
    - 无失败且平均 < 3000 ms: ×0.9，下限 500 ms / no failures and average below 3000 ms: ×0.9, floor 500 ms
    - 否则不变 / otherwise unchanged
    """

    def __init__(self, initial_delay_ms: float = 1000, window: int = 10):
        self.delay_ms = initial_delay_ms
        self.history: Deque[RequestRecord] = deque(maxlen=window)

    def record(self, entry: RequestRecord) -> float:
        self.history.append(entry)
        self._adjust()
        return self.delay_ms

    def _adjust(self) -> None:
        failures = sum(1 for h in self.history if not h.success)
        avg_duration = sum(h.duration_ms for h in self.history) / len(self.history)

        if failures > 2:
            self.delay_ms = min(self.delay_ms * 1.5, 5000)
        elif avg_duration > 8000:
            self.delay_ms = min(self.delay_ms * 1.2, 3000)
        elif failures == 0 and avg_duration < 3000:
            self.delay_ms = max(self.delay_ms * 0.9, 500)

        logger.debug(
            "Adaptive delay adjusted to %.0fms (failures: %d, avg duration: %.0fms)",
            self.delay_ms,
            failures,
            avg_duration,
        )

    def recent(self, count: int = 5) -> List[RequestRecord]:
        return list(self.history)[-count:]


class RequestDispatcher:
    """
    推理请求调度器 / Reasoning request dispatcher

    All reasoning calls go through :meth:`submit`.

    Attributes:
        gateway: LLM网关 / Gateway performing the actual call
        max_concurrent: 并发上限 / Concurrency cap
        max_retries: 最大重试次数 / Retries per call
        base_delay_ms: 退避基数 / Backoff base
    """

    def __init__(
        self,
        gateway: LLMGateway,
        max_concurrent: int = 3,
        max_retries: int = 3,
        base_delay_ms: float = 1000,
        initial_delay_ms: float = 1000,
        history_window: int = 10,
    ):
        self.gateway = gateway
        self.max_concurrent = max(1, min(max_concurrent, 5))
        self.max_retries = max_retries
        self.base_delay_ms = base_delay_ms
        self.delay_controller = AdaptiveDelayController(initial_delay_ms, history_window)

        self._semaphore = asyncio.Semaphore(self.max_concurrent)
        self._pending = 0
        self._active = 0

    @property
    def adaptive_delay_ms(self) -> float:
        return self.delay_controller.delay_ms

    async def submit(self, prompt: str, request_type: str = "generic") -> str:
        """
        提交一次推理调用 / Submit one reasoning call

        Waits for a slot, then calls the gateway with retries.

        Raises:
            UpstreamServiceError: 重试耗尽或不可重试错误 / Retries exhausted or non-retryable error
        """
        semaphore = self._semaphore
        self._pending += 1
        try:
            await semaphore.acquire()
        finally:
            self._pending -= 1

        self._active += 1
        start = time.perf_counter()
        try:
            result = await self._call_with_retry(prompt, request_type)
        except UpstreamServiceError as exc:
            self._record(request_type, start, success=False, error=exc.message)
            raise
        finally:
            self._active -= 1
            semaphore.release()

        self._record(request_type, start, success=True)
        return result

    async def _call_with_retry(self, prompt: str, request_type: str) -> str:
        last_error: Optional[Exception] = None
        for attempt in range(self.max_retries + 1):
            try:
                return await self.gateway.generate(prompt)
            except Exception as exc:
                last_error = exc
                retryable, reason = classify_error(exc)
                if not retryable:
                    logger.error("%s request failed without retry (%s): %s", request_type, reason, exc)
                    raise UpstreamServiceError(
                        f"LLM request failed ({reason}): {exc}",
                        details=[{"request_type": request_type, "reason": reason}],
                    ) from exc
                if attempt < self.max_retries:
                    delay = get_retry_delay(attempt, self.base_delay_ms)
                    logger.warning(
                        "Retrying %s request in %.0fms (attempt %d/%d): %s",
                        request_type,
                        delay,
                        attempt + 1,
                        self.max_retries,
                        exc,
                    )
                    await sleep_ms(delay)

        raise UpstreamServiceError(
            f"LLM error after {self.max_retries} retries: {last_error}",
            details=[{"request_type": request_type, "attempts": self.max_retries + 1}],
        ) from last_error

    def _record(self, request_type: str, start: float, success: bool, error: Optional[str] = None) -> None:
        now = time.perf_counter()
        self.delay_controller.record(
            RequestRecord(
                request_type=request_type,
                duration_ms=(now - start) * 1000,
                timestamp=time.time(),
                success=success,
                error=error,
            )
        )

    def get_queue_stats(self) -> Dict[str, Any]:
        return {
            "queue_length": self._pending,
            "active_requests": self._active,
            "max_concurrent": self.max_concurrent,
            "adaptive_delay_ms": round(self.adaptive_delay_ms),
            "recent_history": [asdict(h) for h in self.delay_controller.recent(5)],
        }

    def adjust_concurrency(self, max_concurrent: int) -> int:
        """Set the concurrency cap (clamped to 1..5); applies to calls not yet queued."""
        self.max_concurrent = max(1, min(max_concurrent, 5))
        self._semaphore = asyncio.Semaphore(self.max_concurrent)
        logger.info("Concurrency limit adjusted to %d", self.max_concurrent)
        return self.max_concurrent
