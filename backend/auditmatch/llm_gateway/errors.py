# -*- coding: utf-8 -*-
"""
审计证据匹配 AuditMatch - 合规问题与政策文档的并发证据匹配系统
AuditMatch - Concurrent Compliance Evidence Matching System

Copyright © 2025-2026 WenShape Team
License: PolyForm Noncommercial License 1.0.0

模块说明 / Module Description:
  LLM错误分类 - 区分可重试与不可重试的错误，并计算退避延迟
  LLM Error Classification - Separates retryable from non-retryable errors and computes backoff delays.
"""

from typing import Tuple

# 不可重试：认证、权限、无效请求、配额等永久性错误
# Non-retryable: authentication, permission, invalid request, quota
NON_RETRYABLE_PATTERNS = (
    "invalid_api_key",
    "invalid api key",
    "authentication",
    "unauthorized",
    "api key",
    "invalid_request_error",
    "invalid request",
    "permission",
    "forbidden",
    "access denied",
    "model not found",
    "model_not_found",
    "context_length_exceeded",
    "context length",
    "billing",
    "quota exceeded",
    "insufficient_quota",
)

# 可重试：超时、连接、服务端错误、临时限流
# Retryable: timeouts, connection failures, server errors, temporary rate limits
RETRYABLE_PATTERNS = (
    "timeout",
    "timed out",
    "connection",
    "network",
    "socket",
    "reset",
    "refused",
    "server_error",
    "internal server",
    "502",
    "503",
    "504",
    "bad gateway",
    "service unavailable",
    "overloaded",
    "rate limit",
    "too many requests",
    "429",
)


def classify_error(error: Exception) -> Tuple[bool, str]:
    """
    将错误分类为可重试或不可重试

    Classify an error by exception type first, then by message patterns.
    Unknown errors are treated as retryable.

    Returns:
        元组 (is_retryable, reason) / Tuple of (is_retryable, reason)

    Example:
        >>> classify_error(TimeoutError("Request timed out"))
        (True, 'connection_error')
        >>> classify_error(ValueError("invalid_api_key"))
        (False, 'non_retryable:invalid_api_key')
    """
    error_str = str(error).lower()
    error_type = type(error).__name__.lower()

    if any(t in error_type for t in ("timeout", "connection", "network", "socket")):
        return True, "connection_error"

    if any(t in error_type for t in ("authentication", "permission", "badrequest")):
        return False, "auth_error"

    for pattern in NON_RETRYABLE_PATTERNS:
        if pattern in error_str:
            return False, f"non_retryable:{pattern}"

    for pattern in RETRYABLE_PATTERNS:
        if pattern in error_str:
            return True, f"retryable:{pattern}"

    return True, "unknown_error"


def get_retry_delay(attempt: int, base_delay_ms: float = 1000) -> float:
    """
    计算指数退避延迟（毫秒）

    Delay before retry number ``attempt + 1``: ``base_delay_ms * 2 ** attempt``,
    i.e. 1000, 2000, 4000 ms with the defaults.

    Example:
        >>> [get_retry_delay(i) for i in range(3)]
        [1000, 2000, 4000]
    """
    return base_delay_ms * (2 ** attempt)
