# -*- coding: utf-8 -*-
"""
审计证据匹配 AuditMatch - 合规问题与政策文档的并发证据匹配系统
AuditMatch - Concurrent Compliance Evidence Matching System

Copyright © 2025-2026 WenShape Team
License: PolyForm Noncommercial License 1.0.0

模块说明 / Module Description:
  应用级异常层次 - 定义业务逻辑层异常的完整继承树，每个异常携带HTTP状态码
  Application-level Exception Hierarchy - Business exceptions carrying an HTTP status classification.
"""

from typing import Any, List, Optional


class AuditMatchError(Exception):
    """
    AuditMatch 业务错误的基类

    Base exception for all AuditMatch business errors.

    所有应用级异常都应继承此类，以便于统一错误处理。
    All application-level exceptions inherit from this class so the API layer can
    map them to a status code and a human-readable message.

    Attributes:
        status_code: HTTP状态码 / HTTP status classification
        message: 可读的错误信息 / Human-readable message
        details: 附加诊断信息 / Extra diagnostic entries
    """

    status_code: int = 500

    def __init__(
        self,
        message: str = "",
        details: Optional[List[Any]] = None,
        status_code: Optional[int] = None,
    ):
        super().__init__(message)
        self.message = message or self.__class__.__name__
        self.details = list(details or [])
        if status_code is not None:
            self.status_code = status_code


class ValidationError(AuditMatchError):
    """
    输入验证失败异常

    Raised when input to the pipeline is malformed.

    抛出时机：
    - 上传文件不是PDF / Uploaded file is not a PDF
    - 文件过大 / File too large
    - PDF无可读文本 / No readable text in PDF
    - 未提取到任何审计问题 / No audit questions extracted
    """

    status_code = 400


class NotFoundError(AuditMatchError):
    """
    文档未找到异常

    Raised when a descriptor has no matching document in the store.
    """

    status_code = 404


class UpstreamServiceError(AuditMatchError):
    """
    上游服务调用失败异常

    Raised when the reasoning capability or the document store failed after
    exhausting retries, or when the store is unreachable at the start of a run.
    """

    status_code = 502


class DataIntegrityError(AuditMatchError):
    """
    LLM响应无法修复异常

    Raised when a reasoning response is unrecoverable after every repair strategy.

    Attributes:
        raw_excerpt: 原始响应的首尾片段 / Head and tail of the raw response for diagnosis
    """

    status_code = 502

    def __init__(self, message: str = "", raw_text: str = "", excerpt_chars: int = 500):
        self.raw_length = len(raw_text or "")
        self.raw_excerpt = _excerpt(raw_text or "", excerpt_chars)
        super().__init__(
            message,
            details=[{"raw_length": self.raw_length, "raw_excerpt": self.raw_excerpt}],
        )


class InternalError(AuditMatchError):
    """
    内部未预期错误

    Raised for unexpected internal failures.
    """

    status_code = 500


def _excerpt(text: str, size: int) -> str:
    if len(text) <= size * 2:
        return text
    return f"{text[:size]} ... {text[-size:]}"
