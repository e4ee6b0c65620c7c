# -*- coding: utf-8 -*-
"""
审计证据匹配 AuditMatch - 合规问题与政策文档的并发证据匹配系统
AuditMatch - Concurrent Compliance Evidence Matching System

Copyright © 2025-2026 WenShape Team
License: PolyForm Noncommercial License 1.0.0

模块说明 / Module Description:
  文本规范化工具 - 清理抽取文本、计算稳定哈希、去除文件扩展名
  Text Normalization Utilities - Clean extracted text, stable hashing, filename stems.
"""

import hashlib
import re
from typing import Optional

_CONTROL_CHARS_RE = re.compile(r"[\x00-\x08\x0b\x0c\x0e-\x1f\x7f]")
_WHITESPACE_RE = re.compile(r"\s+")


def clean_text(text: Optional[str]) -> str:
    """
    清理抽取的文档文本

    Strip control characters and collapse whitespace runs into single spaces.

    不做截断：长度限制由推理层负责。
    No truncation is applied here; length limits belong to the reasoning layer.

    Args:
        text: 输入文本 / Input text

    Returns:
        规范化后的文本 / Normalized text

    Example:
        >>> clean_text("a\\x00b\\r\\n\\n  c")
        "ab c"
    """
    if not text:
        return ""
    text = _CONTROL_CHARS_RE.sub("", text)
    return _WHITESPACE_RE.sub(" ", text).strip()


def stable_hash(text: Optional[str]) -> str:
    """Return a short, process-independent hash of *text*."""
    return hashlib.sha256((text or "").encode("utf-8")).hexdigest()[:32]


def strip_extension(name: Optional[str]) -> str:
    """
    去除文件扩展名并转小写

    Lower-cased file name without its extension.

    Example:
        >>> strip_extension("Privacy Policy.PDF")
        "privacy policy"
    """
    lowered = (name or "").strip().lower()
    stem, dot, ext = lowered.rpartition(".")
    if dot and stem and " " not in ext:
        return stem
    return lowered
