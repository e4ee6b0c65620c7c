# -*- coding: utf-8 -*-
"""
审计证据匹配 AuditMatch - 合规问题与政策文档的并发证据匹配系统
AuditMatch - Concurrent Compliance Evidence Matching System

Copyright © 2025-2026 WenShape Team
License: PolyForm Noncommercial License 1.0.0

模块说明 / Module Description:
  编排器共享类型 - 证据排序规则与判断缓存记录
  Shared Types for Orchestrator - Evidence ordering and the judgment cache record.
"""

from dataclasses import dataclass
from typing import Optional, Tuple

from auditmatch.schemas.evidence import Answer, Confidence, EvidenceCandidate

CONFIDENCE_RANK = {Confidence.HIGH: 3, Confidence.MEDIUM: 2, Confidence.LOW: 1}
ANSWER_RANK = {Answer.YES: 3, Answer.NO: 2, Answer.PARTIAL: 1}


def evidence_sort_key(candidate: EvidenceCandidate) -> Tuple[int, int, int]:
    """
    证据排序键 / Sort key for evidence candidates

    Ascending sort on this key orders by confidence, then answer, then relevance
    score, all descending.
    """
    return (
        -CONFIDENCE_RANK.get(candidate.confidence, 0),
        -ANSWER_RANK.get(candidate.answer, 0),
        -candidate.score,
    )


@dataclass(frozen=True)
class CachedJudgment:
    """判断缓存记录；candidate 为 None 表示“无证据” / Cached judgment; ``None`` means no evidence."""

    candidate: Optional[EvidenceCandidate]
