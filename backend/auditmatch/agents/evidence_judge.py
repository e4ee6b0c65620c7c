# -*- coding: utf-8 -*-
"""
审计证据匹配 AuditMatch - 合规问题与政策文档的并发证据匹配系统
AuditMatch - Concurrent Compliance Evidence Matching System

Copyright © 2025-2026 WenShape Team
License: PolyForm Noncommercial License 1.0.0

模块说明 / Module Description:
  证据判断智能体 - 判断一份政策文档是否为某个审计问题提供明确证据
  Evidence Judge Agent - Decides whether one policy document gives definitive evidence for a question.
"""

from typing import Any, Dict, List, Optional, Sequence

from auditmatch.agents.base import BaseAgent
from auditmatch.llm_gateway.dispatcher import RequestDispatcher
from auditmatch.prompts import evidence_judgment_prompt
from auditmatch.schemas.evidence import Answer, Confidence, EvidenceCandidate
from auditmatch.schemas.policy import DocumentDescriptor
from auditmatch.schemas.question import Question
from auditmatch.utils.llm_output import parse_judgment_payload
from auditmatch.utils.logger import get_logger

logger = get_logger(__name__)

EXCERPT_BUDGET = 18000
WINDOW_BEFORE = 500
WINDOW_AFTER = 1500
WINDOW_SEPARATOR = "\n...\n"
TRUNCATION_MARKER = "...[truncated]"


def find_keyword_positions(text: str, keyword: str) -> List[int]:
    """All (overlapping) start offsets of *keyword* in *text*."""
    positions = []
    if not keyword:
        return positions
    index = text.find(keyword)
    while index != -1:
        positions.append(index)
        index = text.find(keyword, index + 1)
    return positions


def select_excerpt(text: str, keywords: Sequence[str], budget: int = EXCERPT_BUDGET) -> str:
    """
    选取与关键词相关的文本片段

    Text within *budget* is returned unchanged. Otherwise every keyword
    occurrence ``p`` contributes the window ``[p - 500, p + 1500]``; unique
    windows in position order are joined with ``\\n...\\n``. When that exceeds
    the budget (or no keyword occurs), the first *budget* characters plus a
    truncation marker are returned.
    """
    if len(text) <= budget:
        return text

    lowered = text.lower()
    positions = set()
    for keyword in keywords:
        needle = (keyword or "").strip().lower()
        positions.update(find_keyword_positions(lowered, needle))

    if positions:
        spans = []
        seen = set()
        for position in sorted(positions):
            span = (max(0, position - WINDOW_BEFORE), min(len(text), position + WINDOW_AFTER))
            if span not in seen:
                seen.add(span)
                spans.append(text[span[0]:span[1]])
        combined = WINDOW_SEPARATOR.join(spans)
        if len(combined) <= budget:
            return combined

    return text[:budget] + TRUNCATION_MARKER


def _as_bool(value: Any) -> bool:
    if isinstance(value, str):
        return value.strip().lower() == "true"
    return bool(value)


def _coerce_enum(enum_cls, value: Any, default, field: str):
    normalized = str(value or "").strip().lower()
    try:
        return enum_cls(normalized)
    except ValueError:
        logger.warning("Unknown %s %r in judgment, using %s", field, value, default.value)
        return default


def build_candidate(payload: Dict[str, Any], descriptor: DocumentDescriptor) -> EvidenceCandidate:
    """Map a validated judgment payload onto an evidence candidate for *descriptor*."""
    page_reference = payload.get("pageReference")
    return EvidenceCandidate(
        doc_name=descriptor.name,
        subfolder=descriptor.subfolder,
        answer=_coerce_enum(Answer, payload.get("answer"), Answer.PARTIAL, "answer"),
        evidence=str(payload.get("evidence") or ""),
        page_reference=str(page_reference) if page_reference else None,
        confidence=_coerce_enum(Confidence, payload.get("confidence"), Confidence.LOW, "confidence"),
        explanation=str(payload.get("explanation") or ""),
        score=getattr(descriptor, "score", 0),
    )


class EvidenceJudgeAgent(BaseAgent):
    """证据判断智能体 / Evidence judge agent"""

    def __init__(
        self,
        dispatcher: RequestDispatcher,
        config: Optional[Dict[str, Any]] = None,
        excerpt_budget: int = EXCERPT_BUDGET,
    ):
        super().__init__(dispatcher, config)
        self.excerpt_budget = excerpt_budget

    def get_agent_name(self) -> str:
        return "policy_analysis"

    async def judge(
        self,
        question: Question,
        document_text: str,
        descriptor: DocumentDescriptor,
    ) -> Optional[EvidenceCandidate]:
        """
        判断文档是否回答了问题

        Returns a candidate only when the response says ``hasAnswer: true``.

        Raises:
            UpstreamServiceError: 调用失败 / Reasoning call failed
            DataIntegrityError: 响应无法解析或缺少必需字段 / Response unrecoverable
        """
        excerpt = select_excerpt(document_text, question.keywords, self.excerpt_budget)
        prompt = evidence_judgment_prompt(question.text, descriptor.name, excerpt)
        raw = await self.call_llm(prompt)
        payload = parse_judgment_payload(raw)

        if not _as_bool(payload.get("hasAnswer")):
            return None
        return build_candidate(payload, descriptor)
