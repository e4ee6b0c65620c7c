# -*- coding: utf-8 -*-
"""
审计证据匹配 AuditMatch - 合规问题与政策文档的并发证据匹配系统
AuditMatch - Concurrent Compliance Evidence Matching System

Copyright © 2025-2026 WenShape Team
License: PolyForm Noncommercial License 1.0.0

模块说明 / Module Description:
  相关性排序服务 - 基于类别、关键词（包含/精确/模糊）与描述命中的加性打分，带 TTL 结果缓存。
  Relevance ranking - Additive scoring over category, keyword containment/equality/fuzzy
  similarity and description hits, with a TTL cache of full rankings.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import List, Optional, Sequence, Tuple

from auditmatch.schemas.policy import DocumentDescriptor, ScoredDocument
from auditmatch.schemas.question import Question
from auditmatch.storage.ttl_cache import TTLCache
from auditmatch.utils.logger import get_logger
from auditmatch.utils.text import stable_hash

logger = get_logger(__name__)

CATEGORY_MATCH_SCORE = 50
KEYWORD_CONTAINS_SCORE = 20
KEYWORD_EXACT_SCORE = 30
KEYWORD_FUZZY_SCORE = 15
DESCRIPTION_KEYWORD_SCORE = 10
DESCRIPTION_OR_NAME_KEYWORD_SCORE = 5
QUESTION_WORD_SCORE = 3

FUZZY_THRESHOLD = 0.7
MIN_QUESTION_WORD_LEN = 3


@dataclass(frozen=True)
class _NormalizedQuestion:
    text: str
    category: str
    keywords: Tuple[str, ...]
    description: str


@dataclass(frozen=True)
class _NormalizedDocument:
    name: str
    category: str
    keywords: Tuple[str, ...]
    description: str


def _normalize_keywords(keywords: Sequence[str]) -> Tuple[str, ...]:
    return tuple(k for k in (str(k).strip().lower() for k in keywords or []) if k)


def normalize_question(question: Question) -> _NormalizedQuestion:
    return _NormalizedQuestion(
        text=str(question.text or "").lower(),
        category=str(question.category or "Other").strip().lower(),
        keywords=_normalize_keywords(question.keywords),
        description=str(question.description or "").lower(),
    )


def normalize_document(document: DocumentDescriptor) -> _NormalizedDocument:
    return _NormalizedDocument(
        name=str(document.name or "").lower(),
        category=str(document.category or "Other").strip().lower(),
        keywords=_normalize_keywords(document.keywords),
        description=str(document.description or "").lower(),
    )


def levenshtein_distance(a: str, b: str) -> int:
    """
    经典动态规划编辑距离

    Classic dynamic-programming Levenshtein distance (two-row variant).
    """
    if a == b:
        return 0
    if not a:
        return len(b)
    if not b:
        return len(a)

    previous = list(range(len(b) + 1))
    for i, ca in enumerate(a, start=1):
        current = [i] + [0] * len(b)
        for j, cb in enumerate(b, start=1):
            if ca == cb:
                current[j] = previous[j - 1]
            else:
                current[j] = min(previous[j - 1], current[j - 1], previous[j]) + 1
        previous = current
    return previous[-1]


def similarity(a: str, b: str) -> float:
    """Normalized similarity ``(len(longer) - distance) / len(longer)``; 1.0 for two empty strings."""
    longer, shorter = (a, b) if len(a) > len(b) else (b, a)
    if not longer:
        return 1.0
    return (len(longer) - levenshtein_distance(longer, shorter)) / len(longer)


def fuzzy_match(a: str, b: str, threshold: float = FUZZY_THRESHOLD) -> bool:
    return similarity(a, b) >= threshold


def score_document(question: _NormalizedQuestion, document: _NormalizedDocument) -> int:
    """
    计算单个文档的相关性分数

    Compute the additive relevance score of one normalized document.

    The "description OR name" bonus deliberately overlaps with the
    "description contains" bonus; both apply when a keyword is in the description.
    """
    score = 0

    if document.category == question.category:
        score += CATEGORY_MATCH_SCORE

    for q_keyword in question.keywords:
        for d_keyword in document.keywords:
            if q_keyword in d_keyword or d_keyword in q_keyword:
                score += KEYWORD_CONTAINS_SCORE
            if q_keyword == d_keyword:
                score += KEYWORD_EXACT_SCORE
            if fuzzy_match(d_keyword, q_keyword):
                score += KEYWORD_FUZZY_SCORE

    for keyword in question.keywords:
        if keyword in document.description:
            score += DESCRIPTION_KEYWORD_SCORE

    for keyword in question.keywords:
        if keyword in document.description or keyword in document.name:
            score += DESCRIPTION_OR_NAME_KEYWORD_SCORE

    for word in question.text.split(" "):
        if len(word) > MIN_QUESTION_WORD_LEN and word in document.description:
            score += QUESTION_WORD_SCORE

    return score


class RelevanceService:
    """
    相关性排序服务

    Scores and ranks reference documents against a question. Rankings are cached
    per normalized question signature for ``ttl_seconds`` (30 minutes by default).

    Attributes:
        cache: 排序结果缓存 / Cache of full rankings keyed by question signature
    """

    def __init__(self, ttl_seconds: float = 30 * 60, cache: Optional[TTLCache] = None):
        if cache is None:
            cache = TTLCache("relevance_rankings", ttl_seconds)
        self.cache: TTLCache[str, List[ScoredDocument]] = cache

    @staticmethod
    def question_signature(question: Question) -> str:
        normalized = normalize_question(question)
        key_data = "|".join(
            [
                normalized.text,
                normalized.category,
                ",".join(sorted(normalized.keywords)),
                normalized.description,
            ]
        )
        return stable_hash(key_data)

    def rank(
        self,
        question: Question,
        document_index: Sequence[DocumentDescriptor],
        max_results: int = 10,
    ) -> List[ScoredDocument]:
        """
        对文档进行打分排序

        Rank *document_index* against *question*.

        Args:
            question: 审计问题 / Audit question
            document_index: 静态政策索引 / Static policy index
            max_results: 返回的最大数量 / Maximum number of results

        Returns:
            按分数降序的文档列表 / Documents sorted by descending score (score > 0 only)
        """
        if not document_index:
            return []

        signature = self.question_signature(question)
        cached = self.cache.get(signature)
        if cached is not None:
            logger.debug("Relevance ranking cache hit for question %s", question.id)
            return list(cached[:max_results])

        normalized = normalize_question(question)
        scored: List[ScoredDocument] = []
        for document in document_index:
            score = score_document(normalized, normalize_document(document))
            if score > 0:
                scored.append(ScoredDocument(**document.model_dump(exclude={"score"}), score=score))

        # sorted() is stable: equal scores keep index order
        ranked = sorted(scored, key=lambda d: d.score, reverse=True)
        self.cache.set(signature, ranked)

        if ranked:
            logger.info(
                "Ranked %d/%d documents for question %s (top: %s)",
                len(ranked),
                len(document_index),
                question.id,
                ", ".join(f"{d.name}: {d.score}" for d in ranked[:3]),
            )
        return list(ranked[:max_results])

    def get_stats(self) -> dict:
        return self.cache.stats()

    def clear_cache(self) -> None:
        self.cache.clear()
