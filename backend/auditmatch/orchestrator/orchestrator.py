# -*- coding: utf-8 -*-
"""
审计证据匹配 AuditMatch - 合规问题与政策文档的并发证据匹配系统
AuditMatch - Concurrent Compliance Evidence Matching System

Copyright © 2025-2026 WenShape Team
License: PolyForm Noncommercial License 1.0.0

模块说明 / Module Description:
  批处理编排器 - 问题 -> 候选文档 -> 推理调用 三层扇出的并发证据匹配流水线
  Batch Orchestrator - The question -> candidate document -> reasoning call pipeline,
  with bounded fan-out at every level.

流程 / Flow (per question):
  1. 相关性排序取前 10 / rank top 10 candidates
  2. 批量检查存在性 / batch existence check
  3. 分块获取文本（每块 8 个，间隔 300ms） / fetch text in chunks of 8, 300 ms apart
  4. 分批判断（每批 5 个，间隔 500ms） / judge in sub-batches of 5, 500 ms apart
  5. 按置信度、答案、相关性排序 / sort by confidence, answer, relevance

问题按 3 个一批顺序处理，批间间隔 1000ms；所有扇出都使用 settle-all，单个失败不影响兄弟任务。
Questions run in batches of 3 with 1000 ms between batches. Every fan-out is a
settle-all group, so one failure never aborts its siblings.
"""

import time
from typing import Callable, Dict, List, Optional, Sequence, Tuple

from auditmatch.agents.evidence_judge import EvidenceJudgeAgent
from auditmatch.orchestrator._types import CachedJudgment, evidence_sort_key
from auditmatch.schemas.evidence import Answer, EvidenceCandidate
from auditmatch.schemas.policy import DocumentDescriptor, ScoredDocument
from auditmatch.schemas.question import Question
from auditmatch.schemas.stats import ProcessingStats
from auditmatch.services.content_service import ContentService
from auditmatch.services.relevance_service import RelevanceService
from auditmatch.storage.ttl_cache import TTLCache
from auditmatch.utils.concurrency import create_batches, settle_all, sleep_ms
from auditmatch.utils.logger import get_logger
from auditmatch.utils.text import stable_hash

logger = get_logger(__name__)

EvidenceByQuestion = Dict[str, List[EvidenceCandidate]]


def _elapsed_ms(start: float) -> int:
    return int((time.perf_counter() - start) * 1000)


class BatchOrchestrator:
    """
    批处理编排器 / Batch orchestrator

    Attributes:
        ranker: 相关性排序服务 / Relevance ranker
        content: 文档内容服务 / Content service
        judge: 证据判断智能体 / Evidence judge
        text_cache: 描述符 -> 文本 / Extracted text per descriptor
        judgment_cache: (问题, 文本前1000字符) -> 判断 / Judgment per question and document prefix
    """

    def __init__(
        self,
        ranker: RelevanceService,
        content: ContentService,
        judge: EvidenceJudgeAgent,
        question_batch_size: int = 3,
        question_pause_ms: float = 1000,
        max_candidates: int = 10,
        download_batch_size: int = 8,
        download_pause_ms: float = 300,
        judge_batch_size: int = 5,
        judge_pause_ms: float = 500,
        cache_ttl_seconds: float = 30 * 60,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.ranker = ranker
        self.content = content
        self.judge = judge

        self.question_batch_size = question_batch_size
        self.question_pause_ms = question_pause_ms
        self.max_candidates = max_candidates
        self.download_batch_size = download_batch_size
        self.download_pause_ms = download_pause_ms
        self.judge_batch_size = judge_batch_size
        self.judge_pause_ms = judge_pause_ms

        self.text_cache: TTLCache[str, str] = TTLCache("document_text", cache_ttl_seconds, clock)
        self.judgment_cache: TTLCache[str, CachedJudgment] = TTLCache("judgments", cache_ttl_seconds, clock)

    @property
    def concurrency_limits(self) -> Dict[str, int]:
        return {
            "questions": self.question_batch_size,
            "policies": self.judge_batch_size,
            "downloads": self.download_batch_size,
        }

    async def process(
        self,
        questions: Sequence[Question],
        document_index: Sequence[DocumentDescriptor],
    ) -> Tuple[EvidenceByQuestion, ProcessingStats]:
        """
        处理全部问题

        Returns evidence per question id (as a string) and the run statistics.
        A question whose processing fails maps to an empty list.
        """
        stats = ProcessingStats(total_questions=len(questions))
        evidence_by_question: EvidenceByQuestion = {}
        start = time.perf_counter()

        batches = create_batches(list(questions), self.question_batch_size)
        for index, batch in enumerate(batches):
            logger.info("Processing batch %d/%d of %d questions", index + 1, len(batches), len(batch))
            settled = await settle_all(
                self._process_question(question, document_index, stats) for question in batch
            )
            for question, outcome in zip(batch, settled):
                key = str(question.id)
                if outcome.ok:
                    evidence_by_question[key] = outcome.value
                else:
                    logger.error("Error processing question %s: %s", question.id, outcome.error)
                    evidence_by_question[key] = []
                    stats.failed_questions += 1
                stats.questions_processed += 1

            if index < len(batches) - 1:
                await sleep_ms(self.question_pause_ms)

        total_ms = _elapsed_ms(start)
        stats.total_processing_time_ms = total_ms
        stats.average_time_per_question_ms = round(total_ms / len(questions)) if questions else 0
        logger.info(
            "Processed %d/%d questions: %d documents checked, %d evidence found",
            stats.questions_processed,
            stats.total_questions,
            stats.documents_checked,
            stats.evidence_found,
        )
        return evidence_by_question, stats

    async def _process_question(
        self,
        question: Question,
        document_index: Sequence[DocumentDescriptor],
        stats: ProcessingStats,
    ) -> List[EvidenceCandidate]:
        start = time.perf_counter()
        ranked = self.ranker.rank(question, document_index, self.max_candidates)
        if not ranked:
            logger.info("No relevant documents for question %s", question.id)
            return []

        flags = await self.content.check_descriptors_exist(ranked)
        existing = [doc for doc, exists in zip(ranked, flags) if exists]
        if not existing:
            logger.info("No existing documents found for question %s", question.id)
            return []

        download_start = time.perf_counter()
        texts = await self._fetch_texts(existing, stats)
        stats.download_time_ms += _elapsed_ms(download_start)

        pairs = [(doc, text) for doc, text in zip(existing, texts) if text]
        candidates: List[EvidenceCandidate] = []
        judge_batches = create_batches(pairs, self.judge_batch_size)
        for index, batch in enumerate(judge_batches):
            analysis_start = time.perf_counter()
            settled = await settle_all(
                self._judge_with_cache(question, text, doc, stats) for doc, text in batch
            )
            stats.analysis_time_ms += _elapsed_ms(analysis_start)

            for (doc, _), outcome in zip(batch, settled):
                if not outcome.ok:
                    logger.warning("Analysis failed for %s: %s", doc.name, outcome.error)
                    stats.failed_analyses += 1
                    continue
                stats.documents_checked += 1
                candidate = outcome.value
                if candidate is None:
                    continue
                candidates.append(candidate)
                stats.evidence_found += 1
                if candidate.answer == Answer.YES:
                    stats.compliant_answers += 1
                elif candidate.answer == Answer.NO:
                    stats.non_compliant_answers += 1

            if index < len(judge_batches) - 1:
                await sleep_ms(self.judge_pause_ms)

        candidates.sort(key=evidence_sort_key)
        logger.info(
            "Question %s processed in %dms with %d evidence items",
            question.id,
            _elapsed_ms(start),
            len(candidates),
        )
        return candidates

    async def _fetch_texts(
        self,
        descriptors: Sequence[ScoredDocument],
        stats: ProcessingStats,
    ) -> List[Optional[str]]:
        texts: List[Optional[str]] = []
        batches = create_batches(list(descriptors), self.download_batch_size)
        for index, batch in enumerate(batches):
            settled = await settle_all(self._fetch_text(doc, stats) for doc in batch)
            for doc, outcome in zip(batch, settled):
                if outcome.ok and outcome.value:
                    texts.append(outcome.value)
                else:
                    if not outcome.ok:
                        logger.error("Failed to download %s: %s", doc.name, outcome.error)
                    stats.failed_downloads += 1
                    texts.append(None)

            if index < len(batches) - 1:
                await sleep_ms(self.download_pause_ms)
        return texts

    async def _fetch_text(self, descriptor: DocumentDescriptor, stats: ProcessingStats) -> Optional[str]:
        cached = self.text_cache.get(descriptor.key)
        if cached is not None:
            logger.debug("Cache hit for %s", descriptor.name)
            stats.cache_hits += 1
            return cached

        text = await self.content.fetch_text(descriptor)
        if text:
            self.text_cache.set(descriptor.key, text)
        return text

    @staticmethod
    def judgment_key(question: Question, document_text: str) -> str:
        return f"{stable_hash(question.text)}:{stable_hash(document_text[:1000])}"

    async def _judge_with_cache(
        self,
        question: Question,
        document_text: str,
        descriptor: ScoredDocument,
        stats: ProcessingStats,
    ) -> Optional[EvidenceCandidate]:
        key = self.judgment_key(question, document_text)
        cached = self.judgment_cache.get(key)
        if cached is not None:
            logger.debug("Analysis cache hit for %s", descriptor.name)
            stats.cache_hits += 1
            if cached.candidate is None:
                return None
            return cached.candidate.model_copy(
                update={
                    "doc_name": descriptor.name,
                    "subfolder": descriptor.subfolder,
                    "score": descriptor.score,
                }
            )

        candidate = await self.judge.judge(question, document_text, descriptor)
        self.judgment_cache.set(key, CachedJudgment(candidate))
        return candidate

    def get_cache_stats(self) -> Dict[str, object]:
        return {
            "document_text": self.text_cache.stats(),
            "judgments": self.judgment_cache.stats(),
        }

    def clear_cache(self) -> None:
        self.text_cache.clear()
        self.judgment_cache.clear()
        logger.info("Orchestrator caches cleared")
