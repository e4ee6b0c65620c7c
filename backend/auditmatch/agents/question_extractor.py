# -*- coding: utf-8 -*-
"""
审计证据匹配 AuditMatch - 合规问题与政策文档的并发证据匹配系统
AuditMatch - Concurrent Compliance Evidence Matching System

Copyright © 2025-2026 WenShape Team
License: PolyForm Noncommercial License 1.0.0

模块说明 / Module Description:
  问题抽取智能体 - 从审计文档文本中抽取结构化合规问题
  Question Extractor Agent - Extracts structured compliance questions from audit document text.

分块策略 / Chunking:
  - 文本 <= 60000 字符：单次调用，超过 30000 的部分截断
    Up to 60,000 chars: one call, truncated to 30,000 chars
  - 更长文本：按 30000 字符分块，优先在 70% 之后的问号处断开，两块一组并行
    Longer text: 30,000-char chunks preferring a '?' boundary past 70%, processed two at a time
"""

from typing import Any, Dict, List, Optional

from pydantic import ValidationError as PydanticValidationError

from auditmatch.agents.base import BaseAgent
from auditmatch.llm_gateway.dispatcher import RequestDispatcher
from auditmatch.prompts import question_extraction_prompt
from auditmatch.schemas.question import Question
from auditmatch.utils.concurrency import create_batches, settle_all, sleep_ms
from auditmatch.utils.llm_output import parse_questions_payload
from auditmatch.utils.logger import get_logger

logger = get_logger(__name__)

TRUNCATION_MARKER = "...[truncated]"


def split_text_into_chunks(text: str, chunk_size: int) -> List[str]:
    """
    切分长文本

    Split *text* into chunks of about *chunk_size* characters. A chunk ends just
    after the last ``?`` at or before the target end when that ``?`` lies past
    70% of the chunk; otherwise it is cut at exactly *chunk_size*.

    Example:
        >>> split_text_into_chunks("a" * 25, 10)
        ['aaaaaaaaaa', 'aaaaaaaaaa', 'aaaaa']
    """
    chunks = []
    start = 0
    while start < len(text):
        end = start + chunk_size
        if end < len(text):
            question_break = text.rfind("?", start, end + 1)
            if question_break > start + chunk_size * 0.7:
                end = question_break + 1
        chunks.append(text[start:end])
        start = end
    return chunks


class QuestionExtractorAgent(BaseAgent):
    """
    问题抽取智能体 / Question extractor agent

    Attributes:
        max_chunk_chars: 单块字符上限 / Target chunk size
        chunk_group_size: 并行块数 / Chunks processed concurrently
        chunk_pause_ms: 组间暂停，None 时使用调度器的自适应延迟
            Pause between groups; ``None`` uses the dispatcher's adaptive delay
    """

    def __init__(
        self,
        dispatcher: RequestDispatcher,
        config: Optional[Dict[str, Any]] = None,
        max_chunk_chars: int = 30000,
        chunk_group_size: int = 2,
        chunk_pause_ms: Optional[float] = None,
    ):
        super().__init__(dispatcher, config)
        self.max_chunk_chars = max_chunk_chars
        self.chunk_group_size = chunk_group_size
        self.chunk_pause_ms = chunk_pause_ms

    def get_agent_name(self) -> str:
        return "question_extraction"

    async def extract_questions(self, document_text: str, label: str) -> List[Question]:
        """
        抽取合规问题

        Extract questions from *document_text*. Ids are renumbered 1..n across
        the merged result.

        Raises:
            UpstreamServiceError: 单次调用失败 / Single-call path failed
            DataIntegrityError: 单次调用响应无法解析 / Single-call response unrecoverable
        """
        if not document_text or not document_text.strip():
            return []

        if len(document_text) > self.max_chunk_chars * 2:
            logger.info("Document is very large, processing in chunks")
            questions = await self._extract_in_chunks(document_text, label)
        else:
            text = document_text
            if len(text) > self.max_chunk_chars:
                text = text[: self.max_chunk_chars] + TRUNCATION_MARKER
            questions = await self._process_chunk(text, label, 1, 1)

        return [q.model_copy(update={"id": index}) for index, q in enumerate(questions, start=1)]

    async def _extract_in_chunks(self, document_text: str, label: str) -> List[Question]:
        chunks = split_text_into_chunks(document_text, self.max_chunk_chars)
        groups = create_batches(list(enumerate(chunks, start=1)), self.chunk_group_size)
        logger.info("Processing %d chunks in %d groups", len(chunks), len(groups))

        collected: List[Question] = []
        for group_index, group in enumerate(groups):
            settled = await settle_all(
                self._process_chunk(chunk, label, number, len(chunks)) for number, chunk in group
            )
            for (number, _), outcome in zip(group, settled):
                if outcome.ok:
                    collected.extend(outcome.value)
                else:
                    logger.error("Chunk %d/%d processing failed: %s", number, len(chunks), outcome.error)

            if group_index < len(groups) - 1:
                pause = self.dispatcher.adaptive_delay_ms if self.chunk_pause_ms is None else self.chunk_pause_ms
                await sleep_ms(pause)

        logger.info("Extracted %d questions from %d chunks", len(collected), len(chunks))
        return collected

    async def _process_chunk(self, text: str, label: str, number: int, total: int) -> List[Question]:
        chunk_info = f" (chunk {number}/{total})" if total > 1 else ""
        prompt = question_extraction_prompt(text, label, chunk_info)
        raw = await self.call_llm(prompt)
        items = parse_questions_payload(raw)

        questions = []
        for item in items:
            try:
                questions.append(Question.model_validate(item))
            except PydanticValidationError as exc:
                logger.warning("Skipping malformed question%s: %s", chunk_info, exc)
        return questions
