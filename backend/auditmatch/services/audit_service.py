# -*- coding: utf-8 -*-
"""
审计证据匹配 AuditMatch - 合规问题与政策文档的并发证据匹配系统
AuditMatch - Concurrent Compliance Evidence Matching System

Copyright © 2025-2026 WenShape Team
License: PolyForm Noncommercial License 1.0.0

模块说明 / Module Description:
  审计处理服务 - 文档处理入口：PDF 文本 -> 问题 -> 证据 -> 带 meta 的响应
  Audit Service - Document processing entry point: PDF text -> questions -> evidence -> response with meta.
"""

import time
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from auditmatch.agents.question_extractor import QuestionExtractorAgent
from auditmatch.exceptions import AuditMatchError, ValidationError
from auditmatch.llm_gateway.dispatcher import RequestDispatcher
from auditmatch.orchestrator.orchestrator import BatchOrchestrator
from auditmatch.schemas.process import ProcessResult
from auditmatch.services.content_service import ContentService
from auditmatch.services.pdf_service import extract_pdf_text_async, validate_pdf_upload
from auditmatch.services.policy_index import PolicyIndex
from auditmatch.services.relevance_service import RelevanceService
from auditmatch.utils.logger import get_logger

logger = get_logger(__name__)


class AuditService:
    """
    审计处理服务 / Audit processing service

    Attributes:
        policy_index: 静态政策索引 / Static policy index
        content: 文档内容服务 / Content service
        extractor: 问题抽取智能体 / Question extractor
        orchestrator: 批处理编排器 / Batch orchestrator
        startup_errors: 启动阶段记录的错误 / Errors recorded during startup
    """

    def __init__(
        self,
        policy_index: PolicyIndex,
        content: ContentService,
        ranker: RelevanceService,
        dispatcher: RequestDispatcher,
        extractor: QuestionExtractorAgent,
        orchestrator: BatchOrchestrator,
        max_upload_size: int = 10 * 1024 * 1024,
    ):
        self.policy_index = policy_index
        self.content = content
        self.ranker = ranker
        self.dispatcher = dispatcher
        self.extractor = extractor
        self.orchestrator = orchestrator
        self.max_upload_size = max_upload_size
        self.startup_errors: List[str] = []

    async def startup(self) -> None:
        """
        启动预热 / Startup warm-up

        Loads the policy index, builds the folder mapping and preloads
        identifier resolutions. Failures are logged and recorded, never raised,
        so the API can still report them through the health endpoint.
        """
        self.startup_errors = []
        try:
            await self.policy_index.load()
        except AuditMatchError as exc:
            logger.error("Error loading policy index: %s", exc.message)
            self.startup_errors.append(exc.message)
            return

        try:
            await self.content.build_folder_mapping()
            await self.content.preload_identifiers(self.policy_index.descriptors)
        except AuditMatchError as exc:
            logger.error("Error preparing document store: %s", exc.message)
            self.startup_errors.append(exc.message)

    async def process_pdf(
        self,
        data: bytes,
        filename: Optional[str],
        content_type: Optional[str] = None,
    ) -> ProcessResult:
        """
        处理上传的PDF / Process an uploaded PDF

        Raises:
            ValidationError: 文件无效或无法抽取文本 / Invalid file or no readable text
        """
        validate_pdf_upload(filename, content_type, len(data or b""), self.max_upload_size)
        text = await extract_pdf_text_async(data)
        if not text.strip():
            raise ValidationError("Could not extract readable text from PDF")
        logger.info("Extracted %d characters from %s", len(text), filename)
        return await self.process_document(text, filename or "document.pdf")

    async def process_document(self, text: str, filename: str) -> ProcessResult:
        """
        处理文档文本 / Process document text

        Raises:
            ValidationError: 文本为空或未找到问题 / Blank text or no questions found
            UpstreamServiceError: 索引未加载、存储不可达或抽取失败 / Index not loaded,
                store unreachable or extraction failed
        """
        if not text or not text.strip():
            raise ValidationError("Could not extract readable text from PDF")

        start = time.perf_counter()
        document_index = self.policy_index.get()
        await self.content.ensure_folder_mapping()

        logger.info("Processing audit questions from: %s", filename)
        questions = await self.extractor.extract_questions(text, filename)
        if not questions:
            raise ValidationError("No audit questions found in the PDF")
        logger.info("Extracted %d questions", len(questions))

        evidence_by_question, stats = await self.orchestrator.process(questions, document_index)

        total_ms = int((time.perf_counter() - start) * 1000)
        stats.total_processing_time_ms = total_ms
        stats.average_time_per_question_ms = round(total_ms / len(questions))

        meta: Dict[str, Any] = {
            "original_filename": filename,
            "questions_count": len(questions),
            "policy_index_count": len(document_index),
            "processed_at": datetime.now(timezone.utc).isoformat(),
            "processing_stats": stats.model_dump(),
            "performance": {
                "total_time_ms": total_ms,
                "download_time_ms": stats.download_time_ms,
                "analysis_time_ms": stats.analysis_time_ms,
                "cache_stats": self.orchestrator.get_cache_stats(),
            },
            "store_integration": {
                "store": self.content.store.get_store_name(),
                "subfolders_mapping": dict(self.content.folder_mapping),
            },
        }

        logger.info(
            "Processing complete in %dms: %d/%d questions, %d YES, %d NO",
            total_ms,
            stats.questions_processed,
            stats.total_questions,
            stats.compliant_answers,
            stats.non_compliant_answers,
        )
        return ProcessResult(questions=questions, evidence_by_question=evidence_by_question, meta=meta)

    async def get_status(self) -> Dict[str, Any]:
        """Health snapshot: index state, store connectivity, cache sizes and queue depths."""
        store_status = "disconnected"
        store_error = None
        try:
            # bypass the folder cache so an outage shows up immediately
            await self.content.store.list_folders(self.content.root_folder_id)
            store_status = "connected"
        except Exception as exc:
            store_error = str(exc)

        return {
            "status": "healthy",
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "services": {
                "policy_index": "loaded" if self.policy_index.is_loaded else "not loaded",
                "policy_count": self.policy_index.count,
                "llm_provider": self.dispatcher.gateway.provider.get_provider_name(),
                "document_store": store_status,
                "store_error": store_error,
                "subfolders_mapping": dict(self.content.folder_mapping) if store_status == "connected" else None,
                "startup_errors": list(self.startup_errors),
            },
            "performance": {
                "cache_stats": self.orchestrator.get_cache_stats(),
                "relevance_stats": self.ranker.get_stats(),
                "content_stats": self.content.get_stats(),
                "dispatcher_stats": self.dispatcher.get_queue_stats(),
                "concurrency_limits": self.orchestrator.concurrency_limits,
            },
        }

    def clear_caches(self) -> None:
        self.orchestrator.clear_cache()
        self.ranker.clear_cache()
        self.content.clear_caches()
        logger.info("All caches cleared")
