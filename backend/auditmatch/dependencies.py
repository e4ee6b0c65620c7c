# -*- coding: utf-8 -*-
"""
审计证据匹配 AuditMatch - 合规问题与政策文档的并发证据匹配系统
AuditMatch - Concurrent Compliance Evidence Matching System

Copyright © 2025-2026 WenShape Team
License: PolyForm Noncommercial License 1.0.0

模块说明 / Module Description:
  依赖注入工厂 - FastAPI Depends() 工厂函数，统一创建并共享各组件实例
  Dependency Injection - FastAPI Depends() factories; every component is built once and shared.

设计原则 / Design Principles:
  Router 通过 Depends() 获取服务实例，测试中可通过 app.dependency_overrides 替换。
  Routers obtain services through Depends() so tests can override them.
  调优参数来自 config.yaml 的 pipeline / dispatcher / content_store / ranker 段。
  Tuning knobs come from the pipeline / dispatcher / content_store / ranker sections of config.yaml.
"""

from functools import lru_cache
from typing import Any, Dict

from auditmatch.agents.evidence_judge import EvidenceJudgeAgent
from auditmatch.agents.question_extractor import QuestionExtractorAgent
from auditmatch.config import config, settings
from auditmatch.exceptions import ValidationError
from auditmatch.llm_gateway.dispatcher import RequestDispatcher
from auditmatch.llm_gateway.gateway import LLMGateway, create_provider
from auditmatch.orchestrator.orchestrator import BatchOrchestrator
from auditmatch.services.audit_service import AuditService
from auditmatch.services.content_service import ContentService
from auditmatch.services.policy_index import PolicyIndex
from auditmatch.services.relevance_service import RelevanceService
from auditmatch.storage.base import BaseDocumentStore
from auditmatch.storage.local_store import LocalDocumentStore
from auditmatch.storage.s3_store import S3DocumentStore


def _section(name: str) -> Dict[str, Any]:
    return config.get(name) or {}


@lru_cache(maxsize=1)
def get_document_store() -> BaseDocumentStore:
    """
    获取文档存储单例 / Get the document store singleton

    Raises:
        ValidationError: 未知存储类型 / Unknown store type
    """
    kind = (settings.document_store or "").lower()
    if kind == "local":
        return LocalDocumentStore(settings.documents_root)
    if kind == "s3":
        return S3DocumentStore(
            bucket=settings.s3_bucket,
            prefix=settings.s3_prefix,
            region=settings.s3_region,
            endpoint_url=settings.s3_endpoint_url,
        )
    raise ValidationError(f"Unknown document store: {settings.document_store}")


@lru_cache(maxsize=1)
def get_policy_index() -> PolicyIndex:
    return PolicyIndex(settings.policy_index_path)


@lru_cache(maxsize=1)
def get_relevance_service() -> RelevanceService:
    ranker = _section("ranker")
    return RelevanceService(ttl_seconds=ranker.get("cache_ttl_seconds", 30 * 60))


@lru_cache(maxsize=1)
def get_content_service() -> ContentService:
    store_cfg = _section("content_store")
    return ContentService(
        get_document_store(),
        root_folder_id=settings.root_folder_id,
        max_concurrent_downloads=store_cfg.get("max_concurrent_downloads", 6),
        existence_chunk_size=store_cfg.get("existence_chunk_size", 10),
        existence_pause_ms=store_cfg.get("existence_pause_ms", 200),
    )


@lru_cache(maxsize=1)
def get_gateway() -> LLMGateway:
    return LLMGateway(create_provider(settings))


@lru_cache(maxsize=1)
def get_dispatcher() -> RequestDispatcher:
    dispatcher_cfg = _section("dispatcher")
    return RequestDispatcher(
        get_gateway(),
        max_concurrent=dispatcher_cfg.get("max_concurrent", 3),
        max_retries=dispatcher_cfg.get("max_retries", 3),
        base_delay_ms=dispatcher_cfg.get("base_delay_ms", 1000),
        initial_delay_ms=dispatcher_cfg.get("initial_delay_ms", 1000),
    )


@lru_cache(maxsize=1)
def get_question_extractor() -> QuestionExtractorAgent:
    pipeline = _section("pipeline")
    return QuestionExtractorAgent(
        get_dispatcher(),
        max_chunk_chars=pipeline.get("max_chunk_chars", 30000),
        chunk_group_size=pipeline.get("chunk_group_size", 2),
    )


@lru_cache(maxsize=1)
def get_evidence_judge() -> EvidenceJudgeAgent:
    pipeline = _section("pipeline")
    return EvidenceJudgeAgent(get_dispatcher(), excerpt_budget=pipeline.get("excerpt_budget", 18000))


@lru_cache(maxsize=1)
def get_orchestrator() -> BatchOrchestrator:
    pipeline = _section("pipeline")
    return BatchOrchestrator(
        get_relevance_service(),
        get_content_service(),
        get_evidence_judge(),
        question_batch_size=pipeline.get("question_batch_size", 3),
        question_pause_ms=pipeline.get("question_pause_ms", 1000),
        max_candidates=pipeline.get("max_candidates", 10),
        download_batch_size=pipeline.get("download_batch_size", 8),
        download_pause_ms=pipeline.get("download_pause_ms", 300),
        judge_batch_size=pipeline.get("judge_batch_size", 5),
        judge_pause_ms=pipeline.get("judge_pause_ms", 500),
        cache_ttl_seconds=pipeline.get("cache_ttl_seconds", 30 * 60),
    )


@lru_cache(maxsize=1)
def get_audit_service() -> AuditService:
    """
    获取审计服务单例 / Get the audit service singleton

    Wires every component together; all share the same dispatcher and content
    service instances.
    """
    return AuditService(
        policy_index=get_policy_index(),
        content=get_content_service(),
        ranker=get_relevance_service(),
        dispatcher=get_dispatcher(),
        extractor=get_question_extractor(),
        orchestrator=get_orchestrator(),
        max_upload_size=settings.max_upload_size,
    )
