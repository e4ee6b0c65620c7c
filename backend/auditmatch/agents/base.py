# -*- coding: utf-8 -*-
"""
审计证据匹配 AuditMatch - 合规问题与政策文档的并发证据匹配系统
AuditMatch - Concurrent Compliance Evidence Matching System

Copyright © 2025-2026 WenShape Team
License: PolyForm Noncommercial License 1.0.0

模块说明 / Module Description:
  智能体基类 - 所有推理调用都经由共享的请求调度器
  Base Agent - Every reasoning call goes through the shared request dispatcher.
"""

from abc import ABC, abstractmethod
from typing import Any, Dict, Optional

from auditmatch.llm_gateway.dispatcher import RequestDispatcher


class BaseAgent(ABC):
    """
    智能体基类 / Base class for reasoning agents

    Attributes:
        dispatcher: 共享调度器 / Shared request dispatcher
        config: 智能体调优参数 / Agent tuning knobs
    """

    def __init__(self, dispatcher: RequestDispatcher, config: Optional[Dict[str, Any]] = None):
        self.dispatcher = dispatcher
        self.config = config or {}

    @abstractmethod
    def get_agent_name(self) -> str:
        """智能体名称 / Agent name used as the request type."""

    async def call_llm(self, prompt: str, request_type: Optional[str] = None) -> str:
        return await self.dispatcher.submit(prompt, request_type or self.get_agent_name())
