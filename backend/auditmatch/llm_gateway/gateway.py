# -*- coding: utf-8 -*-
"""
审计证据匹配 AuditMatch - 合规问题与政策文档的并发证据匹配系统
AuditMatch - Concurrent Compliance Evidence Matching System

Copyright © 2025-2026 WenShape Team
License: PolyForm Noncommercial License 1.0.0

模块说明 / Module Description:
  LLM网关 - 包装具体提供商，暴露 prompt -> 文本 的统一调用
  LLM Gateway - Wraps the configured provider and exposes a prompt-to-text call.
"""

from typing import Any, Dict, List, Optional

from auditmatch.config import Settings
from auditmatch.exceptions import UpstreamServiceError, ValidationError
from auditmatch.llm_gateway.providers import AnthropicProvider, BaseLLMProvider, OpenAIProvider
from auditmatch.utils.logger import get_logger

logger = get_logger(__name__)


def create_provider(settings: Settings) -> BaseLLMProvider:
    """
    根据配置创建提供商 / Build the provider named by ``settings.llm_provider``

    Raises:
        ValidationError: 未知提供商 / Unknown provider name
    """
    name = (settings.llm_provider or "").lower()
    if name == "anthropic":
        return AnthropicProvider(
            api_key=settings.anthropic_api_key,
            model=settings.llm_model or "claude-3-5-sonnet-20241022",
            max_tokens=settings.llm_max_tokens,
            temperature=settings.llm_temperature,
        )
    if name in {"openai", "openai_compatible", "deepseek"}:
        return OpenAIProvider(
            api_key=settings.openai_api_key,
            model=settings.llm_model or "gpt-4o-mini",
            max_tokens=settings.llm_max_tokens,
            temperature=settings.llm_temperature,
            base_url=settings.openai_base_url or None,
        )
    raise ValidationError(f"Unknown LLM provider: {settings.llm_provider}")


class LLMGateway:
    """
    LLM网关 / LLM gateway

    Attributes:
        provider: 当前提供商 / Active provider
    """

    def __init__(self, provider: BaseLLMProvider):
        self.provider = provider

    async def chat(
        self,
        messages: List[Dict[str, str]],
        temperature: Optional[float] = None,
        max_tokens: Optional[int] = None,
    ) -> Dict[str, Any]:
        return await self.provider.chat(messages, temperature=temperature, max_tokens=max_tokens)

    async def generate(self, prompt: str, system_prompt: Optional[str] = None) -> str:
        """
        发送单条提示并返回文本 / Send one prompt and return the response text

        Raises:
            UpstreamServiceError: 响应为空 / Empty response
        """
        messages = []
        if system_prompt:
            messages.append({"role": "system", "content": system_prompt})
        messages.append({"role": "user", "content": prompt})

        result = await self.chat(messages)
        content = result.get("content", "") if isinstance(result, dict) else str(result or "")
        if not content:
            raise UpstreamServiceError(
                f"No response received from {self.provider.get_provider_name()} API"
            )
        usage = result.get("usage", {}) if isinstance(result, dict) else {}
        logger.debug(
            "LLM call completed: provider=%s tokens=%s",
            self.provider.get_provider_name(),
            usage.get("total_tokens"),
        )
        return content
