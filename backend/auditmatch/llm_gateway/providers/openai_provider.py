# -*- coding: utf-8 -*-
"""
审计证据匹配 AuditMatch - 合规问题与政策文档的并发证据匹配系统
AuditMatch - Concurrent Compliance Evidence Matching System

Copyright © 2025-2026 WenShape Team
License: PolyForm Noncommercial License 1.0.0

模块说明 / Module Description:
  OpenAI 兼容提供商适配器（OpenAI、DeepSeek 及其他兼容端点）
  OpenAI-compatible Provider - BaseLLMProvider over the async OpenAI SDK; ``base_url``
  selects any compatible endpoint.
"""

from typing import Any, Dict, List, Optional

from openai import AsyncOpenAI

from auditmatch.llm_gateway.providers.base import BaseLLMProvider


class OpenAIProvider(BaseLLMProvider):
    """OpenAI 兼容提供商 / OpenAI-compatible chat completions provider"""

    def __init__(
        self,
        api_key: str,
        model: str = "gpt-4o-mini",
        max_tokens: int = 8000,
        temperature: float = 0.2,
        base_url: Optional[str] = None,
        client: Optional[AsyncOpenAI] = None,
    ):
        super().__init__(api_key, model, max_tokens, temperature)
        self.base_url = base_url
        self.client = client or AsyncOpenAI(api_key=api_key, base_url=base_url)

    async def chat(
        self,
        messages: List[Dict[str, str]],
        temperature: Optional[float] = None,
        max_tokens: Optional[int] = None
    ) -> Dict[str, Any]:
        response = await self.client.chat.completions.create(
            model=self.model,
            messages=messages,
            temperature=self.temperature if temperature is None else temperature,
            max_tokens=max_tokens or self.max_tokens,
        )

        choice = response.choices[0]
        usage = response.usage
        return {
            "content": choice.message.content or "",
            "usage": {
                "prompt_tokens": usage.prompt_tokens if usage else 0,
                "completion_tokens": usage.completion_tokens if usage else 0,
                "total_tokens": usage.total_tokens if usage else 0,
            },
            "model": response.model,
            "finish_reason": choice.finish_reason,
        }

    def get_provider_name(self) -> str:
        return "openai"
