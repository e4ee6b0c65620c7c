"""
LLM Providers / 大模型提供商
"""

from .anthropic_provider import AnthropicProvider
from .base import BaseLLMProvider
from .openai_provider import OpenAIProvider

__all__ = ["BaseLLMProvider", "AnthropicProvider", "OpenAIProvider"]
