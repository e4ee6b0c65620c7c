"""
LLM Gateway / 大模型网关
Providers, error classification and the request dispatcher
提供商、错误分类与请求调度器
"""

from .dispatcher import AdaptiveDelayController, RequestDispatcher, RequestRecord
from .gateway import LLMGateway, create_provider

__all__ = [
    "AdaptiveDelayController",
    "LLMGateway",
    "RequestDispatcher",
    "RequestRecord",
    "create_provider",
]
