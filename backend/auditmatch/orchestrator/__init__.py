"""
Orchestrator / 编排器
Question -> document -> judgment pipeline
问题 -> 文档 -> 判断 流水线
"""

from .orchestrator import BatchOrchestrator

__all__ = ["BatchOrchestrator"]
