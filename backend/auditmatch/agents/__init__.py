"""
Reasoning Agents / 推理智能体
Question extraction and evidence judgment
问题抽取与证据判断
"""

from .base import BaseAgent
from .evidence_judge import EvidenceJudgeAgent
from .question_extractor import QuestionExtractorAgent

__all__ = [
    "BaseAgent",
    "EvidenceJudgeAgent",
    "QuestionExtractorAgent",
]
