"""
Evidence models.
"""

from enum import Enum
from typing import Optional

from pydantic import BaseModel, Field


class Answer(str, Enum):
    """Compliance answer a document gives to a question."""

    YES = "yes"
    NO = "no"
    PARTIAL = "partial"


class Confidence(str, Enum):
    """How directly the evidence answers the question."""

    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"


class EvidenceCandidate(BaseModel):
    """Structured judgment that one document does or does not satisfy a question."""

    doc_name: str = Field(..., description="Document file name")
    subfolder: str = Field(..., description="Category folder of the document")
    answer: Answer
    evidence: str = Field(default="", description="Verbatim excerpt from the document")
    page_reference: Optional[str] = None
    confidence: Confidence
    explanation: str = ""
    score: int = Field(default=0, description="Relevance score carried over from ranking")
