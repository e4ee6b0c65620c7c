"""
Document processing response model.
"""

from typing import Any, Dict, List

from pydantic import BaseModel, Field

from auditmatch.schemas.evidence import EvidenceCandidate
from auditmatch.schemas.question import Question


class ProcessResult(BaseModel):
    """Questions extracted from one document and the ranked evidence per question."""

    questions: List[Question]
    evidence_by_question: Dict[str, List[EvidenceCandidate]] = Field(default_factory=dict)
    meta: Dict[str, Any] = Field(default_factory=dict)
