"""
Audit question models.
"""

from typing import Any, List, Union

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, field_validator


def _coerce_keywords(value: Any) -> List[str]:
    if value is None:
        return []
    if isinstance(value, str):
        return [part.strip() for part in value.split(",") if part.strip()]
    return [str(item).strip() for item in value if str(item).strip()]


class Question(BaseModel):
    """Audit question extracted from an uploaded document. Immutable once built."""

    model_config = ConfigDict(frozen=True)

    id: Union[int, str] = Field(..., description="Unique within one processing run")
    text: str = Field(..., description="Full compliance question")
    category: str = Field(default="Other", description="Open category label")
    keywords: List[str] = Field(default_factory=list, description="Search keywords")
    description: str = Field(default="", description="What the question verifies")
    requires_evidence: bool = Field(
        default=True,
        validation_alias=AliasChoices("requires_evidence", "requiresEvidence"),
    )

    @field_validator("keywords", mode="before")
    @classmethod
    def _keywords(cls, value: Any) -> List[str]:
        return _coerce_keywords(value)

    @field_validator("text", "category", "description", mode="before")
    @classmethod
    def _stringify(cls, value: Any) -> str:
        return "" if value is None else str(value)
