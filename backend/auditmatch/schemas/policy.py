"""
Policy index models.
"""

from typing import Any, List

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, field_validator

from auditmatch.schemas.question import _coerce_keywords


class DocumentDescriptor(BaseModel):
    """Static metadata identifying a reference document without its content."""

    model_config = ConfigDict(frozen=True)

    subfolder: str = Field(..., description="Category folder name in the document store")
    name: str = Field(
        ...,
        validation_alias=AliasChoices("name", "pdf_name"),
        description="Document file name",
    )
    category: str = Field(default="Other")
    keywords: List[str] = Field(default_factory=list)
    description: str = Field(
        default="",
        validation_alias=AliasChoices("description", "short_description"),
    )

    @field_validator("keywords", mode="before")
    @classmethod
    def _keywords(cls, value: Any) -> List[str]:
        return _coerce_keywords(value)

    @field_validator("category", "description", mode="before")
    @classmethod
    def _stringify(cls, value: Any) -> str:
        return "" if value is None else str(value)

    @property
    def key(self) -> str:
        """Stable lookup key: ``subfolder/name``."""
        return f"{self.subfolder}/{self.name}"


class ScoredDocument(DocumentDescriptor):
    """Descriptor plus the relevance score computed for one question."""

    score: int = 0
