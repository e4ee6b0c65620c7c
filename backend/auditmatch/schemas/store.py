"""
Document store records.
"""

from typing import Optional

from pydantic import BaseModel


class FolderEntry(BaseModel):
    """A folder listed by the document store."""

    id: str
    name: str


class FileEntry(BaseModel):
    """A file listed inside a folder."""

    id: str
    name: str
    size: Optional[int] = None


class FileMetadata(BaseModel):
    """Metadata of one stored file."""

    id: str
    name: str
    size: Optional[int] = None
    mime_type: Optional[str] = None
    modified_time: Optional[str] = None
