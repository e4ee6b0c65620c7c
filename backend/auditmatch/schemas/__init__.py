"""
Pydantic Data Models / Pydantic 数据模型
Define data structures for API and internal use / 定义 API 和内部使用的数据结构
"""

from .question import Question
from .policy import DocumentDescriptor, ScoredDocument
from .evidence import Answer, Confidence, EvidenceCandidate
from .stats import ProcessingStats
from .store import FileEntry, FileMetadata, FolderEntry
from .process import ProcessResult

__all__ = [
    "Question",
    "DocumentDescriptor",
    "ScoredDocument",
    "Answer",
    "Confidence",
    "EvidenceCandidate",
    "ProcessingStats",
    "FileEntry",
    "FileMetadata",
    "FolderEntry",
    "ProcessResult",
]
