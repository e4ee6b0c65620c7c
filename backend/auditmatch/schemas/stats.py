"""
Processing statistics model.
"""

from pydantic import BaseModel


class ProcessingStats(BaseModel):
    """Counters accumulated by the orchestrator during one run; read-only afterwards."""

    total_questions: int = 0
    questions_processed: int = 0
    failed_questions: int = 0
    documents_checked: int = 0
    evidence_found: int = 0
    compliant_answers: int = 0
    non_compliant_answers: int = 0
    cache_hits: int = 0
    failed_downloads: int = 0
    failed_analyses: int = 0
    download_time_ms: int = 0
    analysis_time_ms: int = 0
    total_processing_time_ms: int = 0
    average_time_per_question_ms: int = 0
