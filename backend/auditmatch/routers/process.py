"""
Process Router
Audit document processing, health and cache endpoints.
"""

from typing import Any, Dict, Optional

from fastapi import APIRouter, Depends, File, UploadFile

from auditmatch.dependencies import get_audit_service
from auditmatch.exceptions import ValidationError
from auditmatch.schemas.process import ProcessResult
from auditmatch.services.audit_service import AuditService

router = APIRouter(tags=["process"])


@router.post("/process", response_model=ProcessResult)
async def process_audit_questions(
    file: Optional[UploadFile] = File(None),
    service: AuditService = Depends(get_audit_service),
) -> ProcessResult:
    """Upload an audit PDF and match its questions against the policy corpus."""
    if file is None:
        raise ValidationError("No PDF file uploaded")
    try:
        data = await file.read()
    finally:
        await file.close()
    return await service.process_pdf(data, file.filename, file.content_type)


@router.get("/health")
async def health_check(service: AuditService = Depends(get_audit_service)) -> Dict[str, Any]:
    """Service status with cache sizes and queue depths."""
    return await service.get_status()


@router.post("/cache/clear")
async def clear_cache(service: AuditService = Depends(get_audit_service)) -> Dict[str, Any]:
    service.clear_caches()
    return {"success": True, "cleared": True, "message": "Cache cleared successfully"}
