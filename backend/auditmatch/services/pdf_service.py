# -*- coding: utf-8 -*-
"""
审计证据匹配 AuditMatch - 合规问题与政策文档的并发证据匹配系统
AuditMatch - Concurrent Compliance Evidence Matching System

Copyright © 2025-2026 WenShape Team
License: PolyForm Noncommercial License 1.0.0

模块说明 / Module Description:
  PDF 文本抽取 - 使用 PyMuPDF 从字节内容抽取纯文本，并校验上传文件
  PDF text extraction - Extract plain text from PDF bytes with PyMuPDF and validate uploads.
"""

import asyncio
from typing import Optional

import fitz  # PyMuPDF

from auditmatch.exceptions import ValidationError
from auditmatch.utils.text import clean_text

PDF_MIME_TYPES = {"application/pdf", "application/x-pdf"}


def _extract_pages(data: bytes) -> str:
    doc = fitz.open(stream=data, filetype="pdf")
    try:
        parts = []
        for i in range(doc.page_count):
            page = doc.load_page(i)
            parts.append(page.get_text("text"))
        return "\n".join(parts)
    finally:
        doc.close()


def extract_pdf_text(data: bytes) -> str:
    """
    从PDF字节抽取规范化文本

    Extract normalized text (control characters stripped, whitespace collapsed).

    Raises:
        ValidationError: 内容不是可解析的PDF / Content is not a parseable PDF
    """
    if not data:
        return ""
    try:
        raw = _extract_pages(data)
    except (RuntimeError, ValueError) as exc:  # FileDataError subclasses RuntimeError
        raise ValidationError(f"Failed to extract text from PDF: {exc}") from exc
    return clean_text(raw)


async def extract_pdf_text_async(data: bytes) -> str:
    """Run :func:`extract_pdf_text` in a worker thread."""
    return await asyncio.to_thread(extract_pdf_text, data)


def validate_pdf_upload(
    filename: Optional[str],
    content_type: Optional[str],
    size: int,
    max_size: int,
) -> None:
    """
    校验上传的PDF文件

    Validate an uploaded PDF by content type (or extension) and size.

    Raises:
        ValidationError: 文件缺失、类型错误或过大 / Missing, wrong type or too large
    """
    if not filename and not size:
        raise ValidationError("No PDF file provided")

    is_pdf_type = (content_type or "").lower() in PDF_MIME_TYPES
    is_pdf_name = (filename or "").lower().endswith(".pdf")
    if not (is_pdf_type or is_pdf_name):
        raise ValidationError("Invalid file type. Only PDF files are allowed")

    if size > max_size:
        raise ValidationError(
            f"File size too large. Maximum size is {max_size // (1024 * 1024)}MB"
        )
    if size == 0:
        raise ValidationError("Uploaded file is empty")
