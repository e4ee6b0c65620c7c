# -*- coding: utf-8 -*-
"""
审计证据匹配 AuditMatch - 合规问题与政策文档的并发证据匹配系统
AuditMatch - Concurrent Compliance Evidence Matching System

Copyright © 2025-2026 WenShape Team
License: PolyForm Noncommercial License 1.0.0

模块说明 / Module Description:
  静态政策索引 - 启动时从 JSON 或 YAML 文件加载一次文档描述符列表
  Static policy index - Loads the descriptor list once at startup from a JSON or YAML file.

文件格式 / File format:
  [{"subfolder": "...", "pdf_name": "...", "category": "...",
    "keywords": [...], "short_description": "..."}]
"""

import json
from pathlib import Path
from typing import List, Optional

import aiofiles
import yaml
from pydantic import ValidationError as PydanticValidationError

from auditmatch.exceptions import NotFoundError, UpstreamServiceError, ValidationError
from auditmatch.schemas.policy import DocumentDescriptor
from auditmatch.utils.logger import get_logger

logger = get_logger(__name__)


class PolicyIndex:
    """
    政策索引 / Policy index holder

    Attributes:
        path: 索引文件路径 / Index file path
        descriptors: 已加载的描述符 / Loaded descriptors
        is_loaded: 是否已加载 / Whether a load succeeded
    """

    def __init__(self, path: str):
        self.path = Path(path)
        self.descriptors: List[DocumentDescriptor] = []
        self.is_loaded = False
        self.last_error: Optional[str] = None

    async def load(self) -> List[DocumentDescriptor]:
        """
        加载索引文件

        Raises:
            NotFoundError: 文件不存在 / File missing
            ValidationError: 内容不是描述符数组 / Content is not a list of descriptors
        """
        self.descriptors = []
        self.is_loaded = False
        logger.info("Loading policy index from: %s", self.path)

        if not self.path.is_file():
            self.last_error = f"Policy index file not found at: {self.path}"
            raise NotFoundError(self.last_error)

        async with aiofiles.open(self.path, "r", encoding="utf-8") as f:
            raw = await f.read()

        try:
            if self.path.suffix.lower() in {".yaml", ".yml"}:
                data = yaml.safe_load(raw)
            else:
                data = json.loads(raw)
        except (ValueError, yaml.YAMLError) as exc:
            self.last_error = f"Failed to parse policy index: {exc}"
            raise ValidationError(self.last_error) from exc

        if not isinstance(data, list):
            self.last_error = "Policy index file must contain an array of policies"
            raise ValidationError(self.last_error)

        descriptors = []
        for position, entry in enumerate(data):
            try:
                descriptors.append(DocumentDescriptor.model_validate(entry))
            except PydanticValidationError as exc:
                logger.warning("Skipping policy index entry %d: %s", position, exc)

        self.descriptors = descriptors
        self.is_loaded = True
        self.last_error = None
        logger.info("Loaded %d policies from index", len(descriptors))
        return descriptors

    def get(self) -> List[DocumentDescriptor]:
        """
        获取已加载的索引

        Raises:
            UpstreamServiceError: 索引未加载 / Index not loaded
        """
        if not self.is_loaded:
            raise UpstreamServiceError("Policy index not loaded")
        return self.descriptors

    @property
    def count(self) -> int:
        return len(self.descriptors) if self.is_loaded else 0
