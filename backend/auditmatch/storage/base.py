# -*- coding: utf-8 -*-
"""
审计证据匹配 AuditMatch - 合规问题与政策文档的并发证据匹配系统
AuditMatch - Concurrent Compliance Evidence Matching System

Copyright © 2025-2026 WenShape Team
License: PolyForm Noncommercial License 1.0.0

模块说明 / Module Description:
  文档存储抽象基类 - 远程对象列举/下载接口的统一定义
  Base Document Store - Narrow listing/download interface over a remote object store.
"""

from abc import ABC, abstractmethod
from typing import List

from auditmatch.schemas.store import FileEntry, FileMetadata, FolderEntry


class BaseDocumentStore(ABC):
    """
    文档存储抽象基类 / Abstract base class for document stores

    Implementations raise ``NotFoundError`` for unknown identifiers and
    ``UpstreamServiceError`` when the backing service cannot be reached.
    Caching is the caller's responsibility.
    """

    @abstractmethod
    async def list_folders(self, parent_id: str) -> List[FolderEntry]:
        """列出子文件夹 / List sub-folders of *parent_id*."""
        pass

    @abstractmethod
    async def list_files(self, folder_id: str) -> List[FileEntry]:
        """列出文件夹中的PDF文件 / List PDF files in *folder_id*."""
        pass

    @abstractmethod
    async def get_bytes(self, file_id: str) -> bytes:
        """下载文件内容 / Download the raw bytes of *file_id*."""
        pass

    @abstractmethod
    async def get_metadata(self, file_id: str) -> FileMetadata:
        """获取文件元数据 / Fetch metadata of *file_id*."""
        pass

    @abstractmethod
    def get_store_name(self) -> str:
        """获取存储名称 / Get store name (e.g., 'local', 's3')."""
        pass
