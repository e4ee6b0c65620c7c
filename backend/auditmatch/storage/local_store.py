# -*- coding: utf-8 -*-
"""
审计证据匹配 AuditMatch - 合规问题与政策文档的并发证据匹配系统
AuditMatch - Concurrent Compliance Evidence Matching System

Copyright © 2025-2026 WenShape Team
License: PolyForm Noncommercial License 1.0.0

模块说明 / Module Description:
  本地文件系统文档存储 - 以目录为文件夹、以相对路径为文件标识符
  Local filesystem document store - Directories act as folders, relative POSIX paths as identifiers.
"""

import asyncio
import mimetypes
from datetime import datetime, timezone
from pathlib import Path
from typing import List

import aiofiles

from auditmatch.exceptions import NotFoundError, UpstreamServiceError
from auditmatch.schemas.store import FileEntry, FileMetadata, FolderEntry
from auditmatch.storage.base import BaseDocumentStore
from auditmatch.utils.path_safety import validate_path_within


class LocalDocumentStore(BaseDocumentStore):
    """
    本地文档存储 / Filesystem-backed document store

    The root folder id is the empty string; every other id is a path relative
    to ``root_dir``.
    """

    def __init__(self, root_dir: str, file_suffix: str = ".pdf"):
        self.root_dir = Path(root_dir)
        self.file_suffix = file_suffix.lower()

    def _resolve(self, identifier: str) -> Path:
        try:
            return validate_path_within(self.root_dir / (identifier or ""), self.root_dir)
        except ValueError as exc:
            raise NotFoundError(str(exc)) from exc

    def _relative_id(self, path: Path) -> str:
        return path.relative_to(self.root_dir.resolve()).as_posix()

    def _list_folders_sync(self, parent_id: str) -> List[FolderEntry]:
        parent = self._resolve(parent_id)
        if not parent.is_dir():
            raise UpstreamServiceError(f"Folder not reachable: {parent_id or self.root_dir}")
        folders = [p for p in parent.iterdir() if p.is_dir() and not p.name.startswith(".")]
        return [
            FolderEntry(id=self._relative_id(p), name=p.name)
            for p in sorted(folders, key=lambda p: p.name)
        ]

    def _list_files_sync(self, folder_id: str) -> List[FileEntry]:
        folder = self._resolve(folder_id)
        if not folder.is_dir():
            raise NotFoundError(f"Folder not found: {folder_id}")
        files = [
            p for p in folder.iterdir()
            if p.is_file() and p.suffix.lower() == self.file_suffix
        ]
        return [
            FileEntry(id=self._relative_id(p), name=p.name, size=p.stat().st_size)
            for p in sorted(files, key=lambda p: p.name)
        ]

    def _file_path_sync(self, file_id: str) -> Path:
        path = self._resolve(file_id)
        if not path.is_file():
            raise NotFoundError(f"File not found: {file_id}")
        return path

    def _get_metadata_sync(self, file_id: str) -> FileMetadata:
        path = self._file_path_sync(file_id)
        stat = path.stat()
        mime_type, _ = mimetypes.guess_type(path.name)
        return FileMetadata(
            id=file_id,
            name=path.name,
            size=stat.st_size,
            mime_type=mime_type,
            modified_time=datetime.fromtimestamp(stat.st_mtime, tz=timezone.utc).isoformat(),
        )

    # Directory scans and stat calls block, so they run in worker threads
    async def list_folders(self, parent_id: str) -> List[FolderEntry]:
        return await asyncio.to_thread(self._list_folders_sync, parent_id)

    async def list_files(self, folder_id: str) -> List[FileEntry]:
        return await asyncio.to_thread(self._list_files_sync, folder_id)

    async def get_bytes(self, file_id: str) -> bytes:
        path = await asyncio.to_thread(self._file_path_sync, file_id)
        async with aiofiles.open(path, "rb") as f:
            return await f.read()

    async def get_metadata(self, file_id: str) -> FileMetadata:
        return await asyncio.to_thread(self._get_metadata_sync, file_id)

    def get_store_name(self) -> str:
        return "local"
