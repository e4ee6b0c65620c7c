# -*- coding: utf-8 -*-
"""
审计证据匹配 AuditMatch - 合规问题与政策文档的并发证据匹配系统
AuditMatch - Concurrent Compliance Evidence Matching System

Copyright © 2025-2026 WenShape Team
License: PolyForm Noncommercial License 1.0.0

模块说明 / Module Description:
  文档内容服务 - 将政策描述符解析为存储标识符、下载字节并抽取文本，带多层 TTL 缓存与有界下载队列。
  Content service - Resolves policy descriptors to store identifiers, downloads bytes and extracts
  text, with multi-layer TTL caching and a bounded download queue.

缓存层 / Cache layers:
  - 文件夹列表 10 分钟 / folder listings 10 min
  - 文件列表 5 分钟 / per-folder file listings 5 min
  - 元数据 15 分钟 / metadata 15 min
  - 下载内容 30 分钟（仅 < 5MB） / downloaded bytes 30 min (payloads < 5 MB only)
  - 标识符解析 30 分钟 / identifier resolutions 30 min
"""

from __future__ import annotations

import asyncio
import time
from collections import defaultdict
from typing import Awaitable, Callable, Dict, List, Optional, Sequence

from auditmatch.exceptions import AuditMatchError, NotFoundError, UpstreamServiceError
from auditmatch.schemas.policy import DocumentDescriptor
from auditmatch.schemas.store import FileEntry, FileMetadata, FolderEntry
from auditmatch.services.pdf_service import extract_pdf_text_async
from auditmatch.storage.base import BaseDocumentStore
from auditmatch.storage.ttl_cache import TTLCache
from auditmatch.utils.concurrency import create_batches, settle_all, sleep_ms
from auditmatch.utils.logger import get_logger
from auditmatch.utils.text import strip_extension

logger = get_logger(__name__)

FOLDER_LIST_TTL = 10 * 60
FILE_LIST_TTL = 5 * 60
METADATA_TTL = 15 * 60
CONTENT_TTL = 30 * 60
IDENTIFIER_TTL = 30 * 60
MAX_CACHEABLE_BYTES = 5 * 1024 * 1024

TextExtractor = Callable[[bytes], Awaitable[str]]


def match_file(document_name: str, files: Sequence[FileEntry]) -> Optional[FileEntry]:
    """
    按名称匹配存储中的文件

    Case-insensitive substring containment in either direction, comparing names
    without their extensions. The first listed match wins.
    """
    wanted_lower = (document_name or "").lower()
    wanted_stem = strip_extension(document_name)
    for entry in files:
        listed_lower = entry.name.lower()
        listed_stem = strip_extension(entry.name)
        if wanted_stem and wanted_stem in listed_lower:
            return entry
        if listed_stem and listed_stem in wanted_lower:
            return entry
    return None


class ContentService:
    """
    文档内容服务

    Turns descriptors into text. Every cache is owned by this instance; there is
    no module-level state.

    Attributes:
        store: 底层文档存储 / Backing document store
        folder_mapping: 子文件夹名 -> 文件夹ID / Subfolder name to folder id
        max_concurrent_downloads: 下载并发上限 / Download concurrency cap
    """

    def __init__(
        self,
        store: BaseDocumentStore,
        root_folder_id: str = "",
        max_concurrent_downloads: int = 6,
        existence_chunk_size: int = 10,
        existence_pause_ms: float = 200,
        text_extractor: TextExtractor = extract_pdf_text_async,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.store = store
        self.root_folder_id = root_folder_id
        self.max_concurrent_downloads = max(1, max_concurrent_downloads)
        self.existence_chunk_size = max(1, existence_chunk_size)
        self.existence_pause_ms = existence_pause_ms
        self._text_extractor = text_extractor

        self.folder_cache: TTLCache[str, List[FolderEntry]] = TTLCache("folder_listings", FOLDER_LIST_TTL, clock)
        self.file_list_cache: TTLCache[str, List[FileEntry]] = TTLCache("file_listings", FILE_LIST_TTL, clock)
        self.metadata_cache: TTLCache[str, FileMetadata] = TTLCache("metadata", METADATA_TTL, clock)
        self.content_cache: TTLCache[str, bytes] = TTLCache("content", CONTENT_TTL, clock)
        self.identifier_cache: TTLCache[str, str] = TTLCache("identifiers", IDENTIFIER_TTL, clock)

        self.folder_mapping: Dict[str, str] = {}
        self._mapping_built = False

        self._semaphore = asyncio.Semaphore(self.max_concurrent_downloads)
        self._pending_downloads = 0
        self._active_downloads = 0
        self._inflight: Dict[str, asyncio.Future] = {}

    # ------------------------------------------------------------------
    # Listings
    # ------------------------------------------------------------------

    async def list_folders(self, parent_id: str) -> List[FolderEntry]:
        cached = self.folder_cache.get(parent_id)
        if cached is not None:
            logger.debug("Cache hit for folder list: %s", parent_id)
            return cached
        folders = await self.store.list_folders(parent_id)
        self.folder_cache.set(parent_id, folders)
        return folders

    async def list_files(self, folder_id: str) -> List[FileEntry]:
        cached = self.file_list_cache.get(folder_id)
        if cached is not None:
            logger.debug("Cache hit for file list: %s", folder_id)
            return cached
        files = await self.store.list_files(folder_id)
        self.file_list_cache.set(folder_id, files)
        return files

    async def build_folder_mapping(self, root_folder_id: Optional[str] = None) -> Dict[str, str]:
        """
        构建子文件夹名到文件夹ID的映射

        Build the subfolder-name → folder-id mapping from the root folder listing.

        Raises:
            UpstreamServiceError: 存储不可达 / Store unreachable (fatal for a run)
        """
        root = self.root_folder_id if root_folder_id is None else root_folder_id
        try:
            folders = await self.list_folders(root)
        except AuditMatchError as exc:
            raise UpstreamServiceError(f"Failed to build folder mapping: {exc.message}") from exc
        except Exception as exc:
            raise UpstreamServiceError(f"Failed to build folder mapping: {exc}") from exc

        self.root_folder_id = root
        self.folder_mapping = {folder.name: folder.id for folder in folders}
        self._mapping_built = True
        logger.info("Mapped %d subfolders under %r", len(self.folder_mapping), root)
        return dict(self.folder_mapping)

    @property
    def mapping_built(self) -> bool:
        return self._mapping_built

    async def ensure_folder_mapping(self) -> Dict[str, str]:
        """Build the folder mapping unless a previous build succeeded."""
        if not self._mapping_built:
            await self.build_folder_mapping()
        return dict(self.folder_mapping)

    async def _folder_id(self, subfolder: str) -> Optional[str]:
        await self.ensure_folder_mapping()
        return self.folder_mapping.get(subfolder)

    # ------------------------------------------------------------------
    # Identifier resolution
    # ------------------------------------------------------------------

    async def resolve(self, descriptor: DocumentDescriptor) -> str:
        """
        解析描述符对应的文件标识符

        Resolve *descriptor* to a store identifier.

        Raises:
            NotFoundError: 子文件夹或文件不存在 / Subfolder or file missing
        """
        cached = self.identifier_cache.get(descriptor.key)
        if cached is not None:
            return cached

        folder_id = await self._folder_id(descriptor.subfolder)
        if folder_id is None:
            raise NotFoundError(f"Subfolder not found: {descriptor.subfolder}")

        files = await self.list_files(folder_id)
        entry = match_file(descriptor.name, files)
        if entry is None:
            raise NotFoundError(f"Policy file not found: {descriptor.name} in {descriptor.subfolder}")

        self.identifier_cache.set(descriptor.key, entry.id)
        return entry.id

    async def batch_resolve(self, descriptors: Sequence[DocumentDescriptor]) -> Dict[str, Optional[str]]:
        """
        批量解析标识符

        Resolve many descriptors with one listing call per folder.

        Returns:
            descriptor.key -> 标识符或 None / descriptor key to identifier or None
        """
        results: Dict[str, Optional[str]] = {}
        missing_by_folder: Dict[str, List[DocumentDescriptor]] = defaultdict(list)

        for descriptor in descriptors:
            cached = self.identifier_cache.get(descriptor.key)
            if cached is not None:
                results[descriptor.key] = cached
                continue
            folder_id = await self._folder_id(descriptor.subfolder)
            if folder_id is None:
                logger.debug("Subfolder not found in store: %s", descriptor.subfolder)
                results[descriptor.key] = None
                continue
            missing_by_folder[folder_id].append(descriptor)

        if not missing_by_folder:
            return results

        async def resolve_folder(folder_id: str, group: List[DocumentDescriptor]) -> None:
            files = await self.list_files(folder_id)
            for descriptor in group:
                entry = match_file(descriptor.name, files)
                if entry is not None:
                    self.identifier_cache.set(descriptor.key, entry.id)
                results[descriptor.key] = entry.id if entry else None

        groups = list(missing_by_folder.items())
        settled = await settle_all(resolve_folder(folder_id, group) for folder_id, group in groups)
        for (folder_id, group), outcome in zip(groups, settled):
            if not outcome.ok:
                logger.error("Error processing folder %s: %s", folder_id, outcome.error)
                for descriptor in group:
                    results[descriptor.key] = None

        found = sum(1 for value in results.values() if value)
        logger.info("Batch file search completed. Found %d/%d files", found, len(results))
        return results

    async def preload_identifiers(self, descriptors: Sequence[DocumentDescriptor]) -> int:
        """Warm the identifier cache for the whole index; returns the number resolved."""
        resolved = await self.batch_resolve(descriptors)
        count = sum(1 for value in resolved.values() if value)
        logger.info("Preloaded %d policy file ids", count)
        return count

    # ------------------------------------------------------------------
    # Existence checks / metadata
    # ------------------------------------------------------------------

    async def get_metadata(self, file_id: str) -> FileMetadata:
        cached = self.metadata_cache.get(file_id)
        if cached is not None:
            return cached
        metadata = await self.store.get_metadata(file_id)
        self.metadata_cache.set(file_id, metadata)
        return metadata

    async def _exists(self, file_id: str) -> bool:
        if self.metadata_cache.contains(file_id):
            return True
        try:
            await self.get_metadata(file_id)
            return True
        except Exception as exc:
            logger.debug("Existence check failed for %s: %s", file_id, exc)
            return False

    async def batch_check_exists(self, file_ids: Sequence[str]) -> Dict[str, bool]:
        """
        批量检查文件是否存在

        Check identifiers in chunks of ``existence_chunk_size`` with a pause
        between chunks. Failures resolve to ``False``.
        """
        unique_ids = list(dict.fromkeys(file_ids))
        results: Dict[str, bool] = {}
        batches = create_batches(unique_ids, self.existence_chunk_size)
        for index, batch in enumerate(batches):
            settled = await settle_all(self._exists(file_id) for file_id in batch)
            for file_id, outcome in zip(batch, settled):
                results[file_id] = bool(outcome.value) if outcome.ok else False
            if index < len(batches) - 1:
                await sleep_ms(self.existence_pause_ms)
        return results

    async def check_descriptors_exist(self, descriptors: Sequence[DocumentDescriptor]) -> List[bool]:
        """Existence flag per descriptor, in input order."""
        if not descriptors:
            return []
        identifiers = await self.batch_resolve(descriptors)
        file_ids = [fid for fid in identifiers.values() if fid]
        if not file_ids:
            return [False] * len(descriptors)
        existence = await self.batch_check_exists(file_ids)
        flags = []
        for descriptor in descriptors:
            file_id = identifiers.get(descriptor.key)
            flags.append(bool(file_id) and existence.get(file_id, False))
        return flags

    # ------------------------------------------------------------------
    # Downloads
    # ------------------------------------------------------------------

    async def fetch(self, file_id: str) -> bytes:
        """
        下载文件字节（有界并发队列）

        Download through the bounded queue. Cached content resolves immediately
        without queueing; concurrent requests for one identifier share a download.
        """
        cached = self.content_cache.get(file_id)
        if cached is not None:
            logger.debug("Download cache hit: %s", file_id)
            return cached

        task = self._inflight.get(file_id)
        if task is None:
            task = asyncio.ensure_future(self._download(file_id))
            self._inflight[file_id] = task
            task.add_done_callback(lambda _t, fid=file_id: self._inflight.pop(fid, None))
        return await asyncio.shield(task)

    async def _download(self, file_id: str) -> bytes:
        semaphore = self._semaphore
        self._pending_downloads += 1
        try:
            await semaphore.acquire()
        finally:
            self._pending_downloads -= 1

        self._active_downloads += 1
        start = time.perf_counter()
        try:
            data = await self.store.get_bytes(file_id)
        except AuditMatchError:
            raise
        except Exception as exc:
            raise UpstreamServiceError(f"Failed to download file {file_id}: {exc}") from exc
        finally:
            self._active_downloads -= 1
            semaphore.release()

        elapsed_ms = int((time.perf_counter() - start) * 1000)
        logger.info("Downloaded file %s in %dms (%d bytes)", file_id, elapsed_ms, len(data))
        if len(data) < MAX_CACHEABLE_BYTES:
            self.content_cache.set(file_id, data)
        return data

    async def extract_text(self, data: bytes) -> str:
        return await self._text_extractor(data)

    async def fetch_text(self, descriptor: DocumentDescriptor) -> Optional[str]:
        """
        获取描述符对应文档的文本

        Resolve, download and extract. Any failure resolves to ``None`` so one
        document never aborts its siblings.
        """
        try:
            file_id = await self.resolve(descriptor)
            data = await self.fetch(file_id)
            return await self.extract_text(data)
        except AuditMatchError as exc:
            logger.warning("Failed to fetch %s: %s", descriptor.name, exc.message)
            return None

    # ------------------------------------------------------------------
    # Housekeeping
    # ------------------------------------------------------------------

    def adjust_concurrency(self, max_downloads: int) -> int:
        """Set the download cap (clamped to 1..10); applies to downloads not yet queued."""
        self.max_concurrent_downloads = max(1, min(max_downloads, 10))
        self._semaphore = asyncio.Semaphore(self.max_concurrent_downloads)
        logger.info("Download concurrency adjusted to %d", self.max_concurrent_downloads)
        return self.max_concurrent_downloads

    def get_stats(self) -> Dict[str, object]:
        return {
            "store": self.store.get_store_name(),
            "folder_mappings": len(self.folder_mapping),
            "folder_cache_size": len(self.folder_cache),
            "file_list_cache_size": len(self.file_list_cache),
            "metadata_cache_size": len(self.metadata_cache),
            "download_cache_size": len(self.content_cache),
            "identifier_cache_size": len(self.identifier_cache),
            "download_queue_length": self._pending_downloads,
            "active_downloads": self._active_downloads,
            "max_concurrent_downloads": self.max_concurrent_downloads,
        }

    def clear_caches(self) -> None:
        for cache in (
            self.folder_cache,
            self.file_list_cache,
            self.metadata_cache,
            self.content_cache,
            self.identifier_cache,
        ):
            cache.clear()
        self.folder_mapping = {}
        self._mapping_built = False
        logger.info("All content caches cleared")
