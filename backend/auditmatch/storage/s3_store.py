# -*- coding: utf-8 -*-
"""
审计证据匹配 AuditMatch - 合规问题与政策文档的并发证据匹配系统
AuditMatch - Concurrent Compliance Evidence Matching System

Copyright © 2025-2026 WenShape Team
License: PolyForm Noncommercial License 1.0.0

模块说明 / Module Description:
  S3 文档存储 - 以键前缀为文件夹、以对象键为文件标识符
  S3 document store - Key prefixes act as folders, object keys as file identifiers.

实现方式 / Implementation:
  boto3 是同步客户端，所有调用通过 asyncio.to_thread 放到工作线程执行。
  boto3 is synchronous; every call runs in a worker thread via asyncio.to_thread.
"""

import asyncio
import mimetypes
from typing import Any, Dict, List, Optional

import boto3
from botocore.exceptions import BotoCoreError, ClientError

from auditmatch.exceptions import NotFoundError, UpstreamServiceError
from auditmatch.schemas.store import FileEntry, FileMetadata, FolderEntry
from auditmatch.storage.base import BaseDocumentStore

_NOT_FOUND_CODES = {"404", "NoSuchKey", "NotFound"}


class S3DocumentStore(BaseDocumentStore):
    """
    S3 文档存储 / S3-backed document store

    Attributes:
        bucket (str): 存储桶 / Bucket name
        prefix (str): 根前缀 / Root key prefix (the root folder id)
    """

    def __init__(
        self,
        bucket: str,
        prefix: str = "",
        region: Optional[str] = None,
        endpoint_url: Optional[str] = None,
        file_suffix: str = ".pdf",
        client: Any = None,
    ):
        client_kwargs: Dict[str, Any] = {}
        if region:
            client_kwargs["region_name"] = region
        if endpoint_url:
            client_kwargs["endpoint_url"] = endpoint_url

        self.bucket = bucket
        self.prefix = prefix.strip("/")
        self.file_suffix = file_suffix.lower()
        self.s3_client = client or boto3.client("s3", **client_kwargs)

    def _folder_prefix(self, folder_id: str) -> str:
        key = (folder_id or self.prefix).strip("/")
        return f"{key}/" if key else ""

    @staticmethod
    def _is_not_found(exc: ClientError) -> bool:
        code = exc.response.get("Error", {}).get("Code") if hasattr(exc, "response") else None
        return code in _NOT_FOUND_CODES

    def _list_folders_sync(self, parent_id: str) -> List[FolderEntry]:
        paginator = self.s3_client.get_paginator("list_objects_v2")
        folders: List[FolderEntry] = []
        for page in paginator.paginate(
            Bucket=self.bucket, Prefix=self._folder_prefix(parent_id), Delimiter="/"
        ):
            for common in page.get("CommonPrefixes", []):
                key = common["Prefix"].rstrip("/")
                folders.append(FolderEntry(id=key, name=key.rsplit("/", 1)[-1]))
        return sorted(folders, key=lambda f: f.name)

    def _list_files_sync(self, folder_id: str) -> List[FileEntry]:
        paginator = self.s3_client.get_paginator("list_objects_v2")
        files: List[FileEntry] = []
        for page in paginator.paginate(
            Bucket=self.bucket, Prefix=self._folder_prefix(folder_id), Delimiter="/"
        ):
            for obj in page.get("Contents", []):
                key = obj["Key"]
                name = key.rsplit("/", 1)[-1]
                if name.lower().endswith(self.file_suffix):
                    files.append(FileEntry(id=key, name=name, size=obj.get("Size")))
        return sorted(files, key=lambda f: f.name)

    def _get_bytes_sync(self, file_id: str) -> bytes:
        response = self.s3_client.get_object(Bucket=self.bucket, Key=file_id)
        return response["Body"].read()

    def _get_metadata_sync(self, file_id: str) -> FileMetadata:
        response = self.s3_client.head_object(Bucket=self.bucket, Key=file_id)
        name = file_id.rsplit("/", 1)[-1]
        modified = response.get("LastModified")
        return FileMetadata(
            id=file_id,
            name=name,
            size=response.get("ContentLength"),
            mime_type=response.get("ContentType") or mimetypes.guess_type(name)[0],
            modified_time=modified.isoformat() if modified is not None else None,
        )

    async def _call(self, func, identifier: str):
        try:
            return await asyncio.to_thread(func, identifier)
        except ClientError as exc:
            if self._is_not_found(exc):
                raise NotFoundError(f"Object not found: {identifier}") from exc
            raise UpstreamServiceError(f"S3 request failed for {identifier}: {exc}") from exc
        except BotoCoreError as exc:
            raise UpstreamServiceError(f"S3 request failed for {identifier}: {exc}") from exc

    async def list_folders(self, parent_id: str) -> List[FolderEntry]:
        return await self._call(self._list_folders_sync, parent_id)

    async def list_files(self, folder_id: str) -> List[FileEntry]:
        return await self._call(self._list_files_sync, folder_id)

    async def get_bytes(self, file_id: str) -> bytes:
        return await self._call(self._get_bytes_sync, file_id)

    async def get_metadata(self, file_id: str) -> FileMetadata:
        return await self._call(self._get_metadata_sync, file_id)

    def get_store_name(self) -> str:
        return "s3"
