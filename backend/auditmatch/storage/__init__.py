"""
Storage Module / 存储模块
Document store adapters and TTL caches
文档存储适配器与 TTL 缓存
"""

from .base import BaseDocumentStore
from .local_store import LocalDocumentStore
from .s3_store import S3DocumentStore
from .ttl_cache import CacheEntry, TTLCache

__all__ = [
    "BaseDocumentStore",
    "LocalDocumentStore",
    "S3DocumentStore",
    "CacheEntry",
    "TTLCache",
]
