# -*- coding: utf-8 -*-
"""
审计证据匹配 AuditMatch - 合规问题与政策文档的并发证据匹配系统
AuditMatch - Concurrent Compliance Evidence Matching System

Copyright © 2025-2026 WenShape Team
License: PolyForm Noncommercial License 1.0.0

模块说明 / Module Description:
  路径安全工具 - 在使用文档标识符访问文件系统之前进行验证
  Path Safety Utilities - Validate document identifiers before touching the filesystem.
"""

from pathlib import Path


def validate_path_within(child: Path, parent: Path) -> Path:
    """
    验证child路径在parent目录内

    Validate that *child* resolves to a path inside *parent*.

    Args:
        child: 子路径 / Child path
        parent: 父路径 / Parent path

    Returns:
        解析后的子路径 / Resolved child path

    Raises:
        ValueError: 如果子路径逃逸出父目录 / If the child escapes the parent directory

    Example:
        >>> validate_path_within(Path("policies/HR"), Path("policies"))
        PosixPath('/abs/policies/HR')
        >>> validate_path_within(Path("../etc"), Path("policies"))
        # Raises ValueError
    """
    resolved_parent = parent.resolve()
    resolved_child = child.resolve()

    if resolved_child != resolved_parent and resolved_parent not in resolved_child.parents:
        raise ValueError(f"路径逃逸文档目录 / Path escapes document root: {child}")

    return resolved_child
