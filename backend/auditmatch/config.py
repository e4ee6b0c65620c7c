# -*- coding: utf-8 -*-
"""
审计证据匹配 AuditMatch - 合规问题与政策文档的并发证据匹配系统
AuditMatch - Concurrent Compliance Evidence Matching System

Copyright © 2025-2026 WenShape Team
License: PolyForm Noncommercial License 1.0.0

模块说明 / Module Description:
  应用配置 - 环境变量配置（settings）与可选的 YAML 调优配置（config）
  Application configuration - Environment-driven settings plus optional YAML tuning config.

使用示例 / Usage:
    from auditmatch.config import settings, config

    settings.port
    config.get("pipeline", {}).get("question_batch_size", 3)
"""

import os
from pathlib import Path
from typing import Any, Dict, List, Optional

import yaml
from pydantic_settings import BaseSettings, SettingsConfigDict

BACKEND_ROOT = Path(__file__).resolve().parent.parent


class Settings(BaseSettings):
    """
    运行时配置 / Runtime settings

    All values can be overridden through ``AUDITMATCH_*`` environment variables
    or a ``.env`` file in the working directory.
    """

    model_config = SettingsConfigDict(
        env_prefix="AUDITMATCH_",
        env_file=".env",
        extra="ignore",
    )

    # Server
    host: str = "0.0.0.0"
    port: int = 4000
    debug: bool = False
    environment: str = "development"
    log_dir: str = str(BACKEND_ROOT / "logs")
    cors_origins: List[str] = [
        "http://localhost:3000",
        "http://localhost:5173",
        "http://127.0.0.1:3000",
    ]
    rate_limit: str = "60/minute"

    # LLM
    llm_provider: str = "anthropic"
    llm_model: str = "claude-3-5-sonnet-20241022"
    llm_max_tokens: int = 8000
    llm_temperature: float = 0.2
    anthropic_api_key: str = ""
    openai_api_key: str = ""
    openai_base_url: Optional[str] = None

    # Policy index / document store
    policy_index_path: str = "./policy_index.json"
    document_store: str = "local"
    documents_root: str = "./policies"
    root_folder_id: str = ""
    s3_bucket: str = ""
    s3_prefix: str = ""
    s3_region: Optional[str] = None
    s3_endpoint_url: Optional[str] = None

    # Upload
    max_upload_size: int = 10 * 1024 * 1024

    @property
    def is_production(self) -> bool:
        return self.environment.strip().lower() == "production"


def load_yaml_config(path: Optional[str] = None) -> Dict[str, Any]:
    """
    加载 YAML 调优配置

    Load the optional tuning config. A missing file yields an empty dict so every
    consumer falls back to its built-in defaults.

    Args:
        path: YAML 文件路径 / Path to the YAML file

    Returns:
        配置字典 / Configuration dictionary
    """
    config_path = Path(path or os.getenv("AUDITMATCH_CONFIG_PATH") or BACKEND_ROOT / "config.yaml")
    if not config_path.exists():
        return {}
    with open(config_path, "r", encoding="utf-8") as f:
        data = yaml.safe_load(f) or {}
    if not isinstance(data, dict):
        raise ValueError(f"Config file must contain a mapping: {config_path}")
    return data


settings = Settings()
config: Dict[str, Any] = load_yaml_config()
