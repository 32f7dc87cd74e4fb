# -*- coding: utf-8 -*-
"""
税务顾问 TaxAdvisor - 个人税务知识助手
TaxAdvisor - Personal Tax Knowledge Assistant

Copyright © 2025-2026 TaxAdvisor Team
License: PolyForm Noncommercial License 1.0.0

模块说明 / Module Description:
  应用配置 - 环境变量设置与 YAML 配置文件
  Application configuration - environment-driven settings plus the YAML config file.

使用示例 / Usage:
    from taxadvisor.config import settings, config

    settings.knowledge_dir          # typed runtime settings
    config.get("knowledge", {})     # raw YAML section
"""

from pathlib import Path
from typing import Any, Dict, List

import yaml
from pydantic import BaseModel, Field
from pydantic_settings import BaseSettings, SettingsConfigDict

_BACKEND_DIR = Path(__file__).resolve().parent.parent


class Settings(BaseSettings):
    """Runtime settings, overridable through ``TAXADVISOR_*`` environment variables."""

    model_config = SettingsConfigDict(
        env_prefix="TAXADVISOR_",
        env_file=".env",
        extra="ignore",
    )

    debug: bool = False
    host: str = "127.0.0.1"
    port: int = 8000
    knowledge_dir: str = str(_BACKEND_DIR / "data" / "knowledge")
    log_dir: str = str(_BACKEND_DIR / "logs")
    config_file: str = str(_BACKEND_DIR / "config.yaml")


class KnowledgeConfig(BaseModel):
    """``knowledge:`` section of config.yaml."""

    enabled: bool = True
    auto_cache: bool = True
    default_expiry_days: int = Field(default=90, gt=0)
    min_confidence: str = Field(default="medium", pattern="^(low|medium|high)$")
    max_entries: int = Field(default=1000, gt=0)


class SearchConfig(BaseModel):
    """``search:`` section of config.yaml."""

    enabled: bool = True
    sources: List[str] = Field(
        default_factory=lambda: ["belastingdienst.nl", "wetten.nl", "rijksoverheid.nl"]
    )
    max_results: int = Field(default=5, gt=0)
    min_relevance: float = Field(default=0.5, ge=0.0, le=1.0)
    rate_limit_delay_ms: int = Field(default=1000, ge=0)
    endpoint: str = ""
    timeout_seconds: float = Field(default=10.0, gt=0)


def load_config_file(path: Path) -> Dict[str, Any]:
    """
    读取 YAML 配置文件

    Load the YAML config file. A missing or empty file yields ``{}``.
    Malformed YAML is not swallowed: a broken config should stop startup.
    """
    if not path.exists():
        return {}
    with open(path, "r", encoding="utf-8") as f:
        data = yaml.safe_load(f)
    return data if isinstance(data, dict) else {}


settings = Settings()
config: Dict[str, Any] = load_config_file(Path(settings.config_file))


def get_knowledge_config() -> KnowledgeConfig:
    return KnowledgeConfig(**(config.get("knowledge", {}) or {}))


def get_search_config() -> SearchConfig:
    return SearchConfig(**(config.get("search", {}) or {}))
