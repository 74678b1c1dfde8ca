# === FILE: site_indexer/config.py ===
"""
Loading and validation of the SiteIndexer configuration.
Pydantic describes the schema and checks the data.
"""
from __future__ import annotations

import errno
import json
import os
from pathlib import Path
from typing import Any, List, Optional, Union

import yaml
from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    HttpUrl,
    ValidationError,
    field_validator,
    model_validator,
)

__all__ = [
    "SearchServiceConfig",
    "EmbeddingConfig",
    "SiteConfig",
    "CrawlerConfig",
    "load_config",
    "load_sites",
]


class SearchServiceConfig(BaseModel):
    """Connection settings for the Azure AI Search index."""
    model_config = ConfigDict(extra="forbid", frozen=True)

    endpoint: HttpUrl
    index_name: str = Field(..., min_length=1)
    admin_api_key: str = Field(..., min_length=1, repr=False)
    api_version: str = "2023-11-01"


class EmbeddingConfig(BaseModel):
    """Connection settings for the Azure OpenAI embedding deployment."""
    model_config = ConfigDict(extra="forbid", frozen=True)

    endpoint: HttpUrl
    admin_api_key: str = Field(..., min_length=1, repr=False)
    deployment: str = Field(..., min_length=1)
    dimensions: int = Field(..., gt=0)
    api_version: str = "2024-02-01"
    min_interval: float = Field(4.0, ge=0, description="Seconds between embedding calls.")
    rate_limiting: bool = True


class SiteConfig(BaseModel):
    """One entry of a sites file."""
    model_config = ConfigDict(extra="ignore", frozen=True)

    uri: HttpUrl
    max_depth: int = Field(10, gt=0)


class CrawlerConfig(BaseModel):
    """Configuration of one indexing run."""
    model_config = ConfigDict(extra="forbid", frozen=True)

    root_url: Optional[HttpUrl] = Field(None, description="Site to crawl.")
    sites: List[SiteConfig] = Field(default_factory=list, description="Several sites to crawl in order.")
    max_pages: int = Field(100, ge=1, description="Hard limit of pages per site.")
    max_depth: int = Field(10, ge=1, description="Maximum crawl depth.")
    batch_size: int = Field(1000, ge=1, description="Documents per bulk upsert.")
    extract_text: bool = Field(True, description="Index cleaned text instead of raw body HTML.")
    dry_run: bool = Field(False, description="Crawl without uploading anything.")
    timeout: float = Field(30.0, gt=0, description="Timeout of a single request (seconds).")
    user_agent: str = Field(
        "Mozilla/5.0 (compatible; SiteIndexer/1.0)", min_length=1, description="User-Agent header."
    )
    retry_times: int = Field(2, ge=0, description="Retries on 429/5xx.")
    search: Optional[SearchServiceConfig] = None
    embedding: Optional[EmbeddingConfig] = None

    @field_validator("root_url", mode="before")
    def _empty_root_is_none(cls, v: Any) -> Any:
        if isinstance(v, str) and not v.strip():
            return None
        return v

    @model_validator(mode="after")
    def _check_targets(self) -> CrawlerConfig:
        if self.root_url is None and not self.sites:
            raise ValueError("either root_url or sites must be specified")
        if not self.dry_run and self.search is None:
            raise ValueError("search settings are required unless dry_run is enabled")
        return self

    def targets(self) -> List[SiteConfig]:
        """Sites to crawl, in order."""
        if self.sites:
            return list(self.sites)
        return [SiteConfig(uri=self.root_url, max_depth=self.max_depth)]

    def redacted(self) -> dict[str, Any]:
        """JSON-ready dump with API keys masked."""
        data = self.model_dump(mode="json")
        for section in ("search", "embedding"):
            if data.get(section):
                data[section]["admin_api_key"] = "***"
        return data


_DEFAULT_CFG = Path("configs/default.yaml")


def _read_yaml(path: Path) -> dict[str, Any]:
    try:
        data = yaml.safe_load(path.read_text(encoding="utf-8")) or {}
    except yaml.YAMLError as exc:
        raise ValueError(f"Invalid YAML in {path}: {exc}") from exc
    if not isinstance(data, dict):
        raise TypeError(f"Top level of YAML must be a mapping, got {type(data).__name__}")
    return data


def _read_json(path: Path) -> Any:
    try:
        return json.loads(path.read_text(encoding="utf-8"))
    except json.JSONDecodeError as exc:
        raise ValueError(f"Invalid JSON in {path}: {exc}") from exc


def _resolve(path: Union[str, Path]) -> Path:
    path_obj = Path(path).expanduser().resolve()
    if not path_obj.is_file():
        raise FileNotFoundError(errno.ENOENT, os.strerror(errno.ENOENT), str(path_obj))
    return path_obj


def read_config_data(path: Union[str, Path, None]) -> dict[str, Any]:
    """Read a YAML or JSON config file into a plain mapping (no validation)."""
    if path is None:
        if not _DEFAULT_CFG.exists():
            raise FileNotFoundError(errno.ENOENT, os.strerror(errno.ENOENT), str(_DEFAULT_CFG))
        path_obj = _DEFAULT_CFG
    else:
        path_obj = _resolve(path)

    suffix = path_obj.suffix.lower()
    if suffix in (".yaml", ".yml"):
        return _read_yaml(path_obj)
    if suffix == ".json":
        data = _read_json(path_obj) or {}
        if not isinstance(data, dict):
            raise TypeError(f"Top level of JSON must be a mapping, got {type(data).__name__}")
        return data
    raise ValueError(f"Unsupported config format: {suffix}")


def load_config(path: Union[str, Path, None], **overrides: Any) -> CrawlerConfig:
    """
    Read YAML or JSON and return a validated CrawlerConfig.
    Keyword overrides with a value of None are ignored.
    Raises FileNotFoundError when the config file is missing.
    """
    data = read_config_data(path)
    data.update({k: v for k, v in overrides.items() if v is not None})
    return CrawlerConfig(**data)


_SITE_KEYS = {"uri": "uri", "maxdepth": "max_depth", "max_depth": "max_depth"}


def load_sites(path: Union[str, Path]) -> List[SiteConfig]:
    """
    Read a JSON sites file: a list of ``{"uri": ..., "maxDepth": ...}`` objects.
    Keys are matched case-insensitively.
    """
    data = _read_json(_resolve(path))
    if not isinstance(data, list) or not data:
        raise ValueError(f"Could not read sites from file: {path}")

    sites: List[SiteConfig] = []
    for entry in data:
        if not isinstance(entry, dict):
            raise TypeError(f"Site entry must be a mapping, got {type(entry).__name__}")
        normalized = {_SITE_KEYS[k.lower()]: v for k, v in entry.items() if k.lower() in _SITE_KEYS}
        try:
            sites.append(SiteConfig(**normalized))
        except ValidationError as exc:
            raise ValueError(f"Invalid site entry {entry!r}: {exc}") from exc
    return sites
