"""Runtime configuration for the catalog sweep, embedding, and search stages."""

from __future__ import annotations

import os
from dataclasses import dataclass, field, fields
from pathlib import Path
from typing import Any
from urllib.parse import urlparse

import yaml

DEFAULT_DB_PATH = Path("./local-data/coffee.db")
DEFAULT_CONFIG_PATH = Path("config.yaml")
EMBEDDING_BACKENDS = ("gemini", "hashing", "sentence-transformers")
DEFAULT_EMBEDDING_MODEL = "text-embedding-004"


@dataclass(slots=True)
class RenderSettings:
    """Headless browser timeouts for the listing page."""

    navigation_timeout_seconds: float = 90.0
    list_wait_timeout_seconds: float = 30.0
    dismiss_timeout_seconds: float = 5.0
    headless: bool = True


@dataclass(slots=True)
class EmbeddingSettings:
    """Embedding backend settings."""

    backend: str = "gemini"
    model_name: str = DEFAULT_EMBEDDING_MODEL
    api_key: str | None = None
    base_url: str = "https://generativelanguage.googleapis.com/v1beta"
    request_timeout_seconds: float = 8.0
    bulk_delay_seconds: float = 1.0


@dataclass(slots=True)
class SearchSettings:
    """Vibe search settings."""

    top_k: int = 5


@dataclass(slots=True)
class Settings:
    """Application settings grouped by pipeline stage."""

    db_path: Path = DEFAULT_DB_PATH
    config_path: Path = DEFAULT_CONFIG_PATH
    render: RenderSettings = field(default_factory=RenderSettings)
    embedding: EmbeddingSettings = field(default_factory=EmbeddingSettings)
    search: SearchSettings = field(default_factory=SearchSettings)

    @classmethod
    def from_env(
        cls,
        db_path: Path | None = None,
        config_path: Path | None = None,
    ) -> Settings:
        """Load settings from environment with defaults suited to a local checkout."""

        return cls(
            db_path=db_path
            or Path(os.getenv("BREW_BUDDY_DB_PATH", os.getenv("DB_PATH", str(DEFAULT_DB_PATH)))),
            config_path=config_path
            or Path(
                os.getenv(
                    "BREW_BUDDY_CONFIG_PATH",
                    os.getenv("CONFIG_PATH", str(DEFAULT_CONFIG_PATH)),
                ),
            ),
            render=RenderSettings(
                navigation_timeout_seconds=_env_float(
                    "BREW_BUDDY_RENDER_TIMEOUT_SECONDS",
                    default=90.0,
                ),
                list_wait_timeout_seconds=_env_float(
                    "BREW_BUDDY_RENDER_WAIT_TIMEOUT_SECONDS",
                    default=30.0,
                ),
                dismiss_timeout_seconds=_env_float(
                    "BREW_BUDDY_RENDER_DISMISS_TIMEOUT_SECONDS",
                    default=5.0,
                ),
                headless=_env_bool("BREW_BUDDY_RENDER_HEADLESS", default=True),
            ),
            embedding=EmbeddingSettings(
                backend=os.getenv("BREW_BUDDY_EMBEDDING_BACKEND", "gemini").strip().lower(),
                model_name=os.getenv("BREW_BUDDY_EMBEDDING_MODEL", DEFAULT_EMBEDDING_MODEL),
                api_key=os.getenv("GEMINI_API_KEY") or None,
                base_url=os.getenv(
                    "BREW_BUDDY_EMBEDDING_BASE_URL",
                    "https://generativelanguage.googleapis.com/v1beta",
                ),
                request_timeout_seconds=_env_float(
                    "BREW_BUDDY_EMBEDDING_TIMEOUT_SECONDS",
                    default=8.0,
                ),
                bulk_delay_seconds=_env_float("BREW_BUDDY_EMBEDDING_DELAY_SECONDS", default=1.0),
            ),
            search=SearchSettings(
                top_k=_env_int("BREW_BUDDY_SEARCH_TOP_K", default=5),
            ),
        )

    def validate_for_embedding(self) -> None:
        """Raise configuration error if the embedding backend cannot be built."""

        if self.embedding.backend not in EMBEDDING_BACKENDS:
            raise ValueError(
                f"Unknown embedding backend {self.embedding.backend!r}. "
                f"Expected one of: {', '.join(EMBEDDING_BACKENDS)}.",
            )
        if self.embedding.backend == "gemini" and not self.embedding.api_key:
            raise ValueError("GEMINI_API_KEY environment variable is required.")
        if self.embedding.request_timeout_seconds <= 0:
            raise ValueError("BREW_BUDDY_EMBEDDING_TIMEOUT_SECONDS must be > 0.")
        if self.embedding.bulk_delay_seconds < 0:
            raise ValueError("BREW_BUDDY_EMBEDDING_DELAY_SECONDS must be >= 0.")

    def validate_for_search(self) -> None:
        """Raise configuration error for unusable search settings."""

        if self.search.top_k <= 0:
            raise ValueError("BREW_BUDDY_SEARCH_TOP_K must be a positive integer.")


@dataclass(slots=True)
class Selectors:
    """CSS selectors for one vendor's listing page.

    Every selector is relative to a product row except the page-level ones
    (``cookie_button``, ``newsletter_popup``, ``product_list_wait``,
    ``product_row``). An empty selector means the feature is absent on the site.
    """

    cookie_button: str = ""
    newsletter_popup: str = ""
    product_list_wait: str = ""
    product_row: str = ""
    link: str = ""
    price: str = ""
    origin: str = ""
    stock_button: str = ""
    stock_coming_soon: str = ""
    description: str = ""
    description_is_next_row: bool = False
    region: str = ""
    tasting_notes: str = ""
    processing: str = ""
    score: str = ""

    @classmethod
    def from_mapping(cls, raw: dict[str, Any]) -> Selectors:
        known = {item.name for item in fields(cls)}
        unknown = sorted(set(raw) - known)
        if unknown:
            raise ValueError(f"Unknown selector keys in site config: {', '.join(unknown)}")

        values: dict[str, Any] = {}
        for key, value in raw.items():
            if key == "description_is_next_row":
                if not isinstance(value, bool):
                    raise ValueError("selectors.description_is_next_row must be a boolean.")
                values[key] = value
            else:
                values[key] = "" if value is None else str(value).strip()
        return cls(**values)


@dataclass(slots=True)
class SiteConfig:
    """Target-site settings loaded from the YAML config file."""

    category_url: str
    selectors: Selectors = field(default_factory=Selectors)
    disallowed_keywords: tuple[str, ...] = ()

    @classmethod
    def from_yaml(cls, path: Path) -> SiteConfig:
        """Read and validate the site config file."""

        try:
            raw_text = path.read_text(encoding="utf-8")
        except OSError as error:
            raise ValueError(f"Failed to read config file at {str(path)!r}: {error}") from error
        try:
            raw = yaml.safe_load(raw_text)
        except yaml.YAMLError as error:
            raise ValueError(f"Failed to parse YAML config {str(path)!r}: {error}") from error
        if not isinstance(raw, dict):
            raise ValueError(f"Site config {str(path)!r} must be a mapping.")
        return cls.from_mapping(raw)

    @classmethod
    def from_mapping(cls, raw: dict[str, Any]) -> SiteConfig:
        selectors_raw = raw.get("selectors") or {}
        if not isinstance(selectors_raw, dict):
            raise ValueError("Site config 'selectors' must be a mapping.")
        keywords_raw = raw.get("disallowed_keywords") or []
        if not isinstance(keywords_raw, list):
            raise ValueError("Site config 'disallowed_keywords' must be a list.")

        config = cls(
            category_url=str(raw.get("category_url") or "").strip(),
            selectors=Selectors.from_mapping(selectors_raw),
            disallowed_keywords=_normalize_keywords(keywords_raw),
        )
        config.validate()
        return config

    def validate(self) -> None:
        _validate_listing_url(self.category_url)
        if not self.selectors.product_row:
            raise ValueError("Site config requires selectors.product_row.")
        if not self.selectors.link:
            raise ValueError("Site config requires selectors.link.")


def _normalize_keywords(values: list[object]) -> tuple[str, ...]:
    deduped: list[str] = []
    seen: set[str] = set()
    for value in values:
        normalized = str(value).strip().lower()
        if not normalized or normalized in seen:
            continue
        seen.add(normalized)
        deduped.append(normalized)
    return tuple(deduped)


def _validate_listing_url(value: str) -> None:
    parsed = urlparse(value)
    if parsed.scheme not in {"http", "https"} or not parsed.netloc:
        raise ValueError(
            "Invalid category_url: "
            f"{value!r}. Expected an absolute URL with http:// or https:// scheme.",
        )


def _env_float(name: str, default: float) -> float:
    value = os.getenv(name)
    if value is None or not value.strip():
        return default
    try:
        return float(value)
    except ValueError as error:
        raise ValueError(f"Invalid float value for {name}: {value!r}") from error


def _env_int(name: str, default: int) -> int:
    value = os.getenv(name)
    if value is None or not value.strip():
        return default
    try:
        return int(value)
    except ValueError as error:
        raise ValueError(f"Invalid integer value for {name}: {value!r}") from error


def _env_bool(name: str, default: bool) -> bool:
    value = os.getenv(name)
    if value is None:
        return default
    normalized = value.strip().lower()
    if normalized in {"1", "true", "yes", "on"}:
        return True
    if normalized in {"0", "false", "no", "off"}:
        return False
    raise ValueError(f"Invalid boolean value for {name}: {value!r}")
