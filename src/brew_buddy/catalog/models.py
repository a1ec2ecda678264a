"""Domain models for extraction, reconciliation, and sweep runs."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from enum import Enum


class StockStatus(str, Enum):
    """Availability derived from the listing row's action controls."""

    IN_STOCK = "In Stock"
    COMING_SOON = "Coming Soon"
    OUT_OF_STOCK = "Out of Stock"


class SweepStatus(str, Enum):
    """Outcome of one sweep run."""

    SUCCEEDED = "succeeded"
    EMPTY = "empty"


class SweepStage(str, Enum):
    """Stages of the sweep pipeline, used to report where a run stopped."""

    MARK_INACTIVE = "mark-inactive"
    RENDER = "render"
    EXTRACT = "extract"
    RECONCILE = "reconcile"


@dataclass(slots=True)
class ItemDraft:
    """Candidate record extracted from one listing row."""

    url: str
    name: str
    price: float = 0.0
    score: float | None = None
    origin: str = ""
    region: str = ""
    tasting_notes: str = ""
    processing: str = ""
    description: str = ""
    stock_status: StockStatus = StockStatus.OUT_OF_STOCK


@dataclass(slots=True)
class CatalogItem:
    """Stored catalog record as seen by readers."""

    url: str
    name: str
    price: float
    score: float | None
    origin: str | None
    region: str | None
    tasting_notes: str | None
    processing: str | None
    description: str | None
    stock_status: str | None
    first_scraped_at: datetime
    last_scraped_at: datetime
    last_seen_at: datetime
    is_active: bool
    has_embedding: bool


@dataclass(slots=True)
class SweepCounters:
    """Counters accumulated while one sweep runs."""

    extracted_count: int = 0
    marked_inactive_count: int = 0
    inserted_count: int = 0
    updated_count: int = 0
    affected_count: int = 0
    embedded_count: int = 0
    embed_failed_count: int = 0


@dataclass(slots=True)
class SweepSummary:
    """Result of one sweep pipeline run."""

    status: SweepStatus
    counters: SweepCounters
    active_count: int = 0
    inactive_count: int = 0
    embedding_skipped_reason: str | None = None


@dataclass(slots=True)
class UpsertOutcome:
    """Per-batch upsert accounting."""

    inserted_count: int = 0
    updated_count: int = 0

    @property
    def affected_count(self) -> int:
        return self.inserted_count + self.updated_count


class ExtractionError(Exception):
    """The listing document or the selector map cannot be processed at all."""


class ReconciliationError(Exception):
    """The upsert batch failed and was rolled back."""


class SweepError(Exception):
    """A sweep run stopped at one stage; nothing from the run was applied."""

    def __init__(self, stage: SweepStage, message: str) -> None:
        super().__init__(message)
        self.stage = stage
        self.message = message

    def __str__(self) -> str:
        return f"{self.stage.value} stage failed: {self.message}"
