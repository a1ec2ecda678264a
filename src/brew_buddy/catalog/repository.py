"""SQLModel-backed reconciliation store for catalog items and cached query vectors."""

from __future__ import annotations

import logging
from collections.abc import Iterator, Sequence
from contextlib import contextmanager
from datetime import datetime
from pathlib import Path

from sqlalchemy import delete, func, update
from sqlalchemy.dialects.sqlite import Insert
from sqlalchemy.dialects.sqlite import insert as sqlite_insert
from sqlalchemy.exc import SQLAlchemyError
from sqlmodel import Session, col, select

from brew_buddy.catalog.models import (
    CatalogItem,
    ItemDraft,
    ReconciliationError,
    StockStatus,
    UpsertOutcome,
)
from brew_buddy.catalog.storage.alembic_runner import upgrade_head
from brew_buddy.catalog.storage.common import (
    build_sqlite_engine,
    connect_sqlite_with_policy,
    to_db_datetime,
    to_utc_aware_datetime,
    utc_now,
)
from brew_buddy.catalog.storage.sqlmodel_models import Coffee, SearchHistory
from brew_buddy.embedding.codec import encode_vector
from brew_buddy.search.models import ItemVector, SearchHistoryEntry

_MUTABLE_FIELDS = (
    "name",
    "price",
    "score",
    "origin",
    "region",
    "tasting_notes",
    "processing",
    "description",
    "stock_status",
)


class SweepTransaction:
    """Mark-inactive and upsert operations bound to one database transaction."""

    def __init__(self, session: Session, *, logger: logging.Logger) -> None:
        self._session = session
        self._logger = logger

    def mark_all_inactive(self) -> int:
        result = self._session.exec(
            update(Coffee).where(col(Coffee.is_active).is_(True)).values(is_active=False),
        )
        return int(result.rowcount or 0)

    def upsert_batch(self, drafts: Sequence[ItemDraft]) -> UpsertOutcome:
        by_url: dict[str, ItemDraft] = {}
        for draft in drafts:
            if draft.url in by_url:
                self._logger.debug("Duplicate URL in batch, keeping the last row: %s", draft.url)
            by_url[draft.url] = draft
        if not by_url:
            return UpsertOutcome()

        now = to_db_datetime(utc_now())
        try:
            existing = set(
                self._session.exec(
                    select(Coffee.url).where(col(Coffee.url).in_(list(by_url))),
                ).all(),
            )
            for draft in by_url.values():
                self._session.exec(_upsert_statement(draft, now=now))
        except SQLAlchemyError as error:
            raise ReconciliationError(f"Upsert batch failed: {error}") from error

        inserted = sum(1 for url in by_url if url not in existing)
        return UpsertOutcome(inserted_count=inserted, updated_count=len(by_url) - inserted)


class SQLiteRepository:
    """Facade that persists catalog history and the search-history cache."""

    def __init__(self, db_path: Path, *, logger: logging.Logger | None = None) -> None:
        self.db_path = db_path
        self.logger = logger or logging.getLogger(__name__)
        db_path.parent.mkdir(parents=True, exist_ok=True)

        self.engine = build_sqlite_engine(db_path=db_path)
        # Keep low-level connection for tests and ad-hoc debugging queries.
        self._connection = connect_sqlite_with_policy(db_path=db_path)

    def close(self) -> None:
        self._connection.close()
        self.engine.dispose()

    def init_schema(self) -> None:
        upgrade_head(self.db_path)

    @contextmanager
    def sweep(self) -> Iterator[SweepTransaction]:
        """Run one sweep in a single transaction; any error rolls the whole sweep back."""

        with Session(self.engine) as session:
            transaction = SweepTransaction(session, logger=self.logger)
            try:
                yield transaction
                session.commit()
            except Exception:
                session.rollback()
                raise

    def mark_all_inactive(self) -> int:
        with self.sweep() as transaction:
            return transaction.mark_all_inactive()

    def upsert_batch(self, drafts: Sequence[ItemDraft]) -> int:
        with self.sweep() as transaction:
            outcome = transaction.upsert_batch(drafts)
        return outcome.affected_count

    def fetch_unembedded(self) -> dict[str, str]:
        """Map URL -> text to embed for active items without a vector.

        Callers must not rely on the iteration order of the mapping.
        """

        with Session(self.engine) as session:
            rows = session.exec(
                select(Coffee.url, Coffee.name, Coffee.description).where(
                    col(Coffee.is_active).is_(True),
                    col(Coffee.description_embedding).is_(None),
                ),
            ).all()
        return {
            url: build_embedding_text(name or "", description or "")
            for url, name, description in rows
        }

    def save_embedding(self, url: str, vector: Sequence[float]) -> bool:
        with Session(self.engine) as session:
            result = session.exec(
                update(Coffee)
                .where(col(Coffee.url) == url)
                .values(description_embedding=encode_vector(vector)),
            )
            session.commit()
        return bool(result.rowcount)

    def list_item_vectors(self) -> list[ItemVector]:
        with Session(self.engine) as session:
            rows = session.exec(
                select(Coffee).where(
                    col(Coffee.is_active).is_(True),
                    col(Coffee.description_embedding).is_not(None),
                ),
            ).all()
        return [
            ItemVector(
                url=row.url,
                name=row.name or "",
                origin=row.origin or "",
                description=row.description or "",
                embedding=row.description_embedding or b"",
            )
            for row in rows
        ]

    def list_active_items(self) -> list[CatalogItem]:
        with Session(self.engine) as session:
            rows = session.exec(
                select(Coffee)
                .where(col(Coffee.is_active).is_(True))
                .order_by(col(Coffee.id).desc()),
            ).all()
        return [_to_catalog_item(row) for row in rows]

    def get_item(self, url: str) -> CatalogItem | None:
        with Session(self.engine) as session:
            row = session.exec(select(Coffee).where(Coffee.url == url)).one_or_none()
        return _to_catalog_item(row) if row is not None else None

    def count_items(self) -> tuple[int, int]:
        """Return ``(active, inactive)`` record counts."""

        with Session(self.engine) as session:
            rows = session.exec(
                select(Coffee.is_active, func.count()).group_by(col(Coffee.is_active)),
            ).all()
        counts = {bool(is_active): int(total) for is_active, total in rows}
        return counts.get(True, 0), counts.get(False, 0)

    def get_cached_query(self, query_text: str) -> bytes | None:
        with Session(self.engine) as session:
            row = session.get(SearchHistory, query_text)
        return row.embedding if row is not None else None

    def save_cached_query(self, query_text: str, vector: Sequence[float]) -> bool:
        """Insert a query vector unless one is already cached; never overwrites."""

        statement = (
            sqlite_insert(SearchHistory)
            .values(
                query_text=query_text,
                embedding=encode_vector(vector),
                created_at=to_db_datetime(utc_now()),
            )
            .on_conflict_do_nothing(index_elements=["query_text"])
        )
        with Session(self.engine) as session:
            result = session.exec(statement)
            session.commit()
        return bool(result.rowcount)

    def list_search_history(self) -> list[SearchHistoryEntry]:
        with Session(self.engine) as session:
            rows = session.exec(
                select(SearchHistory).order_by(
                    col(SearchHistory.created_at).desc(),
                    col(SearchHistory.query_text),
                ),
            ).all()
        return [
            SearchHistoryEntry(
                query_text=row.query_text,
                created_at=to_utc_aware_datetime(row.created_at),
            )
            for row in rows
        ]

    def clear_search_history(self, query_text: str) -> int:
        with Session(self.engine) as session:
            result = session.exec(
                delete(SearchHistory).where(col(SearchHistory.query_text) == query_text),
            )
            session.commit()
        return int(result.rowcount or 0)

    def clear_all_search_history(self) -> int:
        with Session(self.engine) as session:
            result = session.exec(delete(SearchHistory))
            session.commit()
        return int(result.rowcount or 0)


def build_embedding_text(name: str, description: str) -> str:
    """Combine name and description; the pair carries more meaning than either alone."""

    return f"Name: {name}\nDescription: {description}"


def _upsert_statement(draft: ItemDraft, *, now: datetime) -> Insert:
    values = _draft_values(draft)
    statement = sqlite_insert(Coffee).values(
        url=draft.url,
        **values,
        first_scraped_at=now,
        last_scraped_at=now,
        last_seen_at=now,
        is_active=True,
    )
    return statement.on_conflict_do_update(
        index_elements=["url"],
        set_={
            **{name: statement.excluded[name] for name in _MUTABLE_FIELDS},
            "last_scraped_at": statement.excluded.last_scraped_at,
            "last_seen_at": statement.excluded.last_seen_at,
            "is_active": True,
        },
    )


def _draft_values(draft: ItemDraft) -> dict[str, object]:
    return {
        "name": draft.name,
        "price": float(draft.price or 0.0),
        "score": draft.score if draft.score is not None and draft.score > 0 else None,
        "origin": _blank_to_none(draft.origin),
        "region": _blank_to_none(draft.region),
        "tasting_notes": _blank_to_none(draft.tasting_notes),
        "processing": _blank_to_none(draft.processing),
        "description": _blank_to_none(draft.description),
        "stock_status": _blank_to_none(_stock_value(draft.stock_status)),
    }


def _stock_value(value: StockStatus | str | None) -> str:
    if isinstance(value, StockStatus):
        return value.value
    return value or ""


def _blank_to_none(value: str | None) -> str | None:
    if value is None:
        return None
    stripped = value.strip()
    return stripped or None


def _to_catalog_item(row: Coffee) -> CatalogItem:
    return CatalogItem(
        url=row.url,
        name=row.name or "",
        price=row.price or 0.0,
        score=row.score,
        origin=row.origin,
        region=row.region,
        tasting_notes=row.tasting_notes,
        processing=row.processing,
        description=row.description,
        stock_status=row.stock_status,
        first_scraped_at=to_utc_aware_datetime(row.first_scraped_at),
        last_scraped_at=to_utc_aware_datetime(row.last_scraped_at),
        last_seen_at=to_utc_aware_datetime(row.last_seen_at),
        is_active=row.is_active,
        has_embedding=row.description_embedding is not None,
    )
