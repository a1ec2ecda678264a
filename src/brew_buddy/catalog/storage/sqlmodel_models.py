"""SQLModel ORM tables for the catalog store."""

from __future__ import annotations

from datetime import datetime

from sqlalchemy import (
    Boolean,
    Column,
    DateTime,
    ForeignKey,
    Index,
    LargeBinary,
    String,
    Text,
    text,
)
from sqlmodel import Field, SQLModel


class Coffee(SQLModel, table=True):
    __tablename__ = "coffee"  # type: ignore[bad-override]
    __table_args__ = (Index("idx_coffee_is_active", "is_active"),)

    id: int | None = Field(default=None, primary_key=True)
    url: str = Field(sa_column=Column(String, unique=True, nullable=False))
    name: str | None = None
    price: float | None = None
    score: float | None = None
    origin: str | None = None
    region: str | None = None
    tasting_notes: str | None = Field(default=None, sa_column=Column(Text))
    processing: str | None = None
    description: str | None = Field(default=None, sa_column=Column(Text))
    stock_status: str | None = None
    first_scraped_at: datetime = Field(sa_column=Column(DateTime(timezone=True), nullable=False))
    last_scraped_at: datetime = Field(sa_column=Column(DateTime(timezone=True), nullable=False))
    last_seen_at: datetime = Field(sa_column=Column(DateTime(timezone=True), nullable=False))
    is_active: bool = Field(
        default=True,
        sa_column=Column(Boolean, nullable=False, server_default=text("1")),
    )
    description_embedding: bytes | None = Field(
        default=None,
        sa_column=Column(LargeBinary, nullable=True),
    )


class SearchHistory(SQLModel, table=True):
    __tablename__ = "search_history"  # type: ignore[bad-override]

    query_text: str = Field(primary_key=True)
    embedding: bytes = Field(sa_column=Column(LargeBinary, nullable=False))
    created_at: datetime = Field(
        sa_column=Column(DateTime(timezone=True), nullable=False, index=True),
    )


class MyNote(SQLModel, table=True):
    __tablename__ = "my_notes"  # type: ignore[bad-override]

    id: int | None = Field(default=None, primary_key=True)
    coffee_url: str = Field(
        sa_column=Column(ForeignKey("coffee.url"), nullable=False, index=True),
    )
    rating: int | None = None
    notes: str | None = Field(default=None, sa_column=Column(Text))
    purchased_at: datetime = Field(sa_column=Column(DateTime(timezone=True), nullable=False))
