"""SQLAlchemy models for persistent storage.

This module defines the database schema for per-chat token watchlists.
"""

from __future__ import annotations

from datetime import UTC, datetime

from sqlalchemy import DateTime, Float, Index, Integer, String, UniqueConstraint
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column


class Base(DeclarativeBase):
    """Base class for all SQLAlchemy models."""

    pass


class WatchlistEntryModel(Base):
    """One tracked token for one chat subscriber."""

    __tablename__ = "watchlist_entries"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)

    # Lowercased on write.
    token_address: Mapped[str] = mapped_column(String(128), nullable=False)
    chain_id: Mapped[str] = mapped_column(String(32), nullable=False)
    subscriber_id: Mapped[str] = mapped_column(String(64), nullable=False)

    # Captured once at add time.
    name: Mapped[str] = mapped_column(String(256), nullable=False)
    symbol: Mapped[str] = mapped_column(String(64), nullable=False)

    drop_threshold: Mapped[float] = mapped_column(Float, nullable=False)
    reference_price: Mapped[float] = mapped_column(Float, nullable=False)
    initial_price: Mapped[float] = mapped_column(Float, nullable=False)

    added_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=lambda: datetime.now(UTC)
    )

    __table_args__ = (
        UniqueConstraint(
            "token_address",
            "chain_id",
            "subscriber_id",
            name="uq_watchlist_entries_token_chain_subscriber",
        ),
        Index("idx_watchlist_entries_subscriber", "subscriber_id"),
    )
