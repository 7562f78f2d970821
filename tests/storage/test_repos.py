"""Tests for storage repositories."""

from datetime import UTC, datetime

import pytest
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

from memecoin_price_alerts.storage.models import Base
from memecoin_price_alerts.storage.repos import WatchlistEntryDTO, WatchlistRepository

# ============================================================================
# Fixtures
# ============================================================================


@pytest.fixture
async def async_engine():
    """Create an async SQLite engine for testing."""
    engine = create_async_engine(
        "sqlite+aiosqlite:///:memory:",
        echo=False,
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture
async def async_session(async_engine) -> AsyncSession:
    """Create an async session for testing."""
    session_factory = async_sessionmaker(bind=async_engine, expire_on_commit=False)
    async with session_factory() as session:
        yield session


@pytest.fixture
def sample_entry_dto() -> WatchlistEntryDTO:
    """Create a sample watchlist entry DTO."""
    return WatchlistEntryDTO(
        token_address="0x6982508145454Ce325dDbE47a25d4ec3d2311933",
        chain_id="Ethereum",
        subscriber_id="12345",
        name="Pepe",
        symbol="PEPE",
        drop_threshold=5.0,
        reference_price=0.000012,
        initial_price=0.000012,
        added_at=datetime.now(UTC),
    )


# ============================================================================
# WatchlistRepository Tests
# ============================================================================


class TestWatchlistRepository:
    """Tests for WatchlistRepository."""

    @pytest.mark.asyncio
    async def test_get_not_found(self, async_session: AsyncSession) -> None:
        repo = WatchlistRepository(async_session)
        assert await repo.get("0xnonexistent", "ethereum", "1") is None

    @pytest.mark.asyncio
    async def test_insert_lowercases_key(
        self, async_session: AsyncSession, sample_entry_dto: WatchlistEntryDTO
    ) -> None:
        repo = WatchlistRepository(async_session)
        stored = await repo.insert(sample_entry_dto)
        await async_session.commit()

        assert stored.token_address == sample_entry_dto.token_address.lower()
        assert stored.chain_id == "ethereum"

        result = await repo.get(sample_entry_dto.token_address.upper(), "ETHEREUM", "12345")
        assert result is not None
        assert result.symbol == "PEPE"
        assert result.reference_price == 0.000012
        assert result.added_at is not None
        assert result.added_at.tzinfo is not None

    @pytest.mark.asyncio
    async def test_insert_duplicate_raises(
        self, async_session: AsyncSession, sample_entry_dto: WatchlistEntryDTO
    ) -> None:
        repo = WatchlistRepository(async_session)
        await repo.insert(sample_entry_dto)
        await async_session.commit()

        with pytest.raises(IntegrityError):
            await repo.insert(sample_entry_dto)

    @pytest.mark.asyncio
    async def test_list_all_and_per_subscriber(
        self, async_session: AsyncSession, sample_entry_dto: WatchlistEntryDTO
    ) -> None:
        repo = WatchlistRepository(async_session)
        await repo.insert(sample_entry_dto)
        other = WatchlistEntryDTO(
            token_address=sample_entry_dto.token_address,
            chain_id="ethereum",
            subscriber_id="99999",
            name="Pepe",
            symbol="PEPE",
            drop_threshold=10.0,
            reference_price=0.00002,
            initial_price=0.00002,
        )
        await repo.insert(other)
        await async_session.commit()

        everything = await repo.list_all()
        assert [e.subscriber_id for e in everything] == ["12345", "99999"]

        mine = await repo.list_for_subscriber("99999")
        assert len(mine) == 1
        assert mine[0].drop_threshold == 10.0

    @pytest.mark.asyncio
    async def test_set_reference_price(
        self, async_session: AsyncSession, sample_entry_dto: WatchlistEntryDTO
    ) -> None:
        repo = WatchlistRepository(async_session)
        await repo.insert(sample_entry_dto)
        await async_session.commit()

        assert await repo.set_reference_price(
            sample_entry_dto.token_address, "ethereum", "12345", 0.00002
        )
        await async_session.commit()

        result = await repo.get(sample_entry_dto.token_address, "ethereum", "12345")
        assert result is not None
        assert result.reference_price == 0.00002
        assert result.initial_price == 0.000012

    @pytest.mark.asyncio
    async def test_updates_on_missing_entry_return_false(
        self, async_session: AsyncSession
    ) -> None:
        repo = WatchlistRepository(async_session)

        assert not await repo.set_reference_price("0xnone", "ethereum", "1", 1.0)
        assert not await repo.set_threshold("0xnone", "ethereum", "1", 3.0)
        assert not await repo.delete("0xnone", "ethereum", "1")

    @pytest.mark.asyncio
    async def test_set_threshold_and_delete(
        self, async_session: AsyncSession, sample_entry_dto: WatchlistEntryDTO
    ) -> None:
        repo = WatchlistRepository(async_session)
        await repo.insert(sample_entry_dto)
        await async_session.commit()

        assert await repo.set_threshold(sample_entry_dto.token_address, "ethereum", "12345", 3.0)
        await async_session.commit()
        result = await repo.get(sample_entry_dto.token_address, "ethereum", "12345")
        assert result is not None
        assert result.drop_threshold == 3.0

        assert await repo.delete(sample_entry_dto.token_address, "ethereum", "12345")
        await async_session.commit()
        assert await repo.get(sample_entry_dto.token_address, "ethereum", "12345") is None
