from __future__ import annotations

import os
import sys
from datetime import datetime, timedelta, timezone
from decimal import Decimal
from pathlib import Path

sys.path.insert(0, str(Path(__file__).resolve().parents[1]))
os.environ.setdefault("DATABASE_URL", "sqlite:///:memory:")

import pytest

from app.core.config import Settings
from app.db import build_engine, build_session_factory, init_db
from app.models import Auction, AuctionBid, AuctionStatus, BidStatus
from app.services.engine import AuctionEngine
from app.services.locks import KeyedLockRegistry

T0 = datetime(2025, 3, 1, 12, 0, tzinfo=timezone.utc)


class FixedClock:
    """Deterministic clock; call it to read the time, ``advance`` to move it."""

    def __init__(self, now: datetime) -> None:
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs: float) -> datetime:
        self.now = self.now + timedelta(**kwargs)
        return self.now


@pytest.fixture
def test_settings(tmp_path, monkeypatch) -> Settings:
    settings = Settings(
        database_url=f"sqlite:///{tmp_path/'tilt.db'}",
        default_currency="USD",
        lifecycle_sync_batch_size=100,
        bid_lock_timeout_seconds=5.0,
    )
    monkeypatch.setattr("app.core.config.get_settings", lambda: settings)
    monkeypatch.setattr("app.core.config.settings", settings)
    return settings


@pytest.fixture
def db_engine(tmp_path):
    engine = build_engine(f"sqlite:///{tmp_path / 'tilt.db'}")
    init_db(bind=engine)
    yield engine
    engine.dispose()


@pytest.fixture
def session_factory(db_engine):
    return build_session_factory(db_engine)


@pytest.fixture
def session(session_factory):
    with session_factory() as session:
        yield session


@pytest.fixture
def clock() -> FixedClock:
    return FixedClock(T0)


@pytest.fixture
def locks() -> KeyedLockRegistry:
    return KeyedLockRegistry()


@pytest.fixture
def make_engine(clock, locks, test_settings):
    def _make(session) -> AuctionEngine:
        return AuctionEngine(session, clock=clock, locks=locks, settings=test_settings)

    return _make


@pytest.fixture
def make_auction(session_factory):
    """Insert an auction row directly, bypassing the engine's creation rules."""

    def _make(
        *,
        status: AuctionStatus = AuctionStatus.ACTIVE,
        starting_price: str = "100",
        currency: str = "USD",
        starts_at: datetime = T0 - timedelta(hours=1),
        ends_at: datetime = T0 + timedelta(hours=1),
        owner_id: int = 1,
        item_id: int = 10,
    ) -> int:
        with session_factory() as session:
            record = Auction(
                owner_id=owner_id,
                item_id=item_id,
                status=status.value,
                starting_price=Decimal(starting_price),
                current_price=Decimal(starting_price),
                currency=currency,
                starts_at=starts_at,
                ends_at=ends_at,
            )
            session.add(record)
            session.commit()
            return record.id

    return _make


@pytest.fixture
def fetch(session_factory):
    """Read fresh copies of rows through a separate session."""

    class _Fetch:
        def auction(self, auction_id: int) -> Auction:
            with session_factory() as session:
                record = session.get(Auction, auction_id)
                session.expunge(record)
                return record

        def bids(self, auction_id: int) -> list[AuctionBid]:
            with session_factory() as session:
                records = (
                    session.query(AuctionBid)
                    .filter(AuctionBid.auction_id == auction_id)
                    .order_by(AuctionBid.id)
                    .all()
                )
                for record in records:
                    session.expunge(record)
                return records

        def accepted(self, auction_id: int) -> list[AuctionBid]:
            return [bid for bid in self.bids(auction_id) if bid.status == BidStatus.ACCEPTED.value]

    return _Fetch()
