"""Facade exposing auction engine operations to the API and scripts."""

from __future__ import annotations

from datetime import datetime
from typing import Any

from sqlalchemy.orm import Session

from app.core.config import Settings, settings as default_settings
from app.domain.models import AuctionSnapshot, BidSnapshot, Clock, LifecycleSummary, Settlement
from app.models import AuctionStatus, utcnow

from .auction_manager import AuctionManager
from .bid_ledger import BidLedger
from .locks import KeyedLockRegistry, auction_locks
from .settlement import SettlementCoordinator


class AuctionEngine:
    """Wire the auction manager, bid ledger, and settlement coordinator to one session."""

    def __init__(
        self,
        session: Session,
        *,
        clock: Clock = utcnow,
        locks: KeyedLockRegistry = auction_locks,
        settings: Settings | None = None,
    ) -> None:
        self._settings = settings or default_settings
        lock_timeout = self._settings.bid_lock_timeout_seconds
        self.manager = AuctionManager(session, clock=clock, locks=locks, lock_timeout=lock_timeout)
        self.ledger = BidLedger(session)
        self.coordinator = SettlementCoordinator(
            session,
            manager=self.manager,
            ledger=self.ledger,
            clock=clock,
            locks=locks,
            lock_timeout=lock_timeout,
        )

    # ------------------------------------------------------------------
    # Bidding

    def place_bid(self, auction_id: int, bidder_id: int, amount: Any, currency: str) -> Settlement:
        return self.coordinator.place_bid(auction_id, bidder_id, amount, currency)

    def cancel_bid(self, bid_id: int, requester_id: int) -> BidSnapshot:
        return self.ledger.cancel_bid(bid_id, requester_id)

    def reject_bid(self, bid_id: int) -> BidSnapshot:
        return self.ledger.reject_bid(bid_id)

    def get_bid(self, bid_id: int) -> BidSnapshot:
        return self.ledger.get_bid(bid_id)

    def list_bids(
        self,
        *,
        auction_id: int | None = None,
        bidder_id: int | None = None,
        status: str | None = None,
    ) -> list[BidSnapshot]:
        return self.ledger.list_bids(auction_id=auction_id, bidder_id=bidder_id, status=status)

    # ------------------------------------------------------------------
    # Auctions

    def create_auction(
        self,
        *,
        owner_id: int,
        item_id: int,
        starting_price: Any,
        starts_at: datetime,
        ends_at: datetime,
        currency: str | None = None,
    ) -> AuctionSnapshot:
        return self.manager.create_auction(
            owner_id=owner_id,
            item_id=item_id,
            starting_price=starting_price,
            currency=currency or self._settings.default_currency,
            starts_at=starts_at,
            ends_at=ends_at,
        )

    def get_auction(self, auction_id: int) -> AuctionSnapshot:
        return self.manager.load(auction_id)

    def list_auctions(
        self,
        *,
        status: str | None = None,
        owner_id: int | None = None,
        limit: int = 50,
        offset: int = 0,
    ) -> tuple[list[AuctionSnapshot], int]:
        return self.manager.list_auctions(
            status=status, owner_id=owner_id, limit=limit, offset=offset
        )

    def transition_auction(self, auction_id: int, target_status: AuctionStatus | str) -> AuctionSnapshot:
        return self.manager.transition(auction_id, target_status)

    def sync_lifecycle(self, *, limit: int | None = None) -> LifecycleSummary:
        if limit is None:
            limit = self._settings.lifecycle_sync_batch_size
        return self.manager.sync_lifecycle(limit=limit)
