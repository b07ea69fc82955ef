"""Auction existence, time-window checks, and legal status transitions."""

from __future__ import annotations

from datetime import datetime
from typing import Any

from loguru import logger
from sqlalchemy.orm import Session

from app.domain.errors import InternalError, InvalidAuction, InvalidTransition, NotFound
from app.domain.models import AuctionSnapshot, Clock, LifecycleSummary
from app.domain.money import to_amount
from app.domain.states import can_transition_auction
from app.models import Auction, AuctionStatus, ensure_utc, utcnow
from app.repositories import AuctionRepository

from .locks import KeyedLockRegistry, auction_locks
from .unit_of_work import unit_of_work


def is_biddable(auction: Auction | AuctionSnapshot, now: datetime) -> bool:
    """True when the auction is active and ``now`` lies in ``[starts_at, ends_at)``."""

    if AuctionStatus(auction.status) is not AuctionStatus.ACTIVE:
        return False
    moment = ensure_utc(now)
    return ensure_utc(auction.starts_at) <= moment < ensure_utc(auction.ends_at)


def lifecycle_target(auction: Auction, now: datetime) -> AuctionStatus | None:
    """Status the clock alone would move ``auction`` to, or None if it stays put."""

    status = AuctionStatus(auction.status)
    moment = ensure_utc(now)
    starts_at = ensure_utc(auction.starts_at)
    ends_at = ensure_utc(auction.ends_at)

    if status is AuctionStatus.PENDING:
        if moment >= ends_at:
            return AuctionStatus.CANCELLED
        if moment >= starts_at:
            return AuctionStatus.ACTIVE
        return None
    if status is AuctionStatus.ACTIVE and moment >= ends_at:
        if auction.highest_bid_id is not None:
            return AuctionStatus.COMPLETED
        return AuctionStatus.CANCELLED
    return None


class AuctionManager:
    """Authoritative owner of auction rows and their status machine."""

    def __init__(
        self,
        session: Session,
        *,
        clock: Clock = utcnow,
        locks: KeyedLockRegistry = auction_locks,
        lock_timeout: float | None = None,
    ) -> None:
        self._session = session
        self._repo = AuctionRepository(session)
        self._clock = clock
        self._locks = locks
        self._lock_timeout = lock_timeout

    # ------------------------------------------------------------------
    # Queries

    def load(self, auction_id: int) -> AuctionSnapshot:
        record = self._repo.get_auction(auction_id)
        if record is None:
            raise NotFound(f"Auction {auction_id} not found")
        return AuctionSnapshot.from_record(record, now=self._clock())

    def lock(self, auction_id: int) -> Auction:
        """Load the auction row under a row lock; the caller owns the transaction."""

        record = self._repo.get_auction_for_update(auction_id)
        if record is None:
            raise NotFound(f"Auction {auction_id} not found")
        return record

    def list_auctions(
        self,
        *,
        status: str | None = None,
        owner_id: int | None = None,
        limit: int = 50,
        offset: int = 0,
    ) -> tuple[list[AuctionSnapshot], int]:
        records, total = self._repo.list_auctions(
            status=status, owner_id=owner_id, limit=limit, offset=offset
        )
        now = self._clock()
        return [AuctionSnapshot.from_record(record, now=now) for record in records], total

    @staticmethod
    def is_biddable(auction: Auction | AuctionSnapshot, now: datetime) -> bool:
        return is_biddable(auction, now)

    # ------------------------------------------------------------------
    # Commands

    def create_auction(
        self,
        *,
        owner_id: int,
        item_id: int,
        starting_price: Any,
        currency: str,
        starts_at: datetime,
        ends_at: datetime,
    ) -> AuctionSnapshot:
        try:
            price = to_amount(starting_price)
        except ValueError as exc:
            raise InvalidAuction(str(exc)) from exc
        if price <= 0:
            raise InvalidAuction("starting_price must be positive")
        code = (currency or "").strip()
        if not code:
            raise InvalidAuction("currency is required")
        starts = ensure_utc(starts_at)
        ends = ensure_utc(ends_at)
        if ends <= starts:
            raise InvalidAuction("ends_at must be after starts_at")

        with unit_of_work(self._session, "create auction"):
            record = self._repo.create_auction(
                owner_id=owner_id,
                item_id=item_id,
                starting_price=price,
                currency=code,
                starts_at=starts,
                ends_at=ends,
            )
            snapshot = AuctionSnapshot.from_record(record, now=self._clock())
        logger.info(
            "Created auction {} for item {} (owner={}, start={} {})",
            snapshot.id,
            item_id,
            owner_id,
            price,
            code,
        )
        return snapshot

    def transition(
        self,
        auction_id: int,
        target_status: AuctionStatus | str,
        *,
        now: datetime | None = None,
    ) -> AuctionSnapshot:
        try:
            target = AuctionStatus(target_status)
        except ValueError as exc:
            raise InvalidTransition(f"Unknown auction status {target_status!r}") from exc
        moment = now or self._clock()

        with self._hold(auction_id):
            with unit_of_work(self._session, f"transition auction {auction_id}"):
                record = self.lock(auction_id)
                previous = record.status
                self._apply(record, target, moment)
                snapshot = AuctionSnapshot.from_record(record, now=moment)
        logger.info("Auction {} moved {} -> {}", auction_id, previous, target.value)
        return snapshot

    def advance(self, auction_id: int, *, now: datetime | None = None) -> AuctionSnapshot | None:
        """Apply whatever transition the clock calls for; None when nothing is due."""

        moment = now or self._clock()
        with self._hold(auction_id):
            with unit_of_work(self._session, f"advance auction {auction_id}"):
                record = self.lock(auction_id)
                target = lifecycle_target(record, moment)
                if target is None:
                    return None
                previous = record.status
                self._apply(record, target, moment)
                snapshot = AuctionSnapshot.from_record(record, now=moment)
        logger.info("Auction {} advanced {} -> {}", auction_id, previous, target.value)
        return snapshot

    def sync_lifecycle(
        self, *, now: datetime | None = None, limit: int = 500
    ) -> LifecycleSummary:
        moment = ensure_utc(now or self._clock())
        summary = LifecycleSummary()
        candidates = self._repo.list_lifecycle_candidates(now=moment, limit=limit)
        due = [record.id for record in candidates if lifecycle_target(record, moment) is not None]
        summary.examined = len(candidates)
        # Release the read transaction before taking per-auction locks.
        self._session.rollback()

        for auction_id in due:
            try:
                snapshot = self.advance(auction_id, now=moment)
            except (InvalidTransition, NotFound, InternalError) as exc:
                logger.warning("Lifecycle sync skipped auction {}: {}", auction_id, exc)
                summary.failed.append(auction_id)
                continue
            if snapshot is None:
                continue
            if snapshot.status is AuctionStatus.ACTIVE:
                summary.activated.append(auction_id)
            elif snapshot.status is AuctionStatus.COMPLETED:
                summary.completed.append(auction_id)
            else:
                summary.cancelled.append(auction_id)

        logger.info(
            "Lifecycle sync examined {} auctions: {} activated, {} completed, {} cancelled, {} failed",
            summary.examined,
            len(summary.activated),
            len(summary.completed),
            len(summary.cancelled),
            len(summary.failed),
        )
        return summary

    # ------------------------------------------------------------------
    # Internals

    def _hold(self, auction_id: int):
        return self._locks.hold(auction_id, timeout=self._lock_timeout)

    def _apply(self, record: Auction, target: AuctionStatus, now: datetime) -> None:
        current = AuctionStatus(record.status)
        if not can_transition_auction(current, target):
            raise InvalidTransition(
                f"Auction {record.id} cannot move from {current.value} to {target.value}"
            )
        if target is AuctionStatus.ACTIVE:
            moment = ensure_utc(now)
            if not ensure_utc(record.starts_at) <= moment < ensure_utc(record.ends_at):
                raise InvalidTransition(
                    f"Auction {record.id} can only open inside its bidding window"
                )
        record.status = target.value
        self._session.flush()

