"""Immutable views of auctions and bids handed back by engine operations."""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal

from app.models import Auction, AuctionBid, AuctionStatus, BidStatus, ensure_utc


@dataclass(frozen=True, slots=True)
class AuctionSnapshot:
    """Auction state as of the moment the producing operation committed."""

    id: int
    owner_id: int
    item_id: int
    status: AuctionStatus
    starting_price: Decimal
    current_price: Decimal
    currency: str
    starts_at: datetime
    ends_at: datetime
    highest_bid_id: int | None
    created_at: datetime
    updated_at: datetime
    is_biddable: bool = False

    @classmethod
    def from_record(cls, record: Auction, *, now: datetime | None = None) -> AuctionSnapshot:
        status = AuctionStatus(record.status)
        starts_at = ensure_utc(record.starts_at)
        ends_at = ensure_utc(record.ends_at)
        biddable = False
        if now is not None:
            moment = ensure_utc(now)
            biddable = status is AuctionStatus.ACTIVE and starts_at <= moment < ends_at
        return cls(
            id=record.id,
            owner_id=record.owner_id,
            item_id=record.item_id,
            status=status,
            starting_price=Decimal(record.starting_price),
            current_price=Decimal(record.current_price),
            currency=record.currency,
            starts_at=starts_at,
            ends_at=ends_at,
            highest_bid_id=record.highest_bid_id,
            created_at=ensure_utc(record.created_at),
            updated_at=ensure_utc(record.updated_at),
            is_biddable=biddable,
        )


@dataclass(frozen=True, slots=True)
class BidSnapshot:
    id: int
    auction_id: int
    bidder_id: int
    status: BidStatus
    amount: Decimal
    currency: str
    created_at: datetime
    updated_at: datetime
    is_highest_bid: bool = False

    @classmethod
    def from_record(cls, record: AuctionBid, *, highest_bid_id: int | None = None) -> BidSnapshot:
        return cls(
            id=record.id,
            auction_id=record.auction_id,
            bidder_id=record.bidder_id,
            status=BidStatus(record.status),
            amount=Decimal(record.amount),
            currency=record.currency,
            created_at=ensure_utc(record.created_at),
            updated_at=ensure_utc(record.updated_at),
            is_highest_bid=highest_bid_id is not None and highest_bid_id == record.id,
        )


@dataclass(frozen=True, slots=True)
class Settlement:
    """Outcome of a successful bid: the accepted bid and the updated auction."""

    bid: BidSnapshot
    auction: AuctionSnapshot
    outbid_bid_id: int | None = None


@dataclass(slots=True)
class LifecycleSummary:
    """Counts of transitions applied by one lifecycle sync pass."""

    examined: int = 0
    activated: list[int] = field(default_factory=list)
    completed: list[int] = field(default_factory=list)
    cancelled: list[int] = field(default_factory=list)
    failed: list[int] = field(default_factory=list)

    @property
    def changed(self) -> int:
        return len(self.activated) + len(self.completed) + len(self.cancelled)


Clock = Callable[[], datetime]
