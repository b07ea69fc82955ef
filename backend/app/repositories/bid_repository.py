"""Bid ledger persistence helpers."""

from __future__ import annotations

from decimal import Decimal
from typing import Any

from sqlalchemy import select
from sqlalchemy.orm import Session

from app.models import AuctionBid, BidStatus


class BidRepository:
    """Append-only storage for bids plus the status updates the ledger allows."""

    def __init__(self, session: Session) -> None:
        self._session = session

    def add_bid(
        self,
        *,
        auction_id: int,
        bidder_id: int,
        amount: Decimal,
        currency: str,
    ) -> AuctionBid:
        record = AuctionBid(
            auction_id=auction_id,
            bidder_id=bidder_id,
            amount=amount,
            currency=currency,
            status=BidStatus.PENDING.value,
        )
        self._session.add(record)
        self._session.flush()
        return record

    def set_status(self, record: AuctionBid, status: BidStatus) -> AuctionBid:
        record.status = status.value
        self._session.flush()
        return record

    def get_bid(self, bid_id: int) -> AuctionBid | None:
        return self._session.get(AuctionBid, bid_id)

    def get_bid_for_update(self, bid_id: int) -> AuctionBid | None:
        return self._session.get(
            AuctionBid,
            bid_id,
            with_for_update=True,
            populate_existing=True,
        )

    def list_bids(
        self,
        *,
        auction_id: int | None = None,
        bidder_id: int | None = None,
        status: str | None = None,
    ) -> list[AuctionBid]:
        filters: list[Any] = []
        if auction_id is not None:
            filters.append(AuctionBid.auction_id == auction_id)
        if bidder_id is not None:
            filters.append(AuctionBid.bidder_id == bidder_id)
        if status:
            filters.append(AuctionBid.status == status)
        query = select(AuctionBid).where(*filters).order_by(AuctionBid.id.asc())
        return list(self._session.execute(query).scalars().all())
