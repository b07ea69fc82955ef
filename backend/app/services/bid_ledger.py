"""Validation and bookkeeping for bids.

The ledger records bid attempts and moves bids through their status machine.
It never touches auction rows; accepting a bid and repricing the auction is
the settlement coordinator's job.
"""

from __future__ import annotations

from typing import Any

from loguru import logger
from sqlalchemy.orm import Session

from app.domain.errors import BidTooLow, CurrencyMismatch, Forbidden, InvalidTransition, NotFound
from app.domain.models import BidSnapshot
from app.domain.money import to_amount
from app.domain.states import can_transition_bid
from app.models import Auction, AuctionBid, BidStatus
from app.repositories import AuctionRepository, BidRepository

from .unit_of_work import unit_of_work


class BidLedger:
    def __init__(self, session: Session) -> None:
        self._session = session
        self._bids = BidRepository(session)
        self._auctions = AuctionRepository(session)

    # ------------------------------------------------------------------
    # Queries

    def get_bid(self, bid_id: int) -> BidSnapshot:
        record = self._require(bid_id)
        return self._snapshot(record)

    def list_bids(
        self,
        *,
        auction_id: int | None = None,
        bidder_id: int | None = None,
        status: str | None = None,
    ) -> list[BidSnapshot]:
        records = self._bids.list_bids(auction_id=auction_id, bidder_id=bidder_id, status=status)
        return [self._snapshot(record) for record in records]

    # ------------------------------------------------------------------
    # Recording

    def record_bid(
        self,
        auction_id: int,
        bidder_id: int,
        amount: Any,
        currency: str,
    ) -> BidSnapshot:
        """Validate a bid against the auction and append it as ``pending``.

        Flushes but does not commit: the caller owns the transaction.
        """

        auction = self._auctions.get_auction(auction_id)
        if auction is None:
            raise NotFound(f"Auction {auction_id} not found")

        try:
            value = to_amount(amount)
        except ValueError as exc:
            raise BidTooLow(str(exc)) from exc
        if value <= 0:
            raise BidTooLow("Bid amount must be positive")
        if currency != auction.currency:
            raise CurrencyMismatch(
                f"Bid currency {currency!r} does not match auction currency {auction.currency!r}"
            )
        if value <= auction.current_price:
            raise BidTooLow(
                f"Bid must be higher than {auction.current_price} {auction.currency}"
            )

        record = self._bids.add_bid(
            auction_id=auction_id,
            bidder_id=bidder_id,
            amount=value,
            currency=currency,
        )
        return self._snapshot(record, auction=auction)

    # ------------------------------------------------------------------
    # Status changes

    def cancel_bid(self, bid_id: int, requester_id: int) -> BidSnapshot:
        with unit_of_work(self._session, f"cancel bid {bid_id}"):
            # Re-read under a row lock so a settlement that just committed wins.
            record = self._bids.get_bid_for_update(bid_id)
            if record is None:
                raise NotFound(f"Bid {bid_id} not found")
            if record.bidder_id != requester_id:
                raise Forbidden(f"Bid {bid_id} belongs to another bidder")
            self._move(record, BidStatus.CANCELLED)
            snapshot = self._snapshot(record)
        logger.info("Bidder {} cancelled bid {}", requester_id, bid_id)
        return snapshot

    def reject_bid(self, bid_id: int) -> BidSnapshot:
        with unit_of_work(self._session, f"reject bid {bid_id}"):
            record = self._bids.get_bid_for_update(bid_id)
            if record is None:
                raise NotFound(f"Bid {bid_id} not found")
            self._move(record, BidStatus.REJECTED)
            snapshot = self._snapshot(record)
        logger.info("Bid {} rejected by administrator", bid_id)
        return snapshot

    def mark_accepted(self, bid_id: int) -> AuctionBid:
        """Settlement-only: ``pending -> accepted`` inside the caller's transaction."""

        return self._move(self._require(bid_id), BidStatus.ACCEPTED)

    def mark_outbid(self, bid_id: int) -> AuctionBid:
        """Settlement-only: ``accepted -> outbid`` inside the caller's transaction."""

        return self._move(self._require(bid_id), BidStatus.OUTBID)

    # ------------------------------------------------------------------
    # Internals

    def _require(self, bid_id: int) -> AuctionBid:
        record = self._bids.get_bid(bid_id)
        if record is None:
            raise NotFound(f"Bid {bid_id} not found")
        return record

    def _move(self, record: AuctionBid, target: BidStatus) -> AuctionBid:
        if not can_transition_bid(record.status, target):
            raise InvalidTransition(
                f"Bid {record.id} cannot move from {record.status} to {target.value}"
            )
        return self._bids.set_status(record, target)

    def _snapshot(self, record: AuctionBid, *, auction: Auction | None = None) -> BidSnapshot:
        auction = auction or self._auctions.get_auction(record.auction_id)
        highest = auction.highest_bid_id if auction is not None else None
        return BidSnapshot.from_record(record, highest_bid_id=highest)
