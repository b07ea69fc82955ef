"""Atomic bid acceptance.

``place_bid`` is the only code path that makes a bid win. Recording the bid,
outbidding the previous leader, accepting the new bid and repricing the
auction happen in one transaction under the auction's lock, so concurrent
bidders on the same auction are strictly serialised and never observe a
half-applied settlement.
"""

from __future__ import annotations

from datetime import datetime
from typing import Any

from loguru import logger
from sqlalchemy.orm import Session

from app.domain.errors import AuctionEngineError, AuctionNotBiddable, InternalError
from app.domain.models import AuctionSnapshot, BidSnapshot, Clock, Settlement
from app.models import utcnow

from .auction_manager import AuctionManager
from .bid_ledger import BidLedger
from .locks import KeyedLockRegistry, auction_locks
from .unit_of_work import unit_of_work


class SettlementCoordinator:
    def __init__(
        self,
        session: Session,
        *,
        manager: AuctionManager | None = None,
        ledger: BidLedger | None = None,
        clock: Clock = utcnow,
        locks: KeyedLockRegistry = auction_locks,
        lock_timeout: float | None = None,
    ) -> None:
        self._session = session
        self._clock = clock
        self._locks = locks
        self._lock_timeout = lock_timeout
        self._manager = manager or AuctionManager(
            session, clock=clock, locks=locks, lock_timeout=lock_timeout
        )
        self._ledger = ledger or BidLedger(session)

    def place_bid(
        self,
        auction_id: int,
        bidder_id: int,
        amount: Any,
        currency: str,
        *,
        now: datetime | None = None,
    ) -> Settlement:
        moment = now or self._clock()
        try:
            with self._locks.hold(auction_id, timeout=self._lock_timeout):
                with unit_of_work(self._session, f"bid on auction {auction_id}"):
                    auction = self._manager.lock(auction_id)
                    if not self._manager.is_biddable(auction, moment):
                        raise AuctionNotBiddable(
                            f"Auction {auction_id} is {auction.status} and not accepting bids"
                        )

                    recorded = self._ledger.record_bid(auction_id, bidder_id, amount, currency)

                    previous_id = auction.highest_bid_id
                    if previous_id is not None:
                        self._ledger.mark_outbid(previous_id)
                    accepted = self._ledger.mark_accepted(recorded.id)

                    auction.current_price = recorded.amount
                    auction.highest_bid_id = accepted.id
                    self._session.flush()

                    auction_snapshot = AuctionSnapshot.from_record(auction, now=moment)
                    bid_snapshot = BidSnapshot.from_record(accepted, highest_bid_id=accepted.id)
        except InternalError:
            raise
        except AuctionEngineError as exc:
            logger.warning(
                "Rejected bid on auction {} by bidder {} ({} {}): {} {}",
                auction_id,
                bidder_id,
                amount,
                currency,
                exc.kind,
                exc,
            )
            raise

        logger.info(
            "Accepted bid {} on auction {} by bidder {}: {} {} (outbid={})",
            bid_snapshot.id,
            auction_id,
            bidder_id,
            bid_snapshot.amount,
            bid_snapshot.currency,
            previous_id,
        )
        return Settlement(bid=bid_snapshot, auction=auction_snapshot, outbid_bid_id=previous_id)
