"""Status transition tables for auctions and bids."""

from __future__ import annotations

from collections.abc import Mapping

from app.models import AuctionStatus, BidStatus

AUCTION_TRANSITIONS: Mapping[AuctionStatus, frozenset[AuctionStatus]] = {
    AuctionStatus.PENDING: frozenset({AuctionStatus.ACTIVE, AuctionStatus.CANCELLED}),
    AuctionStatus.ACTIVE: frozenset({AuctionStatus.COMPLETED, AuctionStatus.CANCELLED}),
    AuctionStatus.COMPLETED: frozenset(),
    AuctionStatus.CANCELLED: frozenset(),
}

BID_TRANSITIONS: Mapping[BidStatus, frozenset[BidStatus]] = {
    BidStatus.PENDING: frozenset(
        {BidStatus.ACCEPTED, BidStatus.CANCELLED, BidStatus.REJECTED}
    ),
    BidStatus.ACCEPTED: frozenset({BidStatus.OUTBID}),
    BidStatus.REJECTED: frozenset(),
    BidStatus.CANCELLED: frozenset(),
    BidStatus.OUTBID: frozenset(),
}


def can_transition_auction(current: AuctionStatus | str, target: AuctionStatus | str) -> bool:
    return AuctionStatus(target) in AUCTION_TRANSITIONS[AuctionStatus(current)]


def can_transition_bid(current: BidStatus | str, target: BidStatus | str) -> bool:
    return BidStatus(target) in BID_TRANSITIONS[BidStatus(current)]


def is_terminal(status: AuctionStatus | str) -> bool:
    return not AUCTION_TRANSITIONS[AuctionStatus(status)]
