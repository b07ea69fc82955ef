"""Domain types shared by the auction engine, repositories, and the API."""

from .errors import (
    AuctionEngineError,
    AuctionNotBiddable,
    BidTooLow,
    CurrencyMismatch,
    Forbidden,
    InternalError,
    InvalidAuction,
    InvalidTransition,
    NotFound,
)
from .models import AuctionSnapshot, BidSnapshot, LifecycleSummary, Settlement
from .states import (
    AUCTION_TRANSITIONS,
    BID_TRANSITIONS,
    can_transition_auction,
    can_transition_bid,
)

__all__ = [
    "AUCTION_TRANSITIONS",
    "BID_TRANSITIONS",
    "AuctionEngineError",
    "AuctionNotBiddable",
    "AuctionSnapshot",
    "BidSnapshot",
    "BidTooLow",
    "CurrencyMismatch",
    "Forbidden",
    "InternalError",
    "InvalidAuction",
    "InvalidTransition",
    "LifecycleSummary",
    "NotFound",
    "Settlement",
    "can_transition_auction",
    "can_transition_bid",
]
