"""Repository abstractions for database interactions."""

from .auction_repository import AuctionRepository
from .bid_repository import BidRepository

__all__ = [
    "AuctionRepository",
    "BidRepository",
]
