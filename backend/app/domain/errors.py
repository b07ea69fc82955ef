"""Error kinds raised by the auction engine.

Every validation kind is raised before the engine mutates anything, so a
caller seeing one of them can assume the database is untouched. ``InternalError``
is the only kind that follows a rollback of partially applied work.
"""

from __future__ import annotations


class AuctionEngineError(Exception):
    """Base class for engine failures; ``kind`` is stable across releases."""

    kind = "AuctionEngineError"

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class NotFound(AuctionEngineError):
    kind = "NotFound"


class AuctionNotBiddable(AuctionEngineError):
    kind = "AuctionNotBiddable"


class BidTooLow(AuctionEngineError):
    kind = "BidTooLow"


class CurrencyMismatch(AuctionEngineError):
    kind = "CurrencyMismatch"


class InvalidTransition(AuctionEngineError):
    kind = "InvalidTransition"


class InvalidAuction(AuctionEngineError):
    kind = "InvalidAuction"


class Forbidden(AuctionEngineError):
    kind = "Forbidden"


class InternalError(AuctionEngineError):
    """Persistence failed mid-operation; nothing was committed, retrying is safe."""

    kind = "Internal"
