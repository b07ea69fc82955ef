from __future__ import annotations

from dataclasses import dataclass
from typing import Annotated

from fastapi import Depends, FastAPI, Header, HTTPException, Query, Request
from fastapi.responses import JSONResponse
from loguru import logger

from . import schemas
from .core.config import settings
from .db import get_db, init_db
from .domain.errors import (
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
from .models import AuctionStatus, BidStatus
from .services.engine import AuctionEngine

app = FastAPI(
    title="Tilt Auctions API",
    version="0.1.0",
    debug=settings.debug,
    responses={
        code: {"model": schemas.ErrorResponse} for code in (403, 404, 409, 422, 503)
    },
)

ERROR_STATUS_CODES: dict[type[AuctionEngineError], int] = {
    NotFound: 404,
    Forbidden: 403,
    AuctionNotBiddable: 409,
    InvalidTransition: 409,
    BidTooLow: 422,
    CurrencyMismatch: 422,
    InvalidAuction: 422,
    InternalError: 503,
}


@dataclass(slots=True)
class Caller:
    user_id: int
    is_admin: bool = False


@app.on_event("startup")
def on_startup() -> None:
    """Initialize database connections when the API boots."""

    init_db()


@app.exception_handler(AuctionEngineError)
def _engine_error_handler(request: Request, exc: AuctionEngineError) -> JSONResponse:
    status_code = 500
    for error_type in type(exc).__mro__:
        if error_type in ERROR_STATUS_CODES:
            status_code = ERROR_STATUS_CODES[error_type]
            break
    if status_code >= 500:
        logger.error("{} {} failed: {}", request.method, request.url.path, exc)
    return JSONResponse(
        status_code=status_code,
        content={"detail": exc.message, "kind": exc.kind},
    )


@app.get("/healthz", tags=["system"])
def healthcheck() -> dict[str, str]:
    """Basic readiness probe consumed by infrastructure monitors."""

    return {"status": "ok"}


def _current_user(
    x_user_id: Annotated[
        int | None, Header(description="Authenticated user id set by the identity gateway")
    ] = None,
    x_user_admin: Annotated[bool, Header(description="Whether the caller is an administrator")] = False,
) -> Caller:
    """Trust the identity forwarded by the upstream gateway."""

    if x_user_id is None:
        raise HTTPException(status_code=401, detail="Authentication required")
    return Caller(user_id=x_user_id, is_admin=x_user_admin)


def _require_admin(caller: Caller = Depends(_current_user)) -> Caller:
    # Hide admin routes from regular users entirely.
    if not caller.is_admin:
        raise HTTPException(status_code=404, detail="Not found")
    return caller


def _auction_engine(db=Depends(get_db)) -> AuctionEngine:
    """Provide the auction engine wired with a SQLAlchemy session."""

    return AuctionEngine(db)


# ----------------------------------------------------------------------
# Auctions


@app.post("/auctions", response_model=schemas.Auction, status_code=201, tags=["auctions"])
def create_auction(
    payload: schemas.AuctionCreate,
    caller: Caller = Depends(_current_user),
    engine: AuctionEngine = Depends(_auction_engine),
):
    """Open a new auction in ``pending`` status owned by the caller."""

    snapshot = engine.create_auction(
        owner_id=caller.user_id,
        item_id=payload.item_id,
        starting_price=payload.starting_price,
        currency=payload.currency,
        starts_at=payload.starts_at,
        ends_at=payload.ends_at,
    )
    return schemas.Auction.model_validate(snapshot)


@app.get("/auctions", response_model=schemas.AuctionList, tags=["auctions"])
def list_auctions(
    *,
    status: Annotated[AuctionStatus | None, Query(description="Auction status filter")] = None,
    owner_id: Annotated[int | None, Query(description="Only auctions owned by this user")] = None,
    limit: Annotated[int, Query(ge=1, le=200)] = 50,
    offset: Annotated[int, Query(ge=0)] = 0,
    caller: Caller = Depends(_current_user),
    engine: AuctionEngine = Depends(_auction_engine),
):
    auctions, total = engine.list_auctions(
        status=status.value if status else None,
        owner_id=owner_id,
        limit=limit,
        offset=offset,
    )
    return schemas.AuctionList(
        total=total, items=[schemas.Auction.model_validate(item) for item in auctions]
    )


@app.get("/auctions/{auction_id}", response_model=schemas.Auction, tags=["auctions"])
def get_auction(
    auction_id: int,
    caller: Caller = Depends(_current_user),
    engine: AuctionEngine = Depends(_auction_engine),
):
    return schemas.Auction.model_validate(engine.get_auction(auction_id))


@app.get("/auctions/{auction_id}/bids", response_model=schemas.AuctionBidList, tags=["bids"])
def list_auction_bids(
    auction_id: int,
    status: Annotated[BidStatus | None, Query(description="Bid status filter")] = None,
    caller: Caller = Depends(_current_user),
    engine: AuctionEngine = Depends(_auction_engine),
):
    """Bid history for one auction, oldest first."""

    engine.get_auction(auction_id)
    bids = engine.list_bids(auction_id=auction_id, status=status.value if status else None)
    return schemas.AuctionBidList(
        total=len(bids), items=[schemas.AuctionBid.model_validate(bid) for bid in bids]
    )


@app.post(
    "/auctions/{auction_id}/bids",
    response_model=schemas.BidPlacement,
    status_code=201,
    tags=["bids"],
)
def place_bid(
    auction_id: int,
    payload: schemas.BidCreate,
    caller: Caller = Depends(_current_user),
    engine: AuctionEngine = Depends(_auction_engine),
):
    """Bid on an auction; the bid is accepted immediately or rejected with a reason."""

    settlement = engine.place_bid(auction_id, caller.user_id, payload.amount, payload.currency)
    return schemas.BidPlacement.model_validate(settlement)


# ----------------------------------------------------------------------
# Bids


@app.get("/bids/{bid_id}", response_model=schemas.AuctionBid, tags=["bids"])
def get_bid(
    bid_id: int,
    caller: Caller = Depends(_current_user),
    engine: AuctionEngine = Depends(_auction_engine),
):
    return schemas.AuctionBid.model_validate(engine.get_bid(bid_id))


@app.post("/bids/{bid_id}/cancel", response_model=schemas.AuctionBid, tags=["bids"])
def cancel_bid(
    bid_id: int,
    caller: Caller = Depends(_current_user),
    engine: AuctionEngine = Depends(_auction_engine),
):
    """Withdraw one of the caller's own pending bids."""

    return schemas.AuctionBid.model_validate(engine.cancel_bid(bid_id, caller.user_id))


# ----------------------------------------------------------------------
# Admin


@app.get("/admin/bids", response_model=schemas.AuctionBidList, tags=["admin"])
def admin_list_bids(
    *,
    auction_id: Annotated[int | None, Query(description="Filter bids by auction")] = None,
    bidder_id: Annotated[int | None, Query(description="Filter bids by bidder")] = None,
    status: Annotated[BidStatus | None, Query(description="Filter bids by status")] = None,
    caller: Caller = Depends(_require_admin),
    engine: AuctionEngine = Depends(_auction_engine),
):
    bids = engine.list_bids(
        auction_id=auction_id,
        bidder_id=bidder_id,
        status=status.value if status else None,
    )
    return schemas.AuctionBidList(
        total=len(bids), items=[schemas.AuctionBid.model_validate(bid) for bid in bids]
    )


@app.post(
    "/admin/auctions/{auction_id}/transition",
    response_model=schemas.Auction,
    tags=["admin"],
)
def admin_transition_auction(
    auction_id: int,
    payload: schemas.AuctionTransitionRequest,
    caller: Caller = Depends(_require_admin),
    engine: AuctionEngine = Depends(_auction_engine),
):
    """Move an auction through its status machine (activate, close, or cancel)."""

    snapshot = engine.transition_auction(auction_id, payload.status)
    return schemas.Auction.model_validate(snapshot)


@app.post("/admin/bids/{bid_id}/reject", response_model=schemas.AuctionBid, tags=["admin"])
def admin_reject_bid(
    bid_id: int,
    caller: Caller = Depends(_require_admin),
    engine: AuctionEngine = Depends(_auction_engine),
):
    return schemas.AuctionBid.model_validate(engine.reject_bid(bid_id))


@app.post("/admin/auctions/sync", response_model=schemas.LifecycleSyncResult, tags=["admin"])
def admin_sync_auctions(
    limit: Annotated[int | None, Query(ge=1, le=5000)] = None,
    caller: Caller = Depends(_require_admin),
    engine: AuctionEngine = Depends(_auction_engine),
):
    """Run one lifecycle pass: open due auctions and settle expired ones."""

    return schemas.LifecycleSyncResult.model_validate(engine.sync_lifecycle(limit=limit))
