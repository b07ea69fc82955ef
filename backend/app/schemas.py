from datetime import datetime
from decimal import Decimal

from pydantic import BaseModel, Field, field_validator, model_validator

from .models import AuctionStatus, BidStatus, ensure_utc


class AuctionCreate(BaseModel):
    item_id: int = Field(ge=1)
    starting_price: Decimal = Field(gt=0, max_digits=18, decimal_places=4)
    currency: str | None = Field(default=None, min_length=1, max_length=16)
    starts_at: datetime
    ends_at: datetime

    @field_validator("currency")
    @classmethod
    def _strip_currency(cls, value: str | None) -> str | None:
        if value is None:
            return None
        candidate = value.strip()
        if not candidate:
            raise ValueError("currency must not be blank")
        return candidate

    @model_validator(mode="after")
    def _check_window(self) -> "AuctionCreate":
        if ensure_utc(self.ends_at) <= ensure_utc(self.starts_at):
            raise ValueError("ends_at must be after starts_at")
        return self


class BidCreate(BaseModel):
    amount: Decimal = Field(gt=0, max_digits=18, decimal_places=4)
    currency: str = Field(min_length=1, max_length=16)


class AuctionTransitionRequest(BaseModel):
    status: AuctionStatus


class Auction(BaseModel):
    id: int
    owner_id: int
    item_id: int
    status: AuctionStatus
    starting_price: Decimal
    current_price: Decimal
    currency: str
    starts_at: datetime
    ends_at: datetime
    highest_bid_id: int | None = None
    is_biddable: bool
    created_at: datetime
    updated_at: datetime

    model_config = {"from_attributes": True}


class AuctionBid(BaseModel):
    id: int
    auction_id: int
    bidder_id: int
    status: BidStatus
    amount: Decimal
    currency: str
    is_highest_bid: bool
    created_at: datetime
    updated_at: datetime

    model_config = {"from_attributes": True}


class AuctionList(BaseModel):
    total: int
    items: list[Auction]


class AuctionBidList(BaseModel):
    total: int
    items: list[AuctionBid]


class BidPlacement(BaseModel):
    bid: AuctionBid
    auction: Auction
    outbid_bid_id: int | None = None

    model_config = {"from_attributes": True}


class LifecycleSyncResult(BaseModel):
    examined: int
    activated: list[int] = Field(default_factory=list)
    completed: list[int] = Field(default_factory=list)
    cancelled: list[int] = Field(default_factory=list)
    failed: list[int] = Field(default_factory=list)

    model_config = {"from_attributes": True}


class ErrorResponse(BaseModel):
    detail: str
    kind: str
