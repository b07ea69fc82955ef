"""Auction-focused data access helpers."""

from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from typing import Any

from sqlalchemy import and_, func, or_, select
from sqlalchemy.orm import Session

from app.models import Auction, AuctionStatus


class AuctionRepository:
    """Encapsulate all auction persistence concerns."""

    def __init__(self, session: Session) -> None:
        self._session = session

    # ------------------------------------------------------------------
    # Mutations

    def create_auction(
        self,
        *,
        owner_id: int,
        item_id: int,
        starting_price: Decimal,
        currency: str,
        starts_at: datetime,
        ends_at: datetime,
    ) -> Auction:
        record = Auction(
            owner_id=owner_id,
            item_id=item_id,
            status=AuctionStatus.PENDING.value,
            starting_price=starting_price,
            current_price=starting_price,
            currency=currency,
            starts_at=starts_at,
            ends_at=ends_at,
        )
        self._session.add(record)
        self._session.flush()
        return record

    # ------------------------------------------------------------------
    # Queries

    def get_auction(self, auction_id: int) -> Auction | None:
        return self._session.get(Auction, auction_id)

    def get_auction_for_update(self, auction_id: int) -> Auction | None:
        """Load the row under ``SELECT ... FOR UPDATE`` and refresh any cached copy."""

        return self._session.get(
            Auction,
            auction_id,
            with_for_update=True,
            populate_existing=True,
        )

    def list_auctions(
        self,
        *,
        status: str | None = None,
        owner_id: int | None = None,
        limit: int = 50,
        offset: int = 0,
    ) -> tuple[list[Auction], int]:
        filters: list[Any] = []
        if status:
            filters.append(Auction.status == status)
        if owner_id is not None:
            filters.append(Auction.owner_id == owner_id)

        count_query = select(func.count()).select_from(Auction).where(*filters)
        total = self._session.execute(count_query).scalar_one()

        query = (
            select(Auction)
            .where(*filters)
            .order_by(Auction.starts_at.asc(), Auction.id.asc())
            .limit(limit)
            .offset(offset)
        )
        records = list(self._session.execute(query).scalars().all())
        return records, total

    def list_lifecycle_candidates(self, *, now: datetime, limit: int) -> list[Auction]:
        """Return auctions the clock has made due for a status change, oldest window first.

        Pending auctions are due once their window opened; active ones once it closed.
        """

        query = (
            select(Auction)
            .where(
                or_(
                    and_(
                        Auction.status == AuctionStatus.PENDING.value,
                        Auction.starts_at <= now,
                    ),
                    and_(
                        Auction.status == AuctionStatus.ACTIVE.value,
                        Auction.ends_at <= now,
                    ),
                )
            )
            .order_by(Auction.ends_at.asc(), Auction.id.asc())
            .limit(limit)
        )
        return list(self._session.execute(query).scalars().all())
