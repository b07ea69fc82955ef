from __future__ import annotations

from decimal import Decimal

import pytest

from app.domain.errors import BidTooLow, CurrencyMismatch, Forbidden, InvalidTransition, NotFound
from app.models import BidStatus
from app.services.bid_ledger import BidLedger


def _pending_bid(session, auction_id: int, bidder_id: int = 7, amount: str = "150") -> int:
    snapshot = BidLedger(session).record_bid(auction_id, bidder_id, amount, "USD")
    session.commit()
    return snapshot.id


def test_record_bid_appends_pending_bid(session, make_auction, fetch):
    auction_id = make_auction(starting_price="100")

    snapshot = BidLedger(session).record_bid(auction_id, 7, "100.01", "USD")
    session.commit()

    assert snapshot.status is BidStatus.PENDING
    assert snapshot.amount == Decimal("100.01")
    assert snapshot.is_highest_bid is False
    stored = fetch.bids(auction_id)
    assert [(bid.id, bid.status) for bid in stored] == [(snapshot.id, BidStatus.PENDING.value)]
    assert fetch.auction(auction_id).current_price == Decimal("100")


@pytest.mark.parametrize(
    "amount, currency, error",
    [
        ("100", "USD", BidTooLow),
        ("99.99", "USD", BidTooLow),
        ("0", "USD", BidTooLow),
        ("150", "EUR", CurrencyMismatch),
    ],
)
def test_record_bid_validation(amount, currency, error, session, make_auction, fetch):
    auction_id = make_auction(starting_price="100", currency="USD")

    with pytest.raises(error):
        BidLedger(session).record_bid(auction_id, 7, amount, currency)
    session.rollback()

    assert fetch.bids(auction_id) == []


def test_record_bid_unknown_auction(session):
    with pytest.raises(NotFound):
        BidLedger(session).record_bid(41, 7, "150", "USD")


def test_bidder_can_cancel_own_pending_bid(session, make_auction, fetch):
    """Verify a bidder withdrawing a pending bid moves it to cancelled."""
    auction_id = make_auction()
    bid_id = _pending_bid(session, auction_id)

    snapshot = BidLedger(session).cancel_bid(bid_id, 7)

    assert snapshot.status is BidStatus.CANCELLED
    assert fetch.bids(auction_id)[0].status == BidStatus.CANCELLED.value


def test_cancel_by_another_bidder_is_forbidden(session, make_auction, fetch):
    auction_id = make_auction()
    bid_id = _pending_bid(session, auction_id, bidder_id=7)

    with pytest.raises(Forbidden):
        BidLedger(session).cancel_bid(bid_id, 8)

    assert fetch.bids(auction_id)[0].status == BidStatus.PENDING.value


def test_cancel_accepted_bid_is_invalid(session, make_engine, make_auction, fetch):
    """Verify accepted bids cannot be withdrawn."""
    auction_id = make_auction()
    settlement = make_engine(session).place_bid(auction_id, 7, "150", "USD")

    with pytest.raises(InvalidTransition):
        BidLedger(session).cancel_bid(settlement.bid.id, 7)

    assert fetch.accepted(auction_id)[0].id == settlement.bid.id
    assert fetch.auction(auction_id).highest_bid_id == settlement.bid.id


def test_cancel_unknown_bid(session):
    with pytest.raises(NotFound):
        BidLedger(session).cancel_bid(1234, 7)


def test_cancel_twice_is_invalid(session, make_auction):
    auction_id = make_auction()
    bid_id = _pending_bid(session, auction_id)
    ledger = BidLedger(session)
    ledger.cancel_bid(bid_id, 7)

    with pytest.raises(InvalidTransition):
        ledger.cancel_bid(bid_id, 7)


def test_reject_only_applies_to_pending_bids(session, make_engine, make_auction):
    auction_id = make_auction()
    bid_id = _pending_bid(session, auction_id)
    ledger = BidLedger(session)

    assert ledger.reject_bid(bid_id).status is BidStatus.REJECTED

    accepted = make_engine(session).place_bid(auction_id, 8, "200", "USD")
    with pytest.raises(InvalidTransition):
        ledger.reject_bid(accepted.bid.id)


def test_mark_transitions_follow_the_status_machine(session, make_auction):
    auction_id = make_auction()
    bid_id = _pending_bid(session, auction_id)
    ledger = BidLedger(session)

    with pytest.raises(InvalidTransition):
        ledger.mark_outbid(bid_id)

    record = ledger.mark_accepted(bid_id)
    assert record.status == BidStatus.ACCEPTED.value
    with pytest.raises(InvalidTransition):
        ledger.mark_accepted(bid_id)

    record = ledger.mark_outbid(bid_id)
    assert record.status == BidStatus.OUTBID.value
    with pytest.raises(InvalidTransition):
        ledger.mark_outbid(bid_id)
    session.rollback()


def test_mark_unknown_bid_raises_not_found(session):
    ledger = BidLedger(session)

    with pytest.raises(NotFound):
        ledger.mark_accepted(5)
    with pytest.raises(NotFound):
        ledger.mark_outbid(5)


def test_list_bids_filters(session, make_engine, make_auction):
    first_auction = make_auction()
    second_auction = make_auction()
    engine = make_engine(session)
    engine.place_bid(first_auction, 7, "150", "USD")
    engine.place_bid(first_auction, 8, "160", "USD")
    engine.place_bid(second_auction, 7, "300", "USD")
    ledger = BidLedger(session)

    by_auction = ledger.list_bids(auction_id=first_auction)
    assert [bid.amount for bid in by_auction] == [Decimal("150"), Decimal("160")]
    assert [bid.is_highest_bid for bid in by_auction] == [False, True]

    by_bidder = ledger.list_bids(bidder_id=7)
    assert {bid.auction_id for bid in by_bidder} == {first_auction, second_auction}

    outbid = ledger.list_bids(status=BidStatus.OUTBID.value)
    assert [(bid.bidder_id, bid.auction_id) for bid in outbid] == [(7, first_auction)]
