from __future__ import annotations

import json
from contextlib import contextmanager

import pytest

from app.db import session_scope
from app.models import AuctionStatus
from scripts import sync_auctions


def test_sync_script_writes_summary(tmp_path, monkeypatch, session_factory, test_settings, make_auction, fetch):
    """Verify the CLI settles expired auctions and writes a JSON summary."""
    expired = make_auction()
    summary_path = tmp_path / "out" / "summary.json"

    @contextmanager
    def scoped():
        with session_scope(session_factory) as session:
            yield session

    monkeypatch.setattr(sync_auctions, "session_scope", scoped)
    monkeypatch.setattr(sync_auctions, "init_db", lambda: None)
    monkeypatch.setattr(sync_auctions, "get_settings", lambda: test_settings)
    monkeypatch.setattr(
        "sys.argv", ["sync_auctions.py", "--summary-path", str(summary_path)]
    )

    assert sync_auctions.main() == 0

    payload = json.loads(summary_path.read_text(encoding="utf-8"))
    assert payload["examined"] == 1
    assert payload["cancelled"] == [expired]
    assert fetch.auction(expired).status == AuctionStatus.CANCELLED.value


@pytest.mark.parametrize("limit", ["0", "-1"])
def test_sync_script_rejects_non_positive_limit(limit, monkeypatch, test_settings):
    monkeypatch.setattr(sync_auctions, "init_db", lambda: None)
    monkeypatch.setattr(sync_auctions, "get_settings", lambda: test_settings)
    monkeypatch.setattr("sys.argv", ["sync_auctions.py", "--limit", limit])

    assert sync_auctions.main() == 2
