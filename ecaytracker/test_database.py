"""
Tests for the SQLite listing store.
"""
import json

import pytest

from ecaytracker.database import (
    db_connect,
    db_get_listing,
    db_init,
    db_price_history,
    upsert_listing,
)
from ecaytracker.errors import GatewayError
from ecaytracker.models import Listing


@pytest.fixture
def conn(tmp_path):
    c = db_connect(str(tmp_path / "db" / "test.db"))
    db_init(c)
    yield c
    c.close()


def make_listing(price: float = 15000.0, **kwargs) -> Listing:
    base = dict(external_id="4242", url="https://ecaytrade.com/advert/4242", title="2018 Toyota Camry SE",
                make="Toyota", model="Camry SE", year=2018, mileage=45000, price=price, currency="KYD",
                on_island=True, images=["https://img.example/1.jpg"])
    base.update(kwargs)
    return Listing(**base)


def test_insert_new_listing(conn):
    result = upsert_listing(conn, make_listing())
    assert result.inserted is True
    assert result.price_changed is False

    row = db_get_listing(conn, "4242")
    assert row["title"] == "2018 Toyota Camry SE"
    assert row["mileage"] == 45000
    assert row["on_island"] == 1
    assert row["is_active"] == 1
    assert json.loads(row["images"]) == ["https://img.example/1.jpg"]
    assert row["first_seen"] == row["last_seen"]
    assert len(db_price_history(conn, "4242")) == 1


def test_same_price_is_not_a_change(conn):
    upsert_listing(conn, make_listing())
    result = upsert_listing(conn, make_listing())
    assert result.inserted is False
    assert result.price_changed is False
    assert len(db_price_history(conn, "4242")) == 1


def test_price_change_recorded(conn):
    upsert_listing(conn, make_listing(price=15000.0))
    result = upsert_listing(conn, make_listing(price=13500.0))
    assert result.inserted is False
    assert result.price_changed is True
    history = db_price_history(conn, "4242")
    assert [p["price"] for p in history] == [15000.0, 13500.0]
    assert db_get_listing(conn, "4242")["price"] == 13500.0


def test_zero_price_is_not_a_change(conn):
    upsert_listing(conn, make_listing(price=15000.0))
    result = upsert_listing(conn, make_listing(price=0.0))
    assert result.price_changed is False
    assert len(db_price_history(conn, "4242")) == 1


def test_first_seen_kept_on_update(conn):
    upsert_listing(conn, make_listing())
    first = db_get_listing(conn, "4242")["first_seen"]
    upsert_listing(conn, make_listing(mileage=46000))
    row = db_get_listing(conn, "4242")
    assert row["first_seen"] == first
    assert row["mileage"] == 46000


def test_unknown_on_island_stored_as_null(conn):
    upsert_listing(conn, make_listing(on_island=None))
    assert db_get_listing(conn, "4242")["on_island"] is None


def test_listing_without_external_id_rejected(conn):
    with pytest.raises(ValueError):
        upsert_listing(conn, make_listing(external_id=""))


def test_unopenable_database(tmp_path):
    blocker = tmp_path / "not_a_dir"
    blocker.write_text("x")
    with pytest.raises(GatewayError):
        db_connect(str(blocker / "test.db"))
