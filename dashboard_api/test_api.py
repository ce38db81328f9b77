"""
Tests for the dashboard API against a temporary SQLite database.
"""
from datetime import datetime, timedelta, timezone

import pytest
from fastapi.testclient import TestClient

from dashboard_api.config import config
from dashboard_api.main import app
from ecaytracker.database import db_connect, db_init, upsert_listing
from ecaytracker.models import Listing


def listing(ext_id, make, price, year, body_type=None, mileage=None):
    return Listing(external_id=ext_id, url=f"https://ecaytrade.com/advert/{ext_id}",
                   title=f"{year} {make} Model", make=make, model="Model", year=year,
                   price=price, currency="KYD", body_type=body_type, mileage=mileage,
                   on_island=True, images=[f"https://img.example/{ext_id}.jpg"])


@pytest.fixture
def client(tmp_path, monkeypatch):
    db_path = str(tmp_path / "api.db")
    conn = db_connect(db_path)
    db_init(conn)
    upsert_listing(conn, listing("1", "Toyota", 10000.0, 2015, body_type="Sedan", mileage=80000))
    upsert_listing(conn, listing("2", "Toyota", 20000.0, 2018, body_type="SUV", mileage=40000))
    upsert_listing(conn, listing("3", "Honda", 30000.0, 2018))
    upsert_listing(conn, listing("1", "Toyota", 9000.0, 2015, body_type="Sedan", mileage=80000))
    old = (datetime.now(timezone.utc) - timedelta(days=30)).isoformat()
    conn.execute("UPDATE listings SET first_seen = ? WHERE external_id = '3'", (old,))
    conn.commit()
    conn.close()

    monkeypatch.setattr(config, "DB_PATH", db_path)
    with TestClient(app) as c:
        yield c


def test_health(client):
    resp = client.get("/health")
    assert resp.status_code == 200
    assert resp.json() == {"status": "ok"}


def test_listings_envelope(client):
    resp = client.get("/api/listings")
    assert resp.status_code == 200
    body = resp.json()
    assert body["error"] is None
    assert body["total"] == 3
    ids = {item["external_id"] for item in body["data"]}
    assert ids == {"1", "2", "3"}
    first = next(item for item in body["data"] if item["external_id"] == "1")
    assert first["price"] == 9000.0
    assert first["images"] == ["https://img.example/1.jpg"]
    assert first["on_island"] is True


def test_listings_filters(client):
    body = client.get("/api/listings", params={"make": "toyota", "min_price": 15000}).json()
    assert [item["external_id"] for item in body["data"]] == ["2"]


def test_single_listing_and_404(client):
    assert client.get("/api/listings/2").json()["make"] == "Toyota"
    assert client.get("/api/listings/999").status_code == 404


def test_price_history(client):
    points = client.get("/api/listings/1/price-history").json()
    assert [p["price"] for p in points] == [10000.0, 9000.0]
    assert client.get("/api/listings/999/price-history").status_code == 404


def test_stats(client):
    resp = client.get("/api/stats")
    assert resp.status_code == 200
    stats = resp.json()["data"]
    assert stats["total_listings"] == 3
    assert stats["median_price"] == 20000.0
    assert stats["avg_price"] == pytest.approx((9000 + 20000 + 30000) / 3)
    assert stats["new_this_week"] == 2
    assert stats["avg_mileage"] == pytest.approx(60000)
    assert stats["top_brands"][0] == {"name": "Toyota", "count": 2, "avg_price": 14500.0}
    assert {b["type"] for b in stats["body_types"]} == {"Sedan", "SUV", "Other"}
    assert stats["year_distribution"] == [{"year": 2015, "count": 1}, {"year": 2018, "count": 2}]


def test_export_csv(client):
    resp = client.get("/api/export/csv", params={"make": "Honda"})
    assert resp.status_code == 200
    assert resp.headers["content-type"].startswith("text/csv")
    lines = resp.text.strip().splitlines()
    assert len(lines) == 2
    assert "external_id" in lines[0]
