# SPDX-FileCopyrightText: 2025 Roland Knall <rknall@gmail.com>
# SPDX-License-Identifier: GPL-2.0-only
"""Integration tests for the analytics and currency API endpoints."""

import json
from datetime import date, datetime, timezone

import pytest
import respx
from httpx import Response

from agencydesk.services.rate_provider import (
    FETCHED_AT_KEY,
    RATES_KEY,
    build_cross_rates,
)

RATES_URL = "https://api.currencylayer.com/live"


@pytest.fixture
def cached_rates(memory_store):
    """Seed a fresh rate table so no request reaches the live feed."""
    table = build_cross_rates("EUR", {"USD": 1.08, "RON": 4.97, "GBP": 0.85})
    memory_store.set(RATES_KEY, json.dumps(table))
    memory_store.set(FETCHED_AT_KEY, datetime.now(timezone.utc).isoformat())
    return table


class TestHealth:
    def test_health(self, client):
        response = client.get("/health")

        assert response.status_code == 200
        assert response.json() == {"status": "healthy"}


class TestRatesEndpoint:
    """Tests for GET /api/v1/currencies/rates."""

    @respx.mock
    def test_fetches_live_rates(self, client, live_payload):
        respx.get(RATES_URL).mock(return_value=Response(200, json=live_payload()))

        response = client.get("/api/v1/currencies/rates")

        assert response.status_code == 200
        data = response.json()
        assert data["source"] == "live"
        assert data["base_currency"] == "EUR"
        assert data["currencies"] == ["EUR", "GBP", "RON", "USD"]
        assert data["rates"]["EUR"]["USD"] == 1.1

    @respx.mock
    def test_falls_back_when_feed_fails(self, client):
        respx.get(RATES_URL).mock(return_value=Response(500))

        response = client.get("/api/v1/currencies/rates")

        assert response.status_code == 200
        data = response.json()
        assert data["source"] == "fallback"
        assert data["fetched_at"] is None
        assert data["rates"]["EUR"]["USD"] == 1.08

    def test_serves_cache(self, client, cached_rates):
        response = client.get("/api/v1/currencies/rates")

        assert response.json()["source"] == "cache"
        assert response.json()["rates"] == cached_rates


class TestConvertEndpoint:
    """Tests for GET /api/v1/currencies/convert."""

    def test_converts_with_cached_rates(self, client, cached_rates):
        response = client.get(
            "/api/v1/currencies/convert",
            params={"amount": 100, "from": "eur", "to": "usd"},
        )

        assert response.status_code == 200
        data = response.json()
        assert data["from_currency"] == "EUR"
        assert data["converted_amount"] == pytest.approx(108)
        assert data["formatted"] == "$108.00"

    def test_unknown_currency_fails_open(self, client, cached_rates):
        response = client.get(
            "/api/v1/currencies/convert",
            params={"amount": 5, "from": "JPY", "to": "USD"},
        )

        assert response.json()["converted_amount"] == 5

    def test_requires_parameters(self, client):
        response = client.get("/api/v1/currencies/convert", params={"amount": 5})

        assert response.status_code == 422


class TestSnapshotEndpoint:
    """Tests for POST /api/v1/analytics/snapshot."""

    def payload(self, **overrides):
        today = date.today().isoformat()
        data = {
            "clients": [
                {
                    "id": "c1",
                    "name": "Acme",
                    "currency": "EUR",
                    "invoices": [
                        {"amount": 100, "status": "paid", "date": today},
                        {"amount": 50, "status": "pending", "date": today},
                    ],
                },
                {
                    "id": "c2",
                    "name": "Globex",
                    "currency": "USD",
                    "invoices": [{"amount": 20, "status": "paid", "date": today}],
                },
            ],
            "hour_entries": [
                {"clientId": "c1", "hours": 3, "date": today},
                {"clientId": "c2", "hours": 5, "date": today},
            ],
            "subscriptions": [
                {"price": 120, "seats": 2, "billingCycle": "yearly", "currency": "USD"}
            ],
            "currency": "USD",
        }
        data.update(overrides)
        return data

    def test_snapshot(self, client, cached_rates):
        response = client.post(
            "/api/v1/analytics/snapshot", json=self.payload(period="this-month")
        )

        assert response.status_code == 200
        data = response.json()
        assert data["currency"] == "USD"
        metrics = data["metrics"]
        assert metrics["total_revenue"]["current"] == pytest.approx(128)
        assert metrics["monthly_costs"]["current"] == pytest.approx(20)
        assert metrics["net_profit"]["current"] == pytest.approx(108)
        assert metrics["net_profit"]["subtitle"] == "monthly estimate"
        assert metrics["total_hours"]["current"] == 8
        assert [i["name"] for i in metrics["total_revenue"]["breakdown"]] == [
            "Acme",
            "Globex",
        ]
        assert [i["name"] for i in metrics["total_hours"]["breakdown"]] == [
            "Globex",
            "Acme",
        ]

    def test_display_currency_switch(self, client, cached_rates):
        response = client.post(
            "/api/v1/analytics/snapshot", json=self.payload(currency="EUR")
        )

        revenue = response.json()["metrics"]["total_revenue"]["current"]
        assert revenue == pytest.approx(100 + 20 / 1.08)

    def test_default_currency(self, client, cached_rates):
        payload = self.payload()
        del payload["currency"]

        response = client.post("/api/v1/analytics/snapshot", json=payload)

        assert response.json()["currency"] == "USD"

    def test_top_limits_breakdowns(self, client, cached_rates):
        response = client.post("/api/v1/analytics/snapshot", json=self.payload(top=1))

        breakdown = response.json()["metrics"]["total_revenue"]["breakdown"]
        assert [i["name"] for i in breakdown] == ["Acme"]

    def test_all_time_has_no_trend(self, client, cached_rates):
        response = client.post("/api/v1/analytics/snapshot", json=self.payload())

        trend = response.json()["metrics"]["total_revenue"]["trend"]
        assert trend == {"available": False, "change": None, "is_increase": None}

    def test_custom_period(self, client, cached_rates):
        response = client.post(
            "/api/v1/analytics/snapshot",
            json=self.payload(period="custom", start="2020-01-01", end="2020-01-31"),
        )

        assert response.status_code == 200
        data = response.json()
        assert data["period"]["granularity"] == "prorated"
        assert data["metrics"]["total_revenue"]["current"] == 0

    def test_inverted_custom_period_is_rejected(self, client, cached_rates):
        response = client.post(
            "/api/v1/analytics/snapshot",
            json=self.payload(period="custom", start="2024-02-01", end="2024-01-01"),
        )

        assert response.status_code == 422

    def test_unknown_period_is_rejected(self, client, cached_rates):
        response = client.post(
            "/api/v1/analytics/snapshot", json=self.payload(period="next-decade")
        )

        assert response.status_code == 422

    @respx.mock
    def test_feed_failure_still_returns_snapshot(self, client):
        respx.get(RATES_URL).mock(return_value=Response(503))

        response = client.post("/api/v1/analytics/snapshot", json=self.payload())

        assert response.status_code == 200
        revenue = response.json()["metrics"]["total_revenue"]["current"]
        assert revenue == pytest.approx(128)
