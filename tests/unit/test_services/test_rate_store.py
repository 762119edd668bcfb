# SPDX-FileCopyrightText: 2025 Roland Knall <rknall@gmail.com>
# SPDX-License-Identifier: GPL-2.0-only
"""Tests for rate_store."""

import json
from datetime import datetime, timedelta, timezone

import pytest
from sqlalchemy.orm import sessionmaker

from agencydesk.models import KeyValueEntry
from agencydesk.services.rate_provider import RateProvider, build_cross_rates
from agencydesk.services.rate_store import InMemoryKeyValueStore, SqlKeyValueStore


@pytest.fixture
def sql_store(db_session):
    """Store sharing the test database; the db_session fixture owns the schema."""
    return SqlKeyValueStore(sessionmaker(bind=db_session.get_bind()))


class TestInMemoryKeyValueStore:
    def test_missing_key_returns_none(self):
        assert InMemoryKeyValueStore().get("nope") is None

    def test_set_then_get(self):
        store = InMemoryKeyValueStore()
        store.set("a", "1")
        store.set("a", "2")

        assert store.get("a") == "2"

    def test_initial_values_are_copied(self):
        initial = {"a": "1"}
        store = InMemoryKeyValueStore(initial)
        store.set("a", "2")

        assert initial == {"a": "1"}


class TestSqlKeyValueStore:
    def test_missing_key_returns_none(self, sql_store):
        assert sql_store.get("exchange_rates") is None

    def test_insert_and_read_back(self, sql_store, db_session):
        sql_store.set("exchange_rates", '{"EUR": {"EUR": 1.0}}')

        assert sql_store.get("exchange_rates") == '{"EUR": {"EUR": 1.0}}'
        assert db_session.query(KeyValueEntry).count() == 1

    def test_overwrite_keeps_single_row(self, sql_store, db_session):
        sql_store.set("k", "old")
        sql_store.set("k", "new")

        assert sql_store.get("k") == "new"
        assert db_session.query(KeyValueEntry).count() == 1

    def test_backs_rate_provider_cache(self, sql_store):
        """A table persisted in the database is served by the provider."""
        now = datetime(2025, 6, 1, tzinfo=timezone.utc)
        table = build_cross_rates("EUR", {"USD": 1.1})
        sql_store.set("exchange_rates", json.dumps(table))
        sql_store.set("exchange_rates_fetched_at", now.isoformat())

        reader = RateProvider(
            sql_store, api_key=None, clock=lambda: now + timedelta(hours=1)
        )

        assert reader.current_rates() == table
