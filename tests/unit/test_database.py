# SPDX-FileCopyrightText: 2025 Roland Knall <rknall@gmail.com>
# SPDX-License-Identifier: GPL-2.0-only
"""Tests for the database session helpers."""

from sqlalchemy.orm import Session

from agencydesk.database import engine, get_db


def test_database_url_comes_from_environment():
    assert str(engine.url) == "sqlite:///./test.db"


def test_get_db_yields_session(db_session):
    gen = get_db()
    db = next(gen)
    try:
        assert isinstance(db, Session)
        assert db.get_bind() is engine
    finally:
        gen.close()
