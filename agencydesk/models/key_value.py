# SPDX-FileCopyrightText: 2025 Roland Knall <rknall@gmail.com>
# SPDX-License-Identifier: GPL-2.0-only
"""Key/value model backing the durable exchange rate cache."""

from sqlalchemy import String, Text
from sqlalchemy.orm import Mapped, mapped_column

from agencydesk.models.base import Base, TimestampMixin


class KeyValueEntry(TimestampMixin, Base):
    """A single string value stored under a string key."""

    __tablename__ = "key_value_store"

    key: Mapped[str] = mapped_column(String(128), primary_key=True)
    value: Mapped[str] = mapped_column(Text, nullable=False)
