# SPDX-FileCopyrightText: 2025 Roland Knall <rknall@gmail.com>
# SPDX-License-Identifier: GPL-2.0-only
"""Database models package."""

from agencydesk.models.base import Base, TimestampMixin
from agencydesk.models.key_value import KeyValueEntry

__all__ = [
    "Base",
    "KeyValueEntry",
    "TimestampMixin",
]
