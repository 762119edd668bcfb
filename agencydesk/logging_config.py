# SPDX-FileCopyrightText: 2025 Roland Knall <rknall@gmail.com>
# SPDX-License-Identifier: GPL-2.0-only
"""Logging setup for the application."""

import logging

LOG_FORMAT = "%(asctime)s %(levelname)s [%(name)s] %(message)s"


def configure_logging(level: str | int = "INFO") -> None:
    """Install a single stream handler on the ``agencydesk`` logger tree.

    Safe to call more than once; the handler is only added the first time.
    """
    root = logging.getLogger("agencydesk")
    root.setLevel(level if isinstance(level, int) else level.upper())

    if not any(getattr(h, "_agencydesk", False) for h in root.handlers):
        handler = logging.StreamHandler()
        handler.setFormatter(logging.Formatter(LOG_FORMAT))
        handler._agencydesk = True  # type: ignore[attr-defined]
        root.addHandler(handler)
