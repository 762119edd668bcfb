# SPDX-FileCopyrightText: 2025 Roland Knall <rknall@gmail.com>
# SPDX-License-Identifier: GPL-2.0-only
"""API dependencies for dependency injection."""

from fastapi import Request

from agencydesk.config import Settings, get_settings
from agencydesk.services.rate_provider import RateProvider


def get_rate_provider(request: Request) -> RateProvider:
    """Rate provider created by the application lifespan."""
    return request.app.state.rate_provider


def get_app_settings() -> Settings:
    """Application settings."""
    return get_settings()
