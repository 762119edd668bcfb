# SPDX-FileCopyrightText: 2025 Roland Knall <rknall@gmail.com>
# SPDX-License-Identifier: GPL-2.0-only
"""Main API router for v1 endpoints."""

from fastapi import APIRouter

from agencydesk.api.v1 import analytics, currencies

api_router = APIRouter()

# Currency routes
api_router.include_router(currencies.router, tags=["currencies"])

# Analytics routes
api_router.include_router(analytics.router, prefix="/analytics", tags=["analytics"])
