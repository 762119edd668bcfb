"""Services package."""
from agencydesk.services import (
    currency_service,
    period_service,
    rate_provider,
    rate_store,
)

__all__ = [
    "currency_service",
    "period_service",
    "rate_provider",
    "rate_store",
]
