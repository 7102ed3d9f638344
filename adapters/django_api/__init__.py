"""
Night audit Django HTTP adapter.
Thin framework glue over the closure coordinator.
"""

from adapters.django_api.wiring import (
    DEV_STORE_ID,
    NightAuditRuntime,
    build_runtime,
    get_runtime,
    set_runtime,
)

__all__ = [
    "DEV_STORE_ID",
    "NightAuditRuntime",
    "build_runtime",
    "get_runtime",
    "set_runtime",
]
