"""Observability helpers."""

from backend.observability.otel import (
    initialize,
    shutdown,
    start_span,
    record_listing,
    record_decode_failure,
    record_cache_lookup,
)

__all__ = [
    "initialize",
    "shutdown",
    "start_span",
    "record_listing",
    "record_decode_failure",
    "record_cache_lookup",
]
