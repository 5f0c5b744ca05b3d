"""Upstream review gateway package."""

from .upstream import (  # noqa: F401
    SAMPLE_REVIEWS,
    ReviewGateway,
    get_gateway,
    summarize_labels,
)

__all__ = [
    "SAMPLE_REVIEWS",
    "ReviewGateway",
    "get_gateway",
    "summarize_labels",
]
