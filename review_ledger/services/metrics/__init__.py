"""Metrics aggregation services package."""

from .aggregator import (  # noqa: F401
    HIGH_CONFIDENCE,
    MEDIUM_CONFIDENCE,
    UNKNOWN_LABEL,
    compute_metrics,
    f1_score,
    safe_rate,
)

__all__ = [
    "HIGH_CONFIDENCE",
    "MEDIUM_CONFIDENCE",
    "UNKNOWN_LABEL",
    "compute_metrics",
    "f1_score",
    "safe_rate",
]
