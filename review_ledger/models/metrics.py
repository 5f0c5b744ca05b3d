"""
Metrics Models - Derived views over the verification ledger
"""

from datetime import datetime
from typing import Dict, List, Optional

from pydantic import BaseModel, Field

from .verification import VerificationRecord


class MetricCounts(BaseModel):
    """Raw verdict and confusion-matrix counts."""

    total: int = 0
    correct: int = 0
    incorrect: int = 0
    tp: int = 0
    tn: int = 0
    fp: int = 0
    fn: int = 0
    cm_total: int = Field(0, description="Records with a confusion bucket (labelled records)")


class MetricRates(BaseModel):
    """Confusion-matrix rates, each 0 when its denominator is 0."""

    accuracy: float = 0.0
    precision: float = 0.0
    recall: float = 0.0
    f1: float = 0.0


class LabelStats(BaseModel):
    total: int = 0
    correct: int = 0
    incorrect: int = 0
    accuracy: float = 0.0


class ConfidenceBucket(BaseModel):
    count: int = 0
    accuracy: float = 0.0


class ConfidenceBreakdown(BaseModel):
    high: ConfidenceBucket = Field(default_factory=ConfidenceBucket)
    medium: ConfidenceBucket = Field(default_factory=ConfidenceBucket)
    low: ConfidenceBucket = Field(default_factory=ConfidenceBucket)


class RecentActivity(BaseModel):
    last_24h: int = 0
    last_7_days: int = 0
    last_30_days: int = 0


class MetricsSnapshot(BaseModel):
    """
    Aggregate statistics recomputed from a full ledger scan.

    Not persisted; valid as of the ledger read it was computed from.
    """

    counts: MetricCounts = Field(default_factory=MetricCounts)
    rates: MetricRates = Field(default_factory=MetricRates)
    verdict_accuracy: float = Field(
        0.0,
        description="correct / total over every record, labelled or not"
    )
    label_breakdown: Dict[str, LabelStats] = Field(default_factory=dict)
    confidence_ranges: ConfidenceBreakdown = Field(default_factory=ConfidenceBreakdown)
    recent_activity: RecentActivity = Field(default_factory=RecentActivity)
    last_updated: Optional[datetime] = Field(
        default=None,
        description="Latest verification timestamp in the ledger"
    )
    verifications_by_label: Optional[Dict[str, List[VerificationRecord]]] = None
