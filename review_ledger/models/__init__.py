"""
Review Ledger Models
Data models for human verifications, derived metrics and ledger status
"""

from .verification import (
    Confusion,
    Verdict,
    VerificationMeta,
    VerificationRecord,
    VerificationSubmission,
)
from .metrics import (
    ConfidenceBreakdown,
    ConfidenceBucket,
    LabelStats,
    MetricCounts,
    MetricRates,
    MetricsSnapshot,
    RecentActivity,
)
from .status import DirectoryStatus, FileStatus, PersistenceStatus

__all__ = [
    # Verification
    "Confusion",
    "Verdict",
    "VerificationMeta",
    "VerificationRecord",
    "VerificationSubmission",
    # Metrics
    "ConfidenceBreakdown",
    "ConfidenceBucket",
    "LabelStats",
    "MetricCounts",
    "MetricRates",
    "MetricsSnapshot",
    "RecentActivity",
    # Status
    "DirectoryStatus",
    "FileStatus",
    "PersistenceStatus",
]
