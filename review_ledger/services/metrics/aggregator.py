"""Classification metrics derived from a ledger snapshot."""

from __future__ import annotations

from collections import defaultdict
from datetime import datetime, timedelta, timezone
from typing import Dict, Iterable, List, Optional

from review_ledger.models.metrics import (
    ConfidenceBreakdown,
    ConfidenceBucket,
    LabelStats,
    MetricCounts,
    MetricRates,
    MetricsSnapshot,
    RecentActivity,
)
from review_ledger.models.verification import Confusion, Verdict, VerificationRecord, ensure_utc

UNKNOWN_LABEL = "unknown"

HIGH_CONFIDENCE = 0.8
MEDIUM_CONFIDENCE = 0.5

RECENCY_WINDOWS = {
    "last_24h": timedelta(hours=24),
    "last_7_days": timedelta(days=7),
    "last_30_days": timedelta(days=30),
}


def safe_rate(numerator: float, denominator: float) -> float:
    """numerator / denominator, or 0.0 when the denominator is zero."""
    if not denominator:
        return 0.0
    return numerator / denominator


def f1_score(precision: float, recall: float) -> float:
    return safe_rate(2 * precision * recall, precision + recall)


def _bucket(records: List[VerificationRecord]) -> ConfidenceBucket:
    correct = sum(1 for r in records if r.verdict is Verdict.CORRECT)
    return ConfidenceBucket(count=len(records), accuracy=safe_rate(correct, len(records)))


def compute_metrics(
    records: Iterable[VerificationRecord],
    now: Optional[datetime] = None,
    high_threshold: float = HIGH_CONFIDENCE,
    medium_threshold: float = MEDIUM_CONFIDENCE,
    include_records: bool = False,
) -> MetricsSnapshot:
    """Recompute every aggregate from a full ledger scan.

    Confusion rates only see labelled records (``cm_total``); verdict counts,
    the label breakdown and confidence buckets see every record. Missing
    confidence counts as 0 and lands in the low bucket.
    """
    records = list(records)
    now = ensure_utc(now) or datetime.now(timezone.utc)

    counts = MetricCounts(total=len(records))
    for record in records:
        if record.verdict is Verdict.CORRECT:
            counts.correct += 1
        else:
            counts.incorrect += 1
        if record.confusion is Confusion.TP:
            counts.tp += 1
        elif record.confusion is Confusion.TN:
            counts.tn += 1
        elif record.confusion is Confusion.FP:
            counts.fp += 1
        elif record.confusion is Confusion.FN:
            counts.fn += 1
    counts.cm_total = counts.tp + counts.tn + counts.fp + counts.fn

    precision = safe_rate(counts.tp, counts.tp + counts.fp)
    recall = safe_rate(counts.tp, counts.tp + counts.fn)
    rates = MetricRates(
        accuracy=safe_rate(counts.tp + counts.tn, counts.cm_total),
        precision=precision,
        recall=recall,
        f1=f1_score(precision, recall),
    )

    by_label: Dict[str, List[VerificationRecord]] = defaultdict(list)
    for record in records:
        by_label[record.label or UNKNOWN_LABEL].append(record)

    label_breakdown = {}
    for label, group in by_label.items():
        correct = sum(1 for r in group if r.verdict is Verdict.CORRECT)
        label_breakdown[label] = LabelStats(
            total=len(group),
            correct=correct,
            incorrect=len(group) - correct,
            accuracy=safe_rate(correct, len(group)),
        )

    high, medium, low = [], [], []
    for record in records:
        confidence = record.confidence or 0.0
        if confidence >= high_threshold:
            high.append(record)
        elif confidence >= medium_threshold:
            medium.append(record)
        else:
            low.append(record)

    recent = RecentActivity(**{
        name: sum(1 for r in records if r.timestamp >= now - window)
        for name, window in RECENCY_WINDOWS.items()
    })

    return MetricsSnapshot(
        counts=counts,
        rates=rates,
        verdict_accuracy=safe_rate(counts.correct, counts.total),
        label_breakdown=label_breakdown,
        confidence_ranges=ConfidenceBreakdown(high=_bucket(high), medium=_bucket(medium), low=_bucket(low)),
        recent_activity=recent,
        last_updated=max((r.timestamp for r in records), default=None),
        verifications_by_label=dict(by_label) if include_records else None,
    )
