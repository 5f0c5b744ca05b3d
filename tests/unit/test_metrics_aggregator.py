import math
import sys
from datetime import datetime, timedelta, timezone
from pathlib import Path

import pytest

ROOT = Path(__file__).resolve().parents[2]
sys.path.insert(0, str(ROOT))

from review_ledger.models.verification import VerificationRecord  # noqa: E402
from review_ledger.services.ledger.classifier import classify_confusion  # noqa: E402
from review_ledger.services.metrics import compute_metrics, safe_rate  # noqa: E402

NOW = datetime(2025, 8, 11, 9, 0, tzinfo=timezone.utc)


def make_record(record_id, verdict, label=None, confidence=None, age=timedelta(0)):
    return VerificationRecord(
        id=record_id,
        verdict=verdict,
        label=label,
        confidence=confidence,
        timestamp=NOW - age,
        confusion=classify_confusion(label, verdict, "INCIDENT"),
    )


def all_rates(snapshot):
    rates = [
        snapshot.rates.accuracy,
        snapshot.rates.precision,
        snapshot.rates.recall,
        snapshot.rates.f1,
        snapshot.verdict_accuracy,
        snapshot.confidence_ranges.high.accuracy,
        snapshot.confidence_ranges.medium.accuracy,
        snapshot.confidence_ranges.low.accuracy,
    ]
    rates.extend(stats.accuracy for stats in snapshot.label_breakdown.values())
    return rates


def test_empty_ledger_has_zero_metrics():
    snapshot = compute_metrics([], now=NOW)

    assert snapshot.counts.total == 0
    assert snapshot.rates.accuracy == 0
    assert snapshot.rates.precision == 0
    assert snapshot.rates.recall == 0
    assert snapshot.rates.f1 == 0
    assert snapshot.last_updated is None
    assert snapshot.label_breakdown == {}


def test_single_true_positive():
    snapshot = compute_metrics([make_record("r1", "correct", "INCIDENT")], now=NOW)

    counts = snapshot.counts
    assert (counts.tp, counts.fp, counts.tn, counts.fn) == (1, 0, 0, 0)
    assert snapshot.rates.accuracy == 1
    assert snapshot.rates.precision == 1
    assert snapshot.rates.recall == 1
    assert snapshot.rates.f1 == 1


def test_true_positive_and_false_negative():
    snapshot = compute_metrics(
        [make_record("r1", "correct", "INCIDENT"), make_record("r2", "incorrect", "NOT")],
        now=NOW,
    )

    assert snapshot.counts.tp == 1
    assert snapshot.counts.fn == 1
    assert snapshot.rates.precision == 1
    assert snapshot.rates.recall == pytest.approx(0.5)
    assert snapshot.rates.accuracy == pytest.approx(0.5)
    assert snapshot.rates.f1 == pytest.approx(2 / 3)


def test_flipped_verdict_moves_tp_to_fp():
    snapshot = compute_metrics(
        [make_record("r1", "incorrect", "INCIDENT"), make_record("r2", "incorrect", "NOT")],
        now=NOW,
    )

    assert snapshot.counts.tp == 0
    assert snapshot.counts.fp == 1
    assert snapshot.counts.total == 2
    assert snapshot.rates.precision == 0
    assert snapshot.rates.f1 == 0


def test_unlabelled_records_excluded_from_confusion_only():
    records = [
        make_record("r1", "correct", "INCIDENT"),
        make_record("r2", "correct"),
        make_record("r3", "incorrect"),
    ]

    snapshot = compute_metrics(records, now=NOW)

    assert snapshot.counts.total == 3
    assert snapshot.counts.cm_total == 1
    assert snapshot.counts.correct == 2
    assert snapshot.counts.incorrect == 1
    assert snapshot.label_breakdown["unknown"].total == 2
    assert snapshot.label_breakdown["unknown"].accuracy == pytest.approx(0.5)
    assert snapshot.verdict_accuracy == pytest.approx(2 / 3)


LEDGERS = [
    [],
    [make_record("a", "correct")],
    [make_record("a", "incorrect", "NOT")],
    [make_record("a", "incorrect", "INCIDENT"), make_record("b", "incorrect", "INCIDENT")],
    [make_record("a", "correct", "NOT"), make_record("b", "correct", "TRAFFIC", confidence=0.6)],
    [
        make_record("a", "correct", "INCIDENT", confidence=0.95),
        make_record("b", "incorrect", "NOT", confidence=0.55),
        make_record("c", "correct", confidence=0.1),
        make_record("d", "incorrect", "WEATHER"),
    ],
]


@pytest.mark.parametrize("records", LEDGERS)
def test_rates_are_finite_and_bounded(records):
    snapshot = compute_metrics(records, now=NOW)

    for rate in all_rates(snapshot):
        assert math.isfinite(rate)
        assert 0.0 <= rate <= 1.0


@pytest.mark.parametrize("records", LEDGERS)
def test_count_conservation(records):
    snapshot = compute_metrics(records, now=NOW)
    counts = snapshot.counts

    assert counts.tp + counts.tn + counts.fp + counts.fn == counts.cm_total
    assert counts.cm_total <= counts.total
    assert (counts.cm_total == counts.total) == all(r.label for r in records)
    assert sum(stats.total for stats in snapshot.label_breakdown.values()) == counts.total
    assert counts.correct + counts.incorrect == counts.total


def test_confidence_buckets_use_thresholds():
    records = [
        make_record("a", "correct", "INCIDENT", confidence=0.8),
        make_record("b", "incorrect", "INCIDENT", confidence=0.99),
        make_record("c", "correct", "NOT", confidence=0.5),
        make_record("d", "correct", "NOT", confidence=0.79),
        make_record("e", "incorrect", "NOT", confidence=0.49),
        make_record("f", "correct", "NOT"),
    ]

    ranges = compute_metrics(records, now=NOW).confidence_ranges

    assert ranges.high.count == 2
    assert ranges.high.accuracy == pytest.approx(0.5)
    assert ranges.medium.count == 2
    assert ranges.medium.accuracy == 1
    assert ranges.low.count == 2
    assert ranges.low.accuracy == pytest.approx(0.5)


def test_confidence_thresholds_are_configurable():
    records = [make_record("a", "correct", "NOT", confidence=0.7)]

    ranges = compute_metrics(records, now=NOW, high_threshold=0.6, medium_threshold=0.3).confidence_ranges

    assert ranges.high.count == 1


def test_recent_activity_windows_are_inclusive():
    records = [
        make_record("a", "correct", age=timedelta(hours=1)),
        make_record("b", "correct", age=timedelta(hours=24)),
        make_record("c", "correct", age=timedelta(days=3)),
        make_record("d", "correct", age=timedelta(days=10)),
        make_record("e", "correct", age=timedelta(days=40)),
    ]

    recent = compute_metrics(records, now=NOW).recent_activity

    assert recent.last_24h == 2
    assert recent.last_7_days == 3
    assert recent.last_30_days == 4


def test_last_updated_is_latest_timestamp():
    records = [
        make_record("a", "correct", age=timedelta(days=2)),
        make_record("b", "correct", age=timedelta(hours=1)),
        make_record("c", "correct", age=timedelta(days=5)),
    ]

    assert compute_metrics(records, now=NOW).last_updated == NOW - timedelta(hours=1)


def test_records_grouped_by_label_on_request():
    records = [make_record("a", "correct", "INCIDENT"), make_record("b", "correct")]

    assert compute_metrics(records, now=NOW).verifications_by_label is None
    grouped = compute_metrics(records, now=NOW, include_records=True).verifications_by_label
    assert [r.id for r in grouped["INCIDENT"]] == ["a"]
    assert [r.id for r in grouped["unknown"]] == ["b"]


def test_safe_rate_zero_denominator():
    assert safe_rate(0, 0) == 0.0
    assert safe_rate(3, 0) == 0.0
    assert safe_rate(1, 4) == 0.25
