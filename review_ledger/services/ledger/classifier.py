"""Two-class confusion bucketing of human verdicts."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional, Union

from review_ledger.models.verification import Confusion, Verdict

DEFAULT_POSITIVE_LABEL = "INCIDENT"


def classify_confusion(
    label: Optional[str],
    verdict: Union[Verdict, str],
    positive_label: str = DEFAULT_POSITIVE_LABEL,
) -> Optional[Confusion]:
    """Map a predicted label and a human verdict to a confusion bucket.

    Every label other than ``positive_label`` counts as the negative class,
    so an N-class label space is scored as positive-vs-rest. Records without
    a label have no bucket.
    """
    if not label:
        return None

    is_positive = label == positive_label
    if Verdict(verdict) is Verdict.CORRECT:
        return Confusion.TP if is_positive else Confusion.TN
    return Confusion.FP if is_positive else Confusion.FN


@dataclass(frozen=True)
class ConfusionClassifier:
    """Classifier bound to a configured positive label."""

    positive_label: str = DEFAULT_POSITIVE_LABEL

    def classify(self, label: Optional[str], verdict: Union[Verdict, str]) -> Optional[Confusion]:
        return classify_confusion(label, verdict, self.positive_label)
