"""
Verification Models - Human verdicts on model predictions
"""

from datetime import datetime, timezone
from enum import Enum
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator


class Verdict(str, Enum):
    """Human judgment on a single prediction"""
    CORRECT = "correct"
    INCORRECT = "incorrect"


class Confusion(str, Enum):
    """Confusion-matrix bucket relative to the positive label"""
    TP = "TP"
    FP = "FP"
    TN = "TN"
    FN = "FN"


def ensure_utc(value: Optional[datetime]) -> Optional[datetime]:
    """Treat naive timestamps as UTC so they compare against aware ones."""
    if value is None:
        return None
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


class VerificationMeta(BaseModel):
    """Prediction context captured by the reviewer at verification time."""

    label: Optional[str] = Field(
        default=None,
        description="Label the model predicted"
    )

    confidence: Optional[float] = Field(
        default=None,
        ge=0.0,
        le=1.0,
        description="Model confidence at prediction time [0, 1]"
    )

    predicted_at: Optional[datetime] = Field(
        default=None,
        description="When the prediction was generated"
    )

    source: Optional[str] = Field(
        default=None,
        description="Provenance tag of the prediction"
    )

    @field_validator("label")
    @classmethod
    def blank_label_is_absent(cls, v):
        if v is None or not v.strip():
            return None
        return v

    @field_validator("predicted_at")
    @classmethod
    def normalize_predicted_at(cls, v):
        return ensure_utc(v)


class VerificationSubmission(BaseModel):
    """
    Verification command as sent by the review client.

    Only `id` and `verdict` are required; `timestamp` defaults to the
    time the ledger accepts the submission.
    """

    id: str = Field(..., min_length=1, description="Prediction identifier")
    verdict: Verdict
    meta: Optional[VerificationMeta] = None
    timestamp: Optional[datetime] = None

    @field_validator("id")
    @classmethod
    def validate_id_not_blank(cls, v):
        if not v.strip():
            raise ValueError("id cannot be blank")
        return v

    @field_validator("timestamp")
    @classmethod
    def normalize_timestamp(cls, v):
        return ensure_utc(v)

    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "id": "66b6d3fcf8a1b2d3e4f56789",
                "verdict": "correct",
                "meta": {
                    "label": "INCIDENT",
                    "confidence": 0.9998,
                    "predicted_at": "2025-08-10T14:30:12Z",
                    "source": "faiss",
                },
                "timestamp": "2025-08-11T09:00:00Z",
            }
        }
    )


class VerificationRecord(BaseModel):
    """
    One reviewed prediction as stored in the ledger.

    `confusion` is derived from `label` and `verdict` when the record is
    created and is never taken from the caller.
    """

    id: str
    verdict: Verdict
    label: Optional[str] = None
    confidence: Optional[float] = None
    predicted_at: Optional[datetime] = None
    source: Optional[str] = None
    timestamp: datetime
    confusion: Optional[Confusion] = None

    @model_validator(mode="before")
    @classmethod
    def flatten_legacy_meta(cls, data: Any) -> Any:
        # Older documents nested prediction context under "meta"
        if isinstance(data, dict) and isinstance(data.get("meta"), dict):
            data = dict(data)
            meta = data.pop("meta")
            for key in ("label", "confidence", "predicted_at", "source"):
                data.setdefault(key, meta.get(key))
        return data

    @field_validator("timestamp", "predicted_at")
    @classmethod
    def normalize_times(cls, v):
        return ensure_utc(v)
