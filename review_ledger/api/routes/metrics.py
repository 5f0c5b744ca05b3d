"""Metrics endpoints for the review dashboard."""

from __future__ import annotations

from typing import Any, Dict

from fastapi import APIRouter, Query, Response

from review_ledger.config.settings import settings
from review_ledger.services.ledger import get_ledger
from review_ledger.services.metrics import compute_metrics

router = APIRouter(prefix="/apiv2", tags=["metrics"])


@router.get("/metrics")
async def get_metrics(
    response: Response,
    include_records: bool = Query(False, description="Also group full records by label"),
) -> Dict[str, Any]:
    """Recompute the metrics snapshot from the current ledger contents.

    When the ledger cannot be read the snapshot is empty and
    ``ledger_available`` is false; that is not the same as zero verifications.
    """

    response.headers["Cache-Control"] = "no-store"
    snapshot = await get_ledger().read_all()
    metrics = compute_metrics(
        snapshot.records,
        high_threshold=settings.CONFIDENCE_HIGH,
        medium_threshold=settings.CONFIDENCE_MEDIUM,
        include_records=include_records,
    )

    payload = metrics.model_dump(mode="json")
    return {
        "metrics": payload,
        "last_updated": payload["last_updated"],
        "positive_label": settings.POSITIVE_LABEL,
        "ledger_available": snapshot.available,
        "ledger_error": snapshot.error,
    }
