"""
Review API Routes - upstream review listing and human verification
"""

from fastapi import APIRouter, HTTPException, Query, Request, Response, status
from typing import Optional, Dict, Any
import logging

from review_ledger.config.settings import settings
from review_ledger.services.errors import InvalidPayload, StorageUnavailable, UpstreamUnavailable
from review_ledger.services.gateway import get_gateway, summarize_labels
from review_ledger.services.ledger import get_ledger
from review_ledger.services.metrics import compute_metrics

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/apiv2/reviews", tags=["reviews"])

NO_STORE = {"Cache-Control": "no-store"}


def _upstream_http_error(error: UpstreamUnavailable) -> HTTPException:
    if error.retryable:
        return HTTPException(
            status_code=status.HTTP_504_GATEWAY_TIMEOUT,
            detail={"error": "Upstream timed out"},
            headers=NO_STORE,
        )
    detail: Dict[str, Any] = {"error": "Upstream error" if error.status_code else "Failed to fetch upstream"}
    if error.status_code:
        detail["status"] = error.status_code
    return HTTPException(status_code=status.HTTP_502_BAD_GATEWAY, detail=detail, headers=NO_STORE)


def storage_http_error(error: StorageUnavailable) -> HTTPException:
    """Translate a ledger write failure; busy/timeout failures are retryable."""
    if error.retryable:
        return HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail={"ok": False, "error": "Ledger temporarily unavailable", "reason": str(error)},
            headers={**NO_STORE, "Retry-After": "1"},
        )
    return HTTPException(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        detail={"ok": False, "error": "Failed to persist verification"},
        headers=NO_STORE,
    )


@router.get("")
async def list_reviews(
    response: Response,
    page: Optional[int] = Query(None, ge=1, description="1-based page; enables pagination"),
    label: Optional[str] = Query(None, description="Only reviews predicted with this label"),
) -> Any:
    """
    Relay a page of reviews from the upstream service.

    The upstream body is returned as-is. With REVIEWS_SAMPLE_FALLBACK
    enabled, an unreachable upstream yields placeholder reviews flagged
    with ``sample_data: true`` and ``X-Data-Source: sample``.

    Raises:
        502: Upstream error or unreachable
        504: Upstream timed out
    """
    gateway = get_gateway()
    response.headers.update(NO_STORE)
    try:
        data = await gateway.fetch_reviews(page=page, label=label)
    except UpstreamUnavailable as e:
        if not settings.REVIEWS_SAMPLE_FALLBACK:
            raise _upstream_http_error(e)
        logger.warning(f"Serving sample reviews, upstream unavailable: {e}")
        response.headers["X-Data-Source"] = "sample"
        body = gateway.sample_reviews(page)
        body["sample_data"] = True
        body["upstream_error"] = str(e)
        return body

    response.headers["X-Data-Source"] = "live"
    return data


@router.get("/labels")
async def review_label_distribution(response: Response) -> Dict[str, Any]:
    """Predicted-label counts over the full upstream listing."""
    response.headers.update(NO_STORE)
    try:
        data = await get_gateway().fetch_reviews()
    except UpstreamUnavailable as e:
        raise _upstream_http_error(e)
    return summarize_labels(data)


@router.post("/verify")
async def verify_review(request: Request, response: Response) -> Dict[str, Any]:
    """
    Record a human verdict for one prediction.

    Body: ``{id, verdict, meta?: {label?, confidence?, predicted_at?, source?}, timestamp?}``.
    Re-submitting an id replaces the earlier verdict.

    Raises:
        400: Body is not JSON, or the payload is invalid
        500: Ledger could not be written
        503: Ledger busy or slow, retry
    """
    response.headers.update(NO_STORE)
    try:
        payload = await request.json()
    except ValueError:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail={"ok": False, "error": "Invalid request", "reason": "Body is not valid JSON"},
            headers=NO_STORE,
        )

    try:
        record = await get_ledger().submit(payload)
    except InvalidPayload as e:
        logger.warning(f"Rejected verification payload: {e}")
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail={"ok": False, "error": "Invalid payload", "reason": str(e)},
            headers=NO_STORE,
        )
    except StorageUnavailable as e:
        raise storage_http_error(e)

    return {"ok": True, "record": record.model_dump(mode="json")}


@router.get("/stats")
async def review_stats(response: Response) -> Dict[str, Any]:
    """Compact confusion-matrix summary for the review results page."""
    response.headers.update(NO_STORE)
    snapshot = await get_ledger().read_all()
    metrics = compute_metrics(
        snapshot.records,
        high_threshold=settings.CONFIDENCE_HIGH,
        medium_threshold=settings.CONFIDENCE_MEDIUM,
    )
    counts = metrics.counts

    return {
        "meta": {
            "total": counts.total,
            "last_updated": metrics.last_updated.isoformat() if metrics.last_updated else None,
            "ledger_available": snapshot.available,
        },
        "counts": {
            "total": counts.total,
            "correct": counts.correct,
            "incorrect": counts.incorrect,
            "tp": counts.tp,
            "tn": counts.tn,
            "fp": counts.fp,
            "fn": counts.fn,
        },
        "metrics": metrics.rates.model_dump(),
    }
