"""
Upstream Review Gateway
=======================

Pass-through client for the external review-prediction service. Responses
are relayed verbatim; failures surface as UpstreamUnavailable so the API
layer can answer with a gateway error instead of fabricated data.
"""

import logging
from collections import Counter
from typing import Any, Dict, List, Optional

import httpx

from review_ledger.config.settings import settings
from review_ledger.services.errors import UpstreamUnavailable

logger = logging.getLogger(__name__)

# Placeholder listing for demos when the upstream is unreachable
SAMPLE_REVIEWS: List[Dict[str, Any]] = [
    {
        "id": "66b6d3fcf8a1b2d3e4f56789",
        "text": "There was a collision near the central station this morning.",
        "metadata": {"source": "faiss", "processed_at": "2025-08-09T14:20:00Z"},
        "prediction": {"label": "INCIDENT", "confidence": 0.9998},
        "predicted_at": "2025-08-10T14:30:12Z",
    },
    {
        "id": "66b6d4aaf8a1b2d3e4f5678a",
        "text": "Explosion reported in the industrial area late last night.",
        "metadata": {"source": "faiss"},
        "prediction": {"label": "INCIDENT", "confidence": 0.9874},
        "predicted_at": "2025-08-09T23:45:07Z",
    },
]


class ReviewGateway:
    """Forwards review listing requests to the upstream service."""

    def __init__(
        self,
        base_url: str,
        page_size: int = 5,
        timeout: float = 10.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.base_url = base_url
        self.page_size = page_size
        self.timeout = timeout
        self._transport = transport

    def build_params(self, page: Optional[int] = None, label: Optional[str] = None) -> Dict[str, str]:
        params: Dict[str, str] = {}
        if page is not None:
            params["page"] = str(page)
            # Page size only applies when paginating
            params["page_size"] = str(self.page_size)
        if label:
            params["label"] = label
        return params

    async def fetch_reviews(self, page: Optional[int] = None, label: Optional[str] = None) -> Any:
        """Fetch one page (or the full listing) of reviews from upstream.

        Raises:
            UpstreamUnavailable: timeout, transport failure, non-2xx status
                or a body that is not JSON
        """
        params = self.build_params(page, label)
        try:
            async with httpx.AsyncClient(timeout=self.timeout, transport=self._transport) as client:
                response = await client.get(
                    self.base_url,
                    params=params,
                    headers={"accept": "application/json"},
                )
        except httpx.TimeoutException as e:
            logger.warning(f"Upstream review fetch timed out after {self.timeout}s: {e}")
            raise UpstreamUnavailable("Upstream timed out", retryable=True) from e
        except httpx.HTTPError as e:
            logger.warning(f"Upstream review fetch failed: {e}")
            raise UpstreamUnavailable(f"Failed to fetch upstream: {e}") from e

        if not response.is_success:
            logger.warning(f"Upstream responded with HTTP {response.status_code}")
            raise UpstreamUnavailable("Upstream error", status_code=response.status_code)

        try:
            return response.json()
        except ValueError as e:
            logger.warning(f"Upstream returned a non-JSON body: {e}")
            raise UpstreamUnavailable("Upstream returned invalid JSON", status_code=response.status_code) from e

    def sample_reviews(self, page: Optional[int] = None) -> Dict[str, Any]:
        """Placeholder listing, shaped like an upstream page."""
        current = page or 1
        return {
            "meta": {
                "total": len(SAMPLE_REVIEWS),
                "page": current,
                "page_size": self.page_size,
                "has_next": False,
                "has_prev": current > 1,
            },
            "items": [dict(item) for item in SAMPLE_REVIEWS],
        }


def summarize_labels(payload: Any) -> Dict[str, Any]:
    """Count predicted labels across an upstream listing (chart data)."""
    if isinstance(payload, dict):
        items = payload.get("items") or []
    elif isinstance(payload, list):
        items = payload
    else:
        items = []

    labels: Counter = Counter()
    for item in items:
        prediction = item.get("prediction") if isinstance(item, dict) else None
        label = prediction.get("label") if isinstance(prediction, dict) else None
        if label:
            labels[label] += 1

    total = len(items)
    if isinstance(payload, dict) and isinstance(payload.get("meta"), dict):
        total = payload["meta"].get("total", total)

    return {"total": total, "labels": dict(labels)}


_default_gateway: Optional[ReviewGateway] = None


def get_gateway() -> ReviewGateway:
    """Return the global gateway singleton."""
    global _default_gateway
    if _default_gateway is None:
        _default_gateway = ReviewGateway(
            base_url=settings.REVIEWS_UPSTREAM_URL,
            page_size=settings.DEFAULT_PAGE_SIZE,
            timeout=settings.REQUEST_TIMEOUT,
        )
    return _default_gateway
