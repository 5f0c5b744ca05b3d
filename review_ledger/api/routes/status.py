"""Ledger status endpoint for operational visibility."""

from __future__ import annotations

import asyncio
import logging
from datetime import datetime, timezone
from typing import Any, Dict

from fastapi import APIRouter, Response
from fastapi.responses import JSONResponse

from review_ledger.services.ledger import get_ledger

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/apiv2", tags=["status"])


@router.get("/status")
async def get_status(response: Response) -> Dict[str, Any]:
    """Existence, size, record count and modification time of the ledger store."""

    response.headers["Cache-Control"] = "no-store"
    try:
        persistence = await get_ledger().status()
    except (OSError, asyncio.TimeoutError) as exc:
        logger.error(f"Error getting status: {exc}", exc_info=True)
        return JSONResponse(
            status_code=500,
            headers={"Cache-Control": "no-store"},
            content={
                "status": "error",
                "timestamp": datetime.now(timezone.utc).isoformat(),
                "error": "Failed to get system status",
            },
        )

    return {
        "status": "healthy" if persistence.available else "degraded",
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "persistence": persistence.model_dump(mode="json"),
    }
