"""
StudyNotes Backend — Health Check Route
=========================================

What:  Liveness/readiness probe for Docker and load balancers.
How:   SELECT 1 through the DocumentStore and a token-free provider probe.

Status levels:
    - healthy:   database and generation provider reachable (200)
    - degraded:  provider unreachable; CRUD still works (200)
    - unhealthy: database unreachable (503)
"""

import logging
import time

from fastapi import APIRouter, Depends, Response

from studynotes import __version__
from studynotes.dependencies import get_llm, get_store
from studynotes.schemas.common import HealthResponse
from studynotes.services.llm_base import LLMService
from studynotes.store import DocumentStore

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Health"])

_start_time = time.time()


@router.get("/health", response_model=HealthResponse, summary="Service health check")
async def health_check(
    response: Response,
    store: DocumentStore = Depends(get_store),
    llm: LLMService = Depends(get_llm),
) -> HealthResponse:
    overall = "healthy"

    db_status = "connected"
    if not await store.ping():
        db_status = "disconnected"
        overall = "unhealthy"
        logger.warning("Health check: database unreachable")

    llm_status = "available"
    if not await llm.health_check():
        llm_status = "unavailable"
        if overall == "healthy":
            overall = "degraded"
        logger.warning("Health check: %s unreachable", llm.provider_name)

    if overall == "unhealthy":
        response.status_code = 503

    return HealthResponse(
        status=overall,
        version=__version__,
        database=db_status,
        llm=llm_status,
        uptime_seconds=round(time.time() - _start_time, 2),
    )
