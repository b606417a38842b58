"""
Health and Home Router.

This module provides public endpoints for liveness checks and the landing
page statistics.

Endpoints Provided:
- `/health`: Confirms the service is running and reports whether the
  database answers a trivial query.
- `/home`: Counts of creators, active prompts and comments for the landing
  page.

Architectural Design:
- Public Access: Neither endpoint requires credentials, so they can be used
  by uptime checkers and container probes.
- Graceful Degradation: The health check never fails because the database is
  down; it reports `database: "disconnected"` instead.
"""

from datetime import datetime, timezone
from typing import Any, Dict

from fastapi import APIRouter, Depends

from core.logging_config import get_logger
from services.home_service import HomeService

from .dependencies import get_home_service
from .responses import envelope

logger = get_logger(__name__)

health_router = APIRouter(tags=["Health & Home"])


@health_router.get("/health")
async def health_check(home: HomeService = Depends(get_home_service)) -> Dict[str, Any]:
    logger.debug("Health check requested")
    return await home.health()


@health_router.get("/home")
async def home_stats(home: HomeService = Depends(get_home_service)) -> Dict[str, Any]:
    """Landing page statistics"""
    stats = await home.home_stats()
    return envelope(stats, timestamp=datetime.now(timezone.utc).isoformat())
