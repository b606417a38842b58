"""
Home and Health Service.

Read-only aggregates for the landing page and the health endpoint. Home
statistics run their three count queries concurrently, each on its own
session, since one `AsyncSession` cannot run statements in parallel.
"""

import asyncio
from datetime import datetime, timezone
from typing import Any, Dict

from core.database import Database
from core.logging_config import get_logger
from core.models import Comment, Prompt, User
from services.query_utils import count_rows

logger = get_logger(__name__)


class HomeService:
    """Landing-page statistics and service health"""

    def __init__(self, db: Database):
        self.db = db

    async def _count(self, model, *conditions) -> int:
        async with self.db.session() as session:
            return await count_rows(session, model, *conditions)

    async def home_stats(self) -> Dict[str, int]:
        creators, prompts, comments = await asyncio.gather(
            self._count(User),
            self._count(Prompt, Prompt.is_active.is_(True)),
            self._count(Comment),
        )
        return {"creators": creators, "prompts": prompts, "comments": comments}

    async def health(self) -> Dict[str, Any]:
        connected = await self.db.ping()
        if not connected:
            logger.warning("Health check: database unreachable")
        return {
            "status": "healthy",
            "message": "Hello from Sapien!",
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "database": "connected" if connected else "disconnected",
        }
