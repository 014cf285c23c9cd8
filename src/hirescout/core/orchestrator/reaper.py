"""Stale run recovery."""

from __future__ import annotations

from datetime import datetime, timedelta

from hirescout.core.logging import get_logger
from hirescout.persistence.db import SessionFactory, get_async_session
from hirescout.persistence.models import utcnow
from hirescout.persistence.repo import RunRepository


logger = get_logger("orchestrator.reaper")

TIMEOUT_MESSAGE = "Scraper timed out - request was terminated before completion"


class StaleRunReaper:
    """Fails queued/running runs whose start is older than the threshold.

    This is the only recovery path for runs orphaned by a crashed or
    terminated process. Running it twice in a row is a no-op.
    """

    def __init__(
        self,
        stale_after_minutes: int = 10,
        session_factory: SessionFactory = get_async_session,
    ):
        self.stale_after = timedelta(minutes=stale_after_minutes)
        self.session_factory = session_factory

    async def reap(self, search_id: str, now: datetime | None = None) -> list[str]:
        """Return the ids of the runs transitioned to failed."""
        cutoff = (now or utcnow()) - self.stale_after

        async with self.session_factory() as session:
            reaped = await RunRepository(session).reap_stale(search_id, cutoff, TIMEOUT_MESSAGE)

        if reaped:
            logger.warning(
                f"Reaped {len(reaped)} stale run(s) for search {search_id}",
                extra={"search_id": search_id},
            )
        return reaped
