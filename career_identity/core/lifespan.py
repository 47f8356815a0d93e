import asyncio
import contextlib
import logging
from contextlib import asynccontextmanager

from career_identity.analytics.db import init_db, purge_old_records
from career_identity.core.scoring import get_scoring_config
from career_identity.store.identity_store import get_store

logger = logging.getLogger(__name__)

USAGE_PURGE_INTERVAL_S = 3600


async def _purge_usage_log(stop_event: asyncio.Event) -> None:
    while not stop_event.is_set():
        try:
            deleted = purge_old_records()
            if deleted:
                logger.info("usage_log_retention_purge deleted=%s", deleted)
        except Exception as exc:  # pragma: no cover - purge failures must not stop the app
            logger.warning("usage_log_retention_purge_failed: %s", exc)
        with contextlib.suppress(asyncio.TimeoutError):
            await asyncio.wait_for(stop_event.wait(), timeout=USAGE_PURGE_INTERVAL_S)


@asynccontextmanager
async def lifespan(app):
    # Fail at startup on a broken scoring file rather than mid-pipeline.
    get_scoring_config()
    store = get_store()
    init_db()

    stop_event = asyncio.Event()
    purge_task = asyncio.create_task(_purge_usage_log(stop_event))
    logger.info("startup identity_db=%s", store.db_path)
    try:
        yield
    finally:
        stop_event.set()
        if not purge_task.done():
            purge_task.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await purge_task
        store.close()
