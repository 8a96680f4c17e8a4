"""
app/scheduler/jobs.py

APScheduler-based auto-sync for external connections.

Discovery
---------
Connections are resolved at job runtime: ACTIVE, auto-sync enabled, not
currently syncing, and with ``next_sync_at`` unset or in the past. Each due
connection gets one reconciliation pass; the pass itself claims the
connection's sync flag, so a manual sync-now running at the same time is
skipped rather than duplicated.

Schedule
--------
  auto_sync: every ``AUTO_SYNC_INTERVAL_SECONDS`` (default 60)

Lifecycle
---------
Call ``build_scheduler()`` once to get a configured ``BackgroundScheduler``.
Start it on app boot; shut it down gracefully on app shutdown.
The scheduler is wired into FastAPI via the ``lifespan`` context in main.py.
"""

from __future__ import annotations

import logging

from apscheduler.schedulers.background import BackgroundScheduler

from app.config import get_sync_settings
from app.domain.sync import AutoSyncOutcome
from app.services.sync_service import get_sync_reconciler
from db.session import session_scope

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Job: Auto-sync due connections
# ---------------------------------------------------------------------------


def run_auto_sync() -> list[AutoSyncOutcome]:
    """
    Run one reconciliation pass for every connection whose sync is due.
    Per-connection failures are logged and do not stop the sweep.
    """
    logger.info("Scheduler: auto_sync starting")

    try:
        with session_scope() as db:
            outcomes = get_sync_reconciler().run_due_syncs(db=db)
    except Exception as exc:  # noqa: BLE001
        logger.exception("Scheduler: auto_sync failed: %s", exc)
        return []

    if not outcomes:
        logger.info("Scheduler: auto_sync no connections due")
        return outcomes

    for outcome in outcomes:
        if outcome.success:
            logger.info(
                "Scheduler: auto_sync connection=%r status=%s",
                outcome.connection_name,
                outcome.status,
            )
        else:
            logger.warning(
                "Scheduler: auto_sync failed connection=%r: %s",
                outcome.connection_name,
                outcome.error,
            )

    logger.info(
        "Scheduler: auto_sync complete synced=%d failed=%d",
        sum(1 for outcome in outcomes if outcome.success),
        sum(1 for outcome in outcomes if not outcome.success),
    )
    return outcomes


# ---------------------------------------------------------------------------
# Scheduler factory
# ---------------------------------------------------------------------------


def build_scheduler() -> BackgroundScheduler:
    """
    Build and register the periodic auto-sync job.

    Returns a configured but *not yet started* ``BackgroundScheduler``.
    No job is registered when ``AUTO_SYNC_ENABLED`` is false.
    """
    scheduler = BackgroundScheduler(timezone="UTC")
    settings = get_sync_settings()

    if not settings.auto_sync_enabled:
        logger.info("Scheduler: auto_sync disabled by AUTO_SYNC_ENABLED")
        return scheduler

    scheduler.add_job(
        run_auto_sync,
        trigger="interval",
        seconds=settings.auto_sync_interval_seconds,
        id="auto_sync",
        name="Auto-sync due external connections",
        replace_existing=True,
        max_instances=1,
        coalesce=True,
        misfire_grace_time=settings.auto_sync_interval_seconds,
    )

    return scheduler
