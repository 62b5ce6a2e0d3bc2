"""Background loop that runs the SLA escalation sweep on an interval."""

from __future__ import annotations

import asyncio
import logging

from civicsense.core.config import settings
from civicsense.db.session import SessionLocal
from civicsense.services.escalation import run_escalation_sweep

logger = logging.getLogger(__name__)

_task: asyncio.Task | None = None
_MIN_INTERVAL_SECONDS = 60


def _run_once() -> None:
    db = SessionLocal()
    try:
        result = run_escalation_sweep(db)
        if result.skipped:
            logger.debug("Scheduled escalation sweep skipped: another sweep holds the lease")
            return
        logger.info(
            "Scheduled escalation sweep completed: processed=%s escalated=%s failures=%s",
            result.processed,
            len(result.escalated),
            len(result.failures),
        )
    except Exception as exc:  # noqa: BLE001
        logger.warning("Scheduled escalation sweep failed: %s", exc)
    finally:
        db.close()


async def _loop() -> None:
    startup_delay = max(0, settings.ESCALATION_SWEEP_STARTUP_DELAY_SECONDS)
    interval = max(_MIN_INTERVAL_SECONDS, settings.ESCALATION_SWEEP_INTERVAL_SECONDS)
    if startup_delay:
        await asyncio.sleep(startup_delay)
    while True:
        await asyncio.to_thread(_run_once)
        await asyncio.sleep(interval)


async def start_escalation_loop() -> None:
    global _task
    if _task is not None:
        return
    if not settings.ESCALATION_SWEEP_ENABLED:
        return
    _task = asyncio.create_task(_loop(), name="sla-escalation-sweep")
    logger.info(
        "Escalation sweep loop started (every %s seconds)",
        max(_MIN_INTERVAL_SECONDS, settings.ESCALATION_SWEEP_INTERVAL_SECONDS),
    )


async def stop_escalation_loop() -> None:
    global _task
    task = _task
    _task = None
    if task is None:
        return
    task.cancel()
    try:
        await task
    except asyncio.CancelledError:
        pass
