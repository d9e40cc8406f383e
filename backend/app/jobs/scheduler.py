# app/jobs/scheduler.py
"""
Minimal daily scheduler for the in-process dormancy sweep.

One asyncio task per app process; the sweep's job lock keeps several
processes (or a cron-run CLI) from working at the same time.
"""
import asyncio
import datetime as dt
import logging
from typing import Awaitable, Callable

from app.core.clock import Clock, system_clock

logger = logging.getLogger("uvicorn.error")


def seconds_until(hour: int, now: dt.datetime) -> float:
    """Seconds from `now` until the next HH:00 UTC (tomorrow if already past)."""
    target = now.replace(hour=hour, minute=0, second=0, microsecond=0)
    if target <= now:
        target += dt.timedelta(days=1)
    return (target - now).total_seconds()


async def run_daily(
    hour: int,
    job: Callable[[], Awaitable[object]],
    name: str,
    clock: Clock = system_clock,
) -> None:
    """Run `job` every day at `hour`:00 UTC until cancelled."""
    while True:
        delay = seconds_until(hour, clock.now())
        logger.info("[scheduler] %s next run in %.0f seconds", name, delay)
        await asyncio.sleep(delay)
        try:
            await job()
        except asyncio.CancelledError:
            raise
        except Exception:
            # Keep the schedule alive; the next day gets another try
            logger.exception("[scheduler] %s failed", name)
