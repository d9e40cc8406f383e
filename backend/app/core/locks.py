"""
Cross-process job locks backed by the job_locks table.

Acquisition is a single conditional UPDATE, so two workers racing for the
same job cannot both win. A holder that dies keeps the lock only until
`locked_until` passes.
"""
import datetime as dt
import logging
import os
import socket
from contextlib import asynccontextmanager
from typing import AsyncIterator, Optional

from tortoise.expressions import Q

from app.core.clock import Clock, system_clock
from app.models import JobLock

logger = logging.getLogger(__name__)


def default_holder() -> str:
    return f"{socket.gethostname()}:{os.getpid()}"


async def try_acquire(name: str, ttl: dt.timedelta, holder: str, clock: Clock = system_clock) -> bool:
    now = clock.now()
    await JobLock.get_or_create(name=name)
    taken = await JobLock.filter(
        Q(locked_until__isnull=True) | Q(locked_until__lte=now), name=name
    ).update(locked_until=now + ttl, holder=holder, last_started_at=now)
    return taken == 1


async def release(name: str, holder: str, clock: Clock = system_clock) -> None:
    await JobLock.filter(name=name, holder=holder).update(
        locked_until=None, last_finished_at=clock.now()
    )


@asynccontextmanager
async def job_lock(
    name: str,
    ttl: dt.timedelta,
    clock: Clock = system_clock,
    holder: Optional[str] = None,
) -> AsyncIterator[bool]:
    """
    Yields True when this caller holds the lock for the duration of the block,
    False when another run already holds it (the block should do nothing).
    """
    holder = holder or default_holder()
    acquired = await try_acquire(name, ttl, holder, clock)
    if not acquired:
        logger.warning("Job lock busy name=%s", name)
    try:
        yield acquired
    finally:
        if acquired:
            await release(name, holder, clock)
