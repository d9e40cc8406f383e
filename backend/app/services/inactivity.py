"""
Dormancy sweep.

Marks active accounts inactive once they have not logged in for
DORMANCY_DAYS (accounts that never logged in are measured from creation).
Meant to run once a day; overlapping runs are skipped through a job lock.
"""
import datetime as dt
import logging
from dataclasses import asdict, dataclass, field
from typing import Optional

from tortoise.expressions import Q

from app.config import settings
from app.core.clock import Clock, system_clock
from app.core.locks import job_lock
from app.models import Account
from .sessions import SessionManager

logger = logging.getLogger(__name__)

SWEEP_JOB = "mark_inactive_users"


@dataclass
class SweepReport:
    total_found: int = 0
    marked_inactive: int = 0
    errors: list = field(default_factory=list)
    dry_run: bool = False
    sessions_purged: int = 0

    def to_dict(self) -> dict:
        return asdict(self)


@dataclass
class InactivityStats:
    total_accounts: int
    active_accounts: int
    inactive_accounts: int
    suspended_accounts: int
    pending_inactivation: int
    threshold: dt.datetime
    dormancy_days: int

    def to_dict(self) -> dict:
        data = asdict(self)
        data["threshold"] = self.threshold.isoformat()
        return data


class InactivitySweep:
    def __init__(
        self,
        sessions: SessionManager,
        clock: Clock = system_clock,
        dormancy_days: Optional[int] = None,
    ):
        self.sessions = sessions
        self.clock = clock
        self.dormancy_days = dormancy_days or settings.dormancy_days

    def threshold(self) -> dt.datetime:
        return self.clock.now() - dt.timedelta(days=self.dormancy_days)

    def _dormant_filter(self) -> Q:
        cutoff = self.threshold()
        return Q(active=True) & (
            Q(last_login__lte=cutoff) | Q(last_login__isnull=True, created_at__lte=cutoff)
        )

    async def find_dormant(self) -> list[Account]:
        return await Account.filter(self._dormant_filter()).order_by("id")

    async def mark_inactive(self, dry_run: bool = False) -> SweepReport:
        dormant = await self.find_dormant()
        report = SweepReport(total_found=len(dormant), dry_run=dry_run)
        logger.info("Inactivity sweep found %d dormant accounts dry_run=%s", len(dormant), dry_run)

        for account in dormant:
            if dry_run:
                continue
            try:
                # Re-checks `active` so a concurrent reactivation is not undone
                changed = await Account.filter(id=account.id, active=True).update(active=False)
                if changed:
                    await self.sessions.end_all_sessions(account)
                    report.marked_inactive += 1
                    logger.info(
                        "Account marked inactive account_id=%s last_login=%s",
                        account.id, account.last_login,
                    )
            except Exception as e:
                # One bad row must not stop the sweep
                logger.error("Failed to mark account inactive account_id=%s error=%s", account.id, e)
                report.errors.append({"account_id": account.id, "email": account.email, "error": str(e)})

        return report

    async def stats(self) -> InactivityStats:
        return InactivityStats(
            total_accounts=await Account.all().count(),
            active_accounts=await Account.filter(active=True).count(),
            inactive_accounts=await Account.filter(active=False).count(),
            suspended_accounts=await Account.filter(suspended=True).count(),
            pending_inactivation=await Account.filter(self._dormant_filter()).count(),
            threshold=self.threshold(),
            dormancy_days=self.dormancy_days,
        )

    async def run(self, dry_run: bool = False, holder: Optional[str] = None) -> Optional[SweepReport]:
        """
        The scheduled entry point. Returns None when another run holds the lock.
        """
        ttl = dt.timedelta(minutes=settings.sweep_lock_ttl_minutes)
        async with job_lock(SWEEP_JOB, ttl, clock=self.clock, holder=holder) as acquired:
            if not acquired:
                logger.warning("Inactivity sweep already running, skipping this run")
                return None
            report = await self.mark_inactive(dry_run=dry_run)
            if not dry_run:
                report.sessions_purged = await self.sessions.purge_expired()
        logger.info(
            "Inactivity sweep finished found=%d marked=%d errors=%d sessions_purged=%d",
            report.total_found, report.marked_inactive, len(report.errors), report.sessions_purged,
        )
        return report
