"""
Daily and monthly request/credit quotas.

Counters are a cached aggregate of the append-only usage ledger. Recording
usage advances both counters and appends one ledger row in a single
transaction.
"""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass
from datetime import date, datetime
from decimal import Decimal

from sqlalchemy.exc import OperationalError, ProgrammingError
from sqlalchemy.orm import Session

from chatmeter.core import get_logger
from chatmeter.core.metrics import metrics
from chatmeter.core.time import utc_today, utcnow
from chatmeter.db.repositories import (
    append_ledger_entry,
    get_daily_counter,
    get_monthly_counter,
    increment_daily_counter,
    increment_monthly_counter,
    set_daily_counter,
    set_monthly_counter,
    sum_ledger_for_cycle,
    sum_ledger_for_day,
)
from chatmeter.services.credits import compute_credits

logger = get_logger(__name__)

DAILY_REQUEST_LIMIT_REACHED = "Daily request limit reached."
MONTHLY_REQUEST_LIMIT_REACHED = "Monthly request limit reached."
DAILY_CREDIT_LIMIT_REACHED = "Daily credit limit reached."
MONTHLY_CREDIT_LIMIT_REACHED = "Monthly credit limit reached."


@dataclass(frozen=True)
class PlanLimits:
    """Limits of the caller's plan, fixed for the duration of a request."""

    plan_name: str
    requests_per_minute: int
    requests_per_day: int
    requests_per_month: int
    credits_per_day: Decimal
    credits_per_month: Decimal
    cycle_key: str


@dataclass(frozen=True)
class QuotaSnapshot:
    daily_requests: int
    monthly_requests: int
    daily_credits: Decimal
    monthly_credits: Decimal
    limits: PlanLimits


@dataclass(frozen=True)
class QuotaDecision:
    allowed: bool
    reason: str | None = None


@dataclass(frozen=True)
class UsageRecord:
    """One completed exchange to charge."""

    user_id: str
    model_key: str
    cycle_key: str
    input_tokens: int
    output_tokens: int
    input_weight: Decimal
    output_weight: Decimal
    message_id: str | None = None


class QuotaAccountant:
    """Reads, enforces, and records usage against plan limits."""

    def __init__(self, now: Callable[[], datetime] = utcnow):
        self._now = now

    def today(self) -> date:
        return utc_today(self._now())

    def snapshot(self, db: Session, user_id: str, limits: PlanLimits) -> QuotaSnapshot:
        """Current counters (zero when absent) paired with the limits."""
        daily = get_daily_counter(db, user_id, self.today())
        monthly = get_monthly_counter(db, user_id, limits.cycle_key)
        return QuotaSnapshot(
            daily_requests=daily.request_count if daily else 0,
            monthly_requests=monthly.request_count if monthly else 0,
            daily_credits=Decimal(daily.credits_used) if daily else Decimal("0"),
            monthly_credits=Decimal(monthly.credits_used) if monthly else Decimal("0"),
            limits=limits,
        )

    def settled_snapshot(self, db: Session, user_id: str, limits: PlanLimits) -> QuotaSnapshot:
        """
        Snapshot taken after ``record`` for the usage event.

        Degrades like ``record``: if the usage tables are unreadable the
        counters are reported as zero instead of failing the exchange.
        """
        try:
            return self.snapshot(db, user_id, limits)
        except (OperationalError, ProgrammingError) as exc:
            db.rollback()
            metrics.increment("accounting_degraded_total")
            logger.warning("Usage snapshot skipped", exc_info=exc)
            return QuotaSnapshot(
                daily_requests=0,
                monthly_requests=0,
                daily_credits=Decimal("0"),
                monthly_credits=Decimal("0"),
                limits=limits,
            )

    def evaluate(self, db: Session, user_id: str, limits: PlanLimits) -> QuotaDecision:
        """First exhausted budget wins: daily/monthly requests, then credits."""
        snapshot = self.snapshot(db, user_id, limits)

        if snapshot.daily_requests >= limits.requests_per_day:
            return QuotaDecision(False, DAILY_REQUEST_LIMIT_REACHED)
        if snapshot.monthly_requests >= limits.requests_per_month:
            return QuotaDecision(False, MONTHLY_REQUEST_LIMIT_REACHED)
        if snapshot.daily_credits >= limits.credits_per_day:
            return QuotaDecision(False, DAILY_CREDIT_LIMIT_REACHED)
        if snapshot.monthly_credits >= limits.credits_per_month:
            return QuotaDecision(False, MONTHLY_CREDIT_LIMIT_REACHED)
        return QuotaDecision(True)

    def record(self, db: Session, usage: UsageRecord) -> Decimal:
        """
        Charge one exchange and return the credits it cost.

        Both counters and the ledger row commit together or not at all. If
        the usage tables are missing or unreachable the charge is skipped
        and logged, and the computed credits are still returned.
        """
        credits = compute_credits(
            usage.input_tokens, usage.output_tokens, usage.input_weight, usage.output_weight
        )
        day_utc = self.today()

        try:
            increment_daily_counter(db, usage.user_id, day_utc, requests=1, credits=credits)
            increment_monthly_counter(
                db, usage.user_id, usage.cycle_key, requests=1, credits=credits
            )
            append_ledger_entry(
                db,
                usage.user_id,
                day_utc=day_utc,
                cycle_key=usage.cycle_key,
                model_key=usage.model_key,
                credits=credits,
                message_id=usage.message_id,
            )
            db.commit()
        except (OperationalError, ProgrammingError) as exc:
            db.rollback()
            metrics.increment("accounting_degraded_total")
            logger.warning(
                "Usage accounting skipped",
                exc_info=exc,
                data={"model_key": usage.model_key, "credits": str(credits)},
            )
            return credits
        except Exception:
            db.rollback()
            raise

        return credits

    def rebuild_counters(
        self, db: Session, user_id: str, *, day_utc: date, cycle_key: str
    ) -> None:
        """Recompute a subject's daily and monthly counters from the ledger."""
        day_requests, day_credits = sum_ledger_for_day(db, user_id, day_utc)
        cycle_requests, cycle_credits = sum_ledger_for_cycle(db, user_id, cycle_key)
        try:
            set_daily_counter(db, user_id, day_utc, requests=day_requests, credits=day_credits)
            set_monthly_counter(
                db, user_id, cycle_key, requests=cycle_requests, credits=cycle_credits
            )
            db.commit()
        except Exception:
            db.rollback()
            raise
        logger.info(
            "Usage counters rebuilt",
            data={"day_utc": day_utc.isoformat(), "cycle_key": cycle_key},
        )
