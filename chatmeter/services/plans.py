"""Resolve the plan limits that apply to a user right now."""

from __future__ import annotations

from datetime import datetime
from decimal import Decimal

from sqlalchemy import select
from sqlalchemy.orm import Session

from chatmeter.core import ConfigurationError
from chatmeter.core.time import month_start_key, utcnow
from chatmeter.db.models import Plan, Subscription
from chatmeter.services.quota import PlanLimits

FREE_PLAN_NAME = "Free"


def get_active_subscription(
    db: Session, user_id: str, now: datetime | None = None
) -> Subscription | None:
    """Active, unexpired subscription with the latest period end."""
    now = now or utcnow()
    stmt = (
        select(Subscription)
        .where(
            Subscription.user_id == user_id,
            Subscription.status == "active",
            Subscription.period_end > now,
        )
        .order_by(Subscription.period_end.desc())
        .limit(1)
    )
    return db.execute(stmt).scalar_one_or_none()


def get_free_plan(db: Session) -> Plan:
    stmt = select(Plan).where(Plan.name == FREE_PLAN_NAME, Plan.is_active.is_(True))
    plan = db.execute(stmt).scalar_one_or_none()
    if plan is None:
        raise ConfigurationError("Free plan is not configured.")
    return plan


def get_limits(db: Session, user_id: str, now: datetime | None = None) -> PlanLimits:
    """
    Plan limits for the user.

    A paid subscription buckets monthly usage by its period start; free
    users are bucketed by calendar month.
    """
    now = now or utcnow()
    subscription = get_active_subscription(db, user_id, now)
    if subscription is not None:
        plan = subscription.plan
        cycle_key = subscription.period_start.strftime("%Y-%m-%d")
    else:
        plan = get_free_plan(db)
        cycle_key = month_start_key(now)

    return PlanLimits(
        plan_name=plan.name,
        requests_per_minute=plan.requests_per_minute,
        requests_per_day=plan.requests_per_day,
        requests_per_month=plan.requests_per_month,
        credits_per_day=Decimal(plan.credits_per_day),
        credits_per_month=Decimal(plan.credits_per_month),
        cycle_key=cycle_key,
    )
