"""Usage snapshot endpoint."""

from typing import Any

from fastapi import APIRouter, Depends, Request
from sqlalchemy.orm import Session

from chatmeter.auth import RequireUser
from chatmeter.db import get_db
from chatmeter.services.plans import get_limits
from chatmeter.services.quota import QuotaAccountant

router = APIRouter(tags=["usage"])


@router.get("/usage")
def usage_route(
    request: Request,
    user: RequireUser,
    db: Session = Depends(get_db),
) -> dict[str, Any]:
    """Current daily and monthly usage for the caller, with the plan's limits."""
    service = getattr(request.app.state, "chat_service", None)
    accountant = service.accountant if service is not None else QuotaAccountant()
    limits = get_limits(db, user.id)
    snapshot = accountant.snapshot(db, user.id, limits)
    return {
        "plan": limits.plan_name,
        "cycleKey": limits.cycle_key,
        "daily": {
            "requests": snapshot.daily_requests,
            "requestLimit": limits.requests_per_day,
            "creditsUsed": float(snapshot.daily_credits),
            "creditLimit": float(limits.credits_per_day),
        },
        "monthly": {
            "requests": snapshot.monthly_requests,
            "requestLimit": limits.requests_per_month,
            "creditsUsed": float(snapshot.monthly_credits),
            "creditLimit": float(limits.credits_per_month),
        },
        "requestsPerMinute": limits.requests_per_minute,
    }
