"""Model catalog endpoints."""

from typing import Any

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from chatmeter.auth import RequireUser
from chatmeter.db import get_db
from chatmeter.db.repositories import list_models_for_plan
from chatmeter.services.plans import get_limits

router = APIRouter(tags=["models"])


@router.get("/models")
def list_models_route(
    user: RequireUser,
    db: Session = Depends(get_db),
) -> dict[str, Any]:
    """Enabled models the caller's current plan may use."""
    limits = get_limits(db, user.id)
    models = list_models_for_plan(db, limits.plan_name)
    return {
        "plan": limits.plan_name,
        "models": [
            {
                "modelKey": model.model_key,
                "displayName": model.display_name,
                "provider": model.provider,
                "inputWeight": float(model.input_weight),
                "outputWeight": float(model.output_weight),
                "hasFallback": bool(model.fallback_model_key),
            }
            for model in models
        ],
    }
