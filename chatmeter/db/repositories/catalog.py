"""Model catalog lookups and plan access checks."""

from sqlalchemy import select
from sqlalchemy.orm import Session

from chatmeter.db.models import ModelCatalogEntry


def get_enabled_model(db: Session, model_key: str) -> ModelCatalogEntry | None:
    """Return the model only when it exists and is enabled."""
    stmt = select(ModelCatalogEntry).where(
        ModelCatalogEntry.model_key == model_key,
        ModelCatalogEntry.is_enabled.is_(True),
    )
    return db.execute(stmt).scalar_one_or_none()


def get_enabled_fallback(db: Session, model: ModelCatalogEntry) -> ModelCatalogEntry | None:
    """Resolve the model's fallback; disabled fallbacks are ignored."""
    if not model.fallback_model_key:
        return None
    return get_enabled_model(db, model.fallback_model_key)


def is_model_allowed_for_plan(model: ModelCatalogEntry, plan_name: str) -> bool:
    """Case-insensitive match of the plan name in the model's access list."""
    wanted = plan_name.strip().lower()
    return any(name.lower() == wanted for name in model.plan_access)


def list_models_for_plan(db: Session, plan_name: str) -> list[ModelCatalogEntry]:
    """Enabled models the given plan may use, ordered by key."""
    stmt = (
        select(ModelCatalogEntry)
        .where(ModelCatalogEntry.is_enabled.is_(True))
        .order_by(ModelCatalogEntry.model_key)
    )
    return [
        model
        for model in db.execute(stmt).scalars().all()
        if is_model_allowed_for_plan(model, plan_name)
    ]
