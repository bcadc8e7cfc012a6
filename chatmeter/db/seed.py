"""
Default plans and model catalog.

Seeding only fills empty tables, so operator edits are never overwritten.
"""

from decimal import Decimal

from sqlalchemy import func, select
from sqlalchemy.orm import Session

from chatmeter.core import get_logger
from chatmeter.db.models import ModelCatalogEntry, Plan

logger = get_logger(__name__)

DEFAULT_PLANS = [
    {
        "name": "Free",
        "requests_per_minute": 20,
        "requests_per_day": 60,
        "requests_per_month": 1200,
        "credits_per_day": Decimal("60000"),
        "credits_per_month": Decimal("1200000"),
        "monthly_price": Decimal("0"),
    },
    {
        "name": "Light",
        "requests_per_minute": 45,
        "requests_per_day": 240,
        "requests_per_month": 6000,
        "credits_per_day": Decimal("300000"),
        "credits_per_month": Decimal("5000000"),
        "monthly_price": Decimal("9.99"),
    },
    {
        "name": "Pro",
        "requests_per_minute": 90,
        "requests_per_day": 1200,
        "requests_per_month": 25000,
        "credits_per_day": Decimal("2000000"),
        "credits_per_month": Decimal("30000000"),
        "monthly_price": Decimal("29.99"),
    },
]

DEFAULT_MODELS = [
    {
        "model_key": "chatgpt-5.3",
        "display_name": "ChatGPT 5.3",
        "provider": "openai",
        "provider_model_id": "gpt-5.3",
        "input_weight": Decimal("1.0"),
        "output_weight": Decimal("2.0"),
        "plan_access_csv": "Free,Light,Pro",
    },
    {
        "model_key": "claude-sonnet-4",
        "display_name": "Claude Sonnet 4",
        "provider": "anthropic",
        "provider_model_id": "claude-sonnet-4-20250514",
        "input_weight": Decimal("1.2"),
        "output_weight": Decimal("2.2"),
        "plan_access_csv": "Light,Pro",
    },
    {
        "model_key": "openrouter-auto",
        "display_name": "OpenRouter Auto",
        "provider": "openrouter",
        "provider_model_id": "openrouter/auto",
        "input_weight": Decimal("1.0"),
        "output_weight": Decimal("1.8"),
        "plan_access_csv": "Pro",
    },
    {
        "model_key": "mock-echo",
        "display_name": "Mock Echo",
        "provider": "mock",
        "provider_model_id": "mock-echo",
        "input_weight": Decimal("1.0"),
        "output_weight": Decimal("1.0"),
        "plan_access_csv": "Free,Light,Pro",
    },
]


def seed_defaults(db: Session) -> None:
    """Insert default plans and models into empty tables."""
    if not db.execute(select(func.count(Plan.id))).scalar_one():
        db.add_all(Plan(**values) for values in DEFAULT_PLANS)
        logger.info("Seeded default plans", data={"count": len(DEFAULT_PLANS)})

    if not db.execute(select(func.count(ModelCatalogEntry.id))).scalar_one():
        db.add_all(ModelCatalogEntry(**values) for values in DEFAULT_MODELS)
        logger.info("Seeded default models", data={"count": len(DEFAULT_MODELS)})

    db.commit()
