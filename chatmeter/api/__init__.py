"""API routers."""

from chatmeter.api.chat import router as chat_router
from chatmeter.api.health import router as health_router
from chatmeter.api.models import router as models_router
from chatmeter.api.usage import router as usage_router

__all__ = [
    "chat_router",
    "health_router",
    "models_router",
    "usage_router",
]
