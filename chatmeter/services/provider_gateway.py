"""
Provider selection with a single fallback hop.

Each attempt yields a ``ProviderAttempt`` carrying either a result or a
``ProviderError``; the gateway branches on the error's kind instead of on
exception types.
"""

from __future__ import annotations

from dataclasses import dataclass

from chatmeter.core import ProviderError, ProviderErrorKind, get_logger
from chatmeter.core.metrics import metrics
from chatmeter.db.models import ModelCatalogEntry
from chatmeter.providers import ProviderRegistry, ProviderRequest, ProviderResult

logger = get_logger(__name__)


@dataclass(frozen=True)
class ProviderAttempt:
    """Outcome of calling one model."""

    model_key: str
    result: ProviderResult | None = None
    error: ProviderError | None = None

    @property
    def ok(self) -> bool:
        return self.error is None


@dataclass(frozen=True)
class GatewayResult:
    """Completion plus the model that actually produced it."""

    result: ProviderResult
    model: ModelCatalogEntry
    used_fallback: bool = False

    @property
    def model_key(self) -> str:
        return self.model.model_key


def _provider_model_id(model: ModelCatalogEntry) -> str:
    return model.provider_model_id or model.model_key


class ProviderGateway:
    """Calls the primary model and, on a transient failure, its fallback once."""

    def __init__(self, registry: ProviderRegistry):
        self.registry = registry

    async def _attempt(
        self, model: ModelCatalogEntry, request: ProviderRequest
    ) -> ProviderAttempt:
        try:
            provider = self.registry.get(model.provider)
            result = await provider.complete(request)
        except ProviderError as exc:
            return ProviderAttempt(model_key=model.model_key, error=exc)
        return ProviderAttempt(model_key=model.model_key, result=result)

    async def complete_with_fallback(
        self,
        primary: ModelCatalogEntry,
        fallback: ModelCatalogEntry | None,
        request: ProviderRequest,
    ) -> GatewayResult:
        """
        Complete ``request`` on the primary model.

        Permanent errors, and transient errors without a fallback, are raised
        unchanged. Plan access for the fallback is not checked here.
        """
        attempt = await self._attempt(primary, request)
        if attempt.ok:
            return GatewayResult(result=attempt.result, model=primary)

        error = attempt.error
        if error.kind is ProviderErrorKind.PERMANENT:
            raise error
        elif fallback is None:
            raise error

        logger.warning(
            "Primary model failed, retrying on fallback",
            data={
                "primary": primary.model_key,
                "fallback": fallback.model_key,
                "code": error.code.value,
            },
        )
        retry = await self._attempt(fallback, request.retarget(_provider_model_id(fallback)))
        if not retry.ok:
            raise retry.error

        metrics.increment("provider_fallbacks_total")
        return GatewayResult(
            result=retry.result, model=fallback, used_fallback=True
        )
