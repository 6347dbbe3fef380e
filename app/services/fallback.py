# app/services/fallback.py
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Generic, List, Optional, Sequence, Tuple, TypeVar

from app.core.exceptions import ProviderError
from app.core.logger import logger

T = TypeVar("T")

# A strategy returns a value, returns None for "no result", or raises ProviderError.
Strategy = Callable[..., Awaitable[Optional[T]]]

# Raised by adapters parsing an unexpected payload shape
MALFORMED_PAYLOAD_ERRORS = (AttributeError, KeyError, IndexError, TypeError, ValueError)


@dataclass(frozen=True)
class ProviderResult(Generic[T]):
    value: T
    provider: str


class FallbackChain(Generic[T]):
    """
    Ordered list of providers for one capability (geocode, route, weather...).

    Providers are tried in order and the first one producing a value wins.
    A failing provider is not retried, only superseded by the next one.
    resolve() never raises; it returns None once every provider has failed.
    """

    def __init__(self, capability: str, strategies: Sequence[Tuple[str, Strategy]]) -> None:
        self.capability = capability
        self.strategies: List[Tuple[str, Strategy]] = list(strategies)

    @property
    def provider_names(self) -> List[str]:
        return [name for name, _ in self.strategies]

    async def resolve(self, *args: Any, **kwargs: Any) -> Optional[ProviderResult[T]]:
        for name, strategy in self.strategies:
            try:
                value = await strategy(*args, **kwargs)
            except ProviderError as exc:
                logger.warning("{} via {} failed: {}", self.capability, name, exc)
                continue
            except MALFORMED_PAYLOAD_ERRORS as exc:
                logger.warning(
                    "{} via {} returned an unexpected payload: {!r}", self.capability, name, exc
                )
                continue

            if value is None:
                logger.debug("{} via {} returned no result", self.capability, name)
                continue

            return ProviderResult(value=value, provider=name)

        if self.strategies:
            logger.error(
                "{}: all providers failed ({})", self.capability, ", ".join(self.provider_names)
            )
        return None
