# app/services/http_client.py
from typing import Any, Dict, Optional

import httpx

from app.core.config import Settings
from app.core.exceptions import ProviderError
from app.core.logger import logger


class JsonHttpClient:
    """
    Thin async JSON-over-HTTP helper shared by the provider adapters.

    Every failure (timeout, connection error, non-2xx status, non-JSON body)
    is logged and re-raised as ProviderError so the fallback chain can move
    on to the next provider. A custom transport can be injected for tests.
    """

    def __init__(
        self,
        settings: Settings,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        self.timeout = settings.HTTP_TIMEOUT_S
        self.transport = transport

    async def get_json(
        self,
        provider: str,
        url: str,
        params: Optional[Dict[str, Any]] = None,
        headers: Optional[Dict[str, str]] = None,
    ) -> Any:
        return await self._request(provider, "GET", url, params=params, headers=headers)

    async def post_json(
        self,
        provider: str,
        url: str,
        body: Dict[str, Any],
        headers: Optional[Dict[str, str]] = None,
    ) -> Any:
        return await self._request(provider, "POST", url, json=body, headers=headers)

    async def _request(self, provider: str, method: str, url: str, **kwargs: Any) -> Any:
        try:
            async with httpx.AsyncClient(timeout=self.timeout, transport=self.transport) as client:
                response = await client.request(method, url, **kwargs)
                response.raise_for_status()
                return response.json()
        except httpx.TimeoutException as exc:
            logger.warning("{} request timed out after {:.1f} s: {}", provider, self.timeout, exc)
            raise ProviderError(provider, "timeout") from exc
        except httpx.HTTPStatusError as exc:
            status = exc.response.status_code
            logger.warning(
                "{} status: {} {} data: {}",
                provider,
                status,
                exc.response.reason_phrase,
                exc.response.text[:500],
            )
            raise ProviderError(provider, f"HTTP {status}", status_code=status) from exc
        except httpx.HTTPError as exc:
            logger.warning("{} no response received: {}", provider, exc)
            raise ProviderError(provider, str(exc) or type(exc).__name__) from exc
        except ValueError as exc:
            logger.warning("{} returned a non-JSON body: {}", provider, exc)
            raise ProviderError(provider, "invalid JSON") from exc
