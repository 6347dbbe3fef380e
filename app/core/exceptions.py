# app/core/exceptions.py
from typing import Optional


class ProviderError(Exception):
    """
    Raised by an external provider adapter (network failure, bad status,
    malformed payload, missing credential).

    Only the fallback chain catches it; it never reaches the API layer.
    """

    def __init__(self, provider: str, message: str, status_code: Optional[int] = None) -> None:
        super().__init__(f"{provider}: {message}")
        self.provider = provider
        self.status_code = status_code


class RouteUnavailableError(Exception):
    """Raised when not even a mock route geometry could be produced."""
