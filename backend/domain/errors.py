"""
Domain exceptions shared by services and API routes.
"""
from typing import Optional


class InvalidRequest(ValueError):
    """Required input (name, address, place id) missing or blank."""


class MissingApiKey(RuntimeError):
    """The provider key is not configured on the server."""

    def __init__(self, name: str = "GOOGLE_MAPS_API_KEY"):
        super().__init__(f"missing {name}")
        self.name = name


class ProviderLookupFailed(Exception):
    """A single-shot provider lookup produced no usable result.

    ``reason`` is one of UPSTREAM (transport, non-2xx or unparsable body),
    PROVIDER (provider answered with a non-OK status) or NOT_FOUND (nothing
    matched, including an OK answer without a location).
    """

    UPSTREAM = "upstream"
    PROVIDER = "provider"
    NOT_FOUND = "not_found"

    def __init__(
        self,
        message: str,
        reason: str,
        http_status: Optional[int] = None,
        provider_status: Optional[str] = None,
        provider_error: Optional[str] = None,
        body: Optional[str] = None,
    ):
        super().__init__(message)
        self.message = message
        self.reason = reason
        self.http_status = http_status
        self.provider_status = provider_status
        self.provider_error = provider_error
        self.body = body
