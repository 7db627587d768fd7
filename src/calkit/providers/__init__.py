"""Provider mappers, dispatched by provider id."""

from __future__ import annotations

from calkit.providers.base import (
    ProviderMapper,
    ProviderPayloadError,
    UnknownProviderError,
)
from calkit.providers.google import GoogleCalendarMapper
from calkit.providers.microsoft import MicrosoftGraphMapper

_MAPPERS: dict[str, ProviderMapper] = {
    mapper.provider_id: mapper for mapper in (GoogleCalendarMapper(), MicrosoftGraphMapper())
}


def get_mapper(provider_id: str) -> ProviderMapper:
    """Return the mapper registered for *provider_id*."""
    normalized = provider_id.strip().lower() if isinstance(provider_id, str) else ""
    mapper = _MAPPERS.get(normalized)
    if mapper is None:
        raise UnknownProviderError(str(provider_id))
    return mapper


def provider_ids() -> list[str]:
    return sorted(_MAPPERS)


__all__ = [
    "GoogleCalendarMapper",
    "MicrosoftGraphMapper",
    "ProviderMapper",
    "ProviderPayloadError",
    "UnknownProviderError",
    "get_mapper",
    "provider_ids",
]
