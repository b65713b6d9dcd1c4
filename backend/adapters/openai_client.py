"""
Shared AsyncOpenAI client construction.

Credentials are resolved per call, so clients are built lazily and cached
per (api_key, base_url, headers) triple: a rotated key gets a new client,
an unchanged key reuses the existing connection pool.
"""

from __future__ import annotations

from typing import Mapping

from openai import AsyncOpenAI

from adapters.errors import ConfigurationMissingError
from constants import HTTP_TIMEOUT_S


_ClientKey = tuple[str, str | None, tuple[tuple[str, str], ...]]

_clients: dict[_ClientKey, AsyncOpenAI] = {}


def build_client(
    api_key: str | None,
    *,
    what: str,
    base_url: str | None = None,
    headers: Mapping[str, str] | None = None,
) -> AsyncOpenAI:
    """
    Return a cached AsyncOpenAI client for the given credential.

    Raises:
        ConfigurationMissingError if `api_key` is None or blank.
    """
    if not api_key:
        raise ConfigurationMissingError(f"{what} credential not configured")

    frozen_headers = tuple(sorted((headers or {}).items()))
    key: _ClientKey = (api_key, base_url, frozen_headers)

    client = _clients.get(key)
    if client is None:
        client = AsyncOpenAI(
            api_key=api_key,
            base_url=base_url,
            default_headers=dict(frozen_headers) or None,
            timeout=HTTP_TIMEOUT_S,
            max_retries=0,
        )
        _clients[key] = client
    return client


def clear_clients() -> None:
    """Forget cached clients (tests, credential reloads)."""
    _clients.clear()
