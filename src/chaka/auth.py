"""Caller authentication for the Chaka mediator.

With no key configured every caller is let through (development mode).
Otherwise the X-API-Key header must match, and a mismatch is answered
with a 401 failure envelope before any lookup is made.
"""

from __future__ import annotations

import secrets

from fastapi import Security
from fastapi.security import APIKeyHeader

from chaka.errors import UnauthorizedError

_api_key_header = APIKeyHeader(name="X-API-Key", auto_error=False)


def make_api_key_checker(expected_key: str):
    """Return a dependency rejecting callers without ``expected_key``."""

    async def require_caller_key(
        presented: str | None = Security(_api_key_header),
    ) -> None:
        if not expected_key:
            return
        if presented is None:
            raise UnauthorizedError("Missing X-API-Key header")
        if not secrets.compare_digest(presented.encode(), expected_key.encode()):
            raise UnauthorizedError("Invalid API key")

    return require_caller_key
