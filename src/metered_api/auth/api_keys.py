"""API key generation and credential extraction."""

import hashlib
import secrets

API_KEY_BYTES = 32
BEARER_SCHEME = "bearer"


def generate_api_key(prefix: str) -> str:
    """Generate a new prefixed, URL-safe API key."""
    return f"{prefix}{secrets.token_urlsafe(API_KEY_BYTES)}"


def extract_api_key(authorization: str | None, x_api_key: str | None) -> str | None:
    """
    Pull the API key out of the request headers.

    ``Authorization`` wins over ``X-API-Key`` and may be either
    ``Bearer <key>`` or the bare key. Blank values count as absent.
    """
    if authorization and authorization.strip():
        value = authorization.strip()
        scheme, _, token = value.partition(" ")
        if scheme.lower() == BEARER_SCHEME:
            value = token.strip()
        if value:
            return value

    if x_api_key and x_api_key.strip():
        return x_api_key.strip()

    return None


def mask_api_key(api_key: str, prefix: str = "") -> str:
    """
    Render a key for log output without any of its secret characters.

    Only the known prefix is shown, followed by a short digest so the same
    key can still be correlated across log lines.
    """
    shown = prefix if prefix and api_key.startswith(prefix) else ""
    digest = hashlib.sha256(api_key.encode()).hexdigest()[:8]
    return f"{shown}...{digest}"
