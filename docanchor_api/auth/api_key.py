"""API key authentication against configured keys."""

import hashlib
import hmac
from typing import Optional

from docanchor_api.settings import get_settings


def compute_key_prefix(raw_key: str) -> str:
    """Compute prefix (first 8 chars) of API key."""
    return raw_key[:8] if len(raw_key) >= 8 else raw_key


def compute_key_digest(raw_key: str) -> str:
    """Compute HMAC-SHA256 digest of API key."""
    secret = get_settings().secret_key.encode()
    return hmac.new(secret, raw_key.encode(), hashlib.sha256).hexdigest()


def authenticate_api_key(api_key: Optional[str]) -> Optional[str]:
    """Return a client label for a valid API key, None otherwise."""
    if not api_key:
        return None

    digest = compute_key_digest(api_key)
    matched = False
    # Compare against every configured key so timing does not reveal position
    for configured in get_settings().api_keys:
        if hmac.compare_digest(compute_key_digest(configured), digest):
            matched = True

    if not matched:
        return None
    return f"key:{compute_key_prefix(api_key)}"
