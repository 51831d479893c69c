"""API key utilities."""

import hashlib
import secrets

API_KEY_PREFIX = "crm_live_"


def generate_api_key() -> tuple[str, str]:
    """
    Generate a new API key and its hash.

    Returns:
        Tuple of (plain_key, key_hash)
    """
    plain_key = f"{API_KEY_PREFIX}{secrets.token_urlsafe(32)}"
    return plain_key, hash_api_key(plain_key)


def hash_api_key(api_key: str) -> str:
    """Hash an API key for storage/lookup."""
    return hashlib.sha256(api_key.encode()).hexdigest()
