"""Authentication and authorization module."""

from .keys import generate_api_key, hash_api_key
from .dependencies import get_current_clinic, AuthenticatedClinic

__all__ = [
    "generate_api_key",
    "hash_api_key",
    "get_current_clinic",
    "AuthenticatedClinic",
]
