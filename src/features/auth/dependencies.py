"""FastAPI authentication dependencies."""

from datetime import datetime, timezone

from fastapi import Depends, Header, HTTPException, status

from src.core.firestore import FirestoreClient, get_firestore_client

from .keys import API_KEY_PREFIX, hash_api_key


class AuthenticatedClinic:
    """Authenticated clinic (tenant) context."""

    def __init__(self, clinic: dict, api_key: dict):
        self.clinic = clinic
        self.api_key = api_key
        self.clinic_id = clinic["id"]
        self.name = clinic.get("name")


def _is_expired(expires_at: datetime) -> bool:
    if expires_at.tzinfo is None:
        return expires_at < datetime.utcnow()
    return expires_at < datetime.now(timezone.utc)


async def get_current_clinic(
    authorization: str = Header(
        ..., description="API Key: Bearer crm_live_xxx"
    ),
    firestore: FirestoreClient = Depends(get_firestore_client),
) -> AuthenticatedClinic:
    """
    Validate API key and return clinic context.

    Every clinic endpoint is scoped to the clinic owning the key.
    """
    if not authorization.startswith("Bearer "):
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid authorization header format. Use: Bearer <api_key>",
        )

    api_key = authorization[7:]  # Remove "Bearer "

    if not api_key.startswith(API_KEY_PREFIX):
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid API key format",
        )

    key_record = await firestore.get_api_key_by_hash(hash_api_key(api_key))
    if not key_record:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid API key",
        )

    if not key_record.get("is_active", True):
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="API key is disabled",
        )

    expires_at = key_record.get("expires_at")
    if isinstance(expires_at, datetime) and _is_expired(expires_at):
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="API key has expired",
        )

    clinic = await firestore.get_clinic(key_record["clinic_id"])
    if not clinic:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Clinic not found",
        )

    if clinic.get("status") != "active":
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail=f"Clinic account is {clinic.get('status', 'inactive')}",
        )

    return AuthenticatedClinic(clinic=clinic, api_key=key_record)
