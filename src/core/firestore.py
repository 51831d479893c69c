"""Firestore client wrapper for clinic CRM data."""

from datetime import datetime
from typing import Any, Optional

from google.cloud import firestore

from src.config import get_settings


class FirestoreClient:
    """Wrapper for Firestore operations."""

    _instance: "FirestoreClient | None" = None
    _db: firestore.Client | None = None

    def __new__(cls) -> "FirestoreClient":
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    @property
    def db(self) -> firestore.Client:
        """Get or create Firestore client."""
        if self._db is None:
            settings = get_settings()
            # Use project from settings if provided, otherwise auto-detect
            project = settings.google_cloud_project if settings.google_cloud_project else None
            self._db = firestore.Client(project=project)
        return self._db

    def _clinic_query(
        self,
        collection: str,
        clinic_id: str,
        date_field: str,
        start: Optional[datetime] = None,
        end: Optional[datetime] = None,
    ):
        """Tenant-scoped query, optionally bounded on a date field."""
        query = self.db.collection(collection).where("clinic_id", "==", clinic_id)
        if start:
            query = query.where(date_field, ">=", start)
        if end:
            query = query.where(date_field, "<=", end)
        return query

    # Clinic operations
    async def get_clinic(self, clinic_id: str) -> dict[str, Any] | None:
        """Get clinic by ID."""
        doc = self.db.collection("clinics").document(clinic_id).get()
        return doc.to_dict() if doc.exists else None

    # API Key operations (top-level collection to avoid collection_group index requirement)
    async def get_api_key_by_hash(self, key_hash: str) -> dict[str, Any] | None:
        """Find API key by hash (for authentication)."""
        docs = (
            self.db.collection("api_keys")
            .where("key_hash", "==", key_hash)
            .limit(1)
            .stream()
        )
        for doc in docs:
            return doc.to_dict()
        return None

    # CRM rows, always scoped to one clinic
    async def list_chat_messages(
        self,
        clinic_id: str,
        start: Optional[datetime] = None,
        end: Optional[datetime] = None,
    ) -> list[dict[str, Any]]:
        """List chat messages of a clinic created inside the window."""
        query = self._clinic_query("chat_messages", clinic_id, "created_at", start, end)
        return [doc.to_dict() for doc in query.stream()]

    async def list_leads(
        self,
        clinic_id: str,
        start: Optional[datetime] = None,
        end: Optional[datetime] = None,
    ) -> list[dict[str, Any]]:
        """List leads of a clinic created inside the window."""
        query = self._clinic_query("leads", clinic_id, "created_at", start, end)
        return [doc.to_dict() for doc in query.stream()]

    async def list_appointments(
        self,
        clinic_id: str,
        start: Optional[datetime] = None,
        end: Optional[datetime] = None,
    ) -> list[dict[str, Any]]:
        """List appointments of a clinic starting inside the window."""
        query = self._clinic_query("appointments", clinic_id, "starts_at", start, end)
        return [doc.to_dict() for doc in query.stream()]


def get_firestore_client() -> FirestoreClient:
    """Get Firestore client instance (dependency injection)."""
    return FirestoreClient()
