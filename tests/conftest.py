"""Shared test fixtures."""

from datetime import datetime
from typing import Any, Optional

import pytest
from fastapi.testclient import TestClient

from src.config import Settings
from src.core.firestore import get_firestore_client
from src.core.rate_limiter import limiter
from src.features.analytics.service import AnalyticsService, get_analytics_service
from src.features.auth.keys import hash_api_key
from src.main import app

API_KEY = "crm_live_test-key-0123456789"


class FakeFirestore:
    """In-memory stand-in for FirestoreClient."""

    def __init__(self):
        self.clinics: dict[str, dict[str, Any]] = {}
        self.api_keys: list[dict[str, Any]] = []
        self.chat_messages: list[dict[str, Any]] = []
        self.leads: list[dict[str, Any]] = []
        self.appointments: list[dict[str, Any]] = []

    @staticmethod
    def _in_window(
        rows: list[dict[str, Any]],
        clinic_id: str,
        field: str,
        start: Optional[datetime],
        end: Optional[datetime],
    ) -> list[dict[str, Any]]:
        result = []
        for row in rows:
            if row.get("clinic_id") != clinic_id:
                continue
            value = row.get(field)
            if isinstance(value, datetime):
                if start and value < start:
                    continue
                if end and value > end:
                    continue
            result.append(dict(row))
        return result

    async def get_clinic(self, clinic_id: str) -> dict[str, Any] | None:
        return self.clinics.get(clinic_id)

    async def get_api_key_by_hash(self, key_hash: str) -> dict[str, Any] | None:
        for key in self.api_keys:
            if key["key_hash"] == key_hash:
                return key
        return None

    async def list_chat_messages(self, clinic_id, start=None, end=None):
        return self._in_window(self.chat_messages, clinic_id, "created_at", start, end)

    async def list_leads(self, clinic_id, start=None, end=None):
        return self._in_window(self.leads, clinic_id, "created_at", start, end)

    async def list_appointments(self, clinic_id, start=None, end=None):
        return self._in_window(self.appointments, clinic_id, "starts_at", start, end)


@pytest.fixture
def fake_firestore():
    """Fake Firestore with one active clinic and its API key."""
    firestore = FakeFirestore()
    firestore.clinics["clinic-1"] = {
        "id": "clinic-1",
        "name": "Sorriso Dental",
        "status": "active",
        "business_hours_weekday_start": "08:00",
        "business_hours_weekday_end": "18:00",
    }
    firestore.api_keys.append(
        {
            "id": "key-1",
            "clinic_id": "clinic-1",
            "key_hash": hash_api_key(API_KEY),
            "name": "Dashboard",
            "is_active": True,
        }
    )
    return firestore


@pytest.fixture
def analytics_service(fake_firestore):
    return AnalyticsService(firestore=fake_firestore, settings=Settings())


@pytest.fixture
def client(fake_firestore, analytics_service):
    """Test client wired to the fake Firestore."""
    app.dependency_overrides[get_firestore_client] = lambda: fake_firestore
    app.dependency_overrides[get_analytics_service] = lambda: analytics_service
    limiter.enabled = False
    with TestClient(app) as test_client:
        yield test_client
    limiter.enabled = True
    app.dependency_overrides.clear()


@pytest.fixture
def auth_headers():
    return {"Authorization": f"Bearer {API_KEY}"}
