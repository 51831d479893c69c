"""Analytics service for clinic dashboards and response times."""

import logging
from datetime import datetime, timezone
from typing import Any, Optional, Type, TypeVar
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from pydantic import BaseModel, ValidationError

from src.config import Settings, get_settings
from src.core.firestore import FirestoreClient, get_firestore_client
from src.features.clinics.models import Appointment, Clinic, Lead

from .dashboard import build_dashboard_metrics
from .models import (
    BusinessHoursConfig,
    ChatMessage,
    DashboardMetrics,
    ResponseTimeFilters,
    ResponseTimeResult,
)
from .response_time import calculate_response_time, parse_timestamp

logger = logging.getLogger(__name__)

ModelT = TypeVar("ModelT", bound=BaseModel)


class ClinicNotFoundError(Exception):
    """Raised when the requested clinic does not exist."""

    pass


def _parse_rows(model: Type[ModelT], rows: list[dict[str, Any]]) -> list[ModelT]:
    """Validate stored rows, skipping the ones that do not fit the model."""
    parsed = []
    for row in rows:
        try:
            parsed.append(model.model_validate(row))
        except ValidationError as e:
            logger.warning(
                "Skipping malformed %s row id=%s: %d errors",
                model.__name__,
                row.get("id"),
                e.error_count(),
            )
    return parsed


def business_hours_for(clinic: Clinic, settings: Settings) -> BusinessHoursConfig:
    """
    Build the business hours config of a clinic.

    Unset weekday hours fall back to the configured defaults. Stored hours
    that do not validate (e.g. overnight windows) are reported and the
    clinic is treated as closed.
    """
    try:
        return BusinessHoursConfig(
            weekday_start=clinic.business_hours_weekday_start or settings.default_weekday_start,
            weekday_end=clinic.business_hours_weekday_end or settings.default_weekday_end,
            saturday_enabled=clinic.saturday_active,
            saturday_start=clinic.saturday_hours_start,
            saturday_end=clinic.saturday_hours_end,
            sunday_enabled=clinic.sunday_active,
            sunday_start=clinic.sunday_hours_start,
            sunday_end=clinic.sunday_hours_end,
        )
    except ValidationError as e:
        logger.warning(
            "Invalid business hours for clinic %s, treating it as closed: %s",
            clinic.id,
            e.errors()[0]["msg"],
        )
        return BusinessHoursConfig(closed=True)


def clinic_zone(clinic: Clinic, settings: Settings) -> ZoneInfo:
    """Timezone of a clinic, falling back to the configured default."""
    if clinic.timezone:
        try:
            return ZoneInfo(clinic.timezone)
        except (ZoneInfoNotFoundError, ValueError):
            logger.warning(
                "Unknown timezone %r for clinic %s, using %s",
                clinic.timezone,
                clinic.id,
                settings.default_timezone,
            )
    return ZoneInfo(settings.default_timezone)


def to_clinic_time(messages: list[ChatMessage], zone: ZoneInfo) -> list[ChatMessage]:
    """
    Copy messages with their timestamps converted to the clinic's zone.

    Stored timestamps are UTC; naive ones are read as UTC. Messages whose
    timestamp cannot be parsed are passed through unchanged.
    """
    converted = []
    for message in messages:
        timestamp = parse_timestamp(message.created_at)
        if timestamp is None:
            converted.append(message)
            continue
        if timestamp.tzinfo is None:
            timestamp = timestamp.replace(tzinfo=timezone.utc)
        converted.append(message.model_copy(update={"created_at": timestamp.astimezone(zone)}))
    return converted


class AnalyticsService:
    """Service for analytics operations."""

    def __init__(self, firestore: FirestoreClient, settings: Settings):
        self.firestore = firestore
        self.settings = settings

    async def get_clinic(self, clinic_id: str) -> Clinic:
        """Get a clinic or raise ClinicNotFoundError."""
        data = await self.firestore.get_clinic(clinic_id)
        if not data:
            raise ClinicNotFoundError(clinic_id)
        return Clinic.model_validate(data)

    async def get_chat_messages(
        self,
        clinic_id: str,
        start: Optional[datetime] = None,
        end: Optional[datetime] = None,
    ) -> list[ChatMessage]:
        """Get chat messages of a clinic for the window."""
        rows = await self.firestore.list_chat_messages(clinic_id, start, end)
        return _parse_rows(ChatMessage, rows)

    async def get_local_chat_messages(
        self,
        clinic: Clinic,
        start: Optional[datetime] = None,
        end: Optional[datetime] = None,
    ) -> list[ChatMessage]:
        """Get chat messages of a clinic with timestamps in its own timezone."""
        messages = await self.get_chat_messages(clinic.id, start, end)
        return to_clinic_time(messages, clinic_zone(clinic, self.settings))

    async def get_response_time(
        self,
        clinic_id: str,
        start: Optional[datetime] = None,
        end: Optional[datetime] = None,
        filters: Optional[ResponseTimeFilters] = None,
    ) -> ResponseTimeResult:
        """Calculate response time statistics for a clinic."""
        clinic = await self.get_clinic(clinic_id)
        messages = await self.get_local_chat_messages(clinic, start, end)

        result = calculate_response_time(
            messages,
            business_hours_for(clinic, self.settings),
            filters,
        )
        logger.info(
            "Response time for clinic %s: mean=%.1fmin sample=%d",
            clinic_id,
            result.mean_minutes,
            result.sample_size,
        )
        return result

    async def get_dashboard_metrics(
        self,
        clinic_id: str,
        start: Optional[datetime] = None,
        end: Optional[datetime] = None,
    ) -> DashboardMetrics:
        """Get complete dashboard metrics for a clinic."""
        clinic = await self.get_clinic(clinic_id)

        leads = _parse_rows(Lead, await self.firestore.list_leads(clinic_id, start, end))
        appointments = _parse_rows(
            Appointment,
            await self.firestore.list_appointments(clinic_id, start, end),
        )
        messages = await self.get_local_chat_messages(clinic, start, end)

        response_time = calculate_response_time(
            messages, business_hours_for(clinic, self.settings)
        )

        return build_dashboard_metrics(
            leads,
            appointments,
            response_time,
            start=start,
            end=end,
        )


def get_analytics_service() -> AnalyticsService:
    """Get analytics service instance."""
    return AnalyticsService(firestore=get_firestore_client(), settings=get_settings())
