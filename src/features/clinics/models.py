"""Clinic, API key, lead and appointment data models."""

from datetime import datetime
from enum import Enum
from typing import Optional

from pydantic import BaseModel, Field


class ClinicStatus(str, Enum):
    """Clinic account status."""

    PENDING = "pending"
    ACTIVE = "active"
    SUSPENDED = "suspended"
    CANCELLED = "cancelled"


class AppointmentStatus(str, Enum):
    """Appointment lifecycle status."""

    SCHEDULED = "scheduled"
    CONFIRMED = "confirmed"
    COMPLETED = "completed"
    PAID = "paid"
    CANCELLED = "cancelled"
    NO_SHOW = "no_show"


# Statuses counted as upcoming / done on the dashboard
OPEN_APPOINTMENT_STATUSES = {AppointmentStatus.SCHEDULED, AppointmentStatus.CONFIRMED}
COMPLETED_APPOINTMENT_STATUSES = {AppointmentStatus.COMPLETED, AppointmentStatus.PAID}


class Clinic(BaseModel):
    """Clinic (tenant) account model."""

    id: str
    name: str
    status: ClinicStatus = ClinicStatus.PENDING

    # Assistant business hours ("HH:mm", clinic timezone)
    business_hours_weekday_start: Optional[str] = None
    business_hours_weekday_end: Optional[str] = None
    saturday_active: bool = False
    saturday_hours_start: Optional[str] = None
    saturday_hours_end: Optional[str] = None
    sunday_active: bool = False
    sunday_hours_start: Optional[str] = None
    sunday_hours_end: Optional[str] = None
    # IANA zone name, e.g. "America/Sao_Paulo"
    timezone: Optional[str] = None

    # Metadata
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    class Config:
        use_enum_values = True


class Lead(BaseModel):
    """Prospective patient tracked in the pipeline."""

    id: str
    clinic_id: str
    created_at: datetime
    converted: bool = False
    service_of_interest: Optional[str] = None
    ad: Optional[str] = None  # Legacy ad marker
    ad_name: Optional[str] = None


class Appointment(BaseModel):
    """Calendar appointment."""

    id: str
    clinic_id: str
    status: AppointmentStatus
    value: Optional[float] = Field(default=None, ge=0)
    starts_at: datetime
    title: Optional[str] = None
    created_at: Optional[datetime] = None
