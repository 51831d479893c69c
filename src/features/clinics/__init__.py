"""Clinic management module."""

from .models import Appointment, AppointmentStatus, Clinic, ClinicStatus, Lead

__all__ = ["Appointment", "AppointmentStatus", "Clinic", "ClinicStatus", "Lead"]
