"""Lead and appointment metrics for the clinic dashboard."""

import re
from collections import Counter
from datetime import datetime, timedelta
from typing import Optional

from src.features.clinics.models import (
    COMPLETED_APPOINTMENT_STATUSES,
    OPEN_APPOINTMENT_STATUSES,
    Appointment,
    Lead,
)

from .models import (
    AdPerformance,
    CategoryConversions,
    DailyLeads,
    DashboardMetrics,
    ResponseTimeResult,
)

DEFAULT_WINDOW_DAYS = 30
TOP_N = 10


def _is_completed(appointment: Appointment) -> bool:
    return appointment.status in COMPLETED_APPOINTMENT_STATUSES


def leads_per_day(
    leads: list[Lead],
    start: Optional[datetime] = None,
    end: Optional[datetime] = None,
) -> list[DailyLeads]:
    """
    Count leads per calendar day of the window.

    Without bounds the window is the last 30 days ending now.
    """
    if not leads:
        return []

    end = end or datetime.utcnow()
    start = start or end - timedelta(days=DEFAULT_WINDOW_DAYS)

    counts = Counter(lead.created_at.date() for lead in leads)

    points = []
    day = start.date()
    while day <= end.date():
        points.append(DailyLeads(label=day.strftime("%d/%m"), leads=counts.get(day, 0)))
        day += timedelta(days=1)
    return points


def conversions_by_category(
    leads: list[Lead], appointments: list[Appointment]
) -> list[CategoryConversions]:
    """Top categories by converted leads plus completed appointments."""
    if not leads:
        return []

    counts: Counter[str] = Counter()
    for lead in leads:
        if lead.converted:
            counts[lead.service_of_interest or "Not specified"] += 1

    for appointment in appointments:
        if _is_completed(appointment):
            counts[appointment.title or "Appointment"] += 1

    ranked = sorted(counts.items(), key=lambda item: item[1], reverse=True)
    return [
        CategoryConversions(category=category, conversions=conversions)
        for category, conversions in ranked[:TOP_N]
    ]


def normalize_ad_name(name: str) -> str:
    """Lowercase, trim and collapse whitespace so ad variants group together."""
    return re.sub(r"\s+", " ", name.strip().lower())


def leads_by_ad(leads: list[Lead]) -> list[AdPerformance]:
    """
    Group leads by ad name.

    Names differing only in case or spacing are merged. The longest
    variant (or one containing "AD") is shown.
    """
    groups: dict[str, dict] = {}

    for lead in leads:
        if not lead.ad_name or not lead.ad_name.strip():
            continue

        name = lead.ad_name.strip()
        key = normalize_ad_name(name)
        group = groups.setdefault(key, {"name": name, "leads": 0, "conversions": 0})

        if len(name) > len(group["name"]) or ("AD" in name and "AD" not in group["name"]):
            group["name"] = name

        group["leads"] += 1
        if lead.converted:
            group["conversions"] += 1

    ranked = sorted(groups.values(), key=lambda g: g["leads"], reverse=True)
    return [
        AdPerformance(ad=g["name"], leads=g["leads"], conversions=g["conversions"])
        for g in ranked[:TOP_N]
    ]


def build_dashboard_metrics(
    leads: list[Lead],
    appointments: list[Appointment],
    response_time: ResponseTimeResult,
    start: Optional[datetime] = None,
    end: Optional[datetime] = None,
) -> DashboardMetrics:
    """Build dashboard metrics from the rows of one clinic and window."""
    total_contacts = len(leads)
    completed = [a for a in appointments if _is_completed(a)]
    converted = sum(1 for lead in leads if lead.converted) + len(completed)

    conversion_rate = 0
    if total_contacts > 0:
        conversion_rate = round(converted / total_contacts * 100)

    return DashboardMetrics(
        total_contacts=total_contacts,
        leads_from_ads=sum(1 for lead in leads if lead.ad),
        leads_with_ad_name=sum(
            1 for lead in leads if lead.ad_name and lead.ad_name.strip()
        ),
        scheduled_appointments=sum(
            1 for a in appointments if a.status in OPEN_APPOINTMENT_STATUSES
        ),
        completed_appointments=len(completed),
        conversion_rate=conversion_rate,
        realized_revenue=sum(a.value or 0.0 for a in completed),
        leads_per_day=leads_per_day(leads, start, end),
        conversions_by_category=conversions_by_category(leads, appointments),
        leads_by_ad=leads_by_ad(leads),
        response_time=response_time,
    )
