from __future__ import annotations

import logging
from datetime import date, timedelta
from typing import List, Optional

from django.db import transaction

from bookings.models import Booking
from core.exceptions import AvailabilityError
from properties.models import Property
from properties.pricing import stay_nights

logger = logging.getLogger(__name__)


def overlapping_bookings(property_id: int, check_in: date, check_out: date, *, exclude_booking_id: int | None = None):
    """Non-cancelled bookings whose [check_in, check_out) intersects the candidate range.

    Ranges are half-open, so a stay ending on day X never conflicts with one starting on X.
    """
    queryset = Booking.objects.filter(
        property_id=property_id,
        check_in__lt=check_out,
        check_out__gt=check_in,
    ).exclude(booking_status=Booking.CANCELLED)
    if exclude_booking_id is not None:
        queryset = queryset.exclude(pk=exclude_booking_id)
    return queryset


def is_available(property_id: int, check_in: date, check_out: date, *, exclude_booking_id: int | None = None) -> bool:
    stay_nights(check_in, check_out)
    return not overlapping_bookings(
        property_id, check_in, check_out, exclude_booking_id=exclude_booking_id
    ).exists()


def lock_property(property_id: int) -> Property:
    """
    Take the per-property booking lock for the rest of the current transaction.

    PostgreSQL holds a row lock on the property; SQLite is opened in IMMEDIATE
    mode so the enclosing transaction already owns the write lock.
    """
    if not transaction.get_connection().in_atomic_block:
        raise RuntimeError("lock_property() must be called inside transaction.atomic().")
    return Property.objects.select_for_update().get(pk=property_id)


def ensure_available(property_id: int, check_in: date, check_out: date) -> None:
    conflicts = list(
        overlapping_bookings(property_id, check_in, check_out).values_list("booking_number", flat=True)[:5]
    )
    if conflicts:
        logger.info(
            "Property %s unavailable for %s – %s (conflicts: %s)",
            property_id,
            check_in,
            check_out,
            ", ".join(conflicts),
        )
        raise AvailabilityError(conflicts=conflicts)


def booked_periods(property_id: int, start: date, end: date) -> List[dict]:
    bookings = overlapping_bookings(property_id, start, end).order_by("check_in", "id")
    return [
        {
            "booking_number": booking.booking_number,
            "check_in": booking.check_in,
            "check_out": booking.check_out,
            "booking_status": booking.booking_status,
        }
        for booking in bookings
    ]


def booked_dates(property_id: int, start: date, end: date) -> List[date]:
    """Every occupied night inside [start, end), sorted and de-duplicated."""
    stay_nights(start, end)
    occupied = set()
    for check_in, check_out in overlapping_bookings(property_id, start, end).values_list("check_in", "check_out"):
        night = max(check_in, start)
        last = min(check_out, end)
        while night < last:
            occupied.add(night)
            night += timedelta(days=1)
    return sorted(occupied)


def next_available_check_in(
    property_id: int,
    nights: int,
    *,
    after: date,
    horizon_days: int = 90,
) -> Optional[date]:
    """First check-in date on/after ``after`` that fits ``nights`` consecutive free nights."""
    if nights < 1:
        raise ValueError("nights must be at least 1")
    horizon_end = after + timedelta(days=horizon_days + nights)
    taken = set(booked_dates(property_id, after, horizon_end))
    for offset in range(horizon_days + 1):
        candidate = after + timedelta(days=offset)
        if all(candidate + timedelta(days=n) not in taken for n in range(nights)):
            return candidate
    return None
