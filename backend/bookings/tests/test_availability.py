from datetime import date

import pytest
from django.db import transaction

from bookings.services import workflow
from bookings.services.availability import (
    booked_dates,
    booked_periods,
    ensure_available,
    is_available,
    lock_property,
    next_available_check_in,
)
from core.exceptions import AvailabilityError, InvalidDateRangeError


@pytest.mark.django_db
def test_overlapping_stay_is_unavailable(villa, make_booking):
    make_booking(check_in=date(2025, 1, 3), nights=2)

    assert not is_available(villa.pk, date(2025, 1, 4), date(2025, 1, 6))
    assert not is_available(villa.pk, date(2025, 1, 1), date(2025, 1, 10))
    assert not is_available(villa.pk, date(2025, 1, 3), date(2025, 1, 4))


@pytest.mark.django_db
def test_back_to_back_stays_do_not_conflict(villa, make_booking):
    make_booking(check_in=date(2025, 1, 3), nights=2)

    assert is_available(villa.pk, date(2025, 1, 5), date(2025, 1, 7))
    assert is_available(villa.pk, date(2025, 1, 1), date(2025, 1, 3))


@pytest.mark.django_db
def test_cancelled_bookings_free_their_dates(villa, make_booking, staff):
    booking = make_booking(check_in=date(2025, 1, 3), nights=2)
    workflow.cancel_booking(booking.pk, staff, "Guest changed plans")

    assert is_available(villa.pk, date(2025, 1, 3), date(2025, 1, 5))


@pytest.mark.django_db
def test_confirmed_and_checked_in_bookings_block(villa, make_booking, staff):
    booking = make_booking(check_in=date(2025, 1, 3), nights=2)
    workflow.verify_booking(booking.pk, staff)
    assert not is_available(villa.pk, date(2025, 1, 3), date(2025, 1, 5))

    workflow.check_in(booking.pk, staff)
    assert not is_available(villa.pk, date(2025, 1, 3), date(2025, 1, 5))


@pytest.mark.django_db
def test_availability_is_per_property(villa, make_booking):
    make_booking(check_in=date(2025, 1, 3), nights=2)
    other = type(villa).objects.create(
        name="Pondok Kopi", slug="pondok-kopi", capacity=2, capacity_max=3, base_rate=650_000
    )

    assert is_available(other.pk, date(2025, 1, 3), date(2025, 1, 5))


@pytest.mark.django_db
def test_invalid_range_is_rejected(villa):
    with pytest.raises(InvalidDateRangeError):
        is_available(villa.pk, date(2025, 1, 5), date(2025, 1, 5))


@pytest.mark.django_db
def test_ensure_available_reports_conflicts(villa, make_booking):
    booking = make_booking(check_in=date(2025, 1, 3), nights=2)

    with pytest.raises(AvailabilityError) as excinfo:
        ensure_available(villa.pk, date(2025, 1, 4), date(2025, 1, 8))

    assert excinfo.value.context["conflicts"] == [booking.booking_number]


@pytest.mark.django_db(transaction=True)
def test_lock_property_requires_a_transaction(villa):
    with pytest.raises(RuntimeError):
        lock_property(villa.pk)

    with transaction.atomic():
        assert lock_property(villa.pk) == villa


@pytest.mark.django_db
def test_booked_dates_are_clipped_to_the_window(villa, make_booking):
    make_booking(check_in=date(2025, 1, 3), nights=2)
    make_booking(check_in=date(2025, 1, 8), nights=3)

    assert booked_dates(villa.pk, date(2025, 1, 4), date(2025, 1, 10)) == [
        date(2025, 1, 4),
        date(2025, 1, 8),
        date(2025, 1, 9),
    ]


@pytest.mark.django_db
def test_booked_periods_are_ordered(villa, make_booking):
    later = make_booking(check_in=date(2025, 1, 8), nights=3)
    earlier = make_booking(check_in=date(2025, 1, 3), nights=2)

    periods = booked_periods(villa.pk, date(2025, 1, 1), date(2025, 1, 31))

    assert [period["booking_number"] for period in periods] == [earlier.booking_number, later.booking_number]
    assert periods[0]["check_out"] == date(2025, 1, 5)


@pytest.mark.django_db
def test_next_available_check_in_skips_occupied_nights(villa, make_booking):
    make_booking(check_in=date(2025, 1, 3), nights=2)
    make_booking(check_in=date(2025, 1, 6), nights=2)

    # 5 January is free but only for one night.
    assert next_available_check_in(villa.pk, 2, after=date(2025, 1, 3)) == date(2025, 1, 8)
    assert next_available_check_in(villa.pk, 1, after=date(2025, 1, 3)) == date(2025, 1, 5)


@pytest.mark.django_db
def test_availability_endpoint(villa, make_booking, client):
    make_booking(check_in=date(2025, 1, 3), nights=2)

    response = client.get(
        f"/api/properties/{villa.pk}/availability/", {"check_in": "2025-01-04", "check_out": "2025-01-06"}
    )

    assert response.status_code == 200
    data = response.json()
    assert data["available"] is False
    assert data["next_available_check_in"] == "2025-01-05"
    assert len(data["booked_periods"]) == 1


@pytest.mark.django_db
def test_calendar_endpoint(villa, make_booking, client):
    make_booking(check_in=date(2025, 1, 3), nights=2)

    response = client.get(f"/api/properties/{villa.pk}/calendar/", {"start": "2025-01-01", "end": "2025-01-31"})

    assert response.status_code == 200
    assert response.json()["booked_dates"] == ["2025-01-03", "2025-01-04"]
