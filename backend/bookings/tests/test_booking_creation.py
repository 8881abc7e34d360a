from datetime import date, timedelta
from decimal import Decimal

import pytest
from django.utils import timezone

from bookings.models import Booking, BookingGuest, BookingWorkflow, DailySequence
from bookings.services.workflow import GuestDetail
from core.exceptions import AvailabilityError, CapacityError, MinimumStayError, ValidationFailed
from properties.models import SeasonalRate
from properties.pricing import GuestCounts


@pytest.mark.django_db
def test_create_booking_prices_and_stores_the_stay(make_booking):
    now = timezone.now()

    booking = make_booking(now=now)

    assert booking.booking_number == "BK202501010001"
    assert booking.booking_status == Booking.PENDING_VERIFICATION
    assert booking.verification_status == Booking.VERIFICATION_PENDING
    assert booking.payment_status == Booking.DP_PENDING
    assert booking.nights == 2
    assert booking.guest_count == 3
    assert booking.guest_email == "greta@example.com"
    assert booking.extra_beds == 1
    assert booking.total_amount == 1_500_000
    assert booking.dp_amount == 750_000
    assert booking.remaining_amount == 750_000
    assert booking.paid_amount == 0
    assert booking.dp_deadline == now + timedelta(hours=48)
    assert booking.rate_breakdown["total_amount"] == 1_500_000
    assert booking.base_amount + booking.seasonal_amount + booking.extra_bed_amount + booking.service_amount == (
        booking.total_amount
    )

    (entry,) = booking.workflow_entries.all()
    assert entry.step == BookingWorkflow.BOOKING_CREATED
    assert entry.status == BookingWorkflow.COMPLETED
    assert entry.to_status == Booking.PENDING_VERIFICATION
    assert entry.metadata["dp_amount"] == 750_000


@pytest.mark.django_db
def test_booking_numbers_count_up_per_day(make_booking):
    first = make_booking(check_in=date(2025, 1, 3))
    second = make_booking(check_in=date(2025, 1, 10))
    next_day = make_booking(check_in=date(2025, 1, 20), today=date(2025, 1, 2))

    assert first.booking_number == "BK202501010001"
    assert second.booking_number == "BK202501010002"
    assert next_day.booking_number == "BK202501020001"
    assert DailySequence.objects.get(scope="BK", day=date(2025, 1, 1)).last_value == 2


@pytest.mark.django_db
def test_tax_is_included_in_the_total(settings, make_booking):
    settings.BOOKING_TAX_RATE = Decimal("0.11")

    booking = make_booking()

    assert booking.total_amount == 1_665_000
    assert booking.tax_amount == 165_000
    assert booking.service_amount == 100_000 + 165_000
    assert booking.dp_amount + booking.remaining_amount == booking.total_amount


@pytest.mark.django_db
def test_seasonal_premium_is_snapshotted(villa, make_booking):
    SeasonalRate.objects.create(
        property=villa,
        name="New year",
        start_date=date(2025, 1, 1),
        end_date=date(2025, 1, 7),
        rate_type=SeasonalRate.PERCENTAGE,
        rate_value=Decimal("10"),
    )

    booking = make_booking()

    assert booking.seasonal_amount == 100_000
    assert booking.rate_breakdown["seasonal_rates_applied"][0]["name"] == "New year"


@pytest.mark.django_db
def test_too_many_guests_is_a_capacity_error(make_booking):
    with pytest.raises(CapacityError) as excinfo:
        make_booking(guests=GuestCounts(male=3, female=2))

    assert excinfo.value.context == {"capacity_max": 4, "guest_count": 5}
    assert not Booking.objects.exists()


@pytest.mark.django_db
def test_short_weekend_stay_is_rejected(villa, make_booking):
    villa.min_stay_weekend = 2
    villa.save()

    with pytest.raises(MinimumStayError):
        make_booking(check_in=date(2025, 1, 4), nights=1)

    assert not Booking.objects.exists()


@pytest.mark.django_db
def test_overlapping_booking_is_rejected_without_side_effects(make_booking):
    existing = make_booking(check_in=date(2025, 1, 3), nights=2)

    with pytest.raises(AvailabilityError) as excinfo:
        make_booking(check_in=date(2025, 1, 4), nights=2)

    assert excinfo.value.context["conflicts"] == [existing.booking_number]
    assert Booking.objects.count() == 1
    assert BookingWorkflow.objects.count() == 1


@pytest.mark.django_db
def test_past_check_in_is_rejected(make_booking):
    with pytest.raises(ValidationFailed):
        make_booking(check_in=date(2025, 1, 3), today=date(2025, 1, 4))


@pytest.mark.django_db
def test_stay_length_is_capped(settings, make_booking):
    settings.BOOKING_MAX_NIGHTS = 5

    with pytest.raises(ValidationFailed):
        make_booking(nights=6)


@pytest.mark.django_db
def test_unknown_down_payment_percentage_is_rejected(make_booking):
    with pytest.raises(ValidationFailed):
        make_booking(dp_percentage=40)


@pytest.mark.django_db
def test_inactive_property_is_not_bookable(villa, make_booking):
    villa.is_active = False
    villa.save()

    with pytest.raises(ValidationFailed):
        make_booking()


@pytest.mark.django_db
def test_guest_details_are_stored_with_a_primary_guest(make_booking):
    booking = make_booking(
        guest_details=[
            GuestDetail(full_name="Greta Guest", gender="female"),
            GuestDetail(full_name="Gus Guest", gender="male", relationship="spouse"),
        ]
    )

    guests = list(booking.guests.order_by("id"))
    assert [guest.full_name for guest in guests] == ["Greta Guest", "Gus Guest"]
    assert [guest.is_primary for guest in guests] == [True, False]


@pytest.mark.django_db
def test_explicit_primary_guest_is_kept(make_booking):
    booking = make_booking(
        guest_details=[
            GuestDetail(full_name="Kid Guest", gender="female", age_category=BookingGuest.CHILD, relationship="child"),
            GuestDetail(full_name="Gus Guest", gender="male", is_primary=True),
        ]
    )

    assert booking.guests.get(is_primary=True).full_name == "Gus Guest"


@pytest.mark.django_db
def test_more_details_than_guests_is_rejected(make_booking):
    details = [GuestDetail(full_name=f"Guest {index}", gender="male") for index in range(4)]

    with pytest.raises(ValidationFailed):
        make_booking(guest_details=details)


@pytest.mark.django_db
def test_unknown_guest_gender_is_rejected(make_booking):
    with pytest.raises(ValidationFailed):
        make_booking(guest_details=[GuestDetail(full_name="Greta Guest", gender="unknown")])


@pytest.mark.django_db
def test_status_validator_flags_impossible_combinations(make_booking):
    booking = make_booking()

    booking.booking_status = Booking.CHECKED_IN
    assert booking.status_problems()

    booking.verification_status = Booking.VERIFICATION_APPROVED
    assert booking.status_problems() == []

    booking.paid_amount = booking.total_amount + 1
    assert "Verified payments exceed the booking total." in booking.status_problems()
