import threading
from datetime import date, timedelta

import pytest
from django.db import connection

from bookings.models import Booking
from bookings.services import workflow
from core.exceptions import AvailabilityError
from properties.pricing import GuestCounts


@pytest.mark.django_db(transaction=True)
def test_concurrent_overlapping_bookings_only_one_wins(villa):
    barrier = threading.Barrier(2)
    results = []
    lock = threading.Lock()

    def attempt(check_in, name):
        try:
            barrier.wait(timeout=10)
            booking = workflow.create_booking(
                property_id=villa.pk,
                check_in=check_in,
                check_out=check_in + timedelta(days=3),
                guests=GuestCounts(male=1, female=1),
                dp_percentage=50,
                contact=workflow.GuestContact(name=name, email=f"{name.lower()}@example.com"),
                today=date(2025, 1, 1),
            )
            outcome = booking
        except AvailabilityError as exc:
            outcome = exc
        finally:
            connection.close()
        with lock:
            results.append(outcome)

    threads = [
        threading.Thread(target=attempt, args=(date(2025, 2, 10), "Ayu")),
        threading.Thread(target=attempt, args=(date(2025, 2, 11), "Budi")),
    ]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join(timeout=60)

    assert len(results) == 2
    created = [result for result in results if isinstance(result, Booking)]
    refused = [result for result in results if isinstance(result, AvailabilityError)]
    assert len(created) == 1
    assert len(refused) == 1
    assert refused[0].context["conflicts"] == [created[0].booking_number]
    assert Booking.objects.filter(property=villa).count() == 1


@pytest.mark.django_db(transaction=True)
def test_concurrent_bookings_get_distinct_numbers(villa):
    barrier = threading.Barrier(3)
    numbers = []
    lock = threading.Lock()

    def attempt(offset):
        try:
            barrier.wait(timeout=10)
            check_in = date(2025, 3, 1) + timedelta(days=offset * 5)
            booking = workflow.create_booking(
                property_id=villa.pk,
                check_in=check_in,
                check_out=check_in + timedelta(days=2),
                guests=GuestCounts(female=2),
                dp_percentage=30,
                contact=workflow.GuestContact(name="Guest", email="guest@example.com"),
                today=date(2025, 1, 1),
            )
        finally:
            connection.close()
        with lock:
            numbers.append(booking.booking_number)

    threads = [threading.Thread(target=attempt, args=(offset,)) for offset in range(3)]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join(timeout=60)

    assert sorted(numbers) == ["BK202501010001", "BK202501010002", "BK202501010003"]
