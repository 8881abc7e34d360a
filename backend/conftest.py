from datetime import date, timedelta
from decimal import Decimal

import pytest
from django.contrib.auth import get_user_model

from bookings.services import workflow
from properties.models import Property
from properties.pricing import GuestCounts

TODAY = date(2025, 1, 1)


@pytest.fixture
def villa(db):
    return Property.objects.create(
        name="Villa Sawah",
        slug="villa-sawah",
        capacity=2,
        capacity_max=4,
        base_rate=500_000,
        weekend_premium_percent=Decimal("20"),
        cleaning_fee=100_000,
        extra_bed_rate=150_000,
    )


@pytest.fixture
def staff(db):
    return get_user_model().objects.create_user(
        username="desk@villa.test",
        email="desk@villa.test",
        password="password123",
        first_name="Dewi",
        last_name="Desk",
        role="FRONT_DESK",
    )


@pytest.fixture
def make_booking(villa):
    def _make(check_in=date(2025, 1, 3), nights=2, guests=None, dp_percentage=50, property_obj=None, **kwargs):
        return workflow.create_booking(
            property_id=(property_obj or villa).pk,
            check_in=check_in,
            check_out=check_in + timedelta(days=nights),
            guests=guests or GuestCounts(male=1, female=2),
            dp_percentage=dp_percentage,
            contact=workflow.GuestContact(name="Greta Guest", email="Greta@Example.com", phone="0812000111"),
            today=kwargs.pop("today", TODAY),
            **kwargs,
        )

    return _make
