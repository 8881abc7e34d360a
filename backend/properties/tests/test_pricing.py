import types
from datetime import date
from decimal import Decimal

import pytest

from core.exceptions import InvalidDateRangeError, ValidationFailed
from properties.pricing import (
    GuestCounts,
    calculate_rate,
    min_stay_for,
    round_money,
    split_down_payment,
)

FRIDAY = date(2025, 1, 3)
SATURDAY = date(2025, 1, 4)
SUNDAY = date(2025, 1, 5)
MONDAY = date(2025, 1, 6)
WEDNESDAY = date(2025, 1, 8)


def make_property(**overrides):
    fields = {
        "base_rate": 500_000,
        "weekend_premium_percent": Decimal("20"),
        "cleaning_fee": 100_000,
        "extra_bed_rate": 150_000,
        "capacity": 2,
        "capacity_max": 4,
        "min_stay_weekday": 1,
        "min_stay_weekend": 2,
        "min_stay_peak": 3,
    }
    fields.update(overrides)
    return types.SimpleNamespace(**fields)


def make_season(**overrides):
    fields = {
        "pk": None,
        "name": "High season",
        "start_date": date(2025, 1, 1),
        "end_date": date(2025, 1, 31),
        "rate_type": "percentage",
        "rate_value": Decimal("50"),
        "min_stay_nights": 1,
        "applies_to_weekends_only": False,
        "applicable_days": [],
        "priority": 0,
        "is_active": True,
    }
    fields.update(overrides)
    return types.SimpleNamespace(**fields)


def test_friday_to_sunday_with_extra_guest():
    breakdown = calculate_rate(make_property(), FRIDAY, SUNDAY, 3, tax_rate=0, weekend_days=[5, 6])

    assert breakdown.nights == 2
    assert breakdown.weekday_nights == 1
    assert breakdown.weekend_nights == 1
    # Friday at the base rate, Saturday with the 20% premium.
    assert breakdown.base_amount == 500_000 + 600_000
    assert breakdown.weekend_premium == 100_000
    assert breakdown.extra_beds == 1
    assert breakdown.extra_bed_amount == 150_000 * 2
    assert breakdown.cleaning_fee == 100_000
    assert breakdown.tax_amount == 0
    assert breakdown.total_amount == 1_500_000


def test_components_add_up_to_total():
    property_obj = make_property(base_rate=333_333, weekend_premium_percent=Decimal("12.5"))
    season = make_season(rate_value=Decimal("7.5"))

    breakdown = calculate_rate(
        property_obj,
        FRIDAY,
        WEDNESDAY,
        GuestCounts(male=2, female=1, children=1),
        seasonal_rates=[season],
        tax_rate=Decimal("0.11"),
        weekend_days=[5, 6],
    )

    assert breakdown.subtotal == (
        breakdown.base_amount + breakdown.seasonal_premium + breakdown.extra_bed_amount + breakdown.cleaning_fee
    )
    assert breakdown.total_amount == breakdown.subtotal + breakdown.tax_amount
    assert breakdown.service_amount == breakdown.cleaning_fee + breakdown.tax_amount


def test_tax_is_rounded_half_up_on_the_exact_total():
    property_obj = make_property(base_rate=10, weekend_premium_percent=0, cleaning_fee=0, extra_bed_rate=0)

    breakdown = calculate_rate(property_obj, MONDAY, date(2025, 1, 7), 1, tax_rate=Decimal("0.05"))

    assert breakdown.subtotal == 10
    assert breakdown.total_amount == 11
    assert breakdown.tax_amount == 1


@pytest.mark.parametrize("tax_rate", [Decimal("0"), Decimal("0.0000001")])
def test_fractional_premiums_are_rounded_once(tax_rate):
    # Saturday: 500001 + 250000.5 weekend + 250000.5 season, exactly 1000002.
    property_obj = make_property(
        base_rate=500_001, weekend_premium_percent=Decimal("50"), cleaning_fee=0, extra_bed_rate=0
    )

    breakdown = calculate_rate(
        property_obj,
        SATURDAY,
        SUNDAY,
        1,
        seasonal_rates=[make_season(rate_value=Decimal("50"))],
        tax_rate=tax_rate,
        weekend_days=[5, 6],
    )

    assert breakdown.subtotal == 1_000_002
    assert breakdown.total_amount == 1_000_002
    assert breakdown.tax_amount == 0
    assert breakdown.base_amount + breakdown.seasonal_premium == breakdown.subtotal


def test_twelve_and_a_half_percent_weekend_premium_without_tax():
    property_obj = make_property(
        base_rate=100_001, weekend_premium_percent=Decimal("12.5"), cleaning_fee=0, extra_bed_rate=0
    )

    # Saturday and Sunday at 112501.125 each.
    breakdown = calculate_rate(property_obj, SATURDAY, MONDAY, 1, tax_rate=0, weekend_days=[5, 6])

    assert breakdown.total_amount == 225_002
    assert breakdown.weekend_premium == 25_000
    assert breakdown.tax_amount == 0
    assert breakdown.base_amount == breakdown.subtotal


def test_tax_rate_defaults_to_setting(settings):
    settings.BOOKING_TAX_RATE = Decimal("0.1")
    property_obj = make_property(weekend_premium_percent=0, cleaning_fee=0)

    breakdown = calculate_rate(property_obj, MONDAY, date(2025, 1, 7), 1)

    assert breakdown.tax_rate == Decimal("0.1")
    assert breakdown.tax_amount == 50_000
    assert breakdown.total_amount == 550_000


def test_same_input_gives_same_breakdown():
    property_obj = make_property()
    season = make_season(rate_type="multiplier", rate_value=Decimal("1.25"))

    first = calculate_rate(property_obj, FRIDAY, WEDNESDAY, 3, seasonal_rates=[season], tax_rate=Decimal("0.11"))
    second = calculate_rate(property_obj, FRIDAY, WEDNESDAY, 3, seasonal_rates=[season], tax_rate=Decimal("0.11"))

    assert first == second
    assert first.as_dict() == second.as_dict()


@pytest.mark.parametrize("check_out", [FRIDAY, date(2025, 1, 2)])
def test_empty_or_inverted_range_is_rejected(check_out):
    with pytest.raises(InvalidDateRangeError):
        calculate_rate(make_property(), FRIDAY, check_out, 2)


def test_zero_guests_is_rejected():
    with pytest.raises(ValidationFailed):
        calculate_rate(make_property(), FRIDAY, SUNDAY, GuestCounts())


@pytest.mark.parametrize(
    "guests, extra_beds",
    [
        (GuestCounts(male=1, female=1), 0),
        (GuestCounts(male=2, children=1), 1),
        (GuestCounts(male=2, children=2), 1),
        (GuestCounts(male=2, female=1, children=1), 2),
        (GuestCounts(male=1, children=2), 0),
    ],
)
def test_children_count_as_half_a_bed(guests, extra_beds):
    breakdown = calculate_rate(make_property(), MONDAY, date(2025, 1, 7), guests, tax_rate=0)

    assert breakdown.guest_count == guests.total
    assert breakdown.extra_beds == extra_beds
    assert breakdown.extra_bed_amount == extra_beds * 150_000


def test_child_weight_can_be_overridden():
    breakdown = calculate_rate(
        make_property(),
        MONDAY,
        date(2025, 1, 7),
        GuestCounts(male=2, children=2),
        tax_rate=0,
        child_weight=Decimal("1"),
    )

    assert breakdown.extra_beds == 2


@pytest.mark.parametrize(
    "rate_type, rate_value",
    [
        ("percentage", Decimal("50")),
        ("multiplier", Decimal("1.5")),
        ("fixed", Decimal("750000")),
    ],
)
def test_seasonal_rate_types_add_the_same_premium(rate_type, rate_value):
    season = make_season(rate_type=rate_type, rate_value=rate_value)

    breakdown = calculate_rate(
        make_property(), MONDAY, WEDNESDAY, 2, seasonal_rates=[season], tax_rate=0, weekend_days=[5, 6]
    )

    assert breakdown.seasonal_premium == 2 * 250_000
    assert breakdown.total_amount == 2 * 500_000 + 2 * 250_000 + 100_000
    (applied,) = breakdown.seasonal_rates_applied
    assert applied.nights == 2
    assert applied.premium == 500_000


def test_weekend_only_season_skips_weekdays():
    season = make_season(applies_to_weekends_only=True, rate_value=Decimal("10"))

    breakdown = calculate_rate(
        make_property(), FRIDAY, MONDAY, 2, seasonal_rates=[season], tax_rate=0, weekend_days=[5, 6]
    )

    # Saturday and Sunday only; the premium is on the base rate, not the weekend rate.
    assert breakdown.seasonal_premium == 2 * 50_000
    assert breakdown.seasonal_rates_applied[0].nights == 2


def test_inactive_and_out_of_window_seasons_are_ignored():
    seasons = [
        make_season(is_active=False),
        make_season(start_date=date(2025, 2, 1), end_date=date(2025, 2, 28)),
        make_season(applicable_days=[2]),
    ]

    breakdown = calculate_rate(make_property(), MONDAY, date(2025, 1, 8), 2, seasonal_rates=seasons, tax_rate=0)

    assert breakdown.seasonal_premium == 0
    assert breakdown.seasonal_rates_applied == ()


def test_applied_seasons_follow_priority():
    low = make_season(name="Shoulder", rate_value=Decimal("10"), priority=1)
    high = make_season(name="Festival", rate_value=Decimal("20"), priority=5)

    breakdown = calculate_rate(make_property(), MONDAY, date(2025, 1, 7), 2, seasonal_rates=[low, high], tax_rate=0)

    assert [season.name for season in breakdown.seasonal_rates_applied] == ["Festival", "Shoulder"]
    assert breakdown.seasonal_premium == 50_000 + 100_000


def test_weekend_days_are_configurable():
    breakdown = calculate_rate(make_property(), FRIDAY, SUNDAY, 2, tax_rate=0, weekend_days=[4, 5])

    assert breakdown.weekend_nights == 2
    assert breakdown.weekend_premium == 200_000


def test_minimum_stay_picks_peak_then_weekend_then_weekday():
    property_obj = make_property()
    season = make_season(min_stay_nights=5, start_date=date(2025, 1, 10), end_date=date(2025, 1, 12))

    assert min_stay_for(property_obj, MONDAY, weekend_days=[5, 6]) == 1
    assert min_stay_for(property_obj, SATURDAY, weekend_days=[5, 6]) == 2
    assert min_stay_for(property_obj, date(2025, 1, 10), seasonal_rates=[season], weekend_days=[5, 6]) == 5
    assert min_stay_for(property_obj, MONDAY, seasonal_rates=[season], weekend_days=[5, 6]) == 1


@pytest.mark.parametrize("percentage", [30, 50, 70, 100])
def test_down_payment_split_adds_up(percentage):
    total = 1_500_001

    dp_amount, remaining = split_down_payment(total, percentage)

    assert dp_amount == round_money(Decimal(total) * percentage / 100)
    assert dp_amount + remaining == total


def test_full_down_payment_leaves_nothing_remaining():
    assert split_down_payment(1_500_000, 100) == (1_500_000, 0)


@pytest.mark.parametrize("percentage", [0, 40, "abc", None])
def test_unknown_down_payment_percentage_is_rejected(percentage):
    with pytest.raises(ValidationFailed):
        split_down_payment(1_000_000, percentage)
