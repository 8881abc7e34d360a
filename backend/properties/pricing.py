"""
Rate engine for property stays.

Everything here is a pure function of its arguments: no queries, no clock. The
property and its seasonal windows are read through attributes only, so plain
objects work as well as model instances (handy for "what-if" quotes).

Money is integer smallest-currency-unit amounts. Nightly figures are carried as
exact ``Decimal`` values and only rounded (half-up) when a stay-level amount is
published.
"""
from __future__ import annotations

import math
from dataclasses import dataclass, field
from datetime import date, timedelta
from decimal import ROUND_HALF_UP, Decimal
from typing import Any, Dict, Iterable, List, Optional, Sequence, Tuple, Union

from django.conf import settings

from core.exceptions import InvalidDateRangeError, ValidationFailed

HUNDRED = Decimal(100)
DEFAULT_WEEKEND_DAYS = (5, 6)


def round_money(value: Decimal | int) -> int:
    return int(Decimal(value).quantize(Decimal(1), rounding=ROUND_HALF_UP))


@dataclass(frozen=True)
class GuestCounts:
    male: int = 0
    female: int = 0
    children: int = 0

    @property
    def adults(self) -> int:
        return self.male + self.female

    @property
    def total(self) -> int:
        return self.male + self.female + self.children

    def capacity_equivalent(self, child_weight: Decimal | None = None) -> Decimal:
        """Head-count as far as beds are concerned; children weigh ``child_weight``."""
        weight = Decimal(str(child_weight)) if child_weight is not None else _setting_decimal(
            "BOOKING_CHILD_GUEST_WEIGHT", "0.5"
        )
        return Decimal(self.adults) + Decimal(self.children) * weight


Guests = Union[int, GuestCounts]


@dataclass(frozen=True)
class NightRate:
    night: date
    is_weekend: bool
    amount: Decimal
    seasonal_premium: Decimal

    def as_dict(self) -> Dict[str, Any]:
        return {
            "date": self.night.isoformat(),
            "is_weekend": self.is_weekend,
            "amount": str(self.amount),
            "seasonal_premium": str(self.seasonal_premium),
        }


@dataclass(frozen=True)
class AppliedSeason:
    seasonal_rate_id: Optional[int]
    name: str
    rate_type: str
    rate_value: str
    nights: int
    premium: int

    def as_dict(self) -> Dict[str, Any]:
        return {
            "seasonal_rate_id": self.seasonal_rate_id,
            "name": self.name,
            "rate_type": self.rate_type,
            "rate_value": self.rate_value,
            "nights": self.nights,
            "premium": self.premium,
        }


@dataclass(frozen=True)
class RateBreakdown:
    check_in: date
    check_out: date
    nights: int
    weekday_nights: int
    weekend_nights: int
    guest_count: int
    base_rate: int
    base_amount: int
    weekend_premium: int
    seasonal_premium: int
    extra_beds: int
    extra_bed_amount: int
    cleaning_fee: int
    subtotal: int
    tax_rate: Decimal
    tax_amount: int
    total_amount: int
    seasonal_rates_applied: Tuple[AppliedSeason, ...] = ()
    nightly: Tuple[NightRate, ...] = field(default=(), compare=False)

    @property
    def service_amount(self) -> int:
        return self.cleaning_fee + self.tax_amount

    def as_dict(self) -> Dict[str, Any]:
        """JSON-friendly snapshot stored on the booking and returned by the quote API."""
        return {
            "check_in": self.check_in.isoformat(),
            "check_out": self.check_out.isoformat(),
            "nights": self.nights,
            "weekday_nights": self.weekday_nights,
            "weekend_nights": self.weekend_nights,
            "guest_count": self.guest_count,
            "base_rate": self.base_rate,
            "base_amount": self.base_amount,
            "weekend_premium": self.weekend_premium,
            "seasonal_premium": self.seasonal_premium,
            "extra_beds": self.extra_beds,
            "extra_bed_amount": self.extra_bed_amount,
            "cleaning_fee": self.cleaning_fee,
            "subtotal": self.subtotal,
            "tax_rate": str(self.tax_rate),
            "tax_amount": self.tax_amount,
            "service_amount": self.service_amount,
            "total_amount": self.total_amount,
            "seasonal_rates_applied": [season.as_dict() for season in self.seasonal_rates_applied],
            "nightly": [night.as_dict() for night in self.nightly],
        }


def _setting_decimal(name: str, default: str) -> Decimal:
    return Decimal(str(getattr(settings, name, default)))


def _weekend_days(weekend_days: Optional[Iterable[int]]) -> frozenset:
    if weekend_days is None:
        weekend_days = getattr(settings, "BOOKING_WEEKEND_DAYS", DEFAULT_WEEKEND_DAYS)
    return frozenset(int(day) for day in weekend_days)


def stay_nights(check_in: date, check_out: date) -> List[date]:
    """Return the date each night starts on. Raises for empty or inverted ranges."""
    if check_in is None or check_out is None:
        raise InvalidDateRangeError("Both check-in and check-out dates are required.")
    count = (check_out - check_in).days
    if count <= 0:
        raise InvalidDateRangeError()
    return [check_in + timedelta(days=offset) for offset in range(count)]


def season_applies(season: Any, night: date, weekend_days: Optional[Iterable[int]] = None) -> bool:
    if not getattr(season, "is_active", True):
        return False
    if not (season.start_date <= night <= season.end_date):
        return False
    weekday = night.weekday()
    if getattr(season, "applies_to_weekends_only", False) and weekday not in _weekend_days(weekend_days):
        return False
    days = getattr(season, "applicable_days", None) or []
    if days and weekday not in days:
        return False
    return True


def season_premium(season: Any, base_rate: Decimal) -> Decimal:
    """Per-night premium a season adds on top of the base rate."""
    value = Decimal(str(season.rate_value))
    rate_type = season.rate_type
    if rate_type == "percentage":
        return base_rate * value / HUNDRED
    if rate_type == "multiplier":
        return base_rate * (value - 1)
    if rate_type == "fixed":
        return value - base_rate
    raise ValidationFailed(f"Unknown seasonal rate type '{rate_type}'.")


def _ordered_seasons(seasonal_rates: Optional[Sequence[Any]]) -> List[Any]:
    return sorted(
        seasonal_rates or [],
        key=lambda season: (-getattr(season, "priority", 0), str(season.name), getattr(season, "pk", None) or 0),
    )


def guest_equivalent(guests: Guests, child_weight: Decimal | None = None) -> Tuple[int, Decimal]:
    """Return ``(head_count, capacity_equivalent)`` for an int or ``GuestCounts``."""
    if isinstance(guests, GuestCounts):
        return guests.total, guests.capacity_equivalent(child_weight)
    head_count = int(guests)
    return head_count, Decimal(head_count)


def extra_beds_needed(capacity: int, equivalent: Decimal) -> int:
    return max(0, math.ceil(equivalent) - int(capacity))


def calculate_rate(
    property_obj: Any,
    check_in: date,
    check_out: date,
    guests: Guests,
    *,
    seasonal_rates: Optional[Sequence[Any]] = None,
    tax_rate: Decimal | str | int | None = None,
    weekend_days: Optional[Iterable[int]] = None,
    child_weight: Decimal | None = None,
) -> RateBreakdown:
    """
    Price a stay.

    ``guests`` is either a plain head-count (everyone counted as an adult) or a
    ``GuestCounts``. Seasonal windows are passed in explicitly; see
    ``properties.quotes`` for the variant that loads them from the database.
    """
    nights = stay_nights(check_in, check_out)
    head_count, equivalent = guest_equivalent(guests, child_weight)
    if head_count < 1:
        raise ValidationFailed("At least one guest is required.")

    weekend = _weekend_days(weekend_days)
    rate = Decimal(int(property_obj.base_rate))
    premium_factor = Decimal(str(property_obj.weekend_premium_percent or 0)) / HUNDRED
    seasons = _ordered_seasons(seasonal_rates)

    base_exact = Decimal(0)
    weekend_exact = Decimal(0)
    seasonal_exact = Decimal(0)
    weekend_nights = 0
    season_totals: Dict[int, List[Any]] = {}
    nightly: List[NightRate] = []

    for night in nights:
        is_weekend = night.weekday() in weekend
        night_amount = rate
        if is_weekend:
            weekend_nights += 1
            night_amount += rate * premium_factor
            weekend_exact += rate * premium_factor
        base_exact += night_amount

        night_seasonal = Decimal(0)
        for index, season in enumerate(seasons):
            if not season_applies(season, night, weekend):
                continue
            premium = season_premium(season, rate)
            night_seasonal += premium
            totals = season_totals.setdefault(index, [0, Decimal(0)])
            totals[0] += 1
            totals[1] += premium
        seasonal_exact += night_seasonal
        nightly.append(NightRate(night, is_weekend, night_amount + night_seasonal, night_seasonal))

    extra_beds = extra_beds_needed(property_obj.capacity, equivalent)
    extra_bed_amount = extra_beds * int(property_obj.extra_bed_rate or 0) * len(nights)
    cleaning_fee = int(property_obj.cleaning_fee or 0)

    if tax_rate is None:
        tax = _setting_decimal("BOOKING_TAX_RATE", "0")
    else:
        tax = Decimal(str(tax_rate))
    if tax < 0:
        raise ValidationFailed("Tax rate cannot be negative.")

    # Amounts are rounded once, from the exact figures. The base amount absorbs
    # the sub-unit remainder of the subtotal and tax absorbs that of the total,
    # so the published components always add up and tax is never negative.
    exact_subtotal = base_exact + seasonal_exact + extra_bed_amount + cleaning_fee
    subtotal = round_money(exact_subtotal)
    total_amount = round_money(exact_subtotal * (1 + tax))
    seasonal_premium = round_money(seasonal_exact)
    base_amount = subtotal - seasonal_premium - extra_bed_amount - cleaning_fee
    tax_amount = total_amount - subtotal

    applied = tuple(
        AppliedSeason(
            seasonal_rate_id=getattr(seasons[index], "pk", None),
            name=seasons[index].name,
            rate_type=seasons[index].rate_type,
            rate_value=str(seasons[index].rate_value),
            nights=count,
            premium=round_money(amount),
        )
        for index, (count, amount) in sorted(season_totals.items())
    )

    return RateBreakdown(
        check_in=check_in,
        check_out=check_out,
        nights=len(nights),
        weekday_nights=len(nights) - weekend_nights,
        weekend_nights=weekend_nights,
        guest_count=head_count,
        base_rate=int(rate),
        base_amount=base_amount,
        weekend_premium=round_money(weekend_exact),
        seasonal_premium=seasonal_premium,
        extra_beds=extra_beds,
        extra_bed_amount=extra_bed_amount,
        cleaning_fee=cleaning_fee,
        subtotal=subtotal,
        tax_rate=tax,
        tax_amount=tax_amount,
        total_amount=total_amount,
        seasonal_rates_applied=applied,
        nightly=tuple(nightly),
    )


def min_stay_for(
    property_obj: Any,
    check_in: date,
    *,
    seasonal_rates: Optional[Sequence[Any]] = None,
    weekend_days: Optional[Iterable[int]] = None,
) -> int:
    """Minimum nights required for a stay starting on ``check_in``.

    Peak (an active season covers the check-in day) beats weekend, which beats weekday.
    """
    weekend = _weekend_days(weekend_days)
    peak = [season for season in seasonal_rates or [] if season_applies(season, check_in, weekend)]
    if peak:
        return max([int(property_obj.min_stay_peak)] + [int(getattr(s, "min_stay_nights", 1) or 1) for s in peak])
    if check_in.weekday() in weekend:
        return int(property_obj.min_stay_weekend)
    return int(property_obj.min_stay_weekday)


def split_down_payment(
    total_amount: int,
    dp_percentage: int,
    *,
    allowed: Optional[Iterable[int]] = None,
) -> Tuple[int, int]:
    """Return ``(dp_amount, remaining_amount)``; the two always sum to ``total_amount``."""
    percentage = ensure_dp_percentage(dp_percentage, allowed=allowed)
    dp_amount = round_money(Decimal(int(total_amount)) * Decimal(percentage) / HUNDRED)
    return dp_amount, int(total_amount) - dp_amount


def ensure_dp_percentage(dp_percentage: Any, *, allowed: Optional[Iterable[int]] = None) -> int:
    if allowed is None:
        allowed = getattr(settings, "BOOKING_DP_PERCENTAGES", (30, 50, 70, 100))
    options = sorted(int(value) for value in allowed)
    try:
        percentage = int(dp_percentage)
    except (TypeError, ValueError):
        percentage = None
    if percentage not in options:
        raise ValidationFailed(
            f"Down payment must be one of {', '.join(str(value) for value in options)} percent."
        )
    return percentage
