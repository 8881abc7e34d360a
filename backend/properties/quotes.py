from __future__ import annotations

from datetime import date
from typing import List

from django.shortcuts import get_object_or_404

from core.exceptions import MinimumStayError

from .models import Property, SeasonalRate
from .pricing import Guests, RateBreakdown, calculate_rate, min_stay_for, stay_nights


def seasons_for_stay(property_obj: Property, check_in: date, check_out: date) -> List[SeasonalRate]:
    """Active seasonal windows touching any night of the stay."""
    return list(
        SeasonalRate.objects.filter(
            property=property_obj,
            is_active=True,
            start_date__lt=check_out,
            end_date__gte=check_in,
        )
    )


def quote_stay(property_obj: Property, check_in: date, check_out: date, guests: Guests, **options) -> RateBreakdown:
    stay_nights(check_in, check_out)
    seasons = options.pop("seasonal_rates", None)
    if seasons is None:
        seasons = seasons_for_stay(property_obj, check_in, check_out)
    return calculate_rate(property_obj, check_in, check_out, guests, seasonal_rates=seasons, **options)


def calculate_rate_for_property(property_id: int, check_in: date, check_out: date, guests: Guests, **options) -> RateBreakdown:
    property_obj = get_object_or_404(Property, pk=property_id)
    return quote_stay(property_obj, check_in, check_out, guests, **options)


def ensure_minimum_stay(
    property_obj: Property,
    check_in: date,
    check_out: date,
    *,
    seasonal_rates=None,
    weekend_days=None,
) -> int:
    """Raise ``MinimumStayError`` when the stay is shorter than the applicable threshold."""
    nights = len(stay_nights(check_in, check_out))
    if seasonal_rates is None:
        seasonal_rates = seasons_for_stay(property_obj, check_in, check_out)
    required = min_stay_for(property_obj, check_in, seasonal_rates=seasonal_rates, weekend_days=weekend_days)
    if nights < required:
        raise MinimumStayError(
            f"A stay starting {check_in.isoformat()} requires at least {required} night(s).",
            required=required,
            nights=nights,
        )
    return required
