from rest_framework import permissions, viewsets
from rest_framework.decorators import action
from rest_framework.response import Response

from bookings.services.availability import booked_dates, booked_periods, is_available, next_available_check_in
from core.exceptions import MinimumStayError
from properties.models import Property
from properties.pricing import min_stay_for
from properties.quotes import ensure_minimum_stay, quote_stay, seasons_for_stay
from properties.serializers import (
    CalendarRequestSerializer,
    PropertySerializer,
    QuoteRequestSerializer,
    StayRangeSerializer,
)


class PropertyViewSet(viewsets.ReadOnlyModelViewSet):
    """Public catalogue plus the read-only booking helpers (quote, availability, calendar)."""

    serializer_class = PropertySerializer
    permission_classes = [permissions.AllowAny]
    search_fields = ["name", "address", "description"]
    ordering_fields = ["name", "base_rate", "capacity"]

    def get_queryset(self):
        return Property.objects.filter(is_active=True).prefetch_related("seasonal_rates").order_by("name", "id")

    @action(detail=True, methods=["post"])
    def quote(self, request, pk=None):
        property_obj = self.get_object()
        serializer = QuoteRequestSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        check_in = serializer.validated_data["check_in"]
        check_out = serializer.validated_data["check_out"]

        seasons = seasons_for_stay(property_obj, check_in, check_out)
        breakdown = quote_stay(property_obj, check_in, check_out, serializer.guests_value(), seasonal_rates=seasons)
        try:
            ensure_minimum_stay(property_obj, check_in, check_out, seasonal_rates=seasons)
            meets_minimum_stay = True
        except MinimumStayError:
            meets_minimum_stay = False

        payload = breakdown.as_dict()
        payload["min_stay_nights"] = min_stay_for(property_obj, check_in, seasonal_rates=seasons)
        payload["meets_minimum_stay"] = meets_minimum_stay
        payload["within_capacity"] = breakdown.guest_count <= property_obj.capacity_max
        return Response(payload)

    @action(detail=True, methods=["get"])
    def availability(self, request, pk=None):
        property_obj = self.get_object()
        serializer = StayRangeSerializer(data=request.query_params)
        serializer.is_valid(raise_exception=True)
        check_in = serializer.validated_data["check_in"]
        check_out = serializer.validated_data["check_out"]

        available = is_available(property_obj.pk, check_in, check_out)
        payload = {
            "property": property_obj.pk,
            "check_in": check_in,
            "check_out": check_out,
            "available": available,
            "booked_periods": booked_periods(property_obj.pk, check_in, check_out),
        }
        if not available:
            payload["next_available_check_in"] = next_available_check_in(
                property_obj.pk,
                (check_out - check_in).days,
                after=check_in,
            )
        return Response(payload)

    @action(detail=True, methods=["get"])
    def calendar(self, request, pk=None):
        property_obj = self.get_object()
        serializer = CalendarRequestSerializer(data=request.query_params)
        serializer.is_valid(raise_exception=True)
        start = serializer.validated_data["start"]
        end = serializer.validated_data["end"]
        return Response(
            {
                "property": property_obj.pk,
                "start": start,
                "end": end,
                "booked_dates": booked_dates(property_obj.pk, start, end),
                "booked_periods": booked_periods(property_obj.pk, start, end),
            }
        )
