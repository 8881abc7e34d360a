from datetime import timedelta

from django.conf import settings
from rest_framework import serializers

from properties.models import Property, SeasonalRate
from properties.pricing import GuestCounts


class SeasonalRateSerializer(serializers.ModelSerializer):
    class Meta:
        model = SeasonalRate
        fields = [
            "id",
            "name",
            "start_date",
            "end_date",
            "rate_type",
            "rate_value",
            "min_stay_nights",
            "applies_to_weekends_only",
            "applicable_days",
            "priority",
        ]


class PropertySerializer(serializers.ModelSerializer):
    seasonal_rates = serializers.SerializerMethodField()

    class Meta:
        model = Property
        fields = [
            "id",
            "name",
            "slug",
            "address",
            "description",
            "bedrooms",
            "capacity",
            "capacity_max",
            "base_rate",
            "weekend_premium_percent",
            "cleaning_fee",
            "extra_bed_rate",
            "min_stay_weekday",
            "min_stay_weekend",
            "min_stay_peak",
            "check_in_time",
            "check_out_time",
            "seasonal_rates",
        ]

    def get_seasonal_rates(self, obj):
        active = [rate for rate in obj.seasonal_rates.all() if rate.is_active]
        return SeasonalRateSerializer(active, many=True).data


class StayRangeSerializer(serializers.Serializer):
    check_in = serializers.DateField()
    check_out = serializers.DateField()

    def validate(self, attrs):
        if attrs["check_out"] <= attrs["check_in"]:
            raise serializers.ValidationError({"check_out": "Check-out must be after check-in."})
        max_nights = getattr(settings, "BOOKING_MAX_NIGHTS", 365)
        if (attrs["check_out"] - attrs["check_in"]).days > max_nights:
            raise serializers.ValidationError({"check_out": f"Stays are limited to {max_nights} nights."})
        return attrs


class GuestCountsSerializer(serializers.Serializer):
    male = serializers.IntegerField(min_value=0, default=0)
    female = serializers.IntegerField(min_value=0, default=0)
    children = serializers.IntegerField(min_value=0, default=0)

    def validate(self, attrs):
        if attrs["male"] + attrs["female"] + attrs["children"] < 1:
            raise serializers.ValidationError("At least one guest is required.")
        return attrs

    @staticmethod
    def to_guest_counts(data) -> GuestCounts:
        return GuestCounts(male=data["male"], female=data["female"], children=data["children"])


class QuoteRequestSerializer(StayRangeSerializer):
    guests = GuestCountsSerializer(required=False)
    guest_count = serializers.IntegerField(min_value=1, required=False)

    def validate(self, attrs):
        attrs = super().validate(attrs)
        if "guests" not in attrs and "guest_count" not in attrs:
            raise serializers.ValidationError({"guest_count": "Provide guest_count or a guests breakdown."})
        return attrs

    def guests_value(self):
        data = self.validated_data
        if "guests" in data:
            return GuestCountsSerializer.to_guest_counts(data["guests"])
        return data["guest_count"]


class CalendarRequestSerializer(serializers.Serializer):
    start = serializers.DateField()
    end = serializers.DateField()

    def validate(self, attrs):
        if attrs["end"] <= attrs["start"]:
            raise serializers.ValidationError({"end": "End must be after start."})
        if attrs["end"] - attrs["start"] > timedelta(days=366):
            raise serializers.ValidationError({"end": "Calendar ranges are limited to one year."})
        return attrs
