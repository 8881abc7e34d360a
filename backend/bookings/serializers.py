from django.conf import settings
from rest_framework import serializers

from bookings.models import Booking, BookingGuest, BookingWorkflow
from bookings.services.workflow import GuestContact, GuestDetail
from payments import ledger
from payments.serializers import PaymentSerializer
from properties.models import Property
from properties.serializers import GuestCountsSerializer


class BookingGuestSerializer(serializers.ModelSerializer):
    class Meta:
        model = BookingGuest
        fields = ["id", "full_name", "gender", "age_category", "relationship", "is_primary"]
        read_only_fields = ["id"]


class BookingWorkflowSerializer(serializers.ModelSerializer):
    processed_by_name = serializers.SerializerMethodField()

    class Meta:
        model = BookingWorkflow
        fields = [
            "id",
            "step",
            "status",
            "from_status",
            "to_status",
            "processed_by",
            "processed_by_name",
            "processed_at",
            "notes",
            "metadata",
        ]
        read_only_fields = fields

    def get_processed_by_name(self, obj) -> str | None:
        if obj.processed_by is None:
            return None
        return obj.processed_by.display_name or obj.processed_by.email


class BookingCreateSerializer(serializers.Serializer):
    property = serializers.PrimaryKeyRelatedField(queryset=Property.objects.filter(is_active=True))
    check_in = serializers.DateField()
    check_out = serializers.DateField()
    guests = GuestCountsSerializer()
    dp_percentage = serializers.IntegerField()
    guest_name = serializers.CharField(max_length=200)
    guest_email = serializers.EmailField()
    guest_phone = serializers.CharField(max_length=32, required=False, allow_blank=True, default="")
    guest_details = BookingGuestSerializer(many=True, required=False)
    special_requests = serializers.CharField(required=False, allow_blank=True, default="")
    booking_source = serializers.ChoiceField(choices=Booking.SOURCES, default=Booking.SOURCE_DIRECT)

    def validate_dp_percentage(self, value):
        allowed = settings.BOOKING_DP_PERCENTAGES
        if value not in allowed:
            raise serializers.ValidationError(
                f"Choose one of: {', '.join(str(option) for option in allowed)}."
            )
        return value

    def validate(self, attrs):
        if attrs["check_out"] <= attrs["check_in"]:
            raise serializers.ValidationError({"check_out": "Check-out must be after check-in."})
        guests = attrs["guests"]
        head_count = guests["male"] + guests["female"] + guests["children"]
        details = attrs.get("guest_details") or []
        if len(details) > head_count:
            raise serializers.ValidationError({"guest_details": "More guests listed than the guest count."})
        if sum(1 for detail in details if detail.get("is_primary")) > 1:
            raise serializers.ValidationError({"guest_details": "Only one guest can be the primary guest."})
        return attrs

    def to_service_kwargs(self) -> dict:
        data = self.validated_data
        return {
            "property_id": data["property"].pk,
            "check_in": data["check_in"],
            "check_out": data["check_out"],
            "guests": GuestCountsSerializer.to_guest_counts(data["guests"]),
            "dp_percentage": data["dp_percentage"],
            "contact": GuestContact(
                name=data["guest_name"],
                email=data["guest_email"],
                phone=data.get("guest_phone", ""),
            ),
            "guest_details": [
                GuestDetail(
                    full_name=detail["full_name"],
                    gender=detail["gender"],
                    age_category=detail.get("age_category", BookingGuest.ADULT),
                    relationship=detail.get("relationship", "self"),
                    is_primary=detail.get("is_primary", False),
                )
                for detail in data.get("guest_details") or []
            ],
            "special_requests": data.get("special_requests", ""),
            "booking_source": data["booking_source"],
        }


class BookingSerializer(serializers.ModelSerializer):
    property_name = serializers.CharField(source="property.name", read_only=True)

    class Meta:
        model = Booking
        fields = [
            "id",
            "booking_number",
            "property",
            "property_name",
            "check_in",
            "check_out",
            "nights",
            "guest_name",
            "guest_email",
            "guest_phone",
            "guest_count",
            "total_amount",
            "dp_percentage",
            "dp_amount",
            "remaining_amount",
            "paid_amount",
            "booking_status",
            "verification_status",
            "payment_status",
            "booking_source",
            "created_at",
        ]
        read_only_fields = fields


class BookingDetailSerializer(BookingSerializer):
    guests = BookingGuestSerializer(many=True, read_only=True)
    payments = PaymentSerializer(many=True, read_only=True)
    workflow_entries = BookingWorkflowSerializer(many=True, read_only=True)
    pending_amount = serializers.SerializerMethodField()
    payment_progress = serializers.SerializerMethodField()

    class Meta(BookingSerializer.Meta):
        fields = BookingSerializer.Meta.fields + [
            "guest_male",
            "guest_female",
            "guest_children",
            "base_amount",
            "weekend_premium_amount",
            "seasonal_amount",
            "extra_beds",
            "extra_bed_amount",
            "cleaning_fee",
            "tax_amount",
            "service_amount",
            "dp_deadline",
            "rate_breakdown",
            "special_requests",
            "internal_notes",
            "verified_by",
            "verified_at",
            "verification_notes",
            "cancelled_by",
            "cancelled_at",
            "cancellation_reason",
            "checked_in_at",
            "checked_out_at",
            "pending_amount",
            "payment_progress",
            "guests",
            "payments",
            "workflow_entries",
        ]
        read_only_fields = fields

    def get_pending_amount(self, obj) -> int:
        return ledger.pending_amount(obj)

    def get_payment_progress(self, obj) -> float:
        return ledger.payment_progress(obj)


class GuestBookingSerializer(BookingSerializer):
    """What a guest holding a payment link may see."""

    payments = PaymentSerializer(many=True, read_only=True)
    pending_amount = serializers.SerializerMethodField()

    class Meta(BookingSerializer.Meta):
        fields = [
            field for field in BookingSerializer.Meta.fields if field not in {"guest_email", "guest_phone", "booking_source"}
        ] + ["dp_deadline", "pending_amount", "payments"]
        read_only_fields = fields

    def get_pending_amount(self, obj) -> int:
        return ledger.pending_amount(obj)


class NotesSerializer(serializers.Serializer):
    notes = serializers.CharField(required=False, allow_blank=True, default="")


class ReasonSerializer(serializers.Serializer):
    reason = serializers.CharField()
