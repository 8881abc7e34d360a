from rest_framework import serializers

from payments.models import Payment


class PaymentSerializer(serializers.ModelSerializer):
    booking_number = serializers.CharField(source="booking.booking_number", read_only=True)
    verified_by_name = serializers.SerializerMethodField()

    class Meta:
        model = Payment
        fields = [
            "id",
            "payment_number",
            "booking",
            "booking_number",
            "amount",
            "currency",
            "payment_type",
            "payment_method",
            "payment_status",
            "payment_date",
            "reference_number",
            "bank_name",
            "proof_reference",
            "gateway_reference",
            "checkout_url",
            "verified_by",
            "verified_by_name",
            "verified_at",
            "verification_notes",
            "created_at",
        ]
        read_only_fields = fields

    def get_verified_by_name(self, obj) -> str | None:
        if obj.verified_by is None:
            return None
        return obj.verified_by.display_name or obj.verified_by.email


class PaymentSubmitSerializer(serializers.Serializer):
    amount = serializers.IntegerField(min_value=1)
    method = serializers.ChoiceField(choices=Payment.METHODS)
    proof_reference = serializers.CharField(max_length=500, required=False, allow_blank=True, default="")
    reference_number = serializers.CharField(max_length=120, required=False, allow_blank=True, default="")
    bank_name = serializers.CharField(max_length=120, required=False, allow_blank=True, default="")
    notes = serializers.CharField(required=False, allow_blank=True, default="")

    def validate(self, attrs):
        if attrs["method"] == Payment.BANK_TRANSFER and not (attrs["proof_reference"] or attrs["reference_number"]):
            raise serializers.ValidationError(
                {"proof_reference": "Bank transfers need a proof reference or transfer number."}
            )
        return attrs


class PaymentReviewSerializer(serializers.Serializer):
    notes = serializers.CharField(required=False, allow_blank=True, default="")
