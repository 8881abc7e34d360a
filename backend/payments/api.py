from rest_framework import permissions, viewsets
from rest_framework.decorators import action
from rest_framework.response import Response

from accounts.permissions import IsBookingStaff
from bookings.services import workflow
from payments.models import Payment
from payments.serializers import PaymentReviewSerializer, PaymentSerializer


class PaymentViewSet(viewsets.ReadOnlyModelViewSet):
    """Staff review queue for submitted payments."""

    serializer_class = PaymentSerializer
    permission_classes = [permissions.IsAuthenticated, IsBookingStaff]
    filterset_fields = ["booking", "payment_status", "payment_method", "payment_type"]
    search_fields = ["payment_number", "reference_number", "booking__booking_number"]
    ordering_fields = ["payment_date", "amount"]

    def get_queryset(self):
        return Payment.objects.select_related("booking", "verified_by").order_by("-payment_date", "-id")

    @action(detail=True, methods=["post"])
    def verify(self, request, pk=None):
        payment = self.get_object()
        serializer = PaymentReviewSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        payment = workflow.verify_payment(payment.pk, request.user, serializer.validated_data["notes"])
        return Response(PaymentSerializer(payment).data)

    @action(detail=True, methods=["post"])
    def reject(self, request, pk=None):
        payment = self.get_object()
        serializer = PaymentReviewSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        payment = workflow.reject_payment(payment.pk, request.user, serializer.validated_data["notes"])
        return Response(PaymentSerializer(payment).data)
