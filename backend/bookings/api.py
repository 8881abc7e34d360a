from rest_framework import mixins, permissions, status, viewsets
from rest_framework.decorators import action
from rest_framework.response import Response
from rest_framework.views import APIView

from accounts.permissions import IsBookingStaff
from bookings.models import Booking
from bookings.serializers import (
    BookingCreateSerializer,
    BookingDetailSerializer,
    BookingSerializer,
    GuestBookingSerializer,
    NotesSerializer,
    ReasonSerializer,
)
from bookings.services import workflow
from bookings.services.payment_tokens import validate_payment_token
from payments.serializers import PaymentSerializer, PaymentSubmitSerializer


def _is_staff(user) -> bool:
    return bool(user and user.is_authenticated and (user.is_superuser or getattr(user, "is_booking_staff", False)))


class BookingViewSet(mixins.CreateModelMixin, viewsets.ReadOnlyModelViewSet):
    """Guests create bookings; staff list them and drive the workflow transitions."""

    filterset_fields = ["property", "booking_status", "verification_status", "payment_status", "check_in"]
    search_fields = ["booking_number", "guest_name", "guest_email", "guest_phone"]
    ordering_fields = ["created_at", "check_in", "total_amount"]

    def get_permissions(self):
        if self.action == "create":
            return [permissions.AllowAny()]
        return [permissions.IsAuthenticated(), IsBookingStaff()]

    def get_queryset(self):
        queryset = Booking.objects.select_related("property").order_by("-created_at", "-id")
        if self.action != "list":
            queryset = queryset.prefetch_related(
                "guests",
                "payments__verified_by",
                "workflow_entries__processed_by",
            )
        return queryset

    def get_serializer_class(self):
        if self.action == "create":
            return BookingCreateSerializer
        if self.action == "list":
            return BookingSerializer
        return BookingDetailSerializer

    def create(self, request, *args, **kwargs):
        serializer = BookingCreateSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        options = serializer.to_service_kwargs()
        actor = request.user if _is_staff(request.user) else None
        if actor is None:
            options["booking_source"] = Booking.SOURCE_DIRECT
        booking = workflow.create_booking(actor=actor, **options)
        return Response(BookingDetailSerializer(booking).data, status=status.HTTP_201_CREATED)

    def _respond(self, booking):
        booking = self.get_queryset().get(pk=booking.pk)
        return Response(BookingDetailSerializer(booking).data)

    @action(detail=True, methods=["post"])
    def verify(self, request, pk=None):
        booking = self.get_object()
        serializer = NotesSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        booking = workflow.verify_booking(booking.pk, request.user, serializer.validated_data["notes"])
        return self._respond(booking)

    @action(detail=True, methods=["post"])
    def reject(self, request, pk=None):
        booking = self.get_object()
        serializer = ReasonSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        booking = workflow.reject_booking(booking.pk, request.user, serializer.validated_data["reason"])
        return self._respond(booking)

    @action(detail=True, methods=["post"], url_path="check-in")
    def check_in(self, request, pk=None):
        booking = self.get_object()
        serializer = NotesSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        booking = workflow.check_in(booking.pk, request.user, notes=serializer.validated_data["notes"])
        return self._respond(booking)

    @action(detail=True, methods=["post"], url_path="check-out")
    def check_out(self, request, pk=None):
        booking = self.get_object()
        serializer = NotesSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        booking = workflow.check_out(booking.pk, request.user, notes=serializer.validated_data["notes"])
        return self._respond(booking)

    @action(detail=True, methods=["post"])
    def cancel(self, request, pk=None):
        booking = self.get_object()
        serializer = ReasonSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        booking = workflow.cancel_booking(booking.pk, request.user, serializer.validated_data["reason"])
        return self._respond(booking)

    @action(detail=True, methods=["post"])
    def payments(self, request, pk=None):
        booking = self.get_object()
        serializer = PaymentSubmitSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data
        payment = workflow.submit_payment(
            booking.pk,
            data["amount"],
            data["method"],
            data["proof_reference"],
            actor=request.user,
            reference_number=data["reference_number"],
            bank_name=data["bank_name"],
            notes=data["notes"],
        )
        return Response(PaymentSerializer(payment).data, status=status.HTTP_201_CREATED)


class BookingAccessView(APIView):
    """Token-based view of a single booking for the guest who owns it."""

    permission_classes = []  # token-based access
    authentication_classes = []

    def get(self, request, token):
        access_token = validate_payment_token(token)
        if access_token is None:
            return Response({"detail": "Invalid or expired token."}, status=status.HTTP_400_BAD_REQUEST)
        return Response(GuestBookingSerializer(access_token.booking).data)


class BookingAccessPaymentView(APIView):
    permission_classes = []  # token-based access
    authentication_classes = []

    def post(self, request, token):
        access_token = validate_payment_token(token)
        if access_token is None:
            return Response({"detail": "Invalid or expired token."}, status=status.HTTP_400_BAD_REQUEST)

        serializer = PaymentSubmitSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data
        payment = workflow.submit_payment(
            access_token.booking_id,
            data["amount"],
            data["method"],
            data["proof_reference"],
            reference_number=data["reference_number"],
            bank_name=data["bank_name"],
            notes=data["notes"],
        )
        if access_token.single_use:
            access_token.mark_used()
        return Response(PaymentSerializer(payment).data, status=status.HTTP_201_CREATED)
