from django.conf import settings
from django.core.validators import MinValueValidator
from django.db import models
from django.utils import timezone


class Payment(models.Model):
    DP = "dp"
    FULL_PAYMENT = "full_payment"
    REMAINING_PAYMENT = "remaining_payment"
    PAYMENT_TYPES = [
        (DP, "Down payment"),
        (FULL_PAYMENT, "Full payment"),
        (REMAINING_PAYMENT, "Remaining payment"),
    ]

    PENDING = "pending"
    VERIFIED = "verified"
    FAILED = "failed"
    STATUSES = [
        (PENDING, "Pending"),
        (VERIFIED, "Verified"),
        (FAILED, "Failed"),
    ]

    CASH = "cash"
    BANK_TRANSFER = "bank_transfer"
    CREDIT_CARD = "credit_card"
    E_WALLET = "e_wallet"
    OTHER = "other"
    METHODS = [
        (CASH, "Cash"),
        (BANK_TRANSFER, "Bank transfer"),
        (CREDIT_CARD, "Credit card"),
        (E_WALLET, "E-wallet"),
        (OTHER, "Other"),
    ]

    booking = models.ForeignKey("bookings.Booking", on_delete=models.CASCADE, related_name="payments")
    payment_number = models.CharField(max_length=24, unique=True, editable=False)
    amount = models.BigIntegerField(validators=[MinValueValidator(1)])
    currency = models.CharField(max_length=10, default="idr")
    payment_type = models.CharField(max_length=20, choices=PAYMENT_TYPES)
    payment_method = models.CharField(max_length=20, choices=METHODS, default=BANK_TRANSFER)
    payment_status = models.CharField(max_length=12, choices=STATUSES, default=PENDING)
    payment_date = models.DateTimeField(default=timezone.now)
    reference_number = models.CharField(max_length=120, blank=True)
    bank_name = models.CharField(max_length=120, blank=True)
    proof_reference = models.CharField(max_length=500, blank=True)
    gateway_reference = models.CharField(max_length=200, blank=True)
    checkout_url = models.URLField(max_length=500, blank=True)
    submitted_by = models.ForeignKey(
        settings.AUTH_USER_MODEL, on_delete=models.SET_NULL, null=True, blank=True, related_name="submitted_payments"
    )
    verified_by = models.ForeignKey(
        settings.AUTH_USER_MODEL, on_delete=models.SET_NULL, null=True, blank=True, related_name="verified_payments"
    )
    verified_at = models.DateTimeField(null=True, blank=True)
    verification_notes = models.TextField(blank=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ["payment_date", "id"]
        indexes = [
            models.Index(fields=["booking", "payment_status"], name="payment_booking_status"),
        ]

    def __str__(self):
        return f"{self.payment_number} ({self.amount} {self.currency})"
