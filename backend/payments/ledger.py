"""Verified-payment arithmetic for bookings.

The booking's ``payment_status`` and ``paid_amount`` are always derived from the
sum of its verified payments; nothing else may set them.
"""
from __future__ import annotations

from django.db.models import Sum

from bookings.models import Booking

from .models import Payment


def verified_total(booking: Booking) -> int:
    total = booking.payments.filter(payment_status=Payment.VERIFIED).aggregate(total=Sum("amount"))["total"]
    return int(total or 0)


def pending_amount(booking: Booking, *, verified: int | None = None) -> int:
    """What the guest still owes once every verified payment is counted."""
    if verified is None:
        verified = verified_total(booking)
    return max(booking.total_amount - verified, 0)


def payment_status_for(total_amount: int, verified: int) -> str:
    if verified >= total_amount:
        return Booking.FULLY_PAID
    if verified > 0:
        return Booking.DP_RECEIVED
    return Booking.DP_PENDING


def payment_type_for(booking: Booking, amount: int, *, verified: int | None = None) -> str:
    if verified is None:
        verified = verified_total(booking)
    if verified > 0:
        return Payment.REMAINING_PAYMENT
    if amount >= booking.total_amount:
        return Payment.FULL_PAYMENT
    return Payment.DP


def payment_progress(booking: Booking) -> float:
    if not booking.total_amount:
        return 0.0
    return round(booking.paid_amount / booking.total_amount * 100, 2)


def recompute_payment_status(booking: Booking) -> list[str]:
    """Refresh ``paid_amount``/``payment_status`` in memory; return the changed field names."""
    verified = verified_total(booking)
    status = payment_status_for(booking.total_amount, verified)
    changed = []
    if booking.paid_amount != verified:
        booking.paid_amount = verified
        changed.append("paid_amount")
    if booking.payment_status != status:
        booking.payment_status = status
        changed.append("payment_status")
    return changed
