from __future__ import annotations

import logging
import smtplib

from django.conf import settings
from django.core.mail import send_mail

from bookings.models import Booking

logger = logging.getLogger(__name__)


def _format_amount(amount: int) -> str:
    return f"{settings.BOOKING_CURRENCY.upper()} {amount:,}"


def _stay_line(booking: Booking) -> str:
    return (
        f"{booking.property.name}: {booking.check_in:%d %B %Y} to {booking.check_out:%d %B %Y} "
        f"({booking.nights} night{'s' if booking.nights != 1 else ''}, {booking.guest_count} guest"
        f"{'s' if booking.guest_count != 1 else ''})"
    )


def _send(booking: Booking, subject: str, lines: list[str]) -> None:
    body = "\n".join([f"Hi {booking.guest_name},", "", *lines, "", "Booking reference: " + booking.booking_number])
    try:
        send_mail(
            subject,
            body,
            settings.DEFAULT_FROM_EMAIL,
            [booking.guest_email],
            fail_silently=False,
        )
    except (smtplib.SMTPException, OSError):
        logger.exception("Failed to send '%s' email for booking %s", subject, booking.booking_number)


def send_booking_received_email(booking: Booking) -> None:
    _send(
        booking,
        f"Booking {booking.booking_number} received",
        [
            "Thanks for your booking request. Our team will verify it shortly.",
            _stay_line(booking),
            f"Total: {_format_amount(booking.total_amount)}",
            f"Down payment ({booking.dp_percentage}%): {_format_amount(booking.dp_amount)}",
        ],
    )


def send_booking_confirmed_email(booking: Booking, *, payment_url: str) -> None:
    lines = [
        "Your booking has been confirmed.",
        _stay_line(booking),
        f"Amount due: {_format_amount(booking.total_amount - booking.paid_amount)}",
        f"Submit your payment here: {payment_url}",
    ]
    if booking.dp_deadline:
        lines.append(f"Please pay the down payment before {booking.dp_deadline:%d %B %Y %H:%M}.")
    _send(booking, f"Booking {booking.booking_number} confirmed", lines)


def send_booking_cancelled_email(booking: Booking) -> None:
    lines = [
        "Your booking has been cancelled.",
        _stay_line(booking),
    ]
    if booking.cancellation_reason:
        lines.append(f"Reason: {booking.cancellation_reason}")
    _send(booking, f"Booking {booking.booking_number} cancelled", lines)


def send_payment_verified_email(booking: Booking, *, amount: int) -> None:
    _send(
        booking,
        f"Payment received for {booking.booking_number}",
        [
            f"We have verified your payment of {_format_amount(amount)}.",
            f"Paid so far: {_format_amount(booking.paid_amount)} of {_format_amount(booking.total_amount)}",
        ],
    )
