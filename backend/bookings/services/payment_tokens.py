import hashlib
import secrets
from datetime import timedelta

from django.conf import settings
from django.utils import timezone

from bookings.models import Booking, BookingAccessToken


def _hash_token(token: str) -> str:
    return hashlib.sha256(token.encode("utf-8")).hexdigest()


def issue_payment_token(
    *,
    booking: Booking,
    expires_at=None,
    lifetime: timedelta | None = None,
    single_use: bool = False,
    now=None,
) -> tuple[BookingAccessToken, str]:
    """Create a payment link token for ``booking`` and return the instance plus plaintext."""

    raw_token = secrets.token_urlsafe(32)

    if expires_at is None:
        if lifetime is None:
            lifetime = timedelta(days=getattr(settings, "BOOKING_PAYMENT_TOKEN_DAYS", 14))
        expires_at = (now or timezone.now()) + lifetime

    token = BookingAccessToken.objects.create(
        booking=booking,
        token_hash=_hash_token(raw_token),
        expires_at=expires_at,
        single_use=single_use,
        purpose=BookingAccessToken.PURPOSE_PAYMENT,
    )
    return token, raw_token


def validate_payment_token(raw_token: str) -> BookingAccessToken | None:
    """Return the token if still valid; otherwise None."""
    try:
        token = BookingAccessToken.objects.select_related("booking", "booking__property").get(
            token_hash=_hash_token(raw_token)
        )
    except BookingAccessToken.DoesNotExist:
        return None

    if token.is_expired:
        return None
    return token


def payment_link(raw_token: str) -> str:
    return f"{settings.FRONTEND_URL.rstrip('/')}/booking-access/{raw_token}"
