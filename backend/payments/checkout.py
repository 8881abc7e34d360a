from __future__ import annotations

from dataclasses import dataclass
from typing import Optional
from uuid import uuid4

import logging

from django.conf import settings

from core.exceptions import PaymentProviderError

from .models import Payment

logger = logging.getLogger(__name__)


@dataclass
class CheckoutSessionStub:
    """
    Stand-in for ``stripe.checkout.Session`` when Stripe is stubbed.

    Local development and tests never reach Stripe; card payments still get a
    predictable session id and a preview URL so the guest flow can be exercised.
    """

    id: str
    payment_intent: str
    payment_status: str
    url: str


def build_checkout_preview_url(*, payment: Payment, session_id: str) -> str:
    return (
        f"{settings.FRONTEND_URL.rstrip('/')}/payments/preview?"
        f"booking={payment.booking.booking_number}&payment={payment.payment_number}"
        f"&amount={payment.amount}&session={session_id}"
    )


def _stub_checkout_session(*, payment: Payment) -> CheckoutSessionStub:
    session_id = f"cs_test_{uuid4().hex}"
    return CheckoutSessionStub(
        id=session_id,
        payment_intent=f"pi_test_{uuid4().hex}",
        payment_status="unpaid",
        url=build_checkout_preview_url(payment=payment, session_id=session_id),
    )


def _get_stripe_api_key() -> Optional[str]:
    key = getattr(settings, "STRIPE_SECRET_KEY", "")
    return key or None


def _should_use_stub() -> bool:
    if getattr(settings, "STRIPE_USE_STUB", False):
        return True
    return _get_stripe_api_key() is None


def create_checkout_session(*, payment: Payment):
    """
    Open a Stripe Checkout session (or the stub equivalent) for a card payment.

    Returns an object exposing ``id``, ``payment_intent``, ``payment_status`` and
    ``url``. The payment stays pending until staff verify it. Stripe failures
    surface as ``PaymentProviderError`` so the caller's transaction rolls back.
    """

    if _should_use_stub():
        return _stub_checkout_session(payment=payment)

    import stripe

    api_key = _get_stripe_api_key()
    if not api_key:
        raise RuntimeError("Stripe secret key is not configured.")

    stripe.api_key = api_key
    booking = payment.booking
    frontend = settings.FRONTEND_URL.rstrip("/")
    try:
        return stripe.checkout.Session.create(
            mode="payment",
            payment_method_types=["card"],
            line_items=[
                {
                    "quantity": 1,
                    "price_data": {
                        "currency": payment.currency,
                        "unit_amount": payment.amount,
                        "product_data": {
                            "name": f"{booking.property.name} ({booking.booking_number})",
                        },
                    },
                }
            ],
            success_url=f"{frontend}/payment/success?booking={booking.booking_number}",
            cancel_url=f"{frontend}/payment/cancel?booking={booking.booking_number}",
            client_reference_id=payment.payment_number,
            metadata={
                "booking_number": booking.booking_number,
                "payment_number": payment.payment_number,
                "payment_type": payment.payment_type,
            },
        )
    except stripe.error.StripeError as exc:
        logger.exception("Stripe checkout failed for payment %s", payment.payment_number)
        raise PaymentProviderError(
            booking_number=booking.booking_number, payment_number=payment.payment_number
        ) from exc
