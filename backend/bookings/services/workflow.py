"""
Booking state machine.

Every public function here is one unit of work: the status change, any payment
row change and the ``BookingWorkflow`` audit entry are written in the same
transaction, with the booking row locked. A refused transition raises before
anything is written. Emails go out only after the transaction commits.

``booking_status``:      pending_verification → confirmed → checked_in → checked_out
                         (cancelled from pending_verification or confirmed)
``verification_status``: pending → approved | rejected
``payment_status``:      dp_pending → dp_received → fully_paid (derived from verified payments)
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import date, timedelta
from functools import partial
from typing import Iterable, Optional, Sequence

from django.conf import settings
from django.db import transaction
from django.utils import timezone

from bookings.models import Booking, BookingGuest, BookingWorkflow, DailySequence
from bookings.services import emails
from bookings.services.availability import ensure_available, lock_property
from bookings.services.payment_tokens import issue_payment_token, payment_link
from core.exceptions import (
    AmountExceedsPendingError,
    CapacityError,
    InvalidTransitionError,
    ValidationFailed,
    storage_guard,
)
from payments import ledger
from payments.checkout import create_checkout_session
from payments.models import Payment
from properties.models import Property
from properties.pricing import GuestCounts, calculate_rate, ensure_dp_percentage, split_down_payment, stay_nights
from properties.quotes import ensure_minimum_stay, seasons_for_stay

logger = logging.getLogger(__name__)

BOOKING_PREFIX = "BK"
PAYMENT_PREFIX = "PAY"

CANCELLABLE_STATUSES = (Booking.PENDING_VERIFICATION, Booking.CONFIRMED)
PAYABLE_STATUSES = (Booking.PENDING_VERIFICATION, Booking.CONFIRMED)


@dataclass(frozen=True)
class GuestContact:
    name: str
    email: str
    phone: str = ""


@dataclass(frozen=True)
class GuestDetail:
    full_name: str
    gender: str
    age_category: str = BookingGuest.ADULT
    relationship: str = "self"
    is_primary: bool = False

    def validate(self) -> None:
        if not self.full_name.strip():
            raise ValidationFailed("Every guest needs a name.")
        for value, choices, label in (
            (self.gender, BookingGuest.GENDERS, "gender"),
            (self.age_category, BookingGuest.AGE_CATEGORIES, "age category"),
            (self.relationship, BookingGuest.RELATIONSHIPS, "relationship"),
        ):
            if value not in {choice for choice, _ in choices}:
                raise ValidationFailed(f"Unknown {label} '{value}'.")


def _actor_label(actor) -> str:
    if actor is None:
        return "guest"
    return getattr(actor, "email", "") or str(actor.pk)


def _record(
    booking: Booking,
    step: str,
    *,
    actor=None,
    status: str = BookingWorkflow.COMPLETED,
    from_status: str = "",
    to_status: str = "",
    notes: str = "",
    metadata: Optional[dict] = None,
    now=None,
) -> BookingWorkflow:
    return BookingWorkflow.objects.create(
        booking=booking,
        step=step,
        status=status,
        from_status=from_status,
        to_status=to_status,
        processed_by=actor,
        processed_at=now or timezone.now(),
        notes=notes or "",
        metadata=metadata or {},
    )


def _save(booking: Booking, fields: Iterable[str]) -> None:
    problems = booking.status_problems()
    if problems:
        raise InvalidTransitionError("; ".join(problems))
    booking.save(update_fields=[*dict.fromkeys(fields), "updated_at"])


def _locked_booking(booking_id: int) -> Booking:
    return Booking.objects.select_for_update(of=("self",)).select_related("property").get(pk=booking_id)


def _refuse(booking: Booking, action: str, field: str = "booking_status") -> InvalidTransitionError:
    current = getattr(booking, field)
    return InvalidTransitionError(
        f"Cannot {action} booking {booking.booking_number} while {field.replace('_', ' ')} is '{current}'.",
        booking_number=booking.booking_number,
        current=current,
    )


def _after_commit(func, *args, **kwargs) -> None:
    transaction.on_commit(partial(func, *args, **kwargs))


def create_booking(
    *,
    property_id: int,
    check_in: date,
    check_out: date,
    guests: GuestCounts,
    dp_percentage: int,
    contact: GuestContact,
    guest_details: Sequence[GuestDetail] = (),
    actor=None,
    booking_source: str = Booking.SOURCE_DIRECT,
    special_requests: str = "",
    internal_notes: str = "",
    now=None,
    today: date | None = None,
) -> Booking:
    """
    Create a booking in ``pending_verification``.

    Raises ``ValidationFailed`` for malformed input, and ``CapacityError``,
    ``MinimumStayError`` or ``AvailabilityError`` when the stay cannot be sold.
    The availability check and the insert run under the per-property lock, so
    two overlapping requests can never both succeed.
    """
    now = now or timezone.now()
    today = today or timezone.localdate(now)

    nights = stay_nights(check_in, check_out)
    if check_in < today:
        raise ValidationFailed("Check-in date cannot be in the past.")
    max_nights = getattr(settings, "BOOKING_MAX_NIGHTS", 365)
    if len(nights) > max_nights:
        raise ValidationFailed(f"Stays are limited to {max_nights} nights.")
    dp_percentage = ensure_dp_percentage(dp_percentage)
    if guests.total < 1:
        raise ValidationFailed("At least one guest is required.")
    if len(guest_details) > guests.total:
        raise ValidationFailed("More guest details were provided than guests on the booking.")
    for detail in guest_details:
        detail.validate()
    if not contact.name.strip() or not contact.email.strip():
        raise ValidationFailed("Guest name and email are required.")

    with storage_guard("create booking"), transaction.atomic():
        try:
            property_obj = lock_property(property_id)
        except Property.DoesNotExist:
            raise ValidationFailed(f"Property {property_id} does not exist.") from None
        if not property_obj.is_active:
            raise ValidationFailed(f"{property_obj.name} is not accepting bookings.")
        if guests.total > property_obj.capacity_max:
            raise CapacityError(
                f"{property_obj.name} sleeps at most {property_obj.capacity_max} guests.",
                capacity_max=property_obj.capacity_max,
                guest_count=guests.total,
            )

        seasons = seasons_for_stay(property_obj, check_in, check_out)
        ensure_minimum_stay(property_obj, check_in, check_out, seasonal_rates=seasons)
        ensure_available(property_obj.pk, check_in, check_out)

        breakdown = calculate_rate(property_obj, check_in, check_out, guests, seasonal_rates=seasons)
        dp_amount, remaining_amount = split_down_payment(breakdown.total_amount, dp_percentage)

        booking = Booking(
            property=property_obj,
            booking_number=DailySequence.next_number(BOOKING_PREFIX, today),
            check_in=check_in,
            check_out=check_out,
            nights=breakdown.nights,
            guest_name=contact.name.strip(),
            guest_email=contact.email.strip().lower(),
            guest_phone=contact.phone.strip(),
            guest_male=guests.male,
            guest_female=guests.female,
            guest_children=guests.children,
            guest_count=guests.total,
            base_amount=breakdown.base_amount,
            weekend_premium_amount=breakdown.weekend_premium,
            seasonal_amount=breakdown.seasonal_premium,
            extra_beds=breakdown.extra_beds,
            extra_bed_amount=breakdown.extra_bed_amount,
            cleaning_fee=breakdown.cleaning_fee,
            tax_amount=breakdown.tax_amount,
            service_amount=breakdown.service_amount,
            total_amount=breakdown.total_amount,
            dp_percentage=dp_percentage,
            dp_amount=dp_amount,
            remaining_amount=remaining_amount,
            dp_deadline=now + timedelta(hours=getattr(settings, "BOOKING_DP_DEADLINE_HOURS", 48)),
            rate_breakdown=breakdown.as_dict(),
            booking_source=booking_source,
            special_requests=special_requests,
            internal_notes=internal_notes,
            created_by=actor,
            created_at=now,
        )
        problems = booking.status_problems()
        if problems:
            raise ValidationFailed("; ".join(problems))
        booking.save()

        has_primary = any(detail.is_primary for detail in guest_details)
        BookingGuest.objects.bulk_create(
            [
                BookingGuest(
                    booking=booking,
                    full_name=detail.full_name.strip(),
                    gender=detail.gender,
                    age_category=detail.age_category,
                    relationship=detail.relationship,
                    is_primary=detail.is_primary or (not has_primary and index == 0),
                )
                for index, detail in enumerate(guest_details)
            ]
        )
        _record(
            booking,
            BookingWorkflow.BOOKING_CREATED,
            actor=actor,
            to_status=Booking.PENDING_VERIFICATION,
            metadata={
                "total_amount": booking.total_amount,
                "dp_percentage": dp_percentage,
                "dp_amount": dp_amount,
                "source": booking_source,
            },
            now=now,
        )
        _after_commit(emails.send_booking_received_email, booking)

    logger.info(
        "Booking %s created for property %s (%s – %s, total %s) by %s",
        booking.booking_number,
        property_obj.pk,
        check_in,
        check_out,
        booking.total_amount,
        _actor_label(actor),
    )
    return booking


def verify_booking(booking_id: int, actor=None, notes: str = "", *, now=None) -> Booking:
    """Approve a pending booking; the guest receives a payment link."""
    now = now or timezone.now()
    with storage_guard("verify booking"), transaction.atomic():
        booking = _locked_booking(booking_id)
        if booking.verification_status != Booking.VERIFICATION_PENDING:
            raise _refuse(booking, "verify", "verification_status")
        if booking.booking_status != Booking.PENDING_VERIFICATION:
            raise _refuse(booking, "verify")

        previous = booking.booking_status
        booking.verification_status = Booking.VERIFICATION_APPROVED
        booking.booking_status = Booking.CONFIRMED
        booking.verified_by = actor
        booking.verified_at = now
        booking.verification_notes = notes or ""
        _save(booking, ["verification_status", "booking_status", "verified_by", "verified_at", "verification_notes"])
        _record(
            booking,
            BookingWorkflow.VERIFICATION,
            actor=actor,
            from_status=previous,
            to_status=booking.booking_status,
            notes=notes,
            now=now,
        )
        _, raw_token = issue_payment_token(booking=booking, now=now)
        _after_commit(emails.send_booking_confirmed_email, booking, payment_url=payment_link(raw_token))

    logger.info("Booking %s verified by %s", booking.booking_number, _actor_label(actor))
    return booking


def reject_booking(booking_id: int, actor=None, reason: str = "", *, now=None) -> Booking:
    """Reject a pending booking; it is cancelled with the reason recorded."""
    if not (reason or "").strip():
        raise ValidationFailed("A rejection reason is required.")
    now = now or timezone.now()
    with storage_guard("reject booking"), transaction.atomic():
        booking = _locked_booking(booking_id)
        if booking.verification_status != Booking.VERIFICATION_PENDING:
            raise _refuse(booking, "reject", "verification_status")
        if booking.booking_status != Booking.PENDING_VERIFICATION:
            raise _refuse(booking, "reject")

        previous = booking.booking_status
        booking.verification_status = Booking.VERIFICATION_REJECTED
        booking.booking_status = Booking.CANCELLED
        booking.verified_by = actor
        booking.verified_at = now
        booking.verification_notes = reason
        booking.cancelled_by = actor
        booking.cancelled_at = now
        booking.cancellation_reason = reason
        _save(
            booking,
            [
                "verification_status",
                "booking_status",
                "verified_by",
                "verified_at",
                "verification_notes",
                "cancelled_by",
                "cancelled_at",
                "cancellation_reason",
            ],
        )
        _record(
            booking,
            BookingWorkflow.VERIFICATION,
            actor=actor,
            status=BookingWorkflow.FAILED,
            from_status=previous,
            to_status=booking.booking_status,
            notes=reason,
            now=now,
        )
        _after_commit(emails.send_booking_cancelled_email, booking)

    logger.info("Booking %s rejected by %s", booking.booking_number, _actor_label(actor))
    return booking


def check_in(booking_id: int, actor=None, *, notes: str = "", now=None) -> Booking:
    now = now or timezone.now()
    with storage_guard("check in"), transaction.atomic():
        booking = _locked_booking(booking_id)
        if booking.booking_status != Booking.CONFIRMED:
            raise _refuse(booking, "check in")
        booking.booking_status = Booking.CHECKED_IN
        booking.checked_in_by = actor
        booking.checked_in_at = now
        _save(booking, ["booking_status", "checked_in_by", "checked_in_at"])
        _record(
            booking,
            BookingWorkflow.CHECK_IN,
            actor=actor,
            from_status=Booking.CONFIRMED,
            to_status=Booking.CHECKED_IN,
            notes=notes,
            metadata={"payment_status": booking.payment_status},
            now=now,
        )

    logger.info("Booking %s checked in by %s", booking.booking_number, _actor_label(actor))
    return booking


def check_out(booking_id: int, actor=None, *, notes: str = "", now=None) -> Booking:
    now = now or timezone.now()
    with storage_guard("check out"), transaction.atomic():
        booking = _locked_booking(booking_id)
        if booking.booking_status != Booking.CHECKED_IN:
            raise _refuse(booking, "check out")
        booking.booking_status = Booking.CHECKED_OUT
        booking.checked_out_by = actor
        booking.checked_out_at = now
        _save(booking, ["booking_status", "checked_out_by", "checked_out_at"])
        _record(
            booking,
            BookingWorkflow.CHECK_OUT,
            actor=actor,
            from_status=Booking.CHECKED_IN,
            to_status=Booking.CHECKED_OUT,
            notes=notes,
            metadata={"payment_status": booking.payment_status, "outstanding": ledger.pending_amount(booking)},
            now=now,
        )

    logger.info("Booking %s checked out by %s", booking.booking_number, _actor_label(actor))
    return booking


def cancel_booking(booking_id: int, actor=None, reason: str = "", *, now=None) -> Booking:
    now = now or timezone.now()
    with storage_guard("cancel booking"), transaction.atomic():
        booking = _locked_booking(booking_id)
        if booking.booking_status not in CANCELLABLE_STATUSES:
            raise _refuse(booking, "cancel")

        previous = booking.booking_status
        booking.booking_status = Booking.CANCELLED
        booking.cancelled_by = actor
        booking.cancelled_at = now
        booking.cancellation_reason = reason or ""
        _save(booking, ["booking_status", "cancelled_by", "cancelled_at", "cancellation_reason"])
        _record(
            booking,
            BookingWorkflow.CANCELLATION,
            actor=actor,
            from_status=previous,
            to_status=Booking.CANCELLED,
            notes=reason,
            now=now,
        )
        _after_commit(emails.send_booking_cancelled_email, booking)

    logger.info("Booking %s cancelled by %s", booking.booking_number, _actor_label(actor))
    return booking


def submit_payment(
    booking_id: int,
    amount: int,
    method: str,
    proof_ref: str = "",
    *,
    actor=None,
    reference_number: str = "",
    bank_name: str = "",
    notes: str = "",
    now=None,
) -> Payment:
    """
    Record a pending payment against a booking.

    ``amount`` may not exceed the total minus what has already been verified;
    ``AmountExceedsPendingError`` is raised otherwise and no row is written.
    Card payments also open a checkout session.
    """
    if isinstance(amount, bool) or not isinstance(amount, int) or amount <= 0:
        raise ValidationFailed("Payment amount must be a positive whole number.")
    if method not in {choice for choice, _ in Payment.METHODS}:
        raise ValidationFailed(f"Unknown payment method '{method}'.")
    now = now or timezone.now()

    with storage_guard("submit payment"), transaction.atomic():
        booking = _locked_booking(booking_id)
        if booking.booking_status not in PAYABLE_STATUSES:
            raise _refuse(booking, "take a payment for")
        verified = ledger.verified_total(booking)
        outstanding = ledger.pending_amount(booking, verified=verified)
        if amount > outstanding:
            raise AmountExceedsPendingError(
                f"Payment of {amount} exceeds the outstanding balance of {outstanding}.",
                amount=amount,
                pending_amount=outstanding,
            )

        payment = Payment.objects.create(
            booking=booking,
            payment_number=DailySequence.next_number(PAYMENT_PREFIX, timezone.localdate(now)),
            amount=amount,
            currency=settings.BOOKING_CURRENCY,
            payment_type=ledger.payment_type_for(booking, amount, verified=verified),
            payment_method=method,
            payment_date=now,
            proof_reference=proof_ref or "",
            reference_number=reference_number,
            bank_name=bank_name,
            submitted_by=actor,
        )
        if method == Payment.CREDIT_CARD:
            session = create_checkout_session(payment=payment)
            payment.gateway_reference = session.id
            payment.checkout_url = session.url or ""
            payment.save(update_fields=["gateway_reference", "checkout_url", "updated_at"])

        _record(
            booking,
            BookingWorkflow.PAYMENT_SUBMITTED,
            actor=actor,
            from_status=booking.payment_status,
            to_status=booking.payment_status,
            notes=notes,
            metadata={
                "payment_id": payment.pk,
                "payment_number": payment.payment_number,
                "amount": amount,
                "payment_type": payment.payment_type,
                "method": method,
            },
            now=now,
        )

    logger.info(
        "Payment %s of %s submitted for booking %s by %s",
        payment.payment_number,
        amount,
        booking.booking_number,
        _actor_label(actor),
    )
    return payment


def _locked_payment(payment_id: int) -> tuple[Payment, Booking]:
    # Booking first, then payment: the same order submit_payment uses.
    booking_id = Payment.objects.values_list("booking_id", flat=True).get(pk=payment_id)
    booking = _locked_booking(booking_id)
    payment = Payment.objects.select_for_update().get(pk=payment_id)
    return payment, booking


def verify_payment(payment_id: int, actor=None, notes: str = "", *, now=None) -> Payment:
    """Mark a pending payment verified and re-derive the booking's payment status."""
    now = now or timezone.now()
    with storage_guard("verify payment"), transaction.atomic():
        payment, booking = _locked_payment(payment_id)
        if payment.payment_status != Payment.PENDING:
            raise InvalidTransitionError(
                f"Payment {payment.payment_number} is already {payment.payment_status}.",
                payment_number=payment.payment_number,
                current=payment.payment_status,
            )
        verified = ledger.verified_total(booking)
        if verified + payment.amount > booking.total_amount:
            raise AmountExceedsPendingError(
                f"Verifying {payment.payment_number} would take payments past the booking total.",
                amount=payment.amount,
                pending_amount=booking.total_amount - verified,
            )

        payment.payment_status = Payment.VERIFIED
        payment.verified_by = actor
        payment.verified_at = now
        payment.verification_notes = notes or ""
        payment.save(update_fields=["payment_status", "verified_by", "verified_at", "verification_notes", "updated_at"])

        previous = booking.payment_status
        changed = ledger.recompute_payment_status(booking)
        if changed:
            _save(booking, changed)
        _record(
            booking,
            BookingWorkflow.PAYMENT_VERIFIED,
            actor=actor,
            from_status=previous,
            to_status=booking.payment_status,
            notes=notes,
            metadata={
                "payment_id": payment.pk,
                "payment_number": payment.payment_number,
                "amount": payment.amount,
                "paid_amount": booking.paid_amount,
            },
            now=now,
        )
        _after_commit(emails.send_payment_verified_email, booking, amount=payment.amount)

    logger.info(
        "Payment %s verified for booking %s (%s → %s) by %s",
        payment.payment_number,
        booking.booking_number,
        previous,
        booking.payment_status,
        _actor_label(actor),
    )
    return payment


def reject_payment(payment_id: int, actor=None, reason: str = "", *, now=None) -> Payment:
    now = now or timezone.now()
    with storage_guard("reject payment"), transaction.atomic():
        payment, booking = _locked_payment(payment_id)
        if payment.payment_status != Payment.PENDING:
            raise InvalidTransitionError(
                f"Payment {payment.payment_number} is already {payment.payment_status}.",
                payment_number=payment.payment_number,
                current=payment.payment_status,
            )
        payment.payment_status = Payment.FAILED
        payment.verified_by = actor
        payment.verified_at = now
        payment.verification_notes = reason or ""
        payment.save(update_fields=["payment_status", "verified_by", "verified_at", "verification_notes", "updated_at"])

        previous = booking.payment_status
        changed = ledger.recompute_payment_status(booking)
        if changed:
            _save(booking, changed)
        _record(
            booking,
            BookingWorkflow.PAYMENT_REJECTED,
            actor=actor,
            status=BookingWorkflow.FAILED,
            from_status=previous,
            to_status=booking.payment_status,
            notes=reason,
            metadata={"payment_id": payment.pk, "payment_number": payment.payment_number, "amount": payment.amount},
            now=now,
        )

    logger.info("Payment %s rejected by %s", payment.payment_number, _actor_label(actor))
    return payment
