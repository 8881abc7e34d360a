from datetime import timedelta

import pytest
from django.db import OperationalError
from django.utils import timezone

from bookings.models import Booking, BookingAccessToken, BookingWorkflow
from bookings.services import workflow
from core.exceptions import ImmutableRecordError, InvalidTransitionError, TransientStorageError, ValidationFailed


def steps(booking):
    return list(booking.workflow_entries.values_list("step", "status", "from_status", "to_status"))


@pytest.mark.django_db
def test_verify_confirms_and_issues_payment_link(make_booking, staff, mailoutbox, django_capture_on_commit_callbacks):
    booking = make_booking()

    with django_capture_on_commit_callbacks(execute=True):
        booking = workflow.verify_booking(booking.pk, staff, "Documents checked")

    booking.refresh_from_db()
    assert booking.booking_status == Booking.CONFIRMED
    assert booking.verification_status == Booking.VERIFICATION_APPROVED
    assert booking.verified_by == staff
    assert booking.verification_notes == "Documents checked"
    assert steps(booking)[-1] == (
        BookingWorkflow.VERIFICATION,
        BookingWorkflow.COMPLETED,
        Booking.PENDING_VERIFICATION,
        Booking.CONFIRMED,
    )
    assert BookingAccessToken.objects.filter(booking=booking).count() == 1
    (message,) = mailoutbox
    assert message.subject == f"Booking {booking.booking_number} confirmed"
    assert "/booking-access/" in message.body


@pytest.mark.django_db
def test_creation_email_goes_out_after_commit(make_booking, mailoutbox, django_capture_on_commit_callbacks):
    with django_capture_on_commit_callbacks(execute=True):
        booking = make_booking()

    (message,) = mailoutbox
    assert message.to == ["greta@example.com"]
    assert booking.booking_number in message.subject


@pytest.mark.django_db
def test_reject_cancels_with_reason(make_booking, staff):
    booking = make_booking()

    booking = workflow.reject_booking(booking.pk, staff, "ID did not match")

    booking.refresh_from_db()
    assert booking.booking_status == Booking.CANCELLED
    assert booking.verification_status == Booking.VERIFICATION_REJECTED
    assert booking.cancellation_reason == "ID did not match"
    assert steps(booking)[-1] == (
        BookingWorkflow.VERIFICATION,
        BookingWorkflow.FAILED,
        Booking.PENDING_VERIFICATION,
        Booking.CANCELLED,
    )


@pytest.mark.django_db
def test_reject_requires_a_reason(make_booking, staff):
    booking = make_booking()

    with pytest.raises(ValidationFailed):
        workflow.reject_booking(booking.pk, staff, "  ")


@pytest.mark.django_db
def test_full_stay_lifecycle(make_booking, staff):
    booking = make_booking()

    workflow.verify_booking(booking.pk, staff)
    workflow.check_in(booking.pk, staff, notes="Keys handed over")
    booking = workflow.check_out(booking.pk, staff)

    booking.refresh_from_db()
    assert booking.booking_status == Booking.CHECKED_OUT
    assert booking.checked_in_by == staff
    assert booking.checked_out_by == staff
    # Checking out with an unpaid balance is allowed; the balance is recorded.
    assert booking.payment_status == Booking.DP_PENDING
    assert [step for step, *_ in steps(booking)] == [
        BookingWorkflow.BOOKING_CREATED,
        BookingWorkflow.VERIFICATION,
        BookingWorkflow.CHECK_IN,
        BookingWorkflow.CHECK_OUT,
    ]
    assert booking.workflow_entries.last().metadata["outstanding"] == booking.total_amount


@pytest.mark.django_db
def test_check_in_before_verification_is_refused(make_booking, staff):
    booking = make_booking()

    with pytest.raises(InvalidTransitionError):
        workflow.check_in(booking.pk, staff)

    booking.refresh_from_db()
    assert booking.booking_status == Booking.PENDING_VERIFICATION
    assert booking.checked_in_at is None
    assert booking.workflow_entries.count() == 1


@pytest.mark.django_db
def test_check_out_requires_check_in(make_booking, staff):
    booking = make_booking()
    workflow.verify_booking(booking.pk, staff)

    with pytest.raises(InvalidTransitionError):
        workflow.check_out(booking.pk, staff)

    booking.refresh_from_db()
    assert booking.booking_status == Booking.CONFIRMED


@pytest.mark.django_db
def test_verify_twice_is_refused(make_booking, staff):
    booking = make_booking()
    workflow.verify_booking(booking.pk, staff)

    with pytest.raises(InvalidTransitionError) as excinfo:
        workflow.verify_booking(booking.pk, staff)

    assert excinfo.value.context["current"] == Booking.VERIFICATION_APPROVED
    assert booking.workflow_entries.count() == 2


@pytest.mark.django_db
def test_reject_after_confirmation_is_refused(make_booking, staff):
    booking = make_booking()
    workflow.verify_booking(booking.pk, staff)

    with pytest.raises(InvalidTransitionError):
        workflow.reject_booking(booking.pk, staff, "Too late")

    booking.refresh_from_db()
    assert booking.booking_status == Booking.CONFIRMED


@pytest.mark.django_db
def test_cancel_pending_and_confirmed_bookings(make_booking, staff):
    pending = make_booking()
    confirmed = make_booking(check_in=pending.check_out)
    workflow.verify_booking(confirmed.pk, staff)

    workflow.cancel_booking(pending.pk, staff, "Guest request")
    workflow.cancel_booking(confirmed.pk, staff, "Guest request")

    for booking in (pending, confirmed):
        booking.refresh_from_db()
        assert booking.booking_status == Booking.CANCELLED
        assert booking.cancelled_by == staff
        assert booking.cancellation_reason == "Guest request"


@pytest.mark.parametrize("path", ["cancelled", "checked_in", "checked_out"])
@pytest.mark.django_db
def test_cancel_is_refused_outside_pending_and_confirmed(make_booking, staff, path):
    booking = make_booking()
    if path == "cancelled":
        workflow.cancel_booking(booking.pk, staff, "First")
    else:
        workflow.verify_booking(booking.pk, staff)
        workflow.check_in(booking.pk, staff)
        if path == "checked_out":
            workflow.check_out(booking.pk, staff)
    entries_before = booking.workflow_entries.count()

    with pytest.raises(InvalidTransitionError):
        workflow.cancel_booking(booking.pk, staff, "Second")

    booking.refresh_from_db()
    assert booking.booking_status == path
    assert booking.workflow_entries.count() == entries_before


@pytest.mark.django_db
def test_injected_clock_is_used_for_timestamps(make_booking, staff):
    booking = make_booking()
    moment = timezone.now() + timedelta(days=2)

    booking = workflow.verify_booking(booking.pk, staff, now=moment)

    assert booking.verified_at == moment
    assert booking.workflow_entries.last().processed_at == moment


@pytest.mark.django_db
def test_workflow_entries_cannot_be_changed(make_booking):
    booking = make_booking()
    entry = booking.workflow_entries.get()

    entry.notes = "rewritten"
    with pytest.raises(ImmutableRecordError):
        entry.save()
    with pytest.raises(ImmutableRecordError):
        entry.delete()
    with pytest.raises(ImmutableRecordError):
        BookingWorkflow.objects.filter(pk=entry.pk).update(notes="rewritten")
    with pytest.raises(ImmutableRecordError):
        BookingWorkflow.objects.filter(pk=entry.pk).delete()

    entry.refresh_from_db()
    assert entry.notes == ""


@pytest.mark.django_db
def test_failed_log_write_rolls_back_check_in(monkeypatch, make_booking, staff):
    booking = workflow.verify_booking(make_booking().pk, staff)
    entries_before = booking.workflow_entries.count()

    def locked_out(**kwargs):
        raise OperationalError("database is locked")

    monkeypatch.setattr(BookingWorkflow.objects, "create", locked_out)

    with pytest.raises(TransientStorageError) as excinfo:
        workflow.check_in(booking.pk, staff)

    assert excinfo.value.retryable is True
    booking.refresh_from_db()
    assert booking.booking_status == Booking.CONFIRMED
    assert booking.checked_in_at is None
    assert booking.workflow_entries.count() == entries_before
