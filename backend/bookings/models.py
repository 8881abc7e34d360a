from datetime import date

from django.conf import settings
from django.core.exceptions import ValidationError
from django.core.validators import MinValueValidator
from django.db import models, transaction
from django.db.models import F
from django.utils import timezone

from core.exceptions import ImmutableRecordError


class DailySequence(models.Model):
    """Per-day counters backing human-readable numbers such as ``BK202501310001``."""

    scope = models.CharField(max_length=20)
    day = models.DateField()
    last_value = models.PositiveIntegerField(default=0)

    class Meta:
        constraints = [
            models.UniqueConstraint(fields=["scope", "day"], name="unique_daily_sequence"),
        ]

    def __str__(self):
        return f"{self.scope}:{self.day:%Y%m%d}={self.last_value}"

    @classmethod
    def next_value(cls, scope: str, day: date) -> int:
        # The UPDATE holds the row lock until the surrounding transaction ends,
        # so two writers can never read the same value.
        with transaction.atomic():
            cls.objects.get_or_create(scope=scope, day=day)
            cls.objects.filter(scope=scope, day=day).update(last_value=F("last_value") + 1)
            return cls.objects.values_list("last_value", flat=True).get(scope=scope, day=day)

    @classmethod
    def next_number(cls, prefix: str, day: date) -> str:
        return f"{prefix}{day:%Y%m%d}{cls.next_value(prefix, day):04d}"


class Booking(models.Model):
    """A stay at a property. Status fields change only through ``bookings.services.workflow``."""

    PENDING_VERIFICATION = "pending_verification"
    CONFIRMED = "confirmed"
    CHECKED_IN = "checked_in"
    CHECKED_OUT = "checked_out"
    CANCELLED = "cancelled"
    BOOKING_STATUSES = [
        (PENDING_VERIFICATION, "Pending verification"),
        (CONFIRMED, "Confirmed"),
        (CHECKED_IN, "Checked in"),
        (CHECKED_OUT, "Checked out"),
        (CANCELLED, "Cancelled"),
    ]

    VERIFICATION_PENDING = "pending"
    VERIFICATION_APPROVED = "approved"
    VERIFICATION_REJECTED = "rejected"
    VERIFICATION_STATUSES = [
        (VERIFICATION_PENDING, "Pending"),
        (VERIFICATION_APPROVED, "Approved"),
        (VERIFICATION_REJECTED, "Rejected"),
    ]

    DP_PENDING = "dp_pending"
    DP_RECEIVED = "dp_received"
    FULLY_PAID = "fully_paid"
    PAYMENT_STATUSES = [
        (DP_PENDING, "Down payment pending"),
        (DP_RECEIVED, "Down payment received"),
        (FULLY_PAID, "Fully paid"),
    ]

    SOURCE_DIRECT = "direct"
    SOURCE_PHONE = "phone"
    SOURCE_WALK_IN = "walk_in"
    SOURCE_OTA = "ota"
    SOURCES = [
        (SOURCE_DIRECT, "Direct"),
        (SOURCE_PHONE, "Phone"),
        (SOURCE_WALK_IN, "Walk-in"),
        (SOURCE_OTA, "Online travel agent"),
    ]

    property = models.ForeignKey("properties.Property", on_delete=models.PROTECT, related_name="bookings")
    booking_number = models.CharField(max_length=24, unique=True, editable=False)
    check_in = models.DateField()
    check_out = models.DateField()
    nights = models.PositiveIntegerField()

    guest_name = models.CharField(max_length=200)
    guest_email = models.EmailField()
    guest_phone = models.CharField(max_length=32, blank=True)
    guest_male = models.PositiveIntegerField(default=0)
    guest_female = models.PositiveIntegerField(default=0)
    guest_children = models.PositiveIntegerField(default=0)
    guest_count = models.PositiveIntegerField(validators=[MinValueValidator(1)])

    base_amount = models.BigIntegerField(default=0)
    weekend_premium_amount = models.BigIntegerField(default=0)
    seasonal_amount = models.BigIntegerField(default=0)
    extra_beds = models.PositiveIntegerField(default=0)
    extra_bed_amount = models.BigIntegerField(default=0)
    cleaning_fee = models.BigIntegerField(default=0)
    tax_amount = models.BigIntegerField(default=0)
    service_amount = models.BigIntegerField(default=0)
    total_amount = models.BigIntegerField(default=0)
    dp_percentage = models.PositiveSmallIntegerField(default=50)
    dp_amount = models.BigIntegerField(default=0)
    remaining_amount = models.BigIntegerField(default=0)
    paid_amount = models.BigIntegerField(default=0)
    dp_deadline = models.DateTimeField(null=True, blank=True)
    rate_breakdown = models.JSONField(default=dict, blank=True)

    booking_status = models.CharField(max_length=24, choices=BOOKING_STATUSES, default=PENDING_VERIFICATION)
    verification_status = models.CharField(max_length=12, choices=VERIFICATION_STATUSES, default=VERIFICATION_PENDING)
    payment_status = models.CharField(max_length=12, choices=PAYMENT_STATUSES, default=DP_PENDING)

    booking_source = models.CharField(max_length=12, choices=SOURCES, default=SOURCE_DIRECT)
    special_requests = models.TextField(blank=True)
    internal_notes = models.TextField(blank=True)

    verified_by = models.ForeignKey(
        settings.AUTH_USER_MODEL, on_delete=models.SET_NULL, null=True, blank=True, related_name="verified_bookings"
    )
    verified_at = models.DateTimeField(null=True, blank=True)
    verification_notes = models.TextField(blank=True)
    cancelled_by = models.ForeignKey(
        settings.AUTH_USER_MODEL, on_delete=models.SET_NULL, null=True, blank=True, related_name="cancelled_bookings"
    )
    cancelled_at = models.DateTimeField(null=True, blank=True)
    cancellation_reason = models.TextField(blank=True)
    checked_in_by = models.ForeignKey(
        settings.AUTH_USER_MODEL, on_delete=models.SET_NULL, null=True, blank=True, related_name="checked_in_bookings"
    )
    checked_in_at = models.DateTimeField(null=True, blank=True)
    checked_out_by = models.ForeignKey(
        settings.AUTH_USER_MODEL, on_delete=models.SET_NULL, null=True, blank=True, related_name="checked_out_bookings"
    )
    checked_out_at = models.DateTimeField(null=True, blank=True)
    created_by = models.ForeignKey(
        settings.AUTH_USER_MODEL, on_delete=models.SET_NULL, null=True, blank=True, related_name="created_bookings"
    )
    created_at = models.DateTimeField(default=timezone.now)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ["-created_at", "-id"]
        indexes = [
            models.Index(fields=["property", "check_in", "check_out"], name="booking_property_dates"),
            models.Index(fields=["booking_status"], name="booking_status_idx"),
        ]

    def __str__(self):
        return f"{self.booking_number} ({self.guest_name})"

    def status_problems(self) -> list[str]:
        """Describe every status/money combination that should never be persisted."""
        problems = []
        approved_states = {self.CONFIRMED, self.CHECKED_IN, self.CHECKED_OUT}
        if self.booking_status == self.PENDING_VERIFICATION and self.verification_status != self.VERIFICATION_PENDING:
            problems.append("A booking awaiting verification must have verification pending.")
        if self.booking_status in approved_states and self.verification_status != self.VERIFICATION_APPROVED:
            problems.append(f"A {self.booking_status} booking must be approved.")
        if self.verification_status == self.VERIFICATION_REJECTED and self.booking_status != self.CANCELLED:
            problems.append("A rejected booking must be cancelled.")
        if self.paid_amount > self.total_amount:
            problems.append("Verified payments exceed the booking total.")
        if self.payment_status == self.FULLY_PAID and self.paid_amount < self.total_amount:
            problems.append("A fully paid booking must have verified payments covering the total.")
        if self.dp_amount + self.remaining_amount != self.total_amount:
            problems.append("Down payment and remaining amount must add up to the total.")
        if self.check_in and self.check_out and self.check_out <= self.check_in:
            problems.append("Check-out must be after check-in.")
        return problems

    def clean(self):
        super().clean()
        problems = self.status_problems()
        if problems:
            raise ValidationError(problems)


class BookingGuest(models.Model):
    """Named occupant of a booking."""

    MALE = "male"
    FEMALE = "female"
    GENDERS = [(MALE, "Male"), (FEMALE, "Female")]

    ADULT = "adult"
    CHILD = "child"
    INFANT = "infant"
    AGE_CATEGORIES = [(ADULT, "Adult"), (CHILD, "Child"), (INFANT, "Infant")]

    RELATIONSHIPS = [
        ("self", "Self"),
        ("spouse", "Spouse"),
        ("child", "Child"),
        ("parent", "Parent"),
        ("sibling", "Sibling"),
        ("relative", "Relative"),
        ("friend", "Friend"),
        ("colleague", "Colleague"),
        ("other", "Other"),
    ]

    booking = models.ForeignKey("Booking", on_delete=models.CASCADE, related_name="guests")
    full_name = models.CharField(max_length=200)
    gender = models.CharField(max_length=8, choices=GENDERS)
    age_category = models.CharField(max_length=8, choices=AGE_CATEGORIES, default=ADULT)
    relationship = models.CharField(max_length=12, choices=RELATIONSHIPS, default="self")
    is_primary = models.BooleanField(default=False)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ["-is_primary", "id"]

    def __str__(self):
        return f"{self.full_name} × {self.booking.booking_number}"


class BookingWorkflowQuerySet(models.QuerySet):
    def update(self, **kwargs):
        raise ImmutableRecordError("Workflow entries cannot be modified.")

    def delete(self):
        raise ImmutableRecordError("Workflow entries cannot be deleted.")


class BookingWorkflow(models.Model):
    """Append-only audit row, one per attempted transition."""

    BOOKING_CREATED = "booking_created"
    VERIFICATION = "verification"
    PAYMENT_SUBMITTED = "payment_submitted"
    PAYMENT_VERIFIED = "payment_verified"
    PAYMENT_REJECTED = "payment_rejected"
    CHECK_IN = "check_in"
    CHECK_OUT = "check_out"
    CANCELLATION = "cancellation"
    STEPS = [
        (BOOKING_CREATED, "Booking created"),
        (VERIFICATION, "Verification"),
        (PAYMENT_SUBMITTED, "Payment submitted"),
        (PAYMENT_VERIFIED, "Payment verified"),
        (PAYMENT_REJECTED, "Payment rejected"),
        (CHECK_IN, "Check-in"),
        (CHECK_OUT, "Check-out"),
        (CANCELLATION, "Cancellation"),
    ]

    COMPLETED = "completed"
    FAILED = "failed"
    STATUSES = [(COMPLETED, "Completed"), (FAILED, "Failed")]

    booking = models.ForeignKey("Booking", on_delete=models.CASCADE, related_name="workflow_entries")
    step = models.CharField(max_length=24, choices=STEPS)
    status = models.CharField(max_length=12, choices=STATUSES, default=COMPLETED)
    from_status = models.CharField(max_length=24, blank=True)
    to_status = models.CharField(max_length=24, blank=True)
    processed_by = models.ForeignKey(
        settings.AUTH_USER_MODEL, on_delete=models.SET_NULL, null=True, blank=True, related_name="+"
    )
    processed_at = models.DateTimeField(default=timezone.now)
    notes = models.TextField(blank=True)
    metadata = models.JSONField(default=dict, blank=True)

    objects = BookingWorkflowQuerySet.as_manager()

    class Meta:
        ordering = ["processed_at", "id"]

    def __str__(self):
        return f"{self.booking_id}:{self.step}:{self.status}"

    def save(self, *args, **kwargs):
        if not self._state.adding:
            raise ImmutableRecordError("Workflow entries cannot be modified.")
        return super().save(*args, **kwargs)

    def delete(self, *args, **kwargs):
        raise ImmutableRecordError("Workflow entries cannot be deleted.")


class BookingAccessToken(models.Model):
    """Link token that lets a guest view a booking and submit payments without an account."""

    PURPOSE_PAYMENT = "payment"
    PURPOSE_CHOICES = [
        (PURPOSE_PAYMENT, "Payment link"),
    ]

    booking = models.ForeignKey("Booking", on_delete=models.CASCADE, related_name="access_tokens")
    token_hash = models.CharField(max_length=128, unique=True)
    purpose = models.CharField(max_length=20, choices=PURPOSE_CHOICES, default=PURPOSE_PAYMENT)
    single_use = models.BooleanField(default=False)
    expires_at = models.DateTimeField()
    used_at = models.DateTimeField(null=True, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ["-created_at"]

    def mark_used(self):
        if not self.used_at:
            self.used_at = timezone.now()
            self.save(update_fields=["used_at"])

    @property
    def is_expired(self) -> bool:
        return timezone.now() > self.expires_at or (self.single_use and self.used_at is not None)
