import django.core.validators
import django.db.models.deletion
import django.utils.timezone
from django.conf import settings
from django.db import migrations, models


def _user_fk(related_name):
    return models.ForeignKey(
        blank=True,
        null=True,
        on_delete=django.db.models.deletion.SET_NULL,
        related_name=related_name,
        to=settings.AUTH_USER_MODEL,
    )


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        ("properties", "0001_initial"),
        migrations.swappable_dependency(settings.AUTH_USER_MODEL),
    ]

    operations = [
        migrations.CreateModel(
            name="DailySequence",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("scope", models.CharField(max_length=20)),
                ("day", models.DateField()),
                ("last_value", models.PositiveIntegerField(default=0)),
            ],
            options={
                "constraints": [
                    models.UniqueConstraint(fields=("scope", "day"), name="unique_daily_sequence"),
                ],
            },
        ),
        migrations.CreateModel(
            name="Booking",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("booking_number", models.CharField(editable=False, max_length=24, unique=True)),
                ("check_in", models.DateField()),
                ("check_out", models.DateField()),
                ("nights", models.PositiveIntegerField()),
                ("guest_name", models.CharField(max_length=200)),
                ("guest_email", models.EmailField(max_length=254)),
                ("guest_phone", models.CharField(blank=True, max_length=32)),
                ("guest_male", models.PositiveIntegerField(default=0)),
                ("guest_female", models.PositiveIntegerField(default=0)),
                ("guest_children", models.PositiveIntegerField(default=0)),
                ("guest_count", models.PositiveIntegerField(validators=[django.core.validators.MinValueValidator(1)])),
                ("base_amount", models.BigIntegerField(default=0)),
                ("weekend_premium_amount", models.BigIntegerField(default=0)),
                ("seasonal_amount", models.BigIntegerField(default=0)),
                ("extra_beds", models.PositiveIntegerField(default=0)),
                ("extra_bed_amount", models.BigIntegerField(default=0)),
                ("cleaning_fee", models.BigIntegerField(default=0)),
                ("tax_amount", models.BigIntegerField(default=0)),
                ("service_amount", models.BigIntegerField(default=0)),
                ("total_amount", models.BigIntegerField(default=0)),
                ("dp_percentage", models.PositiveSmallIntegerField(default=50)),
                ("dp_amount", models.BigIntegerField(default=0)),
                ("remaining_amount", models.BigIntegerField(default=0)),
                ("paid_amount", models.BigIntegerField(default=0)),
                ("dp_deadline", models.DateTimeField(blank=True, null=True)),
                ("rate_breakdown", models.JSONField(blank=True, default=dict)),
                (
                    "booking_status",
                    models.CharField(
                        choices=[
                            ("pending_verification", "Pending verification"),
                            ("confirmed", "Confirmed"),
                            ("checked_in", "Checked in"),
                            ("checked_out", "Checked out"),
                            ("cancelled", "Cancelled"),
                        ],
                        default="pending_verification",
                        max_length=24,
                    ),
                ),
                (
                    "verification_status",
                    models.CharField(
                        choices=[("pending", "Pending"), ("approved", "Approved"), ("rejected", "Rejected")],
                        default="pending",
                        max_length=12,
                    ),
                ),
                (
                    "payment_status",
                    models.CharField(
                        choices=[
                            ("dp_pending", "Down payment pending"),
                            ("dp_received", "Down payment received"),
                            ("fully_paid", "Fully paid"),
                        ],
                        default="dp_pending",
                        max_length=12,
                    ),
                ),
                (
                    "booking_source",
                    models.CharField(
                        choices=[
                            ("direct", "Direct"),
                            ("phone", "Phone"),
                            ("walk_in", "Walk-in"),
                            ("ota", "Online travel agent"),
                        ],
                        default="direct",
                        max_length=12,
                    ),
                ),
                ("special_requests", models.TextField(blank=True)),
                ("internal_notes", models.TextField(blank=True)),
                ("verified_at", models.DateTimeField(blank=True, null=True)),
                ("verification_notes", models.TextField(blank=True)),
                ("cancelled_at", models.DateTimeField(blank=True, null=True)),
                ("cancellation_reason", models.TextField(blank=True)),
                ("checked_in_at", models.DateTimeField(blank=True, null=True)),
                ("checked_out_at", models.DateTimeField(blank=True, null=True)),
                ("created_at", models.DateTimeField(default=django.utils.timezone.now)),
                ("updated_at", models.DateTimeField(auto_now=True)),
                (
                    "property",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="bookings",
                        to="properties.property",
                    ),
                ),
                ("verified_by", _user_fk("verified_bookings")),
                ("cancelled_by", _user_fk("cancelled_bookings")),
                ("checked_in_by", _user_fk("checked_in_bookings")),
                ("checked_out_by", _user_fk("checked_out_bookings")),
                ("created_by", _user_fk("created_bookings")),
            ],
            options={
                "ordering": ["-created_at", "-id"],
                "indexes": [
                    models.Index(fields=["property", "check_in", "check_out"], name="booking_property_dates"),
                    models.Index(fields=["booking_status"], name="booking_status_idx"),
                ],
            },
        ),
        migrations.CreateModel(
            name="BookingGuest",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("full_name", models.CharField(max_length=200)),
                ("gender", models.CharField(choices=[("male", "Male"), ("female", "Female")], max_length=8)),
                (
                    "age_category",
                    models.CharField(
                        choices=[("adult", "Adult"), ("child", "Child"), ("infant", "Infant")],
                        default="adult",
                        max_length=8,
                    ),
                ),
                (
                    "relationship",
                    models.CharField(
                        choices=[
                            ("self", "Self"),
                            ("spouse", "Spouse"),
                            ("child", "Child"),
                            ("parent", "Parent"),
                            ("sibling", "Sibling"),
                            ("relative", "Relative"),
                            ("friend", "Friend"),
                            ("colleague", "Colleague"),
                            ("other", "Other"),
                        ],
                        default="self",
                        max_length=12,
                    ),
                ),
                ("is_primary", models.BooleanField(default=False)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                (
                    "booking",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="guests",
                        to="bookings.booking",
                    ),
                ),
            ],
            options={
                "ordering": ["-is_primary", "id"],
            },
        ),
        migrations.CreateModel(
            name="BookingWorkflow",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                (
                    "step",
                    models.CharField(
                        choices=[
                            ("booking_created", "Booking created"),
                            ("verification", "Verification"),
                            ("payment_submitted", "Payment submitted"),
                            ("payment_verified", "Payment verified"),
                            ("payment_rejected", "Payment rejected"),
                            ("check_in", "Check-in"),
                            ("check_out", "Check-out"),
                            ("cancellation", "Cancellation"),
                        ],
                        max_length=24,
                    ),
                ),
                (
                    "status",
                    models.CharField(
                        choices=[("completed", "Completed"), ("failed", "Failed")],
                        default="completed",
                        max_length=12,
                    ),
                ),
                ("from_status", models.CharField(blank=True, max_length=24)),
                ("to_status", models.CharField(blank=True, max_length=24)),
                ("processed_at", models.DateTimeField(default=django.utils.timezone.now)),
                ("notes", models.TextField(blank=True)),
                ("metadata", models.JSONField(blank=True, default=dict)),
                (
                    "booking",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="workflow_entries",
                        to="bookings.booking",
                    ),
                ),
                ("processed_by", _user_fk("+")),
            ],
            options={
                "ordering": ["processed_at", "id"],
            },
        ),
        migrations.CreateModel(
            name="BookingAccessToken",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("token_hash", models.CharField(max_length=128, unique=True)),
                (
                    "purpose",
                    models.CharField(choices=[("payment", "Payment link")], default="payment", max_length=20),
                ),
                ("single_use", models.BooleanField(default=False)),
                ("expires_at", models.DateTimeField()),
                ("used_at", models.DateTimeField(blank=True, null=True)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                (
                    "booking",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="access_tokens",
                        to="bookings.booking",
                    ),
                ),
            ],
            options={
                "ordering": ["-created_at"],
            },
        ),
    ]
