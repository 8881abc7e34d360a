import datetime

import django.db.models.deletion
from django.db import migrations, models


class Migration(migrations.Migration):

    initial = True

    dependencies = []

    operations = [
        migrations.CreateModel(
            name="Property",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("name", models.CharField(max_length=200)),
                ("slug", models.SlugField(max_length=200, unique=True)),
                ("address", models.CharField(blank=True, max_length=255)),
                ("description", models.TextField(blank=True)),
                ("bedrooms", models.PositiveIntegerField(default=1)),
                ("capacity", models.PositiveIntegerField(help_text="Guests covered by the base rate.")),
                ("capacity_max", models.PositiveIntegerField(help_text="Hard ceiling including extra beds.")),
                ("base_rate", models.PositiveBigIntegerField(help_text="Nightly rate in the smallest currency unit.")),
                ("weekend_premium_percent", models.DecimalField(decimal_places=2, default=0, max_digits=5)),
                ("cleaning_fee", models.PositiveBigIntegerField(default=0)),
                ("extra_bed_rate", models.PositiveBigIntegerField(default=0)),
                ("min_stay_weekday", models.PositiveIntegerField(default=1)),
                ("min_stay_weekend", models.PositiveIntegerField(default=1)),
                ("min_stay_peak", models.PositiveIntegerField(default=1)),
                ("check_in_time", models.TimeField(default=datetime.time(14, 0))),
                ("check_out_time", models.TimeField(default=datetime.time(12, 0))),
                ("is_active", models.BooleanField(default=True)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("updated_at", models.DateTimeField(auto_now=True)),
            ],
            options={
                "verbose_name_plural": "properties",
                "ordering": ("name", "id"),
            },
        ),
        migrations.CreateModel(
            name="SeasonalRate",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("name", models.CharField(max_length=120)),
                ("start_date", models.DateField()),
                ("end_date", models.DateField(help_text="Inclusive.")),
                (
                    "rate_type",
                    models.CharField(
                        choices=[
                            ("percentage", "Percentage premium"),
                            ("fixed", "Fixed nightly price"),
                            ("multiplier", "Multiplier"),
                        ],
                        default="percentage",
                        max_length=20,
                    ),
                ),
                ("rate_value", models.DecimalField(decimal_places=2, max_digits=14)),
                ("min_stay_nights", models.PositiveIntegerField(default=1)),
                ("applies_to_weekends_only", models.BooleanField(default=False)),
                (
                    "applicable_days",
                    models.JSONField(
                        blank=True,
                        default=list,
                        help_text="date.weekday() numbers (0 = Monday); empty means every day.",
                    ),
                ),
                ("priority", models.IntegerField(default=0)),
                ("is_active", models.BooleanField(default=True)),
                ("description", models.TextField(blank=True)),
                (
                    "property",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="seasonal_rates",
                        to="properties.property",
                    ),
                ),
            ],
            options={
                "ordering": ("-priority", "start_date", "id"),
            },
        ),
    ]
