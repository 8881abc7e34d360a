from datetime import time

from django.core.exceptions import ValidationError
from django.db import models


class Property(models.Model):
    name = models.CharField(max_length=200)
    slug = models.SlugField(max_length=200, unique=True)
    address = models.CharField(max_length=255, blank=True)
    description = models.TextField(blank=True)
    bedrooms = models.PositiveIntegerField(default=1)
    capacity = models.PositiveIntegerField(help_text="Guests covered by the base rate.")
    capacity_max = models.PositiveIntegerField(help_text="Hard ceiling including extra beds.")
    base_rate = models.PositiveBigIntegerField(help_text="Nightly rate in the smallest currency unit.")
    weekend_premium_percent = models.DecimalField(max_digits=5, decimal_places=2, default=0)
    cleaning_fee = models.PositiveBigIntegerField(default=0)
    extra_bed_rate = models.PositiveBigIntegerField(default=0)
    min_stay_weekday = models.PositiveIntegerField(default=1)
    min_stay_weekend = models.PositiveIntegerField(default=1)
    min_stay_peak = models.PositiveIntegerField(default=1)
    check_in_time = models.TimeField(default=time(14, 0))
    check_out_time = models.TimeField(default=time(12, 0))
    is_active = models.BooleanField(default=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ("name", "id")
        verbose_name_plural = "properties"

    def __str__(self):
        return self.name

    def clean(self):
        super().clean()
        if self.capacity is not None and self.capacity_max is not None and self.capacity_max < self.capacity:
            raise ValidationError({"capacity_max": "Maximum capacity cannot be below the base capacity."})
        if self.capacity is not None and self.capacity < 1:
            raise ValidationError({"capacity": "Capacity must be at least one guest."})

    def save(self, *args, **kwargs):
        self.full_clean()
        return super().save(*args, **kwargs)


class SeasonalRate(models.Model):
    PERCENTAGE = "percentage"
    FIXED = "fixed"
    MULTIPLIER = "multiplier"
    RATE_TYPES = [
        (PERCENTAGE, "Percentage premium"),
        (FIXED, "Fixed nightly price"),
        (MULTIPLIER, "Multiplier"),
    ]

    property = models.ForeignKey(Property, on_delete=models.CASCADE, related_name="seasonal_rates")
    name = models.CharField(max_length=120)
    start_date = models.DateField()
    end_date = models.DateField(help_text="Inclusive.")
    rate_type = models.CharField(max_length=20, choices=RATE_TYPES, default=PERCENTAGE)
    rate_value = models.DecimalField(max_digits=14, decimal_places=2)
    min_stay_nights = models.PositiveIntegerField(default=1)
    applies_to_weekends_only = models.BooleanField(default=False)
    applicable_days = models.JSONField(
        default=list,
        blank=True,
        help_text="date.weekday() numbers (0 = Monday); empty means every day.",
    )
    priority = models.IntegerField(default=0)
    is_active = models.BooleanField(default=True)
    description = models.TextField(blank=True)

    class Meta:
        ordering = ("-priority", "start_date", "id")

    def __str__(self):
        return f"{self.name} ({self.start_date} – {self.end_date})"

    def clean(self):
        super().clean()
        if self.start_date and self.end_date and self.end_date < self.start_date:
            raise ValidationError({"end_date": "End date must not precede the start date."})
        days = self.applicable_days or []
        if not isinstance(days, list) or any(day not in range(7) for day in days):
            raise ValidationError({"applicable_days": "Use weekday numbers between 0 and 6."})
        if self.rate_type == self.MULTIPLIER and self.rate_value is not None and self.rate_value <= 0:
            raise ValidationError({"rate_value": "Multiplier must be positive."})

    def save(self, *args, **kwargs):
        self.full_clean()
        return super().save(*args, **kwargs)
