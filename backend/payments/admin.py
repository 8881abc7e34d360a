from django.contrib import admin

from .models import Payment


@admin.register(Payment)
class PaymentAdmin(admin.ModelAdmin):
    list_display = ("payment_number", "booking", "amount", "payment_type", "payment_method", "payment_status", "payment_date")
    list_filter = ("payment_status", "payment_method", "payment_type")
    search_fields = ("payment_number", "reference_number", "booking__booking_number")
    readonly_fields = ("payment_number", "payment_status", "verified_by", "verified_at", "gateway_reference")
