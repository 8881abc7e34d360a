from django.contrib import admin

from .models import Booking, BookingAccessToken, BookingGuest, BookingWorkflow, DailySequence


class BookingGuestInline(admin.TabularInline):
    model = BookingGuest
    extra = 0


class BookingWorkflowInline(admin.TabularInline):
    model = BookingWorkflow
    extra = 0
    can_delete = False
    fields = ("processed_at", "step", "status", "from_status", "to_status", "processed_by", "notes")
    readonly_fields = fields

    def has_add_permission(self, request, obj=None):
        return False


@admin.register(Booking)
class BookingAdmin(admin.ModelAdmin):
    list_display = (
        "booking_number",
        "property",
        "guest_name",
        "check_in",
        "check_out",
        "total_amount",
        "booking_status",
        "verification_status",
        "payment_status",
    )
    list_filter = ("booking_status", "verification_status", "payment_status", "property")
    search_fields = ("booking_number", "guest_name", "guest_email")
    date_hierarchy = "check_in"
    inlines = [BookingGuestInline, BookingWorkflowInline]
    # Status and money columns are owned by the workflow services.
    readonly_fields = (
        "booking_number",
        "booking_status",
        "verification_status",
        "payment_status",
        "base_amount",
        "weekend_premium_amount",
        "seasonal_amount",
        "extra_beds",
        "extra_bed_amount",
        "cleaning_fee",
        "tax_amount",
        "service_amount",
        "total_amount",
        "dp_amount",
        "remaining_amount",
        "paid_amount",
        "rate_breakdown",
        "verified_by",
        "verified_at",
        "cancelled_by",
        "cancelled_at",
        "checked_in_by",
        "checked_in_at",
        "checked_out_by",
        "checked_out_at",
    )


@admin.register(BookingWorkflow)
class BookingWorkflowAdmin(admin.ModelAdmin):
    list_display = ("booking", "step", "status", "processed_by", "processed_at")
    list_filter = ("step", "status")
    search_fields = ("booking__booking_number",)

    def has_change_permission(self, request, obj=None):
        return False

    def has_delete_permission(self, request, obj=None):
        return False


@admin.register(BookingAccessToken)
class BookingAccessTokenAdmin(admin.ModelAdmin):
    list_display = ("booking", "purpose", "expires_at", "used_at")
    list_filter = ("purpose", "single_use")
    search_fields = ("booking__booking_number", "booking__guest_email")
    readonly_fields = ("token_hash",)


@admin.register(DailySequence)
class DailySequenceAdmin(admin.ModelAdmin):
    list_display = ("scope", "day", "last_value")
    list_filter = ("scope",)
