from django.contrib import admin

from .models import Property, SeasonalRate


class SeasonalRateInline(admin.TabularInline):
    model = SeasonalRate
    extra = 0


@admin.register(Property)
class PropertyAdmin(admin.ModelAdmin):
    list_display = ("name", "capacity", "capacity_max", "base_rate", "weekend_premium_percent", "is_active")
    list_filter = ("is_active",)
    search_fields = ("name", "address")
    prepopulated_fields = {"slug": ("name",)}
    inlines = [SeasonalRateInline]


@admin.register(SeasonalRate)
class SeasonalRateAdmin(admin.ModelAdmin):
    list_display = ("name", "property", "start_date", "end_date", "rate_type", "rate_value", "priority", "is_active")
    list_filter = ("rate_type", "is_active", "property")
    ordering = ("-priority", "start_date")
