from django.contrib import admin

from .models import Shift


@admin.register(Shift)
class ShiftAdmin(admin.ModelAdmin):
    list_display = ("title", "shift_type", "start_time", "end_time", "status", "location_district")
    list_filter = ("status", "shift_type", "location_district")
    search_fields = ("title", "description", "location_address")
    filter_horizontal = ("assigned_officers",)
    raw_id_fields = ("created_by", "reviewed_by")
    date_hierarchy = "start_time"
