from django.contrib import admin

from .models import Report


@admin.register(Report)
class ReportAdmin(admin.ModelAdmin):
    list_display = ("id", "title", "report_type", "priority", "status", "created_by", "created_at")
    list_filter = ("status", "report_type", "priority")
    search_fields = ("title", "description", "location_address")
    raw_id_fields = ("created_by", "reviewed_by")
