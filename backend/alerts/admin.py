from django.contrib import admin

from .models import Alert


@admin.register(Alert)
class AlertAdmin(admin.ModelAdmin):
    list_display = ("title", "kind", "severity", "area", "is_active", "expires_at", "created_at")
    list_filter = ("kind", "severity", "is_active", "disaster_type")
    search_fields = ("title", "message", "area")
    raw_id_fields = ("created_by",)
