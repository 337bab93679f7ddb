from django.contrib import admin

from .models import Incident, IncidentUpdate


class IncidentUpdateInline(admin.TabularInline):
    model = IncidentUpdate
    extra = 0
    readonly_fields = ("created_at",)
    raw_id_fields = ("author",)


@admin.register(Incident)
class IncidentAdmin(admin.ModelAdmin):
    list_display = ("id", "title", "incident_type", "priority", "status", "created_at")
    list_filter = ("status", "priority", "incident_type")
    search_fields = ("title", "description")
    filter_horizontal = ("assigned_officers",)
    raw_id_fields = ("source_report", "reported_by", "converted_by")
    inlines = [IncidentUpdateInline]
