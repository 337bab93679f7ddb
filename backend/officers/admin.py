from django.contrib import admin

from .models import Officer


@admin.register(Officer)
class OfficerAdmin(admin.ModelAdmin):
    list_display = ("badge_number", "name", "rank", "district", "status", "is_active")
    list_filter = ("status", "district", "is_active")
    search_fields = ("name", "badge_number", "email")
    raw_id_fields = ("user",)
