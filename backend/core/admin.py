from django.contrib import admin

from .models import AuditLog, Notification, NotificationTask


@admin.register(Notification)
class NotificationAdmin(admin.ModelAdmin):
    list_display = ("recipient", "event_type", "title", "is_read", "created_at")
    list_filter = ("event_type", "is_read")
    search_fields = ("title", "recipient__username")


@admin.register(NotificationTask)
class NotificationTaskAdmin(admin.ModelAdmin):
    list_display = ("id", "event_type", "status", "attempts", "created_at", "processed_at")
    list_filter = ("status", "event_type")
    readonly_fields = ("last_error",)


@admin.register(AuditLog)
class AuditLogAdmin(admin.ModelAdmin):
    list_display = ("created_at", "actor", "action", "entity", "entity_id")
    list_filter = ("action", "entity")
    search_fields = ("entity_id", "description", "actor__username")
