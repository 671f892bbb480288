from django.contrib import admin
from .models import Notification


@admin.register(Notification)
class NotificationAdmin(admin.ModelAdmin):
    list_display = ["user", "type", "title", "priority", "read_at", "created_at"]
    list_filter = ["type", "priority", "channel"]
    search_fields = ["title", "message", "user__username"]
    readonly_fields = ["created_at"]
