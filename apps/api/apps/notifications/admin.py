from django.contrib import admin
from .models import Notification


@admin.register(Notification)
class NotificationAdmin(admin.ModelAdmin):
    list_display = ['recipient', 'type', 'title', 'read', 'created_at']
    list_filter = ['type', 'read']
    search_fields = ['recipient__email', 'title']
    readonly_fields = ['id', 'created_at']
