from django.contrib import admin

from .models import AuditLog


@admin.register(AuditLog)
class AuditLogAdmin(admin.ModelAdmin):
    list_display = ['timestamp', 'tenant', 'action', 'content_type', 'object_id', 'user']
    list_filter = ['action', 'content_type']
    readonly_fields = ['timestamp', 'tenant', 'user', 'action', 'content_type', 'object_id', 'details']

    def has_add_permission(self, request):
        return False
