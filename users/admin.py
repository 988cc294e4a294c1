from django.contrib import admin
from django.contrib.auth.admin import UserAdmin as BaseUserAdmin

from .models import User


@admin.register(User)
class UserAdmin(BaseUserAdmin):
    list_display = ['username', 'name', 'email', 'tenant', 'is_staff']
    list_filter = BaseUserAdmin.list_filter + ('tenant',)
    fieldsets = BaseUserAdmin.fieldsets + (
        ('Organization', {'fields': ('name', 'tenant')}),
    )
