"""
Django admin configuration for accounts.
"""
from django.contrib import admin

from .models import User


@admin.register(User)
class UserAdmin(admin.ModelAdmin):
    list_display = ['email', 'first_name', 'last_name', 'is_active', 'is_superuser', 'created_at']
    list_filter = ['is_active', 'is_superuser', 'created_at']
    search_fields = ['email', 'first_name', 'last_name']
    ordering = ['-created_at']
    readonly_fields = ['id', 'password_hash', 'created_at', 'updated_at', 'last_login_at']
    fieldsets = (
        (None, {'fields': ('id', 'email', 'password_hash')}),
        ('Personal Info', {'fields': ('first_name', 'last_name')}),
        ('Status', {'fields': ('is_active', 'is_superuser')}),
        ('Activity', {'fields': ('last_login_at', 'created_at', 'updated_at')}),
    )
