from django.contrib import admin

from .models import District


@admin.register(District)
class DistrictAdmin(admin.ModelAdmin):
    list_display = ['name', 'code', 'state', 'is_active', 'created_at']
    list_filter = ['state', 'is_active']
    search_fields = ['name', 'code', 'state']
    readonly_fields = ['id', 'created_at', 'updated_at']
