"""
Django admin configuration for core app.
"""
from django.contrib import admin


admin.site.site_header = "Community Roles Administration"
admin.site.site_title = "Community Roles Admin"
admin.site.index_title = "Role lifecycle and permission administration"
