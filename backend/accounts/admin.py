from django.contrib import admin
from django.contrib.auth.admin import UserAdmin as BaseUserAdmin
from accounts.models import User


@admin.register(User)
class UserAdmin(BaseUserAdmin):
    """Admin panel for dispatchers and drivers"""

    list_display = ["username", "email", "role", "phone_number", "is_active", "is_staff"]
    list_filter = ["role", "is_active", "is_staff"]
    search_fields = ["username", "email", "phone_number"]
    ordering = ("username",)

    fieldsets = BaseUserAdmin.fieldsets + (
        ("Dispatch", {"fields": ("role", "phone_number")}),
    )
    add_fieldsets = BaseUserAdmin.add_fieldsets + (
        ("Dispatch", {"fields": ("role", "phone_number")}),
    )
