from django.contrib import admin
from django.contrib.auth.admin import UserAdmin as BaseUserAdmin
from accounts.models import User


@admin.register(User)
class UserAdmin(BaseUserAdmin):
    """Party guests, with the default departure address used by ride requests"""

    list_display = ["username", "full_name", "profile_location", "is_staff"]
    search_fields = ["username", "email", "full_name", "profile_location"]
    ordering = ("username",)

    fieldsets = BaseUserAdmin.fieldsets + (
        ("Ride sharing", {"fields": ("full_name", "profile_location")}),
    )
    add_fieldsets = BaseUserAdmin.add_fieldsets + (
        ("Ride sharing", {"fields": ("full_name", "profile_location")}),
    )
