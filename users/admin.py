"""Admin registration for the custom User model.

Uses Django's built-in `UserAdmin` to manage the `users.User` model
in the admin interface.
"""

from django.contrib import admin
from django.contrib.auth.admin import UserAdmin as BaseUserAdmin

from .models import User


@admin.register(User)
class UserAdmin(BaseUserAdmin):
    """Admin configuration leveraging the default fieldsets and filters.

    Adds the storefront role and auth provider to the list, filters and
    edit form.
    """

    list_display = (
        "username",
        "email",
        "name",
        "role",
        "auth_provider",
        "is_active",
        "date_joined",
    )
    list_filter = ("role", "auth_provider", "is_staff", "is_active")
    search_fields = ("username", "email", "name")
    ordering = ("-date_joined",)
    readonly_fields = ("last_login", "date_joined")

    fieldsets = (
        (None, {"fields": ("username", "password")}),
        ("Personal info", {"fields": ("name", "email", "phone")}),
        ("Storefront", {"fields": ("role", "auth_provider")}),
        (
            "Permissions",
            {"fields": ("is_active", "is_staff", "is_superuser", "groups", "user_permissions")},
        ),
        ("Important dates", {"fields": ("last_login", "date_joined")}),
    )

    add_fieldsets = (
        (
            None,
            {
                "classes": ("wide",),
                "fields": ("username", "email", "role", "password1", "password2"),
            },
        ),
    )

    filter_horizontal = ("groups", "user_permissions")
