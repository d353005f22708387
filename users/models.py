"""User models.

This module defines the custom `User` model which extends Django's
`AbstractUser` with a storefront role and the provider the account
authenticates through. Token issuance lives outside this service; the
order engine only reads `role` and contact details.
"""

from common.choices import AuthProvider, UserRole
from django.contrib.auth.models import AbstractUser
from django.core.validators import RegexValidator
from django.db import models


class User(AbstractUser):
    """Custom user with unique email, role and auth provider.

    Fields:
    - email: the primary email, unique at the database level (normalized).
    - name: display name printed on invoices.
    - role: `admin` accounts manage the store and may not purchase.
    - auth_provider: how the account signs in (local password or Google).
    """

    ROLE_ADMIN = UserRole.ADMIN
    ROLE_CLIENT = UserRole.CLIENT

    email = models.EmailField(unique=True)
    name = models.CharField(max_length=150, blank=True)
    role = models.CharField(max_length=16, choices=UserRole.choices, default=UserRole.CLIENT, db_index=True)
    auth_provider = models.CharField(max_length=16, choices=AuthProvider.choices, default=AuthProvider.LOCAL)
    phone = models.CharField(
        max_length=16,
        blank=True,
        validators=[RegexValidator(r"^\+?[1-9]\d{1,14}$", message="Use E.164 format (e.g., +919876543210)")],
        help_text="Primary contact number for the account in E.164 format",
    )

    def save(self, *args, **kwargs):
        """Normalize email and phone, then persist."""
        if self.email:
            self.email = self.email.strip().lower()
        if self.phone:
            self.phone = self.phone.strip()
        super().save(*args, **kwargs)

    @property
    def is_store_admin(self) -> bool:
        return self.role == UserRole.ADMIN

    @property
    def display_name(self) -> str:
        full = self.get_full_name()
        return self.name or full or self.username
