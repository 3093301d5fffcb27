"""
Authentication models.

This module defines the directory's user model:
- User: Custom user model with email-based authentication and a
  directory role (guest, business owner, admin)

Related files:
    - managers.py: Custom user manager for email-based creation

Note:
    Submitting a first listing promotes a guest to business owner
    (see listings.services.ListingSubmissionService). Admins decide
    downgrade requests and edit the downgrade policy.
"""

from django.contrib.auth.models import AbstractBaseUser, PermissionsMixin
from django.db import models

from authentication.managers import UserManager


class UserRole(models.TextChoices):
    """Directory roles. Staff users are treated as admins as well."""

    GUEST = "guest", "Guest"
    BUSINESS_OWNER = "business_owner", "Business owner"
    ADMIN = "admin", "Admin"


class User(AbstractBaseUser, PermissionsMixin):
    """
    Custom User model using email as the primary identifier.

    Fields:
        email: Primary identifier, unique, used for login
        name: Display name used in emails and admin screens
        role: Directory role (guest, business_owner, admin)
        is_active: Whether the user account is active
        is_staff: Whether the user can access Django admin
        date_joined: When the user account was created
        updated_at: When the user record was last modified

    Usage:
        owner = User.objects.create_user(
            email='owner@example.com',
            password='securepassword',
            role=UserRole.BUSINESS_OWNER,
        )
    """

    email = models.EmailField(
        unique=True,
        db_index=True,
        max_length=254,
        help_text="User's email address (primary identifier)",
    )
    name = models.CharField(
        max_length=150,
        blank=True,
        default="",
        help_text="Display name",
    )
    role = models.CharField(
        max_length=20,
        choices=UserRole.choices,
        default=UserRole.GUEST,
        db_index=True,
        help_text="Directory role",
    )

    is_active = models.BooleanField(
        default=True,
        help_text="Whether this user account is active. Deselect instead of deleting.",
    )
    is_staff = models.BooleanField(
        default=False,
        help_text="Whether the user can access the admin site.",
    )

    date_joined = models.DateTimeField(
        auto_now_add=True,
        help_text="When the user account was created",
    )
    updated_at = models.DateTimeField(
        auto_now=True,
        help_text="When the user record was last modified",
    )

    USERNAME_FIELD = "email"
    REQUIRED_FIELDS = []

    objects = UserManager()

    class Meta:
        verbose_name = "user"
        verbose_name_plural = "users"
        ordering = ["-date_joined"]

    def __str__(self):
        return self.email

    def get_full_name(self):
        """Return the display name, falling back to the email address."""
        return self.name or self.email

    def get_short_name(self):
        return self.name.split(" ")[0] if self.name else self.email

    @property
    def is_directory_admin(self) -> bool:
        """Whether the user may govern downgrades and billing policy."""
        return self.role == UserRole.ADMIN or self.is_staff
