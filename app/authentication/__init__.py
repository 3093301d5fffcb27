"""
Authentication application.

Provides the email-based User model with a directory role. Token issuance
is handled by djangorestframework-simplejwt; this app owns no endpoints.

Usage:
    from authentication.models import User, UserRole
"""
