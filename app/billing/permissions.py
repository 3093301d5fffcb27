"""
Permission classes for billing admin endpoints.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from rest_framework import permissions

if TYPE_CHECKING:
    from rest_framework.request import Request
    from rest_framework.views import APIView


class IsDirectoryAdmin(permissions.BasePermission):
    """
    Allows access only to directory admins (admin role or staff).

    Unauthenticated requests are rejected by IsAuthenticated first, so they
    get 401 rather than 403.
    """

    message = "Admin access required."

    def has_permission(self, request: Request, view: APIView) -> bool:
        user = request.user
        return bool(user and user.is_authenticated and user.is_directory_admin)
