import logging

from rest_framework.exceptions import PermissionDenied
from rest_framework.permissions import BasePermission

from core.clients.supabase_client import fetch_one
from core.exceptions import ServiceError

logger = logging.getLogger(__name__)

ADMIN_REQUIRED_MESSAGE = "Admin privileges required"


def is_admin(user) -> bool:
    """Two-tier role check: token claim first, then the ``users`` table.

    The answer is memoised on the user object for the rest of the request.
    """
    cached = getattr(user, '_is_admin', None)
    if cached is not None:
        return cached

    if user.has_admin_claim:
        user._is_admin = True
        return True

    row = fetch_one('users', 'id', user.id, columns='role')
    user._is_admin = bool(row and row.get('role') == 'admin')
    return user._is_admin


class IsAdmin(BasePermission):
    """Allow access only to authenticated admins."""

    message = ADMIN_REQUIRED_MESSAGE

    def has_permission(self, request, view):
        user = request.user
        if not (user and user.is_authenticated):
            return False
        try:
            return is_admin(user)
        except Exception as e:
            logger.error(f"Admin role lookup failed for {user.id}: {str(e)}")
            raise ServiceError("Admin role lookup failed") from e


def ensure_owner(user, record: dict, owner_field: str = 'user_id') -> None:
    """Raise PermissionDenied unless ``user`` owns ``record`` or is an admin."""
    if str(record.get(owner_field)) == user.id:
        return
    if is_admin(user):
        return
    raise PermissionDenied("You do not have permission to access this resource")
