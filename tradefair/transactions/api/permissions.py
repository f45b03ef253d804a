"""Permission classes for the Transactions API."""

from rest_framework.permissions import SAFE_METHODS
from rest_framework.permissions import BasePermission


def is_transaction_admin(user) -> bool:
    if not getattr(user, "is_authenticated", False):
        return False
    return bool(getattr(user, "receives_admin_updates", False))


class IsOwnerOrTransactionAdmin(BasePermission):
    """Owners may read their transactions; only admins may change status."""

    def has_permission(self, request, view):
        if view.action == "partial_update":
            return is_transaction_admin(request.user)
        return bool(request.user and request.user.is_authenticated)

    def has_object_permission(self, request, view, obj):
        if is_transaction_admin(request.user):
            return True
        return request.method in SAFE_METHODS and obj.user_id == request.user.id
