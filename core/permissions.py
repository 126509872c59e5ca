"""
Custom permission classes for role based access control.
"""
from rest_framework.permissions import BasePermission, SAFE_METHODS

MANAGER_ROLES = {"manager", "admin"}
STAFF_ROLES = {"receptionist", "veterinarian", "sales", "manager", "admin"}


def _role(request):
    user = getattr(request, "user", None)
    if not (user and user.is_authenticated):
        return None
    return getattr(user, "role", None)


class IsCustomerRole(BasePermission):
    """Allow access only to customers."""
    def has_permission(self, request, view) -> bool:  # type: ignore[override]
        return _role(request) == "customer"


class IsReceptionistRole(BasePermission):
    def has_permission(self, request, view) -> bool:  # type: ignore[override]
        return _role(request) == "receptionist"


class IsVetRole(BasePermission):
    def has_permission(self, request, view) -> bool:  # type: ignore[override]
        return _role(request) == "veterinarian"


class IsSalesRole(BasePermission):
    def has_permission(self, request, view) -> bool:  # type: ignore[override]
        return _role(request) == "sales"


class IsManagerRole(BasePermission):
    """Branch managers and chain administrators."""
    def has_permission(self, request, view) -> bool:  # type: ignore[override]
        return _role(request) in MANAGER_ROLES


class IsStaffRole(BasePermission):
    """Any employee account."""
    def has_permission(self, request, view) -> bool:  # type: ignore[override]
        return _role(request) in STAFF_ROLES


class IsManagerOrReadOnly(BasePermission):
    """Reads for any authenticated user, writes for managers."""
    def has_permission(self, request, view) -> bool:  # type: ignore[override]
        if request.method in SAFE_METHODS:
            return _role(request) is not None
        return _role(request) in MANAGER_ROLES

