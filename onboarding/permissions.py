"""
Role based access control.

Permissions are ``(resource, action)`` pairs held in a static table per
role.  ``*`` matches any resource or any action.  ``SUPER_ADMIN`` (and
Django superusers) pass every check.
"""
from __future__ import annotations

from rest_framework.exceptions import NotAuthenticated, PermissionDenied
from rest_framework.permissions import BasePermission

ROLE_PERMISSIONS: dict[str, tuple[tuple[str, str], ...]] = {
    'SUPER_ADMIN': (
        ('*', '*'),
    ),
    'ADMIN': (
        ('onboarding', 'read'),
        ('onboarding', 'update'),
        ('onboarding', 'evaluate'),
        ('onboarding', 'manage'),
        ('onboarding', 'verify'),
        ('onboarding', 'export'),
        ('onboarding', 'delete'),
        ('contracts', '*'),
        ('hospitals', 'read'),
        ('hospitals', 'create'),
        ('hospitals', 'update'),
        ('hospitals', 'delete'),
        ('users', 'read'),
        ('users', 'create'),
        ('users', 'update'),
        ('users', 'delete'),
    ),
    'HOSPITAL_ADMIN': (
        ('onboarding', 'read'),
        ('contracts', 'read'),
        ('hospitals', 'read'),
        ('hospitals', 'update'),
        ('patients', 'read'),
        ('patients', 'create'),
        ('patients', 'update'),
        ('patients', 'delete'),
        ('appointments', '*'),
        ('billing', '*'),
        ('inventory', '*'),
        ('staff', '*'),
    ),
    'DOCTOR': (
        ('patients', 'read'),
        ('patients', 'update'),
        ('appointments', 'read'),
        ('appointments', 'update'),
        ('medical-records', 'read'),
        ('medical-records', 'create'),
        ('medical-records', 'update'),
        ('prescriptions', 'create'),
    ),
    'NURSE': (
        ('patients', 'read'),
        ('patients', 'update'),
        ('appointments', 'read'),
        ('medical-records', 'read'),
        ('medical-records', 'create'),
    ),
    'RECEPTIONIST': (
        ('patients', 'read'),
        ('patients', 'create'),
        ('appointments', 'read'),
        ('appointments', 'create'),
        ('appointments', 'update'),
    ),
    'PATIENT': (
        ('appointments', 'read'),
        ('appointments', 'create'),
        ('medical-records', 'read'),
        ('prescriptions', 'read'),
        ('billing', 'read'),
    ),
}


def has_permission(role: str | None, resource: str, action: str) -> bool:
    for res, act in ROLE_PERMISSIONS.get(role or '', ()):
        if res in ('*', resource) and act in ('*', action):
            return True
    return False


def authorize(principal, resource: str, action: str) -> bool:
    """Return True if ``principal`` may perform ``action`` on ``resource``."""
    if not (principal and getattr(principal, 'is_authenticated', False)):
        return False
    if getattr(principal, 'is_superuser', False):
        return True
    return has_permission(getattr(principal, 'role', None), resource, action)


def require(resource: str, action: str) -> type[BasePermission]:
    """Build a DRF permission class for one ``(resource, action)`` pair."""

    class _Require(BasePermission):
        message = f"You don't have permission to {action} {resource}."

        def has_permission(self, request, view) -> bool:  # type: ignore[override]
            return authorize(getattr(request, 'user', None), resource, action)

    _Require.__name__ = f"Require_{resource}_{action}".replace('-', '_')
    return _Require


def check(request, resource: str, action: str) -> None:
    """Raise the DRF error for a request that may not perform ``action``.

    For views whose methods differ in permission (public POST, protected GET).
    """
    user = getattr(request, 'user', None)
    if not (user and getattr(user, 'is_authenticated', False)):
        raise NotAuthenticated()
    if not authorize(user, resource, action):
        raise PermissionDenied(f"You don't have permission to {action} {resource}.")
