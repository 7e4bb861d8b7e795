"""
Custom permissions for freight operations.
"""

from rest_framework.permissions import BasePermission

from .services.visibility import Actor


class IsOfficeStaff(BasePermission):
    """
    Allows access to users attached to an office or holding the
    all-offices capability. Row level filtering is done by the visibility
    filter, not here.
    """

    def has_permission(self, request, view):
        user = request.user
        if not user or not user.is_authenticated:
            return False
        actor = Actor.from_user(user)
        return actor.is_global or bool(actor.office_id)


class _CapabilityPermission(BasePermission):
    """Staff managers, or users granted the Django permission ``perm``."""

    perm = None

    def has_permission(self, request, view):
        user = request.user
        if not user or not user.is_authenticated:
            return False
        if getattr(user, 'is_admin', False) or getattr(user, 'is_office_manager', False):
            return True
        return user.has_perm(self.perm)


class CanVoidShipments(_CapabilityPermission):
    perm = 'freight.void_shipment'


class CanVoidDispatches(_CapabilityPermission):
    perm = 'freight.void_dispatch'


class CanReceiveDispatches(_CapabilityPermission):
    """
    Receiving is also open to any operator of the destination office.
    """

    perm = 'freight.receive_dispatch'

    def has_permission(self, request, view):
        user = request.user
        return bool(user and user.is_authenticated)

    def has_object_permission(self, request, view, obj):
        user = request.user
        actor = Actor.from_user(user)
        if actor.is_global or super().has_permission(request, view):
            return True
        return bool(actor.office_id) and obj.destination_office_id == actor.office_id
