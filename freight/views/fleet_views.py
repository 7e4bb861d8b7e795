"""
Fleet views: associates and vehicles.
"""

from rest_framework import viewsets
from rest_framework.decorators import action

from users.permissions import IsAdmin, IsAdminOrOfficeManager, IsOperatorOrAbove

from ..models import Associate, Vehicle
from ..services import ShipmentService
from ..serializers.fleet_serializers import (
    AssociateSerializer, VehicleSerializer, LoadReportSerializer
)
from .common import success_response


class FleetPermissionMixin:
    """Anyone signed in may read; ``write_permission`` guards changes."""

    write_permission = IsAdminOrOfficeManager

    def get_permissions(self):
        if self.action in ['list', 'retrieve', 'load']:
            return [IsOperatorOrAbove()]
        return [self.write_permission()]


class AssociateViewSet(FleetPermissionMixin, viewsets.ModelViewSet):
    """ViewSet for associates."""

    queryset = Associate.objects.all()
    serializer_class = AssociateSerializer
    write_permission = IsAdmin
    http_method_names = ['get', 'post', 'put', 'patch', 'head', 'options']
    filterset_fields = ['is_active']


class VehicleViewSet(FleetPermissionMixin, viewsets.ModelViewSet):
    """ViewSet for vehicles."""

    queryset = Vehicle.objects.select_related('associate')
    serializer_class = VehicleSerializer
    http_method_names = ['get', 'post', 'put', 'patch', 'head', 'options']
    filterset_fields = ['associate', 'status', 'current_office_id']
    search_fields = ['plate', 'associate__name']

    @action(detail=True, methods=['get'])
    def load(self, request, pk=None):
        """Current advisory load of the vehicle."""
        vehicle = self.get_object()
        report = ShipmentService.vehicle_load(vehicle)
        return success_response(LoadReportSerializer(report).data)
