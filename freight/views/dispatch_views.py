"""
Dispatch manifest views.
"""

from django.db.models import Q
from rest_framework import viewsets, status
from rest_framework.decorators import action

from ..exceptions import BusinessException
from ..models import Dispatch
from ..services import DispatchService
from ..serializers.dispatch_serializers import (
    DispatchListSerializer, DispatchDetailSerializer,
    DispatchCreateSerializer, DispatchReceiveSerializer
)
from ..serializers.fleet_serializers import VehicleSerializer
from ..serializers.shipment_serializers import ShipmentListSerializer
from ..permissions import IsOfficeStaff, CanReceiveDispatches, CanVoidDispatches
from .common import OfficeScopedMixin, error_response, success_response


def _result_data(result):
    return {
        'dispatch': DispatchDetailSerializer(result.dispatch).data,
        'vehicle': VehicleSerializer(result.vehicle).data,
        'shipments': ShipmentListSerializer(result.shipments, many=True).data,
        'missing_shipment_ids': result.missing_ids,
        'before': result.before,
    }


class DispatchViewSet(OfficeScopedMixin, viewsets.ReadOnlyModelViewSet):
    """
    ViewSet for dispatch manifests.

    Manifests are created, received or voided through actions; each action
    returns the manifest, vehicle and shipments after the change.
    """

    queryset = Dispatch.objects.all()
    permission_classes = [IsOfficeStaff]
    filterset_fields = ['status', 'vehicle', 'origin_office_id', 'destination_office_id']
    search_fields = ['dispatch_number', 'vehicle__plate']

    def get_serializer_class(self):
        """Return appropriate serializer based on action."""
        if self.action == 'list':
            return DispatchListSerializer
        elif self.action == 'create':
            return DispatchCreateSerializer
        elif self.action == 'receive':
            return DispatchReceiveSerializer
        else:
            return DispatchDetailSerializer

    def get_permissions(self):
        if self.action == 'receive':
            return [CanReceiveDispatches()]
        elif self.action == 'void':
            return [CanVoidDispatches()]
        return super().get_permissions()

    def get_queryset(self):
        """Filter queryset to manifests leaving or reaching the user's office."""
        queryset = Dispatch.objects.select_related('vehicle').prefetch_related('items__shipment')
        actor = self.get_actor()
        if actor.is_global:
            return queryset
        if not actor.office_id:
            return queryset.none()
        return queryset.filter(
            Q(origin_office_id=actor.office_id) | Q(destination_office_id=actor.office_id)
        )

    def create(self, request, *args, **kwargs):
        serializer = self.get_serializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data

        try:
            self.require_visible_shipments(data['shipment_ids'])
            self.require_owned_shipments(data['shipment_ids'])
            result = DispatchService.create_dispatch(
                data['shipment_ids'], data['vehicle_id'], data['destination_office_id'], request.user
            )
        except BusinessException as e:
            return error_response(e)
        return success_response(_result_data(result), status=status.HTTP_201_CREATED)

    @action(detail=True, methods=['post'])
    def receive(self, request, pk=None):
        """Receive a manifest; members not verified are reported missing."""
        dispatch = self.get_object()
        serializer = self.get_serializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        try:
            self.require_own_office(dispatch.destination_office_id, 'receive manifests for')
            result = DispatchService.receive_dispatch(
                str(dispatch.id), serializer.validated_data['verified_shipment_ids'], request.user
            )
        except BusinessException as e:
            return error_response(e)
        return success_response(_result_data(result))

    @action(detail=True, methods=['post'])
    def void(self, request, pk=None):
        """Void a manifest still in transit."""
        dispatch = self.get_object()

        try:
            self.require_own_office(dispatch.origin_office_id, 'void manifests of')
            result = DispatchService.void_dispatch(str(dispatch.id), request.user)
        except BusinessException as e:
            return error_response(e)
        return success_response(_result_data(result))

    @action(detail=True, methods=['get'])
    def manifest(self, request, pk=None):
        """Generate and return the manifest document data."""
        dispatch = self.get_object()

        try:
            manifest = DispatchService.generate_manifest(str(dispatch.id))
        except BusinessException as e:
            return error_response(e)
        return success_response(manifest)
