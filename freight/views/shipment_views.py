"""
Shipment views for freight operations.
"""

from rest_framework import viewsets, status
from rest_framework.decorators import action

from ..config import RateConfig
from ..exceptions import BusinessException
from ..models import PaymentType, Shipment
from ..services import ShipmentService, compute_financials
from ..serializers.shipment_serializers import (
    ShipmentListSerializer, ShipmentDetailSerializer,
    ShipmentWriteSerializer, VehicleAssignmentSerializer
)
from ..serializers.fleet_serializers import LoadReportSerializer
from ..permissions import IsOfficeStaff, CanVoidShipments
from .common import OfficeScopedMixin, error_response, success_response


class ShipmentViewSet(OfficeScopedMixin, viewsets.ModelViewSet):
    """
    ViewSet for Shipment management.

    Provides creation, editing and lifecycle actions for shipments. Shipments
    are never deleted; they are voided.
    """

    queryset = Shipment.objects.all()
    permission_classes = [IsOfficeStaff]
    http_method_names = ['get', 'post', 'put', 'patch', 'head', 'options']
    filterset_fields = [
        'master_status', 'payment_status', 'shipping_status', 'payment_type',
        'vehicle', 'origin_office_id', 'destination_office_id'
    ]
    search_fields = ['invoice_number', 'sender_name', 'receiver_name']
    ordering_fields = ['created_at', 'total']

    def get_serializer_class(self):
        """Return appropriate serializer based on action."""
        if self.action in ['create', 'update', 'partial_update']:
            return ShipmentWriteSerializer
        elif self.action == 'list':
            return ShipmentListSerializer
        elif self.action == 'assign_vehicle':
            return VehicleAssignmentSerializer
        else:
            return ShipmentDetailSerializer

    def get_permissions(self):
        if self.action == 'void':
            return [CanVoidShipments()]
        return super().get_permissions()

    def get_queryset(self):
        """Filter queryset to the shipments the user's office can see."""
        return self.visible_shipments().select_related('vehicle').prefetch_related('merchandise')

    def create(self, request, *args, **kwargs):
        serializer = self.get_serializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        try:
            self.require_own_office(serializer.validated_data.get('origin_office_id'), 'create shipments for')
            shipment = ShipmentService.create_shipment(serializer.validated_data, request.user)
        except BusinessException as e:
            return error_response(e)
        return success_response(ShipmentDetailSerializer(shipment).data, status=status.HTTP_201_CREATED)

    def update(self, request, *args, **kwargs):
        shipment = self.get_object()
        serializer = self.get_serializer(data=request.data, partial=kwargs.pop('partial', False))
        serializer.is_valid(raise_exception=True)

        try:
            self.require_owned_shipments([shipment.id])
            updated = ShipmentService.update_shipment(str(shipment.id), serializer.validated_data, request.user)
        except BusinessException as e:
            return error_response(e)
        return success_response(ShipmentDetailSerializer(updated).data)

    @action(detail=False, methods=['post'])
    def assign_vehicle(self, request):
        """Load one or more pending shipments onto a vehicle."""
        serializer = self.get_serializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        shipment_ids = serializer.validated_data.get('shipment_ids') or []

        try:
            self.require_visible_shipments(shipment_ids)
            self.require_owned_shipments(shipment_ids)
            result = ShipmentService.assign_to_vehicle(
                shipment_ids, serializer.validated_data['vehicle_id'], request.user
            )
        except BusinessException as e:
            return error_response(e)

        return success_response({
            'shipments': ShipmentListSerializer(result.shipments, many=True).data,
            'load': LoadReportSerializer(result.load).data,
            'warnings': result.warnings,
        })

    @action(detail=True, methods=['post'])
    def unassign_vehicle(self, request, pk=None):
        """Take a pending shipment off its vehicle."""
        shipment = self.get_object()

        try:
            self.require_owned_shipments([shipment.id])
            updated = ShipmentService.unassign_from_vehicle(str(shipment.id), request.user)
        except BusinessException as e:
            return error_response(e)
        return success_response(ShipmentDetailSerializer(updated).data)

    @action(detail=True, methods=['post'])
    def void(self, request, pk=None):
        """Void a shipment."""
        shipment = self.get_object()

        try:
            self.require_owned_shipments([shipment.id])
            updated = ShipmentService.void_shipment(str(shipment.id), request.user)
        except BusinessException as e:
            return error_response(e)
        return success_response(ShipmentDetailSerializer(updated).data)

    @action(detail=True, methods=['post'])
    def register_payment(self, request, pk=None):
        """Register payment of a shipment at the office that collects it."""
        shipment = self.get_object()

        try:
            if shipment.payment_type == PaymentType.COLLECT_AT_DESTINATION:
                self.require_own_office(shipment.destination_office_id, 'collect payment for')
            else:
                self.require_owned_shipments([shipment.id])
            updated = ShipmentService.register_payment(str(shipment.id), request.user)
        except BusinessException as e:
            return error_response(e)
        return success_response(ShipmentDetailSerializer(updated).data)

    @action(detail=True, methods=['post'])
    def mark_delivered(self, request, pk=None):
        """Hand a shipment over to its receiver."""
        shipment = self.get_object()

        try:
            self.require_own_office(shipment.destination_office_id, 'deliver shipments for')
            updated = ShipmentService.mark_delivered(str(shipment.id), request.user)
        except BusinessException as e:
            return error_response(e)
        return success_response(ShipmentDetailSerializer(updated).data)

    @action(detail=True, methods=['get'])
    def financials(self, request, pk=None):
        """Recompute the financial breakdown of a shipment with current rates."""
        shipment = self.get_object()
        breakdown = compute_financials(shipment, RateConfig.from_settings()).quantized()
        return success_response({
            'invoice_number': shipment.invoice_number,
            'breakdown': {name: str(value) for name, value in breakdown.as_dict().items()},
        })
