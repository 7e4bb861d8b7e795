"""
Settlement (remesa) views.
"""

from rest_framework import viewsets, status
from rest_framework.decorators import action

from users.permissions import IsAdminOrOfficeManager

from ..exceptions import BusinessException
from ..models import Settlement
from ..models.audit import convert_decimals
from ..services import SettlementService
from ..serializers.settlement_serializers import (
    SettlementSerializer, SettlementCreateSerializer, SettlementPreviewSerializer
)
from ..permissions import IsOfficeStaff
from .common import OfficeScopedMixin, error_response, success_response


class SettlementViewSet(OfficeScopedMixin, viewsets.ModelViewSet):
    """
    ViewSet for settlements.

    Settlements are visible through the shipments they reference. Figures
    are never edited, only recomputed.
    """

    queryset = Settlement.objects.all()
    permission_classes = [IsOfficeStaff]
    http_method_names = ['get', 'post', 'delete', 'head', 'options']
    filterset_fields = ['associate', 'vehicle']

    def get_serializer_class(self):
        """Return appropriate serializer based on action."""
        if self.action == 'create':
            return SettlementCreateSerializer
        elif self.action == 'preview':
            return SettlementPreviewSerializer
        else:
            return SettlementSerializer

    def get_permissions(self):
        if self.action in ['create', 'destroy', 'recompute']:
            return [IsAdminOrOfficeManager()]
        return super().get_permissions()

    def get_queryset(self):
        """Filter queryset to settlements referencing a visible shipment."""
        queryset = Settlement.objects.select_related('associate', 'vehicle').prefetch_related('items')
        if self.get_actor().is_global:
            return queryset
        visible = self.get_visibility().settlements(queryset, self.visible_shipment_ids())
        return queryset.filter(id__in=[s.id for s in visible])

    def create(self, request, *args, **kwargs):
        serializer = self.get_serializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data

        try:
            if data.get('dispatch_id'):
                self.require_visible_dispatch(data['dispatch_id'])
                settlement = SettlementService.create_for_dispatch(
                    data['dispatch_id'], request.user, scope=self.shipment_scope()
                )
            elif data.get('shipment_ids'):
                self.require_visible_shipments(data['shipment_ids'])
                settlement = SettlementService.create_settlement(
                    data['shipment_ids'], data['vehicle_id'], request.user
                )
            else:
                settlement = SettlementService.create_for_vehicle(
                    data['vehicle_id'], request.user, scope=self.shipment_scope()
                )
        except BusinessException as e:
            return error_response(e)
        return success_response(SettlementSerializer(settlement).data, status=status.HTTP_201_CREATED)

    def destroy(self, request, *args, **kwargs):
        settlement = self.get_object()

        try:
            SettlementService.delete_settlement(str(settlement.id), request.user)
        except BusinessException as e:
            return error_response(e)
        return success_response(None, status=status.HTTP_200_OK)

    @action(detail=False, methods=['post'])
    def preview(self, request):
        """Compute a settlement breakdown without storing it."""
        serializer = self.get_serializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        shipment_ids = serializer.validated_data['shipment_ids']

        try:
            self.require_visible_shipments(shipment_ids)
            breakdown = SettlementService.preview(shipment_ids)
        except BusinessException as e:
            return error_response(e)
        return success_response(convert_decimals(breakdown.as_dict()))

    @action(detail=True, methods=['post'])
    def recompute(self, request, pk=None):
        """Rewrite a settlement's figures from its current shipments."""
        settlement = self.get_object()

        try:
            updated = SettlementService.recompute(str(settlement.id))
        except BusinessException as e:
            return error_response(e)
        return success_response(SettlementSerializer(updated).data)
