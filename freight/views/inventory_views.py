"""
Inventory view: goods held at offices, derived from visible shipments.
"""

from rest_framework.views import APIView

from ..models import ShippingStatus
from ..services import DispatchService, derive_inventory
from ..serializers.settlement_serializers import InventoryItemSerializer
from ..permissions import IsOfficeStaff
from .common import OfficeScopedMixin, success_response


class InventoryView(OfficeScopedMixin, APIView):
    """List inventory items, optionally for one holding office."""

    permission_classes = [IsOfficeStaff]

    def get(self, request):
        shipments = list(self.visible_shipments().prefetch_related('merchandise'))
        arrivals = DispatchService.arrival_offices(
            s.id for s in shipments if s.shipping_status == ShippingStatus.AT_DESTINATION_OFFICE
        )
        items = self.get_visibility().inventory(
            derive_inventory(shipments, arrivals), self.visible_shipment_ids()
        )

        office_id = request.query_params.get('office_id')
        if office_id:
            items = [item for item in items if item.office_id == office_id]

        return success_response(InventoryItemSerializer(items, many=True).data)
