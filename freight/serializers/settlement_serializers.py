"""
Settlement (remesa) serializers.
"""

from rest_framework import serializers

from ..models import Settlement


class SettlementSerializer(serializers.ModelSerializer):
    """Serializer for stored settlements."""

    associate_name = serializers.CharField(source='associate.name', read_only=True)
    vehicle_plate = serializers.CharField(source='vehicle.plate', read_only=True)
    shipment_ids = serializers.ListField(child=serializers.UUIDField(), read_only=True)

    class Meta:
        model = Settlement
        fields = [
            'id', 'settlement_number', 'associate', 'associate_name',
            'vehicle', 'vehicle_plate', 'shipment_ids',
            'amount_receivable', 'total_at_destination',
            'cooperative_share', 'associate_share', 'discrepancy_count',
            'breakdown', 'created_at', 'recomputed_at'
        ]
        read_only_fields = fields


class SettlementCreateSerializer(serializers.Serializer):
    """
    Serializer for creating a settlement.

    Either an explicit list of shipments on ``vehicle_id``, every unsettled
    shipment on ``vehicle_id``, or the unsettled members of ``dispatch_id``.
    """

    vehicle_id = serializers.UUIDField(required=False)
    dispatch_id = serializers.UUIDField(required=False)
    shipment_ids = serializers.ListField(child=serializers.UUIDField(), allow_empty=False, required=False)

    def validate(self, data):
        if not data.get('vehicle_id') and not data.get('dispatch_id'):
            raise serializers.ValidationError("Either vehicle_id or dispatch_id is required")
        if data.get('dispatch_id') and data.get('shipment_ids'):
            raise serializers.ValidationError("shipment_ids cannot be combined with dispatch_id")
        return data


class SettlementPreviewSerializer(serializers.Serializer):
    """Serializer for previewing a settlement without storing it."""

    shipment_ids = serializers.ListField(child=serializers.CharField(), allow_empty=True)


class InventoryItemSerializer(serializers.Serializer):
    """Serializer for derived inventory items."""

    shipment_id = serializers.CharField()
    invoice_number = serializers.CharField()
    category = serializers.CharField()
    description = serializers.CharField()
    quantity = serializers.DecimalField(max_digits=12, decimal_places=2)
    chargeable_weight = serializers.DecimalField(max_digits=12, decimal_places=3)
    shipping_status = serializers.CharField()
    office_id = serializers.CharField(allow_null=True)
