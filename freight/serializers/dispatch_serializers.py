"""
Dispatch manifest serializers.
"""

from rest_framework import serializers

from ..models import Dispatch, DispatchItem


class DispatchItemSerializer(serializers.ModelSerializer):
    """Serializer for manifest members."""

    invoice_number = serializers.CharField(source='shipment.invoice_number', read_only=True)
    shipping_status = serializers.CharField(source='shipment.shipping_status', read_only=True)

    class Meta:
        model = DispatchItem
        fields = ['sequence_number', 'shipment', 'invoice_number', 'shipping_status']


class DispatchListSerializer(serializers.ModelSerializer):
    """Serializer for dispatch listing."""

    vehicle_plate = serializers.CharField(source='vehicle.plate', read_only=True)
    shipment_count = serializers.SerializerMethodField()

    class Meta:
        model = Dispatch
        fields = [
            'id', 'dispatch_number', 'vehicle', 'vehicle_plate',
            'origin_office_id', 'destination_office_id', 'status',
            'shipment_count', 'created_at', 'received_at'
        ]

    def get_shipment_count(self, obj):
        return obj.items.count()


class DispatchDetailSerializer(serializers.ModelSerializer):
    """Serializer for dispatch details."""

    vehicle_plate = serializers.CharField(source='vehicle.plate', read_only=True)
    items = DispatchItemSerializer(many=True, read_only=True)
    created_by_name = serializers.CharField(source='created_by.username', read_only=True, default=None)
    received_by_name = serializers.CharField(source='received_by.username', read_only=True, default=None)

    class Meta:
        model = Dispatch
        fields = [
            'id', 'dispatch_number', 'vehicle', 'vehicle_plate',
            'origin_office_id', 'destination_office_id', 'status', 'items',
            'created_by_name', 'received_by_name',
            'created_at', 'received_at', 'voided_at'
        ]
        read_only_fields = fields


class DispatchCreateSerializer(serializers.Serializer):
    """Serializer for creating a manifest."""

    shipment_ids = serializers.ListField(child=serializers.UUIDField(), allow_empty=False)
    vehicle_id = serializers.UUIDField()
    destination_office_id = serializers.CharField(max_length=50)


class DispatchReceiveSerializer(serializers.Serializer):
    """Serializer for receiving a manifest; unlisted members are reported missing."""

    verified_shipment_ids = serializers.ListField(child=serializers.UUIDField(), allow_empty=True)
