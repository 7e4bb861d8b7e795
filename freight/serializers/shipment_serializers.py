"""
Shipment serializers for freight operations.
"""

from rest_framework import serializers

from ..models import Shipment, MerchandiseLine, PaymentType


class MerchandiseLineSerializer(serializers.ModelSerializer):
    """Serializer for merchandise lines."""

    class Meta:
        model = MerchandiseLine
        fields = ['id', 'category', 'description', 'quantity', 'weight', 'length', 'width', 'height']
        read_only_fields = ['id']


class ShipmentListSerializer(serializers.ModelSerializer):
    """Serializer for shipment listing."""

    vehicle_plate = serializers.CharField(source='vehicle.plate', read_only=True, default=None)

    class Meta:
        model = Shipment
        fields = [
            'id', 'invoice_number', 'origin_office_id', 'destination_office_id',
            'receiver_name', 'payment_type', 'payment_currency', 'vehicle', 'vehicle_plate',
            'master_status', 'payment_status', 'shipping_status',
            'chargeable_weight', 'total', 'created_at'
        ]


class ShipmentDetailSerializer(serializers.ModelSerializer):
    """Serializer for shipment details, financial snapshot included."""

    merchandise = MerchandiseLineSerializer(many=True, read_only=True)
    vehicle_plate = serializers.CharField(source='vehicle.plate', read_only=True, default=None)
    created_by_name = serializers.CharField(source='created_by.username', read_only=True, default=None)

    class Meta:
        model = Shipment
        fields = [
            'id', 'invoice_number', 'origin_office_id', 'destination_office_id',
            'sender_name', 'receiver_name', 'payment_type', 'payment_currency',
            'has_insurance', 'declared_value', 'insurance_percentage',
            'has_discount', 'discount_percentage',
            'vehicle', 'vehicle_plate',
            'master_status', 'payment_status', 'shipping_status',
            'chargeable_weight', 'freight', 'insurance_cost', 'handling', 'discount',
            'subtotal', 'postal_contribution', 'vat', 'foreign_currency_surcharge', 'total',
            'merchandise', 'notes', 'created_by_name',
            'paid_at', 'delivered_at', 'voided_at', 'created_at', 'updated_at'
        ]
        read_only_fields = fields


class ShipmentWriteSerializer(serializers.Serializer):
    """Serializer for creating and editing shipments."""

    origin_office_id = serializers.CharField(max_length=50, required=False)
    destination_office_id = serializers.CharField(max_length=50)
    sender_name = serializers.CharField(max_length=150, required=False, allow_blank=True)
    receiver_name = serializers.CharField(max_length=150, required=False, allow_blank=True)
    payment_type = serializers.ChoiceField(choices=PaymentType.choices, required=False)
    payment_currency = serializers.CharField(max_length=3, required=False)
    has_insurance = serializers.BooleanField(required=False)
    declared_value = serializers.DecimalField(max_digits=14, decimal_places=2, required=False)
    insurance_percentage = serializers.DecimalField(max_digits=5, decimal_places=2, required=False, allow_null=True)
    has_discount = serializers.BooleanField(required=False)
    discount_percentage = serializers.DecimalField(max_digits=5, decimal_places=2, required=False)
    notes = serializers.CharField(required=False, allow_blank=True)
    merchandise = MerchandiseLineSerializer(many=True)

    def validate_payment_currency(self, value):
        return value.upper()

    def validate_merchandise(self, value):
        if not value:
            raise serializers.ValidationError("At least one merchandise line is required")
        return value

    def validate(self, data):
        origin = data.get('origin_office_id')
        destination = data.get('destination_office_id')
        if origin and destination and origin == destination:
            raise serializers.ValidationError("Origin and destination offices must differ")
        return data


class VehicleAssignmentSerializer(serializers.Serializer):
    """Serializer for loading shipments onto a vehicle."""

    vehicle_id = serializers.UUIDField()
    shipment_ids = serializers.ListField(child=serializers.UUIDField(), allow_empty=False, required=False)
