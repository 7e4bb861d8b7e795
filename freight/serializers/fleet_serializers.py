"""
Fleet serializers: associates and vehicles.
"""

from rest_framework import serializers

from ..models import Associate, Vehicle


class AssociateSerializer(serializers.ModelSerializer):
    """Serializer for associates."""

    class Meta:
        model = Associate
        fields = ['id', 'code', 'name', 'is_active', 'created_at']
        read_only_fields = ['id', 'created_at']


class VehicleSerializer(serializers.ModelSerializer):
    """Serializer for vehicles."""

    associate_name = serializers.CharField(source='associate.name', read_only=True)

    class Meta:
        model = Vehicle
        fields = [
            'id', 'plate', 'model_name', 'associate', 'associate_name',
            'cargo_capacity_kg', 'status', 'current_office_id', 'created_at', 'updated_at'
        ]
        read_only_fields = ['id', 'status', 'created_at', 'updated_at']

    def validate_cargo_capacity_kg(self, value):
        if value < 0:
            raise serializers.ValidationError("Cargo capacity cannot be negative")
        return value


class LoadReportSerializer(serializers.Serializer):
    """Serializer for the advisory load of a vehicle."""

    vehicle_id = serializers.CharField()
    capacity_kg = serializers.DecimalField(max_digits=10, decimal_places=2)
    current_load_kg = serializers.DecimalField(max_digits=12, decimal_places=3)
    remaining_kg = serializers.DecimalField(max_digits=12, decimal_places=3, allow_null=True)
    shipment_count = serializers.IntegerField()
    overloaded = serializers.BooleanField()
