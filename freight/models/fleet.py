"""
Fleet models: associates and the vehicles they own.
"""

import uuid
from decimal import Decimal
from django.db import models
from django.utils import timezone


class Associate(models.Model):
    """Independently owned transport contractor affiliated with the cooperative."""

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    code = models.CharField(max_length=30, unique=True)
    name = models.CharField(max_length=150)
    is_active = models.BooleanField(default=True)
    created_at = models.DateTimeField(default=timezone.now)

    class Meta:
        ordering = ['name']

    def __str__(self):
        return f"{self.code} - {self.name}"


class VehicleStatus(models.TextChoices):
    """Operating status of a vehicle."""
    AVAILABLE = 'AVAILABLE', 'Available'
    IN_TRANSIT = 'IN_TRANSIT', 'In Transit'
    MAINTENANCE = 'MAINTENANCE', 'Maintenance'


class Vehicle(models.Model):
    """
    Vehicle owned by an associate.

    Cargo capacity is advisory: loads past it produce a warning, never a
    rejection. Manifest membership is derived from dispatches.
    """

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    plate = models.CharField(max_length=20, unique=True)
    model_name = models.CharField(max_length=100, blank=True)
    associate = models.ForeignKey(
        Associate,
        on_delete=models.PROTECT,
        related_name='vehicles'
    )
    cargo_capacity_kg = models.DecimalField(
        max_digits=10,
        decimal_places=2,
        default=Decimal('0.00'),
        help_text="Registered cargo capacity in kg (0 means unknown)"
    )
    status = models.CharField(
        max_length=20,
        choices=VehicleStatus.choices,
        default=VehicleStatus.AVAILABLE
    )
    current_office_id = models.CharField(
        max_length=50,
        blank=True,
        help_text="Office where the vehicle currently is"
    )
    created_at = models.DateTimeField(default=timezone.now)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ['plate']

    def __str__(self):
        return f"{self.plate} ({self.status})"

    @property
    def snapshot(self):
        return {
            'vehicle_id': str(self.id),
            'plate': self.plate,
            'status': self.status,
            'current_office_id': self.current_office_id,
        }
