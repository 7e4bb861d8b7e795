"""
Dispatch manifest models.
"""

import uuid
from django.db import models
from django.conf import settings
from django.utils import timezone


class DispatchStatus(models.TextChoices):
    """Dispatch manifest status."""
    IN_TRANSIT = 'IN_TRANSIT', 'In Transit'
    RECEIVED = 'RECEIVED', 'Received'
    VOIDED = 'VOIDED', 'Voided'


class Dispatch(models.Model):
    """
    Batch of shipments moving together on one vehicle between two offices.

    Membership lives in DispatchItem and is written once, at creation.
    """

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    dispatch_number = models.CharField(max_length=50, unique=True)
    vehicle = models.ForeignKey(
        'Vehicle',
        on_delete=models.PROTECT,
        related_name='dispatches'
    )
    origin_office_id = models.CharField(max_length=50)
    destination_office_id = models.CharField(max_length=50)
    status = models.CharField(
        max_length=20,
        choices=DispatchStatus.choices,
        default=DispatchStatus.IN_TRANSIT
    )

    created_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name='created_dispatches'
    )
    received_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name='received_dispatches'
    )
    created_at = models.DateTimeField(default=timezone.now)
    received_at = models.DateTimeField(null=True, blank=True)
    voided_at = models.DateTimeField(null=True, blank=True)

    class Meta:
        ordering = ['-created_at']
        indexes = [
            models.Index(fields=['origin_office_id', 'status']),
            models.Index(fields=['destination_office_id', 'status']),
            models.Index(fields=['vehicle', 'status']),
        ]
        permissions = [
            ('receive_dispatch', 'Can receive dispatch manifests'),
            ('void_dispatch', 'Can void dispatch manifests'),
        ]

    def __str__(self):
        return f"Dispatch {self.dispatch_number} {self.origin_office_id} -> {self.destination_office_id} ({self.status})"

    def save(self, *args, **kwargs):
        if not self.dispatch_number:
            timestamp = timezone.now().strftime('%Y%m%d%H%M%S')
            self.dispatch_number = f"D-{timestamp}-{str(self.id)[:8].upper()}"
        super().save(*args, **kwargs)

    @property
    def shipment_ids(self):
        return [item.shipment_id for item in self.items.all()]

    @property
    def snapshot(self):
        return {
            'dispatch_id': str(self.id),
            'dispatch_number': self.dispatch_number,
            'status': self.status,
        }


class DispatchItem(models.Model):
    """Membership row linking a dispatch to one shipment."""

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    dispatch = models.ForeignKey(
        Dispatch,
        on_delete=models.CASCADE,
        related_name='items'
    )
    shipment = models.ForeignKey(
        'Shipment',
        on_delete=models.PROTECT,
        related_name='dispatch_items'
    )
    sequence_number = models.PositiveIntegerField()

    class Meta:
        ordering = ['dispatch', 'sequence_number']
        unique_together = ['dispatch', 'shipment']

    def __str__(self):
        return f"Shipment {self.shipment_id} in Dispatch {self.dispatch_id}"
