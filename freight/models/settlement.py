"""
Settlement (remesa) models.
"""

import uuid
from decimal import Decimal
from django.db import models
from django.conf import settings
from django.utils import timezone


class Settlement(models.Model):
    """
    Financial reconciliation between the cooperative and an associate.

    Every monetary field is derived from the member shipments and is only
    written by ``SettlementService`` through full recomputation.
    """

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    settlement_number = models.CharField(max_length=50, unique=True)
    associate = models.ForeignKey(
        'Associate',
        on_delete=models.PROTECT,
        related_name='settlements'
    )
    vehicle = models.ForeignKey(
        'Vehicle',
        on_delete=models.PROTECT,
        related_name='settlements'
    )

    # Derived figures
    amount_receivable = models.DecimalField(
        max_digits=14,
        decimal_places=2,
        default=Decimal('0.00'),
        help_text="Associate share of paid-at-origin shipments owed to the cooperative"
    )
    total_at_destination = models.DecimalField(
        max_digits=14,
        decimal_places=2,
        default=Decimal('0.00'),
        help_text="Amount still to be collected at destination (informational)"
    )
    cooperative_share = models.DecimalField(max_digits=14, decimal_places=2, default=Decimal('0.00'))
    associate_share = models.DecimalField(max_digits=14, decimal_places=2, default=Decimal('0.00'))
    discrepancy_count = models.PositiveIntegerField(default=0)
    breakdown = models.JSONField(default=dict, blank=True, help_text="Per-bucket breakdown")

    created_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name='created_settlements'
    )
    created_at = models.DateTimeField(default=timezone.now)
    recomputed_at = models.DateTimeField(null=True, blank=True)

    class Meta:
        ordering = ['-created_at']
        indexes = [
            models.Index(fields=['associate', '-created_at']),
            models.Index(fields=['vehicle', '-created_at']),
        ]

    def __str__(self):
        return f"Settlement {self.settlement_number} - {self.associate}"

    def save(self, *args, **kwargs):
        if not self.settlement_number:
            timestamp = timezone.now().strftime('%Y%m%d%H%M%S')
            self.settlement_number = f"R-{timestamp}-{str(self.id)[:8].upper()}"
        super().save(*args, **kwargs)

    @property
    def shipment_ids(self):
        return [item.shipment_id for item in self.items.all()]


class SettlementItem(models.Model):
    """Membership row linking a settlement to one shipment."""

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    settlement = models.ForeignKey(
        Settlement,
        on_delete=models.CASCADE,
        related_name='items'
    )
    shipment = models.ForeignKey(
        'Shipment',
        on_delete=models.PROTECT,
        related_name='settlement_items'
    )

    class Meta:
        unique_together = ['settlement', 'shipment']

    def __str__(self):
        return f"Shipment {self.shipment_id} in Settlement {self.settlement_id}"
