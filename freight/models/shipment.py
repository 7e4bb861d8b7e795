"""
Shipment (invoice) models for freight operations.
"""

import uuid
from decimal import Decimal
from django.db import models
from django.conf import settings
from django.utils import timezone


class MasterStatus(models.TextChoices):
    """Administrative status of a shipment."""
    ACTIVE = 'ACTIVE', 'Active'
    VOIDED = 'VOIDED', 'Voided'


class PaymentStatus(models.TextChoices):
    """Payment status of a shipment."""
    PENDING = 'PENDING', 'Pending'
    PAID = 'PAID', 'Paid'


class ShippingStatus(models.TextChoices):
    """Physical status of a shipment following the transport lifecycle."""
    PENDING_DISPATCH = 'PENDING_DISPATCH', 'Pending Dispatch'
    IN_TRANSIT = 'IN_TRANSIT', 'In Transit'
    AT_DESTINATION_OFFICE = 'AT_DESTINATION_OFFICE', 'At Destination Office'
    DELIVERED = 'DELIVERED', 'Delivered'
    REPORTED_MISSING = 'REPORTED_MISSING', 'Reported Missing'


class PaymentType(models.TextChoices):
    """Who pays the freight and where it is collected."""
    PAID_AT_ORIGIN = 'PAID_AT_ORIGIN', 'Paid at Origin'
    COLLECT_AT_DESTINATION = 'COLLECT_AT_DESTINATION', 'Collect at Destination'


class Shipment(models.Model):
    """
    A single billable consignment moving between two offices.

    The monetary fields are a snapshot of the financial calculator output and
    are only written through ``apply_financials``.
    """

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    invoice_number = models.CharField(
        max_length=50,
        unique=True,
        help_text="Unique invoice identifier (auto-generated)"
    )

    # Offices (ids from the offices master data)
    origin_office_id = models.CharField(max_length=50, help_text="Office where the shipment was created")
    destination_office_id = models.CharField(max_length=50, help_text="Office the shipment is bound to")

    # Parties
    sender_name = models.CharField(max_length=150, blank=True)
    receiver_name = models.CharField(max_length=150, blank=True)

    # Payment terms
    payment_type = models.CharField(
        max_length=30,
        choices=PaymentType.choices,
        default=PaymentType.PAID_AT_ORIGIN
    )
    payment_currency = models.CharField(
        max_length=3,
        default='VES',
        help_text="Currency the customer pays in"
    )

    # Insurance and discount inputs
    has_insurance = models.BooleanField(default=False)
    declared_value = models.DecimalField(max_digits=14, decimal_places=2, default=Decimal('0.00'))
    insurance_percentage = models.DecimalField(
        max_digits=5,
        decimal_places=2,
        null=True,
        blank=True,
        help_text="Insurance rate in percent; the company default applies when empty"
    )
    has_discount = models.BooleanField(default=False)
    discount_percentage = models.DecimalField(max_digits=5, decimal_places=2, default=Decimal('0.00'))

    # Vehicle assignment
    vehicle = models.ForeignKey(
        'Vehicle',
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name='shipments',
        help_text="Vehicle the shipment is loaded on"
    )

    # Status axes
    master_status = models.CharField(
        max_length=10,
        choices=MasterStatus.choices,
        default=MasterStatus.ACTIVE
    )
    payment_status = models.CharField(
        max_length=10,
        choices=PaymentStatus.choices,
        default=PaymentStatus.PENDING
    )
    shipping_status = models.CharField(
        max_length=30,
        choices=ShippingStatus.choices,
        default=ShippingStatus.PENDING_DISPATCH
    )

    # Financial snapshot
    chargeable_weight = models.DecimalField(max_digits=12, decimal_places=3, default=Decimal('0.000'))
    freight = models.DecimalField(max_digits=14, decimal_places=2, default=Decimal('0.00'))
    insurance_cost = models.DecimalField(max_digits=14, decimal_places=2, default=Decimal('0.00'))
    handling = models.DecimalField(max_digits=14, decimal_places=2, default=Decimal('0.00'))
    discount = models.DecimalField(max_digits=14, decimal_places=2, default=Decimal('0.00'))
    subtotal = models.DecimalField(max_digits=14, decimal_places=2, default=Decimal('0.00'))
    postal_contribution = models.DecimalField(max_digits=14, decimal_places=2, default=Decimal('0.00'))
    vat = models.DecimalField(max_digits=14, decimal_places=2, default=Decimal('0.00'))
    foreign_currency_surcharge = models.DecimalField(max_digits=14, decimal_places=2, default=Decimal('0.00'))
    total = models.DecimalField(max_digits=14, decimal_places=2, default=Decimal('0.00'))

    # Tracking
    created_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name='created_shipments'
    )
    paid_at = models.DateTimeField(null=True, blank=True)
    delivered_at = models.DateTimeField(null=True, blank=True)
    voided_at = models.DateTimeField(null=True, blank=True)
    created_at = models.DateTimeField(default=timezone.now)
    updated_at = models.DateTimeField(auto_now=True)

    notes = models.TextField(blank=True)

    class Meta:
        ordering = ['-created_at']
        indexes = [
            models.Index(fields=['origin_office_id', 'shipping_status']),
            models.Index(fields=['destination_office_id', 'shipping_status']),
            models.Index(fields=['vehicle', 'shipping_status']),
            models.Index(fields=['master_status']),
        ]
        permissions = [
            ('manage_all_offices', 'Can see and operate shipments of every office'),
            ('manage_all_expenses', 'Can see expenses of every office'),
            ('void_shipment', 'Can void shipments'),
        ]

    def __str__(self):
        return f"Invoice {self.invoice_number} ({self.shipping_status})"

    def save(self, *args, **kwargs):
        """Override save to auto-generate the invoice number if not provided."""
        if not self.invoice_number:
            timestamp = timezone.now().strftime('%Y%m%d%H%M%S')
            self.invoice_number = f"INV-{timestamp}-{str(self.id)[:8].upper()}"
        super().save(*args, **kwargs)

    def apply_financials(self, breakdown):
        """Copy a calculator breakdown onto the snapshot fields (not saved)."""
        rounded = breakdown.quantized()
        for name in rounded.FIELDS:
            setattr(self, name, getattr(rounded, name))
        self.chargeable_weight = breakdown.chargeable_weight.quantize(Decimal('0.001'))

    @property
    def is_voided(self):
        return self.master_status == MasterStatus.VOIDED

    @property
    def status_snapshot(self):
        """Current value of every status axis, attached to state-conflict errors."""
        return {
            'shipment_id': str(self.id),
            'invoice_number': self.invoice_number,
            'master_status': self.master_status,
            'payment_status': self.payment_status,
            'shipping_status': self.shipping_status,
            'vehicle_id': str(self.vehicle_id) if self.vehicle_id else None,
        }


class MerchandiseLine(models.Model):
    """One kind of package within a shipment."""

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    shipment = models.ForeignKey(
        Shipment,
        on_delete=models.CASCADE,
        related_name='merchandise'
    )
    category = models.CharField(max_length=100, blank=True, help_text="Declared merchandise category")
    description = models.CharField(max_length=255, blank=True)
    quantity = models.DecimalField(max_digits=10, decimal_places=2, default=Decimal('1'))
    weight = models.DecimalField(max_digits=10, decimal_places=3, default=Decimal('0'), help_text="Real weight per unit in kg")
    length = models.DecimalField(max_digits=10, decimal_places=2, default=Decimal('0'), help_text="cm")
    width = models.DecimalField(max_digits=10, decimal_places=2, default=Decimal('0'), help_text="cm")
    height = models.DecimalField(max_digits=10, decimal_places=2, default=Decimal('0'), help_text="cm")

    class Meta:
        ordering = ['shipment', 'id']

    def __str__(self):
        return f"{self.quantity} x {self.description or self.category} ({self.shipment.invoice_number})"
