"""
Audit log model for freight operations.
"""

import uuid
from decimal import Decimal
from django.db import models
from django.conf import settings
from django.utils import timezone


def convert_decimals(obj):
    """Make Decimal and UUID values JSON serialisable."""
    if isinstance(obj, dict):
        return {k: convert_decimals(v) for k, v in obj.items()}
    elif isinstance(obj, (list, tuple)):
        return [convert_decimals(item) for item in obj]
    elif isinstance(obj, (Decimal, uuid.UUID)):
        return str(obj)
    return obj


class AuditLog(models.Model):
    """
    Audit trail entry for shipments, dispatches, vehicles and settlements.
    """

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)

    entity_type = models.CharField(max_length=50, help_text="Shipment, Dispatch, Vehicle, Settlement")
    entity_id = models.UUIDField()
    action = models.CharField(max_length=50, help_text="created, status_changed, voided, ...")

    user = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        related_name='freight_audit_logs'
    )

    old_values = models.JSONField(default=dict, blank=True)
    new_values = models.JSONField(default=dict, blank=True)
    field_changes = models.JSONField(default=dict, blank=True)

    timestamp = models.DateTimeField(default=timezone.now)
    notes = models.TextField(blank=True)

    class Meta:
        ordering = ['-timestamp']
        indexes = [
            models.Index(fields=['entity_type', 'entity_id', '-timestamp']),
            models.Index(fields=['action', '-timestamp']),
        ]

    def __str__(self):
        return f"{self.entity_type} {self.entity_id} - {self.action} by {self.user} at {self.timestamp}"

    @classmethod
    def log_change(cls, entity, action: str, user=None, old_values=None,
                   new_values=None, field_changes=None, notes=""):
        """
        Create an audit log entry for an entity change.

        Args:
            entity: The model instance being audited
            action: The action performed
            user: User who performed the action
            old_values: Previous state
            new_values: New state
            field_changes: Specific field changes
            notes: Additional notes
        """
        return cls.objects.create(
            entity_type=entity.__class__.__name__,
            entity_id=entity.id,
            action=action,
            user=user if user is not None and user.is_authenticated else None,
            old_values=convert_decimals(old_values or {}),
            new_values=convert_decimals(new_values or {}),
            field_changes=convert_decimals(field_changes or {}),
            notes=notes,
        )

    @classmethod
    def log_status_change(cls, entity, old_status: str, new_status: str, user=None,
                          notes="", field: str = "status"):
        """
        Log a change on one status axis of an entity.

        Args:
            entity: The model instance
            old_status: Previous status
            new_status: New status
            user: User making the change
            notes: Additional notes
            field: Name of the status field that changed
        """
        return cls.log_change(
            entity=entity,
            action='status_changed',
            user=user,
            old_values={field: old_status},
            new_values={field: new_status},
            field_changes={field: {'old': old_status, 'new': new_status}},
            notes=notes
        )
