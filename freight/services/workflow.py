"""
Workflow rules for freight operations.

Each status axis has a closed transition table. Anything outside the table,
including re-applying the current status, is a state conflict.
"""

from ..exceptions import InvalidTransitionException
from ..models import (
    MasterStatus, PaymentStatus, ShippingStatus, DispatchStatus
)


class StatusWorkflow:
    """Base class: subclasses declare the field, entity type and transitions."""

    entity_type = None
    field = 'status'
    ALLOWED_TRANSITIONS = {}

    @classmethod
    def allowed_from(cls, current_status: str):
        return cls.ALLOWED_TRANSITIONS.get(current_status, [])

    @classmethod
    def validate_transition(cls, entity, new_status: str) -> None:
        """
        Validate if a status transition is allowed.

        Args:
            entity: Model instance carrying the status field
            new_status: New status to transition to

        Raises:
            InvalidTransitionException: If transition is not allowed
        """
        current_status = getattr(entity, cls.field)

        if new_status not in cls.allowed_from(current_status):
            raise InvalidTransitionException(
                current_status=current_status,
                attempted_status=new_status,
                entity_type=cls.entity_type,
                field=cls.field,
                entity_id=getattr(entity, 'id', None),
            )

    @classmethod
    def can_transition_to(cls, entity, new_status: str) -> bool:
        """Check if transition is allowed without raising exception."""
        try:
            cls.validate_transition(entity, new_status)
            return True
        except InvalidTransitionException:
            return False


class ShippingWorkflow(StatusWorkflow):
    """Forward transitions of a shipment's physical status."""

    entity_type = 'Shipment'
    field = 'shipping_status'

    ALLOWED_TRANSITIONS = {
        ShippingStatus.PENDING_DISPATCH: [ShippingStatus.IN_TRANSIT],
        ShippingStatus.IN_TRANSIT: [ShippingStatus.AT_DESTINATION_OFFICE, ShippingStatus.REPORTED_MISSING],
        ShippingStatus.AT_DESTINATION_OFFICE: [ShippingStatus.DELIVERED],
        ShippingStatus.REPORTED_MISSING: [ShippingStatus.DELIVERED],
        ShippingStatus.DELIVERED: [],  # Final state
    }


class ManifestReversalWorkflow(ShippingWorkflow):
    """The only backwards move: voiding a manifest returns its members to the dock."""

    ALLOWED_TRANSITIONS = {
        ShippingStatus.IN_TRANSIT: [ShippingStatus.PENDING_DISPATCH],
    }


class MasterWorkflow(StatusWorkflow):
    entity_type = 'Shipment'
    field = 'master_status'

    ALLOWED_TRANSITIONS = {
        MasterStatus.ACTIVE: [MasterStatus.VOIDED],
        MasterStatus.VOIDED: [],  # Final state
    }


class PaymentWorkflow(StatusWorkflow):
    entity_type = 'Shipment'
    field = 'payment_status'

    ALLOWED_TRANSITIONS = {
        PaymentStatus.PENDING: [PaymentStatus.PAID],
        PaymentStatus.PAID: [],  # Final state
    }


class DispatchWorkflow(StatusWorkflow):
    entity_type = 'Dispatch'
    field = 'status'

    ALLOWED_TRANSITIONS = {
        DispatchStatus.IN_TRANSIT: [DispatchStatus.RECEIVED, DispatchStatus.VOIDED],
        DispatchStatus.RECEIVED: [],  # Final state
        DispatchStatus.VOIDED: [],    # Final state
    }


def validate_shipping_workflow(shipment, new_status: str) -> None:
    ShippingWorkflow.validate_transition(shipment, new_status)


def validate_master_workflow(shipment, new_status: str) -> None:
    MasterWorkflow.validate_transition(shipment, new_status)


def validate_payment_workflow(shipment, new_status: str) -> None:
    PaymentWorkflow.validate_transition(shipment, new_status)


def validate_dispatch_workflow(dispatch, new_status: str) -> None:
    DispatchWorkflow.validate_transition(dispatch, new_status)
