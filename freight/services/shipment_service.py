"""
Shipment Service for freight operations.

Handles shipment creation and editing, vehicle assignment, voiding,
payment registration and delivery. Manifest driven transitions live in
DispatchService but go through ``ShipmentService.bulk_transition``.
"""

import logging
import uuid
from dataclasses import dataclass, field
from decimal import Decimal
from typing import Dict, Any, Iterable, List, Optional, Tuple
from django.db import transaction
from django.utils import timezone

from ..config import RateConfig
from ..models import (
    Shipment, MerchandiseLine, Vehicle, MasterStatus, PaymentStatus,
    ShippingStatus, PaymentType, SettlementItem, AuditLog
)
from ..exceptions import (
    NotFoundException, StateConflictException, ValidationException
)
from .financials import ZERO, chargeable_weight, compute_financials
from .workflow import (
    validate_shipping_workflow, validate_master_workflow, validate_payment_workflow
)

logger = logging.getLogger(__name__)

EDITABLE_FIELDS = (
    'sender_name', 'receiver_name', 'destination_office_id', 'payment_type',
    'payment_currency', 'has_insurance', 'declared_value', 'insurance_percentage',
    'has_discount', 'discount_percentage', 'notes',
)
LINE_FIELDS = ('category', 'description', 'quantity', 'weight', 'length', 'width', 'height')


@dataclass
class LoadReport:
    """Advisory cargo load of a vehicle, recomputed from stored shipments."""
    vehicle_id: str
    capacity_kg: Decimal
    current_load_kg: Decimal
    shipment_count: int

    @property
    def overloaded(self) -> bool:
        return self.capacity_kg > 0 and self.current_load_kg > self.capacity_kg

    @property
    def remaining_kg(self) -> Optional[Decimal]:
        if self.capacity_kg <= 0:
            return None
        return self.capacity_kg - self.current_load_kg

    def as_dict(self):
        return {
            'vehicle_id': self.vehicle_id,
            'capacity_kg': self.capacity_kg,
            'current_load_kg': self.current_load_kg.quantize(Decimal('0.001')),
            'remaining_kg': self.remaining_kg.quantize(Decimal('0.001')) if self.remaining_kg is not None else None,
            'shipment_count': self.shipment_count,
            'overloaded': self.overloaded,
        }


@dataclass
class AssignmentResult:
    vehicle: Vehicle
    shipments: List[Shipment] = field(default_factory=list)
    load: LoadReport = None

    @property
    def warnings(self) -> List[str]:
        if self.load is not None and self.load.overloaded:
            return ['VEHICLE_OVERLOADED']
        return []


def _require_active(shipment: Shipment) -> None:
    if shipment.master_status != MasterStatus.ACTIVE:
        raise StateConflictException(
            f"Shipment {shipment.invoice_number} is voided",
            shipment.status_snapshot
        )


def _require_pending_dispatch(shipment: Shipment) -> None:
    if shipment.shipping_status != ShippingStatus.PENDING_DISPATCH:
        raise StateConflictException(
            f"Shipment {shipment.invoice_number} is not pending dispatch",
            shipment.status_snapshot
        )


def normalize_ids(ids: Iterable[Any]) -> Tuple[List[str], List[str]]:
    """Split ids into canonical UUID strings (deduplicated, in order) and malformed values."""
    valid, malformed = [], []
    for value in ids:
        try:
            key = str(uuid.UUID(str(value)))
        except ValueError:
            malformed.append(str(value))
            continue
        if key not in valid:
            valid.append(key)
    return valid, malformed


class ShipmentService:
    """Service class for shipment lifecycle operations."""

    @staticmethod
    def lock_shipments(shipment_ids: Iterable[Any]) -> List[Shipment]:
        """
        Lock and return shipments in the requested order.

        Raises:
            NotFoundException: If any id does not exist
        """
        ids, malformed = normalize_ids(shipment_ids)
        shipments = {
            str(s.id): s for s in Shipment.objects.select_for_update().filter(id__in=ids)
        }
        missing = malformed + [i for i in ids if i not in shipments]
        if missing:
            raise NotFoundException('Shipment', missing)
        return [shipments[i] for i in ids]

    @staticmethod
    def lock_vehicle(vehicle_id: Any) -> Vehicle:
        ids, _ = normalize_ids([vehicle_id])
        vehicle = Vehicle.objects.select_for_update().filter(id__in=ids).first()
        if vehicle is None:
            raise NotFoundException('Vehicle', [vehicle_id])
        return vehicle

    @staticmethod
    def bulk_transition(shipments: List[Shipment], new_status: str, user=None,
                        validator=validate_shipping_workflow, notes: str = "",
                        extra_fields: Dict[str, Any] = None) -> None:
        """
        Move every shipment's shipping status, all or none.

        Must run inside ``transaction.atomic``. The update is conditional on
        the status each shipment was read with; if another writer changed
        any of them the call raises and the transaction rolls back.
        """
        for shipment in shipments:
            validator(shipment, new_status)

        now = timezone.now()
        by_status: Dict[str, List[Shipment]] = {}
        for shipment in shipments:
            by_status.setdefault(shipment.shipping_status, []).append(shipment)

        for old_status, group in by_status.items():
            updated = Shipment.objects.filter(
                id__in=[s.id for s in group],
                shipping_status=old_status,
            ).update(shipping_status=new_status, updated_at=now, **(extra_fields or {}))
            if updated != len(group):
                current = Shipment.objects.filter(id__in=[s.id for s in group])
                raise StateConflictException(
                    "Shipments changed status concurrently",
                    {'shipments': [s.status_snapshot for s in current]}
                )

        for shipment in shipments:
            old_status = shipment.shipping_status
            shipment.shipping_status = new_status
            shipment.updated_at = now
            for name, value in (extra_fields or {}).items():
                setattr(shipment, name, value)
            AuditLog.log_status_change(
                entity=shipment,
                old_status=old_status,
                new_status=new_status,
                user=user,
                notes=notes,
                field='shipping_status'
            )

    @staticmethod
    def create_shipment(shipment_data: Dict[str, Any], created_by, rates: RateConfig = None) -> Shipment:
        """
        Create a new shipment with its merchandise lines and financials.

        Args:
            shipment_data: Shipment fields plus a ``merchandise`` list
            created_by: User creating the shipment
            rates: Company rates; read from settings when omitted

        Returns:
            Created Shipment instance

        Raises:
            ValidationException: If shipment data is invalid
        """
        rates = rates or RateConfig.from_settings()
        lines = shipment_data.get('merchandise') or []
        if not lines:
            raise ValidationException("Shipment must contain at least one merchandise line")

        origin = shipment_data.get('origin_office_id') or getattr(created_by, 'office_id', '')
        destination = shipment_data.get('destination_office_id')
        if not origin or not destination:
            raise ValidationException("Origin and destination offices are required", {
                'origin_office_id': origin, 'destination_office_id': destination
            })
        if origin == destination:
            raise ValidationException("Origin and destination offices must differ", {
                'origin_office_id': origin, 'destination_office_id': destination
            })

        with transaction.atomic():
            shipment = Shipment(
                origin_office_id=origin,
                destination_office_id=destination,
                payment_type=shipment_data.get('payment_type', PaymentType.PAID_AT_ORIGIN),
                created_by=created_by if getattr(created_by, 'is_authenticated', False) else None,
            )
            for name in EDITABLE_FIELDS:
                if name in shipment_data and name != 'destination_office_id':
                    setattr(shipment, name, shipment_data[name])
            shipment.save()

            ShipmentService._replace_lines(shipment, lines)
            shipment.apply_financials(compute_financials(shipment, rates))
            shipment.save()

            AuditLog.log_change(
                entity=shipment,
                action='created',
                user=created_by,
                new_values={'total': shipment.total, 'origin_office_id': origin,
                            'destination_office_id': destination},
                notes=f"Invoice {shipment.invoice_number} created"
            )

            logger.info(f"Shipment {shipment.invoice_number} created at office {origin} (total {shipment.total})")
            return shipment

    @staticmethod
    def update_shipment(shipment_id: str, shipment_data: Dict[str, Any], updated_by,
                        rates: RateConfig = None) -> Shipment:
        """
        Edit a shipment that has not left its origin office yet.

        Financials are recomputed and any settlement referencing the
        shipment is recomputed with them.
        """
        rates = rates or RateConfig.from_settings()

        with transaction.atomic():
            shipment = ShipmentService.lock_shipments([shipment_id])[0]
            _require_active(shipment)
            _require_pending_dispatch(shipment)

            old_values = {'total': shipment.total}
            for name in EDITABLE_FIELDS:
                if name in shipment_data:
                    setattr(shipment, name, shipment_data[name])
            if shipment.origin_office_id == shipment.destination_office_id:
                raise ValidationException("Origin and destination offices must differ")

            if 'merchandise' in shipment_data:
                if not shipment_data['merchandise']:
                    raise ValidationException("Shipment must contain at least one merchandise line")
                ShipmentService._replace_lines(shipment, shipment_data['merchandise'])

            shipment.apply_financials(compute_financials(shipment, rates))
            shipment.save()

            AuditLog.log_change(
                entity=shipment,
                action='updated',
                user=updated_by,
                old_values=old_values,
                new_values={'total': shipment.total},
            )
            ShipmentService._refresh_settlements(shipment, rates)

            logger.info(f"Shipment {shipment.invoice_number} updated (total {shipment.total})")
            return shipment

    @staticmethod
    def _replace_lines(shipment: Shipment, lines: List[Dict[str, Any]]) -> None:
        shipment.merchandise.all().delete()
        MerchandiseLine.objects.bulk_create([
            MerchandiseLine(shipment=shipment, **{k: v for k, v in line.items() if k in LINE_FIELDS})
            for line in lines
        ])

    @staticmethod
    def _refresh_settlements(shipment: Shipment, rates: RateConfig) -> None:
        from .settlement_service import SettlementService

        settlement_ids = SettlementItem.objects.filter(
            shipment=shipment
        ).values_list('settlement_id', flat=True).distinct()
        for settlement_id in settlement_ids:
            SettlementService.recompute(str(settlement_id), rates=rates)

    @staticmethod
    def vehicle_load(vehicle: Vehicle) -> LoadReport:
        """
        Recompute a vehicle's load from the shipments currently assigned to it.

        Only active shipments still waiting for dispatch count.
        """
        assigned = Shipment.objects.filter(
            vehicle=vehicle,
            master_status=MasterStatus.ACTIVE,
            shipping_status=ShippingStatus.PENDING_DISPATCH,
        ).prefetch_related('merchandise')

        load = ZERO
        count = 0
        for shipment in assigned:
            load += chargeable_weight(shipment)
            count += 1

        return LoadReport(
            vehicle_id=str(vehicle.id),
            capacity_kg=vehicle.cargo_capacity_kg or ZERO,
            current_load_kg=load,
            shipment_count=count,
        )

    @staticmethod
    def assign_to_vehicle(shipment_ids: List[str], vehicle_id: str, assigned_by) -> AssignmentResult:
        """
        Load pending shipments onto a vehicle.

        Capacity is advisory: the result carries an overload warning but
        the assignment always goes through.

        Raises:
            ValidationException: If no shipments are given
            NotFoundException: If the vehicle or a shipment does not exist
            StateConflictException: If a shipment is voided or already left
        """
        if not shipment_ids:
            raise ValidationException("At least one shipment is required")

        with transaction.atomic():
            vehicle = ShipmentService.lock_vehicle(vehicle_id)
            shipments = ShipmentService.lock_shipments(shipment_ids)
            for shipment in shipments:
                _require_active(shipment)
                _require_pending_dispatch(shipment)

            updated = Shipment.objects.filter(
                id__in=[s.id for s in shipments],
                master_status=MasterStatus.ACTIVE,
                shipping_status=ShippingStatus.PENDING_DISPATCH,
            ).update(vehicle=vehicle, updated_at=timezone.now())
            if updated != len(shipments):
                raise StateConflictException(
                    "Shipments changed status concurrently",
                    {'shipments': [s.status_snapshot for s in Shipment.objects.filter(id__in=[s.id for s in shipments])]}
                )

            for shipment in shipments:
                old_vehicle = shipment.vehicle_id
                shipment.vehicle = vehicle
                AuditLog.log_change(
                    entity=shipment,
                    action='vehicle_assigned',
                    user=assigned_by,
                    old_values={'vehicle_id': old_vehicle},
                    new_values={'vehicle_id': vehicle.id},
                    notes=f"Assigned to vehicle {vehicle.plate}"
                )

            load = ShipmentService.vehicle_load(vehicle)
            if load.overloaded:
                logger.warning(
                    f"Vehicle {vehicle.plate} over capacity: {load.current_load_kg} kg of {load.capacity_kg} kg"
                )

            logger.info(f"{len(shipments)} shipments assigned to vehicle {vehicle.plate}")
            return AssignmentResult(vehicle=vehicle, shipments=shipments, load=load)

    @staticmethod
    def unassign_from_vehicle(shipment_id: str, unassigned_by) -> Shipment:
        """Take a pending shipment off its vehicle."""
        with transaction.atomic():
            shipment = ShipmentService.lock_shipments([shipment_id])[0]
            _require_active(shipment)
            _require_pending_dispatch(shipment)
            if shipment.vehicle_id is None:
                raise StateConflictException(
                    f"Shipment {shipment.invoice_number} is not assigned to a vehicle",
                    shipment.status_snapshot
                )

            old_vehicle = shipment.vehicle_id
            shipment.vehicle = None
            shipment.save()

            AuditLog.log_change(
                entity=shipment,
                action='vehicle_unassigned',
                user=unassigned_by,
                old_values={'vehicle_id': old_vehicle},
                new_values={'vehicle_id': None},
            )

            logger.info(f"Shipment {shipment.invoice_number} unassigned from vehicle {old_vehicle}")
            return shipment

    @staticmethod
    def void_shipment(shipment_id: str, voided_by, rates: RateConfig = None) -> Shipment:
        """
        Void a shipment.

        The shipping status is left as is; settlements that include the
        shipment are recomputed so it stops counting.
        """
        rates = rates or RateConfig.from_settings()

        with transaction.atomic():
            shipment = ShipmentService.lock_shipments([shipment_id])[0]
            validate_master_workflow(shipment, MasterStatus.VOIDED)

            old_status = shipment.master_status
            shipment.master_status = MasterStatus.VOIDED
            shipment.voided_at = timezone.now()
            shipment.save()

            AuditLog.log_status_change(
                entity=shipment,
                old_status=old_status,
                new_status=MasterStatus.VOIDED,
                user=voided_by,
                notes=f"Voided while {shipment.shipping_status}",
                field='master_status'
            )
            ShipmentService._refresh_settlements(shipment, rates)

            logger.info(f"Shipment {shipment.invoice_number} voided")
            return shipment

    @staticmethod
    def register_payment(shipment_id: str, registered_by) -> Shipment:
        """Mark an active shipment as paid."""
        with transaction.atomic():
            shipment = ShipmentService.lock_shipments([shipment_id])[0]
            _require_active(shipment)
            validate_payment_workflow(shipment, PaymentStatus.PAID)

            shipment.payment_status = PaymentStatus.PAID
            shipment.paid_at = timezone.now()
            shipment.save()

            AuditLog.log_status_change(
                entity=shipment,
                old_status=PaymentStatus.PENDING,
                new_status=PaymentStatus.PAID,
                user=registered_by,
                field='payment_status'
            )

            logger.info(f"Payment registered for shipment {shipment.invoice_number}")
            return shipment

    @staticmethod
    def mark_delivered(shipment_id: str, delivered_by) -> Shipment:
        """Hand a shipment to its receiver at the destination office."""
        with transaction.atomic():
            shipment = ShipmentService.lock_shipments([shipment_id])[0]
            _require_active(shipment)
            validate_shipping_workflow(shipment, ShippingStatus.DELIVERED)

            old_status = shipment.shipping_status
            shipment.shipping_status = ShippingStatus.DELIVERED
            shipment.delivered_at = timezone.now()
            shipment.save()

            AuditLog.log_status_change(
                entity=shipment,
                old_status=old_status,
                new_status=ShippingStatus.DELIVERED,
                user=delivered_by,
                field='shipping_status'
            )

            logger.info(f"Shipment {shipment.invoice_number} delivered")
            return shipment
