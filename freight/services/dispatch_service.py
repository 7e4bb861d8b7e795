"""
Dispatch Service for freight operations.

Creates, receives and voids dispatch manifests. Each operation commits the
manifest, every member shipment and the vehicle together or not at all.
"""

import logging
from dataclasses import dataclass, field
from typing import Dict, Any, Iterable, List
from django.db import transaction
from django.utils import timezone

from ..models import (
    Dispatch, DispatchItem, DispatchStatus, ShippingStatus, Vehicle,
    VehicleStatus, AuditLog
)
from ..exceptions import (
    NotFoundException, StateConflictException, ValidationException
)
from .financials import ZERO, chargeable_weight
from .shipment_service import (
    ShipmentService, normalize_ids, _require_active, _require_pending_dispatch
)
from .workflow import ManifestReversalWorkflow, validate_dispatch_workflow

logger = logging.getLogger(__name__)


@dataclass
class DispatchResult:
    """State of a manifest operation before and after the change, returned in full."""
    dispatch: Dispatch
    vehicle: Vehicle
    shipments: List[Any] = field(default_factory=list)
    missing_ids: List[str] = field(default_factory=list)
    before: Dict[str, Any] = field(default_factory=dict)


def _snapshot(shipments, vehicle, dispatch=None) -> Dict[str, Any]:
    return {
        'dispatch': dispatch.snapshot if dispatch is not None else None,
        'vehicle': vehicle.snapshot,
        'shipments': [s.status_snapshot for s in shipments],
    }


class DispatchService:
    """Service class for dispatch manifest operations."""

    @staticmethod
    def lock_dispatch(dispatch_id: Any) -> Dispatch:
        ids, _ = normalize_ids([dispatch_id])
        dispatch = Dispatch.objects.select_for_update().filter(id__in=ids).first()
        if dispatch is None:
            raise NotFoundException('Dispatch', [dispatch_id])
        return dispatch

    @staticmethod
    def _set_dispatch_status(dispatch: Dispatch, new_status: str, **extra) -> None:
        old_status = dispatch.status
        updated = Dispatch.objects.filter(
            id=dispatch.id, status=old_status
        ).update(status=new_status, **extra)
        if updated != 1:
            current = Dispatch.objects.get(id=dispatch.id)
            raise StateConflictException(
                f"Dispatch {dispatch.dispatch_number} changed status concurrently",
                current.snapshot
            )
        dispatch.status = new_status
        for name, value in extra.items():
            setattr(dispatch, name, value)

    @staticmethod
    def _release_vehicle(vehicle: Vehicle, dispatch: Dispatch, office_id: str, user) -> None:
        """Free the vehicle at office_id unless another of its manifests is still on the road."""
        still_travelling = Dispatch.objects.filter(
            vehicle_id=vehicle.id, status=DispatchStatus.IN_TRANSIT
        ).exclude(id=dispatch.id).exists()
        if still_travelling:
            logger.info(f"Vehicle {vehicle.plate} stays in transit with another open manifest")
            return

        old_status = vehicle.status
        vehicle.status = VehicleStatus.AVAILABLE
        vehicle.current_office_id = office_id
        vehicle.save()
        AuditLog.log_status_change(
            entity=vehicle,
            old_status=old_status,
            new_status=VehicleStatus.AVAILABLE,
            user=user,
            notes=f"Vehicle at office {office_id}"
        )

    @staticmethod
    def create_dispatch(shipment_ids: List[str], vehicle_id: str, destination_office_id: str,
                        created_by) -> DispatchResult:
        """
        Create a manifest and put every member shipment in transit.

        Args:
            shipment_ids: Shipments travelling together
            vehicle_id: Vehicle carrying them; every shipment must be assigned to it
            destination_office_id: Office receiving the manifest
            created_by: User creating the dispatch

        Returns:
            DispatchResult with the manifest, shipments and vehicle after the change

        Raises:
            ValidationException: If the request itself is malformed
            NotFoundException: If the vehicle or any shipment does not exist
            StateConflictException: If any shipment or the vehicle is not in a dispatchable state
        """
        if not shipment_ids:
            raise ValidationException("A dispatch needs at least one shipment")
        if not destination_office_id:
            raise ValidationException("Destination office is required")

        with transaction.atomic():
            vehicle = ShipmentService.lock_vehicle(vehicle_id)
            shipments = ShipmentService.lock_shipments(shipment_ids)

            for shipment in shipments:
                _require_active(shipment)
                _require_pending_dispatch(shipment)
                if shipment.vehicle_id != vehicle.id:
                    raise StateConflictException(
                        f"Shipment {shipment.invoice_number} is not assigned to vehicle {vehicle.plate}",
                        shipment.status_snapshot
                    )

            origins = sorted({s.origin_office_id for s in shipments})
            if len(origins) != 1:
                raise ValidationException(
                    "All shipments in a dispatch must share the same origin office",
                    {'origin_office_ids': origins}
                )
            origin = origins[0]
            if origin == destination_office_id:
                raise ValidationException(
                    "Destination office must differ from the origin office",
                    {'origin_office_id': origin, 'destination_office_id': destination_office_id}
                )
            if vehicle.current_office_id and vehicle.current_office_id != origin:
                raise StateConflictException(
                    f"Vehicle {vehicle.plate} is at office {vehicle.current_office_id}, not {origin}",
                    vehicle.snapshot
                )
            if vehicle.status == VehicleStatus.IN_TRANSIT:
                logger.warning(f"Vehicle {vehicle.plate} already has a manifest in transit")

            before = _snapshot(shipments, vehicle)

            dispatch = Dispatch.objects.create(
                vehicle=vehicle,
                origin_office_id=origin,
                destination_office_id=destination_office_id,
                created_by=created_by if getattr(created_by, 'is_authenticated', False) else None,
            )
            DispatchItem.objects.bulk_create([
                DispatchItem(dispatch=dispatch, shipment=shipment, sequence_number=i)
                for i, shipment in enumerate(shipments, 1)
            ])

            ShipmentService.bulk_transition(
                shipments, ShippingStatus.IN_TRANSIT, user=created_by,
                notes=f"Dispatched on {dispatch.dispatch_number}"
            )

            old_vehicle_status = vehicle.status
            vehicle.status = VehicleStatus.IN_TRANSIT
            vehicle.current_office_id = origin
            vehicle.save()

            AuditLog.log_change(
                entity=dispatch,
                action='created',
                user=created_by,
                new_values={'shipment_ids': [s.id for s in shipments], 'vehicle_id': vehicle.id},
                notes=f"{origin} -> {destination_office_id}"
            )
            AuditLog.log_status_change(
                entity=vehicle,
                old_status=old_vehicle_status,
                new_status=VehicleStatus.IN_TRANSIT,
                user=created_by,
                notes=f"Dispatch {dispatch.dispatch_number}"
            )

            logger.info(
                f"Dispatch {dispatch.dispatch_number} created: {len(shipments)} shipments "
                f"{origin} -> {destination_office_id} on {vehicle.plate}"
            )
            return DispatchResult(dispatch=dispatch, vehicle=vehicle, shipments=shipments, before=before)

    @staticmethod
    def receive_dispatch(dispatch_id: str, verified_shipment_ids: Iterable[str], received_by) -> DispatchResult:
        """
        Reconcile a manifest on arrival.

        Verified members go to the destination office; every member that is
        not in the verified set is reported missing.

        Raises:
            ValidationException: If a verified id is not a member of the manifest
            StateConflictException: If the manifest or a member is not in transit
        """
        with transaction.atomic():
            dispatch = DispatchService.lock_dispatch(dispatch_id)
            validate_dispatch_workflow(dispatch, DispatchStatus.RECEIVED)

            member_ids = [str(i) for i in dispatch.shipment_ids]
            verified_ids, malformed = normalize_ids(verified_shipment_ids or [])
            unknown = malformed + [i for i in verified_ids if i not in member_ids]
            if unknown:
                raise ValidationException(
                    f"Verified shipments are not part of dispatch {dispatch.dispatch_number}",
                    {'unknown_ids': unknown}
                )

            shipments = ShipmentService.lock_shipments(member_ids)
            vehicle = Vehicle.objects.select_for_update().get(id=dispatch.vehicle_id)
            before = _snapshot(shipments, vehicle, dispatch)

            verified = [s for s in shipments if str(s.id) in verified_ids]
            missing = [s for s in shipments if str(s.id) not in verified_ids]

            if verified:
                ShipmentService.bulk_transition(
                    verified, ShippingStatus.AT_DESTINATION_OFFICE, user=received_by,
                    notes=f"Received on {dispatch.dispatch_number}"
                )
            if missing:
                ShipmentService.bulk_transition(
                    missing, ShippingStatus.REPORTED_MISSING, user=received_by,
                    notes=f"Not found on reception of {dispatch.dispatch_number}"
                )

            DispatchService._set_dispatch_status(
                dispatch, DispatchStatus.RECEIVED,
                received_at=timezone.now(),
                received_by=received_by if getattr(received_by, 'is_authenticated', False) else None,
            )
            AuditLog.log_status_change(
                entity=dispatch,
                old_status=DispatchStatus.IN_TRANSIT,
                new_status=DispatchStatus.RECEIVED,
                user=received_by,
                notes=f"{len(verified)} verified, {len(missing)} missing"
            )

            DispatchService._release_vehicle(vehicle, dispatch, dispatch.destination_office_id, received_by)

            missing_ids = [str(s.id) for s in missing]
            if missing_ids:
                logger.warning(
                    f"Dispatch {dispatch.dispatch_number} received with {len(missing_ids)} missing shipments"
                )
            logger.info(f"Dispatch {dispatch.dispatch_number} received at {dispatch.destination_office_id}")
            return DispatchResult(
                dispatch=dispatch, vehicle=vehicle, shipments=shipments, missing_ids=missing_ids, before=before
            )

    @staticmethod
    def void_dispatch(dispatch_id: str, voided_by) -> DispatchResult:
        """
        Cancel a manifest still in transit.

        Every member shipment returns to pending dispatch; this is the only
        path that moves a shipment backwards.
        """
        with transaction.atomic():
            dispatch = DispatchService.lock_dispatch(dispatch_id)
            validate_dispatch_workflow(dispatch, DispatchStatus.VOIDED)

            shipments = ShipmentService.lock_shipments(dispatch.shipment_ids)
            vehicle = Vehicle.objects.select_for_update().get(id=dispatch.vehicle_id)
            before = _snapshot(shipments, vehicle, dispatch)

            ShipmentService.bulk_transition(
                shipments, ShippingStatus.PENDING_DISPATCH, user=voided_by,
                validator=ManifestReversalWorkflow.validate_transition,
                notes=f"Dispatch {dispatch.dispatch_number} voided"
            )

            DispatchService._set_dispatch_status(dispatch, DispatchStatus.VOIDED, voided_at=timezone.now())
            AuditLog.log_status_change(
                entity=dispatch,
                old_status=DispatchStatus.IN_TRANSIT,
                new_status=DispatchStatus.VOIDED,
                user=voided_by,
            )

            DispatchService._release_vehicle(vehicle, dispatch, dispatch.origin_office_id, voided_by)

            logger.info(f"Dispatch {dispatch.dispatch_number} voided, {len(shipments)} shipments back to pending")
            return DispatchResult(dispatch=dispatch, vehicle=vehicle, shipments=shipments, before=before)

    @staticmethod
    def arrival_offices(shipment_ids: Iterable[Any]) -> Dict[str, str]:
        """Destination office of the last received manifest of each shipment."""
        items = DispatchItem.objects.filter(
            shipment_id__in=list(shipment_ids), dispatch__status=DispatchStatus.RECEIVED
        ).select_related('dispatch').order_by('dispatch__received_at')
        return {str(item.shipment_id): item.dispatch.destination_office_id for item in items}

    @staticmethod
    def generate_manifest(dispatch_id: str) -> Dict[str, Any]:
        """
        Build the manifest document data for a dispatch.

        Args:
            dispatch_id: Dispatch UUID

        Returns:
            Manifest data with one entry per shipment
        """
        ids, _ = normalize_ids([dispatch_id])
        dispatch = Dispatch.objects.select_related('vehicle').prefetch_related(
            'items__shipment__merchandise'
        ).filter(id__in=ids).first()
        if dispatch is None:
            raise NotFoundException('Dispatch', [dispatch_id])

        manifest = {
            'dispatch_number': dispatch.dispatch_number,
            'status': dispatch.status,
            'vehicle_plate': dispatch.vehicle.plate,
            'origin_office_id': dispatch.origin_office_id,
            'destination_office_id': dispatch.destination_office_id,
            'created_at': dispatch.created_at,
            'received_at': dispatch.received_at,
            'total_weight': ZERO,
            'shipments': [],
        }

        for item in dispatch.items.all():
            shipment = item.shipment
            weight = chargeable_weight(shipment)
            manifest['total_weight'] += weight
            manifest['shipments'].append({
                'sequence_number': item.sequence_number,
                'shipment_id': str(shipment.id),
                'invoice_number': shipment.invoice_number,
                'receiver_name': shipment.receiver_name,
                'destination_office_id': shipment.destination_office_id,
                'packages': sum(int(line.quantity) for line in shipment.merchandise.all()),
                'chargeable_weight': weight,
                'shipping_status': shipment.shipping_status,
                'master_status': shipment.master_status,
            })

        return manifest
