"""
Settlement Service for freight operations.

Wraps the pure settlement distributor: previews a breakdown for any set of
shipments, and creates, recomputes and deletes stored settlements. Stored
figures are always rewritten from the member shipments, never adjusted.
"""

import logging
from decimal import ROUND_HALF_UP
from typing import Any, Iterable, List
from django.db import transaction
from django.utils import timezone

from ..config import RateConfig
from ..models import (
    Settlement, SettlementItem, Shipment, Dispatch, MasterStatus, AuditLog
)
from ..models.audit import convert_decimals
from ..exceptions import NotFoundException, StateConflictException, ValidationException
from .financials import CENT
from .settlement import SettlementBreakdown, compute_settlement
from .shipment_service import ShipmentService, normalize_ids, _require_active

logger = logging.getLogger(__name__)


class SettlementService:
    """Service class for settlement (remesa) operations."""

    @staticmethod
    def preview(shipment_ids: Iterable[Any], rates: RateConfig = None) -> SettlementBreakdown:
        """
        Compute the breakdown for a set of shipments without storing anything.

        Ids that do not exist are counted as discrepancies alongside voided
        shipments.
        """
        rates = rates or RateConfig.from_settings()
        ids, malformed = normalize_ids(shipment_ids)
        shipments = list(Shipment.objects.filter(id__in=ids).prefetch_related('merchandise'))

        breakdown = compute_settlement(shipments, rates)
        found = {str(s.id) for s in shipments}
        breakdown.excluded_shipment_ids.extend(malformed + [i for i in ids if i not in found])
        return breakdown

    @staticmethod
    def _apply(settlement: Settlement, breakdown: SettlementBreakdown) -> None:
        def cents(value):
            return value.quantize(CENT, rounding=ROUND_HALF_UP)

        settlement.amount_receivable = cents(breakdown.amount_receivable)
        settlement.total_at_destination = cents(breakdown.total_at_destination)
        settlement.cooperative_share = cents(breakdown.cooperative_share)
        settlement.associate_share = cents(breakdown.associate_share)
        settlement.discrepancy_count = breakdown.discrepancy_count
        settlement.breakdown = convert_decimals(breakdown.as_dict())

    @staticmethod
    def create_settlement(shipment_ids: List[str], vehicle_id: str, created_by,
                          rates: RateConfig = None) -> Settlement:
        """
        Settle a set of shipments carried by one vehicle.

        Raises:
            ValidationException: If no shipments are given
            NotFoundException: If the vehicle or a shipment does not exist
            StateConflictException: If a shipment is voided, on another vehicle
                or already settled
        """
        rates = rates or RateConfig.from_settings()
        if not shipment_ids:
            raise ValidationException("A settlement needs at least one shipment")

        with transaction.atomic():
            vehicle = ShipmentService.lock_vehicle(vehicle_id)
            shipments = ShipmentService.lock_shipments(shipment_ids)

            already_settled = set(
                str(i) for i in SettlementItem.objects.filter(
                    shipment__in=shipments
                ).values_list('shipment_id', flat=True)
            )
            for shipment in shipments:
                _require_active(shipment)
                if shipment.vehicle_id != vehicle.id:
                    raise StateConflictException(
                        f"Shipment {shipment.invoice_number} is not assigned to vehicle {vehicle.plate}",
                        shipment.status_snapshot
                    )
                if str(shipment.id) in already_settled:
                    raise StateConflictException(
                        f"Shipment {shipment.invoice_number} is already settled",
                        shipment.status_snapshot
                    )

            settlement = Settlement.objects.create(
                associate_id=vehicle.associate_id,
                vehicle=vehicle,
                created_by=created_by if getattr(created_by, 'is_authenticated', False) else None,
            )
            SettlementItem.objects.bulk_create([
                SettlementItem(settlement=settlement, shipment=shipment) for shipment in shipments
            ])

            SettlementService._apply(settlement, compute_settlement(
                Shipment.objects.filter(id__in=[s.id for s in shipments]).prefetch_related('merchandise'),
                rates
            ))
            settlement.save()

            AuditLog.log_change(
                entity=settlement,
                action='created',
                user=created_by,
                new_values={
                    'shipment_ids': [s.id for s in shipments],
                    'amount_receivable': settlement.amount_receivable,
                },
            )

            logger.info(
                f"Settlement {settlement.settlement_number} created for vehicle {vehicle.plate}: "
                f"{len(shipments)} shipments, receivable {settlement.amount_receivable}"
            )
            return settlement

    @staticmethod
    def _unsettled(queryset, scope=None) -> List[str]:
        if scope is not None:
            queryset = queryset.filter(id__in=scope.values('id'))
        return [
            str(i) for i in queryset.filter(
                master_status=MasterStatus.ACTIVE,
                settlement_items__isnull=True,
            ).values_list('id', flat=True)
        ]

    @staticmethod
    def create_for_vehicle(vehicle_id: str, created_by, rates: RateConfig = None, scope=None) -> Settlement:
        """
        Settle every active, not yet settled shipment currently on a vehicle.

        When ``scope`` is given, only shipments in that queryset are settled.
        """
        with transaction.atomic():
            vehicle = ShipmentService.lock_vehicle(vehicle_id)
            shipment_ids = SettlementService._unsettled(Shipment.objects.filter(vehicle=vehicle), scope)
            if not shipment_ids:
                raise ValidationException(f"Vehicle {vehicle.plate} has no shipments to settle")
            return SettlementService.create_settlement(shipment_ids, str(vehicle.id), created_by, rates)

    @staticmethod
    def create_for_dispatch(dispatch_id: str, created_by, rates: RateConfig = None, scope=None) -> Settlement:
        """Settle the active, not yet settled shipments of a dispatch manifest, limited to ``scope`` if given."""
        ids, _ = normalize_ids([dispatch_id])
        dispatch = Dispatch.objects.filter(id__in=ids).first()
        if dispatch is None:
            raise NotFoundException('Dispatch', [dispatch_id])
        shipment_ids = SettlementService._unsettled(
            Shipment.objects.filter(dispatch_items__dispatch=dispatch), scope
        )
        if not shipment_ids:
            raise ValidationException(f"Dispatch {dispatch.dispatch_number} has no shipments to settle")
        return SettlementService.create_settlement(shipment_ids, str(dispatch.vehicle_id), created_by, rates)

    @staticmethod
    def recompute(settlement_id: str, rates: RateConfig = None) -> Settlement:
        """Rewrite a settlement's figures from its current member shipments."""
        rates = rates or RateConfig.from_settings()

        with transaction.atomic():
            ids, _ = normalize_ids([settlement_id])
            settlement = Settlement.objects.select_for_update().filter(id__in=ids).first()
            if settlement is None:
                raise NotFoundException('Settlement', [settlement_id])

            members = Shipment.objects.filter(
                settlement_items__settlement=settlement
            ).prefetch_related('merchandise')
            SettlementService._apply(settlement, compute_settlement(members, rates))
            settlement.recomputed_at = timezone.now()
            settlement.save()

            logger.info(
                f"Settlement {settlement.settlement_number} recomputed "
                f"(receivable {settlement.amount_receivable}, discrepancies {settlement.discrepancy_count})"
            )
            return settlement

    @staticmethod
    def delete_settlement(settlement_id: str, deleted_by) -> None:
        """Delete a settlement; its shipments become available for a new one."""
        with transaction.atomic():
            ids, _ = normalize_ids([settlement_id])
            settlement = Settlement.objects.select_for_update().filter(id__in=ids).first()
            if settlement is None:
                raise NotFoundException('Settlement', [settlement_id])

            AuditLog.log_change(
                entity=settlement,
                action='deleted',
                user=deleted_by,
                old_values={
                    'settlement_number': settlement.settlement_number,
                    'shipment_ids': settlement.shipment_ids,
                },
            )
            number = settlement.settlement_number
            settlement.delete()

            logger.info(f"Settlement {number} deleted")
