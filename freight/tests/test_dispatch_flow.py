"""
Tests for dispatch manifest creation, reception and voiding.
"""

from unittest import mock
from django.test import TestCase

from ..exceptions import (
    InvalidTransitionException, StateConflictException, ValidationException
)
from ..models import (
    AuditLog, Dispatch, DispatchItem, DispatchStatus, Shipment, ShippingStatus, VehicleStatus
)
from ..services import DispatchService, ShipmentService
from .base import FreightFixturesMixin


class DispatchCreationTest(FreightFixturesMixin, TestCase):
    """Test manifest creation."""

    def test_create_dispatch_moves_everything_together(self):
        shipments = self.create_loaded_shipments(count=3)
        result = DispatchService.create_dispatch([s.id for s in shipments], self.vehicle.id, 'B', self.operator)

        dispatch = result.dispatch
        self.assertTrue(dispatch.dispatch_number.startswith('D-'))
        self.assertEqual(dispatch.status, DispatchStatus.IN_TRANSIT)
        self.assertEqual(dispatch.origin_office_id, 'A')
        self.assertEqual(DispatchItem.objects.filter(dispatch=dispatch).count(), 3)
        self.assertEqual(result.vehicle.status, VehicleStatus.IN_TRANSIT)
        self.assertEqual(
            Shipment.objects.filter(shipping_status=ShippingStatus.IN_TRANSIT).count(), 3
        )
        self.assertTrue(all(s.shipping_status == ShippingStatus.IN_TRANSIT for s in result.shipments))

    def test_one_bad_member_rejects_the_whole_manifest(self):
        shipments = self.create_loaded_shipments(count=3)
        ShipmentService.void_shipment(str(shipments[1].id), self.operator)

        with self.assertRaises(StateConflictException) as ctx:
            DispatchService.create_dispatch([s.id for s in shipments], self.vehicle.id, 'B', self.operator)

        self.assertEqual(ctx.exception.current_state['shipment_id'], str(shipments[1].id))
        self.assertFalse(Dispatch.objects.exists())
        self.assertEqual(
            Shipment.objects.filter(shipping_status=ShippingStatus.PENDING_DISPATCH).count(), 3
        )
        self.vehicle.refresh_from_db()
        self.assertEqual(self.vehicle.status, VehicleStatus.AVAILABLE)

    def test_shipments_must_be_on_the_vehicle(self):
        shipment = self.create_shipment()
        with self.assertRaises(StateConflictException):
            DispatchService.create_dispatch([shipment.id], self.vehicle.id, 'B', self.operator)

    def test_shipments_must_share_an_origin(self):
        first = self.create_shipment(origin='A', destination='B')
        second = self.create_shipment(origin='C', destination='B')
        ShipmentService.assign_to_vehicle([first.id, second.id], self.vehicle.id, self.operator)

        with self.assertRaises(ValidationException):
            DispatchService.create_dispatch([first.id, second.id], self.vehicle.id, 'B', self.operator)

    def test_destination_must_differ_from_origin(self):
        shipments = self.create_loaded_shipments(count=1)
        with self.assertRaises(ValidationException):
            DispatchService.create_dispatch([shipments[0].id], self.vehicle.id, 'A', self.operator)

    def test_vehicle_must_be_at_origin(self):
        shipments = self.create_loaded_shipments(count=1)
        self.vehicle.current_office_id = 'C'
        self.vehicle.save()

        with self.assertRaises(StateConflictException):
            DispatchService.create_dispatch([shipments[0].id], self.vehicle.id, 'B', self.operator)

    def test_empty_manifest_is_rejected(self):
        with self.assertRaises(ValidationException):
            DispatchService.create_dispatch([], self.vehicle.id, 'B', self.operator)

    def test_concurrent_status_change_rolls_back(self):
        shipments = self.create_loaded_shipments(count=2)
        bulk_transition = ShipmentService.bulk_transition

        def racing_transition(members, *args, **kwargs):
            # Another writer moves a member between the read and the conditional update.
            Shipment.objects.filter(id=members[0].id).update(shipping_status=ShippingStatus.IN_TRANSIT)
            return bulk_transition(members, *args, **kwargs)

        with mock.patch.object(ShipmentService, 'bulk_transition', side_effect=racing_transition):
            with self.assertRaises(StateConflictException):
                DispatchService.create_dispatch([s.id for s in shipments], self.vehicle.id, 'B', self.operator)

        self.assertFalse(Dispatch.objects.exists())
        self.assertEqual(
            Shipment.objects.filter(shipping_status=ShippingStatus.PENDING_DISPATCH).count(), 2
        )
        self.vehicle.refresh_from_db()
        self.assertEqual(self.vehicle.status, VehicleStatus.AVAILABLE)


class DispatchReceptionTest(FreightFixturesMixin, TestCase):
    """Test manifest reception."""

    def setUp(self):
        super().setUp()
        self.shipments = self.create_loaded_shipments(count=3)
        self.dispatch = DispatchService.create_dispatch(
            [s.id for s in self.shipments], self.vehicle.id, 'B', self.operator
        ).dispatch

    def test_unverified_members_are_reported_missing(self):
        verified = [self.shipments[0].id, self.shipments[1].id]
        result = DispatchService.receive_dispatch(str(self.dispatch.id), verified, self.receiver)

        self.assertEqual(result.dispatch.status, DispatchStatus.RECEIVED)
        self.assertEqual(result.missing_ids, [str(self.shipments[2].id)])
        statuses = {str(s.id): s.shipping_status for s in Shipment.objects.all()}
        self.assertEqual(statuses[str(self.shipments[0].id)], ShippingStatus.AT_DESTINATION_OFFICE)
        self.assertEqual(statuses[str(self.shipments[1].id)], ShippingStatus.AT_DESTINATION_OFFICE)
        self.assertEqual(statuses[str(self.shipments[2].id)], ShippingStatus.REPORTED_MISSING)

        self.assertEqual(result.vehicle.status, VehicleStatus.AVAILABLE)
        self.assertEqual(result.vehicle.current_office_id, 'B')
        self.assertEqual(result.dispatch.received_by, self.receiver)
        self.assertEqual(result.before['dispatch']['status'], DispatchStatus.IN_TRANSIT)
        self.assertEqual(result.before['vehicle']['status'], VehicleStatus.IN_TRANSIT)
        self.assertTrue(all(
            s['shipping_status'] == ShippingStatus.IN_TRANSIT for s in result.before['shipments']
        ))

    def test_empty_verification_marks_all_missing(self):
        result = DispatchService.receive_dispatch(str(self.dispatch.id), [], self.receiver)
        self.assertEqual(len(result.missing_ids), 3)
        self.assertEqual(
            Shipment.objects.filter(shipping_status=ShippingStatus.REPORTED_MISSING).count(), 3
        )

    def test_verified_ids_must_belong_to_manifest(self):
        outsider = self.create_shipment()
        with self.assertRaises(ValidationException):
            DispatchService.receive_dispatch(str(self.dispatch.id), [outsider.id], self.receiver)

        self.dispatch.refresh_from_db()
        self.assertEqual(self.dispatch.status, DispatchStatus.IN_TRANSIT)

    def test_receive_twice_is_rejected(self):
        DispatchService.receive_dispatch(str(self.dispatch.id), [], self.receiver)
        with self.assertRaises(InvalidTransitionException):
            DispatchService.receive_dispatch(str(self.dispatch.id), [], self.receiver)

    def test_void_after_receive_is_rejected(self):
        DispatchService.receive_dispatch(str(self.dispatch.id), [], self.receiver)
        with self.assertRaises(InvalidTransitionException):
            DispatchService.void_dispatch(str(self.dispatch.id), self.manager)

    def test_membership_is_fixed(self):
        DispatchService.receive_dispatch(str(self.dispatch.id), [], self.receiver)
        self.assertEqual(
            sorted(str(i) for i in self.dispatch.shipment_ids),
            sorted(str(s.id) for s in self.shipments)
        )

    def test_manifest_document(self):
        manifest = DispatchService.generate_manifest(str(self.dispatch.id))
        self.assertEqual(manifest['dispatch_number'], self.dispatch.dispatch_number)
        self.assertEqual(len(manifest['shipments']), 3)
        self.assertEqual(manifest['total_weight'], 300)
        self.assertEqual([s['sequence_number'] for s in manifest['shipments']], [1, 2, 3])


class DispatchVoidTest(FreightFixturesMixin, TestCase):
    """Test manifest voiding."""

    def test_void_returns_members_to_pending(self):
        shipments = self.create_loaded_shipments(count=2)
        dispatch = DispatchService.create_dispatch(
            [s.id for s in shipments], self.vehicle.id, 'B', self.operator
        ).dispatch

        result = DispatchService.void_dispatch(str(dispatch.id), self.manager)

        self.assertEqual(result.dispatch.status, DispatchStatus.VOIDED)
        self.assertEqual(result.vehicle.status, VehicleStatus.AVAILABLE)
        self.assertEqual(result.vehicle.current_office_id, 'A')
        self.assertEqual(
            Shipment.objects.filter(shipping_status=ShippingStatus.PENDING_DISPATCH).count(), 2
        )
        self.assertTrue(AuditLog.objects.filter(entity_id=dispatch.id, action='status_changed').exists())

    def test_void_rejected_when_a_member_moved_on(self):
        shipments = self.create_loaded_shipments(count=2)
        dispatch = DispatchService.create_dispatch(
            [s.id for s in shipments], self.vehicle.id, 'B', self.operator
        ).dispatch
        Shipment.objects.filter(id=shipments[0].id).update(shipping_status=ShippingStatus.AT_DESTINATION_OFFICE)

        with self.assertRaises(InvalidTransitionException):
            DispatchService.void_dispatch(str(dispatch.id), self.manager)

        dispatch.refresh_from_db()
        self.assertEqual(dispatch.status, DispatchStatus.IN_TRANSIT)
        self.assertEqual(Shipment.objects.get(id=shipments[1].id).shipping_status, ShippingStatus.IN_TRANSIT)


class SharedVehicleTest(FreightFixturesMixin, TestCase):
    """Test a vehicle carrying more than one open manifest."""

    def setUp(self):
        super().setUp()
        shipments = self.create_loaded_shipments(count=2)
        self.first = DispatchService.create_dispatch(
            [shipments[0].id], self.vehicle.id, 'B', self.operator
        ).dispatch
        self.second = DispatchService.create_dispatch(
            [shipments[1].id], self.vehicle.id, 'C', self.operator
        ).dispatch

    def test_vehicle_stays_in_transit_until_last_manifest_arrives(self):
        result = DispatchService.receive_dispatch(str(self.first.id), [], self.receiver)
        self.assertEqual(result.vehicle.status, VehicleStatus.IN_TRANSIT)
        self.assertEqual(result.vehicle.current_office_id, 'A')

        result = DispatchService.receive_dispatch(str(self.second.id), [], self.receiver)
        self.assertEqual(result.vehicle.status, VehicleStatus.AVAILABLE)
        self.assertEqual(result.vehicle.current_office_id, 'C')

    def test_void_keeps_vehicle_on_the_road_for_the_other_manifest(self):
        result = DispatchService.void_dispatch(str(self.first.id), self.manager)
        self.assertEqual(result.vehicle.status, VehicleStatus.IN_TRANSIT)

        self.vehicle.refresh_from_db()
        self.assertEqual(self.vehicle.status, VehicleStatus.IN_TRANSIT)


class ArrivalOfficeTest(FreightFixturesMixin, TestCase):
    """Test where received shipments are held."""

    def test_arrival_office_is_last_received_manifest_destination(self):
        shipments = self.create_loaded_shipments(count=2)
        dispatch = DispatchService.create_dispatch(
            [s.id for s in shipments], self.vehicle.id, 'C', self.operator
        ).dispatch
        DispatchService.receive_dispatch(str(dispatch.id), [shipments[0].id], self.receiver)

        offices = DispatchService.arrival_offices([s.id for s in shipments])
        self.assertEqual(offices[str(shipments[0].id)], 'C')
        self.assertEqual(offices[str(shipments[1].id)], 'C')

    def test_open_manifests_are_ignored(self):
        shipments = self.create_loaded_shipments(count=1)
        DispatchService.create_dispatch([shipments[0].id], self.vehicle.id, 'C', self.operator)
        self.assertEqual(DispatchService.arrival_offices([shipments[0].id]), {})
