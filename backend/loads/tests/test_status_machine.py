from unittest.mock import patch

from django.test import TestCase

from loads.models import DispatchBlast, LoadStatusEvent
from services.dispatch import BLAST_CANCELLED, accept_blast, create_blast, reconcile_accepted_blasts
from services.dispatch.blast_lifecycle import cancel_open_blast_for_load as real_cancel
from services.load_management import (
    AssignmentConflictError,
    DriverRequiredError,
    InvalidStatusError,
    InvalidTransitionError,
    assign_driver,
    transition_load,
    update_load_status,
)

from .factories import PICKUP, in_minutes, make_assigned_load, make_dispatcher, make_driver, make_load, north_of


class TransitionLoadTests(TestCase):
    def setUp(self):
        self.dispatcher = make_dispatcher()
        self.driver = make_driver("maria", north_of(PICKUP, 2))
        self.load = make_load(dispatcher=self.dispatcher)

    def test_assign_records_event_and_timestamp(self):
        change = transition_load(self.load.id, 'assigned', 'dispatcher:1', "Manual", driver=self.driver)

        self.assertTrue(change.changed)
        self.load.refresh_from_db()
        self.assertEqual(self.load.status, 'assigned')
        self.assertEqual(self.load.driver, self.driver)
        self.assertIsNotNone(self.load.assigned_at)

        event = LoadStatusEvent.objects.get(load=self.load)
        self.assertEqual(event.previous_status, 'pending')
        self.assertEqual(event.new_status, 'assigned')
        self.assertEqual(event.changed_by, 'dispatcher:1')

    def test_assign_without_driver_is_rejected(self):
        with self.assertRaises(DriverRequiredError):
            transition_load(self.load.id, 'assigned', 'dispatcher:1')

        self.load.refresh_from_db()
        self.assertEqual(self.load.status, 'pending')
        self.assertFalse(LoadStatusEvent.objects.exists())

    def test_illegal_edges_raise(self):
        with self.assertRaises(InvalidTransitionError):
            transition_load(self.load.id, 'delivered', 'dispatcher:1')

        self.load.status = 'completed'
        self.load.save(update_fields=['status'])
        with self.assertRaises(InvalidTransitionError):
            transition_load(self.load.id, 'pending', 'dispatcher:1')

    def test_unknown_status_raises(self):
        with self.assertRaises(InvalidStatusError):
            transition_load(self.load.id, 'teleported', 'dispatcher:1')

    def test_same_status_is_a_noop(self):
        change = transition_load(self.load.id, 'pending', 'dispatcher:1')

        self.assertFalse(change.changed)
        self.assertFalse(LoadStatusEvent.objects.exists())

    def test_cancelled_load_reopens_to_pending(self):
        transition_load(self.load.id, 'cancelled', 'dispatcher:1', "Customer called")
        change = transition_load(self.load.id, 'pending', 'dispatcher:1', "Rebooked")

        self.assertTrue(change.changed)
        self.assertEqual(
            list(LoadStatusEvent.objects.filter(load=self.load).values_list('new_status', flat=True)),
            ['cancelled', 'pending'],
        )

    def test_status_events_are_append_only(self):
        change = transition_load(self.load.id, 'cancelled', 'dispatcher:1')

        change.event.reason = "rewritten"
        with self.assertRaises(ValueError):
            change.event.save()


class AssignDriverTests(TestCase):
    def setUp(self):
        self.driver_one = make_driver("driver_one", north_of(PICKUP, 1))
        self.driver_two = make_driver("driver_two", north_of(PICKUP, 2))
        self.load = make_load()

    def test_assign_is_idempotent_for_the_same_driver(self):
        assign_driver(self.load.id, self.driver_one, 'system:arbiter')
        change = assign_driver(self.load.id, self.driver_one, 'system:arbiter')

        self.assertFalse(change.changed)
        self.assertEqual(LoadStatusEvent.objects.filter(load=self.load, new_status='assigned').count(), 1)

    def test_second_driver_cannot_take_an_assigned_load(self):
        assign_driver(self.load.id, self.driver_one, 'system:arbiter')

        with self.assertRaises(AssignmentConflictError):
            assign_driver(self.load.id, self.driver_two, 'system:arbiter')

        self.load.refresh_from_db()
        self.assertEqual(self.load.driver, self.driver_one)


class UpdateLoadStatusTests(TestCase):
    def setUp(self):
        self.dispatcher = make_dispatcher()
        self.driver = make_driver("maria", north_of(PICKUP, 1))
        self.other = make_driver("omar", north_of(PICKUP, 4))

    def test_invalid_transition_comes_back_as_result(self):
        load = make_load()

        result = update_load_status(load.id, 'delivered', self.dispatcher.actor_label)

        self.assertFalse(result.success)
        self.assertEqual(result.error_code, 'invalid_transition')

    def test_arrival_reported_far_from_pickup_is_refused(self):
        load = make_assigned_load(self.driver)
        far_lat, far_lng = north_of(PICKUP, 3)

        result = update_load_status(
            load.id, 'arrived_pickup', self.driver.user.actor_label,
            latitude=far_lat, longitude=far_lng,
        )

        self.assertFalse(result.success)
        self.assertEqual(result.error_code, 'outside_geofence')
        load.refresh_from_db()
        self.assertEqual(load.status, 'assigned')

    def test_arrival_reported_at_pickup_is_accepted(self):
        load = make_assigned_load(self.driver)

        result = update_load_status(
            load.id, 'arrived_pickup', self.driver.user.actor_label,
            latitude=PICKUP[0], longitude=PICKUP[1],
        )

        self.assertTrue(result.success)
        self.assertEqual(result.load.status, 'arrived_pickup')
        self.assertIsNotNone(result.load.arrived_pickup_at)

    def test_manual_assignment_cancels_open_blast(self):
        load = make_load(dispatcher=self.dispatcher)
        blast = create_blast(load.id, radius_miles=10, expires_at=in_minutes(15), created_by=self.dispatcher)

        result = update_load_status(
            load.id, 'assigned', self.dispatcher.actor_label,
            reason="Called the driver directly", driver=self.other,
        )

        self.assertTrue(result.success)
        blast.refresh_from_db()
        load.refresh_from_db()
        self.assertEqual(blast.status, 'cancelled')
        self.assertEqual(load.status, 'assigned')
        self.assertEqual(load.driver, self.other)
        self.assertFalse(blast.responses.filter(status__in=['notified', 'viewed']).exists())
        self.assertFalse(DispatchBlast.objects.filter(load=load, status='sent').exists())


class ManualChangeOfBlastedLoadTests(TestCase):
    def setUp(self):
        self.dispatcher = make_dispatcher()
        self.driver_a = make_driver("driver_a", north_of(PICKUP, 3))
        self.driver_b = make_driver("driver_b", north_of(PICKUP, 8))
        self.load = make_load(dispatcher=self.dispatcher)
        self.blast = create_blast(self.load.id, radius_miles=10, expires_at=in_minutes(15))

    def test_cancelling_the_load_withdraws_the_blast(self):
        result = update_load_status(self.load.id, 'cancelled', self.dispatcher.actor_label, "Customer cancelled")

        self.assertTrue(result.success)
        self.blast.refresh_from_db()
        self.assertEqual(self.blast.status, 'cancelled')
        self.assertEqual(self.blast.responses.filter(status='expired').count(), 2)

        late = accept_blast(self.blast.id, self.driver_a)

        self.assertFalse(late.success)
        self.assertEqual(late.outcome, BLAST_CANCELLED)
        self.load.refresh_from_db()
        self.assertEqual(self.load.status, 'cancelled')
        self.assertIsNone(self.load.driver)

    def test_load_put_back_to_pending_can_be_blasted_again(self):
        result = update_load_status(self.load.id, 'pending', self.dispatcher.actor_label, "Wrong rate")

        self.assertTrue(result.success)
        self.assertTrue(result.change.changed)
        event = LoadStatusEvent.objects.filter(load=self.load).last()
        self.assertEqual((event.previous_status, event.new_status), ('blasted', 'pending'))
        self.assertEqual(event.changed_by, self.dispatcher.actor_label)

        second = create_blast(self.load.id, radius_miles=10, expires_at=in_minutes(15))

        self.assertEqual(second.status, 'sent')
        self.assertEqual(DispatchBlast.objects.filter(load=self.load, status='sent').count(), 1)

    def test_rejected_move_leaves_the_blast_open(self):
        result = update_load_status(self.load.id, 'delivered', self.dispatcher.actor_label)

        self.assertEqual(result.error_code, 'invalid_transition')
        self.blast.refresh_from_db()
        self.assertEqual(self.blast.status, 'sent')

    def test_manual_assignment_loses_to_an_accept_that_got_there_first(self):
        def accept_then_cancel(load, **kwargs):
            accept_blast(self.blast.id, self.driver_a)
            return real_cancel(load, **kwargs)

        with patch('services.dispatch.cancel_open_blast_for_load', side_effect=accept_then_cancel):
            result = update_load_status(
                self.load.id, 'assigned', self.dispatcher.actor_label, driver=self.driver_b,
            )

        self.assertFalse(result.success)
        self.assertEqual(result.error_code, 'assignment_conflict')
        self.load.refresh_from_db()
        self.blast.refresh_from_db()
        self.assertEqual(self.blast.accepted_by, self.driver_a)
        self.assertEqual(self.load.driver, self.driver_a)
        self.assertFalse(LoadStatusEvent.objects.filter(load=self.load, changed_by=self.dispatcher.actor_label).exists())

    def test_pending_handoff_blocks_manual_assignment(self):
        with patch('services.dispatch.arbiter.assign_driver', side_effect=RuntimeError("database went away")):
            accept_blast(self.blast.id, self.driver_a)

        result = update_load_status(
            self.load.id, 'assigned', self.dispatcher.actor_label, driver=self.driver_b,
        )

        self.assertEqual(result.error_code, 'assignment_conflict')
        self.assertEqual(reconcile_accepted_blasts(), 1)
        self.load.refresh_from_db()
        self.assertEqual(self.load.driver, self.driver_a)


class BusyDriverAssignmentTests(TestCase):
    def setUp(self):
        self.dispatcher = make_dispatcher()
        self.driver = make_driver("maria", north_of(PICKUP, 1))
        self.current = make_assigned_load(self.driver, reference_number="PHX-BUSY")
        self.load = make_load(dispatcher=self.dispatcher, reference_number="PHX-NEXT")

    def test_busy_driver_is_refused_without_force(self):
        result = update_load_status(self.load.id, 'assigned', self.dispatcher.actor_label, driver=self.driver)

        self.assertFalse(result.success)
        self.assertEqual(result.error_code, 'driver_busy')
        self.assertIn("PHX-BUSY", result.message)
        self.load.refresh_from_db()
        self.assertEqual(self.load.status, 'pending')
        self.assertIsNone(self.load.driver)

    def test_force_assigns_anyway(self):
        result = update_load_status(
            self.load.id, 'assigned', self.dispatcher.actor_label, driver=self.driver, force=True,
        )

        self.assertTrue(result.success)
        self.assertEqual(result.load.driver, self.driver)

    def test_finished_loads_do_not_make_a_driver_busy(self):
        transition_load(self.current.id, 'in_progress', 'system:test')
        transition_load(self.current.id, 'delivered', 'system:test')

        result = update_load_status(self.load.id, 'assigned', self.dispatcher.actor_label, driver=self.driver)

        self.assertTrue(result.success)
