from django.test import SimpleTestCase, TestCase

from drivers.models import DriverLocation
from drivers.services import update_driver_location
from loads.models import GeofenceEvent, LoadStatusEvent
from services.load_management import GeofenceConfig, detect_geofence_transition

from .factories import DELIVERY, PICKUP, make_assigned_load, make_driver, north_of


class DetectGeofenceTransitionTests(SimpleTestCase):
    config = GeofenceConfig(arrival_radius_m=150, departure_radius_m=300, max_accuracy_m=100)

    def test_arrival_at_pickup(self):
        transition = detect_geofence_transition('assigned', 40.0, 9000.0, 12.0, (), self.config)

        self.assertEqual(transition.event_type, 'arrived_pickup')
        self.assertEqual(transition.new_status, 'arrived_pickup')

    def test_unknown_or_poor_accuracy_never_fires(self):
        self.assertIsNone(detect_geofence_transition('assigned', 10.0, 9000.0, None, (), self.config))
        self.assertIsNone(detect_geofence_transition('assigned', 10.0, 9000.0, 250.0, (), self.config))

    def test_outside_arrival_radius_does_nothing(self):
        self.assertIsNone(detect_geofence_transition('assigned', 151.0, 9000.0, 5.0, (), self.config))

    def test_recorded_arrival_is_not_repeated(self):
        self.assertIsNone(
            detect_geofence_transition('in_progress', 20.0, 9000.0, 5.0, {'arrived_pickup'}, self.config)
        )

    def test_departure_from_pickup(self):
        transition = detect_geofence_transition('arrived_pickup', 450.0, 8000.0, 8.0, {'arrived_pickup'}, self.config)

        self.assertEqual(transition.event_type, 'departed_pickup')
        self.assertEqual(transition.new_status, 'in_transit')

    def test_arrival_at_delivery(self):
        transition = detect_geofence_transition(
            'in_transit', 9000.0, 75.0, 8.0, {'arrived_pickup', 'departed_pickup'}, self.config,
        )

        self.assertEqual(transition.event_type, 'arrived_delivery')
        self.assertEqual(transition.new_status, 'arrived_delivery')

    def test_stop_without_coordinates_never_fires(self):
        self.assertIsNone(detect_geofence_transition('assigned', None, None, 5.0, (), self.config))


class LocationStreamTests(TestCase):
    def setUp(self):
        self.driver = make_driver("maria", north_of(PICKUP, 2))
        self.load = make_assigned_load(self.driver)

    def test_hundred_pings_at_pickup_fire_once(self):
        events = [
            update_driver_location(self.driver, PICKUP[0], PICKUP[1], accuracy=8.0)[1]
            for _ in range(100)
        ]

        self.assertEqual(len([e for e in events if e is not None]), 1)
        self.assertEqual(GeofenceEvent.objects.filter(load=self.load).count(), 1)
        self.assertEqual(
            LoadStatusEvent.objects.filter(load=self.load, new_status='arrived_pickup').count(), 1
        )
        self.assertEqual(DriverLocation.objects.filter(driver=self.driver).count(), 100)

        self.load.refresh_from_db()
        self.assertEqual(self.load.status, 'arrived_pickup')
        self.assertIsNotNone(self.load.arrived_pickup_at)

    def test_full_trip_is_tracked_by_gps(self):
        away = north_of(PICKUP, 1)

        update_driver_location(self.driver, PICKUP[0], PICKUP[1], accuracy=8.0)
        update_driver_location(self.driver, away[0], away[1], accuracy=8.0)
        update_driver_location(self.driver, DELIVERY[0], DELIVERY[1], accuracy=8.0)

        self.load.refresh_from_db()
        self.assertEqual(self.load.status, 'arrived_delivery')
        self.assertEqual(
            list(GeofenceEvent.objects.filter(load=self.load).values_list('event_type', flat=True)),
            ['arrived_pickup', 'departed_pickup', 'arrived_delivery'],
        )
        self.assertEqual(
            set(LoadStatusEvent.objects.filter(load=self.load).values_list('changed_by', flat=True)),
            {'system:geofence'},
        )

    def test_ping_without_accuracy_is_stored_but_ignored(self):
        location, event = update_driver_location(self.driver, PICKUP[0], PICKUP[1])

        self.assertIsNone(event)
        self.assertIsNone(location.accuracy)
        self.driver.refresh_from_db()
        self.assertAlmostEqual(float(self.driver.current_latitude), PICKUP[0], places=5)
        self.load.refresh_from_db()
        self.assertEqual(self.load.status, 'assigned')

    def test_driver_without_active_load_only_moves(self):
        idle = make_driver("idle", north_of(PICKUP, 5))

        location, event = update_driver_location(idle, PICKUP[0], PICKUP[1], accuracy=5.0)

        self.assertIsNone(event)
        self.assertIsNone(location.active_load)
        self.assertFalse(GeofenceEvent.objects.exists())

    def test_foreign_load_reference_is_dropped(self):
        other = make_driver("omar", north_of(PICKUP, 1))
        foreign = make_assigned_load(other, reference_number="PHX-OTHER")

        location, _ = update_driver_location(
            self.driver, PICKUP[0], PICKUP[1], accuracy=8.0, active_load_id=foreign.id,
        )

        self.assertIsNone(location.active_load_id)
        foreign.refresh_from_db()
        self.assertEqual(foreign.status, 'assigned')
