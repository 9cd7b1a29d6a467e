from django.test import TestCase

from loads.models import BlastResponse
from services.dispatch import (
    ALREADY_ASSIGNED,
    ASSIGNED,
    DECLINED,
    VIEWED,
    accept_blast,
    create_blast,
    decline,
    list_active_blasts_for_driver,
    mark_viewed,
    respond,
)

from .factories import PICKUP, in_minutes, make_driver, make_load, north_of


class ResponseLedgerTests(TestCase):
    def setUp(self):
        self.driver_a = make_driver("driver_a", north_of(PICKUP, 3))
        self.driver_b = make_driver("driver_b", north_of(PICKUP, 8))
        self.load = make_load()
        self.blast = create_blast(self.load.id, radius_miles=10, expires_at=in_minutes(15))

    def _response(self, driver):
        return BlastResponse.objects.get(blast=self.blast, driver=driver)

    def test_view_is_counted_once(self):
        first = mark_viewed(self.blast.id, self.driver_a)
        mark_viewed(self.blast.id, self.driver_a)

        self.assertTrue(first.success)
        self.assertEqual(first.outcome, VIEWED)
        self.assertEqual(self._response(self.driver_a).status, 'viewed')
        self.assertIsNotNone(self._response(self.driver_a).viewed_at)
        self.blast.refresh_from_db()
        self.assertEqual(self.blast.drivers_viewed, 1)

    def test_decline_leaves_blast_open_for_others(self):
        result = decline(self.blast.id, self.driver_a, "Truck is full")

        self.assertTrue(result.success)
        self.assertEqual(result.outcome, DECLINED)
        declined = self._response(self.driver_a)
        self.assertEqual(declined.status, 'declined')
        self.assertEqual(declined.decline_reason, "Truck is full")

        self.blast.refresh_from_db()
        self.assertEqual(self.blast.status, 'sent')
        self.assertEqual(self.blast.drivers_declined, 1)

        self.assertEqual(accept_blast(self.blast.id, self.driver_b).outcome, ASSIGNED)

    def test_repeat_decline_is_idempotent(self):
        decline(self.blast.id, self.driver_a)
        again = decline(self.blast.id, self.driver_a)

        self.assertTrue(again.success)
        self.blast.refresh_from_db()
        self.assertEqual(self.blast.drivers_declined, 1)

    def test_decline_after_load_was_taken(self):
        accept_blast(self.blast.id, self.driver_b)

        result = decline(self.blast.id, self.driver_a)

        self.assertFalse(result.success)
        self.assertEqual(result.outcome, ALREADY_ASSIGNED)
        self.assertEqual(self._response(self.driver_a).status, 'lost')

    def test_respond_dispatches_by_action(self):
        self.assertEqual(respond(self.blast.id, self.driver_a, 'view').outcome, VIEWED)
        self.assertEqual(respond(self.blast.id, self.driver_a, 'accept').outcome, ASSIGNED)
        self.assertEqual(respond(self.blast.id, self.driver_b, 'decline').outcome, ALREADY_ASSIGNED)

    def test_unknown_action_is_rejected(self):
        result = respond(self.blast.id, self.driver_a, 'maybe')

        self.assertFalse(result.success)
        self.assertEqual(result.error_code, 'invalid_action')

    def test_declined_offers_drop_off_the_driver_list(self):
        self.assertEqual(len(list_active_blasts_for_driver(self.driver_a)), 1)

        decline(self.blast.id, self.driver_a)

        self.assertEqual(list_active_blasts_for_driver(self.driver_a), [])
        self.assertEqual(len(list_active_blasts_for_driver(self.driver_b)), 1)
