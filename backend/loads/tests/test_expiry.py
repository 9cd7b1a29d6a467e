from datetime import timedelta

from django.test import TestCase
from django.utils import timezone

from loads.models import BlastResponse, DispatchBlast, LoadStatusEvent
from loads.tasks import expire_blast_task, sweep_expired_blasts_task
from services.dispatch import (
    ASSIGNED,
    BLAST_EXPIRED,
    accept_blast,
    create_blast,
    expire_blast,
    list_active_blasts_for_driver,
    sweep_expired_blasts,
)

from .factories import PICKUP, in_minutes, make_driver, make_load, north_of


class ExpireBlastTests(TestCase):
    def setUp(self):
        self.driver_a = make_driver("driver_a", north_of(PICKUP, 3))
        self.driver_b = make_driver("driver_b", north_of(PICKUP, 8))
        self.load = make_load()
        self.blast = create_blast(self.load.id, radius_miles=10, expires_at=in_minutes(15))
        self.after_expiry = self.blast.expires_at + timedelta(seconds=1)

    def test_blast_is_not_expired_before_its_time(self):
        self.assertFalse(expire_blast(self.blast.id))

        self.blast.refresh_from_db()
        self.assertEqual(self.blast.status, 'sent')

    def test_expiry_reverts_load_and_closes_responses(self):
        self.assertTrue(expire_blast(self.blast.id, now=self.after_expiry))

        self.blast.refresh_from_db()
        self.load.refresh_from_db()
        self.assertEqual(self.blast.status, 'expired')
        self.assertEqual(self.blast.closed_at, self.after_expiry)
        self.assertEqual(self.load.status, 'pending')
        self.assertEqual(
            set(BlastResponse.objects.filter(blast=self.blast).values_list('status', flat=True)),
            {'expired'},
        )

        event = LoadStatusEvent.objects.filter(load=self.load).last()
        self.assertEqual(event.previous_status, 'blasted')
        self.assertEqual(event.new_status, 'pending')
        self.assertEqual(event.changed_by, 'system:expiry')

    def test_expiry_is_idempotent(self):
        self.assertTrue(expire_blast(self.blast.id, now=self.after_expiry))
        self.assertFalse(expire_blast(self.blast.id, now=self.after_expiry))

        self.assertEqual(LoadStatusEvent.objects.filter(load=self.load, new_status='pending').count(), 1)

    def test_accept_before_expiry_keeps_the_load(self):
        accept_blast(self.blast.id, self.driver_a)

        self.assertFalse(expire_blast(self.blast.id, now=self.after_expiry))

        self.load.refresh_from_db()
        self.blast.refresh_from_db()
        self.assertEqual(self.blast.status, 'accepted')
        self.assertEqual(self.load.status, 'assigned')
        self.assertEqual(self.load.driver, self.driver_a)

    def test_accept_after_expiry_is_refused(self):
        expire_blast(self.blast.id, now=self.after_expiry)

        result = accept_blast(self.blast.id, self.driver_a)

        self.assertFalse(result.success)
        self.assertEqual(result.outcome, BLAST_EXPIRED)
        self.load.refresh_from_db()
        self.assertEqual(self.load.status, 'pending')
        self.assertIsNone(self.load.driver)

    def test_accept_past_deadline_wins_until_swept(self):
        DispatchBlast.objects.filter(pk=self.blast.pk).update(expires_at=timezone.now() - timedelta(seconds=5))

        result = accept_blast(self.blast.id, self.driver_b)

        self.assertTrue(result.success)
        self.assertEqual(result.outcome, ASSIGNED)
        self.assertEqual(sweep_expired_blasts().expired, 0)

    def test_blast_without_responses_expires(self):
        load = make_load(reference_number="PHX-EMPTY")
        empty = create_blast(load.id, radius_miles=0.5, expires_at=in_minutes(5))

        self.assertTrue(expire_blast(empty.id, now=empty.expires_at + timedelta(seconds=1)))

        load.refresh_from_db()
        self.assertEqual(load.status, 'pending')


class SweepExpiredBlastsTests(TestCase):
    def setUp(self):
        self.driver = make_driver("driver_a", north_of(PICKUP, 3))

    def _overdue_blast(self, reference):
        load = make_load(reference_number=reference)
        blast = create_blast(load.id, radius_miles=10, expires_at=in_minutes(10))
        DispatchBlast.objects.filter(pk=blast.pk).update(expires_at=timezone.now() - timedelta(minutes=1))
        return blast

    def test_sweep_expires_only_overdue_blasts(self):
        overdue = self._overdue_blast("PHX-OLD")
        current = create_blast(make_load(reference_number="PHX-NEW").id, radius_miles=10, expires_at=in_minutes(10))

        result = sweep_expired_blasts()

        self.assertEqual(result.expired, 1)
        overdue.refresh_from_db()
        current.refresh_from_db()
        self.assertEqual(overdue.status, 'expired')
        self.assertEqual(current.status, 'sent')

    def test_driver_listing_hides_expired_offers(self):
        self._overdue_blast("PHX-OLD")
        current = create_blast(make_load(reference_number="PHX-NEW").id, radius_miles=10, expires_at=in_minutes(10))

        offers = list_active_blasts_for_driver(self.driver)

        self.assertEqual([b.id for b in offers], [current.id])

    def test_tasks_wrap_the_sweeper(self):
        overdue = self._overdue_blast("PHX-OLD")

        self.assertEqual(sweep_expired_blasts_task(), {"expired": 1, "reconciled": 0})
        self.assertTrue(expire_blast_task(overdue.id))

        overdue.refresh_from_db()
        self.assertEqual(overdue.status, 'expired')
