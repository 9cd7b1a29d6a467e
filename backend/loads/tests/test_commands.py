from datetime import timedelta
from io import StringIO

from django.core.management import call_command
from django.test import TestCase
from django.utils import timezone

from drivers.models import DriverLocation
from loads.models import DispatchBlast
from loads.tasks import cleanup_gps_history_task
from services.dispatch import cancel_blast, create_blast

from .factories import PICKUP, in_minutes, make_driver, make_load, north_of


class ProcessBlastExpiryCommandTests(TestCase):
    def test_single_sweep_expires_overdue_blast(self):
        make_driver("driver_a", north_of(PICKUP, 3))
        load = make_load()
        blast = create_blast(load.id, radius_miles=10, expires_at=in_minutes(10))
        DispatchBlast.objects.filter(pk=blast.pk).update(expires_at=timezone.now() - timedelta(minutes=1))

        out = StringIO()
        call_command('process_blast_expiry', stdout=out)

        blast.refresh_from_db()
        load.refresh_from_db()
        self.assertEqual(blast.status, 'expired')
        self.assertEqual(load.status, 'pending')
        self.assertIn("Expired 1 blast(s); reconciled 0 assignment(s).", out.getvalue())


class CleanupOldDataCommandTests(TestCase):
    def setUp(self):
        self.driver = make_driver("driver_a", north_of(PICKUP, 3))
        now = timezone.now()
        for hours_ago in (1, 5, 30):
            DriverLocation.objects.create(
                driver=self.driver,
                latitude=PICKUP[0],
                longitude=PICKUP[1],
                accuracy=10.0,
                recorded_at=now - timedelta(hours=hours_ago),
            )

        self.old_blast = create_blast(make_load().id, radius_miles=10, expires_at=in_minutes(10))
        cancel_blast(self.old_blast.id)
        DispatchBlast.objects.filter(pk=self.old_blast.pk).update(created_at=now - timedelta(days=45))

    def test_dry_run_deletes_nothing(self):
        out = StringIO()
        call_command('cleanup_old_data', '--dry-run', '--gps-hours', '2', stdout=out)

        self.assertIn("DRY RUN: Would delete 2 GPS points", out.getvalue())
        self.assertEqual(DriverLocation.objects.count(), 3)
        self.assertTrue(DispatchBlast.objects.filter(pk=self.old_blast.pk).exists())

    def test_cleanup_removes_old_rows(self):
        out = StringIO()
        call_command('cleanup_old_data', '--gps-hours', '2', '--days', '30', stdout=out)

        self.assertEqual(DriverLocation.objects.count(), 1)
        self.assertFalse(DispatchBlast.objects.filter(pk=self.old_blast.pk).exists())
        self.assertIn("Deleted 2 GPS points older than 2 hours and 1 closed blasts older than 30 days.", out.getvalue())

    def test_gps_retention_task(self):
        with self.settings(GPS_HISTORY_RETENTION_HOURS=24):
            self.assertEqual(cleanup_gps_history_task(), 1)

        self.assertEqual(DriverLocation.objects.count(), 2)
