from django.conf import settings
from django.core.management.base import BaseCommand
from django.utils import timezone
from datetime import timedelta
from drivers.models import DriverLocation
from loads.models import DispatchBlast
import logging

logger = logging.getLogger(__name__)


class Command(BaseCommand):
    help = "Clean up old GPS history and closed blasts."

    def add_arguments(self, parser):
        parser.add_argument(
            "--days",
            type=int,
            default=30,
            help="Delete closed blasts older than this many days (default: 30).",
        )
        parser.add_argument(
            "--gps-hours",
            type=int,
            default=getattr(settings, "GPS_HISTORY_RETENTION_HOURS", 2),
            help="Delete GPS points older than this many hours (default: GPS_HISTORY_RETENTION_HOURS).",
        )
        parser.add_argument(
            "--dry-run",
            action="store_true",
            help="Show what would be deleted without actually deleting.",
        )

    def handle(self, *args, **options):
        days = options["days"]
        gps_hours = options["gps_hours"]
        dry_run = options["dry_run"]
        now = timezone.now()

        old_locations = DriverLocation.objects.filter(recorded_at__lt=now - timedelta(hours=gps_hours))
        locations_count = old_locations.count()

        # Blasts that never produced a winner; accepted blasts stay as assignment history
        old_blasts = DispatchBlast.objects.filter(
            created_at__lt=now - timedelta(days=days),
            status__in=['expired', 'cancelled'],
        )
        blasts_count = old_blasts.count()

        if dry_run:
            self.stdout.write(
                self.style.WARNING(
                    f"DRY RUN: Would delete {locations_count} GPS points older than {gps_hours} hours "
                    f"and {blasts_count} closed blasts older than {days} days."
                )
            )
        else:
            old_locations.delete()
            old_blasts.delete()
            logger.info(f"Cleaned up {locations_count} GPS points and {blasts_count} closed blasts")
            self.stdout.write(
                self.style.SUCCESS(
                    f"Deleted {locations_count} GPS points older than {gps_hours} hours "
                    f"and {blasts_count} closed blasts older than {days} days."
                )
            )
