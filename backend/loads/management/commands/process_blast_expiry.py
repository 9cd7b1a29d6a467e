import time

from django.conf import settings
from django.core.management.base import BaseCommand

from services.dispatch import sweep_expired_blasts


class Command(BaseCommand):
    help = "Expire blasts whose offer window has passed and finish stranded assignments."

    def add_arguments(self, parser):
        parser.add_argument(
            "--loop",
            action="store_true",
            help="Keep sweeping until interrupted instead of running once.",
        )
        parser.add_argument(
            "--interval",
            type=int,
            default=getattr(settings, "BLAST_SWEEP_INTERVAL_SECONDS", 30),
            help="Seconds between sweeps in --loop mode (default: BLAST_SWEEP_INTERVAL_SECONDS).",
        )

    def handle(self, *args, **options):
        while True:
            result = sweep_expired_blasts()
            self.stdout.write(
                self.style.SUCCESS(
                    f"Expired {result.expired} blast(s); reconciled {result.reconciled} assignment(s)."
                )
            )
            if not options["loop"]:
                break
            time.sleep(options["interval"])
