"""
Run harvest matching from the command line.

Without arguments, sweeps every published harvest that still has weight
available and has not completed a matching run (e.g. after a failed
auto-match). Runs are idempotent, so re-running is always safe.

Usage:
    python manage.py match_harvests
    python manage.py match_harvests 12 15
    python manage.py match_harvests --database replica_primary
"""

from django.core.management.base import BaseCommand, CommandError
from django.db import DEFAULT_DB_ALIAS

from harvestman.exceptions import HarvestError


class Command(BaseCommand):
    help = "Match published harvests against pending preorders (FIFO)"

    def add_arguments(self, parser):
        parser.add_argument(
            "harvest_ids",
            nargs="*",
            type=int,
            help="Harvest ids to match (default: all matchable harvests)",
        )
        parser.add_argument(
            "--database",
            default=DEFAULT_DB_ALIAS,
            help="Database alias to run matching on",
        )

    def handle(self, *args, **options):
        from harvestman.models import Harvest
        from harvestman.services.matching import HarvestMatching

        using = options["database"]
        harvest_ids = options["harvest_ids"]
        if not harvest_ids:
            harvest_ids = list(
                Harvest.objects.using(using).matchable().order_by("harvested_at", "id")
                .values_list("id", flat=True)
            )

        if not harvest_ids:
            self.stdout.write("No harvests to match.")
            return

        failures = 0
        for harvest_id in harvest_ids:
            try:
                result = HarvestMatching.run(harvest_id, using=using)
            except HarvestError as e:
                failures += 1
                self.stderr.write(self.style.ERROR(f"Harvest {harvest_id}: {e}"))
                continue

            self.stdout.write(
                self.style.SUCCESS(
                    f"Harvest {harvest_id}: {result.matched_count} preorders reserved, "
                    f"{result.harvest.available_weight_kg} kg left"
                )
            )
            for skipped in result.skipped:
                self.stdout.write(
                    self.style.WARNING(f"  preorder {skipped.preorder_id} skipped: {skipped.reason}")
                )

        if failures:
            raise CommandError(f"{failures} of {len(harvest_ids)} harvests failed to match")
