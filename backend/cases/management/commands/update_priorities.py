"""
Management command: update_priorities
~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~

Re-runs area classification for every case whose priority has not been
pinned by an admin override.  Useful after the reference dataset
(``CASE_PRIORITY_DATASET``) has been edited.

Usage::

    python manage.py update_priorities
    python manage.py update_priorities --dataset /path/to/areas.json
"""

from django.core.management.base import BaseCommand

from cases.priority import AreaPriorityClassifier
from cases.services import CasePriorityService


class Command(BaseCommand):
    help = "Recompute the area-derived priority of all non-overridden cases."

    def add_arguments(self, parser):
        parser.add_argument(
            "--dataset",
            default=None,
            help="Classify against this JSON file instead of the configured dataset.",
        )

    def handle(self, *args, **options):
        classifier = None
        if options["dataset"]:
            classifier = AreaPriorityClassifier.from_json(options["dataset"])

        result = CasePriorityService.recompute_priorities(classifier=classifier)

        self.stdout.write(self.style.SUCCESS(
            f"Examined {result['total']} case(s): "
            f"{result['updated']} updated, {result['skipped']} pinned and skipped."
        ))
