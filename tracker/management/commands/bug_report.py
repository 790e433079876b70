"""Management command to print bug counts per project and status.

    python manage.py bug_report
    python manage.py bug_report --project 3
"""

import logging

from django.core.management.base import BaseCommand, CommandError
from django.db.models import Count, Q

from tracker.errors import NotFound
from tracker.membership import all_projects, find_project
from tracker.models import Status

logger = logging.getLogger("tracker.management.bug_report")


class Command(BaseCommand):
    help = "Summarise bugs by status for every project (or a single one)."

    def add_arguments(self, parser):
        parser.add_argument("--project", type=int, help="Only report on this project id.")

    def handle(self, *args, **options):
        if options["project"] is not None:
            try:
                projects = [find_project(options["project"])]
            except NotFound as e:
                raise CommandError(e.detail)
        else:
            projects = list(all_projects())

        if not projects:
            self.stdout.write("No projects, nothing to report.")
            return

        for project in projects:
            counts = project.bugs.aggregate(
                open=Count("id", filter=Q(status=Status.OPEN)),
                in_progress=Count("id", filter=Q(status=Status.IN_PROGRESS)),
                resolved=Count("id", filter=Q(status=Status.RESOLVED)),
                unassigned=Count("id", filter=Q(status=Status.OPEN, assigned_to__isnull=True)),
            )
            self.stdout.write(
                f"#{project.pk} {project.name}: "
                f"open={counts['open']} in_progress={counts['in_progress']} "
                f"resolved={counts['resolved']} (unassigned open={counts['unassigned']})"
            )

        logger.info("Reported on %d project(s)", len(projects))
        self.stdout.write(self.style.SUCCESS(f"Done: {len(projects)} project(s)."))
