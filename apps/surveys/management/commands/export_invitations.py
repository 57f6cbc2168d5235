"""
Export the invitations of a survey (default: the active one) as CSV.

Usage:
    python manage.py export_invitations [--survey CODE] [--output FILE]
"""

from django.core.management.base import BaseCommand, CommandError
from django.utils import timezone

from apps.core.exceptions import NotFoundError
from apps.surveys.export import export_invitations_csv
from apps.surveys.models import Survey, SurveyInvitation
from apps.surveys.services import get_active_survey


class Command(BaseCommand):
    help = "Export survey invitations with their magic links to a CSV file"

    def add_arguments(self, parser):
        parser.add_argument("--survey", help="Survey code (defaults to the active survey)")
        parser.add_argument("--output", help="Destination file (defaults to invitations-<code>-<date>.csv)")

    def handle(self, *args, **options):
        code = options.get("survey")
        if code:
            survey = Survey.objects.filter(code=code).first()
            if survey is None:
                raise CommandError(f"Survey not found: {code}")
        else:
            try:
                survey = get_active_survey()
            except NotFoundError as exc:
                raise CommandError(str(exc))

        filename = options.get("output") or f"invitations-{survey.code}-{timezone.now().date().isoformat()}.csv"
        with open(filename, "w", encoding="utf-8", newline="") as fh:
            fh.write(export_invitations_csv(survey))

        qs = SurveyInvitation.objects.filter(survey=survey)
        self.stdout.write(self.style.SUCCESS(f"Exported to: {filename}"))
        self.stdout.write(f"  Total invitations: {qs.count()}")
        self.stdout.write(f"  Sent: {qs.filter(sent_at__isnull=False).count()}")
        self.stdout.write(f"  Opened: {qs.filter(opened_at__isnull=False).count()}")
        self.stdout.write(f"  Responded: {qs.filter(responded_at__isnull=False).count()}")
