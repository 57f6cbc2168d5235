"""
Create a survey bound to a catalog definition.

Usage:
    python manage.py create_survey "2026 Conference Feedback Survey" [--definition-version conference-2026] [--activate]
"""

from django.core.management.base import BaseCommand, CommandError
from django.db import transaction

from apps.core.exceptions import NotFoundError
from apps.core.utility import unique_slug_for_code
from apps.surveys.catalog import DEFAULT_VERSION, get_definition
from apps.surveys.models import Survey, SurveyStatus


class Command(BaseCommand):
    help = "Create a survey from a catalog definition, optionally making it the active survey"

    def add_arguments(self, parser):
        parser.add_argument("title")
        parser.add_argument("--description", default="")
        parser.add_argument("--definition-version", dest="definition_version", default=DEFAULT_VERSION)
        parser.add_argument("--activate", action="store_true", help="Close the currently active survey and activate this one")

    @transaction.atomic
    def handle(self, *args, **options):
        version = options["definition_version"]
        try:
            get_definition(version)
        except NotFoundError as exc:
            raise CommandError(str(exc))

        status = SurveyStatus.DRAFT
        if options["activate"]:
            closed = Survey.objects.filter(status=SurveyStatus.ACTIVE).update(status=SurveyStatus.CLOSED)
            if closed:
                self.stdout.write(self.style.WARNING(f"Closed {closed} previously active survey(s)"))
            status = SurveyStatus.ACTIVE

        survey = Survey.objects.create(
            code=unique_slug_for_code(Survey, options["title"]),
            title=options["title"],
            description=options["description"] or None,
            status=status,
            definition_version=version,
        )
        self.stdout.write(self.style.SUCCESS(f"Survey created: id={survey.id} code={survey.code} status={survey.status}"))
