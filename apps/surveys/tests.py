import io
import os
import tempfile
from datetime import timedelta
from unittest import mock

from django.contrib.auth.models import User
from django.core import mail
from django.core.management import call_command
from django.core.management.base import CommandError
from django.db import IntegrityError, transaction
from django.test import TestCase, override_settings
from django.utils import timezone
from rest_framework.test import APIClient

from apps.accounts.models import Role
from apps.contacts.models import Contact, Organization
from apps.core.exceptions import NotFoundError
from apps.surveys.export import EXPORT_HEADER, export_invitations_csv
from apps.surveys.models import ParticipantType, Survey, SurveyInvitation, SurveyStatus
from apps.surveys.services import classify_participant_type, has_conference_tag, issue_or_refresh, send_batch
from apps.surveys.tokens import TOKEN_LENGTH, generate_token

DELEGATE = "26 Conference Delegate"
EXHIBITOR = "26 Conference Exhibitor"


class TokenTests(TestCase):
    def test_tokens_are_fixed_length_and_url_safe(self):
        tokens = {generate_token() for _ in range(50)}
        self.assertEqual(len(tokens), 50)
        for token in tokens:
            self.assertEqual(len(token), TOKEN_LENGTH)
            self.assertTrue(token.isalnum())


class SurveyModelTests(TestCase):
    def test_only_one_active_survey(self):
        Survey.objects.create(code="one", title="One", status=SurveyStatus.ACTIVE)
        with self.assertRaises(IntegrityError):
            with transaction.atomic():
                Survey.objects.create(code="two", title="Two", status=SurveyStatus.ACTIVE)
        # drafts are unconstrained
        Survey.objects.create(code="three", title="Three", status=SurveyStatus.DRAFT)
        Survey.objects.create(code="four", title="Four", status=SurveyStatus.DRAFT)

    def test_participant_type_from_tags(self):
        self.assertEqual(classify_participant_type([DELEGATE]), ParticipantType.DELEGATE)
        self.assertEqual(classify_participant_type([EXHIBITOR]), ParticipantType.EXHIBITOR)
        self.assertEqual(classify_participant_type([EXHIBITOR, DELEGATE]), ParticipantType.DELEGATE)
        self.assertEqual(classify_participant_type([]), ParticipantType.EXHIBITOR)

    @override_settings(SURVEY_DELEGATE_TAG="27 Conference Delegate", SURVEY_EXHIBITOR_TAG="27 Conference Exhibitor")
    def test_tags_follow_settings(self):
        self.assertEqual(classify_participant_type(["27 Conference Delegate"]), ParticipantType.DELEGATE)
        self.assertEqual(classify_participant_type([DELEGATE]), ParticipantType.EXHIBITOR)
        self.assertTrue(has_conference_tag(["27 Conference Exhibitor"]))
        self.assertFalse(has_conference_tag([DELEGATE, EXHIBITOR]))

    def test_contact_tags_parsed_from_formula(self):
        c = Contact(name="A", tags=f"@{DELEGATE}, VIP ,")
        self.assertEqual(c.tag_names, [DELEGATE, "VIP"])


class IssuanceTests(TestCase):
    def setUp(self):
        self.survey = Survey.objects.create(code="conf", title="Conf", status=SurveyStatus.ACTIVE)
        self.contact = Contact.objects.create(name="Dana", email="dana@example.com", tags=DELEGATE)

    def test_issue_sets_ninety_day_expiry(self):
        now = timezone.now()
        inv = issue_or_refresh(self.contact, self.survey, now=now)
        self.assertEqual(inv.sent_at, now)
        self.assertEqual(inv.expires_at, now + timedelta(days=90))
        self.assertEqual(inv.participant_type, ParticipantType.DELEGATE)
        self.assertEqual(inv.email, "dana@example.com")

    def test_refresh_keeps_identity_and_replaces_token(self):
        first = issue_or_refresh(self.contact, self.survey)
        old_token = first.token

        later = timezone.now() + timedelta(days=10)
        second = issue_or_refresh(self.contact, self.survey, now=later)

        self.assertEqual(second.id, first.id)
        self.assertNotEqual(second.token, old_token)
        self.assertEqual(second.expires_at, later + timedelta(days=90))
        self.assertEqual(SurveyInvitation.objects.count(), 1)
        self.assertFalse(SurveyInvitation.objects.filter(token=old_token).exists())

    def test_expired_invitation_is_not_refreshed(self):
        first = issue_or_refresh(self.contact, self.survey)
        SurveyInvitation.objects.filter(pk=first.pk).update(expires_at=timezone.now() - timedelta(days=1))

        second = issue_or_refresh(self.contact, self.survey)
        self.assertNotEqual(second.id, first.id)
        self.assertEqual(SurveyInvitation.objects.count(), 2)

    def test_survey_url_embeds_token(self):
        with override_settings(SITE_URL="https://feedback.example.com/"):
            inv = issue_or_refresh(self.contact, self.survey)
            self.assertEqual(inv.survey_url, f"https://feedback.example.com/s/{inv.token}")


@override_settings(TEST_EMAIL_OVERRIDE="")
class BatchSendTests(TestCase):
    def setUp(self):
        self.survey = Survey.objects.create(code="conf", title="Conf", status=SurveyStatus.ACTIVE)
        self.c1 = Contact.objects.create(name="One", email="one@example.com", tags=DELEGATE)
        self.c2 = Contact.objects.create(name="Two", email=None, tags=DELEGATE)
        self.c3 = Contact.objects.create(name="Three", email="three@example.com", tags=EXHIBITOR)

    def test_missing_email_is_isolated(self):
        result = send_batch([self.c1.id, self.c2.id, self.c3.id])
        self.assertEqual(result.success, 2)
        self.assertEqual(result.failed, 1)
        self.assertEqual(result.errors[0].contact_id, self.c2.id)
        self.assertEqual(len(mail.outbox), 2)
        self.assertEqual(SurveyInvitation.objects.count(), 2)
        self.assertIn(SurveyInvitation.objects.get(contact=self.c1).token, mail.outbox[0].alternatives[0][0])

    def test_unknown_contact_recorded_as_failure(self):
        result = send_batch([self.c1.id, 99999])
        self.assertEqual((result.success, result.failed), (1, 1))
        self.assertEqual(result.as_dict()["errors"], [{"contact_id": 99999, "email": None, "error": "Contact not found"}])

    def test_custom_subject_and_message(self):
        send_batch([self.c1.id], subject="Tell us", message="We saved you a seat.")
        self.assertEqual(mail.outbox[0].subject, "Tell us")
        self.assertIn("We saved you a seat.", mail.outbox[0].alternatives[0][0])

    def test_no_contacts_found(self):
        with self.assertRaises(NotFoundError):
            send_batch([424242])

    def test_no_active_survey(self):
        Survey.objects.update(status=SurveyStatus.CLOSED)
        with self.assertRaises(NotFoundError):
            send_batch([self.c1.id])

    def test_transport_failure_is_recorded(self):
        with mock.patch("apps.surveys.services.send_email") as send:
            send.return_value.success = False
            send.return_value.error = "Connection refused"
            result = send_batch([self.c1.id])
        self.assertEqual(result.failed, 1)
        self.assertEqual(result.errors[0].error, "Connection refused")
        # the token was committed before the send failed
        self.assertTrue(SurveyInvitation.objects.filter(contact=self.c1).exists())


class ExportTests(TestCase):
    def test_csv_header_and_flags(self):
        survey = Survey.objects.create(code="conf", title="Conf", status=SurveyStatus.ACTIVE)
        org = Organization.objects.create(name="Acme")
        contact = Contact.objects.create(name="Dana", email="dana@example.com", organization=org, tags=DELEGATE)
        inv = issue_or_refresh(contact, survey)

        lines = export_invitations_csv(survey).splitlines()
        self.assertEqual(lines[0], ",".join(f'"{h}"' for h in EXPORT_HEADER))
        self.assertEqual(
            lines[1],
            f'"dana@example.com","Dana","Acme","delegate","{inv.survey_url}","Yes","No","No"',
        )


@override_settings(TEST_EMAIL_OVERRIDE="")
class InvitationApiTests(TestCase):
    def setUp(self):
        self.client = APIClient()
        self.user = User.objects.create_user(username="viewer", password="pass")
        Role.objects.create(name="Viewer").users.add(self.user)
        self.client.force_authenticate(user=self.user)
        self.survey = Survey.objects.create(code="conf", title="Conf", status=SurveyStatus.ACTIVE)
        self.contact = Contact.objects.create(name="Dana", email="dana@example.com", tags=DELEGATE)
        Contact.objects.create(name="No Tag", email="nobody@example.com", tags="Newsletter")

    def test_anonymous_is_unauthorized(self):
        self.client.force_authenticate(user=None)
        resp = self.client.get("/api/v1/surveys/invitations/")
        self.assertEqual(resp.status_code, 401)

    def test_distribution_list_only_tagged_contacts(self):
        issue_or_refresh(self.contact, self.survey)
        resp = self.client.get("/api/v1/surveys/invitations/")
        self.assertEqual(resp.status_code, 200)
        body = resp.json()
        self.assertEqual(body["count"], 1)
        row = body["results"][0]
        self.assertEqual(row["email"], "dana@example.com")
        self.assertEqual(row["participant_type"], "delegate")
        self.assertFalse(row["has_responded"])
        self.assertIsNotNone(row["sent_at"])

    def test_send_requires_editor(self):
        resp = self.client.post("/api/v1/surveys/invitations/send/", {"contact_ids": [self.contact.id]}, format="json")
        self.assertEqual(resp.status_code, 403)

        Role.objects.get_or_create(name="Editor")[0].users.add(self.user)
        resp2 = self.client.post("/api/v1/surveys/invitations/send/", {"contact_ids": [self.contact.id]}, format="json")
        self.assertEqual(resp2.status_code, 200)
        self.assertEqual(resp2.json(), {"success": 1, "failed": 0, "errors": []})
        self.assertEqual(len(mail.outbox), 1)

    def test_send_queued(self):
        Role.objects.get_or_create(name="Editor")[0].users.add(self.user)
        with mock.patch("apps.surveys.views.send_invitations_task.delay") as delay:
            delay.return_value.id = "task-1"
            resp = self.client.post(
                "/api/v1/surveys/invitations/send/",
                {"contact_ids": [self.contact.id], "subject": "Hi", "queue": True},
                format="json",
            )
        self.assertEqual(resp.status_code, 202)
        self.assertEqual(resp.json()["task_id"], "task-1")
        delay.assert_called_once_with([self.contact.id], "Hi", None)

    def test_export_csv(self):
        issue_or_refresh(self.contact, self.survey)
        resp = self.client.get("/api/v1/surveys/invitations/export/")
        self.assertEqual(resp.status_code, 200)
        self.assertIn("attachment;", resp["Content-Disposition"])
        self.assertTrue(resp.content.decode().startswith('"Email","Name"'))

    def test_survey_list(self):
        resp = self.client.get("/api/v1/surveys/?status=active")
        self.assertEqual(resp.status_code, 200)
        self.assertEqual(resp.json()["count"], 1)


class CommandTests(TestCase):
    def test_create_survey_activate_closes_previous(self):
        old = Survey.objects.create(code="old", title="Old", status=SurveyStatus.ACTIVE)
        out = io.StringIO()
        call_command("create_survey", "2026 Conference Feedback Survey", "--activate", stdout=out)

        old.refresh_from_db()
        self.assertEqual(old.status, SurveyStatus.CLOSED)
        new = Survey.objects.get(status=SurveyStatus.ACTIVE)
        self.assertEqual(new.code, "2026-conference-feedback-survey")
        self.assertIn("Closed 1 previously active survey(s)", out.getvalue())

    def test_create_survey_unknown_version(self):
        with self.assertRaises(CommandError):
            call_command("create_survey", "X", "--definition-version", "nope", stdout=io.StringIO())

    def test_export_invitations_to_file(self):
        survey = Survey.objects.create(code="conf", title="Conf", status=SurveyStatus.ACTIVE)
        issue_or_refresh(Contact.objects.create(name="Dana", email="dana@example.com", tags=DELEGATE), survey)

        with tempfile.TemporaryDirectory() as tmp:
            path = os.path.join(tmp, "out.csv")
            out = io.StringIO()
            call_command("export_invitations", "--output", path, stdout=out)
            with open(path, encoding="utf-8") as fh:
                self.assertEqual(fh.read(), export_invitations_csv(survey))
        self.assertIn("Total invitations: 1", out.getvalue())

    def test_export_without_active_survey(self):
        with self.assertRaises(CommandError):
            call_command("export_invitations", stdout=io.StringIO())
