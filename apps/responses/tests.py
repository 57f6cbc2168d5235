from django.contrib.auth.models import User
from django.test import TestCase
from django.utils import timezone
from rest_framework.test import APIClient

from apps.accounts.models import Role
from apps.contacts.models import Contact
from apps.core.exceptions import NotFoundError
from apps.responses.models import SurveyResponse
from apps.responses.services import delete_response
from apps.survey_sessions import services as sessions
from apps.survey_sessions.state import InProgress
from apps.survey_sessions.tests import LOGISTICS, walk_to_final_page
from apps.surveys.models import Survey, SurveyInvitation, SurveyStatus
from apps.surveys.services import issue_or_refresh


class DeleteResponseTests(TestCase):
    def setUp(self):
        self.survey = Survey.objects.create(code="conf", title="Conf", status=SurveyStatus.ACTIVE)
        self.contact = Contact.objects.create(name="Dana", email="dana@example.com", tags="26 Conference Delegate")
        self.inv = issue_or_refresh(self.contact, self.survey)

    def test_delete_reopens_invitation(self):
        walk_to_final_page(self.inv.token, {"overall_experience": 3})
        result = sessions.submit(self.inv.token, {})

        reopened = delete_response(result.response_id)

        self.assertEqual(reopened, 1)
        self.assertFalse(SurveyResponse.objects.exists())
        self.inv.refresh_from_db()
        self.assertIsNone(self.inv.responded_at)
        self.assertIsNone(self.inv.current_page)
        self.assertIsNone(self.inv.partial_responses)
        # the same link works again from the first page
        self.assertEqual(sessions.resume(self.inv.token).state, InProgress(page=0, answers={}))

    def test_reissue_after_delete_refreshes_same_invitation(self):
        walk_to_final_page(self.inv.token, {"overall_experience": 3})
        result = sessions.submit(self.inv.token, {})
        old_token = self.inv.token

        delete_response(result.response_id)
        reissued = issue_or_refresh(self.contact, self.survey)

        self.assertEqual(reissued.id, self.inv.id)
        self.assertNotEqual(reissued.token, old_token)
        self.assertIsNone(reissued.responded_at)
        self.assertEqual(SurveyInvitation.objects.count(), 1)
        self.assertIsInstance(sessions.resume(reissued.token).state, InProgress)
        with self.assertRaises(NotFoundError):
            sessions.resume(old_token)

    def test_delete_without_contact(self):
        resp = SurveyResponse.objects.create(
            survey=self.survey, participant_type="exhibitor", responses={}, completed_at=timezone.now(),
        )
        self.assertEqual(delete_response(resp.id), 0)
        self.assertFalse(SurveyResponse.objects.filter(pk=resp.pk).exists())

    def test_delete_unknown(self):
        with self.assertRaises(NotFoundError):
            delete_response(12345)


class SurveyResponsesApiTests(TestCase):
    def setUp(self):
        self.client = APIClient()
        self.user = User.objects.create_user(username="user", password="pass")
        Role.objects.get_or_create(name="Viewer")[0].users.add(self.user)
        self.client.force_authenticate(user=self.user)
        self.survey = Survey.objects.create(code="conf", title="Conf", status=SurveyStatus.ACTIVE)
        delegate = Contact.objects.create(name="Dana", email="dana@example.com", tags="26 Conference Delegate")
        exhibitor = Contact.objects.create(name="Eve", email="eve@example.com", tags="26 Conference Exhibitor")
        for contact, score in ((delegate, 5), (exhibitor, 2)):
            token = issue_or_refresh(contact, self.survey).token
            walk_to_final_page(token, {"overall_experience": score})
            sessions.submit(token, {})

    def test_list_all(self):
        resp = self.client.get("/api/v1/responses/")
        self.assertEqual(resp.status_code, 200)
        self.assertEqual(resp.json()["count"], 2)

    def test_list_filtered_by_participant_type(self):
        resp = self.client.get("/api/v1/responses/?participant_type=exhibitor")
        body = resp.json()
        self.assertEqual(body["count"], 1)
        self.assertEqual(body["results"][0]["name"], "Eve")
        self.assertEqual(body["results"][0]["responses"], {"overall_experience": 2, **LOGISTICS})

    def test_delete_requires_editor(self):
        response_id = SurveyResponse.objects.first().id
        resp = self.client.delete(f"/api/v1/responses/{response_id}/")
        self.assertEqual(resp.status_code, 403)

        Role.objects.get_or_create(name="Editor")[0].users.add(self.user)
        resp2 = self.client.delete(f"/api/v1/responses/{response_id}/")
        self.assertEqual(resp2.status_code, 200)
        self.assertEqual(resp2.json()["invitations_reopened"], 1)
        self.assertEqual(self.client.delete(f"/api/v1/responses/{response_id}/").status_code, 404)

    def test_anonymous_unauthorized(self):
        self.client.force_authenticate(user=None)
        self.assertEqual(self.client.get("/api/v1/responses/").status_code, 401)
