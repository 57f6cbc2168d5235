from datetime import timedelta
from unittest import mock

from django.test import TestCase
from django.utils import timezone
from rest_framework.test import APIClient

from apps.contacts.models import Contact
from apps.core.exceptions import ConflictError, NotFoundError, SessionClosedError, ValidationError
from apps.responses.models import SurveyResponse
from apps.survey_sessions import services
from apps.survey_sessions.state import AlreadyResponded, Expired, InProgress, Unavailable, classify
from apps.surveys.models import Survey, SurveyInvitation, SurveyStatus
from apps.surveys.services import issue_or_refresh

LOGISTICS = {"venue_rating": 4, "food_rating": 5, "schedule_rating": 3}


def walk_to_final_page(token, first_page):
    """Advance every page before the last one, answering only what is required."""
    pages = services.resume(token).pages
    services.advance(token, 0, first_page)
    services.advance(token, 1, LOGISTICS)
    for page in range(2, len(pages) - 1):
        services.advance(token, page, {})


class SessionTestMixin:
    def setUp(self):
        self.survey = Survey.objects.create(code="conf", title="Conference 2026", status=SurveyStatus.ACTIVE)
        self.contact = Contact.objects.create(name="Dana", email="dana@example.com", tags="26 Conference Delegate")
        self.inv = issue_or_refresh(self.contact, self.survey)
        self.token = self.inv.token


class ClassifyTests(SessionTestMixin, TestCase):
    def test_order_of_checks(self):
        now = timezone.now()
        self.assertEqual(classify(self.inv, self.survey, now), InProgress(page=0, answers={}))

        self.inv.responded_at = now
        self.assertIsInstance(classify(self.inv, self.survey, now), AlreadyResponded)

        self.inv.expires_at = now - timedelta(seconds=1)
        self.assertIsInstance(classify(self.inv, self.survey, now), Expired)

        self.survey.status = SurveyStatus.CLOSED
        self.assertIsInstance(classify(self.inv, self.survey, now), Unavailable)

    def test_back_is_local_and_floored(self):
        state = InProgress(page=1, answers={"a": 1})
        self.assertEqual(state.back(), InProgress(page=0, answers={"a": 1}))
        self.assertEqual(state.back().back().page, 0)


class ResumeTests(SessionTestMixin, TestCase):
    def test_unknown_token(self):
        with self.assertRaises(NotFoundError):
            services.resume("nope")

    def test_expired_token(self):
        SurveyInvitation.objects.filter(pk=self.inv.pk).update(expires_at=timezone.now() - timedelta(days=1))
        session = services.resume(self.token)
        self.assertIsInstance(session.state, Expired)
        self.inv.refresh_from_db()
        self.assertIsNone(self.inv.opened_at)

    def test_first_resume_stamps_opened_at(self):
        session = services.resume(self.token)
        self.assertEqual(session.state.page, 0)
        self.inv.refresh_from_db()
        opened = self.inv.opened_at
        self.assertIsNotNone(opened)

        services.resume(self.token)
        self.inv.refresh_from_db()
        self.assertEqual(self.inv.opened_at, opened)

    def test_resume_returns_saved_progress(self):
        services.advance(self.token, 0, {"overall_experience": 5})
        session = services.resume(self.token)
        self.assertEqual(session.state, InProgress(page=1, answers={"overall_experience": 5}))
        self.assertEqual(len(session.pages), 4)


class AdvanceTests(SessionTestMixin, TestCase):
    def test_missing_required_persists_nothing(self):
        services.advance(self.token, 0, {"overall_experience": 4})

        with self.assertRaises(ValidationError) as ctx:
            services.advance(self.token, 1, {"venue_rating": 4, "food_rating": "  "})
        self.assertEqual(ctx.exception.missing, ["food_rating", "schedule_rating"])

        self.inv.refresh_from_db()
        self.assertEqual(self.inv.current_page, 1)
        self.assertEqual(self.inv.partial_responses, {"overall_experience": 4})

    def test_answers_merge_over_saved(self):
        services.advance(self.token, 0, {"overall_experience": 2, "what_worked": "Talks"})
        services.advance(self.token, 0, {"overall_experience": 5})
        self.inv.refresh_from_db()
        self.assertEqual(self.inv.partial_responses, {"overall_experience": 5, "what_worked": "Talks"})
        self.assertEqual(self.inv.current_page, 1)

    def test_cannot_advance_from_final_page(self):
        with self.assertRaises(ValidationError):
            services.advance(self.token, 3, {})
        with self.assertRaises(ValidationError):
            services.advance(self.token, -1, {})

    def test_cannot_skip_past_saved_page(self):
        with self.assertRaises(ValidationError):
            services.advance(self.token, 2, {})

        self.inv.refresh_from_db()
        self.assertIsNone(self.inv.current_page)
        self.assertIsNone(self.inv.partial_responses)

    def test_advance_from_earlier_page_moves_checkpoint_back(self):
        services.advance(self.token, 0, {"overall_experience": 4})
        services.advance(self.token, 1, LOGISTICS)
        state = services.advance(self.token, 0, {"overall_experience": 2})

        self.assertEqual(state.page, 1)
        self.inv.refresh_from_db()
        self.assertEqual(self.inv.current_page, 1)
        self.assertEqual(self.inv.partial_responses["overall_experience"], 2)

    def test_closed_session(self):
        Survey.objects.filter(pk=self.survey.pk).update(status=SurveyStatus.CLOSED)
        with self.assertRaises(SessionClosedError) as ctx:
            services.advance(self.token, 0, {"overall_experience": 4})
        self.assertEqual(ctx.exception.state, "unavailable")


class SubmitTests(SessionTestMixin, TestCase):
    def test_submit_stores_response_and_clears_progress(self):
        walk_to_final_page(self.token, {"overall_experience": 4})
        result = services.submit(self.token, {"honest_feedback": "Great event"})

        response = SurveyResponse.objects.get(pk=result.response_id)
        self.assertEqual(response.contact, self.contact)
        self.assertEqual(response.participant_type, "delegate")
        self.assertEqual(response.responses, {"overall_experience": 4, **LOGISTICS, "honest_feedback": "Great event"})

        self.inv.refresh_from_db()
        self.assertIsNotNone(self.inv.responded_at)
        self.assertIsNone(self.inv.current_page)
        self.assertIsNone(self.inv.partial_responses)

    def test_submit_before_final_page_is_rejected(self):
        services.advance(self.token, 0, {"overall_experience": 4})
        with self.assertRaises(ValidationError):
            services.submit(self.token, {})

        self.assertEqual(SurveyResponse.objects.count(), 0)
        self.inv.refresh_from_db()
        self.assertIsNone(self.inv.responded_at)
        self.assertEqual(self.inv.current_page, 1)

    def test_fresh_invitation_cannot_submit_empty_answers(self):
        with self.assertRaises(ValidationError):
            services.submit(self.token, {})
        self.assertEqual(SurveyResponse.objects.count(), 0)

    def test_second_submit_is_rejected(self):
        walk_to_final_page(self.token, {"overall_experience": 4})
        services.submit(self.token, {})
        with self.assertRaises(SessionClosedError) as ctx:
            services.submit(self.token, {})
        self.assertEqual(ctx.exception.state, "already_responded")
        self.assertEqual(SurveyResponse.objects.count(), 1)

    def test_lost_race_raises_conflict(self):
        # another request closed the invitation after this one classified it
        now = timezone.now()
        walk_to_final_page(self.token, {"overall_experience": 4})
        original = services._require_in_progress

        def classify_then_close(inv, at):
            state = original(inv, at)
            SurveyInvitation.objects.filter(pk=inv.pk).update(responded_at=now)
            return state

        with mock.patch.object(services, "_require_in_progress", side_effect=classify_then_close):
            with self.assertRaises(ConflictError):
                services.submit(self.token, {})
        self.assertEqual(SurveyResponse.objects.count(), 0)


class SessionApiTests(SessionTestMixin, TestCase):
    def setUp(self):
        super().setUp()
        self.client = APIClient()

    def test_get_state(self):
        resp = self.client.get(f"/api/v1/sessions/{self.token}/")
        self.assertEqual(resp.status_code, 200)
        body = resp.json()
        self.assertEqual(body["state"], "in_progress")
        self.assertEqual(body["page"], 0)
        self.assertEqual(body["name"], "Dana")
        self.assertEqual(body["pages"][0]["questions"][0]["id"], "overall_experience")

    def test_unknown_token_404(self):
        resp = self.client.get("/api/v1/sessions/not-a-token/")
        self.assertEqual(resp.status_code, 404)

    def test_advance_validation_lists_missing(self):
        resp = self.client.post(f"/api/v1/sessions/{self.token}/advance/", {"page": 0, "answers": {}}, format="json")
        self.assertEqual(resp.status_code, 400)
        self.assertEqual(resp.json()["missing"], ["overall_experience"])

    def test_submit_from_first_page_is_400(self):
        resp = self.client.post(f"/api/v1/sessions/{self.token}/submit/", {"answers": {}}, format="json")
        self.assertEqual(resp.status_code, 400)
        self.assertFalse(SurveyResponse.objects.exists())

    def test_full_walkthrough(self):
        url = f"/api/v1/sessions/{self.token}/"
        r1 = self.client.post(url + "advance/", {"page": 0, "answers": {"overall_experience": 5}}, format="json")
        self.assertEqual(r1.json()["page"], 1)
        r2 = self.client.post(url + "advance/", {"page": 1, "answers": LOGISTICS}, format="json")
        self.assertEqual(r2.json()["page"], 2)
        r3 = self.client.post(url + "advance/", {"page": 2, "answers": {"sessions_rating": {"Trade Show": 4}}}, format="json")
        self.assertEqual(r3.json()["page"], 3)

        done = self.client.post(url + "submit/", {"answers": {"one_thing_change": "More coffee"}}, format="json")
        self.assertEqual(done.status_code, 201)
        self.assertEqual(done.json()["state"], "submitted")

        again = self.client.post(url + "submit/", {"answers": {}}, format="json")
        self.assertEqual(again.status_code, 409)
        self.assertEqual(self.client.get(url).json(), {"state": "already_responded"})

    def test_public_page(self):
        resp = self.client.get(f"/s/{self.token}")
        self.assertEqual(resp.status_code, 200)
        self.assertContains(resp, "Conference 2026")

        SurveyInvitation.objects.filter(pk=self.inv.pk).update(expires_at=timezone.now() - timedelta(days=1))
        self.assertContains(self.client.get(f"/s/{self.token}"), "expired")

        self.assertEqual(self.client.get("/s/unknown-token").status_code, 404)
        self.assertEqual(self.client.get("/s/thanks/").status_code, 200)
