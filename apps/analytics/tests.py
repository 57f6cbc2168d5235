from django.contrib.auth.models import User
from django.test import SimpleTestCase, TestCase
from rest_framework.test import APIClient

from apps.accounts.models import Role
from apps.analytics.aggregation import (
    format_mean, interpret_answer, numeric_metric, rating_group_metric, summarize, text_metric, word_frequencies,
)
from apps.contacts.models import Contact
from apps.survey_sessions import services as sessions
from apps.survey_sessions.tests import walk_to_final_page
from apps.surveys.catalog import CONFERENCE_2026, Question, QuestionKind
from apps.surveys.models import Survey, SurveyStatus
from apps.surveys.services import issue_or_refresh

SCALE = Question("venue_rating", QuestionKind.SCALE, "How was the venue?", True, "Venue Rating", {"min": 1, "max": 5})
GROUP = Question("sessions_rating", QuestionKind.RATING_GROUP, "Sessions", False, "Session Ratings", {"items": []})
TEXT = Question("what_worked", QuestionKind.TEXTAREA, "What worked?", False, "What Worked Well")


class AggregationTests(SimpleTestCase):
    def test_empty_mean_is_zero(self):
        self.assertEqual(format_mean([]), "0")
        metric = numeric_metric(SCALE, [])
        self.assertEqual(metric["average"], "0")
        self.assertEqual(metric["count"], 0)
        self.assertEqual([d["count"] for d in metric["distribution"]], [0, 0, 0, 0, 0])

    def test_numeric_mean_and_histogram(self):
        docs = [{"venue_rating": 4}, {"venue_rating": 5}, {"venue_rating": 5}, {"venue_rating": "5"}, {"venue_rating": True}, {}]
        metric = numeric_metric(SCALE, docs)
        self.assertEqual(metric["average"], "4.67")
        self.assertEqual(metric["count"], 3)
        self.assertEqual(metric["distribution"], [
            {"rating": 1, "count": 0},
            {"rating": 2, "count": 0},
            {"rating": 3, "count": 0},
            {"rating": 4, "count": 1},
            {"rating": 5, "count": 2},
        ])

    def test_mean_rounds_half_up(self):
        metric = numeric_metric(SCALE, [{"venue_rating": 1}, {"venue_rating": 2}, {"venue_rating": 2}, {"venue_rating": 2},
                                        {"venue_rating": 2}, {"venue_rating": 2}, {"venue_rating": 2}, {"venue_rating": 2}])
        # 15 / 8 = 1.875
        self.assertEqual(metric["average"], "1.88")

    def test_rating_group_sorted_with_stable_ties(self):
        docs = [
            {"sessions_rating": {"Trade Show": 3, "Speed Pitch Session": 5, "Hot Products Session": 4}},
            {"sessions_rating": {"Trade Show": 5, "Hot Products Session": 4, "Meet & Greet Event": None}},
            {"sessions_rating": "n/a"},
        ]
        items = rating_group_metric(GROUP, docs)["items"]
        self.assertEqual(items, [
            {"item": "Speed Pitch Session", "average": "5.00", "count": 1},
            {"item": "Trade Show", "average": "4.00", "count": 2},
            {"item": "Hot Products Session", "average": "4.00", "count": 2},
        ])

    def test_word_frequency_sample_sentence(self):
        words = word_frequencies(["The food was great and the venue was amazing"])
        self.assertEqual(
            {w["word"]: w["count"] for w in words},
            {"food": 1, "great": 1, "venue": 1, "amazing": 1},
        )

    def test_word_frequency_strips_punctuation_and_limits(self):
        text = " ".join(f"word{i:02d}" for i in range(20)) + " Coffee! coffee, COFFEE."
        words = word_frequencies([text])
        self.assertEqual(len(words), 15)
        self.assertEqual(words[0], {"word": "coffee", "count": 3})

    def test_text_metric_single_view(self):
        docs = [{"what_worked": "  The keynote  "}]
        self.assertEqual(text_metric(TEXT, docs, single_view=True)["answer"], "  The keynote  ")
        aggregate = text_metric(TEXT, docs + [{"what_worked": ""}])
        self.assertEqual(aggregate["response_count"], 1)
        self.assertEqual(aggregate["top_words"], [{"word": "keynote", "count": 1}])

    def test_interpret_answer_by_kind(self):
        self.assertIsNone(interpret_answer(QuestionKind.SCALE, "4"))
        self.assertIsNone(interpret_answer(QuestionKind.TEXTAREA, 4))
        self.assertIsNone(interpret_answer(QuestionKind.RATING_GROUP, [4]))
        self.assertEqual(interpret_answer(QuestionKind.RATING_GROUP, {"A": "na"}).ratings, ())

    def test_summarize_is_idempotent(self):
        docs = [
            {"overall_experience": 4, "what_worked": "Networking with suppliers", "sessions_rating": {"Trade Show": 4}},
            {"overall_experience": 2, "services_rating": {"The map": 1}, "honest_feedback": "Needs better signage"},
        ]
        first = summarize(CONFERENCE_2026, docs)
        self.assertEqual(first, summarize(CONFERENCE_2026, docs))
        self.assertEqual(first["response_count"], 2)
        self.assertEqual({m["id"] for m in first["rating_groups"]}, {"sessions_rating", "services_rating"})

    def test_summarize_filtered_type(self):
        summary = summarize(CONFERENCE_2026, [], participant_type="exhibitor")
        self.assertEqual([m["id"] for m in summary["rating_groups"]], ["services_rating"])
        self.assertNotIn("what_worked", [m["id"] for m in summary["text"]])


class SummaryApiTests(TestCase):
    def setUp(self):
        self.client = APIClient()
        self.user = User.objects.create_user(username="viewer", password="pass")
        Role.objects.get_or_create(name="Viewer")[0].users.add(self.user)
        self.client.force_authenticate(user=self.user)

        self.survey = Survey.objects.create(code="conf", title="Conf", status=SurveyStatus.ACTIVE)
        delegate = Contact.objects.create(name="Dana", email="dana@example.com", tags="26 Conference Delegate")
        exhibitor = Contact.objects.create(name="Eve", email="eve@example.com", tags="26 Conference Exhibitor")
        token = issue_or_refresh(delegate, self.survey).token
        walk_to_final_page(token, {"overall_experience": 5})
        self.delegate_response = sessions.submit(token, {"what_worked": "The food was great and the venue was amazing"})

        token = issue_or_refresh(exhibitor, self.survey).token
        walk_to_final_page(token, {"overall_experience": 2})
        sessions.submit(token, {})

    def _metric(self, body, group, qid):
        return next(m for m in body[group] if m["id"] == qid)

    def test_summary_all(self):
        resp = self.client.get("/api/v1/analytics/summary/")
        self.assertEqual(resp.status_code, 200)
        body = resp.json()
        self.assertEqual(body["response_count"], 2)
        self.assertEqual(self._metric(body, "numeric", "overall_experience")["average"], "3.50")

    def test_summary_by_participant_type(self):
        body = self.client.get("/api/v1/analytics/summary/?participant_type=delegate").json()
        self.assertEqual(body["participant_type"], "delegate")
        self.assertEqual(self._metric(body, "numeric", "overall_experience")["average"], "5.00")

    def test_single_response_view(self):
        body = self.client.get(f"/api/v1/analytics/summary/?response_id={self.delegate_response.response_id}").json()
        self.assertEqual(body["response_count"], 1)
        worked = self._metric(body, "text", "what_worked")
        self.assertEqual(worked["answer"], "The food was great and the venue was amazing")
        self.assertNotIn("top_words", worked)

    def test_unknown_response(self):
        self.assertEqual(self.client.get("/api/v1/analytics/summary/?response_id=9999").status_code, 404)

    def test_requires_viewer(self):
        outsider = User.objects.create_user(username="outsider", password="p")
        self.client.force_authenticate(user=outsider)
        self.assertEqual(self.client.get("/api/v1/analytics/summary/").status_code, 403)
