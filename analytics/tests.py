from datetime import timedelta
from unittest.mock import patch

from django.db import DatabaseError
from django.test import TestCase
from django.utils import timezone

from accounts.testing import AdminClientMixin
from analytics.helpers import funnel_counts, completions_by_date, result_distribution, conversion_rate
from quiz.models import Quiz, QuizResult
from quiz_sessions.models import QuizSession, SessionResult


def make_session(quiz, status, is_lead=False, completed_at=None, result=None):
    session = QuizSession.objects.create(quiz=quiz, status=status, is_lead=is_lead, entered_at=timezone.now(),
                                         completed_at=completed_at)
    if result is not None:
        SessionResult.objects.create(session=session, result=result, score=1, is_primary=True)
    return session


class AnalyticsHelpersTestCase(TestCase):

    @classmethod
    def setUpTestData(cls):
        now = timezone.now()
        cls.quiz = Quiz.objects.create(title="Quiz", slug="quiz")
        cls.leader = QuizResult.objects.create(quiz=cls.quiz, title="Leader")
        cls.follower = QuizResult.objects.create(quiz=cls.quiz, title="Follower")

        make_session(cls.quiz, "viewed")
        make_session(cls.quiz, "started")
        make_session(cls.quiz, "completed", is_lead=True, completed_at=now, result=cls.leader)
        make_session(cls.quiz, "completed", is_lead=True, completed_at=now, result=cls.leader)
        make_session(cls.quiz, "completed", completed_at=now - timedelta(days=45), result=cls.follower)

        other = Quiz.objects.create(title="Other", slug="other")
        make_session(other, "completed", completed_at=now)

    def test_funnel_counts(self):
        self.assertEqual(funnel_counts(self.quiz.pk), {"viewed": 5, "started": 4, "completed": 3, "leads": 2})

    def test_empty_funnel(self):
        quiz = Quiz.objects.create(title="Fresh", slug="fresh")
        funnel = funnel_counts(quiz.pk)
        self.assertEqual(funnel, {"viewed": 0, "started": 0, "completed": 0, "leads": 0})
        self.assertEqual(conversion_rate(funnel), 0)

    def test_completions_only_cover_recent_window(self):
        rows = completions_by_date(self.quiz.pk)
        self.assertEqual(len(rows), 1)
        self.assertEqual(rows[0]["count"], 2)

    def test_result_distribution(self):
        self.assertEqual(result_distribution(self.quiz.pk), [
            {"result": "Leader", "count": 2},
            {"result": "Follower", "count": 1},
        ])

    def test_conversion_rate(self):
        self.assertEqual(conversion_rate({"viewed": 4, "completed": 1}), 25)


class AnalyticsAPITestCase(AdminClientMixin, TestCase):

    def test_requires_quiz_id(self):
        response = self.client.get("/api/analytics")
        self.assertEqual(response.status_code, 400)
        response = self.client.get("/api/analytics", {"quiz_id": "abc"})
        self.assertEqual(response.status_code, 400)

    def test_payload_shape(self):
        quiz = Quiz.objects.create(title="Quiz", slug="quiz")
        make_session(quiz, "viewed")
        make_session(quiz, "completed", completed_at=timezone.now())

        data = self.client.get("/api/analytics", {"quiz_id": quiz.pk}).json()
        self.assertEqual(data["totalSessions"], 2)
        self.assertEqual(data["conversionRate"], 50)
        self.assertEqual(data["funnel"]["completed"], 1)
        self.assertEqual(len(data["completionsByDate"]), 1)
        self.assertEqual(data["resultDistribution"], [])

    @patch("analytics.views.quiz_analytics", side_effect=DatabaseError("connection lost"))
    def test_database_failure(self, mock_analytics):
        response = self.client.get("/api/analytics", {"quiz_id": 1})
        self.assertEqual(response.status_code, 500)
        self.assertEqual(response.json(), {"error": "Failed to fetch analytics"})

    def test_requires_admin(self):
        self.client.cookies.clear()
        response = self.client.get("/api/analytics", {"quiz_id": 1})
        self.assertEqual(response.status_code, 401)
