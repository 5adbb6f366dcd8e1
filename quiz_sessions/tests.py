import json
from unittest.mock import patch

from django.test import TestCase, override_settings

from accounts.models import QuizUser, AppSettings
from accounts.testing import AdminClientMixin
from quiz.models import Quiz, Question, Answer, QuizResult, AnswerResultWeight
from quiz_sessions import services
from quiz_sessions.models import QuizResponse, SessionResult
from quiz_sessions.scoring import pick_threshold_result, pick_plurality_result, tally_votes, sum_weights


def unsaved_result(pk, min_score=0, display_order=0, is_lead=False):
    return QuizResult(pk=pk, title=f"result {pk}", min_score=min_score, display_order=display_order,
                      is_lead=is_lead)


class ThresholdPolicyTestCase(TestCase):

    def setUp(self):
        self.results = [unsaved_result(1, 10), unsaved_result(2, 0), unsaved_result(3, 5)]

    def test_highest_threshold_reached(self):
        self.assertEqual(pick_threshold_result(7, self.results).min_score, 5)

    def test_exact_threshold_counts(self):
        self.assertEqual(pick_threshold_result(10, self.results).min_score, 10)

    def test_below_every_threshold_falls_back_to_lowest(self):
        self.assertEqual(pick_threshold_result(-3, self.results).min_score, 0)

    def test_no_results(self):
        self.assertIsNone(pick_threshold_result(4, []))


class PluralityPolicyTestCase(TestCase):

    def test_most_votes_wins(self):
        x, y = unsaved_result(1, display_order=1), unsaved_result(2, display_order=0)
        votes = tally_votes([(1, 1.0), (1, 3.0), (2, 1.0)])
        self.assertEqual(votes, {1: 2, 2: 1})
        self.assertEqual(pick_plurality_result(votes, [x, y]), x)

    def test_tie_goes_to_lowest_display_order(self):
        x, y = unsaved_result(1, display_order=1), unsaved_result(2, display_order=0)
        self.assertEqual(pick_plurality_result({1: 1, 2: 1}, [x, y]), y)

    def test_tie_on_display_order_goes_to_lowest_id(self):
        x, y = unsaved_result(7), unsaved_result(3)
        self.assertEqual(pick_plurality_result({7: 2, 3: 2}, [x, y]), y)

    def test_no_votes_falls_back_to_first_in_display_order(self):
        x, y = unsaved_result(1, display_order=2), unsaved_result(2, display_order=1)
        self.assertEqual(pick_plurality_result({}, [x, y]), y)

    def test_weights_are_summed(self):
        self.assertEqual(sum_weights([(1, 1.5), (2, -0.5), (1, 2)]), 3.0)


class LeaderFollowerMixin:
    """Two questions, two answers each; A1 and A3 point at Leader, A2 and A4 at Follower."""

    @classmethod
    def setUpTestData(cls):
        cls.quiz = Quiz.objects.create(title="Leadership", slug="leadership", is_published=True)
        cls.leader = QuizResult.objects.create(quiz=cls.quiz, title="Leader", min_score=2, is_lead=True,
                                               email_content="<p>Lead the way</p>")
        cls.follower = QuizResult.objects.create(quiz=cls.quiz, title="Follower", min_score=0, display_order=1)

        cls.q1 = Question.objects.create(quiz=cls.quiz, question_text="Q1", display_order=0)
        cls.q2 = Question.objects.create(quiz=cls.quiz, question_text="Q2", display_order=1)
        cls.a1 = Answer.objects.create(question=cls.q1, answer_text="A1")
        cls.a2 = Answer.objects.create(question=cls.q1, answer_text="A2")
        cls.a3 = Answer.objects.create(question=cls.q2, answer_text="A3")
        cls.a4 = Answer.objects.create(question=cls.q2, answer_text="A4")

        for answer in (cls.a1, cls.a3):
            AnswerResultWeight.objects.create(answer=answer, result=cls.leader, weight=1)
        for answer in (cls.a2, cls.a4):
            AnswerResultWeight.objects.create(answer=answer, result=cls.follower, weight=1)

    def setUp(self):
        super().setUp()
        patcher = patch("quiz_sessions.emails.send_ses_email.delay")
        self.delay = patcher.start()
        self.addCleanup(patcher.stop)


class SessionServiceTestCase(LeaderFollowerMixin, TestCase):

    def test_new_session_is_viewed(self):
        session = services.create_session(self.quiz.pk)
        self.assertEqual(session.status, "viewed")
        self.assertIsNotNone(session.anonymous_token)
        self.assertIsNotNone(session.entered_at)

    def test_create_session_for_missing_quiz(self):
        with self.assertRaises(Quiz.DoesNotExist):
            services.create_session(999)

    def test_answering_twice_keeps_latest_answer(self):
        session = services.create_session(self.quiz.pk)
        services.record_answer(session.pk, self.q1.pk, self.a1.pk)
        services.record_answer(session.pk, self.q1.pk, self.a2.pk)

        responses = QuizResponse.objects.filter(session=session, question=self.q1)
        self.assertEqual(responses.count(), 1)
        self.assertEqual(responses.get().answer_id, self.a2.pk)

    def test_first_answer_starts_session(self):
        session = services.create_session(self.quiz.pk)
        services.record_answer(session.pk, self.q1.pk, self.a1.pk)
        session.refresh_from_db()
        self.assertEqual(session.status, "started")
        self.assertIsNotNone(session.started_at)

    def test_answer_must_belong_to_question(self):
        session = services.create_session(self.quiz.pk)
        with self.assertRaises(services.AnswerMismatch):
            services.record_answer(session.pk, self.q1.pk, self.a3.pk)

    def test_answer_from_other_quiz(self):
        other = Quiz.objects.create(title="Other", slug="other")
        question = Question.objects.create(quiz=other, question_text="Elsewhere")
        answer = Answer.objects.create(question=question, answer_text="Nope")
        session = services.create_session(self.quiz.pk)

        with self.assertRaises(services.AnswerMismatch):
            services.record_answer(session.pk, question.pk, answer.pk)

    def test_end_to_end_weighted(self):
        session = services.create_session(self.quiz.pk)
        services.record_answer(session.pk, self.q1.pk, self.a1.pk)
        services.record_answer(session.pk, self.q2.pk, self.a3.pk)

        completion = services.complete_session(session.pk)

        self.assertEqual(completion.outcome.primary_result, self.leader)
        self.assertEqual(completion.outcome.score, 2)
        self.assertEqual(completion.session.status, "completed")
        self.assertEqual(completion.session.lead_score, 2)
        self.assertTrue(completion.session.is_lead)
        self.assertIsNotNone(completion.session.completed_at)

    def test_score_below_leader_threshold(self):
        session = services.create_session(self.quiz.pk)
        services.record_answer(session.pk, self.q1.pk, self.a2.pk)

        completion = services.complete_session(session.pk)
        self.assertEqual(completion.outcome.primary_result, self.follower)
        self.assertEqual(completion.outcome.score, 1)
        self.assertFalse(completion.session.is_lead)

    def test_completion_without_answers(self):
        session = services.create_session(self.quiz.pk)
        completion = services.complete_session(session.pk)
        self.assertEqual(completion.outcome.primary_result, self.follower)
        self.assertEqual(completion.outcome.score, 0)
        self.assertFalse(completion.session.is_lead)

    def test_completion_without_results(self):
        quiz = Quiz.objects.create(title="Empty", slug="empty")
        session = services.create_session(quiz.pk)
        completion = services.complete_session(session.pk)
        self.assertIsNone(completion.outcome.primary_result)
        self.assertFalse(SessionResult.objects.filter(session=session).exists())

    def test_complete_twice_keeps_one_primary_result(self):
        session = services.create_session(self.quiz.pk)
        services.record_answer(session.pk, self.q1.pk, self.a1.pk)

        services.complete_session(session.pk)
        self.assertEqual(SessionResult.objects.filter(session=session, is_primary=True).count(), 1)

        services.record_answer(session.pk, self.q2.pk, self.a3.pk)
        services.complete_session(session.pk)
        primary = SessionResult.objects.filter(session=session, is_primary=True)
        self.assertEqual(primary.count(), 1)
        self.assertEqual(primary.get().result, self.leader)
        self.assertEqual(primary.get().score, 2)

    def test_voting_policy(self):
        Quiz.objects.filter(pk=self.quiz.pk).update(scoring_policy="voting")
        extra = Question.objects.create(quiz=self.quiz, question_text="Q3", display_order=2)
        a5 = Answer.objects.create(question=extra, answer_text="A5")
        AnswerResultWeight.objects.create(answer=a5, result=self.follower, weight=10)

        session = services.create_session(self.quiz.pk)
        services.record_answer(session.pk, self.q1.pk, self.a1.pk)
        services.record_answer(session.pk, self.q2.pk, self.a3.pk)
        services.record_answer(session.pk, extra.pk, a5.pk)

        completion = services.complete_session(session.pk)
        self.assertEqual(completion.outcome.primary_result, self.leader)
        self.assertEqual(completion.outcome.score, 2)
        self.assertEqual(completion.outcome.votes, {self.leader.pk: 2, self.follower.pk: 1})

    def test_attached_user_survives_completion(self):
        user = QuizUser.objects.create(email="taker@example.com", name="Taker")
        session = services.create_session(self.quiz.pk)
        services.attach_identity(session.pk, user.pk)
        services.record_answer(session.pk, self.q1.pk, self.a1.pk)

        completion = services.complete_session(session.pk)
        self.assertEqual(completion.session.user_id, user.pk)

    def test_anonymous_completion_still_resolves_lead(self):
        session = services.create_session(self.quiz.pk)
        services.record_answer(session.pk, self.q1.pk, self.a1.pk)
        services.record_answer(session.pk, self.q2.pk, self.a3.pk)

        completion = services.complete_session(session.pk)
        self.assertIsNone(completion.session.user_id)
        self.assertTrue(completion.session.is_lead)
        self.assertFalse(completion.email_sent)
        self.delay.assert_not_called()

    def test_backward_transition_rejected(self):
        session = services.create_session(self.quiz.pk)
        services.update_session(session.pk, status="completed")
        with self.assertRaises(services.InvalidTransition):
            services.update_session(session.pk, status="started")


@override_settings(RESULT_EMAILS_ENABLED=True, NOTIFY_ADMIN=False, RESULT_EMAIL_FROM_NAME="Quiz Results",
                   RESULT_EMAIL_FROM_ADDRESS="results@example.com")
class ResultEmailTestCase(LeaderFollowerMixin, TestCase):

    def completed_with_user(self, email="taker@example.com"):
        user = QuizUser.objects.create(email=email, name="Taker")
        session = services.create_session(self.quiz.pk)
        services.attach_identity(session.pk, user.pk)
        services.record_answer(session.pk, self.q1.pk, self.a1.pk)
        services.record_answer(session.pk, self.q2.pk, self.a3.pk)
        return session

    def test_result_email_queued(self):
        session = self.completed_with_user()
        completion = services.complete_session(session.pk)

        self.assertTrue(completion.email_sent)
        self.assertIsNone(completion.email_error)
        self.delay.assert_called_once()
        kwargs = self.delay.call_args.kwargs
        self.assertEqual(kwargs["to_email"], ["taker@example.com"])
        self.assertEqual(kwargs["subject"], "Your Quiz Results: Leader")
        self.assertEqual(kwargs["from_email"], "Quiz Results <results@example.com>")
        self.assertIn("Lead the way", kwargs["body_html"])
        self.assertNotIn("<p>", kwargs["body_text"])
        self.assertEqual(kwargs["tags"], {"email_type": "result", "quiz": "leadership"})

    def test_email_sent_once_per_session(self):
        session = self.completed_with_user()
        services.complete_session(session.pk)
        completion = services.complete_session(session.pk)

        self.assertFalse(completion.email_sent)
        self.assertEqual(self.delay.call_count, 1)

    def test_queue_failure_reported_and_retryable(self):
        session = self.completed_with_user()
        self.delay.side_effect = ConnectionError("broker down")

        completion = services.complete_session(session.pk)
        self.assertFalse(completion.email_sent)
        self.assertEqual(completion.email_error, "broker down")
        self.assertEqual(completion.session.status, "completed")
        session.refresh_from_db()
        self.assertIsNone(session.result_email_queued_at)

        self.delay.side_effect = None
        completion = services.complete_session(session.pk)
        self.assertTrue(completion.email_sent)

    def test_result_without_email_content_sends_nothing(self):
        user = QuizUser.objects.create(email="follower@example.com", name="Follower")
        session = services.create_session(self.quiz.pk)
        services.attach_identity(session.pk, user.pk)
        services.record_answer(session.pk, self.q1.pk, self.a2.pk)

        completion = services.complete_session(session.pk)

        self.assertEqual(completion.outcome.primary_result, self.follower)
        self.assertFalse(completion.email_sent)
        self.assertIsNone(completion.email_error)
        self.delay.assert_not_called()
        session.refresh_from_db()
        self.assertIsNone(session.result_email_queued_at)

    def test_blank_email_content_sends_nothing(self):
        QuizResult.objects.filter(pk=self.leader.pk).update(email_content="   ")
        session = self.completed_with_user()

        completion = services.complete_session(session.pk)
        self.assertEqual(completion.outcome.primary_result, self.leader)
        self.assertFalse(completion.email_sent)
        self.delay.assert_not_called()

    @override_settings(RESULT_EMAILS_ENABLED=False)
    def test_disabled_emails(self):
        session = self.completed_with_user()
        completion = services.complete_session(session.pk)
        self.assertFalse(completion.email_sent)
        self.assertIsNone(completion.email_error)
        self.delay.assert_not_called()

    def test_admin_notified_on_first_completion_only(self):
        AppSettings.objects.create(notify_admin=True, admin_notification_email="ops@example.com")
        session = services.create_session(self.quiz.pk)

        services.complete_session(session.pk)
        services.complete_session(session.pk)

        self.delay.assert_called_once()
        self.assertEqual(self.delay.call_args.kwargs["to_email"], ["ops@example.com"])
        self.assertEqual(self.delay.call_args.kwargs["subject"], "Quiz completed: Leadership")
        self.assertEqual(self.delay.call_args.kwargs["tags"], {"email_type": "admin_notification", "quiz": "leadership"})


class SessionAPITestCase(LeaderFollowerMixin, TestCase):

    def send(self, method, url, body=None):
        return getattr(self.client, method)(url, data=json.dumps(body or {}), content_type="application/json")

    def test_full_flow(self):
        response = self.send("post", "/api/sessions", {"quiz_id": self.quiz.pk})
        self.assertEqual(response.status_code, 201)
        session_id = response.json()["id"]

        for question, answer in ((self.q1, self.a1), (self.q2, self.a3)):
            response = self.send("post", f"/api/sessions/{session_id}/respond",
                                 {"question_id": question.pk, "answer_id": answer.pk})
            self.assertEqual(response.status_code, 201)

        response = self.send("post", f"/api/sessions/{session_id}/complete")
        self.assertEqual(response.status_code, 200)
        data = response.json()
        self.assertEqual(data["primaryResult"]["title"], "Leader")
        self.assertEqual(data["totalScore"], 2)
        self.assertTrue(data["isLead"])
        self.assertFalse(data["emailSent"])
        self.assertEqual(data["session"]["lead_score"], 2)

        detail = self.client.get(f"/api/sessions/{session_id}").json()
        self.assertEqual(len(detail["responses"]), 2)
        self.assertEqual(detail["results"][0]["quiz_result"]["title"], "Leader")

    def test_session_for_missing_quiz(self):
        response = self.send("post", "/api/sessions", {"quiz_id": 999})
        self.assertEqual(response.status_code, 404)

    def test_respond_with_mismatched_answer(self):
        session = services.create_session(self.quiz.pk)
        response = self.send("post", f"/api/sessions/{session.pk}/respond",
                             {"question_id": self.q1.pk, "answer_id": self.a4.pk})
        self.assertEqual(response.status_code, 400)

    def test_respond_requires_ids(self):
        session = services.create_session(self.quiz.pk)
        response = self.send("post", f"/api/sessions/{session.pk}/respond", {"question_id": self.q1.pk})
        self.assertEqual(response.status_code, 400)
        self.assertIn("answer_id", response.json()["form_errors"])

    def test_patch_attaches_user(self):
        user = QuizUser.objects.create(email="taker@example.com")
        session = services.create_session(self.quiz.pk)

        response = self.send("patch", f"/api/sessions/{session.pk}", {"user_id": user.pk})
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json()["user_id"], user.pk)
        self.assertEqual(response.json()["status"], "viewed")

    def test_patch_unknown_user(self):
        session = services.create_session(self.quiz.pk)
        response = self.send("patch", f"/api/sessions/{session.pk}", {"user_id": 999})
        self.assertEqual(response.status_code, 404)

    def test_patch_backward_status(self):
        session = services.create_session(self.quiz.pk)
        self.send("patch", f"/api/sessions/{session.pk}", {"status": "completed"})
        response = self.send("patch", f"/api/sessions/{session.pk}", {"status": "started"})
        self.assertEqual(response.status_code, 409)

    def test_missing_session(self):
        self.assertEqual(self.client.get("/api/sessions/999").status_code, 404)
        self.assertEqual(self.send("post", "/api/sessions/999/complete").status_code, 404)

    def test_leads_list_requires_admin(self):
        response = self.client.get("/api/leads")
        self.assertEqual(response.status_code, 401)


class LeadsAPITestCase(AdminClientMixin, LeaderFollowerMixin, TestCase):

    def test_only_completed_sessions_listed(self):
        user = QuizUser.objects.create(email="taker@example.com", name="Taker")
        done = services.create_session(self.quiz.pk)
        services.attach_identity(done.pk, user.pk)
        services.record_answer(done.pk, self.q1.pk, self.a1.pk)
        services.record_answer(done.pk, self.q2.pk, self.a3.pk)
        services.complete_session(done.pk)
        services.create_session(self.quiz.pk)

        rows = self.client.get("/api/leads").json()
        self.assertEqual(len(rows), 1)
        self.assertEqual(rows[0]["session_id"], done.pk)
        self.assertEqual(rows[0]["result"], "Leader")
        self.assertEqual(rows[0]["user"]["email"], "taker@example.com")
        self.assertTrue(rows[0]["is_lead"])
