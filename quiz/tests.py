import json
from unittest.mock import patch

from django.test import TestCase

from accounts.testing import AdminClientMixin
from quiz.models import Quiz, Question, Answer, QuizResult, AnswerResultWeight


class QuizAPITestCase(AdminClientMixin, TestCase):

    def send(self, method, url, body):
        return getattr(self.client, method)(url, data=json.dumps(body), content_type="application/json")

    def test_create_quiz_generates_slug_and_defaults(self):
        response = self.send("post", "/api/quizzes", {"title": "What Kind Of Manager Are You"})
        self.assertEqual(response.status_code, 201)

        data = response.json()
        self.assertEqual(data["slug"], "what-kind-of-manager-are-you")
        self.assertEqual(data["scoring_policy"], "weighted")
        self.assertFalse(data["is_published"])
        self.assertEqual(data["settings"]["primaryColor"], "#3b82f6")

    def test_duplicate_slug_is_rejected(self):
        Quiz.objects.create(title="Taken", slug="taken")
        response = self.send("post", "/api/quizzes", {"title": "Taken"})
        self.assertEqual(response.status_code, 400)
        self.assertIn("slug", response.json()["form_errors"])

    def test_create_requires_title(self):
        response = self.send("post", "/api/quizzes", {"slug": "no-title"})
        self.assertEqual(response.status_code, 400)
        self.assertEqual(response.json()["error"], "Validation error")

    def test_create_rejects_unknown_policy(self):
        response = self.send("post", "/api/quizzes", {"title": "Quiz", "scoring_policy": "random"})
        self.assertEqual(response.status_code, 400)

    def test_list_counts_results_and_questions(self):
        quiz = Quiz.objects.create(title="Quiz", slug="quiz")
        QuizResult.objects.create(quiz=quiz, title="A")
        QuizResult.objects.create(quiz=quiz, title="B")
        Question.objects.create(quiz=quiz, question_text="Q1")

        response = self.client.get("/api/quizzes")
        self.assertEqual(response.status_code, 200)
        row = response.json()[0]
        self.assertEqual(row["result_count"], 2)
        self.assertEqual(row["question_count"], 1)

    def test_patch_is_partial(self):
        quiz = Quiz.objects.create(title="Quiz", slug="quiz", description="Keep me")
        response = self.send("patch", f"/api/quizzes/{quiz.pk}", {"is_published": True, "scoring_policy": "voting"})
        self.assertEqual(response.status_code, 200)

        quiz.refresh_from_db()
        self.assertTrue(quiz.is_published)
        self.assertEqual(quiz.scoring_policy, "voting")
        self.assertEqual(quiz.description, "Keep me")
        self.assertEqual(quiz.slug, "quiz")

    def test_detail_includes_nested_wiring(self):
        quiz = Quiz.objects.create(title="Quiz", slug="quiz")
        result = QuizResult.objects.create(quiz=quiz, title="Leader")
        question = Question.objects.create(quiz=quiz, question_text="Q1")
        answer = Answer.objects.create(question=question, answer_text="A1")
        AnswerResultWeight.objects.create(answer=answer, result=result, weight=3)

        data = self.client.get(f"/api/quizzes/{quiz.pk}").json()
        self.assertEqual(data["results"][0]["title"], "Leader")
        weights = data["questions"][0]["answers"][0]["result_weights"]
        self.assertEqual(weights[0]["result_id"], result.pk)
        self.assertEqual(weights[0]["weight"], 3)

    def test_delete_cascades(self):
        quiz = Quiz.objects.create(title="Quiz", slug="quiz")
        question = Question.objects.create(quiz=quiz, question_text="Q1")
        Answer.objects.create(question=question, answer_text="A1")

        response = self.client.delete(f"/api/quizzes/{quiz.pk}")
        self.assertEqual(response.json(), {"success": True})
        self.assertFalse(Answer.objects.exists())

    def test_missing_quiz(self):
        response = self.client.get("/api/quizzes/999")
        self.assertEqual(response.status_code, 404)


class QuestionAnswerResultAPITestCase(AdminClientMixin, TestCase):

    @classmethod
    def setUpTestData(cls):
        cls.quiz = Quiz.objects.create(title="Quiz", slug="quiz")

    def send(self, method, url, body):
        return getattr(self.client, method)(url, data=json.dumps(body), content_type="application/json")

    def test_question_create_accepts_quiz_id(self):
        response = self.send("post", "/api/questions", {"quiz_id": self.quiz.pk, "question_text": "Q1"})
        self.assertEqual(response.status_code, 201)
        self.assertEqual(response.json()["display_order"], 0)

    def test_question_create_unknown_quiz(self):
        response = self.send("post", "/api/questions", {"quiz_id": 999, "question_text": "Q1"})
        self.assertEqual(response.status_code, 400)

    def test_question_update_and_delete(self):
        question = Question.objects.create(quiz=self.quiz, question_text="Old")
        response = self.send("patch", f"/api/questions/{question.pk}", {"question_text": "New"})
        self.assertEqual(response.json()["question_text"], "New")

        self.client.delete(f"/api/questions/{question.pk}")
        self.assertFalse(Question.objects.filter(pk=question.pk).exists())

    def test_reorder_questions(self):
        first = Question.objects.create(quiz=self.quiz, question_text="First", display_order=0)
        second = Question.objects.create(quiz=self.quiz, question_text="Second", display_order=1)

        response = self.send("put", "/api/questions/reorder", {"orderedIds": [second.pk, first.pk]})
        self.assertEqual(response.status_code, 200)
        self.assertEqual(list(self.quiz.questions.values_list("question_text", flat=True)), ["Second", "First"])

    def test_reorder_requires_array(self):
        response = self.send("put", "/api/answers/reorder", {"orderedIds": "1,2"})
        self.assertEqual(response.status_code, 400)

    def test_reorder_rejects_non_integer_ids(self):
        question = Question.objects.create(quiz=self.quiz, question_text="Q1", display_order=3)
        response = self.send("put", "/api/questions/reorder", {"orderedIds": [question.pk, "abc"]})
        self.assertEqual(response.status_code, 400)
        response = self.send("put", "/api/questions/reorder", {"orderedIds": [None]})
        self.assertEqual(response.status_code, 400)

        question.refresh_from_db()
        self.assertEqual(question.display_order, 3)

    def test_answer_create_and_reorder(self):
        question = Question.objects.create(quiz=self.quiz, question_text="Q1")
        a = self.send("post", "/api/answers", {"question_id": question.pk, "answer_text": "A"}).json()
        b = self.send("post", "/api/answers", {"question_id": question.pk, "answer_text": "B",
                                               "display_order": 1}).json()

        self.send("put", "/api/answers/reorder", {"orderedIds": [b["id"], a["id"]]})
        self.assertEqual(list(question.answers.values_list("answer_text", flat=True)), ["B", "A"])

    def test_result_create_defaults(self):
        response = self.send("post", "/api/quiz-results", {"quiz_id": self.quiz.pk, "title": "Leader",
                                                            "is_lead": True})
        self.assertEqual(response.status_code, 201)
        data = response.json()
        self.assertEqual(data["min_score"], 0)
        self.assertTrue(data["is_lead"])

    def test_result_patch(self):
        result = QuizResult.objects.create(quiz=self.quiz, title="Leader", min_score=5)
        response = self.send("patch", f"/api/quiz-results/{result.pk}", {"email_content": "Well done"})
        self.assertEqual(response.status_code, 200)
        result.refresh_from_db()
        self.assertEqual(result.email_content, "Well done")
        self.assertEqual(result.min_score, 5)


class AnswerWeightAPITestCase(AdminClientMixin, TestCase):

    @classmethod
    def setUpTestData(cls):
        quiz = Quiz.objects.create(title="Quiz", slug="quiz")
        question = Question.objects.create(quiz=quiz, question_text="Q1")
        cls.answer = Answer.objects.create(question=question, answer_text="A1")
        cls.result = QuizResult.objects.create(quiz=quiz, title="Leader")

    def post_weight(self, body):
        return self.client.post("/api/answer-weights", data=json.dumps(body), content_type="application/json")

    def test_upsert_keeps_one_row_per_pair(self):
        body = {"answer_id": self.answer.pk, "result_id": self.result.pk}
        response = self.post_weight(body)
        self.assertEqual(response.status_code, 201)
        self.assertEqual(response.json()["weight"], 1)

        response = self.post_weight(dict(body, weight=4))
        self.assertEqual(response.status_code, 201)
        self.assertEqual(AnswerResultWeight.objects.count(), 1)
        self.assertEqual(AnswerResultWeight.objects.get().weight, 4)

    def test_unknown_answer(self):
        response = self.post_weight({"answer_id": 999, "result_id": self.result.pk})
        self.assertEqual(response.status_code, 400)
        self.assertIn("answer_id", response.json()["form_errors"])

    def test_delete_by_pair(self):
        AnswerResultWeight.objects.create(answer=self.answer, result=self.result)
        response = self.client.delete(f"/api/answer-weights?answer_id={self.answer.pk}&result_id={self.result.pk}")
        self.assertEqual(response.status_code, 200)
        self.assertFalse(AnswerResultWeight.objects.exists())

    def test_delete_rejects_non_numeric_ids(self):
        AnswerResultWeight.objects.create(answer=self.answer, result=self.result)
        response = self.client.delete(f"/api/answer-weights?answer_id=abc&result_id={self.result.pk}")
        self.assertEqual(response.status_code, 400)
        self.assertEqual(AnswerResultWeight.objects.count(), 1)

    def test_delete_requires_both_ids(self):
        response = self.client.delete(f"/api/answer-weights?answer_id={self.answer.pk}")
        self.assertEqual(response.status_code, 400)


class PublicQuizTestCase(TestCase):

    @classmethod
    def setUpTestData(cls):
        cls.quiz = Quiz.objects.create(title="Quiz", slug="quiz", is_published=True)
        question = Question.objects.create(quiz=cls.quiz, question_text="Q1")
        for i in range(4):
            Answer.objects.create(question=question, answer_text=f"A{i}", display_order=i)
        result = QuizResult.objects.create(quiz=cls.quiz, title="Leader", email_content="secret", min_score=10)
        AnswerResultWeight.objects.create(answer=question.answers.first(), result=result, weight=2)

    def test_published_quiz_hides_scoring_data(self):
        response = self.client.get("/api/public/quizzes/quiz")
        self.assertEqual(response.status_code, 200)

        data = response.json()
        answers = data["questions"][0]["answers"]
        self.assertEqual([a["answer_text"] for a in answers], ["A0", "A1", "A2", "A3"])
        self.assertNotIn("result_weights", answers[0])
        self.assertNotIn("email_content", data["results"][0])
        self.assertNotIn("min_score", data["results"][0])

    def test_unpublished_quiz_is_not_found(self):
        Quiz.objects.create(title="Draft", slug="draft")
        response = self.client.get("/api/public/quizzes/draft")
        self.assertEqual(response.status_code, 404)

    @patch("quiz.serializers.random.shuffle")
    def test_randomize_answers_setting(self, shuffle):
        self.quiz.settings = dict(self.quiz.settings, randomizeAnswers=True)
        self.quiz.save()

        self.client.get("/api/public/quizzes/quiz")
        shuffle.assert_called_once()

    def test_authoring_api_needs_admin(self):
        response = self.client.get(f"/api/quizzes/{self.quiz.pk}")
        self.assertEqual(response.status_code, 401)
