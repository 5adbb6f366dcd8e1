from django.urls import path

from quiz import views

urlpatterns = [
    path("api/quizzes", views.quiz_collection, name="quiz_collection"),
    path("api/quizzes/<int:pk>", views.quiz_detail, name="quiz_detail"),
    path("api/public/quizzes/<slug:slug>", views.public_quiz, name="public_quiz"),
    path("api/questions", views.question_create, name="question_create"),
    path("api/questions/reorder", views.questions_reorder, name="questions_reorder"),
    path("api/questions/<int:pk>", views.question_detail, name="question_detail"),
    path("api/answers", views.answer_create, name="answer_create"),
    path("api/answers/reorder", views.answers_reorder, name="answers_reorder"),
    path("api/answers/<int:pk>", views.answer_detail, name="answer_detail"),
    path("api/quiz-results", views.result_create, name="result_create"),
    path("api/quiz-results/<int:pk>", views.result_detail, name="result_detail"),
    path("api/answer-weights", views.answer_weights, name="answer_weights"),
]
