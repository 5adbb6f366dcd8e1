from django.apps import AppConfig


class QuizSessionsConfig(AppConfig):
    default_auto_field = "django.db.models.BigAutoField"
    name = "quiz_sessions"
