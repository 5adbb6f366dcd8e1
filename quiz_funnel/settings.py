"""
Django settings for quiz_funnel.

Every deployment value comes from the environment with a development default.
"""

import os
from pathlib import Path

BASE_DIR = Path(__file__).resolve().parent.parent

DJANGO_ENV = os.environ.get("DJANGO_ENV", "DEVELOPMENT")

SECRET_KEY = os.environ.get("SECRET_KEY", "dev-secret-key")

DEBUG = os.environ.get("DEBUG", "true" if DJANGO_ENV == "DEVELOPMENT" else "false").lower() == "true"

ALLOWED_HOSTS = [h for h in os.environ.get("ALLOWED_HOSTS", "*").split(",") if h]

# Quiz pages are embedded in third party sites through an iframe
X_FRAME_OPTIONS = "ALLOWALL"

USE_X_FORWARDED_HOST = True
SECURE_PROXY_SSL_HEADER = ("HTTP_X_FORWARDED_PROTO", "https")


INSTALLED_APPS = [
    "django.contrib.admin",
    "django.contrib.auth",
    "django.contrib.contenttypes",
    "django.contrib.sessions",
    "django.contrib.messages",
    "django.contrib.staticfiles",

    "accounts.apps.AccountsConfig",
    "quiz",
    "quiz_sessions",
    "analytics",
    "admin_portal",
]

MIDDLEWARE = [
    "django.middleware.security.SecurityMiddleware",
    "django.contrib.sessions.middleware.SessionMiddleware",
    "django.middleware.common.CommonMiddleware",
    "django.middleware.csrf.CsrfViewMiddleware",
    "django.contrib.auth.middleware.AuthenticationMiddleware",
    "django.contrib.messages.middleware.MessageMiddleware",
    "django.middleware.clickjacking.XFrameOptionsMiddleware",

    "accounts.middleware.AdminSessionCookieMiddleware",
]

ROOT_URLCONF = "quiz_funnel.urls"

WSGI_APPLICATION = "quiz_funnel.wsgi.application"

TEMPLATES = [
    {
        "BACKEND": "django.template.backends.django.DjangoTemplates",
        "DIRS": [BASE_DIR / "templates"],
        "APP_DIRS": True,
        "OPTIONS": {
            "context_processors": [
                "django.template.context_processors.request",
                "django.contrib.auth.context_processors.auth",
                "django.contrib.messages.context_processors.messages",
            ],
        },
    },
]


# Database

if os.environ.get("DB_NAME"):
    DATABASES = {
        "default": {
            "ENGINE": "django.db.backends.postgresql",
            "NAME": os.environ.get("DB_NAME"),
            "USER": os.environ.get("DB_USER"),
            "PASSWORD": os.environ.get("DB_PASSWORD"),
            "HOST": os.environ.get("DB_HOST", "localhost"),
            "PORT": os.environ.get("DB_PORT", "5432"),
            "ATOMIC_REQUESTS": True,
        }
    }
else:
    DATABASES = {
        "default": {
            "ENGINE": "django.db.backends.sqlite3",
            "NAME": BASE_DIR / "db.sqlite3",
            "ATOMIC_REQUESTS": True,
        }
    }

DEFAULT_AUTO_FIELD = "django.db.models.BigAutoField"


LANGUAGE_CODE = "en-us"
TIME_ZONE = "UTC"
USE_I18N = True
USE_TZ = True

STATIC_URL = "/static/"


# Celery

CELERY_BROKER_URL = os.environ.get("CELERY_BROKER_URL", "redis://localhost:6379/0")
CELERY_RESULT_BACKEND = os.environ.get("CELERY_RESULT_BACKEND", CELERY_BROKER_URL)
CELERY_TASK_SERIALIZER = "json"
CELERY_ACCEPT_CONTENT = ["json"]


# AWS / SES

AWS_REGION = os.environ.get("AWS_REGION", "eu-west-2")
AWS_ACCESS_KEY = os.environ.get("AWS_ACCESS_KEY", "")
AWS_SECRET_ACCESS_KEY = os.environ.get("AWS_SECRET_ACCESS_KEY", "")
AWS_SES_ENDPOINT_URL = os.environ.get("AWS_SES_ENDPOINT_URL", "")

DEFAULT_FROM_EMAIL = os.environ.get("RESULT_EMAIL_FROM_ADDRESS", "noreply@example.com")

RESULT_EMAILS_ENABLED = os.environ.get("RESULT_EMAILS_ENABLED", "true").lower() == "true"
RESULT_EMAIL_FROM_ADDRESS = DEFAULT_FROM_EMAIL
RESULT_EMAIL_FROM_NAME = os.environ.get("RESULT_EMAIL_FROM_NAME", "Quiz Results")

NOTIFY_ADMIN = os.environ.get("NOTIFY_ADMIN", "false").lower() == "true"
ADMIN_NOTIFICATION_EMAIL = os.environ.get("ADMIN_NOTIFICATION_EMAIL", "")


# Identity provider (Stytch)

STYTCH_PROJECT_ID = os.environ.get("STYTCH_PROJECT_ID", "project-test-local")
STYTCH_SECRET = os.environ.get("STYTCH_SECRET", "")
STYTCH_ADMIN_ROLE = os.environ.get("STYTCH_ADMIN_ROLE", "quiz_admin")
STYTCH_TIMEOUT = 10

ADMIN_SESSION_COOKIE_NAME = "stytch_session_token"
ADMIN_SESSION_MINUTES = 60 * 24

ADMIN_LOGIN_URL = "/admin/login/"

# API prefixes only administrators may reach. Quiz takers use /api/sessions,
# /api/users, /api/auth and /api/public.
ADMIN_API_PREFIXES = [
    "/api/quizzes",
    "/api/questions",
    "/api/answers",
    "/api/quiz-results",
    "/api/answer-weights",
    "/api/analytics",
    "/api/leads",
    "/api/app-settings",
]
ADMIN_PAGE_PREFIX = "/admin/"
ADMIN_PUBLIC_PAGES = ["/admin/login/", "/admin/auth/"]


LOGGING = {
    "version": 1,
    "disable_existing_loggers": False,
    "formatters": {
        "simple": {
            "format": "[{levelname}] {asctime} {name}: {message}",
            "style": "{",
        },
    },
    "handlers": {
        "console": {
            "class": "logging.StreamHandler",
            "formatter": "simple",
        },
    },
    "loggers": {
        "quiz_funnel": {
            "handlers": ["console"],
            "level": os.environ.get("LOG_LEVEL", "DEBUG" if DEBUG else "INFO"),
            "propagate": False,
        },
    },
    "root": {
        "handlers": ["console"],
        "level": "WARNING",
    },
}
