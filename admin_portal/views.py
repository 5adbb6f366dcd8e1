import logging

from django.conf import settings
from django.db.models import Count, Prefetch
from django.shortcuts import render, redirect, get_object_or_404
from django.views.decorators.http import require_GET, require_POST

from accounts.app_settings import get_effective_settings
from accounts.decorators import admin_page_required
from accounts.identity import (
    AdminAuthError,
    UnauthorizedRole,
    get_identity_client,
    require_admin_role,
    revoke_quietly,
)
from analytics.helpers import quiz_analytics
from quiz.models import Quiz
from quiz_sessions.models import QuizSession, SessionResult, STATUS_COMPLETED

logger = logging.getLogger("quiz_funnel")

LOGIN_ERRORS = {
    "auth_failed": "Authentication failed. Please sign in again.",
    "unauthorized": "Your account is signed in but does not have admin access.",
}


def _set_session_cookie(response, session_token):
    response.set_cookie(
        settings.ADMIN_SESSION_COOKIE_NAME,
        session_token,
        max_age=settings.ADMIN_SESSION_MINUTES * 60,
        httponly=True,
        secure=not settings.DEBUG,
        samesite="Lax",
        path="/",
    )
    return response


def _clear_session_cookie(response):
    response.delete_cookie(settings.ADMIN_SESSION_COOKIE_NAME, path="/", samesite="Lax")
    return response


@require_GET
def login_page(request):
    error = request.GET.get("error")
    return render(request, "admin_portal/login.html", {
        "error": error,
        "error_message": LOGIN_ERRORS.get(error),
        "stytch_project_id": settings.STYTCH_PROJECT_ID,
    })


@require_GET
def admin_oauth_callback(request):
    token = request.GET.get("token")
    token_type = request.GET.get("stytch_token_type")

    if not token or token_type != "oauth":
        return redirect(f"{settings.ADMIN_LOGIN_URL}?error=auth_failed")

    client = get_identity_client()

    try:
        auth_response = client.oauth_authenticate(token, settings.ADMIN_SESSION_MINUTES)
    except AdminAuthError as e:
        logger.error(f"Admin OAuth callback error ({e.code}): {e}")
        return redirect(f"{settings.ADMIN_LOGIN_URL}?error=auth_failed")

    session_token = auth_response.get("session_token")

    try:
        require_admin_role(auth_response.get("session_jwt"))
    except UnauthorizedRole as e:
        logger.warning(f"Admin sign-in refused: {e}")
        revoke_quietly(client, session_token)
        return redirect(f"{settings.ADMIN_LOGIN_URL}?error=unauthorized")

    if not session_token:
        logger.error("Admin OAuth callback returned no session token")
        return redirect(f"{settings.ADMIN_LOGIN_URL}?error=auth_failed")

    return _set_session_cookie(redirect("admin_dashboard"), session_token)


@require_POST
def admin_logout(request):
    session_token = request.COOKIES.get(settings.ADMIN_SESSION_COOKIE_NAME)

    if session_token:
        revoke_quietly(get_identity_client(), session_token)

    response = redirect(settings.ADMIN_LOGIN_URL)
    response.status_code = 303
    return _clear_session_cookie(response)


@admin_page_required
def dashboard(request):
    quizzes = Quiz.objects.annotate(
        result_count=Count('results', distinct=True),
        question_count=Count('questions', distinct=True),
    ).order_by('-created_at')

    return render(request, "admin_portal/dashboard.html", {
        "quizzes": quizzes,
        "effective_settings": get_effective_settings(),
        "default_notification_email": settings.ADMIN_NOTIFICATION_EMAIL,
    })


@admin_page_required
def leads_page(request):
    sessions = (
        QuizSession.objects
        .filter(status=STATUS_COMPLETED)
        .select_related('user', 'quiz')
        .prefetch_related(Prefetch(
            'results',
            queryset=SessionResult.objects.filter(is_primary=True).select_related('result'),
            to_attr='primary_results',
        ))
        .order_by('-completed_at')[:100]
    )
    return render(request, "admin_portal/leads.html", {"sessions": sessions})


@admin_page_required
def quiz_analytics_page(request, pk):
    quiz = get_object_or_404(Quiz, pk=pk)
    return render(request, "admin_portal/analytics.html", {
        "quiz": quiz,
        "analytics": quiz_analytics(quiz.pk),
    })
