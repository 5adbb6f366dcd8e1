import logging

from django.db import DatabaseError, transaction
from django.db.models import Prefetch
from django.http import JsonResponse
from django.views.decorators.csrf import csrf_exempt
from django.views.decorators.http import require_GET, require_POST, require_http_methods

from accounts.decorators import admin_api_required
from accounts.models import QuizUser
from quiz.models import Quiz
from quiz_sessions import services
from quiz_sessions.forms import SessionCreateForm, RespondForm, SessionUpdateForm
from quiz_sessions.models import QuizSession, QuizResponse, SessionResult, STATUS_COMPLETED
from quiz_sessions.serializers import (
    serialize_session,
    serialize_session_detail,
    serialize_response,
    serialize_completion,
    serialize_lead_row,
)
from quiz_funnel.utils import load_json_body, form_error_response, not_found

logger = logging.getLogger("quiz_funnel")


def _database_error(action, e):
    logger.error(f"{action} failed: {e}")
    return JsonResponse({"error": str(e)}, status=500)


@csrf_exempt
@require_POST
def session_create(request):
    payload, error = load_json_body(request)
    if error:
        return error

    form = SessionCreateForm(payload)
    if not form.is_valid():
        return form_error_response(form)

    try:
        with transaction.atomic():
            session = services.create_session(form.cleaned_data["quiz_id"])
    except Quiz.DoesNotExist:
        return not_found("Quiz")
    except DatabaseError as e:
        return _database_error("Creating session", e)

    return JsonResponse(serialize_session(session), status=201)


@csrf_exempt
@require_http_methods(["GET", "PATCH"])
def session_detail(request, pk):

    if request.method == "GET":
        queryset = QuizSession.objects.select_related('user').prefetch_related(
            Prefetch('responses', queryset=QuizResponse.objects.select_related('question', 'answer')),
            Prefetch('results', queryset=SessionResult.objects.select_related('result')),
        )
        try:
            session = queryset.get(pk=pk)
        except QuizSession.DoesNotExist:
            return not_found("Session")
        return JsonResponse(serialize_session_detail(session))

    payload, error = load_json_body(request)
    if error:
        return error

    form = SessionUpdateForm(payload)
    if not form.is_valid():
        return form_error_response(form)

    try:
        with transaction.atomic():
            session = services.update_session(pk, **form.changes())
    except QuizSession.DoesNotExist:
        return not_found("Session")
    except QuizUser.DoesNotExist:
        return not_found("User")
    except services.InvalidTransition as e:
        return JsonResponse({"error": str(e)}, status=409)
    except DatabaseError as e:
        return _database_error("Updating session", e)

    return JsonResponse(serialize_session(session))


@csrf_exempt
@require_POST
def session_respond(request, pk):
    payload, error = load_json_body(request)
    if error:
        return error

    form = RespondForm(payload)
    if not form.is_valid():
        return form_error_response(form)

    try:
        with transaction.atomic():
            response = services.record_answer(pk, form.cleaned_data["question_id"], form.cleaned_data["answer_id"])
    except QuizSession.DoesNotExist:
        return not_found("Session")
    except services.AnswerMismatch as e:
        return JsonResponse({"error": str(e)}, status=400)
    except DatabaseError as e:
        return _database_error("Recording response", e)

    return JsonResponse(serialize_response(response), status=201)


@csrf_exempt
@require_POST
def session_complete(request, pk):
    try:
        with transaction.atomic():
            completion = services.complete_session(pk)
    except QuizSession.DoesNotExist:
        return not_found("Session")
    except DatabaseError as e:
        return _database_error("Completing session", e)

    return JsonResponse(serialize_completion(completion))


@require_GET
@admin_api_required
def leads(request):
    sessions = (
        QuizSession.objects
        .filter(status=STATUS_COMPLETED)
        .select_related('user', 'quiz')
        .prefetch_related(Prefetch('results', queryset=SessionResult.objects.select_related('result')))
        .order_by('-completed_at')[:100]
    )
    return JsonResponse([serialize_lead_row(s) for s in sessions], safe=False)
