import logging

from django.db import DatabaseError, transaction
from django.db.models import Count, Prefetch
from django.forms.models import model_to_dict
from django.http import JsonResponse
from django.utils.text import slugify
from django.views.decorators.csrf import csrf_exempt
from django.views.decorators.http import require_GET, require_POST, require_http_methods

from accounts.decorators import admin_api_required
from quiz.forms import QuizForm, QuestionForm, AnswerForm, QuizResultForm, AnswerWeightForm
from quiz.models import Quiz, Question, Answer, QuizResult, AnswerResultWeight
from quiz.serializers import (
    serialize_quiz,
    serialize_quiz_summary,
    serialize_quiz_detail,
    serialize_public_quiz,
    serialize_question,
    serialize_answer,
    serialize_result,
    serialize_weight,
)
from quiz_funnel.utils import load_json_body, form_error_response, not_found

logger = logging.getLogger("quiz_funnel")


def _quiz_with_relations():
    return Quiz.objects.prefetch_related(
        'results',
        Prefetch('questions', queryset=Question.objects.prefetch_related(
            Prefetch('answers', queryset=Answer.objects.prefetch_related('result_weights'))
        )),
    )


def _save_form(form, serializer, status):
    """Validate and save a model form, mapping failures onto JSON errors."""
    if not form.is_valid():
        return form_error_response(form)

    try:
        with transaction.atomic():
            instance = form.save()
    except DatabaseError as e:
        logger.error(f"Saving {form._meta.model.__name__} failed: {e}")
        return JsonResponse({"error": str(e)}, status=500)

    return JsonResponse(serializer(instance), status=status)


def _partial_data(instance, form_class, payload):
    """Current field values overlaid with whatever the PATCH body supplies."""
    data = model_to_dict(instance, fields=form_class.Meta.fields)
    data.update({k: v for k, v in payload.items() if k in form_class.Meta.fields})
    return data


def _delete(instance):
    try:
        with transaction.atomic():
            instance.delete()
    except DatabaseError as e:
        logger.error(f"Deleting {instance.__class__.__name__} {instance.pk} failed: {e}")
        return JsonResponse({"error": str(e)}, status=500)
    return JsonResponse({"success": True})


@csrf_exempt
@require_http_methods(["GET", "POST"])
@admin_api_required
def quiz_collection(request):

    if request.method == "GET":
        quizzes = Quiz.objects.annotate(
            result_count=Count('results', distinct=True),
            question_count=Count('questions', distinct=True),
        ).order_by('-created_at')
        return JsonResponse([serialize_quiz_summary(q) for q in quizzes], safe=False)

    payload, error = load_json_body(request)
    if error:
        return error

    if not payload.get('slug') and payload.get('title'):
        payload['slug'] = slugify(payload['title'])

    return _save_form(QuizForm(payload), serialize_quiz, status=201)


@csrf_exempt
@require_http_methods(["GET", "PATCH", "DELETE"])
@admin_api_required
def quiz_detail(request, pk):

    try:
        quiz = _quiz_with_relations().get(pk=pk)
    except Quiz.DoesNotExist:
        return not_found("Quiz")

    if request.method == "GET":
        return JsonResponse(serialize_quiz_detail(quiz))

    if request.method == "DELETE":
        return _delete(quiz)

    payload, error = load_json_body(request)
    if error:
        return error

    form = QuizForm(_partial_data(quiz, QuizForm, payload), instance=quiz)
    return _save_form(form, serialize_quiz, status=200)


@require_GET
def public_quiz(request, slug):
    try:
        quiz = _quiz_with_relations().get(slug=slug, is_published=True)
    except Quiz.DoesNotExist:
        return not_found("Quiz")

    return JsonResponse(serialize_public_quiz(quiz))


@csrf_exempt
@require_POST
@admin_api_required
def question_create(request):
    payload, error = load_json_body(request)
    if error:
        return error

    payload.setdefault('quiz', payload.get('quiz_id'))
    return _save_form(QuestionForm(payload), serialize_question, status=201)


@csrf_exempt
@require_http_methods(["PATCH", "DELETE"])
@admin_api_required
def question_detail(request, pk):
    try:
        question = Question.objects.get(pk=pk)
    except Question.DoesNotExist:
        return not_found("Question")

    if request.method == "DELETE":
        return _delete(question)

    payload, error = load_json_body(request)
    if error:
        return error

    form = QuestionForm(_partial_data(question, QuestionForm, payload), instance=question)
    return _save_form(form, serialize_question, status=200)


@csrf_exempt
@require_POST
@admin_api_required
def answer_create(request):
    payload, error = load_json_body(request)
    if error:
        return error

    payload.setdefault('question', payload.get('question_id'))
    return _save_form(AnswerForm(payload), serialize_answer, status=201)


@csrf_exempt
@require_http_methods(["PATCH", "DELETE"])
@admin_api_required
def answer_detail(request, pk):
    try:
        answer = Answer.objects.get(pk=pk)
    except Answer.DoesNotExist:
        return not_found("Answer")

    if request.method == "DELETE":
        return _delete(answer)

    payload, error = load_json_body(request)
    if error:
        return error

    form = AnswerForm(_partial_data(answer, AnswerForm, payload), instance=answer)
    return _save_form(form, serialize_answer, status=200)


def _reorder(request, model):
    payload, error = load_json_body(request)
    if error:
        return error

    ordered_ids = payload.get('orderedIds')
    if not isinstance(ordered_ids, list):
        return JsonResponse({"error": "orderedIds must be an array"}, status=400)

    try:
        ordered_ids = [int(pk) for pk in ordered_ids]
    except (TypeError, ValueError):
        return JsonResponse({"error": "orderedIds must contain integer ids"}, status=400)

    try:
        with transaction.atomic():
            for index, pk in enumerate(ordered_ids):
                model.objects.filter(pk=pk).update(display_order=index)
    except DatabaseError as e:
        logger.error(f"Reordering {model.__name__} failed: {e}")
        return JsonResponse({"error": str(e)}, status=500)

    return JsonResponse({"success": True})


@csrf_exempt
@require_http_methods(["PUT"])
@admin_api_required
def questions_reorder(request):
    return _reorder(request, Question)


@csrf_exempt
@require_http_methods(["PUT"])
@admin_api_required
def answers_reorder(request):
    return _reorder(request, Answer)


@csrf_exempt
@require_POST
@admin_api_required
def result_create(request):
    payload, error = load_json_body(request)
    if error:
        return error

    payload.setdefault('quiz', payload.get('quiz_id'))
    return _save_form(QuizResultForm(payload), serialize_result, status=201)


@csrf_exempt
@require_http_methods(["PATCH", "DELETE"])
@admin_api_required
def result_detail(request, pk):
    try:
        result = QuizResult.objects.get(pk=pk)
    except QuizResult.DoesNotExist:
        return not_found("Result")

    if request.method == "DELETE":
        return _delete(result)

    payload, error = load_json_body(request)
    if error:
        return error

    form = QuizResultForm(_partial_data(result, QuizResultForm, payload), instance=result)
    return _save_form(form, serialize_result, status=200)


@csrf_exempt
@require_http_methods(["POST", "DELETE"])
@admin_api_required
def answer_weights(request):

    if request.method == "DELETE":
        answer_id = request.GET.get('answer_id')
        result_id = request.GET.get('result_id')

        if not answer_id or not result_id:
            return JsonResponse({"error": "answer_id and result_id are required"}, status=400)

        if not answer_id.isdigit() or not result_id.isdigit():
            return JsonResponse({"error": "answer_id and result_id must be integers"}, status=400)

        try:
            with transaction.atomic():
                AnswerResultWeight.objects.filter(answer_id=answer_id, result_id=result_id).delete()
        except DatabaseError as e:
            logger.error(f"Deleting answer weight failed: {e}")
            return JsonResponse({"error": str(e)}, status=500)

        return JsonResponse({"success": True})

    payload, error = load_json_body(request)
    if error:
        return error

    form = AnswerWeightForm(payload)
    if not form.is_valid():
        return form_error_response(form)

    try:
        with transaction.atomic():
            weight, _ = AnswerResultWeight.objects.update_or_create(
                answer=form.cleaned_data['answer_id'],
                result=form.cleaned_data['result_id'],
                defaults={'weight': form.cleaned_data['weight']},
            )
    except DatabaseError as e:
        logger.error(f"Upserting answer weight failed: {e}")
        return JsonResponse({"error": str(e)}, status=500)

    return JsonResponse(serialize_weight(weight), status=201)
