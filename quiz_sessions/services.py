"""
Quiz session lifecycle: viewed -> started -> completed.

Writes are upserts or delete-then-insert so any step can be retried by the
caller. Data store errors propagate untouched; email problems are reported in
the completion result and never raised.
"""
import logging
import uuid
from dataclasses import dataclass
from typing import Optional

from django.conf import settings
from django.utils import timezone

from accounts.app_settings import get_effective_settings
from accounts.models import QuizUser
from quiz.models import Answer, Quiz
from quiz_sessions.emails import queue_admin_notification, queue_result_email
from quiz_sessions.models import (
    QuizResponse,
    QuizSession,
    SessionResult,
    STATUS_COMPLETED,
    STATUS_RANK,
    STATUS_STARTED,
    STATUS_VIEWED,
)
from quiz_sessions.scoring import ResolvedOutcome, resolve_outcome

logger = logging.getLogger("quiz_funnel")


class InvalidTransition(Exception):
    pass


class AnswerMismatch(Exception):
    pass


@dataclass
class CompletionResult:
    session: QuizSession
    outcome: ResolvedOutcome
    email_sent: bool = False
    email_error: Optional[str] = None


def create_session(quiz_id):
    quiz = Quiz.objects.get(pk=quiz_id)
    session = QuizSession.objects.create(
        quiz=quiz,
        anonymous_token=str(uuid.uuid4()),
        status=STATUS_VIEWED,
        entered_at=timezone.now(),
    )
    logger.debug(f"Created session {session.pk} for quiz {quiz.pk}")
    return session


def record_answer(session_id, question_id, answer_id):
    session = QuizSession.objects.get(pk=session_id)

    try:
        answer = Answer.objects.select_related('question').get(pk=answer_id, question_id=question_id)
    except Answer.DoesNotExist:
        raise AnswerMismatch(f"Answer {answer_id} does not belong to question {question_id}")

    if answer.question.quiz_id != session.quiz_id:
        raise AnswerMismatch(f"Question {question_id} is not part of this session's quiz")

    now = timezone.now()
    response, _ = QuizResponse.objects.update_or_create(
        session=session,
        question_id=question_id,
        defaults={'answer': answer, 'answered_at': now},
    )

    # Only a session still at "viewed" moves, so replays never clobber a later status
    QuizSession.objects.filter(pk=session.pk, status=STATUS_VIEWED).update(
        status=STATUS_STARTED, started_at=now,
    )
    return response


def update_session(session_id, status=None, user_id=None, is_lead=None, lead_score=None):
    """Partial update. Only the arguments that are not None change."""
    session = QuizSession.objects.get(pk=session_id)
    changed = []

    if status is not None and status != session.status:
        if STATUS_RANK[status] < STATUS_RANK[session.status]:
            raise InvalidTransition(f"Cannot move session from {session.status} to {status}")
        session.status = status
        changed.append('status')
        if status == STATUS_STARTED:
            session.started_at = timezone.now()
            changed.append('started_at')
        elif status == STATUS_COMPLETED:
            session.completed_at = timezone.now()
            changed.append('completed_at')

    if user_id is not None:
        session.user = QuizUser.objects.get(pk=user_id)
        changed.append('user')

    if is_lead is not None:
        session.is_lead = is_lead
        changed.append('is_lead')

    if lead_score is not None:
        session.lead_score = lead_score
        changed.append('lead_score')

    if changed:
        session.save(update_fields=changed)
    return session


def attach_identity(session_id, user_id):
    return update_session(session_id, user_id=user_id)


def persist_outcome(session, outcome):
    SessionResult.objects.filter(session=session).delete()
    if outcome.primary_result is not None:
        SessionResult.objects.create(
            session=session,
            result=outcome.primary_result,
            score=outcome.score,
            is_primary=True,
        )


def complete_session(session_id):
    session = QuizSession.objects.select_related('quiz', 'user').get(pk=session_id)

    outcome = resolve_outcome(session)
    persist_outcome(session, outcome)

    first_completion = QuizSession.objects.filter(pk=session.pk).exclude(
        status=STATUS_COMPLETED
    ).update(status=STATUS_COMPLETED) == 1

    QuizSession.objects.filter(pk=session.pk).update(
        status=STATUS_COMPLETED,
        completed_at=timezone.now(),
        lead_score=outcome.score,
        is_lead=outcome.is_lead,
    )
    session.refresh_from_db()

    effective = get_effective_settings()

    if first_completion and effective.notify_admin and effective.admin_notification_email:
        queue_admin_notification(effective, session, outcome.primary_result)

    email_sent, email_error = send_result_email_once(session, outcome, effective)
    return CompletionResult(session=session, outcome=outcome, email_sent=email_sent, email_error=email_error)


def send_result_email_once(session, outcome, effective):
    """
    At most one results email per session. The first caller to stamp
    result_email_queued_at sends it; if queueing fails the stamp is cleared
    so a later completion can try again.
    """
    user = session.user
    result = outcome.primary_result

    if not settings.RESULT_EMAILS_ENABLED:
        logger.warning("Result emails disabled - skipping email")
        return False, None
    if user is None or not user.email:
        logger.info(f"Session {session.pk} has no user email - skipping email")
        return False, None
    if result is None:
        logger.info(f"Session {session.pk} has no primary result - skipping email")
        return False, None
    if not (result.email_content or "").strip():
        logger.info(f"Result {result.pk} has no email content - skipping email for session {session.pk}")
        return False, None

    now = timezone.now()
    claimed = QuizSession.objects.filter(pk=session.pk, result_email_queued_at__isnull=True).update(
        result_email_queued_at=now,
    )
    if not claimed:
        logger.info(f"Result email for session {session.pk} already queued - skipping")
        return False, None

    email_sent, email_error = queue_result_email(effective, user, session.quiz, result)

    if email_sent:
        session.result_email_queued_at = now
    else:
        QuizSession.objects.filter(pk=session.pk).update(result_email_queued_at=None)

    return email_sent, email_error
