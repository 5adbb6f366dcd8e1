import logging

from django.template.loader import render_to_string
from django.utils.html import strip_tags

from accounts.tasks import send_ses_email

logger = logging.getLogger("quiz_funnel")


def prepare_result_email(user, quiz, result):
    subject = f"Your Quiz Results: {result.title}"
    context = {
        "user_name": user.name,
        "quiz_title": quiz.title or "Quiz",
        "result_title": result.title,
        "result_description": result.description,
        "email_content": result.email_content,
    }
    body_html = render_to_string("quiz_sessions/emails/result_email.html", context)
    body_text = render_to_string("quiz_sessions/emails/result_email.txt", {
        **context,
        "email_content": strip_tags(result.email_content or ""),
    })
    return subject, body_text, body_html


def prepare_admin_notification(session, result):
    subject = f"Quiz completed: {session.quiz.title}"
    body_text = render_to_string("quiz_sessions/emails/admin_notification.txt", {
        "session": session,
        "quiz": session.quiz,
        "user": session.user,
        "result": result,
    })
    return subject, body_text


def queue_result_email(effective, user, quiz, result):
    """
    Queue the results email. Returns (sent, error); queueing problems are
    reported, never raised.
    """
    subject, body_text, body_html = prepare_result_email(user, quiz, result)

    try:
        send_ses_email.delay(
            to_email=[user.email],
            subject=subject,
            body_text=body_text,
            body_html=body_html,
            from_email=effective.from_header,
            tags={"email_type": "result", "quiz": quiz.slug},
        )
    except Exception as e:
        logger.error(f"Error queueing result email to {user.email}: {e}")
        return False, str(e) or "Unknown error"

    logger.info(f"Result email queued for {user.email}")
    return True, None


def queue_admin_notification(effective, session, result):
    subject, body_text = prepare_admin_notification(session, result)

    try:
        send_ses_email.delay(
            to_email=[effective.admin_notification_email],
            subject=subject,
            body_text=body_text,
            from_email=effective.from_header,
            tags={"email_type": "admin_notification", "quiz": session.quiz.slug},
        )
    except Exception as e:
        logger.error(f"Error queueing admin notification for session {session.pk}: {e}")
        return False

    return True
