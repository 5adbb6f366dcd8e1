from botocore.exceptions import ClientError
from django.conf import settings
from celery import shared_task

from accounts.utils import get_ses_client

import logging

logger = logging.getLogger("quiz_funnel")


class EmailClientUnavailable(Exception):
    pass


def _message_tags(tags):
    """SES message tags, e.g. {"email_type": "result", "quiz": "leadership"}."""
    return [{"Name": name, "Value": str(value)} for name, value in (tags or {}).items()]


@shared_task
def send_ses_email(to_email: list, subject, body_text, body_html=None, from_email=None, tags=None):
    """
    Deliver one quiz email (a taker's results or an admin completion notice)
    through SES. Tags let SES event publishing break deliveries down by email
    type and quiz. No retries; failures surface in the worker log.
    """
    if from_email is None:
        from_email = settings.DEFAULT_FROM_EMAIL

    ses_client = get_ses_client()

    if ses_client is None:
        logger.error(f"No SES client for {tags or {}} email to {to_email}")
        raise EmailClientUnavailable("No SES client could be created")

    message = {
        "Subject": {"Data": subject, "Charset": "UTF-8"},
        "Body": {
            "Text": {"Data": body_text, "Charset": "UTF-8"},
        }
    }

    if body_html:
        message["Body"]["Html"] = {"Data": body_html, "Charset": "UTF-8"}

    send_kwargs = {
        "Source": from_email,
        "Destination": {"ToAddresses": to_email},
        "Message": message,
    }

    message_tags = _message_tags(tags)
    if message_tags:
        send_kwargs["Tags"] = message_tags

    try:
        response = ses_client.send_email(**send_kwargs)
    except ClientError as e:
        logger.error(f"SES rejected {tags or {}} email to {to_email}: {e}")
        raise e

    message_id = response.get("MessageId")
    logger.info(f"Email sent to {to_email}, message id {message_id}, tags {tags or {}}")
    return message_id
