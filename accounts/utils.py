import boto3
from botocore.exceptions import BotoCoreError
from django.conf import settings
import logging

logger = logging.getLogger("quiz_funnel")


def _ses_client_kwargs():
    kwargs = {"region_name": settings.AWS_REGION}
    if settings.AWS_SES_ENDPOINT_URL:
        kwargs["endpoint_url"] = settings.AWS_SES_ENDPOINT_URL
    return kwargs


def get_ses_client():
    """
    SES client for the results and admin notification emails. Outside
    development the instance role is tried first; access keys from the
    environment are the fallback. Returns None when neither works.
    """
    kwargs = _ses_client_kwargs()

    if settings.DJANGO_ENV != "DEVELOPMENT":
        try:
            return boto3.client("ses", **kwargs)
        except BotoCoreError as e:
            logger.error(f"SES client from instance role failed in {kwargs['region_name']}: {e}")

    if not settings.AWS_ACCESS_KEY or not settings.AWS_SECRET_ACCESS_KEY:
        logger.error("No AWS access keys configured for SES")
        return None

    try:
        return boto3.client(
            "ses",
            aws_access_key_id=settings.AWS_ACCESS_KEY,
            aws_secret_access_key=settings.AWS_SECRET_ACCESS_KEY,
            **kwargs
        )
    except BotoCoreError as e:
        logger.error(f"SES client with access keys failed in {kwargs['region_name']}: {e}")
        return None
