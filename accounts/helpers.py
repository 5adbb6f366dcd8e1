import logging

from accounts.models import QuizUser

logger = logging.getLogger("quiz_funnel")


def _google_provider(provider_user):
    for provider in provider_user.get("providers") or []:
        if provider.get("provider_type") == "Google":
            return provider
    return {}


def _display_name(provider_user):
    name = provider_user.get("name") or {}
    first = name.get("first_name")
    if not first:
        return None
    return f"{first} {name.get('last_name') or ''}".strip()


def _primary_email(provider_user):
    emails = provider_user.get("emails") or []
    if emails:
        return emails[0].get("email")
    return None


def upsert_oauth_user(provider_user):
    """Create or refresh the QuizUser for an identity provider user record."""
    google = _google_provider(provider_user)
    email = _primary_email(provider_user)
    name = _display_name(provider_user)

    user = QuizUser.objects.filter(stytch_user_id=provider_user["user_id"]).first()

    if user is None:
        user = QuizUser.objects.create(
            stytch_user_id=provider_user["user_id"],
            email=email,
            name=name,
            profile_picture_url=google.get("profile_picture_url"),
            google_id=google.get("provider_subject"),
        )
        logger.info(f"Created quiz user {user.pk} from OAuth sign-in")
        return user

    user.email = email or user.email
    user.name = name or user.name
    user.profile_picture_url = google.get("profile_picture_url") or user.profile_picture_url
    user.google_id = google.get("provider_subject") or user.google_id
    user.save()
    return user


def find_or_create_lead(email, name):
    """
    Case-insensitive email lookup. An existing user only gets the name
    refreshed. Returns (user, created).
    """
    user = QuizUser.objects.filter(email__iexact=email).order_by("id").first()

    if user is not None:
        user.name = name
        user.save(update_fields=["name"])
        return user, False

    return QuizUser.objects.create(email=email, name=name), True
