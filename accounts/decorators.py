from functools import wraps

from django.conf import settings
from django.http import JsonResponse
from django.shortcuts import redirect

from accounts.identity import (
    AdminAuthError,
    ProviderUnreachable,
    UnauthorizedRole,
    authenticate_admin,
    get_identity_client,
    revoke_quietly,
)

import logging

logger = logging.getLogger("quiz_funnel")


def _log_failure(request, error):
    if isinstance(error, ProviderUnreachable):
        logger.error(f"Admin check on {request.path} could not reach identity provider: {error}")
    else:
        logger.warning(f"Admin check on {request.path} failed ({error.code}): {error}")


def admin_api_required(view_func):
    """Authoritative admin check for JSON API views."""
    @wraps(view_func)
    def wrapper(request, *args, **kwargs):
        session_token = request.COOKIES.get(settings.ADMIN_SESSION_COOKIE_NAME)
        try:
            request.admin_session = authenticate_admin(session_token, client=get_identity_client())
        except AdminAuthError as e:
            _log_failure(request, e)
            return JsonResponse({"error": "Unauthorized", "code": e.public_code}, status=401)
        return view_func(request, *args, **kwargs)
    return wrapper


def admin_page_required(view_func):
    """
    Authoritative admin check for rendered admin pages. A session without the
    admin role is revoked before the redirect to the login page.
    """
    @wraps(view_func)
    def wrapper(request, *args, **kwargs):
        session_token = request.COOKIES.get(settings.ADMIN_SESSION_COOKIE_NAME)
        client = get_identity_client()
        try:
            request.admin_session = authenticate_admin(session_token, client=client)
        except UnauthorizedRole as e:
            _log_failure(request, e)
            revoke_quietly(client, session_token)
            return redirect(f"{settings.ADMIN_LOGIN_URL}?error=unauthorized")
        except AdminAuthError as e:
            _log_failure(request, e)
            if not session_token:
                return redirect(settings.ADMIN_LOGIN_URL)
            return redirect(f"{settings.ADMIN_LOGIN_URL}?error=auth_failed")
        return view_func(request, *args, **kwargs)
    return wrapper
