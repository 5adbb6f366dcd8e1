import logging

from django.conf import settings
from django.http import JsonResponse
from django.shortcuts import redirect

logger = logging.getLogger("quiz_funnel")


def is_admin_api_path(path):
    return any(path == prefix or path.startswith(prefix + "/") for prefix in settings.ADMIN_API_PREFIXES)


def is_admin_page_path(path):
    if not path.startswith(settings.ADMIN_PAGE_PREFIX):
        return False
    return not any(path.startswith(public) for public in settings.ADMIN_PUBLIC_PAGES)


class AdminSessionCookieMiddleware:
    """
    Coarse gate in front of every admin route: no session cookie, no entry.

    Holding a cookie only gets a request as far as the view, where
    admin_api_required / admin_page_required do the real check against the
    identity provider.
    """

    def __init__(self, get_response):
        self.get_response = get_response

    def __call__(self, request):
        path = request.path

        if request.COOKIES.get(settings.ADMIN_SESSION_COOKIE_NAME):
            return self.get_response(request)

        if is_admin_api_path(path):
            logger.info(f"Rejected admin API request without credential: {path}")
            return JsonResponse(
                {"error": "Authentication required", "code": "missing_credential"},
                status=401,
            )

        if is_admin_page_path(path):
            return redirect(settings.ADMIN_LOGIN_URL)

        return self.get_response(request)
