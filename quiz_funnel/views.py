from django.db import connection, DatabaseError
from django.http import JsonResponse
from django.views.generic.base import TemplateView

import logging

logger = logging.getLogger("quiz_funnel")


class HomePageView(TemplateView):
    template_name = 'homepage.html'


def health(request):
    try:
        with connection.cursor() as cursor:
            cursor.execute("SELECT 1")
    except DatabaseError as e:
        logger.error(f"Health check database error: {e}")
        return JsonResponse({"status": "error"}, status=503)

    return JsonResponse({"status": "ok"})
