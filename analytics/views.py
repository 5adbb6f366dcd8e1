import logging

from django.db import DatabaseError
from django.http import JsonResponse
from django.views.decorators.http import require_GET

from accounts.decorators import admin_api_required
from analytics.helpers import quiz_analytics

logger = logging.getLogger("quiz_funnel")


@require_GET
@admin_api_required
def analytics_view(request):
    quiz_id = request.GET.get('quiz_id')

    if not quiz_id:
        return JsonResponse({"error": "quiz_id is required"}, status=400)

    if not quiz_id.isdigit():
        return JsonResponse({"error": "quiz_id must be an integer"}, status=400)

    try:
        data = quiz_analytics(int(quiz_id))
    except DatabaseError as e:
        logger.error(f"Analytics error for quiz {quiz_id}: {e}")
        return JsonResponse({"error": "Failed to fetch analytics"}, status=500)

    return JsonResponse(data)
