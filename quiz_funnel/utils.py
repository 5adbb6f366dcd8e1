import json

from django.http import JsonResponse


def load_json_body(request):
    """Returns (payload, None) or (None, error response) for a JSON request body."""
    try:
        payload = json.loads(request.body.decode("utf-8") or "{}")
    except (json.JSONDecodeError, UnicodeDecodeError):
        return None, JsonResponse({"error": "Invalid JSON"}, status=400)

    if not isinstance(payload, dict):
        return None, JsonResponse({"error": "Invalid JSON"}, status=400)

    return payload, None


def form_error_response(form):
    return JsonResponse({"error": "Validation error", "form_errors": dict(form.errors)}, status=400)


def not_found(thing):
    return JsonResponse({"error": f"{thing} not found"}, status=404)
