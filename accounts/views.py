# accounts/views.py
from django.db import DatabaseError
from django.forms.models import model_to_dict
from django.http import JsonResponse
from django.shortcuts import render, redirect
from django.utils.http import urlencode
from django.views.decorators.csrf import csrf_exempt
from django.views.decorators.http import require_POST, require_GET, require_http_methods

from accounts.decorators import admin_api_required
from accounts.forms import LeadCaptureForm, AppSettingsForm
from accounts.helpers import find_or_create_lead, upsert_oauth_user
from accounts.identity import AdminAuthError, get_identity_client
from accounts.models import AppSettings
from quiz_funnel.utils import load_json_body, form_error_response

import logging

logger = logging.getLogger("quiz_funnel")

# Quiz takers stay signed in for a week
TAKER_SESSION_MINUTES = 60 * 24 * 7

AUTH_ERROR_MESSAGES = {
    "no_token": "No sign-in token was received.",
    "invalid_token_type": "The sign-in token type is not supported.",
    "db_error": "We could not save your details. Please try again.",
    "auth_failed": "Authentication failed. Please try again.",
}


@csrf_exempt
@require_POST
def lead_capture(request):
    payload, error = load_json_body(request)
    if error:
        return error

    form = LeadCaptureForm(payload)
    if not form.is_valid():
        return JsonResponse({"error": "First name, last name, and email are required",
                             "form_errors": dict(form.errors)}, status=400)

    try:
        user, created = find_or_create_lead(email=form.cleaned_data["email"], name=form.full_name())
    except DatabaseError as e:
        logger.error(f"Lead capture failed: {e}")
        return JsonResponse({"error": str(e)}, status=500)

    return JsonResponse({"user_id": user.pk}, status=201 if created else 200)


@require_GET
def oauth_callback(request):
    token = request.GET.get("token")
    token_type = request.GET.get("stytch_token_type")
    session_id = request.GET.get("session_id")

    if not token:
        return redirect(f"/auth-error?{urlencode({'error': 'no_token'})}")
    if token_type != "oauth":
        return redirect(f"/auth-error?{urlencode({'error': 'invalid_token_type'})}")

    try:
        auth_response = get_identity_client().oauth_authenticate(token, TAKER_SESSION_MINUTES)
    except AdminAuthError as e:
        logger.error(f"OAuth callback error ({e.code}): {e}")
        return redirect(f"/auth-error?{urlencode({'error': 'auth_failed'})}")

    try:
        user = upsert_oauth_user(auth_response["user"])
    except (DatabaseError, KeyError) as e:
        logger.error(f"Error saving OAuth user: {e}")
        return redirect(f"/auth-error?{urlencode({'error': 'db_error'})}")

    if session_id:
        return redirect(f"/auth-complete?{urlencode({'user_id': user.pk, 'session_id': session_id})}")

    return redirect("/")


@csrf_exempt
@require_POST
def oauth_exchange(request):
    payload, error = load_json_body(request)
    if error:
        return error

    token = payload.get("token")
    if not token:
        return JsonResponse({"error": "Token is required"}, status=400)

    try:
        auth_response = get_identity_client().oauth_authenticate(token, TAKER_SESSION_MINUTES)
    except AdminAuthError as e:
        logger.error(f"OAuth exchange error ({e.code}): {e}")
        return JsonResponse({"error": "Authentication failed"}, status=401)

    try:
        user = upsert_oauth_user(auth_response["user"])
    except (DatabaseError, KeyError) as e:
        logger.error(f"Error saving OAuth user: {e}")
        return JsonResponse({"error": "Failed to create user"}, status=500)

    return JsonResponse({"user_id": user.pk})


def auth_error(request):
    code = request.GET.get("error", "auth_failed")
    message = AUTH_ERROR_MESSAGES.get(code, AUTH_ERROR_MESSAGES["auth_failed"])
    return render(request, "accounts/auth_error.html", {"code": code, "message": message}, status=400)


def auth_complete(request):
    return render(request, "accounts/auth_complete.html", {
        "user_id": request.GET.get("user_id"),
        "session_id": request.GET.get("session_id"),
    })


def _settings_payload(row):
    data = model_to_dict(row)
    data["updated_at"] = row.updated_at
    return data


@csrf_exempt
@require_http_methods(["GET", "PATCH"])
@admin_api_required
def app_settings_view(request):
    row = AppSettings.objects.order_by("id").first()

    if request.method == "GET":
        if row is None:
            return JsonResponse({"error": "App settings not found"}, status=404)
        return JsonResponse(_settings_payload(row))

    payload, error = load_json_body(request)
    if error:
        return error

    if row is None:
        row = AppSettings()

    # Partial update: fields missing from the body keep their stored value
    data = {field: getattr(row, field) for field in AppSettingsForm.Meta.fields}
    data.update({k: v for k, v in payload.items() if k in data})
    if data.get("admin_notification_email") == "":
        data["admin_notification_email"] = None

    form = AppSettingsForm(data, instance=row)
    if not form.is_valid():
        return form_error_response(form)

    try:
        row = form.save()
    except DatabaseError as e:
        logger.error(f"Saving app settings failed: {e}")
        return JsonResponse({"error": str(e)}, status=500)

    return JsonResponse(_settings_payload(row))
