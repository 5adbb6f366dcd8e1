from django.urls import path

from accounts import views

urlpatterns = [
    path("api/users/lead", views.lead_capture, name="lead_capture"),
    path("api/auth/callback", views.oauth_callback, name="oauth_callback"),
    path("api/auth/exchange", views.oauth_exchange, name="oauth_exchange"),
    path("api/app-settings", views.app_settings_view, name="app_settings"),
    path("auth-error", views.auth_error, name="auth_error"),
    path("auth-complete", views.auth_complete, name="auth_complete"),
]
