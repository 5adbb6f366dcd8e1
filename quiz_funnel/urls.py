from django.contrib import admin
from django.urls import include, path

from quiz_funnel.views import HomePageView, health

urlpatterns = [
    path("", HomePageView.as_view(), name="home"),
    path("healthz", health, name="health"),
    path("django-admin/", admin.site.urls),
    path("", include("accounts.urls")),
    path("", include("quiz.urls")),
    path("", include("quiz_sessions.urls")),
    path("", include("analytics.urls")),
    path("", include("admin_portal.urls")),
]
