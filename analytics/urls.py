from django.urls import path

from analytics import views

urlpatterns = [
    path("api/analytics", views.analytics_view, name="analytics"),
]
