from django.urls import path

from quiz_sessions import views

urlpatterns = [
    path("api/sessions", views.session_create, name="session_create"),
    path("api/sessions/<int:pk>", views.session_detail, name="session_detail"),
    path("api/sessions/<int:pk>/respond", views.session_respond, name="session_respond"),
    path("api/sessions/<int:pk>/complete", views.session_complete, name="session_complete"),
    path("api/leads", views.leads, name="leads"),
]
