from django.urls import path

from admin_portal import views

urlpatterns = [
    path("admin/", views.dashboard, name="admin_dashboard"),
    path("admin/login/", views.login_page, name="admin_login"),
    path("admin/auth/callback", views.admin_oauth_callback, name="admin_oauth_callback"),
    path("admin/auth/logout", views.admin_logout, name="admin_logout"),
    path("admin/leads/", views.leads_page, name="admin_leads"),
    path("admin/quizzes/<int:pk>/analytics/", views.quiz_analytics_page, name="admin_quiz_analytics"),
]
