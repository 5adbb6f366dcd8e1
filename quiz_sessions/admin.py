from django.contrib import admin

from quiz_sessions.models import QuizSession, QuizResponse, SessionResult


class QuizSessionAdmin(admin.ModelAdmin):
    list_display = ('id', 'quiz', 'user', 'status', 'is_lead', 'lead_score', 'completed_at')
    list_filter = ('status', 'is_lead', 'quiz')
    search_fields = ('user__email', 'anonymous_token')


admin.site.register(QuizSession, QuizSessionAdmin)
admin.site.register(QuizResponse)
admin.site.register(SessionResult)
