from django.contrib import admin
from django.db.models import Count
from quiz.models import Quiz, Question, Answer, QuizResult, AnswerResultWeight


class QuizAdmin(admin.ModelAdmin):
    list_display = ('title', 'slug', 'is_published', 'scoring_policy', 'session_count')
    list_filter = ('is_published', 'scoring_policy')
    search_fields = ('title', 'slug')
    prepopulated_fields = {'slug': ('title',)}

    def get_queryset(self, request):
        return super().get_queryset(request).annotate(session_count=Count('sessions'))

    @admin.display(ordering='session_count')
    def session_count(self, obj):
        return obj.session_count


class QuizResultAdmin(admin.ModelAdmin):
    list_display = ('title', 'quiz', 'min_score', 'is_lead', 'display_order')
    list_filter = ('quiz', 'is_lead')


admin.site.register(Quiz, QuizAdmin)
admin.site.register(Question)
admin.site.register(Answer)
admin.site.register(QuizResult, QuizResultAdmin)
admin.site.register(AnswerResultWeight)
