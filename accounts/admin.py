from django.contrib import admin

from accounts.models import QuizUser, AppSettings


class QuizUserAdmin(admin.ModelAdmin):
    list_display = ('email', 'name', 'created_at')
    search_fields = ('email', 'name')


admin.site.register(QuizUser, QuizUserAdmin)
admin.site.register(AppSettings)
