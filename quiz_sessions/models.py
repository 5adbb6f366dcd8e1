from django.db import models

from accounts.models import QuizUser
from quiz.models import Quiz, Question, Answer, QuizResult


STATUS_VIEWED = 'viewed'
STATUS_STARTED = 'started'
STATUS_COMPLETED = 'completed'

STATUS_CHOICES = [
    (STATUS_VIEWED, 'Viewed'),
    (STATUS_STARTED, 'Started'),
    (STATUS_COMPLETED, 'Completed'),
]

# Position of each status in the forward-only lifecycle
STATUS_RANK = {STATUS_VIEWED: 0, STATUS_STARTED: 1, STATUS_COMPLETED: 2}


class QuizSession(models.Model):
    quiz = models.ForeignKey(Quiz, on_delete=models.CASCADE, related_name='sessions')
    user = models.ForeignKey(QuizUser, on_delete=models.SET_NULL, null=True, blank=True, related_name='sessions')
    anonymous_token = models.CharField(max_length=64, null=True, blank=True)
    status = models.CharField(max_length=16, choices=STATUS_CHOICES, default=STATUS_VIEWED)
    entered_at = models.DateTimeField()
    started_at = models.DateTimeField(null=True, blank=True)
    completed_at = models.DateTimeField(null=True, blank=True)
    is_lead = models.BooleanField(default=False)
    lead_score = models.FloatField(null=True, blank=True)
    # Set by the first completion that queues the results email
    result_email_queued_at = models.DateTimeField(null=True, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)

    def __str__(self):
        return f"session {self.pk} ({self.status})"


class QuizResponse(models.Model):
    session = models.ForeignKey(QuizSession, on_delete=models.CASCADE, related_name='responses')
    question = models.ForeignKey(Question, on_delete=models.CASCADE, related_name='responses')
    answer = models.ForeignKey(Answer, on_delete=models.CASCADE, related_name='responses')
    answered_at = models.DateTimeField()

    class Meta:
        constraints = [
            models.UniqueConstraint(fields=['session', 'question'], name='unique_response_per_session_question')
        ]


class SessionResult(models.Model):
    session = models.ForeignKey(QuizSession, on_delete=models.CASCADE, related_name='results')
    result = models.ForeignKey(QuizResult, on_delete=models.CASCADE, related_name='session_results')
    score = models.FloatField(default=0)
    is_primary = models.BooleanField(default=False)
    created_at = models.DateTimeField(auto_now_add=True)
