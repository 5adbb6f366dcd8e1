from django.db import models


SCORING_POLICY_CHOICES = [
    ('weighted', 'Weighted score'),
    ('voting', 'Plurality voting'),
]


def default_quiz_settings():
    return {
        'primaryColor': '#3b82f6',
        'backgroundColor': '#ffffff',
        'buttonStyle': 'rounded',
        'logoUrl': None,
    }


class Quiz(models.Model):
    title = models.CharField(max_length=255)
    description = models.TextField(null=True, blank=True)
    image_url = models.URLField(null=True, blank=True)
    slug = models.SlugField(max_length=255, unique=True)
    is_published = models.BooleanField(default=False)
    settings = models.JSONField(default=default_quiz_settings, blank=True)
    scoring_policy = models.CharField(max_length=16, choices=SCORING_POLICY_CHOICES, default='weighted')
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ['-created_at']

    def __str__(self):
        return self.title


class Question(models.Model):
    quiz = models.ForeignKey(Quiz, on_delete=models.CASCADE, related_name='questions')
    question_text = models.TextField()
    image_url = models.URLField(null=True, blank=True)
    display_order = models.IntegerField(default=0)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ['display_order', 'created_at', 'id']

    def __str__(self):
        return self.question_text


class Answer(models.Model):
    question = models.ForeignKey(Question, on_delete=models.CASCADE, related_name='answers')
    answer_text = models.TextField()
    display_order = models.IntegerField(default=0)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ['display_order', 'created_at', 'id']

    def __str__(self):
        return self.answer_text


class QuizResult(models.Model):
    quiz = models.ForeignKey(Quiz, on_delete=models.CASCADE, related_name='results')
    title = models.CharField(max_length=255)
    description = models.TextField(null=True, blank=True)
    image_url = models.URLField(null=True, blank=True)
    email_content = models.TextField(null=True, blank=True)
    is_lead = models.BooleanField(default=False)
    # Only read by the weighted scoring policy
    min_score = models.FloatField(default=0)
    display_order = models.IntegerField(default=0)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ['display_order', 'id']

    def __str__(self):
        return self.title


class AnswerResultWeight(models.Model):
    answer = models.ForeignKey(Answer, on_delete=models.CASCADE, related_name='result_weights')
    result = models.ForeignKey(QuizResult, on_delete=models.CASCADE, related_name='answer_weights')
    weight = models.FloatField(default=1)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        constraints = [
            models.UniqueConstraint(fields=['answer', 'result'], name='unique_weight_per_answer_result')
        ]
