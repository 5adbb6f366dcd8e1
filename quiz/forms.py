from django import forms

from quiz.models import Quiz, Question, Answer, QuizResult, AnswerResultWeight, SCORING_POLICY_CHOICES


class QuizForm(forms.ModelForm):
    slug = forms.SlugField(max_length=255, required=False)
    scoring_policy = forms.ChoiceField(choices=SCORING_POLICY_CHOICES, required=False)

    class Meta:
        model = Quiz
        fields = ('title', 'description', 'image_url', 'slug', 'is_published', 'settings', 'scoring_policy')

    def clean_settings(self):
        value = self.cleaned_data.get('settings')
        if value is None:
            return self.instance.settings if self.instance.pk else Quiz._meta.get_field('settings').get_default()
        if not isinstance(value, dict):
            raise forms.ValidationError("Settings must be an object.")
        return value

    def clean_scoring_policy(self):
        return self.cleaned_data.get('scoring_policy') or self.instance.scoring_policy or 'weighted'


class QuestionForm(forms.ModelForm):
    display_order = forms.IntegerField(required=False)

    class Meta:
        model = Question
        fields = ('quiz', 'question_text', 'image_url', 'display_order')

    def clean_display_order(self):
        return self.cleaned_data.get('display_order') or 0


class AnswerForm(forms.ModelForm):
    display_order = forms.IntegerField(required=False)

    class Meta:
        model = Answer
        fields = ('question', 'answer_text', 'display_order')

    def clean_display_order(self):
        return self.cleaned_data.get('display_order') or 0


class QuizResultForm(forms.ModelForm):
    display_order = forms.IntegerField(required=False)
    min_score = forms.FloatField(required=False)

    class Meta:
        model = QuizResult
        fields = ('quiz', 'title', 'description', 'image_url', 'email_content', 'is_lead', 'min_score',
                  'display_order')

    def clean_display_order(self):
        return self.cleaned_data.get('display_order') or 0

    def clean_min_score(self):
        return self.cleaned_data.get('min_score') or 0


class AnswerWeightForm(forms.Form):
    answer_id = forms.ModelChoiceField(queryset=Answer.objects.all())
    result_id = forms.ModelChoiceField(queryset=QuizResult.objects.all())
    weight = forms.FloatField(required=False)

    def clean_weight(self):
        weight = self.cleaned_data.get('weight')
        if weight is None:
            return AnswerResultWeight._meta.get_field('weight').get_default()
        return weight
