from django import forms

from quiz_sessions.models import STATUS_STARTED, STATUS_COMPLETED


class SessionCreateForm(forms.Form):
    quiz_id = forms.IntegerField()


class RespondForm(forms.Form):
    question_id = forms.IntegerField()
    answer_id = forms.IntegerField()


class SessionUpdateForm(forms.Form):
    status = forms.ChoiceField(
        choices=[(STATUS_STARTED, 'Started'), (STATUS_COMPLETED, 'Completed')],
        required=False,
    )
    user_id = forms.IntegerField(required=False)
    is_lead = forms.NullBooleanField(required=False)
    lead_score = forms.FloatField(required=False)

    def changes(self):
        """Only the fields present in the submitted body."""
        return {
            name: self.cleaned_data[name]
            for name in self.fields
            if name in self.data and self.cleaned_data.get(name) not in (None, '')
        }
