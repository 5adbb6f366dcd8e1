from django import forms

from accounts.models import AppSettings


class LeadCaptureForm(forms.Form):
    firstName = forms.CharField(max_length=128)
    lastName = forms.CharField(max_length=128)
    email = forms.EmailField()

    def clean_email(self):
        return self.cleaned_data["email"].strip().lower()

    def full_name(self):
        first = self.cleaned_data["firstName"].strip()
        last = self.cleaned_data["lastName"].strip()
        return f"{first} {last}".strip()


class AppSettingsForm(forms.ModelForm):

    class Meta:
        model = AppSettings
        fields = ("admin_role", "email_from_address", "email_from_name", "notify_admin",
                  "admin_notification_email")
