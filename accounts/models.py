from django.db import models


class QuizUser(models.Model):
    """A quiz taker, created by OAuth sign-in or by the lead capture form."""
    stytch_user_id = models.CharField(max_length=128, unique=True, null=True, blank=True)
    google_id = models.CharField(max_length=128, null=True, blank=True)
    email = models.EmailField(null=True, blank=True)
    name = models.CharField(max_length=255, null=True, blank=True)
    profile_picture_url = models.URLField(max_length=1024, null=True, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)

    def __str__(self):
        return self.email or self.name or f"user {self.pk}"


class AppSettings(models.Model):
    """
    Single row of per-deployment overrides. Blank fields fall back to the
    environment defaults in settings.py.
    """
    admin_role = models.CharField(max_length=128, blank=True, default="")
    email_from_address = models.EmailField(blank=True, default="")
    email_from_name = models.CharField(max_length=128, blank=True, default="")
    notify_admin = models.BooleanField(null=True, blank=True)
    admin_notification_email = models.EmailField(null=True, blank=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        verbose_name_plural = "app settings"
