from dataclasses import dataclass

from django.conf import settings

from accounts.models import AppSettings


@dataclass(frozen=True)
class EffectiveSettings:
    admin_role: str
    email_from_address: str
    email_from_name: str
    notify_admin: bool
    admin_notification_email: str

    @property
    def from_header(self):
        return f"{self.email_from_name} <{self.email_from_address}>"


def get_app_settings_row():
    return AppSettings.objects.order_by("id").first()


def get_effective_settings():
    """Environment defaults with the AppSettings row layered on top."""
    row = get_app_settings_row()

    admin_role = settings.STYTCH_ADMIN_ROLE
    from_address = settings.RESULT_EMAIL_FROM_ADDRESS
    from_name = settings.RESULT_EMAIL_FROM_NAME
    notify_admin = settings.NOTIFY_ADMIN
    admin_email = settings.ADMIN_NOTIFICATION_EMAIL

    if row is not None:
        admin_role = row.admin_role or admin_role
        from_address = row.email_from_address or from_address
        from_name = row.email_from_name or from_name
        if row.notify_admin is not None:
            notify_admin = row.notify_admin
        admin_email = row.admin_notification_email or admin_email

    return EffectiveSettings(
        admin_role=admin_role,
        email_from_address=from_address,
        email_from_name=from_name,
        notify_admin=notify_admin,
        admin_notification_email=admin_email,
    )
