import atexit

from django.apps import AppConfig


class AccountsConfig(AppConfig):
    default_auto_field = "django.db.models.BigAutoField"
    name = "accounts"

    identity_client = None

    def ready(self):
        from accounts.identity import StytchClient

        self.identity_client = StytchClient.from_settings()
        atexit.register(self.close_identity_client)

    def close_identity_client(self):
        if self.identity_client is not None:
            self.identity_client.close()
