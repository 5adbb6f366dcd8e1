import json
from unittest.mock import patch, MagicMock

import jwt
import requests
from botocore.exceptions import ClientError
from django.apps import apps
from django.conf import settings
from django.test import TestCase, override_settings

from accounts.app_settings import get_effective_settings
from accounts.identity import (
    InvalidOrExpiredCredential,
    ProviderUnreachable,
    StytchClient,
    UnauthorizedRole,
    MissingCredential,
    authenticate_admin,
    roles_from_session_jwt,
    SESSION_CLAIM,
)
from accounts.models import QuizUser, AppSettings
from accounts.tasks import EmailClientUnavailable, send_ses_email
from accounts.utils import get_ses_client
from accounts.testing import (
    ADMIN_TOKEN,
    VIEWER_TOKEN,
    AdminClientMixin,
    MockIdentityClient,
    make_session_jwt,
    use_identity_client,
)


class MockHTTPResponse:

    def __init__(self, status_code=200, payload=None):
        self.status_code = status_code
        self.payload = payload or {}
        self.text = json.dumps(self.payload)

    def json(self):
        return self.payload


oauth_user_payload = {
    "user": {
        "user_id": "user-test-abc",
        "emails": [{"email": "taker@example.com"}],
        "name": {"first_name": "Ada", "last_name": "Lovelace"},
        "providers": [{
            "provider_type": "Google",
            "provider_subject": "google-123",
            "profile_picture_url": "https://example.com/ada.png",
        }],
    },
    "session_token": "taker-session",
    "session_jwt": make_session_jwt([]),
}


class RoleClaimTestCase(TestCase):

    def test_roles_read_from_session_claim(self):
        token = make_session_jwt(["quiz_admin", "stytch_member"])
        self.assertEqual(roles_from_session_jwt(token), ["quiz_admin", "stytch_member"])

    def test_missing_claim_means_no_roles(self):
        token = jwt.encode({"sub": "someone"}, "test-signing-key-for-session-jwt-claims", algorithm="HS256")
        self.assertEqual(roles_from_session_jwt(token), [])

    def test_malformed_claim_means_no_roles(self):
        token = jwt.encode({SESSION_CLAIM: {"roles": "quiz_admin"}}, "test-signing-key-for-session-jwt-claims",
                           algorithm="HS256")
        self.assertEqual(roles_from_session_jwt(token), [])

    def test_undecodable_token_means_no_roles(self):
        self.assertEqual(roles_from_session_jwt("not-a-jwt"), [])
        self.assertEqual(roles_from_session_jwt(None), [])


class StytchClientTestCase(TestCase):

    def test_base_url_follows_project_environment(self):
        self.assertEqual(StytchClient("project-test-123", "s").base_url, "https://test.stytch.com/v1")
        self.assertEqual(StytchClient("project-live-123", "s").base_url, "https://api.stytch.com/v1")

    def test_authenticate_session_posts_token_and_duration(self):
        client = StytchClient("project-test-123", "secret")
        with patch.object(client.http, "post", return_value=MockHTTPResponse(200, {"session_jwt": "x"})) as post:
            response = client.authenticate_session("tok", 1440)

        self.assertEqual(response, {"session_jwt": "x"})
        args, kwargs = post.call_args
        self.assertEqual(args[0], "https://test.stytch.com/v1/sessions/authenticate")
        self.assertEqual(kwargs["json"], {"session_token": "tok", "session_duration_minutes": 1440})

    def test_network_failure_is_provider_unreachable(self):
        client = StytchClient("project-test-123", "secret")
        with patch.object(client.http, "post", side_effect=requests.ConnectionError("down")):
            with self.assertRaises(ProviderUnreachable) as ctx:
                client.revoke_session("tok")

        self.assertEqual(ctx.exception.code, "provider_unreachable")
        self.assertEqual(ctx.exception.public_code, "invalid_or_expired_credential")

    def test_client_error_is_invalid_credential(self):
        client = StytchClient("project-test-123", "secret")
        response = MockHTTPResponse(404, {"error_message": "Session not found."})
        with patch.object(client.http, "post", return_value=response):
            with self.assertRaises(InvalidOrExpiredCredential) as ctx:
                client.authenticate_session("tok", 1440)

        self.assertEqual(str(ctx.exception), "Session not found.")
        self.assertNotIsInstance(ctx.exception, ProviderUnreachable)

    def test_server_error_is_provider_unreachable(self):
        client = StytchClient("project-test-123", "secret")
        with patch.object(client.http, "post", return_value=MockHTTPResponse(503)):
            with self.assertRaises(ProviderUnreachable):
                client.authenticate_session("tok", 1440)


class AuthenticateAdminTestCase(TestCase):

    def setUp(self):
        self.identity = MockIdentityClient()

    def test_admin_token_is_accepted_and_extended(self):
        response = authenticate_admin(ADMIN_TOKEN, client=self.identity)
        self.assertEqual(response["session_token"], ADMIN_TOKEN)
        self.assertEqual(self.identity.authenticated, [(ADMIN_TOKEN, 60 * 24)])

    def test_missing_token(self):
        with self.assertRaises(MissingCredential):
            authenticate_admin(None, client=self.identity)
        self.assertEqual(self.identity.authenticated, [])

    def test_token_without_admin_role(self):
        with self.assertRaises(UnauthorizedRole):
            authenticate_admin(VIEWER_TOKEN, client=self.identity)

    def test_admin_role_override_from_app_settings(self):
        AppSettings.objects.create(admin_role="stytch_member")
        authenticate_admin(VIEWER_TOKEN, client=self.identity)
        with self.assertRaises(UnauthorizedRole):
            authenticate_admin(ADMIN_TOKEN, client=self.identity)


class AdminGateTestCase(TestCase):

    def setUp(self):
        self.identity = MockIdentityClient()
        patcher = use_identity_client(self.identity)
        patcher.start()
        self.addCleanup(patcher.stop)

    def test_admin_api_without_cookie_never_reaches_view(self):
        response = self.client.get("/api/quizzes")

        self.assertEqual(response.status_code, 401)
        self.assertEqual(response.json(), {"error": "Authentication required", "code": "missing_credential"})
        self.assertEqual(self.identity.authenticated, [])

    def test_admin_page_without_cookie_redirects_to_login(self):
        response = self.client.get("/admin/")
        self.assertEqual(response.status_code, 302)
        self.assertEqual(response.url, "/admin/login/")

    def test_login_page_is_open(self):
        response = self.client.get("/admin/login/")
        self.assertEqual(response.status_code, 200)

    def test_public_api_is_not_gated(self):
        response = self.client.post("/api/users/lead", data=json.dumps({}), content_type="application/json")
        self.assertEqual(response.status_code, 400)

    def test_viewer_cookie_rejected_on_api(self):
        self.client.cookies[settings.ADMIN_SESSION_COOKIE_NAME] = VIEWER_TOKEN
        response = self.client.get("/api/quizzes")
        self.assertEqual(response.status_code, 401)
        self.assertEqual(response.json()["code"], "unauthorized_role")
        # Only the page path revokes
        self.assertEqual(self.identity.revoked, [])

    def test_expired_cookie_rejected_on_api(self):
        self.client.cookies[settings.ADMIN_SESSION_COOKIE_NAME] = "expired"
        response = self.client.get("/api/quizzes")
        self.assertEqual(response.status_code, 401)
        self.assertEqual(response.json()["code"], "invalid_or_expired_credential")

    def test_unreachable_provider_reported_as_invalid_credential(self):
        self.identity.session_error = ProviderUnreachable("timeout")
        self.client.cookies[settings.ADMIN_SESSION_COOKIE_NAME] = ADMIN_TOKEN
        response = self.client.get("/api/quizzes")
        self.assertEqual(response.status_code, 401)
        self.assertEqual(response.json()["code"], "invalid_or_expired_credential")

    def test_admin_cookie_reaches_view(self):
        self.client.cookies[settings.ADMIN_SESSION_COOKIE_NAME] = ADMIN_TOKEN
        response = self.client.get("/api/quizzes")
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json(), [])


class LeadCaptureTestCase(TestCase):

    @classmethod
    def setUpTestData(cls):
        cls.existing = QuizUser.objects.create(email="jane@example.com", name="Jane Doe")

    def post_lead(self, body):
        return self.client.post("/api/users/lead", data=json.dumps(body), content_type="application/json")

    def test_new_lead_creates_user(self):
        response = self.post_lead({"firstName": " Sam ", "lastName": "Smith", "email": " Sam@Example.com "})
        self.assertEqual(response.status_code, 201)
        user = QuizUser.objects.get(pk=response.json()["user_id"])
        self.assertEqual(user.email, "sam@example.com")
        self.assertEqual(user.name, "Sam Smith")

    def test_existing_email_matched_case_insensitively(self):
        response = self.post_lead({"firstName": "Janet", "lastName": "Doe", "email": "JANE@example.com"})
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json(), {"user_id": LeadCaptureTestCase.existing.pk})
        self.assertEqual(QuizUser.objects.filter(email__iexact="jane@example.com").count(), 1)

        user = QuizUser.objects.get(pk=LeadCaptureTestCase.existing.pk)
        self.assertEqual(user.name, "Janet Doe")
        self.assertEqual(user.email, "jane@example.com")

    def test_missing_fields(self):
        response = self.post_lead({"firstName": "Sam", "email": "sam@example.com"})
        self.assertEqual(response.status_code, 400)
        self.assertEqual(response.json()["error"], "First name, last name, and email are required")

    def test_invalid_json(self):
        response = self.client.post("/api/users/lead", data="{not json", content_type="application/json")
        self.assertEqual(response.status_code, 400)
        self.assertEqual(response.json(), {"error": "Invalid JSON"})


class TakerOAuthTestCase(TestCase):

    def use_identity(self, **kwargs):
        identity = MockIdentityClient(**kwargs)
        patcher = use_identity_client(identity)
        patcher.start()
        self.addCleanup(patcher.stop)
        return identity

    def test_no_token(self):
        self.use_identity()
        response = self.client.get("/api/auth/callback")
        self.assertEqual(response.status_code, 302)
        self.assertEqual(response.url, "/auth-error?error=no_token")

    def test_invalid_token_type(self):
        self.use_identity()
        response = self.client.get("/api/auth/callback", {"token": "t", "stytch_token_type": "magic_links"})
        self.assertEqual(response.url, "/auth-error?error=invalid_token_type")

    def test_provider_failure(self):
        self.use_identity(oauth_error=InvalidOrExpiredCredential("bad token"))
        response = self.client.get("/api/auth/callback", {"token": "t", "stytch_token_type": "oauth"})
        self.assertEqual(response.url, "/auth-error?error=auth_failed")

    def test_callback_creates_user_and_returns_to_session(self):
        self.use_identity(oauth_response=oauth_user_payload)
        response = self.client.get("/api/auth/callback",
                                   {"token": "t", "stytch_token_type": "oauth", "session_id": "42"})

        user = QuizUser.objects.get(stytch_user_id="user-test-abc")
        self.assertEqual(user.email, "taker@example.com")
        self.assertEqual(user.name, "Ada Lovelace")
        self.assertEqual(user.google_id, "google-123")
        self.assertEqual(response.status_code, 302)
        self.assertEqual(response.url, f"/auth-complete?user_id={user.pk}&session_id=42")

    def test_callback_refreshes_existing_user(self):
        existing = QuizUser.objects.create(stytch_user_id="user-test-abc", email="old@example.com", name="Old")
        self.use_identity(oauth_response=oauth_user_payload)
        response = self.client.get("/api/auth/callback", {"token": "t", "stytch_token_type": "oauth"})

        self.assertEqual(response.url, "/")
        existing.refresh_from_db()
        self.assertEqual(existing.email, "taker@example.com")
        self.assertEqual(QuizUser.objects.count(), 1)

    def test_exchange(self):
        self.use_identity(oauth_response=oauth_user_payload)
        response = self.client.post("/api/auth/exchange", data=json.dumps({"token": "t"}),
                                    content_type="application/json")
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json()["user_id"], QuizUser.objects.get(stytch_user_id="user-test-abc").pk)

    def test_exchange_requires_token(self):
        self.use_identity()
        response = self.client.post("/api/auth/exchange", data=json.dumps({}), content_type="application/json")
        self.assertEqual(response.status_code, 400)

    def test_error_page_distinguishes_codes(self):
        response = self.client.get("/auth-error", {"error": "no_token"})
        self.assertContains(response, "No sign-in token was received.", status_code=400)
        response = self.client.get("/auth-error", {"error": "invalid_token_type"})
        self.assertContains(response, "The sign-in token type is not supported.", status_code=400)
        response = self.client.get("/auth-error", {"error": "whatever"})
        self.assertContains(response, "Authentication failed.", status_code=400)


class AppSettingsTestCase(AdminClientMixin, TestCase):

    def patch_settings(self, body):
        return self.client.patch("/api/app-settings", data=json.dumps(body), content_type="application/json")

    def test_get_without_row(self):
        response = self.client.get("/api/app-settings")
        self.assertEqual(response.status_code, 404)

    def test_patch_creates_and_partially_updates(self):
        response = self.patch_settings({"notify_admin": True, "admin_notification_email": "ops@example.com"})
        self.assertEqual(response.status_code, 200)
        self.assertTrue(response.json()["notify_admin"])

        response = self.patch_settings({"email_from_name": "Acme Quizzes"})
        self.assertEqual(response.status_code, 200)
        data = response.json()
        self.assertEqual(data["email_from_name"], "Acme Quizzes")
        self.assertEqual(data["admin_notification_email"], "ops@example.com")
        self.assertEqual(AppSettings.objects.count(), 1)

    def test_patch_blank_email_clears_it(self):
        AppSettings.objects.create(admin_notification_email="ops@example.com")
        response = self.patch_settings({"admin_notification_email": ""})
        self.assertIsNone(response.json()["admin_notification_email"])

    def test_patch_rejects_bad_email(self):
        response = self.patch_settings({"admin_notification_email": "not-an-email"})
        self.assertEqual(response.status_code, 400)
        self.assertIn("admin_notification_email", response.json()["form_errors"])

    @override_settings(NOTIFY_ADMIN=False, ADMIN_NOTIFICATION_EMAIL="env@example.com",
                       RESULT_EMAIL_FROM_NAME="Env Name", RESULT_EMAIL_FROM_ADDRESS="env@example.com")
    def test_effective_settings_overlay(self):
        effective = get_effective_settings()
        self.assertFalse(effective.notify_admin)
        self.assertEqual(effective.admin_notification_email, "env@example.com")

        AppSettings.objects.create(notify_admin=True, email_from_name="Row Name")
        effective = get_effective_settings()
        self.assertTrue(effective.notify_admin)
        self.assertEqual(effective.admin_notification_email, "env@example.com")
        self.assertEqual(effective.from_header, "Row Name <env@example.com>")


class SendSesEmailTestCase(TestCase):

    @patch("accounts.tasks.get_ses_client")
    def test_sends_html_and_text(self, get_client):
        ses = MagicMock()
        ses.send_email.return_value = {"MessageId": "abc"}
        get_client.return_value = ses

        message_id = send_ses_email(to_email=["a@example.com"], subject="Hi", body_text="text",
                                    body_html="<p>html</p>", from_email="Quiz <q@example.com>")

        self.assertEqual(message_id, "abc")
        kwargs = ses.send_email.call_args.kwargs
        self.assertEqual(kwargs["Source"], "Quiz <q@example.com>")
        self.assertEqual(kwargs["Destination"], {"ToAddresses": ["a@example.com"]})
        self.assertEqual(kwargs["Message"]["Body"]["Html"]["Data"], "<p>html</p>")
        self.assertNotIn("Tags", kwargs)

    @patch("accounts.tasks.get_ses_client")
    def test_tags_passed_to_ses(self, get_client):
        ses = MagicMock()
        ses.send_email.return_value = {"MessageId": "abc"}
        get_client.return_value = ses

        send_ses_email(to_email=["a@example.com"], subject="Hi", body_text="text",
                       tags={"email_type": "result", "quiz": "leadership"})

        self.assertEqual(ses.send_email.call_args.kwargs["Tags"], [
            {"Name": "email_type", "Value": "result"},
            {"Name": "quiz", "Value": "leadership"},
        ])

    @patch("accounts.tasks.get_ses_client")
    def test_client_error_is_raised(self, get_client):
        ses = MagicMock()
        ses.send_email.side_effect = ClientError({"Error": {"Code": "MessageRejected", "Message": "no"}},
                                                 "SendEmail")
        get_client.return_value = ses

        with self.assertRaises(ClientError):
            send_ses_email(to_email=["a@example.com"], subject="Hi", body_text="text")

    @patch("accounts.tasks.get_ses_client", return_value=None)
    def test_missing_client(self, get_client):
        with self.assertRaises(EmailClientUnavailable):
            send_ses_email(to_email=["a@example.com"], subject="Hi", body_text="text")


class SesClientTestCase(TestCase):

    @override_settings(DJANGO_ENV="DEVELOPMENT", AWS_ACCESS_KEY="", AWS_SECRET_ACCESS_KEY="")
    def test_no_keys_in_development(self):
        self.assertIsNone(get_ses_client())

    @override_settings(DJANGO_ENV="DEVELOPMENT", AWS_ACCESS_KEY="key", AWS_SECRET_ACCESS_KEY="secret",
                       AWS_REGION="eu-west-2", AWS_SES_ENDPOINT_URL="")
    @patch("accounts.utils.boto3.client")
    def test_access_keys_used_in_development(self, boto_client):
        self.assertEqual(get_ses_client(), boto_client.return_value)
        boto_client.assert_called_once_with("ses", aws_access_key_id="key", aws_secret_access_key="secret",
                                            region_name="eu-west-2")

    @override_settings(DJANGO_ENV="PRODUCTION", AWS_REGION="us-east-1", AWS_SES_ENDPOINT_URL="")
    @patch("accounts.utils.boto3.client")
    def test_instance_role_outside_development(self, boto_client):
        get_ses_client()
        boto_client.assert_called_once_with("ses", region_name="us-east-1")


class IdentityClientLifecycleTestCase(TestCase):

    def test_ready_builds_client_and_registers_teardown(self):
        config = apps.get_app_config("accounts")

        with patch.object(config, "identity_client"), patch("accounts.apps.atexit.register") as register:
            config.ready()
            self.assertIsInstance(config.identity_client, StytchClient)
            register.assert_called_once_with(config.close_identity_client)

            with patch.object(config.identity_client, "close") as close:
                config.close_identity_client()
            close.assert_called_once_with()
