"""Test doubles for the identity provider, shared by the app test suites."""
from unittest.mock import patch

import jwt
from django.apps import apps
from django.conf import settings

from accounts.identity import InvalidOrExpiredCredential, SESSION_CLAIM

ADMIN_TOKEN = "admin-session-token"
VIEWER_TOKEN = "viewer-session-token"


def make_session_jwt(roles):
    return jwt.encode({"sub": "user-test-1", SESSION_CLAIM: {"roles": roles}}, "test-signing-key-for-session-jwt-claims", algorithm="HS256")


class MockIdentityClient:
    """
    Accepts ADMIN_TOKEN (admin role) and VIEWER_TOKEN (no admin role); any
    other session token is treated as expired.
    """

    def __init__(self, oauth_response=None, oauth_error=None, session_error=None, revoke_error=None):
        self.oauth_response = oauth_response
        self.oauth_error = oauth_error
        self.session_error = session_error
        self.revoke_error = revoke_error
        self.revoked = []
        self.authenticated = []

    def oauth_authenticate(self, token, session_duration_minutes):
        if self.oauth_error:
            raise self.oauth_error
        return self.oauth_response

    def authenticate_session(self, session_token, session_duration_minutes):
        self.authenticated.append((session_token, session_duration_minutes))
        if self.session_error:
            raise self.session_error
        if session_token == ADMIN_TOKEN:
            return {"session_token": ADMIN_TOKEN, "session_jwt": make_session_jwt([settings.STYTCH_ADMIN_ROLE])}
        if session_token == VIEWER_TOKEN:
            return {"session_token": VIEWER_TOKEN, "session_jwt": make_session_jwt(["stytch_member"])}
        raise InvalidOrExpiredCredential("Session expired")

    def revoke_session(self, session_token):
        self.revoked.append(session_token)
        if self.revoke_error:
            raise self.revoke_error
        return {"status_code": 200}

    def close(self):
        pass


def use_identity_client(client):
    """Swap the process-wide identity client for the duration of a test."""
    return patch.object(apps.get_app_config("accounts"), "identity_client", client)


class AdminClientMixin:
    """Gives a TestCase an identity double and a Client holding an admin cookie."""

    def setUp(self):
        super().setUp()
        self.identity = MockIdentityClient()
        patcher = use_identity_client(self.identity)
        patcher.start()
        self.addCleanup(patcher.stop)
        self.client.cookies[settings.ADMIN_SESSION_COOKIE_NAME] = ADMIN_TOKEN
