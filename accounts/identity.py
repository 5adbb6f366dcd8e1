import logging

import jwt
import requests
from django.apps import apps
from django.conf import settings

from accounts.app_settings import get_effective_settings

logger = logging.getLogger("quiz_funnel")

SESSION_CLAIM = "https://stytch.com/session"


class AdminAuthError(Exception):
    code = "invalid_or_expired_credential"

    @property
    def public_code(self):
        return self.code


class MissingCredential(AdminAuthError):
    code = "missing_credential"


class InvalidOrExpiredCredential(AdminAuthError):
    code = "invalid_or_expired_credential"


class ProviderUnreachable(InvalidOrExpiredCredential):
    code = "provider_unreachable"

    @property
    def public_code(self):
        # Users see a plain invalid credential, logs keep the distinction
        return InvalidOrExpiredCredential.code


class UnauthorizedRole(AdminAuthError):
    code = "unauthorized_role"


def roles_from_session_jwt(session_jwt):
    """
    Read the role list out of a provider session JWT.

    The token has already been validated by the provider's authenticate call,
    so the signature is not checked here. Any decode problem or missing claim
    means no roles.
    """
    if not session_jwt:
        return []

    try:
        payload = jwt.decode(session_jwt, options={"verify_signature": False})
    except jwt.PyJWTError as e:
        logger.warning(f"Unable to decode session JWT: {e}")
        return []

    claim = payload.get(SESSION_CLAIM)
    if not isinstance(claim, dict):
        return []

    roles = claim.get("roles") or []
    if not isinstance(roles, list):
        return []

    return [role for role in roles if isinstance(role, str)]


class StytchClient:
    """Thin client for the Stytch consumer REST API."""

    def __init__(self, project_id, secret, timeout=10):
        self.project_id = project_id
        if "-test-" in project_id:
            self.base_url = "https://test.stytch.com/v1"
        else:
            self.base_url = "https://api.stytch.com/v1"
        self.timeout = timeout
        self.http = requests.Session()
        self.http.auth = (project_id, secret)

    @classmethod
    def from_settings(cls):
        return cls(
            project_id=settings.STYTCH_PROJECT_ID,
            secret=settings.STYTCH_SECRET,
            timeout=settings.STYTCH_TIMEOUT,
        )

    def close(self):
        self.http.close()

    def _post(self, path, payload):
        try:
            response = self.http.post(f"{self.base_url}{path}", json=payload, timeout=self.timeout)
        except requests.RequestException as e:
            logger.error(f"Identity provider unreachable on {path}: {e}")
            raise ProviderUnreachable(str(e)) from e

        if response.status_code >= 500:
            logger.error(f"Identity provider error on {path}: {response.status_code}")
            raise ProviderUnreachable(f"Identity provider returned {response.status_code}")

        if response.status_code >= 400:
            try:
                message = response.json().get("error_message", response.text)
            except ValueError:
                message = response.text
            raise InvalidOrExpiredCredential(message)

        return response.json()

    def oauth_authenticate(self, token, session_duration_minutes):
        return self._post("/oauth/authenticate", {
            "token": token,
            "session_duration_minutes": session_duration_minutes,
        })

    def authenticate_session(self, session_token, session_duration_minutes):
        return self._post("/sessions/authenticate", {
            "session_token": session_token,
            "session_duration_minutes": session_duration_minutes,
        })

    def revoke_session(self, session_token):
        return self._post("/sessions/revoke", {"session_token": session_token})


def get_identity_client():
    return apps.get_app_config("accounts").identity_client


def revoke_quietly(client, session_token):
    """Best-effort revocation. Failures are logged and ignored."""
    if not session_token:
        return
    try:
        client.revoke_session(session_token)
    except AdminAuthError as e:
        logger.warning(f"Session revocation failed ({e.code}): {e}")


def require_admin_role(session_jwt):
    role = get_effective_settings().admin_role
    if role not in roles_from_session_jwt(session_jwt):
        raise UnauthorizedRole(f"Session does not carry the {role} role")


def authenticate_admin(session_token, client=None):
    """
    Authoritative admin check: validate the session token with the provider,
    extending it, and confirm the admin role claim. Returns the provider's
    response or raises an AdminAuthError subclass.
    """
    if not session_token:
        raise MissingCredential("No session credential")

    client = client or get_identity_client()
    response = client.authenticate_session(session_token, settings.ADMIN_SESSION_MINUTES)
    require_admin_role(response.get("session_jwt"))
    return response
