from django.conf import settings
from django.test import TestCase
from django.utils import timezone

from accounts.identity import InvalidOrExpiredCredential
from accounts.models import QuizUser
from accounts.testing import (
    ADMIN_TOKEN,
    VIEWER_TOKEN,
    AdminClientMixin,
    MockIdentityClient,
    make_session_jwt,
    use_identity_client,
)
from quiz.models import Quiz, QuizResult
from quiz_sessions.models import QuizSession, SessionResult

COOKIE = settings.ADMIN_SESSION_COOKIE_NAME


class AdminSignInTestCase(TestCase):

    def use_identity(self, **kwargs):
        identity = MockIdentityClient(**kwargs)
        patcher = use_identity_client(identity)
        patcher.start()
        self.addCleanup(patcher.stop)
        return identity

    def callback(self):
        return self.client.get("/admin/auth/callback", {"token": "oauth-token", "stytch_token_type": "oauth"})

    def test_admin_sign_in_sets_cookie(self):
        self.use_identity(oauth_response={
            "session_token": ADMIN_TOKEN,
            "session_jwt": make_session_jwt([settings.STYTCH_ADMIN_ROLE]),
        })
        response = self.callback()

        self.assertEqual(response.status_code, 302)
        self.assertEqual(response.url, "/admin/")
        cookie = response.cookies[COOKIE]
        self.assertEqual(cookie.value, ADMIN_TOKEN)
        self.assertTrue(cookie["httponly"])
        self.assertEqual(cookie["samesite"], "Lax")
        self.assertEqual(cookie["max-age"], settings.ADMIN_SESSION_MINUTES * 60)

    def test_sign_in_without_role_revokes(self):
        identity = self.use_identity(oauth_response={
            "session_token": VIEWER_TOKEN,
            "session_jwt": make_session_jwt(["stytch_member"]),
        })
        response = self.callback()

        self.assertEqual(response.url, "/admin/login/?error=unauthorized")
        self.assertEqual(identity.revoked, [VIEWER_TOKEN])
        self.assertNotIn(COOKIE, response.cookies)

    def test_revoke_failure_still_redirects(self):
        self.use_identity(
            oauth_response={"session_token": VIEWER_TOKEN, "session_jwt": "garbage"},
            revoke_error=InvalidOrExpiredCredential("already gone"),
        )
        response = self.callback()
        self.assertEqual(response.url, "/admin/login/?error=unauthorized")

    def test_provider_rejects_token(self):
        self.use_identity(oauth_error=InvalidOrExpiredCredential("bad"))
        response = self.callback()
        self.assertEqual(response.url, "/admin/login/?error=auth_failed")

    def test_wrong_token_type(self):
        self.use_identity()
        response = self.client.get("/admin/auth/callback", {"token": "t", "stytch_token_type": "magic_links"})
        self.assertEqual(response.url, "/admin/login/?error=auth_failed")

    def test_login_page_shows_error(self):
        response = self.client.get("/admin/login/", {"error": "unauthorized"})
        self.assertContains(response, "does not have admin access")

    def test_logout_revokes_and_clears_cookie(self):
        identity = self.use_identity()
        self.client.cookies[COOKIE] = ADMIN_TOKEN

        response = self.client.post("/admin/auth/logout")

        self.assertEqual(response.status_code, 303)
        self.assertEqual(response.url, "/admin/login/")
        self.assertEqual(identity.revoked, [ADMIN_TOKEN])
        self.assertEqual(response.cookies[COOKIE].value, "")


class AdminPageGateTestCase(TestCase):

    def setUp(self):
        self.identity = MockIdentityClient()
        patcher = use_identity_client(self.identity)
        patcher.start()
        self.addCleanup(patcher.stop)

    def test_viewer_session_revoked_then_redirected(self):
        self.client.cookies[COOKIE] = VIEWER_TOKEN
        response = self.client.get("/admin/leads/")

        self.assertEqual(response.status_code, 302)
        self.assertEqual(response.url, "/admin/login/?error=unauthorized")
        self.assertEqual(self.identity.revoked, [VIEWER_TOKEN])

    def test_expired_session_redirected_without_revoke(self):
        self.client.cookies[COOKIE] = "expired-token"
        response = self.client.get("/admin/")

        self.assertEqual(response.url, "/admin/login/?error=auth_failed")
        self.assertEqual(self.identity.revoked, [])


class AdminPagesTestCase(AdminClientMixin, TestCase):

    @classmethod
    def setUpTestData(cls):
        cls.quiz = Quiz.objects.create(title="Leadership Quiz", slug="leadership")
        result = QuizResult.objects.create(quiz=cls.quiz, title="Leader", is_lead=True)
        user = QuizUser.objects.create(email="taker@example.com", name="Taker")
        session = QuizSession.objects.create(quiz=cls.quiz, user=user, status="completed", is_lead=True,
                                             lead_score=2, entered_at=timezone.now(), completed_at=timezone.now())
        SessionResult.objects.create(session=session, result=result, score=2, is_primary=True)

    def test_dashboard_lists_quizzes(self):
        response = self.client.get("/admin/")
        self.assertContains(response, "Leadership Quiz")
        self.assertEqual(self.identity.authenticated, [(ADMIN_TOKEN, settings.ADMIN_SESSION_MINUTES)])

    def test_leads_page(self):
        response = self.client.get("/admin/leads/")
        self.assertContains(response, "taker@example.com")
        self.assertContains(response, "Leader")

    def test_analytics_page(self):
        response = self.client.get(f"/admin/quizzes/{self.quiz.pk}/analytics/")
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.context["analytics"]["funnel"]["completed"], 1)

    def test_analytics_page_missing_quiz(self):
        response = self.client.get("/admin/quizzes/999/analytics/")
        self.assertEqual(response.status_code, 404)
