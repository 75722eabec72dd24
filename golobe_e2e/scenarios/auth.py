"""Sign-up, sign-in, sign-out and password reset journeys."""
from __future__ import annotations

from typing import List

from golobe_e2e import flows, steps
from golobe_e2e.config import Credentials
from golobe_e2e.contract import AppPage
from golobe_e2e.probes import AuthState
from golobe_e2e.runner import Scenario, StepContext
from golobe_e2e.verification import Check, Delta

TAGS = frozenset({"auth"})


def signup() -> Scenario:
    async def _sign_up(ctx: StepContext) -> str:
        return await flows.sign_up(ctx.handle, flows.generate_signup_profile())

    return Scenario(
        "auth.signup",
        (
            steps.flow("submit signup form", _sign_up),
            steps.url_contains(AppPage.SIGNUP_VERIFY),
            steps.capture("signup-verify"),
        ),
        description="New user registration lands on the verification page",
        tags=TAGS | {"signup"},
    )


def login_valid() -> Scenario:
    return Scenario(
        "auth.login",
        (
            steps.navigate(AppPage.LOGIN),
            steps.dismiss_consent(),
            steps.login(),
            steps.probe("after_login"),
            steps.equals("auth state after login", "after_login", AuthState.AUTHENTICATED, attribute="auth"),
            steps.present("auth_user_menu"),
            steps.cookie_present(),
            steps.capture("logged-in"),
        ),
        description="Credentials login yields an authenticated session",
        tags=TAGS | {"authenticated"},
    )


def login_invalid_password() -> Scenario:
    async def _wrong_password(ctx: StepContext) -> flows.AuthOutcome:
        wrong = Credentials(email=ctx.credentials.email or "e2e-user@example.com", password="not-the-password-1!")
        return await flows.authenticate(ctx.handle, wrong)

    async def _error_surfaced(ctx: StepContext) -> Check:
        outcome = ctx.recall("outcome")
        return Check(
            label="login error surfaced",
            passed=bool(outcome.error_message),
            expected="non-empty error message",
            observed=outcome.error_message,
        )

    return Scenario(
        "auth.login-invalid-password",
        (
            steps.flow("submit wrong password", _wrong_password, into="outcome"),
            steps.equals("auth state after rejected login", "outcome", AuthState.ANONYMOUS, attribute="state"),
            steps.verify("error message shown", _error_surfaced),
            steps.capture("login-rejected"),
        ),
        description="An invalid password yields Anonymous plus the surfaced error, never a silent success",
        tags=TAGS,
    )


def login_test_oauth() -> Scenario:
    async def _oauth(ctx: StepContext) -> AuthState:
        return await flows.login_with_test_oauth(ctx.handle)

    return Scenario(
        "auth.login-oauth",
        (
            steps.flow("sign in with test OAuth provider", _oauth, into="auth_state"),
            steps.equals("auth state after OAuth", "auth_state", AuthState.AUTHENTICATED),
            steps.capture("oauth-logged-in"),
        ),
        description="Test-local OAuth provider signs the user in",
        tags=TAGS | {"oauth"},
    )


def forgot_password() -> Scenario:
    async def _reset(ctx: StepContext) -> str:
        return await flows.request_password_reset(ctx.handle, ctx.credentials.email or "e2e-user@example.com")

    return Scenario(
        "auth.forgot-password",
        (
            steps.flow("request password reset", _reset),
            steps.url_contains(AppPage.FORGOT_PASSWORD_VERIFY),
            steps.capture("forgot-password-verify"),
        ),
        description="Password reset request lands on the verification page",
        tags=TAGS,
    )


def logout() -> Scenario:
    async def _logout(ctx: StepContext) -> AuthState:
        return await flows.logout(ctx.handle)

    return Scenario(
        "auth.logout",
        (
            steps.login(),
            steps.probe("before"),
            steps.flow("sign out", _logout),
            steps.probe("after"),
            steps.changed("auth", "before", "after", Delta.to(AuthState.ANONYMOUS)),
            steps.present("sign_in_link"),
        ),
        description="Signing out returns the page to the anonymous state",
        tags=TAGS | {"authenticated"},
    )


def authenticate_idempotent() -> Scenario:
    async def _again(ctx: StepContext) -> flows.AuthOutcome:
        return await flows.authenticate(ctx.handle, ctx.credentials)

    return Scenario(
        "auth.authenticate-idempotent",
        (
            steps.login(),
            steps.flow("authenticate again", _again, into="second"),
            steps.equals("second authenticate is a no-op", "second", True, attribute="already_authenticated"),
            steps.probe("after"),
            steps.equals("still authenticated", "after", AuthState.AUTHENTICATED, attribute="auth"),
        ),
        description="Authenticating an authenticated page has no side effects",
        tags=TAGS | {"authenticated"},
    )


def scenarios() -> List[Scenario]:
    return [
        signup(),
        login_valid(),
        login_invalid_password(),
        login_test_oauth(),
        forgot_password(),
        logout(),
        authenticate_idempotent(),
    ]
