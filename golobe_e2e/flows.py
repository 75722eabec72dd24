"""Reusable flows composed from interaction primitives.

Flows are the named preconditions scenarios share (log in, dismiss the
consent banner, switch locale ...). They are idempotent with respect to
state that is already satisfied: authenticating an authenticated page is a
no-op, dismissing an absent banner is a no-op.
"""
from __future__ import annotations

import logging
import secrets
from dataclasses import dataclass
from typing import Optional
from urllib.parse import urljoin, urlsplit

from golobe_e2e.config import Credentials, settings
from golobe_e2e.contract import AppPage, locale_path, selectors
from golobe_e2e.errors import AuthFlowError
from golobe_e2e.interaction import (
    Action,
    act,
    act_if_present,
    locate,
    navigate,
    read_input_value,
    read_text,
    try_locate,
    wait_until,
)
from golobe_e2e.probes import AuthState, ThemeMode, read_auth_state, read_locale, read_theme
from golobe_e2e.session import PageHandle

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class AuthOutcome:
    """Post-submit state of a login attempt."""

    state: AuthState
    error_message: Optional[str] = None
    already_authenticated: bool = False

    @property
    def authenticated(self) -> bool:
        return self.state is AuthState.AUTHENTICATED


@dataclass
class SignupProfile:
    email: str
    password: str
    first_name: str = "Test"
    last_name: str = "User"


def generate_signup_profile(prefix: str = "e2e-user") -> SignupProfile:
    suffix = secrets.token_hex(4)
    return SignupProfile(email=f"{prefix}-{suffix}@example.com", password=f"Test@Password{suffix}")


def _on_path(handle: PageHandle, path: str) -> bool:
    return urlsplit(handle.url).path.rstrip("/").endswith(path.rstrip("/"))


# ---- consent -------------------------------------------------------------------

async def dismiss_consent_if_present(handle: PageHandle, within_ms: Optional[int] = None) -> bool:
    """Accept the cookie banner if it is showing. Never fails on absence.

    Returns True if the banner was dismissed by this call.
    """
    budget = settings.timeouts.probe_ms if within_ms is None else within_ms
    if not await act_if_present(handle, selectors().get("consent_accept"), Action.CLICK, within_ms=budget):
        logger.debug("No consent banner on %s", handle.url)
        return False
    banner = selectors().get("consent_banner")

    async def _gone() -> bool:
        return not await try_locate(handle, banner, within_ms=50)

    await wait_until(_gone, within_ms=budget)
    logger.debug("Consent banner dismissed")
    return True


# ---- authentication ------------------------------------------------------------

async def _login_outcome(handle: PageHandle) -> Optional[AuthOutcome]:
    if await read_auth_state(handle) is AuthState.AUTHENTICATED:
        return AuthOutcome(AuthState.AUTHENTICATED)
    message = await read_text(handle, selectors().get("auth_error"), within_ms=100)
    if message:
        return AuthOutcome(AuthState.ANONYMOUS, error_message=message)
    return None


async def authenticate(handle: PageHandle, credentials: Credentials, budget_ms: Optional[int] = None) -> AuthOutcome:
    """Log in with ``credentials`` through the sign-in form.

    Already authenticated: returns at once, without touching the page.
    Otherwise returns ``Authenticated``, or ``Anonymous`` together with the
    error message the application surfaced. Raises ``AuthFlowError`` when
    neither shows up within ``budget_ms``.
    """
    if await read_auth_state(handle) is AuthState.AUTHENTICATED:
        logger.debug("Already authenticated on %s, skipping login", handle.url)
        return AuthOutcome(AuthState.AUTHENTICATED, already_authenticated=True)
    if not credentials.is_complete:
        raise AuthFlowError("No test account configured (TEST_USER_EMAIL / TEST_USER_PASSWORD)", url=handle.url)

    budget = budget_ms or settings.timeouts.action_ms * 2
    if not _on_path(handle, AppPage.LOGIN):
        await navigate(handle, settings.url(AppPage.LOGIN))
        if await read_auth_state(handle) is AuthState.AUTHENTICATED:
            logger.debug("Login page redirected an existing session")
            return AuthOutcome(AuthState.AUTHENTICATED, already_authenticated=True)
    await dismiss_consent_if_present(handle)

    logger.info("Logging in as %s", credentials.email)
    await act(handle, selectors().get("sign_in_email"), Action.FILL, credentials.email, settle_after=False)
    await act(handle, selectors().get("sign_in_password"), Action.FILL, credentials.password, settle_after=False)
    await act(handle, selectors().get("submit"), Action.CLICK)

    outcome = await wait_until(lambda: _login_outcome(handle), within_ms=budget, interval_ms=250)
    if outcome is None:
        raise AuthFlowError(
            f"Login submit produced neither an authenticated state nor an error message within {budget}ms",
            url=handle.url,
        )
    if outcome.authenticated:
        logger.info("Authenticated as %s", credentials.email)
    else:
        logger.info("Login rejected: %s", outcome.error_message)
    return outcome


async def require_authenticated(handle: PageHandle, credentials: Credentials) -> AuthOutcome:
    """Precondition form of ``authenticate``: a rejected login is a failure."""
    outcome = await authenticate(handle, credentials)
    if not outcome.authenticated:
        raise AuthFlowError("Login rejected", url=handle.url, error_message=outcome.error_message)
    return outcome


async def login_with_test_oauth(handle: PageHandle, budget_ms: Optional[int] = None) -> AuthState:
    """Sign in through the test-local OAuth provider button."""
    if not _on_path(handle, AppPage.LOGIN):
        await navigate(handle, settings.url(AppPage.LOGIN))
    await dismiss_consent_if_present(handle)
    await act(handle, selectors().get("oauth_test_local"), Action.CLICK)

    async def _authenticated() -> bool:
        return await read_auth_state(handle) is AuthState.AUTHENTICATED

    await wait_until(_authenticated, within_ms=budget_ms or settings.timeouts.action_ms * 2, interval_ms=250)
    return await read_auth_state(handle)


async def logout(handle: PageHandle) -> AuthState:
    """Sign out through the user menu and wait for the anonymous state."""
    await act(handle, selectors().get("auth_user_menu"), Action.CLICK)
    await act(handle, selectors().get("logout"), Action.CLICK)

    async def _anonymous() -> bool:
        return await read_auth_state(handle) is AuthState.ANONYMOUS

    await wait_until(_anonymous, within_ms=settings.timeouts.action_ms, interval_ms=250)
    return await read_auth_state(handle)


async def sign_up(handle: PageHandle, profile: SignupProfile) -> str:
    """Submit the signup form; returns the URL the application landed on."""
    await navigate(handle, settings.url(AppPage.SIGNUP))
    await dismiss_consent_if_present(handle)
    await act(handle, selectors().get("signup_email"), Action.FILL, profile.email, settle_after=False)
    await act(handle, selectors().get("signup_password"), Action.FILL, profile.password, settle_after=False)
    await act(handle, selectors().get("signup_first_name"), Action.FILL, profile.first_name, settle_after=False)
    await act(handle, selectors().get("signup_last_name"), Action.FILL, profile.last_name, settle_after=False)
    await act(handle, selectors().get("submit"), Action.CLICK)

    async def _verify_page() -> bool:
        return AppPage.SIGNUP_VERIFY in handle.url

    await wait_until(_verify_page, within_ms=settings.timeouts.action_ms * 2)
    return handle.url


async def request_password_reset(handle: PageHandle, email: str) -> str:
    """Submit the forgot-password form; returns the URL the application landed on."""
    await navigate(handle, settings.url(AppPage.FORGOT_PASSWORD))
    await dismiss_consent_if_present(handle)
    await act(handle, selectors().get("reset_email"), Action.FILL, email, settle_after=False)
    await act(handle, selectors().get("submit"), Action.CLICK)

    async def _verify_page() -> bool:
        return AppPage.FORGOT_PASSWORD_VERIFY in handle.url

    await wait_until(_verify_page, within_ms=settings.timeouts.action_ms * 2)
    return handle.url


# ---- presentation state --------------------------------------------------------

async def toggle_theme(handle: PageHandle) -> ThemeMode:
    """Click the theme toggle once; returns the theme read afterwards."""
    before = await read_theme(handle)
    await act(handle, selectors().get("theme_toggle"), Action.CLICK)

    async def _switched() -> bool:
        return await read_theme(handle) is not before

    # An UNKNOWN theme cannot show a change; the read below still reports it.
    if before is not ThemeMode.UNKNOWN:
        await wait_until(_switched, within_ms=settings.timeouts.action_ms, interval_ms=200)
    return await read_theme(handle)


async def open_locale(handle: PageHandle, code: str, path: str = AppPage.INDEX) -> str:
    """Navigate straight to ``path`` in locale ``code``; returns the locale read there."""
    await navigate(handle, settings.url(locale_path(path, code)))
    return await read_locale(handle)


async def switch_locale(handle: PageHandle, code: str) -> str:
    """Pick ``code`` in the locale toggler; returns the locale read afterwards."""
    await act(handle, selectors().get("locale_toggler"), Action.CLICK)
    await act(handle, selectors().get("locale_option", code=code), Action.CLICK)

    async def _switched() -> bool:
        return await read_locale(handle) == code

    await wait_until(_switched, within_ms=settings.timeouts.action_ms, interval_ms=250)
    return await read_locale(handle)


# ---- search and booking --------------------------------------------------------

async def search_flights(handle: PageHandle, from_city: str, to_city: str) -> None:
    await navigate(handle, settings.url(AppPage.FIND_FLIGHTS))
    await dismiss_consent_if_present(handle)
    await act(handle, selectors().get("flight_from"), Action.FILL, from_city, settle_after=False)
    await act(handle, selectors().get("flight_to"), Action.FILL, to_city)


async def search_stays(handle: PageHandle, location: str) -> None:
    await navigate(handle, settings.url(AppPage.FIND_STAYS))
    await dismiss_consent_if_present(handle)
    await act(handle, selectors().get("stay_location"), Action.FILL, location)


async def select_stay_type(handle: PageHandle, kind: str) -> str:
    """Click the hotels / motels / resorts filter."""
    return await act(handle, selectors().get("stay_type_filter", label=kind.title(), value=kind.lower()), Action.CLICK)


async def open_first_offer(handle: PageHandle, link_selector: str, fallback_path: str) -> str:
    """Follow the first offer link, or go to ``fallback_path`` when the list is empty."""
    found = await locate(handle, selectors().get(link_selector), settings.timeouts.probe_ms)
    href = None
    if found is not None:
        href = await handle.driver.read_attribute(found[1], "href")
    if href:
        target = urljoin(settings.url("/"), href)
    else:
        logger.warning("No %s on %s, using %s", link_selector, handle.url, fallback_path)
        target = settings.url(fallback_path)
    await navigate(handle, target)
    return handle.url


async def start_booking(handle: PageHandle) -> str:
    await act(handle, selectors().get("book_button"), Action.CLICK)
    return handle.url


async def fill_traveller(handle: PageHandle, first_name: str, last_name: str) -> None:
    await act(handle, selectors().get("traveller_first_name"), Action.FILL, first_name, settle_after=False)
    await act(handle, selectors().get("traveller_last_name"), Action.FILL, last_name)


async def add_review(handle: PageHandle, text: str) -> None:
    await act(handle, selectors().get("add_review"), Action.CLICK)
    await act(handle, selectors().get("review_text"), Action.FILL, text)


# ---- account -------------------------------------------------------------------

async def open_account_tab(handle: PageHandle, label: str) -> str:
    return await act(handle, selectors().get("account_tab", label=label), Action.CLICK)


async def edit_profile_name(handle: PageHandle, suffix: str = " Updated") -> str:
    """Append ``suffix`` to the profile name and save; returns the new value."""
    await act_if_present(handle, selectors().get("profile_edit"), Action.CLICK)
    current = await read_input_value(handle, selectors().get("profile_name")) or ""
    updated = f"{current}{suffix}".strip()
    await act(handle, selectors().get("profile_name"), Action.FILL, updated, settle_after=False)
    await act(handle, selectors().get("profile_save"), Action.CLICK)
    return updated
