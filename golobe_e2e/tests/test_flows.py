"""Flow helpers against the mock app."""
import pytest

from golobe_e2e import flows
from golobe_e2e.config import Credentials, settings
from golobe_e2e.contract import selectors
from golobe_e2e.errors import AuthFlowError
from golobe_e2e.interaction import act, navigate, try_locate
from golobe_e2e.mock_app import CONSENT_COOKIE, LOGIN_ERROR
from golobe_e2e.probes import AuthState, ThemeMode, read_auth_state, read_locale, read_theme

pytestmark = pytest.mark.asyncio


class TestConsent:
    async def test_dismisses_banner_once(self, handle, app):
        await navigate(handle, settings.url("/"))
        assert await flows.dismiss_consent_if_present(handle) is True
        assert await try_locate(handle, selectors().get("consent_banner"), within_ms=50) is False
        assert CONSENT_COOKIE in app.drivers[-1].cookies
        assert await flows.dismiss_consent_if_present(handle) is False

    async def test_absent_banner_is_fine(self, handle, app):
        app.show_consent = False
        await navigate(handle, settings.url("/"))
        assert await flows.dismiss_consent_if_present(handle) is False


class TestAuthenticate:
    async def test_valid_credentials(self, handle, credentials):
        outcome = await flows.authenticate(handle, credentials)
        assert outcome.authenticated
        assert outcome.error_message is None
        assert await read_auth_state(handle) is AuthState.AUTHENTICATED

    async def test_idempotent_when_already_authenticated(self, handle, app, credentials):
        await flows.authenticate(handle, credentials)
        calls_before = len(app.drivers[-1].calls)
        url_before = handle.url

        second = await flows.authenticate(handle, credentials)

        assert second.authenticated
        assert second.already_authenticated
        assert app.login_submits == 1
        assert handle.url == url_before
        assert "click" not in app.drivers[-1].calls[calls_before:]
        assert "navigate" not in app.drivers[-1].calls[calls_before:]

    async def test_invalid_password_surfaces_error(self, handle, credentials):
        wrong = Credentials(email=credentials.email, password="wrong")
        outcome = await flows.authenticate(handle, wrong)
        assert outcome.state is AuthState.ANONYMOUS
        assert outcome.error_message == LOGIN_ERROR

    async def test_no_outcome_within_budget_raises(self, handle, app, credentials):
        app.login_behaviour = "silent"
        with pytest.raises(AuthFlowError) as excinfo:
            await flows.authenticate(handle, credentials, budget_ms=200)
        assert "neither" in str(excinfo.value)
        assert excinfo.value.url.endswith("/login")

    async def test_missing_credentials(self, handle):
        with pytest.raises(AuthFlowError):
            await flows.authenticate(handle, Credentials(email="", password=""))

    async def test_require_authenticated_rejects_surfaced_error(self, handle, credentials):
        with pytest.raises(AuthFlowError) as excinfo:
            await flows.require_authenticated(handle, Credentials(email=credentials.email, password="nope"))
        assert excinfo.value.error_message == LOGIN_ERROR
        assert excinfo.value.describe()["surfaced_error"] == LOGIN_ERROR

    async def test_logout(self, handle, credentials):
        await flows.require_authenticated(handle, credentials)
        assert await flows.logout(handle) is AuthState.ANONYMOUS

    async def test_oauth_login(self, handle):
        assert await flows.login_with_test_oauth(handle) is AuthState.AUTHENTICATED


class TestPresentation:
    async def test_theme_round_trip(self, handle):
        await navigate(handle, settings.url("/"))
        assert await read_theme(handle) is ThemeMode.LIGHT
        assert await flows.toggle_theme(handle) is ThemeMode.DARK
        assert await flows.toggle_theme(handle) is ThemeMode.LIGHT

    async def test_switch_locale_persists_to_next_page(self, handle):
        await navigate(handle, settings.url("/"))
        assert await read_locale(handle) == "en"
        assert await flows.switch_locale(handle, "fr") == "fr"
        assert "/fr" in handle.url
        await navigate(handle, settings.url("/flights"))
        assert await read_locale(handle) == "fr"

    async def test_open_locale(self, handle):
        assert await flows.open_locale(handle, "ru", "/stays") == "ru"
        assert handle.url.endswith("/ru/stays")


class TestBookingAndAccount:
    async def test_open_first_offer_follows_link(self, handle):
        await navigate(handle, settings.url("/find-flights"))
        url = await flows.open_first_offer(handle, "flight_details_link", "/flight-details/1")
        assert url.endswith("/flight-details/42")

    async def test_open_first_offer_falls_back(self, handle, app):
        app.hidden.add("a[href*='/flight-details/']")
        await navigate(handle, settings.url("/find-flights"))
        url = await flows.open_first_offer(handle, "flight_details_link", "/flight-details/1")
        assert url.endswith("/flight-details/1")

    async def test_anonymous_booking_redirects_to_login(self, handle):
        await navigate(handle, settings.url("/stay-details/7"))
        assert (await flows.start_booking(handle)).endswith("/login")

    async def test_edit_profile_name(self, handle, app, credentials):
        await flows.require_authenticated(handle, credentials)
        await navigate(handle, settings.url("/account"))
        assert await flows.edit_profile_name(handle) == "Test Updated"
        assert app.profile["firstName"] == "Test Updated"

    async def test_add_review(self, handle, app, credentials):
        await flows.require_authenticated(handle, credentials)
        await navigate(handle, settings.url("/stay-details/7"))
        await flows.add_review(handle, "Lovely")
        await act(handle, selectors().get("review_submit"))
        assert app.reviews == ["Lovely"]

    async def test_sign_up_and_reset(self, handle):
        assert "/signup-verify" in await flows.sign_up(handle, flows.generate_signup_profile())
        assert "/forgot-password-verify" in await flows.request_password_reset(handle, "someone@example.com")
