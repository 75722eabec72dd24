"""Theme, locale and auth probes: precedence, determinism, read-only."""
import logging

import pytest

from golobe_e2e.config import settings
from golobe_e2e.interaction import navigate
from golobe_e2e.mock_app import SESSION_COOKIE
from golobe_e2e.probes import (
    UNKNOWN_LOCALE,
    AuthState,
    ThemeMode,
    normalize_locale,
    observe,
    probe_auth_state,
    probe_locale,
    probe_theme,
    read_auth_state,
    read_locale,
    read_theme,
    theme_from_color,
)


async def open_home(handle, path="/"):
    await navigate(handle, settings.url(path))


@pytest.mark.parametrize(
    "color, expected",
    [
        ("rgb(255, 255, 255)", "light"),
        ("rgb(17, 24, 39)", "dark"),
        ("rgba(250, 250, 250, 1)", "light"),
        ("rgba(0, 0, 0, 0)", None),
        ("transparent", None),
        (None, None),
    ],
)
def test_theme_from_color(color, expected):
    assert theme_from_color(color) == expected


@pytest.mark.parametrize("raw, expected", [("fr-FR", "fr"), ("en", "en"), ("ru_RU", "ru"), ("", None), (None, None)])
def test_normalize_locale(raw, expected):
    assert normalize_locale(raw) == expected


@pytest.mark.asyncio
class TestThemeProbe:
    async def test_structural_attribute_wins(self, handle):
        await open_home(handle)
        result = await probe_theme(handle)
        assert result.value is ThemeMode.LIGHT
        assert result.source == "html[data-theme]"

    async def test_structural_beats_cookie_and_logs_disagreement(self, handle, app, caplog):
        app.attribute_overrides["html"] = {"data-theme": "dark", "class": None}
        await open_home(handle)
        app.drivers[-1].cookies[settings.theme_cookie] = "light"
        app.background = "rgb(255, 255, 255)"
        with caplog.at_level(logging.WARNING, logger="golobe_e2e.probes"):
            result = await probe_theme(handle)
        assert result.value is ThemeMode.DARK
        assert result.source == "html[data-theme]"
        assert {r.source for r in result.conflicting} >= {"cookie:theme", "body.background-color"}
        assert "signals disagree" in caplog.text

    async def test_cookie_beats_computed_style(self, handle, app):
        app.theme_attribute = False
        app.theme_class = False
        app.background = "rgb(255, 255, 255)"
        await open_home(handle)
        app.drivers[-1].cookies[settings.theme_cookie] = "dark"
        result = await probe_theme(handle)
        assert result.value is ThemeMode.DARK
        assert result.source == "cookie:theme"

    async def test_computed_style_is_last_resort(self, handle, app):
        app.theme_attribute = False
        app.theme_class = False
        app.background = "rgb(10, 10, 10)"
        await open_home(handle)
        result = await probe_theme(handle)
        assert result.value is ThemeMode.DARK
        assert result.source == "body.background-color"

    async def test_unknown_when_nothing_resolves(self, handle, app):
        app.theme_attribute = False
        app.theme_class = False
        app.background = "rgba(0, 0, 0, 0)"
        await open_home(handle)
        assert await read_theme(handle) is ThemeMode.UNKNOWN

    async def test_repeated_reads_agree(self, handle):
        await open_home(handle)
        readings = [await read_theme(handle) for _ in range(3)]
        assert len(set(readings)) == 1


@pytest.mark.asyncio
class TestLocaleProbe:
    async def test_html_lang(self, handle):
        await open_home(handle, "/fr/flights")
        result = await probe_locale(handle)
        assert result.value == "fr"
        assert result.source == "html[lang]"

    async def test_region_suffix_is_dropped(self, handle, app):
        app.attribute_overrides["html"] = {"lang": "ru-RU"}
        await open_home(handle, "/ru")
        assert await read_locale(handle) == "ru"

    async def test_url_segment_when_no_attribute_or_cookie(self, handle, app):
        app.expose_lang = False
        app.locale_cookie = "lang"
        await open_home(handle, "/ru/stays")
        result = await probe_locale(handle)
        assert result.value == "ru"
        assert result.source == "url-segment"

    async def test_unknown_when_unresolved(self, handle, app):
        app.expose_lang = False
        await open_home(handle)
        assert await read_locale(handle) == UNKNOWN_LOCALE


@pytest.mark.asyncio
class TestAuthProbe:
    async def test_anonymous_by_default(self, handle):
        await open_home(handle)
        result = await probe_auth_state(handle)
        assert result.value is AuthState.ANONYMOUS
        assert result.source == "sign-in-link"

    async def test_user_menu_means_authenticated(self, handle, app):
        await open_home(handle)
        app.drivers[-1].cookies[SESSION_COOKIE] = "token"
        result = await probe_auth_state(handle)
        assert result.value is AuthState.AUTHENTICATED
        assert result.source == "user-menu"

    async def test_session_cookie_when_no_structural_signal(self, handle, app):
        app.hidden.update({".nav-user-menu", ".nav-login-btn"})
        await open_home(handle)
        app.drivers[-1].cookies["__Secure-authjs.session-token"] = "token"
        result = await probe_auth_state(handle)
        assert result.value is AuthState.AUTHENTICATED
        assert result.source == "cookie:session"

    async def test_no_signal_is_anonymous(self, handle, app):
        app.hidden.update({".nav-user-menu", ".nav-login-btn"})
        await open_home(handle)
        assert await read_auth_state(handle) is AuthState.ANONYMOUS


@pytest.mark.asyncio
async def test_observe_is_read_only_and_deterministic(handle, app):
    await open_home(handle)
    driver = app.drivers[-1]
    cookies_before = dict(driver.cookies)
    url_before = handle.url
    first = await observe(handle)
    second = await observe(handle)
    assert first == second
    assert first.as_dict() == {"theme": "light", "locale": "en", "auth": "anonymous", "url": url_before}
    assert driver.cookies == cookies_before
    assert handle.url == url_before
    assert not {"click", "fill", "navigate"} & set(driver.calls[driver.calls.index("navigate") + 1:])
