"""Read-only probes for theme, locale and authentication state.

Each probe walks an ordered list of signals and returns the first
confident reading. The order is a fixed precedence:

    structural attribute (DOM) > cookie > computed signal (style / URL)

When confident signals disagree the higher tier wins and the disagreement
is logged with its resolution. When nothing resolves the probe answers
``UNKNOWN`` / ``ANONYMOUS``; absence of a signal is information, not an
error. Every probe waits for the page to go idle first so repeated reads
of an unchanged page agree.
"""
from __future__ import annotations

import logging
import re
from dataclasses import dataclass, field
from enum import Enum, IntEnum
from typing import Any, Awaitable, Callable, Dict, List, Optional, Sequence, Tuple

from golobe_e2e.config import settings
from golobe_e2e.contract import locale_from_url, selectors
from golobe_e2e.interaction import locate
from golobe_e2e.session import PageHandle

logger = logging.getLogger(__name__)

UNKNOWN_LOCALE = "unknown"
SESSION_COOKIE_NAMES = ("authjs.session-token", "__Secure-authjs.session-token", "next-auth.session-token")


class ThemeMode(str, Enum):
    LIGHT = "light"
    DARK = "dark"
    UNKNOWN = "unknown"


class AuthState(str, Enum):
    AUTHENTICATED = "authenticated"
    ANONYMOUS = "anonymous"


class SignalTier(IntEnum):
    STRUCTURAL = 0
    COOKIE = 1
    COMPUTED = 2


@dataclass(frozen=True)
class SignalReading:
    """One signal source and what it said (``value`` None = not confident)."""

    source: str
    tier: SignalTier
    value: Optional[str]
    raw: Optional[str] = None


@dataclass(frozen=True)
class ProbeResult:
    value: Any
    source: Optional[str]
    readings: Tuple[SignalReading, ...] = ()

    @property
    def conflicting(self) -> List[SignalReading]:
        winner = self.value.value if isinstance(self.value, Enum) else self.value
        return [r for r in self.readings if r.value is not None and r.value != winner]


@dataclass(frozen=True)
class ObservedState:
    """Snapshot of the presentation and auth state of one page."""

    theme: ThemeMode
    locale: str
    auth: AuthState
    url: str = field(default="", compare=False)
    sources: Dict[str, ProbeResult] = field(default_factory=dict, compare=False)

    def get(self, name: str) -> Any:
        return getattr(self, name)

    def as_dict(self) -> Dict[str, str]:
        return {"theme": self.theme.value, "locale": self.locale, "auth": self.auth.value, "url": self.url}


Signal = Tuple[str, SignalTier, Callable[[PageHandle], Awaitable[Tuple[Optional[str], Optional[str]]]]]


def _lookup_ms() -> int:
    return min(500, settings.timeouts.probe_ms)


def resolve(probe: str, readings: Sequence[SignalReading]) -> Optional[SignalReading]:
    """Pick the highest-precedence confident reading and log disagreement."""
    ordered = sorted(readings, key=lambda r: r.tier)
    confident = [r for r in ordered if r.value is not None]
    if not confident:
        logger.debug("%s: no confident signal (%s)", probe, ", ".join(r.source for r in ordered))
        return None
    winner = confident[0]
    losers = [r for r in confident[1:] if r.value != winner.value]
    if losers:
        logger.warning(
            "%s: signals disagree, using %s=%s over %s",
            probe,
            winner.source,
            winner.value,
            ", ".join(f"{r.source}={r.value}" for r in losers),
        )
    else:
        logger.debug("%s resolved by %s=%s", probe, winner.source, winner.value)
    return winner


async def _collect(handle: PageHandle, signals: Sequence[Signal]) -> Tuple[SignalReading, ...]:
    readings = []
    for source, tier, reader in signals:
        value, raw = await reader(handle)
        readings.append(SignalReading(source=source, tier=tier, value=value, raw=raw))
    return tuple(readings)


async def _attribute(handle: PageHandle, selector_name: str, attribute: str) -> Optional[str]:
    found = await locate(handle, selectors().get(selector_name), _lookup_ms())
    if found is None:
        return None
    return await handle.driver.read_attribute(found[1], attribute)


async def _cookie(handle: PageHandle, name: str) -> Optional[str]:
    for cookie in await handle.driver.read_cookies():
        if cookie.get("name") == name:
            return cookie.get("value")
    return None


# ---- theme ---------------------------------------------------------------------

def _theme_from_text(text: Optional[str]) -> Optional[str]:
    if not text:
        return None
    lowered = text.lower()
    for token in lowered.split():
        if "dark" in token:
            return ThemeMode.DARK.value
    for token in lowered.split():
        if "light" in token:
            return ThemeMode.LIGHT.value
    return None


_RGB = re.compile(r"rgba?\(\s*([\d.]+)[,\s]+([\d.]+)[,\s]+([\d.]+)(?:[,/\s]+([\d.]+%?))?\s*\)")


def theme_from_color(color: Optional[str]) -> Optional[str]:
    """Classify a CSS colour by relative luminance; transparent is not confident."""
    if not color:
        return None
    match = _RGB.search(color)
    if not match:
        return None
    r, g, b = (float(match.group(i)) / 255 for i in (1, 2, 3))
    alpha = match.group(4)
    if alpha is not None:
        a = float(alpha[:-1]) / 100 if alpha.endswith("%") else float(alpha)
        if a == 0:
            return None

    def channel(c: float) -> float:
        return c / 12.92 if c <= 0.03928 else ((c + 0.055) / 1.055) ** 2.4

    luminance = 0.2126 * channel(r) + 0.7152 * channel(g) + 0.0722 * channel(b)
    return ThemeMode.DARK.value if luminance < 0.5 else ThemeMode.LIGHT.value


async def _theme_data_attribute(handle: PageHandle):
    raw = await _attribute(handle, "html", "data-theme")
    value = raw.strip().lower() if raw else None
    return (value if value in (ThemeMode.DARK.value, ThemeMode.LIGHT.value) else None), raw


async def _theme_html_class(handle: PageHandle):
    raw = await _attribute(handle, "html", "class")
    return _theme_from_text(raw), raw


async def _theme_body_class(handle: PageHandle):
    raw = await _attribute(handle, "body", "class")
    return _theme_from_text(raw), raw


async def _theme_cookie(handle: PageHandle):
    raw = await _cookie(handle, settings.theme_cookie)
    value = raw.strip().lower() if raw else None
    return (value if value in (ThemeMode.DARK.value, ThemeMode.LIGHT.value) else None), raw


async def _theme_computed(handle: PageHandle):
    raw = await handle.driver.computed_style("body", "background-color")
    return theme_from_color(raw), raw


THEME_SIGNALS: Tuple[Signal, ...] = (
    ("html[data-theme]", SignalTier.STRUCTURAL, _theme_data_attribute),
    ("html.class", SignalTier.STRUCTURAL, _theme_html_class),
    ("body.class", SignalTier.STRUCTURAL, _theme_body_class),
    ("cookie:theme", SignalTier.COOKIE, _theme_cookie),
    ("body.background-color", SignalTier.COMPUTED, _theme_computed),
)


async def probe_theme(handle: PageHandle) -> ProbeResult:
    await handle.driver.wait_for_idle(settings.timeouts.probe_ms)
    readings = await _collect(handle, THEME_SIGNALS)
    winner = resolve("theme", readings)
    if winner is None:
        return ProbeResult(ThemeMode.UNKNOWN, None, readings)
    return ProbeResult(ThemeMode(winner.value), winner.source, readings)


async def read_theme(handle: PageHandle) -> ThemeMode:
    return (await probe_theme(handle)).value


# ---- locale --------------------------------------------------------------------

def normalize_locale(raw: Optional[str]) -> Optional[str]:
    """``fr-FR`` -> ``fr``; empty -> None."""
    if not raw:
        return None
    code = raw.strip().replace("_", "-").split("-", 1)[0].lower()
    return code or None


async def _locale_lang(handle: PageHandle):
    raw = await _attribute(handle, "html", "lang")
    return normalize_locale(raw), raw


async def _locale_cookie(handle: PageHandle):
    raw = await _cookie(handle, settings.locale_cookie)
    return normalize_locale(raw), raw


async def _locale_url(handle: PageHandle):
    url = handle.url
    return locale_from_url(url), url


LOCALE_SIGNALS: Tuple[Signal, ...] = (
    ("html[lang]", SignalTier.STRUCTURAL, _locale_lang),
    ("cookie:locale", SignalTier.COOKIE, _locale_cookie),
    ("url-segment", SignalTier.COMPUTED, _locale_url),
)


async def probe_locale(handle: PageHandle) -> ProbeResult:
    await handle.driver.wait_for_idle(settings.timeouts.probe_ms)
    readings = await _collect(handle, LOCALE_SIGNALS)
    winner = resolve("locale", readings)
    if winner is None:
        return ProbeResult(UNKNOWN_LOCALE, None, readings)
    return ProbeResult(winner.value, winner.source, readings)


async def read_locale(handle: PageHandle) -> str:
    return (await probe_locale(handle)).value


# ---- authentication ------------------------------------------------------------

def is_session_cookie(name: str) -> bool:
    lowered = name.lower()
    return name in SESSION_COOKIE_NAMES or ("auth" in lowered and "session" in lowered)


async def _auth_user_menu(handle: PageHandle):
    found = await locate(handle, selectors().get("auth_user_menu"), _lookup_ms())
    return (AuthState.AUTHENTICATED.value if found else None), (found[0] if found else None)


async def _auth_sign_in_link(handle: PageHandle):
    found = await locate(handle, selectors().get("sign_in_link"), _lookup_ms())
    return (AuthState.ANONYMOUS.value if found else None), (found[0] if found else None)


async def _auth_cookie(handle: PageHandle):
    for cookie in await handle.driver.read_cookies():
        name = cookie.get("name", "")
        if is_session_cookie(name) and cookie.get("value"):
            return AuthState.AUTHENTICATED.value, name
    return None, None


AUTH_SIGNALS: Tuple[Signal, ...] = (
    ("user-menu", SignalTier.STRUCTURAL, _auth_user_menu),
    ("sign-in-link", SignalTier.STRUCTURAL, _auth_sign_in_link),
    ("cookie:session", SignalTier.COOKIE, _auth_cookie),
)


async def probe_auth_state(handle: PageHandle) -> ProbeResult:
    await handle.driver.wait_for_idle(settings.timeouts.probe_ms)
    readings = await _collect(handle, AUTH_SIGNALS)
    winner = resolve("auth", readings)
    if winner is None:
        return ProbeResult(AuthState.ANONYMOUS, None, readings)
    return ProbeResult(AuthState(winner.value), winner.source, readings)


async def read_auth_state(handle: PageHandle) -> AuthState:
    return (await probe_auth_state(handle)).value


async def observe(handle: PageHandle) -> ObservedState:
    """Run every probe once and return the combined snapshot."""
    theme = await probe_theme(handle)
    locale = await probe_locale(handle)
    auth = await probe_auth_state(handle)
    return ObservedState(
        theme=theme.value,
        locale=locale.value,
        auth=auth.value,
        url=handle.url,
        sources={"theme": theme, "locale": locale, "auth": auth},
    )
