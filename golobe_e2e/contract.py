"""Selector and route contract for the Golobe application under test.

Every affordance a scenario touches is declared here once, as a ranked
list of candidate selectors. The first candidate that resolves wins, so
precedence and fallback are data rather than inline conditionals.

The contract is versioned with the application. A JSON file named by
``UI_SELECTORS_FILE`` can override entries without touching code:

    {"version": "1", "selectors": {"consent_accept": [".cookie-ok"]}}

Candidates may contain ``{placeholders}`` filled in at lookup time, e.g.
``contract.get("locale_option", code="fr")``.
"""
from __future__ import annotations

import json
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Dict, Iterable, Optional, Tuple
from urllib.parse import urlsplit

logger = logging.getLogger(__name__)

CONTRACT_VERSION = "1"

SUPPORTED_LOCALES: Tuple[str, ...] = ("en", "fr", "ru")
DEFAULT_LOCALE = "en"


class AppPage:
    """Routes of the application under test."""

    INDEX = "/"
    LOGIN = "/login"
    SIGNUP = "/signup"
    SIGNUP_VERIFY = "/signup-verify"
    FORGOT_PASSWORD = "/forgot-password"
    FORGOT_PASSWORD_VERIFY = "/forgot-password-verify"
    FLIGHTS = "/flights"
    FIND_FLIGHTS = "/find-flights"
    FLIGHT_DETAILS = "/flight-details/{id}"
    FLIGHT_BOOK = "/flight-book/{id}"
    STAYS = "/stays"
    FIND_STAYS = "/find-stays"
    STAY_DETAILS = "/stay-details/{id}"
    STAY_BOOK = "/stay-book/{id}"
    ACCOUNT = "/account"
    FAVOURITES = "/favourites"
    BOOKING_DETAILS = "/booking/{id}"


def locale_path(path: str, locale: str) -> str:
    """Prefix ``path`` with ``locale`` unless it is the default locale."""
    if locale == DEFAULT_LOCALE:
        return path
    if path in ("", "/"):
        return f"/{locale}"
    return f"/{locale}/{path.lstrip('/')}"


def locale_from_url(url: str) -> Optional[str]:
    """Return the locale encoded in the first path segment, if any."""
    segment = urlsplit(url).path.strip("/").split("/", 1)[0].lower()
    return segment if segment in SUPPORTED_LOCALES else None


@dataclass(frozen=True)
class SelectorSpec:
    """Named, ranked list of candidate selectors for one affordance."""

    name: str
    candidates: Tuple[str, ...]

    def __post_init__(self) -> None:
        if not self.candidates:
            raise ValueError(f"Selector spec '{self.name}' has no candidates")

    @property
    def primary(self) -> str:
        return self.candidates[0]

    def __str__(self) -> str:
        return self.name


DEFAULT_SELECTORS: Dict[str, Tuple[str, ...]] = {
    # Document roots
    "html": ("html",),
    "body": ("body",),
    # Consent banner
    "consent_banner": (".cookie-banner", "[data-testid='cookie-banner']"),
    "consent_accept": (".cookie-banner-btn", "[data-testid='cookie-accept']", ".cookie-banner button"),
    # Authentication
    "submit": (".form-submit-btn", "button[type='submit']"),
    "sign_in_email": ("input.sign-in-email", "input[name='email']", "input[type='email']"),
    "sign_in_password": ("input.sign-in-password", "input[name='password']", "input[type='password']"),
    "sign_in_link": (".nav-login-btn", "a[href$='/login']"),
    "auth_user_menu": (".nav-user-menu", "[data-testid='user-menu']"),
    "auth_user_menu_popup": (".nav-user-menu-popup", "[role='menu']"),
    "logout": (
        ".nav-user-menu-popup .logout-btn",
        "[role='menu'] button:has-text('Logout')",
        "[role='menu'] button:has-text('Sign out')",
    ),
    "auth_error": (".form-error", "[role='alert']", ".error-message"),
    "oauth_test_local": (".test-local-oauth-btn",),
    "signup_email": ("input[name='email']",),
    "signup_password": ("input[name='password']",),
    "signup_first_name": ("input[name='firstName']",),
    "signup_last_name": ("input[name='lastName']",),
    "reset_email": ("input[name='email']",),
    # Presentation state
    "theme_toggle": (
        ".theme-toggle",
        "button[aria-label*='theme' i]",
        "button[title*='theme' i]",
        "[class*='theme-toggle']",
        "[class*='dark-mode']",
        "button:has([class*='sun'])",
        "button:has([class*='moon'])",
    ),
    "locale_toggler": (".locale-toggler",),
    "locale_option": (
        "[role='menu'] [data-locale='{code}']",
        "[role='listbox'] [data-locale='{code}']",
        "a[href*='/{code}']",
    ),
    # Flights
    "flight_search_params": (".search-offers-flight-params",),
    "flight_from": ("input[placeholder*='from' i]", "input[name*='from' i]"),
    "flight_to": ("input[placeholder*='to' i]", "input[name*='to' i]"),
    "flight_offer": (".flight-offer", "[class*='flight']", "[class*='offer']"),
    "flight_details_link": ("a[href*='/flight-details/']", "button[data-flight-id]"),
    # Stays
    "stay_location": ("input[placeholder*='location' i]", "input[placeholder*='city' i]", "input[name*='city' i]"),
    "stay_check_in": ("input[type='date']", "input[placeholder*='check' i]"),
    "stay_type_filter": ("button:has-text('{label}')", "input[value='{value}']"),
    "stay_details_link": ("a[href*='/stay-details/']",),
    "stay_reviews": ("[id*='review']", "[class*='review']"),
    "stay_amenities": ("[class*='amenities']", "[class*='features']"),
    "stay_price": ("[class*='price']", "[class*='rate']"),
    "add_review": ("button:has-text('Add Review')", "button:has-text('Write Review')", "a:has-text('Add Review')"),
    "review_text": ("textarea[name*='review']", "textarea[placeholder*='review' i]"),
    "review_submit": ("button[type='submit']:has-text('Submit')", "button:has-text('Post Review')"),
    # Booking
    "book_button": ("button:has-text('Book')", "a:has-text('Book')", "button:has-text('Select')", "button:has-text('Reserve')"),
    "traveller_first_name": ("input[name*='firstName']",),
    "traveller_last_name": ("input[name*='lastName']",),
    "booking_confirm": ("button[type='submit']", "button:has-text('Confirm')", "button:has-text('Book')"),
    "booking_details": (".booking-details",),
    "booking_details_link": ("a[href*='/booking/']", "button:has-text('View details')"),
    "booking_download": ("button:has-text('Download')", "a[download]"),
    "booking_print": ("button:has-text('Print')",),
    # Account
    "account_page": (".user-account-page",),
    "profile_name": ("input[name*='firstName']", "input[name*='name']"),
    "profile_email": ("input[name*='email']", "[class*='email']"),
    "profile_phone": ("input[name*='phone']", "input[type='tel']"),
    "profile_edit": ("button:has-text('Edit')", "button[aria-label*='edit' i]"),
    "profile_save": ("button:has-text('Save')", "button[type='submit']"),
    "account_tab": ("[role='tab']:has-text('{label}')", "button:has-text('{label}')"),
    "booking_history_item": ("[class*='booking']", "[class*='history-item']"),
    "favourite_item": ("[class*='favourite']", "[class*='favorite']"),
    "avatar": ("[class*='avatar']", "[class*='profile-picture']"),
    "avatar_upload": ("input[type='file']", "button:has-text('Upload')", "button[aria-label*='photo' i]"),
}


class SelectorContract:
    """Registry of ranked selector specs, optionally overridden from JSON."""

    def __init__(self, entries: Dict[str, Tuple[str, ...]], version: str = CONTRACT_VERSION) -> None:
        self.version = version
        self._entries: Dict[str, Tuple[str, ...]] = dict(entries)

    def names(self) -> Iterable[str]:
        return self._entries.keys()

    def get(self, name: str, **params: str) -> SelectorSpec:
        try:
            templates = self._entries[name]
        except KeyError:
            raise KeyError(f"Unknown selector '{name}' in contract v{self.version}") from None
        if params:
            candidates = tuple(template.format(**params) for template in templates)
            label = name + "[" + ",".join(f"{k}={v}" for k, v in sorted(params.items())) + "]"
            return SelectorSpec(label, candidates)
        return SelectorSpec(name, templates)

    def override(self, name: str, candidates: Iterable[str]) -> None:
        self._entries[name] = tuple(candidates)

    @classmethod
    def load(cls, overrides_file: Optional[Path] = None) -> "SelectorContract":
        contract = cls(DEFAULT_SELECTORS)
        if overrides_file is None:
            return contract
        if not overrides_file.exists():
            logger.warning("Selector overrides file not found, using defaults: %s", overrides_file)
            return contract
        with open(overrides_file, encoding="utf-8") as f:
            data = json.load(f)
        version = str(data.get("version", ""))
        if version != CONTRACT_VERSION:
            logger.warning(
                "Selector overrides %s target contract v%s, harness expects v%s",
                overrides_file, version or "?", CONTRACT_VERSION,
            )
        for name, candidates in data.get("selectors", {}).items():
            if isinstance(candidates, str):
                candidates = [candidates]
            contract.override(name, candidates)
            logger.debug("Selector override %s -> %s", name, candidates)
        return contract


_contract: Optional[SelectorContract] = None


def selectors() -> SelectorContract:
    """Return the active contract, loading overrides on first use."""
    global _contract
    if _contract is None:
        from golobe_e2e.config import settings

        _contract = SelectorContract.load(settings.selectors_file)
    return _contract


def use_contract(contract: Optional[SelectorContract]) -> None:
    """Install ``contract`` as the active one (``None`` reloads on next use)."""
    global _contract
    _contract = contract
