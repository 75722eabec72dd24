"""In-memory Golobe application for offline harness tests.

``MockApp`` holds the server side (test account, profile, reviews, which
affordances exist). Every ``MockDriver`` is one browser context on top of
it with its own cookie jar, current page and form state, and satisfies the
``Driver`` capability set, so the whole harness core runs against it
without a browser.

Elements are matched by exact selector string: a page "contains" the
selectors it renders. Tests shape the page through a few knobs:

- ``hidden``      selectors that never resolve
- ``blocked``     selectors that resolve but refuse actions (``ToolError``)
- ``appear_after`` selector -> seconds after navigation before it shows up
- ``attribute_overrides`` per-element attribute patches (None removes)
- ``login_behaviour`` "normal" or "silent" (submit does nothing visible)
- ``down``        navigation fails like a refused connection
"""
from __future__ import annotations

import logging
import secrets
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Optional, Set
from urllib.parse import urlsplit

import anyio

from golobe_e2e.contract import DEFAULT_LOCALE, SUPPORTED_LOCALES, AppPage, locale_path
from golobe_e2e.errors import InfrastructureError, ToolError

logger = logging.getLogger(__name__)

MOCK_EMAIL = "test.user@golobe.demo"
MOCK_PASSWORD = "test-password-1!"
SESSION_COOKIE = "authjs.session-token"
CONSENT_COOKIE = "cookies_accepted"
LOGIN_ERROR = "Invalid email or password"

LIGHT_BACKGROUND = "rgb(255, 255, 255)"
DARK_BACKGROUND = "rgb(17, 24, 39)"

# Routes that bounce anonymous visitors to the login page.
_PROTECTED = ("/account", "/favourites", "/flight-book/", "/stay-book/", "/booking/")


@dataclass
class MockElement:
    selector: str
    attrs: Dict[str, str] = field(default_factory=dict)
    text: str = ""
    on_click: Optional[Callable[[], None]] = None
    editable: bool = False
    value: Optional[str] = None


class MockApp:
    """Server-side state shared by every context of one test."""

    def __init__(self, base_url: str = "http://golobe.test", theme_cookie: str = "theme", locale_cookie: str = "i18n_redirected") -> None:
        self.base_url = base_url.rstrip("/")
        self.theme_cookie = theme_cookie
        self.locale_cookie = locale_cookie
        self.accounts: Dict[str, str] = {MOCK_EMAIL: MOCK_PASSWORD}
        self.profile: Dict[str, str] = {"firstName": "Test", "email": MOCK_EMAIL, "phone": "+1 555 0100"}
        self.reviews: List[str] = []
        self.default_theme = "light"
        self.show_consent = True
        self.theme_attribute = True
        self.theme_class = True
        self.expose_lang = True
        self.background: Optional[str] = None
        self.login_behaviour = "normal"
        self.down = False
        self.status_overrides: Dict[str, int] = {}
        self.hidden: Set[str] = set()
        self.blocked: Set[str] = set()
        self.appear_after: Dict[str, float] = {}
        self.attribute_overrides: Dict[str, Dict[str, Optional[str]]] = {}
        self.login_submits = 0
        self.fail_next_open = False
        self.drivers: List["MockDriver"] = []

    async def open_driver(self) -> "MockDriver":
        """Driver factory for ``SessionManager``."""
        if self.fail_next_open:
            self.fail_next_open = False
            raise InfrastructureError("browser context could not be created")
        driver = MockDriver(self)
        self.drivers.append(driver)
        return driver

    @property
    def open_drivers(self) -> List["MockDriver"]:
        return [d for d in self.drivers if not d.is_closed]


class MockDriver:
    """One browser context on a ``MockApp``."""

    def __init__(self, app: MockApp) -> None:
        self.app = app
        self.cookies: Dict[str, str] = {}
        self.path = "about:blank"
        self.query = ""
        self.form: Dict[str, str] = {}
        self.login_error: Optional[str] = None
        self.user_menu_open = False
        self.locale_menu_open = False
        self.review_form_open = False
        self.history_tab = False
        self.navigated_at = 0.0
        self.calls: List[str] = []
        self._closed = False

    # ---- routing ---------------------------------------------------------------

    @property
    def url(self) -> str:
        if self.path == "about:blank":
            return self.path
        url = self.app.base_url + self.path
        return f"{url}?{self.query}" if self.query else url

    @property
    def is_closed(self) -> bool:
        return self._closed

    @property
    def authenticated(self) -> bool:
        return bool(self.cookies.get(SESSION_COOKIE))

    @property
    def locale(self) -> str:
        segment = self.path.strip("/").split("/", 1)[0]
        return segment if segment in SUPPORTED_LOCALES else DEFAULT_LOCALE

    @property
    def bare_path(self) -> str:
        """Current path without its locale prefix."""
        parts = self.path.strip("/").split("/", 1)
        if parts[0] in SUPPORTED_LOCALES:
            return "/" + (parts[1] if len(parts) > 1 else "")
        return self.path

    @property
    def theme(self) -> str:
        return self.cookies.get(self.app.theme_cookie, self.app.default_theme)

    def _go(self, path: str, query: str = "") -> int:
        segment = path.strip("/").split("/", 1)[0]
        bare = path
        locale = DEFAULT_LOCALE
        if segment in SUPPORTED_LOCALES:
            locale = segment
            self.cookies[self.app.locale_cookie] = segment
            rest = path.strip("/").split("/", 1)
            bare = "/" + (rest[1] if len(rest) > 1 else "")
        else:
            remembered = self.cookies.get(self.app.locale_cookie)
            if remembered and remembered != DEFAULT_LOCALE:
                locale = remembered
        if not self.authenticated and any(bare.startswith(p) for p in _PROTECTED):
            bare, query = AppPage.LOGIN, ""
        elif self.authenticated and bare == AppPage.LOGIN:
            bare, query = AppPage.INDEX, ""

        self.path = locale_path(bare, locale)
        self.query = query
        self.form = {}
        self.login_error = None
        self.user_menu_open = self.locale_menu_open = self.review_form_open = self.history_tab = False
        self.navigated_at = anyio.current_time()
        return self.app.status_overrides.get(bare, 200 if self._page_known(bare) else 404)

    @staticmethod
    def _page_known(bare: str) -> bool:
        known = (
            AppPage.INDEX, AppPage.LOGIN, AppPage.SIGNUP, AppPage.SIGNUP_VERIFY, AppPage.FORGOT_PASSWORD,
            AppPage.FORGOT_PASSWORD_VERIFY, AppPage.FLIGHTS, AppPage.FIND_FLIGHTS, AppPage.STAYS,
            AppPage.FIND_STAYS, AppPage.ACCOUNT, AppPage.FAVOURITES,
        )
        prefixes = ("/flight-details/", "/flight-book/", "/stay-details/", "/stay-book/", "/booking/")
        return bare in known or bare.startswith(prefixes)

    # ---- rendering -------------------------------------------------------------

    def _render(self) -> Dict[str, MockElement]:
        elements: Dict[str, MockElement] = {}

        def add(selector: str, attrs: Optional[Dict[str, str]] = None, text: str = "",
                on_click: Optional[Callable[[], None]] = None, editable: bool = False,
                value: Optional[str] = None) -> None:
            elements[selector] = MockElement(selector, dict(attrs or {}), text, on_click, editable, value)

        if self.path == "about:blank":
            return elements

        html_attrs: Dict[str, str] = {}
        if self.app.expose_lang:
            html_attrs["lang"] = self.locale
        if self.app.theme_attribute:
            html_attrs["data-theme"] = self.theme
        if self.app.theme_class:
            html_attrs["class"] = f"{self.theme} font-sans"
        add("html", html_attrs)
        add("body", {"class": "min-h-screen"})

        if self.app.show_consent and CONSENT_COOKIE not in self.cookies:
            add(".cookie-banner", text="We use cookies")
            add(".cookie-banner-btn", text="Accept", on_click=self._accept_consent)

        add(".theme-toggle", {"aria-label": "Toggle theme"}, on_click=self._toggle_theme)
        add(".locale-toggler", text=self.locale.upper(), on_click=self._open_locale_menu)
        if self.locale_menu_open:
            for code in SUPPORTED_LOCALES:
                add(f"[role='menu'] [data-locale='{code}']", {"data-locale": code}, code, self._switch_locale(code))

        if self.authenticated:
            add(".nav-user-menu", on_click=self._open_user_menu)
            if self.user_menu_open:
                add(".nav-user-menu-popup", {"role": "menu"})
                add(".nav-user-menu-popup .logout-btn", text="Logout", on_click=self._logout)
        else:
            add(".nav-login-btn", {"href": "/login"}, "Sign in")

        self._render_page(self.bare_path, add)

        for selector, patch in self.app.attribute_overrides.items():
            if selector in elements:
                for name, value in patch.items():
                    if value is None:
                        elements[selector].attrs.pop(name, None)
                    else:
                        elements[selector].attrs[name] = value

        now = anyio.current_time()
        return {
            selector: element
            for selector, element in elements.items()
            if selector not in self.app.hidden
            and now - self.navigated_at >= self.app.appear_after.get(selector, 0.0)
        }

    def _render_page(self, bare: str, add: Callable[..., None]) -> None:
        if bare == AppPage.LOGIN:
            add("input.sign-in-email", {"type": "email"}, editable=True)
            add("input.sign-in-password", {"type": "password"}, editable=True)
            add(".form-submit-btn", {"type": "submit"}, "Login", self._submit_login)
            add(".test-local-oauth-btn", text="Test local", on_click=self._oauth_login)
            if self.login_error:
                add(".form-error", {"role": "alert"}, self.login_error)
        elif bare == AppPage.SIGNUP:
            for name in ("email", "password", "firstName", "lastName"):
                add(f"input[name='{name}']", {"name": name}, editable=True)
            add(".form-submit-btn", {"type": "submit"}, "Create account", self._submit_to(AppPage.SIGNUP_VERIFY))
        elif bare == AppPage.FORGOT_PASSWORD:
            add("input[name='email']", {"name": "email"}, editable=True)
            add(".form-submit-btn", {"type": "submit"}, "Submit", self._submit_to(AppPage.FORGOT_PASSWORD_VERIFY))
        elif bare == AppPage.FLIGHTS:
            add(".search-offers-flight-params")
        elif bare == AppPage.FIND_FLIGHTS:
            add("input[placeholder*='from' i]", {"placeholder": "From"}, editable=True)
            add("input[placeholder*='to' i]", {"placeholder": "To"}, editable=True)
            add(".flight-offer", text="Emirates A380")
            add("a[href*='/flight-details/']", {"href": "/flight-details/42"}, "View deals")
        elif bare.startswith("/flight-details/"):
            add("button:has-text('Book')", text="Book now", on_click=self._book("/flight-book/"))
        elif bare.startswith("/flight-book/") or bare.startswith("/stay-book/"):
            add("input[name*='firstName']", {"name": "firstName"}, editable=True)
            add("input[name*='lastName']", {"name": "lastName"}, editable=True)
            add("button[type='submit']", {"type": "submit"}, "Confirm")
        elif bare == AppPage.STAYS:
            add("input[placeholder*='location' i]", {"placeholder": "Enter destination"}, editable=True)
        elif bare == AppPage.FIND_STAYS:
            add("input[placeholder*='location' i]", {"placeholder": "Enter destination"}, editable=True)
            add("input[type='date']", {"type": "date"}, editable=True)
            for label in ("Hotels", "Motels", "Resorts"):
                add(f"button:has-text('{label}')", text=label, on_click=lambda: None)
            add("a[href*='/stay-details/']", {"href": "/stay-details/7"}, "View place")
        elif bare.startswith("/stay-details/"):
            add("[id*='review']", {"id": "reviews"}, " ".join(self.app.reviews) or "4.2 Very good")
            add("[class*='amenities']", {"class": "amenities"})
            add("[class*='price']", {"class": "price"}, "$240/night")
            add("button:has-text('Book')", text="Book now", on_click=self._book("/stay-book/"))
            add("button:has-text('Add Review')", text="Add Review", on_click=self._open_review_form)
            if self.review_form_open:
                add("textarea[name*='review']", {"name": "reviewText"}, editable=True)
                add("button[type='submit']:has-text('Submit')", text="Submit", on_click=self._submit_review)
        elif bare == AppPage.ACCOUNT:
            add(".user-account-page")
            add("input[name*='firstName']", {"name": "firstName"}, editable=True, value=self.app.profile["firstName"])
            add("input[name*='email']", {"name": "email"}, editable=True, value=self.app.profile["email"])
            add("input[name*='phone']", {"name": "phone"}, editable=True, value=self.app.profile["phone"])
            add("button:has-text('Edit')", text="Edit", on_click=lambda: None)
            add("button:has-text('Save')", text="Save", on_click=self._save_profile)
            add("[class*='avatar']", {"class": "avatar"})
            add("input[type='file']", {"type": "file"})
            add("[role='tab']:has-text('Account')", text="Account", on_click=self._select_tab(False))
            add("[role='tab']:has-text('History')", text="History", on_click=self._select_tab(True))
            add("[role='tab']:has-text('Payment methods')", text="Payment methods", on_click=self._select_tab(False))
            if self.history_tab:
                add("[class*='booking']", {"class": "booking-item"}, "Melbourne, 2 nights")
                add("a[href*='/booking/']", {"href": "/booking/3"}, "View details")
        elif bare == AppPage.FAVOURITES:
            add("[class*='favourite']", {"class": "favourite-card"}, "Favourite hotel")
        elif bare.startswith("/booking/"):
            add(".booking-details")
            add("button:has-text('Download')", text="Download")
            add("button:has-text('Print')", text="Print")

    # ---- behaviour -------------------------------------------------------------

    def _accept_consent(self) -> None:
        self.cookies[CONSENT_COOKIE] = "true"

    def _toggle_theme(self) -> None:
        self.cookies[self.app.theme_cookie] = "light" if self.theme == "dark" else "dark"

    def _open_locale_menu(self) -> None:
        self.locale_menu_open = True

    def _switch_locale(self, code: str) -> Callable[[], None]:
        def _switch() -> None:
            self.cookies[self.app.locale_cookie] = code
            self._go(locale_path(self.bare_path, code))

        return _switch

    def _open_user_menu(self) -> None:
        self.user_menu_open = True

    def _logout(self) -> None:
        self.cookies.pop(SESSION_COOKIE, None)
        self._go(AppPage.INDEX)

    def _submit_login(self) -> None:
        self.app.login_submits += 1
        if self.app.login_behaviour == "silent":
            return
        email = self.form.get("input.sign-in-email", "")
        password = self.form.get("input.sign-in-password", "")
        if email and self.app.accounts.get(email) == password:
            self.cookies[SESSION_COOKIE] = secrets.token_hex(16)
            self._go(AppPage.INDEX)
        else:
            self.login_error = LOGIN_ERROR

    def _oauth_login(self) -> None:
        self.cookies[SESSION_COOKIE] = secrets.token_hex(16)
        self._go(AppPage.INDEX)

    def _submit_to(self, path: str) -> Callable[[], None]:
        def _submit() -> None:
            self._go(path)

        return _submit

    def _book(self, prefix: str) -> Callable[[], None]:
        def _open_booking() -> None:
            self._go(prefix + self.bare_path.rsplit("/", 1)[-1])

        return _open_booking

    def _open_review_form(self) -> None:
        self.review_form_open = True

    def _submit_review(self) -> None:
        text = self.form.get("textarea[name*='review']", "")
        if text:
            self.app.reviews.append(text)
        self.review_form_open = False

    def _save_profile(self) -> None:
        name = self.form.pop("input[name*='firstName']", None)
        if name is not None:
            self.app.profile["firstName"] = name

    def _select_tab(self, history: bool) -> Callable[[], None]:
        def _select() -> None:
            self.history_tab = history

        return _select

    # ---- driver capability set -------------------------------------------------

    def _ensure_open(self, call: str) -> None:
        self.calls.append(call)
        if self._closed:
            raise InfrastructureError(f"{call}: Target page, context or browser has been closed")

    async def navigate(self, url: str, timeout_ms: int) -> Optional[int]:
        self._ensure_open("navigate")
        if self.app.down:
            raise InfrastructureError(f"navigate: net::ERR_CONNECTION_REFUSED at {url}", {"url": url})
        parts = urlsplit(url)
        status = self._go(parts.path or "/", parts.query)
        if status >= 500:
            raise InfrastructureError(f"HTTP {status} from application", {"url": url})
        await anyio.sleep(0)
        return status

    async def locate(self, selector: str, timeout_ms: int) -> Optional[MockElement]:
        self._ensure_open("locate")
        deadline = anyio.current_time() + timeout_ms / 1000
        while True:
            element = self._render().get(selector)
            if element is not None:
                return element
            remaining = deadline - anyio.current_time()
            if remaining <= 0:
                return None
            await anyio.sleep(min(0.02, remaining))

    async def act(self, element: MockElement, verb: str, value: Optional[str], timeout_ms: int) -> None:
        self._ensure_open(verb)
        if element.selector in self.app.blocked:
            raise ToolError(name=verb, payload={"selector": element.selector}, message="element is not enabled")
        if element.selector not in self._render():
            raise ToolError(name=verb, payload={"selector": element.selector}, message="element is detached")
        if verb == "fill":
            if not element.editable:
                raise ToolError(name=verb, payload={"selector": element.selector}, message="element is not an input")
            self.form[element.selector] = value or ""
        elif verb == "click" and element.on_click is not None:
            element.on_click()
        await anyio.sleep(0)

    async def read_attribute(self, element: MockElement, name: str) -> Optional[str]:
        self._ensure_open("read_attribute")
        current = self._render().get(element.selector, element)
        return current.attrs.get(name)

    async def input_value(self, element: MockElement) -> str:
        self._ensure_open("input_value")
        if element.selector in self.form:
            return self.form[element.selector]
        current = self._render().get(element.selector, element)
        return current.value or ""

    async def read_text(self, element: MockElement) -> str:
        self._ensure_open("read_text")
        return element.text

    async def read_cookies(self) -> List[Dict[str, Any]]:
        self._ensure_open("read_cookies")
        return [{"name": name, "value": value, "domain": urlsplit(self.app.base_url).hostname} for name, value in self.cookies.items()]

    async def computed_style(self, selector: str, prop: str) -> Optional[str]:
        self._ensure_open("computed_style")
        if selector != "body" or prop != "background-color" or self.path == "about:blank":
            return None
        if self.app.background is not None:
            return self.app.background
        return DARK_BACKGROUND if self.theme == "dark" else LIGHT_BACKGROUND

    async def wait_for_idle(self, timeout_ms: int) -> None:
        self._ensure_open("wait_for_idle")
        await anyio.sleep(0)

    async def screenshot(self, path: str) -> None:
        self._ensure_open("screenshot")
        from PIL import Image

        Image.new("RGB", (8, 8), (17, 24, 39) if self.theme == "dark" else (255, 255, 255)).save(path, "PNG")

    async def close(self) -> None:
        self._closed = True

    def kill(self) -> None:
        """Simulate the browser dying underneath the harness."""
        self._closed = True
