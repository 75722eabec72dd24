"""Shared configuration for the end-to-end harness.

Values come from the environment, with the test account optionally read
from a JSON credential state file:

    {"test_user": {"email": "...", "password": "..."}}

Environment variables (TEST_USER_EMAIL / TEST_USER_PASSWORD) win over the
state file. The credential source is read-only; the harness never
generates or rotates the test account.
"""
from __future__ import annotations

import json
import logging
import os
from contextlib import contextmanager
from copy import deepcopy
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, Iterator, List, Optional
from urllib.parse import urljoin

logger = logging.getLogger(__name__)

DEFAULT_BASE_URL = "http://127.0.0.1:3000"
DEFAULT_STATE_FILE = "credentials_state.json"


@dataclass(frozen=True)
class Credentials:
    """Pre-provisioned test account (identifier + secret)."""

    email: str
    password: str

    @property
    def is_complete(self) -> bool:
        return bool(self.email and self.password)

    def __repr__(self) -> str:
        return f"Credentials(email={self.email!r}, password={'*' * len(self.password)})"


@dataclass
class TargetProfile:
    """Concrete host + credentials for one application under test."""

    name: str
    base_url: str
    credentials: Credentials
    locale_cookie: str = "i18n_redirected"
    theme_cookie: str = "theme"


@dataclass
class Timeouts:
    """Budgets in milliseconds, except the per-scenario budget in seconds."""

    scenario_s: float = 120.0
    action_ms: int = 5000
    probe_ms: int = 3000
    settle_ms: int = 500
    navigation_ms: int = 30000


@dataclass
class BrowserOptions:
    browser_type: str = "chromium"
    headless: bool = True
    viewport: Dict[str, int] = field(default_factory=lambda: {"width": 1280, "height": 720})


def _env_bool(name: str, default: str) -> bool:
    return os.getenv(name, default).lower() in {"true", "1", "yes"}


def load_credentials(state_file: Optional[Path] = None) -> Credentials:
    """Load the test account: env overrides > JSON state file > empty."""
    email = ""
    password = ""
    path = state_file or Path(os.getenv("CREDENTIALS_STATE_FILE", DEFAULT_STATE_FILE))
    if path.exists():
        try:
            with open(path, encoding="utf-8") as f:
                state = json.load(f)
        except (OSError, json.JSONDecodeError) as exc:
            raise RuntimeError(f"Credential state file {path} is unreadable: {exc}") from exc
        user = state.get("test_user", {})
        email = user.get("email", "")
        password = user.get("password", "")
        logger.debug("Loaded test account from %s", path)
    email = os.getenv("TEST_USER_EMAIL") or email
    password = os.getenv("TEST_USER_PASSWORD") or password
    if not (email and password):
        logger.debug("No test account configured (TEST_USER_EMAIL / %s)", path)
    return Credentials(email=email, password=password)


class HarnessConfig:
    """Configuration read from the environment.

    Timeouts and browser options are shared by every profile; the active
    profile supplies the base URL, cookies and credentials.
    """

    def __init__(self) -> None:
        self.browser = BrowserOptions(
            browser_type=os.getenv("PLAYWRIGHT_BROWSER", "chromium"),
            headless=_env_bool("PLAYWRIGHT_HEADLESS", "true"),
            viewport={
                "width": int(os.getenv("UI_VIEWPORT_WIDTH", "1280")),
                "height": int(os.getenv("UI_VIEWPORT_HEIGHT", "720")),
            },
        )
        self.timeouts = Timeouts(
            scenario_s=float(os.getenv("UI_SCENARIO_TIMEOUT", "120")),
            action_ms=int(os.getenv("UI_ACTION_TIMEOUT_MS", "5000")),
            probe_ms=int(os.getenv("UI_PROBE_TIMEOUT_MS", "3000")),
            settle_ms=int(os.getenv("UI_SETTLE_MS", "500")),
            navigation_ms=int(os.getenv("UI_NAVIGATION_TIMEOUT_MS", "30000")),
        )
        self.screenshot_dir = Path(os.getenv("SCREENSHOT_DIR", "artifacts/screenshots"))
        self.screenshot_format = os.getenv("SCREENSHOT_FORMAT", "png")
        selectors_file = os.getenv("UI_SELECTORS_FILE")
        self.selectors_file: Optional[Path] = Path(selectors_file) if selectors_file else None

        primary = TargetProfile(
            name="primary",
            base_url=os.getenv("UI_BASE_URL", DEFAULT_BASE_URL),
            credentials=load_credentials(),
            locale_cookie=os.getenv("UI_LOCALE_COOKIE", "i18n_redirected"),
            theme_cookie=os.getenv("UI_THEME_COOKIE", "theme"),
        )
        self._profiles: Dict[str, TargetProfile] = {primary.name: primary}
        self._active: TargetProfile = primary

    # ---- active profile helpers -------------------------------------------------
    @property
    def base_url(self) -> str:
        return self._active.base_url

    @property
    def credentials(self) -> Credentials:
        return self._active.credentials

    @property
    def locale_cookie(self) -> str:
        return self._active.locale_cookie

    @property
    def theme_cookie(self) -> str:
        return self._active.theme_cookie

    @property
    def profile(self) -> TargetProfile:
        return self._active

    # ---- profile orchestration --------------------------------------------------
    def profiles(self) -> List[TargetProfile]:
        return list(self._profiles.values())

    def add_profile(self, profile: TargetProfile) -> None:
        self._profiles[profile.name] = profile

    @contextmanager
    def use_profile(self, profile: TargetProfile) -> Iterator[TargetProfile]:
        """Temporarily switch the active profile to a copy of ``profile``."""
        previous = self._active
        self._active = deepcopy(profile)
        try:
            yield self._active
        finally:
            self._active = previous

    # ---- utility helpers --------------------------------------------------------
    def url(self, path: str) -> str:
        """Return an absolute URL for the provided path."""
        return urljoin(self.base_url.rstrip("/") + "/", path.lstrip("/"))


# Singleton instance - initialized on first import
settings = HarnessConfig()
