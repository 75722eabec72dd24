"""Theme and locale journeys: defaults, switching and persistence."""
from __future__ import annotations

from typing import List

from golobe_e2e import flows, steps
from golobe_e2e.contract import DEFAULT_LOCALE, SUPPORTED_LOCALES, AppPage
from golobe_e2e.probes import ThemeMode
from golobe_e2e.runner import Scenario, StepContext
from golobe_e2e.verification import Check, Delta

THEME = frozenset({"theme"})
I18N = frozenset({"i18n"})


async def _toggle(ctx: StepContext) -> ThemeMode:
    return await flows.toggle_theme(ctx.handle)


def _switch_to(code: str):
    async def _switch(ctx: StepContext) -> str:
        return await flows.switch_locale(ctx.handle, code)

    return _switch


async def _theme_resolved(ctx: StepContext) -> Check:
    theme = ctx.recall("initial").theme
    return Check(
        label="theme resolved",
        passed=theme is not ThemeMode.UNKNOWN,
        expected="light or dark",
        observed=theme,
        detail=f"sources: {[r.source for r in ctx.recall('initial').sources['theme'].readings]}",
    )


def default_theme() -> Scenario:
    return Scenario(
        "theme.default",
        (
            steps.navigate(AppPage.INDEX),
            steps.dismiss_consent(),
            steps.probe("initial"),
            steps.verify("theme is readable", _theme_resolved),
            steps.capture("theme-default"),
        ),
        description="A theme can be read on first load",
        tags=THEME,
    )


def toggle_round_trip() -> Scenario:
    return Scenario(
        "theme.toggle-round-trip",
        (
            steps.navigate(AppPage.INDEX),
            steps.dismiss_consent(),
            steps.probe("initial"),
            steps.capture("theme-before-switch"),
            steps.flow("toggle theme", _toggle),
            steps.probe("toggled"),
            steps.changed("theme", "initial", "toggled", Delta.changed()),
            steps.capture("theme-after-switch"),
            steps.flow("toggle theme back", _toggle),
            steps.probe("final"),
            steps.persisted("theme", "initial", "final"),
        ),
        description="Toggling twice changes the theme and then restores it",
        tags=THEME,
    )


def theme_persistence() -> Scenario:
    return Scenario(
        "theme.persistence",
        (
            steps.navigate(AppPage.INDEX),
            steps.dismiss_consent(),
            steps.probe("initial"),
            steps.flow("toggle theme", _toggle),
            steps.probe("toggled"),
            steps.changed("theme", "initial", "toggled", Delta.changed()),
            steps.navigate(AppPage.FLIGHTS),
            steps.probe("next_page"),
            steps.persisted("theme", "toggled", "next_page"),
            steps.capture("theme-persistence-check"),
        ),
        description="A toggled theme survives navigation to another page",
        tags=THEME,
    )


def default_locale() -> Scenario:
    return Scenario(
        "i18n.default-locale",
        (
            steps.navigate(AppPage.INDEX),
            steps.dismiss_consent(),
            steps.probe("initial"),
            steps.equals("default locale", "initial", DEFAULT_LOCALE, attribute="locale"),
            steps.capture("i18n-default-locale"),
        ),
        description="Unprefixed URLs render in the default locale",
        tags=I18N,
    )


def switch_locale() -> Scenario:
    return Scenario(
        "i18n.switch-locale",
        (
            steps.navigate(AppPage.INDEX),
            steps.dismiss_consent(),
            steps.probe("before"),
            steps.flow("pick French in the locale toggler", _switch_to("fr")),
            steps.probe("switched"),
            steps.changed("locale", "before", "switched", Delta.to("fr")),
            steps.navigate(AppPage.FLIGHTS),
            steps.probe("second_page"),
            steps.persisted("locale", "switched", "second_page"),
            steps.capture("i18n-locale-switched"),
        ),
        description="Switching en -> fr persists to a second page",
        tags=I18N,
    )


def direct_locale_urls() -> Scenario:
    built = []
    for code in SUPPORTED_LOCALES:
        built.extend(
            (
                steps.navigate(AppPage.INDEX, locale=code),
                steps.probe(f"locale_{code}"),
                steps.equals(f"locale from /{code} url", f"locale_{code}", code, attribute="locale"),
            )
        )
    return Scenario(
        "i18n.direct-locale-urls",
        tuple(built),
        description="Each supported locale prefix renders in that locale",
        tags=I18N,
    )


def locale_persistence() -> Scenario:
    return Scenario(
        "i18n.locale-persistence",
        (
            steps.navigate(AppPage.INDEX, locale="fr"),
            steps.dismiss_consent(),
            steps.probe("home"),
            steps.equals("locale from /fr url", "home", "fr", attribute="locale"),
            steps.navigate(AppPage.FLIGHTS),
            steps.probe("flights"),
            steps.equals("locale kept on flights", "flights", "fr", attribute="locale"),
            steps.navigate(AppPage.STAYS),
            steps.probe("stays"),
            steps.equals("locale kept on stays", "stays", "fr", attribute="locale"),
            steps.navigate(AppPage.ACCOUNT),
            steps.probe("account"),
            steps.equals("locale kept on account", "account", "fr", attribute="locale"),
            steps.capture("i18n-locale-persistence"),
        ),
        description="A locale picked by URL is kept on unprefixed pages",
        tags=I18N,
    )


def theme_and_locale() -> Scenario:
    return Scenario(
        "i18n.theme-and-locale",
        (
            steps.navigate(AppPage.INDEX),
            steps.dismiss_consent(),
            steps.probe("initial"),
            steps.flow("toggle theme", _toggle),
            steps.flow("pick French in the locale toggler", _switch_to("fr")),
            steps.probe("configured"),
            steps.changed("theme", "initial", "configured", Delta.changed()),
            steps.changed("locale", "initial", "configured", Delta.to("fr")),
            steps.navigate(AppPage.STAYS),
            steps.probe("next_page"),
            steps.persisted("theme", "configured", "next_page"),
            steps.persisted("locale", "configured", "next_page"),
            steps.capture("theme-and-locale"),
        ),
        description="Theme and locale settings hold together across navigation",
        tags=THEME | I18N,
    )


def scenarios() -> List[Scenario]:
    return [
        default_theme(),
        toggle_round_trip(),
        theme_persistence(),
        default_locale(),
        switch_locale(),
        direct_locale_urls(),
        locale_persistence(),
        theme_and_locale(),
    ]
