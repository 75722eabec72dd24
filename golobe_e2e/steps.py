"""Step builders used by the scenario catalog.

Selector arguments are names in the selector contract; keyword params fill
the contract's templates (``click("locale_option", code="fr")``). Values
may be plain strings or callables taking the ``StepContext``, for data only
known at run time such as credentials.
"""
from __future__ import annotations

from typing import Any, Awaitable, Callable, List, Optional, Union

from golobe_e2e import flows, interaction
from golobe_e2e.config import settings
from golobe_e2e.contract import locale_path, selectors
from golobe_e2e.probes import observe
from golobe_e2e.runner import Step, StepContext, StepKind
from golobe_e2e.verification import (
    Check,
    Delta,
    assert_changed,
    assert_cookie_present,
    assert_equal,
    assert_persisted,
    assert_present,
    assert_url_contains,
)

Value = Union[str, Callable[[StepContext], str]]
CheckFn = Callable[[StepContext], Awaitable[Union[Check, List[Check]]]]


def _resolve(value: Value, ctx: StepContext) -> str:
    return value(ctx) if callable(value) else value


def navigate(path: str, locale: Optional[str] = None, name: Optional[str] = None, required: bool = True) -> Step:
    target = locale_path(path, locale) if locale else path

    async def _navigate(ctx: StepContext) -> Any:
        return await interaction.navigate(ctx.handle, settings.url(target))

    return Step(name or f"open {target}", StepKind.NAVIGATE, _navigate, required)


def fill(selector: str, value: Value, required: bool = True, name: Optional[str] = None, **params: str) -> Step:
    async def _fill(ctx: StepContext) -> str:
        return await interaction.act(
            ctx.handle, selectors().get(selector, **params), interaction.Action.FILL, _resolve(value, ctx)
        )

    return Step(name or f"fill {selector}", StepKind.FILL, _fill, required)


def click(selector: str, required: bool = True, name: Optional[str] = None, **params: str) -> Step:
    async def _click(ctx: StepContext) -> str:
        return await interaction.act(ctx.handle, selectors().get(selector, **params), interaction.Action.CLICK)

    return Step(name or f"click {selector}", StepKind.CLICK, _click, required)


def wait_for(selector: str, within_ms: Optional[int] = None, required: bool = True, name: Optional[str] = None, **params: str) -> Step:
    """Wait until ``selector`` is visible; a required wait fails with an assertion."""

    async def _wait(ctx: StepContext) -> Check:
        budget = within_ms if within_ms is not None else settings.timeouts.action_ms
        return ctx.expect(await assert_present(ctx.handle, selectors().get(selector, **params), budget))

    return Step(name or f"wait for {selector}", StepKind.WAIT, _wait, required)


def probe(key: str, name: Optional[str] = None) -> Step:
    """Snapshot theme, locale and auth state into ``ctx.values[key]``."""

    async def _probe(ctx: StepContext) -> Any:
        return ctx.remember(key, await observe(ctx.handle))

    return Step(name or f"observe {key}", StepKind.PROBE, _probe)


def verify(name: str, check_fn: CheckFn, required: bool = True) -> Step:
    async def _verify(ctx: StepContext) -> List[Check]:
        result = await check_fn(ctx)
        checks = result if isinstance(result, list) else [result]
        for check in checks:
            ctx.expect(check)
        return checks

    return Step(name, StepKind.VERIFY, _verify, required)


def flow(name: str, fn: Callable[[StepContext], Awaitable[Any]], into: Optional[str] = None, required: bool = True) -> Step:
    """Run a flow helper; its return value is kept under ``into`` when given."""

    async def _flow(ctx: StepContext) -> Any:
        result = await fn(ctx)
        if into:
            ctx.remember(into, result)
        return result

    return Step(name, StepKind.FLOW, _flow, required)


def capture(label: str) -> Step:
    async def _capture(ctx: StepContext) -> Any:
        return await ctx.artifacts.capture(ctx.handle, label)

    return Step(f"capture {label}", StepKind.CAPTURE, _capture, required=False)


# ---- verification shorthands ---------------------------------------------------

def present(selector: str, required: bool = True, within_ms: Optional[int] = None, **params: str) -> Step:
    async def _check(ctx: StepContext) -> Check:
        return await assert_present(ctx.handle, selectors().get(selector, **params), within_ms)

    return verify(f"{selector} present", _check, required)


def url_contains(fragment: str, required: bool = True) -> Step:
    async def _check(ctx: StepContext) -> Check:
        return assert_url_contains(ctx.handle, fragment)

    return verify(f"url contains {fragment}", _check, required)


def cookie_present(cookie_name: Optional[str] = None, required: bool = True) -> Step:
    async def _check(ctx: StepContext) -> Check:
        return await assert_cookie_present(ctx.handle, cookie_name)

    return verify(f"cookie {cookie_name or 'session'} present", _check, required)


def persisted(field_name: str, before: str, after: str) -> Step:
    async def _check(ctx: StepContext) -> Check:
        return assert_persisted(field_name, ctx.recall(before), ctx.recall(after))

    return verify(f"{field_name} persisted {before} -> {after}", _check)


def changed(field_name: str, before: str, after: str, delta: Optional[Delta] = None) -> Step:
    async def _check(ctx: StepContext) -> Check:
        return assert_changed(field_name, ctx.recall(before), ctx.recall(after), delta)

    return verify(f"{field_name} {(delta or Delta.changed()).kind} {before} -> {after}", _check)


def equals(label: str, key: str, expected: Any, attribute: Optional[str] = None) -> Step:
    """Recorded value (or one of its attributes) equals ``expected``."""

    async def _check(ctx: StepContext) -> Check:
        value = ctx.recall(key)
        observed = getattr(value, attribute) if attribute else value
        return assert_equal(label, expected, observed)

    return verify(label, _check)


# ---- shared preconditions ------------------------------------------------------

def dismiss_consent() -> Step:
    async def _dismiss(ctx: StepContext) -> bool:
        return await flows.dismiss_consent_if_present(ctx.handle)

    return Step("dismiss consent banner", StepKind.FLOW, _dismiss, required=False)


def login(into: str = "auth") -> Step:
    """Authenticated precondition with the configured test account."""

    async def _login(ctx: StepContext) -> Any:
        return ctx.remember(into, await flows.require_authenticated(ctx.handle, ctx.credentials))

    return Step("log in", StepKind.FLOW, _login)
