"""Assertions over observed state.

Three shapes cover every scenario:

(a) presence     - an element or a cookie exists
(b) persistence  - a value read on page A equals the value read on page B
(c) state change - the value after an action differs from the value before,
                   in the expected direction

Each assertion returns a ``Check`` carrying the concrete expected and
observed values; ``require`` turns a failed check into ``AssertionFailure``.
"""
from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, List, Mapping, Optional

from golobe_e2e.contract import SelectorSpec
from golobe_e2e.errors import AssertionFailure
from golobe_e2e.interaction import try_locate
from golobe_e2e.probes import UNKNOWN_LOCALE, ObservedState, ThemeMode, is_session_cookie
from golobe_e2e.session import PageHandle


def _plain(value: Any) -> Any:
    return value.value if isinstance(value, Enum) else value


@dataclass(frozen=True)
class Check:
    """Outcome of one assertion, kept as a diagnostic either way."""

    label: str
    passed: bool
    expected: Any
    observed: Any
    detail: str = ""

    def as_diagnostic(self) -> Dict[str, Any]:
        diagnostic = {
            "check": self.label,
            "passed": self.passed,
            "expected": _plain(self.expected),
            "observed": _plain(self.observed),
        }
        if self.detail:
            diagnostic["detail"] = self.detail
        return diagnostic

    def __str__(self) -> str:
        status = "ok" if self.passed else "FAILED"
        text = f"{self.label}: {status} (expected {_plain(self.expected)!r}, observed {_plain(self.observed)!r})"
        return f"{text} - {self.detail}" if self.detail else text


def require(check: Check) -> Check:
    """Return ``check`` if it passed, raise ``AssertionFailure`` otherwise."""
    if not check.passed:
        raise AssertionFailure(check)
    return check


class Delta:
    """Expected direction of a state change."""

    CHANGED = "changed"
    UNCHANGED = "unchanged"

    def __init__(self, kind: str, target: Any = None) -> None:
        self.kind = kind
        self.target = target

    @classmethod
    def to(cls, target: Any) -> "Delta":
        return cls("to", target)

    @classmethod
    def changed(cls) -> "Delta":
        return cls(cls.CHANGED)

    @classmethod
    def unchanged(cls) -> "Delta":
        return cls(cls.UNCHANGED)

    def describe(self, before: Any) -> str:
        if self.kind == "to":
            return f"{_plain(before)!r} -> {_plain(self.target)!r}"
        if self.kind == self.CHANGED:
            return f"anything but {_plain(before)!r}"
        return f"still {_plain(before)!r}"

    def __repr__(self) -> str:
        return f"Delta({self.kind}{'' if self.target is None else ', ' + repr(_plain(self.target))})"


# ---- (a) presence --------------------------------------------------------------

async def assert_present(handle: PageHandle, spec: SelectorSpec, within_ms: Optional[int] = None) -> Check:
    present = await try_locate(handle, spec, within_ms)
    return Check(
        label=f"present:{spec.name}",
        passed=present,
        expected="present",
        observed="present" if present else "absent",
        detail="" if present else f"tried {', '.join(spec.candidates)} on {handle.url}",
    )


async def assert_absent(handle: PageHandle, spec: SelectorSpec, within_ms: Optional[int] = None) -> Check:
    present = await try_locate(handle, spec, within_ms)
    return Check(
        label=f"absent:{spec.name}",
        passed=not present,
        expected="absent",
        observed="present" if present else "absent",
    )


async def assert_cookie_present(handle: PageHandle, name: Optional[str] = None) -> Check:
    """Cookie ``name`` exists; with no name, any session cookie does."""
    names = [cookie.get("name", "") for cookie in await handle.driver.read_cookies()]
    if name is None:
        passed = any(is_session_cookie(n) for n in names)
        label = "cookie:session"
    else:
        passed = name in names
        label = f"cookie:{name}"
    return Check(label=label, passed=passed, expected="present", observed=sorted(names))


def assert_url_contains(handle: PageHandle, fragment: str) -> Check:
    url = handle.url
    return Check(label=f"url~{fragment}", passed=fragment in url, expected=fragment, observed=url)


def assert_equal(label: str, expected: Any, observed: Any, detail: str = "") -> Check:
    return Check(label=label, passed=_plain(expected) == _plain(observed), expected=expected, observed=observed, detail=detail)


# ---- (b) persistence -----------------------------------------------------------

def assert_persisted(field_name: str, before: ObservedState, after: ObservedState) -> Check:
    """Value read on page A equals the value read on page B.

    An unresolved value on page A fails the check.
    """
    expected = before.get(field_name)
    observed = after.get(field_name)
    detail = f"{before.url or '?'} -> {after.url or '?'}"
    unresolved = _plain(expected) in (ThemeMode.UNKNOWN.value, UNKNOWN_LOCALE)
    if unresolved:
        detail = f"{field_name} unresolved on {before.url or '?'}"
    return Check(
        label=f"persisted:{field_name}",
        passed=not unresolved and _plain(expected) == _plain(observed),
        expected=expected,
        observed=observed,
        detail=detail,
    )


# ---- (c) state change ----------------------------------------------------------

def assert_changed(field_name: str, before: ObservedState, after: ObservedState, delta: Optional[Delta] = None) -> Check:
    delta = delta or Delta.changed()
    old = _plain(before.get(field_name))
    new = _plain(after.get(field_name))
    if delta.kind == "to":
        passed = new == _plain(delta.target)
    elif delta.kind == Delta.CHANGED:
        passed = new != old
    else:
        passed = new == old
    return Check(
        label=f"{delta.kind}:{field_name}",
        passed=passed,
        expected=delta.describe(old),
        observed=f"{old!r} -> {new!r}",
    )


def assert_transition(before: ObservedState, after: ObservedState, expected: Mapping[str, Delta]) -> List[Check]:
    """One check per field named in ``expected``; unnamed fields are ignored."""
    return [assert_changed(name, before, after, delta) for name, delta in expected.items()]


def failed(checks: List[Check]) -> List[Check]:
    return [check for check in checks if not check.passed]
