"""Resilient "find an element, maybe act on it" primitive.

Lookups never raise on absence: absence is a valid outcome. ``act`` is the
one place where absence turns into ``ActionUnavailable``, and callers only
use it for affordances the scenario cannot do without; optional
affordances go through ``act_if_present``.

Synchronisation is tied to observable predicates (element visible, driver
reports it actionable, network idle). Elapsed time is only ever the upper
bound of a wait.
"""
from __future__ import annotations

import logging
from enum import Enum
from typing import Any, Awaitable, Callable, Optional, Tuple, TypeVar

import anyio

from golobe_e2e.config import settings
from golobe_e2e.contract import SelectorSpec
from golobe_e2e.errors import ActionUnavailable, ToolError
from golobe_e2e.session import PageHandle

logger = logging.getLogger(__name__)

T = TypeVar("T")

# Per-candidate slice within one polling round.
ROUND_SLICE_MS = 250
POLL_INTERVAL_S = 0.05


class Action(str, Enum):
    CLICK = "click"
    FILL = "fill"
    CHECK = "check"
    UNCHECK = "uncheck"
    SELECT = "select"
    HOVER = "hover"
    PRESS = "press"
    UPLOAD = "upload"


def _remaining_ms(deadline: float) -> int:
    return max(0, int((deadline - anyio.current_time()) * 1000))


async def locate(
    handle: PageHandle,
    spec: SelectorSpec,
    within_ms: Optional[int] = None,
) -> Optional[Tuple[str, Any]]:
    """Return ``(selector, element)`` for the best-ranked visible candidate.

    Candidates are polled in rank order each round until one resolves or
    ``within_ms`` is spent. Returns None on absence.
    """
    budget = settings.timeouts.probe_ms if within_ms is None else within_ms
    deadline = anyio.current_time() + budget / 1000
    driver = handle.driver
    while True:
        for selector in spec.candidates:
            remaining = _remaining_ms(deadline)
            slice_ms = max(1, min(remaining, ROUND_SLICE_MS))
            element = await driver.locate(selector, slice_ms)
            if element is not None:
                if selector != spec.primary:
                    logger.debug("%s resolved by fallback candidate %s", spec.name, selector)
                return selector, element
        if anyio.current_time() >= deadline:
            logger.debug("%s absent after %sms (tried %s)", spec.name, budget, ", ".join(spec.candidates))
            return None
        await anyio.sleep(min(POLL_INTERVAL_S, max(0.0, deadline - anyio.current_time())))


async def try_locate(handle: PageHandle, spec: SelectorSpec, within_ms: Optional[int] = None) -> bool:
    """True if any candidate of ``spec`` becomes visible within the budget."""
    return await locate(handle, spec, within_ms) is not None


async def act(
    handle: PageHandle,
    spec: SelectorSpec,
    action: Action | str = Action.CLICK,
    value: Optional[str] = None,
    within_ms: Optional[int] = None,
    settle_after: bool = True,
) -> str:
    """Perform ``action`` on ``spec`` once it is actionable.

    Raises ``ActionUnavailable`` if no candidate becomes visible and
    actionable within ``within_ms``. Returns the selector that was used.
    """
    verb = Action(action).value
    budget = settings.timeouts.action_ms if within_ms is None else within_ms
    deadline = anyio.current_time() + budget / 1000
    found = await locate(handle, spec, budget)
    if found is None:
        raise ActionUnavailable(selector=spec.name, action=verb, within_ms=budget, candidates=spec.candidates)
    selector, element = found
    try:
        await handle.driver.act(element, verb, value, max(1, _remaining_ms(deadline)))
    except ToolError as exc:
        logger.debug("%s on %s failed: %s", verb, selector, exc.message)
        raise ActionUnavailable(
            selector=selector, action=verb, within_ms=budget, candidates=spec.candidates
        ) from exc
    logger.debug("%s %s%s", verb, selector, f" <- {value!r}" if verb == "fill" else "")
    if settle_after:
        await settle(handle)
    return selector


async def act_if_present(
    handle: PageHandle,
    spec: SelectorSpec,
    action: Action | str = Action.CLICK,
    value: Optional[str] = None,
    within_ms: Optional[int] = None,
) -> bool:
    """Optional variant of ``act``: absence is logged at debug level only."""
    try:
        await act(handle, spec, action, value, within_ms)
    except ActionUnavailable as exc:
        logger.debug("Optional affordance absent: %s", exc)
        return False
    return True


async def read_value(handle: PageHandle, spec: SelectorSpec, attribute: str, within_ms: Optional[int] = None) -> Optional[str]:
    """Attribute of the first resolved candidate, or None when absent."""
    found = await locate(handle, spec, within_ms)
    if found is None:
        return None
    return await handle.driver.read_attribute(found[1], attribute)


async def read_input_value(handle: PageHandle, spec: SelectorSpec, within_ms: Optional[int] = None) -> Optional[str]:
    """Live value of the first resolved input, or None when absent."""
    found = await locate(handle, spec, within_ms)
    if found is None:
        return None
    return await handle.driver.input_value(found[1])


async def read_text(handle: PageHandle, spec: SelectorSpec, within_ms: Optional[int] = None) -> Optional[str]:
    """Text content of the first resolved candidate, or None when absent."""
    found = await locate(handle, spec, within_ms)
    if found is None:
        return None
    return (await handle.driver.read_text(found[1])).strip()


async def wait_until(
    predicate: Callable[[], Awaitable[T]],
    within_ms: Optional[int] = None,
    interval_ms: int = 200,
) -> Optional[T]:
    """Poll ``predicate`` until it returns a truthy value or the budget ends.

    Returns the truthy value, or None on timeout.
    """
    budget = settings.timeouts.action_ms if within_ms is None else within_ms
    deadline = anyio.current_time() + budget / 1000
    while True:
        result = await predicate()
        if result:
            return result
        if anyio.current_time() >= deadline:
            return None
        await anyio.sleep(min(interval_ms / 1000, max(0.0, deadline - anyio.current_time())))


async def settle(handle: PageHandle, within_ms: Optional[int] = None) -> None:
    """Bounded settling allowance: wait for network idle, capped by UI_SETTLE_MS."""
    budget = settings.timeouts.settle_ms if within_ms is None else within_ms
    if budget <= 0:
        return
    await handle.driver.wait_for_idle(budget)


async def navigate(handle: PageHandle, url: str, within_ms: Optional[int] = None) -> Optional[int]:
    """Navigate and wait for the page to go idle."""
    budget = settings.timeouts.navigation_ms if within_ms is None else within_ms
    status = await handle.driver.navigate(url, budget)
    await handle.driver.wait_for_idle(settings.timeouts.probe_ms)
    logger.debug("Navigated to %s (status=%s)", handle.url, status)
    return status
