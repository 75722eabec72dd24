"""Driver boundary: the capability set the harness needs from a browser.

``Browser`` is the Playwright implementation. Anything else satisfying
``Driver`` (the in-memory ``mock_app.MockDriver`` for instance) can stand
in for it.
"""
from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional, Protocol, runtime_checkable

from playwright.async_api import BrowserContext, Error as PlaywrightError, Locator, Page
from playwright.async_api import TimeoutError as PlaywrightTimeout

from golobe_e2e.errors import InfrastructureError, ToolError

logger = logging.getLogger(__name__)

VERBS = ("click", "fill", "check", "uncheck", "select", "hover", "press", "upload")

# Playwright error fragments meaning the page, the browser or the server is gone.
_INFRASTRUCTURE_MARKERS = (
    "Target page, context or browser has been closed",
    "Target closed",
    "Browser has been closed",
    "Connection closed",
    "net::ERR_CONNECTION_REFUSED",
    "net::ERR_NAME_NOT_RESOLVED",
    "net::ERR_CONNECTION_RESET",
    "net::ERR_ADDRESS_UNREACHABLE",
    "NS_ERROR_CONNECTION_REFUSED",
)


def is_infrastructure_failure(exc: BaseException) -> bool:
    text = str(exc)
    return any(marker in text for marker in _INFRASTRUCTURE_MARKERS)


@runtime_checkable
class Driver(Protocol):
    """Capabilities the harness core calls on a live browsing context."""

    @property
    def url(self) -> str: ...

    @property
    def is_closed(self) -> bool: ...

    async def navigate(self, url: str, timeout_ms: int) -> Optional[int]: ...

    async def locate(self, selector: str, timeout_ms: int) -> Optional[Any]: ...

    async def act(self, element: Any, verb: str, value: Optional[str], timeout_ms: int) -> None: ...

    async def read_attribute(self, element: Any, name: str) -> Optional[str]: ...

    async def read_text(self, element: Any) -> str: ...

    async def input_value(self, element: Any) -> str: ...

    async def read_cookies(self) -> List[Dict[str, Any]]: ...

    async def computed_style(self, selector: str, prop: str) -> Optional[str]: ...

    async def wait_for_idle(self, timeout_ms: int) -> None: ...

    async def screenshot(self, path: str) -> None: ...

    async def close(self) -> None: ...


class Browser:
    """Playwright-backed driver over one page in its own context."""

    def __init__(self, page: Page, context: Optional[BrowserContext] = None) -> None:
        self._page = page
        self._context = context or page.context
        self._closed = False

    @property
    def page(self) -> Page:
        return self._page

    @property
    def url(self) -> str:
        return self._page.url

    @property
    def is_closed(self) -> bool:
        return self._closed or self._page.is_closed()

    def _fail(self, name: str, payload: Dict[str, Any], exc: Exception) -> Exception:
        if self.is_closed or is_infrastructure_failure(exc):
            return InfrastructureError(f"{name}: {exc}", payload)
        return ToolError(name=name, payload=payload, message=str(exc))

    async def navigate(self, url: str, timeout_ms: int = 30000) -> Optional[int]:
        """Navigate to URL and return the response status.

        Note: "networkidle" can time out on pages holding long-polling or
        WebSocket connections; in that case retry with "domcontentloaded".
        """
        try:
            response = await self._page.goto(url, wait_until="networkidle", timeout=timeout_ms)
        except PlaywrightTimeout:
            try:
                response = await self._page.goto(url, wait_until="domcontentloaded", timeout=timeout_ms)
            except PlaywrightTimeout as exc:
                raise InfrastructureError(f"navigate: no response from {url} within {timeout_ms}ms", {"url": url}) from exc
            except PlaywrightError as exc:
                raise self._fail("navigate", {"url": url}, exc) from exc
        except PlaywrightError as exc:
            raise self._fail("navigate", {"url": url}, exc) from exc
        status = response.status if response else None
        if status is not None and status >= 500:
            raise InfrastructureError(f"HTTP {status} from application", {"url": url})
        return status

    async def locate(self, selector: str, timeout_ms: int) -> Optional[Locator]:
        """Return the first visible match, or None once ``timeout_ms`` elapses."""
        locator = self._page.locator(selector).first
        try:
            await locator.wait_for(state="visible", timeout=timeout_ms)
        except PlaywrightTimeout:
            return None
        except PlaywrightError as exc:
            if self.is_closed or is_infrastructure_failure(exc):
                raise InfrastructureError(f"locate: {exc}", {"selector": selector})
            # Invalid selector syntax for this engine counts as "not found".
            logger.debug("Selector %s rejected by driver: %s", selector, exc)
            return None
        return locator

    async def act(self, element: Locator, verb: str, value: Optional[str] = None, timeout_ms: int = 5000) -> None:
        """Perform ``verb`` once Playwright reports the element actionable."""
        payload = {"verb": verb, "value": value}
        try:
            if verb == "click":
                await element.click(timeout=timeout_ms)
            elif verb == "fill":
                await element.fill(value or "", timeout=timeout_ms)
            elif verb == "check":
                await element.check(timeout=timeout_ms)
            elif verb == "uncheck":
                await element.uncheck(timeout=timeout_ms)
            elif verb == "select":
                await element.select_option(value, timeout=timeout_ms)
            elif verb == "hover":
                await element.hover(timeout=timeout_ms)
            elif verb == "press":
                await element.press(value or "Enter", timeout=timeout_ms)
            elif verb == "upload":
                await element.set_input_files(value or [], timeout=timeout_ms)
            else:
                raise ValueError(f"Unsupported verb '{verb}' (expected one of {VERBS})")
        except PlaywrightError as exc:
            raise self._fail(verb, payload, exc)

    async def read_attribute(self, element: Locator, name: str) -> Optional[str]:
        try:
            return await element.get_attribute(name, timeout=2000)
        except PlaywrightTimeout:
            return None
        except PlaywrightError as exc:
            raise self._fail("read_attribute", {"name": name}, exc)

    async def input_value(self, element: Locator) -> str:
        """Live value of an input, as typed or bound, not its HTML attribute."""
        try:
            return await element.input_value(timeout=2000)
        except PlaywrightTimeout:
            return ""
        except PlaywrightError as exc:
            raise self._fail("input_value", {}, exc)

    async def read_text(self, element: Locator) -> str:
        try:
            return (await element.text_content(timeout=2000)) or ""
        except PlaywrightTimeout:
            return ""
        except PlaywrightError as exc:
            raise self._fail("read_text", {}, exc)

    async def read_cookies(self) -> List[Dict[str, Any]]:
        try:
            return [dict(cookie) for cookie in await self._context.cookies()]
        except PlaywrightError as exc:
            raise self._fail("read_cookies", {}, exc)

    async def computed_style(self, selector: str, prop: str) -> Optional[str]:
        try:
            return await self._page.evaluate(
                """([selector, prop]) => {
                    const el = document.querySelector(selector);
                    return el ? window.getComputedStyle(el).getPropertyValue(prop) : null;
                }""",
                [selector, prop],
            )
        except PlaywrightError as exc:
            raise self._fail("computed_style", {"selector": selector, "prop": prop}, exc)

    async def wait_for_idle(self, timeout_ms: int) -> None:
        """Wait for network idle; a busy page past the budget is not an error."""
        try:
            await self._page.wait_for_load_state("networkidle", timeout=timeout_ms)
        except PlaywrightTimeout:
            logger.debug("Network not idle after %sms on %s", timeout_ms, self.url)
        except PlaywrightError as exc:
            raise self._fail("wait_for_idle", {}, exc)

    async def screenshot(self, path: str) -> None:
        try:
            await self._page.screenshot(path=path, full_page=True)
        except PlaywrightError as exc:
            raise self._fail("screenshot", {"path": path}, exc)

    async def close(self) -> None:
        if self._closed:
            return
        self._closed = True
        try:
            await self._context.close()
        except PlaywrightError as exc:
            logger.warning("Error closing browser context: %s", exc)
