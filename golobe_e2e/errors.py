"""Error taxonomy shared by the harness layers.

Propagation policy:
- optional absence is not an error (debug log only, swallowed at the
  interaction primitive)
- ``ScenarioFailure`` subclasses end the current scenario as FAILED
- ``InfrastructureError`` ends the scenario as ABORTED and, by default,
  stops the rest of the suite
"""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, Optional


class HarnessError(Exception):
    """Base class for every error raised by the harness."""


@dataclass(eq=False)
class ToolError(HarnessError):
    """Raised when a single driver operation fails."""

    name: str
    payload: Dict[str, Any]
    message: str

    def __str__(self) -> str:  # pragma: no cover - human readable helper
        return f"{self.name} failed ({self.message}) with payload={self.payload}"


@dataclass(eq=False)
class InfrastructureError(HarnessError):
    """Driver, browser or application unreachable, or the page handle is gone."""

    message: str
    payload: Dict[str, Any] = field(default_factory=dict)

    def __str__(self) -> str:
        if self.payload:
            return f"{self.message} ({self.payload})"
        return self.message


class ScenarioFailure(HarnessError):
    """Failure that terminates only the scenario it happened in."""

    def describe(self) -> Dict[str, Any]:
        return {"error": type(self).__name__, "message": str(self)}


@dataclass(eq=False)
class ActionUnavailable(ScenarioFailure):
    """A required element never became actionable within its budget."""

    selector: str
    action: str
    within_ms: int
    candidates: tuple = ()

    def __str__(self) -> str:
        tried = ", ".join(self.candidates) if self.candidates else self.selector
        return f"'{self.selector}' not actionable for {self.action} within {self.within_ms}ms (tried: {tried})"

    def describe(self) -> Dict[str, Any]:
        return {
            "error": "ActionUnavailable",
            "selector": self.selector,
            "action": self.action,
            "within_ms": self.within_ms,
            "candidates": list(self.candidates),
        }


class AssertionFailure(ScenarioFailure):
    """Observed state contradicts the expected state."""

    def __init__(self, check: Any) -> None:
        super().__init__(str(check))
        self.check = check

    def describe(self) -> Dict[str, Any]:
        described = {"error": "AssertionFailure"}
        described.update(self.check.as_diagnostic())
        return described


@dataclass(eq=False)
class AuthFlowError(ScenarioFailure):
    """Login submit produced neither an authenticated state nor a surfaced error."""

    message: str
    url: Optional[str] = None
    error_message: Optional[str] = None

    def __str__(self) -> str:
        parts = [self.message]
        if self.error_message:
            parts.append(f"surfaced error: {self.error_message!r}")
        if self.url:
            parts.append(f"at {self.url}")
        return "; ".join(parts)

    def describe(self) -> Dict[str, Any]:
        return {
            "error": "AuthFlowError",
            "message": self.message,
            "url": self.url,
            "surfaced_error": self.error_message,
        }
