"""
Scenario runner.

A scenario walks INIT -> RUNNING -> {PASSED, FAILED, ABORTED}:

- a required step that raises fails the scenario; screenshot, URL and the
  observed state are captured and the remaining steps are skipped
- an optional step that raises is logged and recorded as skipped; the
  scenario keeps RUNNING
- ``InfrastructureError`` aborts the scenario and, by default, the suite
- exceeding the scenario budget fails it with a timeout diagnostic

Each scenario runs in its own page handle, released on every exit path.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Any, Awaitable, Callable, Dict, FrozenSet, Iterable, List, Optional, Set, Tuple

import anyio

from golobe_e2e.artifacts import ArtifactSink
from golobe_e2e.config import Credentials, settings
from golobe_e2e.errors import HarnessError, InfrastructureError, ScenarioFailure
from golobe_e2e.probes import observe
from golobe_e2e.session import PageHandle, SessionManager
from golobe_e2e.verification import Check, require

logger = logging.getLogger(__name__)


class ScenarioState(str, Enum):
    INIT = "init"
    RUNNING = "running"
    PASSED = "passed"
    FAILED = "failed"
    ABORTED = "aborted"


class StepKind(str, Enum):
    NAVIGATE = "navigate"
    FILL = "fill"
    CLICK = "click"
    WAIT = "wait"
    PROBE = "probe"
    VERIFY = "verify"
    FLOW = "flow"
    CAPTURE = "capture"


StepAction = Callable[["StepContext"], Awaitable[Any]]


@dataclass(frozen=True)
class Step:
    name: str
    kind: StepKind
    action: StepAction
    required: bool = True


@dataclass(frozen=True)
class Scenario:
    """Ordered steps run against one fresh page handle."""

    scenario_id: str
    steps: Tuple[Step, ...]
    description: str = ""
    timeout_s: Optional[float] = None
    tags: FrozenSet[str] = frozenset()
    fresh_context: bool = True

    @property
    def budget_s(self) -> float:
        return self.timeout_s if self.timeout_s is not None else settings.timeouts.scenario_s


@dataclass
class StepContext:
    """What a step action gets to work with."""

    handle: PageHandle
    scenario: Scenario
    artifacts: ArtifactSink
    credentials: Credentials
    values: Dict[str, Any] = field(default_factory=dict)
    checks: List[Check] = field(default_factory=list)
    step_index: int = 0

    def remember(self, key: str, value: Any) -> Any:
        self.values[key] = value
        return value

    def recall(self, key: str) -> Any:
        if key not in self.values:
            raise KeyError(f"No value recorded under '{key}' (recorded: {sorted(self.values)})")
        return self.values[key]

    def expect(self, check: Check) -> Check:
        """Record ``check`` and raise ``AssertionFailure`` if it failed."""
        self.checks.append(check)
        return require(check)


@dataclass
class Verdict:
    scenario_id: str
    state: ScenarioState = ScenarioState.INIT
    failed_step: Optional[int] = None
    failed_step_name: Optional[str] = None
    reason: str = ""
    url: Optional[str] = None
    diagnostics: Dict[str, Any] = field(default_factory=dict)
    checks: List[Check] = field(default_factory=list)
    artifacts: List[Path] = field(default_factory=list)
    skipped: List[str] = field(default_factory=list)
    duration_s: float = 0.0

    @property
    def passed(self) -> bool:
        return self.state is ScenarioState.PASSED

    def summary(self) -> str:
        icon = {ScenarioState.PASSED: "✅", ScenarioState.FAILED: "❌", ScenarioState.ABORTED: "⛔"}.get(self.state, "•")
        lines = [f"{icon} {self.scenario_id}: {self.state.value.upper()} ({self.duration_s:.1f}s)"]
        if self.failed_step is not None:
            lines.append(f"    step {self.failed_step + 1} '{self.failed_step_name}': {self.reason}")
        elif self.reason:
            lines.append(f"    {self.reason}")
        if self.url:
            lines.append(f"    url: {self.url}")
        if self.skipped:
            lines.append(f"    skipped optional: {', '.join(self.skipped)}")
        for path in self.artifacts:
            lines.append(f"    artifact: {path}")
        return "\n".join(lines)


@dataclass
class SuiteReport:
    verdicts: List[Verdict] = field(default_factory=list)
    not_run: List[str] = field(default_factory=list)

    def by_state(self, state: ScenarioState) -> List[Verdict]:
        return [v for v in self.verdicts if v.state is state]

    @property
    def passed(self) -> bool:
        return not self.not_run and all(v.passed for v in self.verdicts)

    @property
    def exit_code(self) -> int:
        if self.by_state(ScenarioState.ABORTED):
            return 2
        return 0 if self.passed else 1

    def summary(self) -> str:
        lines = [v.summary() for v in self.verdicts]
        if self.not_run:
            lines.append(f"⏭  not run: {', '.join(self.not_run)}")
        lines.append(
            f"{len(self.verdicts)} run: {len(self.by_state(ScenarioState.PASSED))} passed, "
            f"{len(self.by_state(ScenarioState.FAILED))} failed, "
            f"{len(self.by_state(ScenarioState.ABORTED))} aborted, {len(self.not_run)} not run"
        )
        return "\n".join(lines)


def describe_exception(exc: BaseException) -> Dict[str, Any]:
    if isinstance(exc, ScenarioFailure):
        return exc.describe()
    return {"error": type(exc).__name__, "message": str(exc)}


class ScenarioRunner:
    """
    Runs scenarios sequentially, each in its own page handle.

    Usage:
        runner = ScenarioRunner(SessionManager(client.open_driver))
        report = await runner.run_suite(catalog())
    """

    def __init__(
        self,
        session_manager: SessionManager,
        artifacts: Optional[ArtifactSink] = None,
        credentials: Optional[Credentials] = None,
        abort_on_infrastructure_error: bool = True,
    ) -> None:
        self.session_manager = session_manager
        self.artifacts = artifacts or ArtifactSink()
        self.credentials = credentials
        self.abort_on_infrastructure_error = abort_on_infrastructure_error
        self._executed: Set[str] = set()

    async def run(self, scenario: Scenario) -> Verdict:
        if scenario.scenario_id in self._executed:
            raise ValueError(f"Scenario '{scenario.scenario_id}' has already been run by this runner")
        self._executed.add(scenario.scenario_id)

        verdict = Verdict(scenario_id=scenario.scenario_id)
        started = anyio.current_time()
        logger.info("▶ %s (%d steps)", scenario.scenario_id, len(scenario.steps))
        try:
            async with self.session_manager.page(scenario.scenario_id) as handle:
                verdict.state = ScenarioState.RUNNING
                ctx = StepContext(
                    handle=handle,
                    scenario=scenario,
                    artifacts=self.artifacts.scoped(scenario.scenario_id),
                    credentials=self.credentials or settings.credentials,
                )
                try:
                    with anyio.fail_after(scenario.budget_s):
                        await self._run_steps(scenario, ctx, verdict)
                except TimeoutError:
                    if verdict.state is ScenarioState.RUNNING:
                        self._fail(
                            verdict,
                            ctx.step_index,
                            scenario.steps[ctx.step_index],
                            f"Scenario budget of {scenario.budget_s}s exceeded",
                            {"error": "Timeout", "budget_s": scenario.budget_s},
                        )
                # Failure context is captured outside the scenario budget.
                if verdict.state is ScenarioState.FAILED:
                    await self._capture_failure(ctx, verdict)
                verdict.checks = list(ctx.checks)
                verdict.artifacts = list(ctx.artifacts.captured)
        except InfrastructureError as exc:
            verdict.state = ScenarioState.ABORTED
            verdict.reason = f"Infrastructure failure: {exc}"
            verdict.diagnostics.update({"error": "InfrastructureError", "message": str(exc)})
            logger.error("⛔ %s aborted: %s", scenario.scenario_id, exc)
        finally:
            verdict.duration_s = anyio.current_time() - started

        if verdict.state is ScenarioState.RUNNING:
            verdict.state = ScenarioState.PASSED
            logger.info("✅ %s passed in %.1fs", scenario.scenario_id, verdict.duration_s)
        elif verdict.state is ScenarioState.FAILED:
            logger.error("❌ %s failed at step %s: %s", scenario.scenario_id, verdict.failed_step_name, verdict.reason)
        return verdict

    async def _run_steps(self, scenario: Scenario, ctx: StepContext, verdict: Verdict) -> None:
        for index, step in enumerate(scenario.steps):
            ctx.step_index = index
            logger.debug("%s step %d/%d: %s", scenario.scenario_id, index + 1, len(scenario.steps), step.name)
            try:
                await step.action(ctx)
            except InfrastructureError:
                raise
            except Exception as exc:
                if not step.required:
                    logger.warning("Optional step '%s' skipped: %s", step.name, exc)
                    verdict.skipped.append(step.name)
                    continue
                self._fail(verdict, index, step, str(exc) or type(exc).__name__, describe_exception(exc))
                return

    @staticmethod
    def _fail(verdict: Verdict, index: int, step: Step, reason: str, diagnostics: Dict[str, Any]) -> None:
        verdict.state = ScenarioState.FAILED
        verdict.failed_step = index
        verdict.failed_step_name = step.name
        verdict.reason = reason
        verdict.diagnostics.update(diagnostics)

    async def _capture_failure(self, ctx: StepContext, verdict: Verdict) -> None:
        """Screenshot, URL and observed state of the failing page, best effort."""
        with anyio.move_on_after(max(1.0, settings.timeouts.probe_ms * 4 / 1000)):
            try:
                verdict.url = ctx.handle.url
                await ctx.artifacts.capture(ctx.handle, f"failed-{verdict.failed_step_name}")
                verdict.diagnostics["observed_state"] = (await observe(ctx.handle)).as_dict()
            except HarnessError as exc:
                logger.warning("Failure context for %s incomplete: %s", ctx.scenario.scenario_id, exc)

    async def run_suite(self, scenarios: Iterable[Scenario]) -> SuiteReport:
        """Run ``scenarios`` one after another and aggregate the verdicts."""
        pending = list(scenarios)
        report = SuiteReport()
        try:
            for position, scenario in enumerate(pending):
                verdict = await self.run(scenario)
                report.verdicts.append(verdict)
                if verdict.state is ScenarioState.ABORTED and self.abort_on_infrastructure_error:
                    report.not_run = [s.scenario_id for s in pending[position + 1:]]
                    if report.not_run:
                        logger.error("Stopping suite after infrastructure failure; %d scenarios not run", len(report.not_run))
                    break
        finally:
            if self.session_manager.open_count:
                await self.session_manager.close_all()
        return report
