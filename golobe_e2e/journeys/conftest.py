"""
Fixtures for live journeys.

- Preflight: skip everything when the application is unreachable
- One Playwright client per test, each scenario in its own context
- Screenshots under SCREENSHOT_DIR/journeys
"""
import logging

import httpx
import pytest
import pytest_asyncio

from golobe_e2e.artifacts import ArtifactSink
from golobe_e2e.config import settings
from golobe_e2e.errors import InfrastructureError
from golobe_e2e.playwright_client import PlaywrightClient
from golobe_e2e.runner import Scenario, ScenarioRunner, ScenarioState
from golobe_e2e.session import SessionManager

logger = logging.getLogger(__name__)


@pytest.fixture(scope="session", autouse=True)
def app_reachable():
    """Skip the journeys when nothing answers at UI_BASE_URL."""
    try:
        response = httpx.get(settings.url("/"), timeout=10.0, follow_redirects=True)
    except httpx.HTTPError as exc:
        pytest.skip(f"Application not reachable at {settings.base_url}: {exc}")
    if response.status_code >= 500:
        pytest.skip(f"Application at {settings.base_url} answered {response.status_code}")
    logger.info("Preflight OK: %s -> %s", settings.base_url, response.status_code)


@pytest_asyncio.fixture()
async def playwright_client():
    try:
        async with PlaywrightClient() as client:
            yield client
    except InfrastructureError as exc:
        pytest.skip(f"Browser unavailable: {exc}")


@pytest.fixture()
def journey_runner(playwright_client):
    artifacts = ArtifactSink(settings.screenshot_dir / "journeys")
    return ScenarioRunner(SessionManager(playwright_client.open_driver), artifacts)


@pytest.fixture()
def run_journey(journey_runner):
    """Run one scenario and fail the test with the verdict summary unless it passed."""

    async def _run(scenario: Scenario):
        if "authenticated" in scenario.tags and not settings.credentials.is_complete:
            pytest.skip("No test account configured (TEST_USER_EMAIL / TEST_USER_PASSWORD)")
        verdict = await journey_runner.run(scenario)
        print(verdict.summary())
        if verdict.state is ScenarioState.ABORTED:
            pytest.fail(f"Infrastructure failure: {verdict.reason}")
        assert verdict.passed, verdict.summary()
        return verdict

    return _run
