"""Offline fixtures: the harness core against the in-memory Golobe app."""
import pytest
import pytest_asyncio

from golobe_e2e.artifacts import ArtifactSink
from golobe_e2e.config import Credentials, TargetProfile, Timeouts, settings
from golobe_e2e.contract import DEFAULT_SELECTORS, SelectorContract, use_contract
from golobe_e2e.mock_app import MOCK_EMAIL, MOCK_PASSWORD, MockApp
from golobe_e2e.runner import ScenarioRunner
from golobe_e2e.session import SessionManager

FAST_TIMEOUTS = Timeouts(scenario_s=20.0, action_ms=250, probe_ms=100, settle_ms=0, navigation_ms=1000)


@pytest.fixture(autouse=True)
def fast_harness(monkeypatch, tmp_path):
    """Short budgets, default selector contract and a throwaway screenshot dir."""
    monkeypatch.setattr(settings, "timeouts", FAST_TIMEOUTS)
    monkeypatch.setattr(settings, "screenshot_dir", tmp_path / "screenshots")
    monkeypatch.setattr(settings, "screenshot_format", "png")
    use_contract(SelectorContract(DEFAULT_SELECTORS))
    yield
    use_contract(None)


@pytest.fixture()
def app():
    return MockApp()


@pytest.fixture()
def credentials():
    return Credentials(email=MOCK_EMAIL, password=MOCK_PASSWORD)


@pytest.fixture(autouse=True)
def mock_profile(app, credentials):
    """Point the active profile at the mock app."""
    profile = TargetProfile(name="mock", base_url=app.base_url, credentials=credentials)
    with settings.use_profile(profile):
        yield profile


@pytest.fixture()
def manager(app):
    return SessionManager(app.open_driver)


@pytest_asyncio.fixture()
async def handle(manager):
    async with manager.page("test") as handle:
        yield handle


@pytest.fixture()
def artifacts(tmp_path):
    return ArtifactSink(tmp_path / "artifacts")


@pytest.fixture()
def runner(manager, artifacts):
    return ScenarioRunner(manager, artifacts)
