"""
Journey 01: Authentication

Sign up, sign in with valid and invalid credentials, the local OAuth
provider, password reset requests and sign out.
"""
import pytest

from golobe_e2e.scenarios import by_id, auth


@pytest.mark.asyncio
@pytest.mark.parametrize("scenario_id", [s.scenario_id for s in auth.scenarios()])
async def test_auth_journey(scenario_id, run_journey):
    (scenario,) = by_id([scenario_id])
    await run_journey(scenario)
