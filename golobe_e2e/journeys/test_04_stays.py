"""
Journey 04: Stays

Stay search, type filters, details, booking and reviews.
"""
import pytest

from golobe_e2e.scenarios import by_id, stays


@pytest.mark.asyncio
@pytest.mark.parametrize("scenario_id", [s.scenario_id for s in stays.scenarios()])
async def test_stays_journey(scenario_id, run_journey):
    (scenario,) = by_id([scenario_id])
    await run_journey(scenario)
