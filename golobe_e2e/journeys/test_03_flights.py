"""
Journey 03: Flights

Flight search landing page, the find form, offer details and booking.
"""
import pytest

from golobe_e2e.scenarios import by_id, flights


@pytest.mark.asyncio
@pytest.mark.parametrize("scenario_id", [s.scenario_id for s in flights.scenarios()])
async def test_flights_journey(scenario_id, run_journey):
    (scenario,) = by_id([scenario_id])
    await run_journey(scenario)
