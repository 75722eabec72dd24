"""
Journey 02: Theme and Locale

Default presentation state, theme toggling and persistence, locale
switching and locale-prefixed routes.
"""
import pytest

from golobe_e2e.scenarios import by_id, theme_i18n


@pytest.mark.asyncio
@pytest.mark.parametrize("scenario_id", [s.scenario_id for s in theme_i18n.scenarios()])
async def test_theme_i18n_journey(scenario_id, run_journey):
    (scenario,) = by_id([scenario_id])
    await run_journey(scenario)
