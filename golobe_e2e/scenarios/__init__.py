"""Scenario catalog.

Each module exposes ``scenarios()``; factories build fresh ``Scenario``
objects on every call since a runner executes a scenario id only once.
"""
from __future__ import annotations

from typing import Iterable, List

from golobe_e2e.runner import Scenario
from golobe_e2e.scenarios import account, auth, flights, stays, theme_i18n

MODULES = (auth, theme_i18n, flights, stays, account)


def catalog() -> List[Scenario]:
    return [scenario for module in MODULES for scenario in module.scenarios()]


def by_tag(tag: str) -> List[Scenario]:
    return [scenario for scenario in catalog() if tag in scenario.tags]


def by_id(scenario_ids: Iterable[str]) -> List[Scenario]:
    """Scenarios in the order given; unknown ids raise ``KeyError``."""
    scenario_ids = list(scenario_ids)
    known = {scenario.scenario_id: scenario for scenario in catalog()}
    missing = [sid for sid in scenario_ids if sid not in known]
    if missing:
        raise KeyError(f"Unknown scenario id(s): {', '.join(missing)}")
    return [known[sid] for sid in scenario_ids]
