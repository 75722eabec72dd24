"""Command line entry point: run catalog scenarios against a live app.

Exit codes: 0 all passed, 1 at least one failure, 2 aborted on an
infrastructure failure (browser, context or application unreachable).
"""
from __future__ import annotations

import argparse
import logging
import os
import sys
from dataclasses import replace
from typing import List, Optional

import anyio

from golobe_e2e.config import settings
from golobe_e2e.errors import InfrastructureError
from golobe_e2e.playwright_client import PlaywrightClient
from golobe_e2e.runner import Scenario, ScenarioRunner
from golobe_e2e.scenarios import by_id, by_tag, catalog
from golobe_e2e.session import SessionManager

logger = logging.getLogger(__name__)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="golobe-e2e",
        description="End-to-end browser verification of the Golobe travel app",
    )
    parser.add_argument(
        "--scenario",
        action="append",
        default=[],
        metavar="ID",
        help="Scenario id to run (repeatable; default: the whole catalog)",
    )
    parser.add_argument("--tag", help="Only run scenarios carrying this tag")
    parser.add_argument("--list", action="store_true", help="List scenario ids and exit")
    parser.add_argument("--headed", action="store_true", help="Show the browser window")
    parser.add_argument(
        "--keep-going",
        action="store_true",
        help="Continue with the remaining scenarios after an infrastructure failure",
    )
    parser.add_argument(
        "--base-url",
        default=None,
        help=f"Application URL (default: $UI_BASE_URL or {settings.base_url})",
    )
    return parser


def select_scenarios(args: argparse.Namespace) -> List[Scenario]:
    """--scenario ids in the given order, narrowed by --tag; unknown ids raise KeyError."""
    selected = by_id(args.scenario) if args.scenario else (by_tag(args.tag) if args.tag else catalog())
    if args.scenario and args.tag:
        selected = [scenario for scenario in selected if args.tag in scenario.tags]
    return selected


async def run_scenarios(scenarios: List[Scenario], headed: bool = False, keep_going: bool = False) -> int:
    async with PlaywrightClient(headless=False if headed else None) as client:
        runner = ScenarioRunner(SessionManager(client.open_driver), abort_on_infrastructure_error=not keep_going)
        report = await runner.run_suite(scenarios)
    print(report.summary())
    return report.exit_code


def main(argv: Optional[List[str]] = None) -> int:
    logging.basicConfig(
        level=getattr(logging, os.getenv("LOG_LEVEL", "INFO").upper(), logging.INFO),
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
    )
    parser = build_parser()
    args = parser.parse_args(argv)

    try:
        scenarios = select_scenarios(args)
    except KeyError as exc:
        parser.error(exc.args[0])

    if args.list:
        for scenario in scenarios:
            tags = ",".join(sorted(scenario.tags))
            print(f"{scenario.scenario_id:40} [{tags}] {scenario.description}")
        return 0
    if not scenarios:
        parser.error("No scenarios selected")

    profile = replace(settings.profile, base_url=args.base_url) if args.base_url else settings.profile
    logger.info("Running %d scenarios against %s", len(scenarios), profile.base_url)
    with settings.use_profile(profile):
        try:
            return anyio.run(run_scenarios, scenarios, args.headed, args.keep_going)
        except InfrastructureError as exc:
            logger.error("Harness could not start: %s", exc)
            return 2


if __name__ == "__main__":
    sys.exit(main())
