import pytest

from golobe_e2e import cli
from golobe_e2e.scenarios import catalog


def test_list_prints_catalog_without_a_browser(capsys):
    assert cli.main(["--list"]) == 0
    out = capsys.readouterr().out
    for scenario in catalog():
        assert scenario.scenario_id in out


def test_list_by_tag(capsys):
    assert cli.main(["--list", "--tag", "i18n"]) == 0
    out = capsys.readouterr().out
    assert "i18n.switch-locale" in out
    assert "auth.login " not in out


def test_select_scenarios_in_given_order():
    args = cli.build_parser().parse_args(["--scenario", "auth.logout", "--scenario", "auth.login"])
    assert [s.scenario_id for s in cli.select_scenarios(args)] == ["auth.logout", "auth.login"]


def test_scenario_and_tag_intersect():
    args = cli.build_parser().parse_args(["--scenario", "auth.login", "--scenario", "theme.default", "--tag", "theme"])
    assert [s.scenario_id for s in cli.select_scenarios(args)] == ["theme.default"]


def test_unknown_scenario_is_a_usage_error():
    with pytest.raises(SystemExit) as excinfo:
        cli.main(["--scenario", "auth.nope"])
    assert excinfo.value.code == 2


def test_exit_code_from_report(monkeypatch):
    seen = {}

    async def fake_run(scenarios, headed=False, keep_going=False):
        seen.update(count=len(scenarios), headed=headed, keep_going=keep_going)
        return 1

    monkeypatch.setattr(cli, "run_scenarios", fake_run)
    assert cli.main(["--tag", "flights", "--headed", "--keep-going"]) == 1
    assert seen == {"count": 5, "headed": True, "keep_going": True}
