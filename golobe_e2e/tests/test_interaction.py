"""Interaction primitive: lookup, fallback, budgets, optional absence."""
import logging

import anyio
import pytest

from golobe_e2e.config import settings
from golobe_e2e.contract import SelectorSpec, selectors
from golobe_e2e.errors import ActionUnavailable, InfrastructureError
from golobe_e2e.interaction import (
    Action,
    act,
    act_if_present,
    locate,
    navigate,
    read_input_value,
    read_text,
    read_value,
    try_locate,
    wait_until,
)

pytestmark = pytest.mark.asyncio


async def open_login(handle):
    await navigate(handle, settings.url("/login"))


class TestLocate:
    async def test_primary_candidate_wins(self, handle):
        await open_login(handle)
        found = await locate(handle, selectors().get("submit"))
        assert found is not None
        assert found[0] == ".form-submit-btn"

    async def test_falls_back_to_lower_ranked_candidate(self, handle, app):
        await navigate(handle, settings.url("/signup"))
        spec = SelectorSpec("email", ("input.does-not-exist", "input[name='email']"))
        found = await locate(handle, spec)
        assert found is not None
        assert found[0] == "input[name='email']"

    async def test_absence_is_not_an_error(self, handle):
        await open_login(handle)
        started = anyio.current_time()
        assert await try_locate(handle, SelectorSpec("ghost", (".ghost", ".phantom")), within_ms=200) is False
        # Elapsed time is bounded by the budget plus scheduling slack.
        assert anyio.current_time() - started < 0.6

    async def test_late_element_found_within_budget(self, handle, app):
        app.appear_after[".form-submit-btn"] = 0.1
        await open_login(handle)
        assert await try_locate(handle, selectors().get("submit"), within_ms=500) is True

    async def test_late_element_outside_budget_is_absent(self, handle, app):
        app.appear_after[".form-submit-btn"] = 5.0
        await open_login(handle)
        assert await locate(handle, SelectorSpec("submit", (".form-submit-btn",)), within_ms=100) is None


class TestAct:
    async def test_fill_and_click(self, handle, app, credentials):
        await open_login(handle)
        await act(handle, selectors().get("sign_in_email"), Action.FILL, credentials.email)
        await act(handle, selectors().get("sign_in_password"), Action.FILL, credentials.password)
        used = await act(handle, selectors().get("submit"))
        assert used == ".form-submit-btn"
        assert app.login_submits == 1

    async def test_required_absence_raises_action_unavailable(self, handle):
        await open_login(handle)
        with pytest.raises(ActionUnavailable) as excinfo:
            await act(handle, SelectorSpec("ghost", (".ghost", ".phantom")), within_ms=150)
        assert excinfo.value.within_ms == 150
        assert excinfo.value.candidates == (".ghost", ".phantom")
        assert excinfo.value.describe()["error"] == "ActionUnavailable"

    async def test_unactionable_element_raises_action_unavailable(self, handle, app):
        app.blocked.add(".form-submit-btn")
        await open_login(handle)
        with pytest.raises(ActionUnavailable):
            await act(handle, selectors().get("submit"))
        assert app.login_submits == 0

    async def test_optional_absence_logs_at_debug_only(self, handle, caplog):
        await open_login(handle)
        with caplog.at_level(logging.DEBUG, logger="golobe_e2e.interaction"):
            assert await act_if_present(handle, SelectorSpec("ghost", (".ghost",)), within_ms=100) is False
        assert all(record.levelno <= logging.DEBUG for record in caplog.records)

    async def test_act_if_present_acts_when_present(self, handle, app):
        await open_login(handle)
        assert await act_if_present(handle, selectors().get("submit")) is True
        assert app.login_submits == 1


class TestWaits:
    async def test_wait_until_returns_truthy_value(self):
        calls = []

        async def predicate():
            calls.append(1)
            return "ready" if len(calls) >= 3 else None

        assert await wait_until(predicate, within_ms=1000, interval_ms=10) == "ready"

    async def test_wait_until_times_out_with_none(self):
        async def never():
            return False

        assert await wait_until(never, within_ms=100, interval_ms=20) is None

    async def test_read_text(self, handle, app):
        await open_login(handle)
        assert await read_text(handle, selectors().get("submit")) == "Login"
        assert await read_text(handle, selectors().get("auth_error"), within_ms=50) is None

    async def test_typed_input_reads_live_value_not_attribute(self, handle, credentials):
        await open_login(handle)
        await act(handle, selectors().get("sign_in_email"), Action.FILL, credentials.email)
        assert await read_input_value(handle, selectors().get("sign_in_email")) == credentials.email
        assert await read_value(handle, selectors().get("sign_in_email"), "value") is None
        assert await read_value(handle, selectors().get("sign_in_email"), "type") == "email"

    async def test_bound_input_value_is_not_an_attribute(self, handle, app, credentials):
        await navigate(handle, settings.url("/login"))
        await act(handle, selectors().get("sign_in_email"), Action.FILL, credentials.email)
        await act(handle, selectors().get("sign_in_password"), Action.FILL, credentials.password)
        await act(handle, selectors().get("submit"))
        await navigate(handle, settings.url("/account"))
        assert await read_input_value(handle, selectors().get("profile_name")) == app.profile["firstName"]
        assert await read_value(handle, selectors().get("profile_name"), "value") is None


class TestHandleLifecycle:
    async def test_released_handle_refuses_use(self, manager):
        async with manager.page("short-lived") as handle:
            pass
        assert handle.released
        with pytest.raises(InfrastructureError):
            await locate(handle, selectors().get("html"))

    async def test_closed_page_is_infrastructure_failure(self, handle, app):
        await open_login(handle)
        app.drivers[-1].kill()
        with pytest.raises(InfrastructureError):
            await act(handle, selectors().get("submit"))

    async def test_handle_ids_are_never_reused(self, manager):
        seen = set()
        for index in range(3):
            async with manager.page(f"s{index}") as handle:
                seen.add(handle.handle_id)
        assert len(seen) == 3
        assert manager.open_count == 0
