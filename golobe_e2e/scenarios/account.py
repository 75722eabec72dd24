"""User account journeys. All of them need the test account."""
from __future__ import annotations

from typing import List

from golobe_e2e import flows, steps
from golobe_e2e.contract import AppPage, selectors
from golobe_e2e.interaction import read_input_value
from golobe_e2e.runner import Scenario, StepContext
from golobe_e2e.verification import Check, assert_equal

TAGS = frozenset({"account", "authenticated"})

ACCOUNT_TABS = ("Account", "History", "Payment methods")


def _open_tab(label: str):
    async def _open(ctx: StepContext) -> str:
        return await flows.open_account_tab(ctx.handle, label)

    return _open


def account_page() -> Scenario:
    return Scenario(
        "account.page",
        (
            steps.login(),
            steps.navigate(AppPage.ACCOUNT),
            steps.wait_for("account_page"),
            steps.present("profile_email", required=False),
            steps.capture("account-page"),
        ),
        description="Account page shows the user profile",
        tags=TAGS,
    )


def profile_edit() -> Scenario:
    async def _edit(ctx: StepContext) -> str:
        return await flows.edit_profile_name(ctx.handle)

    async def _saved(ctx: StepContext) -> Check:
        observed = await read_input_value(ctx.handle, selectors().get("profile_name"))
        return assert_equal("profile name saved", ctx.recall("new_name"), observed)

    return Scenario(
        "account.profile-edit",
        (
            steps.login(),
            steps.navigate(AppPage.ACCOUNT),
            steps.flow("edit profile name", _edit, into="new_name"),
            steps.verify("profile name shows the new value", _saved),
            steps.capture("profile-edited"),
        ),
        description="Profile name can be edited and saved",
        tags=TAGS,
    )


def account_tabs() -> Scenario:
    first, *others = ACCOUNT_TABS
    tab_steps = [steps.flow(f"open {first} tab", _open_tab(first))]
    tab_steps += [steps.flow(f"open {label} tab", _open_tab(label), required=False) for label in others]
    return Scenario(
        "account.tabs",
        (
            steps.login(),
            steps.navigate(AppPage.ACCOUNT),
            *tab_steps,
            steps.capture("account-tabs"),
        ),
        description="Account, History and Payment methods tabs open",
        tags=TAGS,
    )


def booking_history() -> Scenario:
    return Scenario(
        "account.booking-history",
        (
            steps.login(),
            steps.navigate(AppPage.ACCOUNT),
            steps.flow("open History tab", _open_tab("History")),
            steps.present("booking_history_item", required=False),
            steps.capture("booking-history"),
        ),
        description="Booking history tab lists past and upcoming bookings",
        tags=TAGS,
    )


def favourites() -> Scenario:
    return Scenario(
        "account.favourites",
        (
            steps.login(),
            steps.navigate(AppPage.FAVOURITES),
            steps.url_contains(AppPage.FAVOURITES),
            steps.present("favourite_item", required=False),
            steps.capture("favourites"),
        ),
        description="Favourites page opens for the signed-in user",
        tags=TAGS,
    )


def profile_picture() -> Scenario:
    return Scenario(
        "account.profile-picture",
        (
            steps.login(),
            steps.navigate(AppPage.ACCOUNT),
            steps.present("avatar"),
            steps.present("avatar_upload", required=False),
            steps.capture("profile-picture"),
        ),
        description="Profile picture and its upload control are shown",
        tags=TAGS,
    )


def booking_details() -> Scenario:
    async def _open_booking(ctx: StepContext) -> str:
        return await flows.open_first_offer(ctx.handle, "booking_details_link", AppPage.BOOKING_DETAILS.format(id=1))

    return Scenario(
        "account.booking-details",
        (
            steps.login(),
            steps.navigate(AppPage.ACCOUNT),
            steps.flow("open History tab", _open_tab("History"), required=False),
            steps.flow("open first booking", _open_booking),
            steps.url_contains("/booking/"),
            steps.present("booking_details"),
            steps.present("booking_download", required=False),
            steps.present("booking_print", required=False),
            steps.capture("booking-details"),
        ),
        description="A booking opens its details page",
        tags=TAGS | {"booking"},
    )


def scenarios() -> List[Scenario]:
    return [
        account_page(),
        profile_edit(),
        account_tabs(),
        booking_history(),
        favourites(),
        profile_picture(),
        booking_details(),
    ]
