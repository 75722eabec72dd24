"""Flight search, details and booking journeys."""
from __future__ import annotations

from typing import List
from urllib.parse import urlencode

from golobe_e2e import flows, steps
from golobe_e2e.contract import AppPage
from golobe_e2e.runner import Scenario, StepContext

TAGS = frozenset({"flights"})

FROM_CITY = "Paris"
TO_CITY = "London"


async def _search(ctx: StepContext) -> None:
    await flows.search_flights(ctx.handle, FROM_CITY, TO_CITY)


async def _open_first_flight(ctx: StepContext) -> str:
    return await flows.open_first_offer(ctx.handle, "flight_details_link", AppPage.FLIGHT_DETAILS.format(id=1))


def search_page() -> Scenario:
    return Scenario(
        "flights.search-page",
        (
            steps.navigate(AppPage.FLIGHTS),
            steps.dismiss_consent(),
            steps.wait_for("flight_search_params"),
            steps.capture("flights-page"),
        ),
        description="Flight search page loads with its search parameters",
        tags=TAGS,
    )


def find_flights_form() -> Scenario:
    return Scenario(
        "flights.find-form",
        (
            steps.flow(f"search {FROM_CITY} -> {TO_CITY}", _search),
            steps.url_contains(AppPage.FIND_FLIGHTS),
            steps.capture("find-flights-filled"),
        ),
        description="Find-flights form accepts origin and destination",
        tags=TAGS,
    )


def search_with_parameters() -> Scenario:
    query = urlencode({"from": FROM_CITY, "to": TO_CITY})
    return Scenario(
        "flights.search-with-parameters",
        (
            steps.navigate(f"{AppPage.FIND_FLIGHTS}?{query}"),
            steps.dismiss_consent(),
            steps.url_contains(AppPage.FIND_FLIGHTS),
            steps.present("flight_offer", required=False),
            steps.capture("find-flights-results"),
        ),
        description="Search parameters in the URL reach the results page",
        tags=TAGS,
    )


def flight_details() -> Scenario:
    return Scenario(
        "flights.details",
        (
            steps.navigate(AppPage.FIND_FLIGHTS),
            steps.dismiss_consent(),
            steps.flow("open first flight offer", _open_first_flight),
            steps.url_contains("/flight-details/"),
            steps.present("book_button", required=False),
            steps.capture("flight-details"),
        ),
        description="A flight offer opens its details page",
        tags=TAGS,
    )


def authenticated_booking() -> Scenario:
    async def _book(ctx: StepContext) -> str:
        return await flows.start_booking(ctx.handle)

    async def _traveller(ctx: StepContext) -> None:
        await flows.fill_traveller(ctx.handle, "Test", "Traveller")

    return Scenario(
        "flights.booking",
        (
            steps.login(),
            steps.navigate(AppPage.FIND_FLIGHTS),
            steps.flow("open first flight offer", _open_first_flight),
            steps.flow("start booking", _book),
            steps.url_contains("/flight-book/"),
            steps.flow("fill traveller details", _traveller, required=False),
            steps.capture("flight-booking"),
        ),
        description="An authenticated user reaches the flight booking form",
        tags=TAGS | {"authenticated", "booking"},
    )


def scenarios() -> List[Scenario]:
    return [search_page(), find_flights_form(), search_with_parameters(), flight_details(), authenticated_booking()]
