"""Stay search, details, booking and review journeys."""
from __future__ import annotations

from typing import List

from golobe_e2e import flows, steps
from golobe_e2e.contract import AppPage, selectors
from golobe_e2e.interaction import read_text, wait_until
from golobe_e2e.runner import Scenario, StepContext
from golobe_e2e.verification import Check

TAGS = frozenset({"stays"})

LOCATION = "Melbourne"
STAY_TYPES = ("hotels", "motels", "resorts")
REVIEW_TEXT = "Great stay, would book again."


async def _open_first_stay(ctx: StepContext) -> str:
    return await flows.open_first_offer(ctx.handle, "stay_details_link", AppPage.STAY_DETAILS.format(id=1))


def search_page() -> Scenario:
    return Scenario(
        "stays.search-page",
        (
            steps.navigate(AppPage.STAYS),
            steps.dismiss_consent(),
            steps.wait_for("stay_location"),
            steps.capture("stays-page"),
        ),
        description="Stay search page loads with a location input",
        tags=TAGS,
    )


def find_stays_form() -> Scenario:
    async def _search(ctx: StepContext) -> None:
        await flows.search_stays(ctx.handle, LOCATION)

    return Scenario(
        "stays.find-form",
        (
            steps.flow(f"search stays in {LOCATION}", _search),
            steps.url_contains(AppPage.FIND_STAYS),
            steps.present("stay_check_in", required=False),
            steps.capture("find-stays-filled"),
        ),
        description="Find-stays form accepts a location",
        tags=TAGS,
    )


def type_filters() -> Scenario:
    def _select(kind: str):
        async def _filter(ctx: StepContext) -> str:
            return await flows.select_stay_type(ctx.handle, kind)

        return _filter

    first, *others = STAY_TYPES
    filter_steps = [steps.flow(f"filter {first}", _select(first))]
    filter_steps += [steps.flow(f"filter {kind}", _select(kind), required=False) for kind in others]
    return Scenario(
        "stays.type-filters",
        (
            steps.navigate(AppPage.FIND_STAYS),
            steps.dismiss_consent(),
            *filter_steps,
            steps.capture("stays-filtered"),
        ),
        description="Hotels, motels and resorts filters are clickable",
        tags=TAGS,
    )


def stay_details() -> Scenario:
    return Scenario(
        "stays.details",
        (
            steps.navigate(AppPage.FIND_STAYS),
            steps.dismiss_consent(),
            steps.flow("open first stay", _open_first_stay),
            steps.url_contains("/stay-details/"),
            steps.present("stay_reviews"),
            steps.present("stay_amenities", required=False),
            steps.present("stay_price", required=False),
            steps.capture("stay-details"),
        ),
        description="A stay opens its details page with reviews",
        tags=TAGS,
    )


def authenticated_booking() -> Scenario:
    async def _book(ctx: StepContext) -> str:
        return await flows.start_booking(ctx.handle)

    async def _traveller(ctx: StepContext) -> None:
        await flows.fill_traveller(ctx.handle, "Test", "Guest")

    return Scenario(
        "stays.booking",
        (
            steps.login(),
            steps.navigate(AppPage.FIND_STAYS),
            steps.flow("open first stay", _open_first_stay),
            steps.flow("start booking", _book),
            steps.url_contains("/stay-book/"),
            steps.flow("fill guest details", _traveller, required=False),
            steps.capture("stay-booking"),
        ),
        description="An authenticated user reaches the stay booking form",
        tags=TAGS | {"authenticated", "booking"},
    )


def add_review() -> Scenario:
    async def _review(ctx: StepContext) -> None:
        await flows.add_review(ctx.handle, REVIEW_TEXT)

    async def _listed(ctx: StepContext) -> Check:
        seen: List[str] = []

        async def _shown() -> bool:
            seen.append(await read_text(ctx.handle, selectors().get("stay_reviews")) or "")
            return REVIEW_TEXT in seen[-1]

        await wait_until(_shown)
        return Check(label="review listed", passed=REVIEW_TEXT in seen[-1], expected=REVIEW_TEXT, observed=seen[-1])

    return Scenario(
        "stays.add-review",
        (
            steps.login(),
            steps.navigate(AppPage.FIND_STAYS),
            steps.flow("open first stay", _open_first_stay),
            steps.flow("write review", _review),
            steps.click("review_submit"),
            steps.verify("review listed", _listed),
            steps.capture("stay-review"),
        ),
        description="An authenticated user can post a review",
        tags=TAGS | {"authenticated", "review"},
    )


def scenarios() -> List[Scenario]:
    return [search_page(), find_stays_form(), type_filters(), stay_details(), authenticated_booking(), add_review()]
