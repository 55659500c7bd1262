from decimal import Decimal

import pytest

from client.api_client import ApiError, CarpoolApiClient, PurchaseOutcomeKind
from client.booking_wizard import BookingWizard, WizardStep
from conftest import TODAY
from core.auth import issue_token
from core.errors import CostUnavailable, InvalidTransition, ValidationFailed, WeekdayNotSelectable


@pytest.fixture()
def wizard(api_client):
    client = CarpoolApiClient(api_client, base_url="", token=issue_token("cust-1"))
    return BookingWizard(client, today=TODAY)


def test_step_gates_fire_without_network():
    wizard = BookingWizard(client=None, today=TODAY)
    with pytest.raises(ValidationFailed) as exc:
        wizard.next()
    assert exc.value.message == "Please select a route"
    assert wizard.step == WizardStep.ROUTE


def test_cannot_go_back_from_first_step():
    with pytest.raises(InvalidTransition):
        BookingWizard(client=None, today=TODAY).back()


async def _to_review(wizard):
    await wizard.select_route("uttara-motijheel")
    assert wizard.next() == WizardStep.WEEKDAYS
    await wizard.toggle_weekday("monday")
    await wizard.toggle_weekday(3)
    wizard.next()
    wizard.select_time_slot("um-t1")
    wizard.next()
    wizard.select_points("um-p1", "um-d1")
    assert wizard.next() == WizardStep.REVIEW


@pytest.mark.asyncio
async def test_each_step_validates_its_selection(wizard):
    await wizard.select_route("uttara-motijheel")
    wizard.next()
    with pytest.raises(ValidationFailed) as exc:
        wizard.next()
    assert exc.value.message == "Please select at least one weekday"

    await wizard.toggle_weekday("mon")
    wizard.next()
    with pytest.raises(ValidationFailed) as exc:
        wizard.next()
    assert exc.value.message == "Please select a time slot"

    wizard.select_time_slot("um-t2")
    wizard.next()
    with pytest.raises(ValidationFailed) as exc:
        wizard.next()
    assert exc.value.message == "Please select both pickup and drop-off points"
    assert wizard.step == WizardStep.POINTS


@pytest.mark.asyncio
async def test_toggling_weekdays_requotes(wizard):
    await wizard.select_route("uttara-motijheel")
    wizard.next()
    estimate = await wizard.toggle_weekday("monday")
    assert estimate.monthly_total == Decimal("600.00")
    estimate = await wizard.toggle_weekday("wednesday")
    assert estimate.monthly_total == Decimal("1080.00")
    assert await wizard.toggle_weekday("monday") is not None
    assert wizard.draft.weekdays == [3]
    assert await wizard.toggle_weekday("wednesday") is None

    with pytest.raises(WeekdayNotSelectable):
        await wizard.toggle_weekday("saturday")


@pytest.mark.asyncio
async def test_changing_route_resets_later_selections(wizard):
    await wizard.select_route("uttara-motijheel")
    wizard.next()
    await wizard.toggle_weekday(1)
    wizard.back()
    await wizard.select_route("mirpur-gulshan")
    assert wizard.draft.weekdays == []
    assert wizard.estimate is None
    assert [p["id"] for p in wizard.pickup_points] == ["mg-p1"]
    assert [p["id"] for p in wizard.drop_off_points] == ["mg-d1"]


@pytest.mark.asyncio
async def test_insufficient_balance_then_top_up_and_retry(wizard):
    await _to_review(wizard)
    with pytest.raises(InvalidTransition):
        wizard.next()

    result = await wizard.purchase()
    assert result.outcome == PurchaseOutcomeKind.INSUFFICIENT_BALANCE
    assert result.shortfall == Decimal("1080.00")
    assert wizard.step == WizardStep.REVIEW

    with pytest.raises(ValidationFailed):
        await wizard.top_up("-5")
    wallet = await wizard.top_up("1080")
    assert wallet["balance"] == "1080.00"

    result = await wizard.purchase()
    assert result.outcome == PurchaseOutcomeKind.CREATED
    assert wizard.step == WizardStep.COMPLETE
    assert wizard.subscription["weekdays"] == [1, 3]


@pytest.mark.asyncio
async def test_cash_purchase_completes_without_funds(wizard):
    await _to_review(wizard)
    wizard.set_payment_method("cash")
    result = await wizard.purchase()
    assert result.outcome == PurchaseOutcomeKind.CREATED
    assert wizard.subscription["payment_method"] == "cash"


@pytest.mark.asyncio
async def test_unpriced_route_blocks_purchase(wizard, store):
    await store.upsert_route(store.routes["uttara-motijheel"].model_copy(update={"price_per_seat": None}))
    await _to_review(wizard)
    assert wizard.estimate.available is False
    assert wizard.estimate.monthly_total is None
    with pytest.raises(CostUnavailable):
        await wizard.purchase()
    assert wizard.step == WizardStep.REVIEW


@pytest.mark.asyncio
async def test_failed_requote_clears_previous_estimate(wizard, monkeypatch):
    await wizard.select_route("uttara-motijheel")
    wizard.next()
    await wizard.toggle_weekday("monday")
    assert wizard.estimate.available

    async def quote_down(*args, **kwargs):
        raise ApiError(0, "network_error", "connection refused")

    monkeypatch.setattr(wizard.client, "calculate_cost", quote_down)
    with pytest.raises(ApiError):
        await wizard.toggle_weekday("wednesday")
    assert wizard.draft.weekdays == [1, 3]
    assert wizard.estimate is None

    wizard.next()
    wizard.select_time_slot("um-t1")
    wizard.next()
    wizard.select_points("um-p1", "um-d1")
    wizard.next()
    with pytest.raises(CostUnavailable):
        await wizard.purchase()
    assert wizard.step == WizardStep.REVIEW
