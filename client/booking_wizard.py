# client/booking_wizard.py
"""
Five-step booking flow as a state machine:

    ROUTE -> WEEKDAYS -> TIME_SLOT -> POINTS -> REVIEW -> COMPLETE

next() checks the current step locally (no network call) and raises
ValidationFailed with the notice the customer sees. back() never validates.
Picking a different route clears every later selection. Each weekday toggle
re-quotes the cost through the API client.

At REVIEW, purchase() either completes the booking or, for an online payment
the wallet cannot cover, returns the insufficient-balance result and stays on
REVIEW so the customer can top_up() and retry.
"""
import logging
from dataclasses import dataclass, field
from datetime import date
from enum import IntEnum
from typing import Dict, List, Optional

from client.api_client import CarpoolApiClient, CostEstimate, PurchaseOutcomeKind, PurchaseResult
from core import clock
from core.errors import CostUnavailable, InvalidTransition, ValidationFailed, WeekdayNotSelectable
from models.domain import PaymentMethod
from services.funding import validate_top_up
from services.pricing import BillingWindow
from services.weekdays import parse_weekday, weekday_name

logger = logging.getLogger(__name__)


class WizardStep(IntEnum):
    ROUTE = 1
    WEEKDAYS = 2
    TIME_SLOT = 3
    POINTS = 4
    REVIEW = 5
    COMPLETE = 6


@dataclass
class BookingDraft:
    route_id: Optional[str] = None
    weekdays: List[int] = field(default_factory=list)
    time_slot_id: Optional[str] = None
    pickup_point_id: Optional[str] = None
    drop_off_point_id: Optional[str] = None
    payment_method: PaymentMethod = PaymentMethod.ONLINE
    start_date: Optional[date] = None


class BookingWizard:
    def __init__(self, client: CarpoolApiClient, today: Optional[date] = None):
        self.client = client
        self.today = today or clock.today()
        self.step = WizardStep.ROUTE
        self.draft = BookingDraft(start_date=BillingWindow.next_month(self.today).start)
        self.weekday_options: Optional[dict] = None
        self.time_slots: List[dict] = []
        self.pickup_points: List[dict] = []
        self.drop_off_points: List[dict] = []
        self.estimate: Optional[CostEstimate] = None
        self.subscription: Optional[dict] = None

    # ------------- NAVIGATION -------------
    def next(self) -> WizardStep:
        if self.step >= WizardStep.REVIEW:
            raise InvalidTransition(f"Cannot advance from {self.step.name}")
        self._check_step(self.step)
        self.step = WizardStep(self.step + 1)
        return self.step

    def back(self) -> WizardStep:
        if self.step in (WizardStep.ROUTE, WizardStep.COMPLETE):
            raise InvalidTransition(f"Cannot go back from {self.step.name}")
        self.step = WizardStep(self.step - 1)
        return self.step

    def _check_step(self, step: WizardStep) -> None:
        d = self.draft
        if step == WizardStep.ROUTE and not d.route_id:
            raise ValidationFailed("Please select a route")
        if step == WizardStep.WEEKDAYS and not d.weekdays:
            raise ValidationFailed("Please select at least one weekday")
        if step == WizardStep.TIME_SLOT and not d.time_slot_id:
            raise ValidationFailed("Please select a time slot")
        if step == WizardStep.POINTS and not (d.pickup_point_id and d.drop_off_point_id):
            raise ValidationFailed("Please select both pickup and drop-off points")

    def _require_step(self, *steps: WizardStep) -> None:
        if self.step not in steps:
            raise InvalidTransition(f"Not allowed at step {self.step.name}")

    # ------------- SELECTIONS -------------
    async def select_route(self, route_id: str) -> None:
        """Pick a route and load its weekday options, time slots and stops."""
        self._require_step(WizardStep.ROUTE)
        if route_id != self.draft.route_id:
            self.draft = BookingDraft(payment_method=self.draft.payment_method, start_date=self.draft.start_date)
            self.estimate = None
        self.weekday_options = await self.client.weekday_options(route_id)
        self.time_slots = await self.client.time_slots(route_id)
        self.pickup_points = await self.client.pickup_points(route_id, "pickup")
        self.drop_off_points = await self.client.pickup_points(route_id, "dropoff")
        self.draft.route_id = route_id

    @property
    def no_operating_days(self) -> bool:
        return bool(self.weekday_options and self.weekday_options.get("no_operating_days"))

    def _selectable(self) -> Dict[int, bool]:
        options = (self.weekday_options or {}).get("options", [])
        return {o["weekday"]: o["selectable"] for o in options}

    async def toggle_weekday(self, day) -> Optional[CostEstimate]:
        self._require_step(WizardStep.WEEKDAYS)
        day = parse_weekday(day)
        if day not in self.draft.weekdays and not self._selectable().get(day, False):
            raise WeekdayNotSelectable(f"{weekday_name(day).capitalize()} is not available on this route",
                                       data={"weekdays": [day]})
        if day in self.draft.weekdays:
            self.draft.weekdays.remove(day)
        else:
            self.draft.weekdays.append(day)
        self.draft.weekdays.sort()
        await self._requote()
        return self.estimate

    async def _requote(self) -> None:
        # cleared first: a failed quote leaves "cost unavailable", not the old price
        self.estimate = None
        if not self.draft.weekdays:
            return
        self.estimate = await self.client.calculate_cost(self.draft.route_id, self.draft.weekdays,
                                                         self.draft.start_date)

    def select_time_slot(self, time_slot_id: str) -> None:
        self._require_step(WizardStep.TIME_SLOT)
        if time_slot_id not in {s["id"] for s in self.time_slots}:
            raise ValidationFailed("Please select a time slot")
        self.draft.time_slot_id = time_slot_id

    def select_points(self, pickup_point_id: str, drop_off_point_id: str) -> None:
        self._require_step(WizardStep.POINTS)
        if pickup_point_id not in {p["id"] for p in self.pickup_points} or \
                drop_off_point_id not in {p["id"] for p in self.drop_off_points}:
            raise ValidationFailed("Please select both pickup and drop-off points")
        self.draft.pickup_point_id = pickup_point_id
        self.draft.drop_off_point_id = drop_off_point_id

    def set_payment_method(self, method) -> None:
        self.draft.payment_method = PaymentMethod(method)

    # ------------- REVIEW -------------
    async def purchase(self) -> PurchaseResult:
        self._require_step(WizardStep.REVIEW)
        if self.estimate is None or not self.estimate.available:
            reason = self.estimate.reason if self.estimate else None
            raise CostUnavailable(reason or "Cost unavailable; cannot purchase")
        d = self.draft
        result = await self.client.purchase(
            route_id=d.route_id,
            weekdays=d.weekdays,
            time_slot_id=d.time_slot_id,
            pickup_point_id=d.pickup_point_id,
            drop_off_point_id=d.drop_off_point_id,
            payment_method=d.payment_method.value,
            start_date=d.start_date,
        )
        if result.outcome == PurchaseOutcomeKind.CREATED:
            self.subscription = result.subscription
            self.step = WizardStep.COMPLETE
        else:
            logger.info("Purchase needs a top-up of %s", result.shortfall)
        return result

    async def top_up(self, amount) -> dict:
        """Credit the wallet from the review step; the next purchase() retries."""
        self._require_step(WizardStep.REVIEW)
        value = validate_top_up(amount)
        return await self.client.top_up(value)
