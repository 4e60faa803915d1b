from __future__ import annotations

import dataclasses
import logging
from typing import Any

from gateway.errors import GatewayError
from gateway.valuation import ValuationGateway
from tradein.config import WizardConfig
from tradein.data_models import TrimOption, VehicleIdentity, VehicleStepOutput, VinCandidate
from tradein.report import TradeInReport, build_report
from tradein.steps import StepOrderError, StepValidationError, WizardStep
from tradein.wizard import SubmitPrompt, VehicleDraft, WizardState, advance, retreat, submit_prompt

logger = logging.getLogger(__name__)


class WizardController:
    """Owns one wizard session: its state plus the vehicle-step draft.

    State is only replaced after a transition fully succeeds, so a failed
    gateway call leaves the session exactly where it was.
    """

    def __init__(
        self,
        gateway: ValuationGateway,
        config: WizardConfig | None = None,
        state: WizardState | None = None,
    ) -> None:
        self.gateway = gateway
        self.config = config or WizardConfig()
        self.state = state or WizardState()
        self.draft = VehicleDraft()

    # ── Vehicle step, phase 1: resolve the vehicle ──────────────────

    async def find_vehicle_by_vin(self, vin: str) -> list[VinCandidate]:
        candidates = await self.gateway.decode_vin(vin)
        self.draft = dataclasses.replace(
            self.draft, vin=vin, candidates=tuple(candidates), selected=None,
        )
        return candidates

    async def find_vehicle_manual(self, year: str, make: str, model: str, trim: str | None = None) -> list[VinCandidate]:
        candidates = await self.gateway.lookup_manual(year, make, model, trim)
        self.draft = dataclasses.replace(
            self.draft, year=year, make=make, model=model, candidates=tuple(candidates), selected=None,
        )
        return candidates

    def select_candidate(self, index: int) -> VehicleIdentity:
        try:
            candidate = self.draft.candidates[index]
        except IndexError:
            raise StepValidationError(WizardStep.VEHICLE, {"candidate": "No such vehicle candidate"}) from None
        self.draft = self.draft.select(candidate)
        return self.draft.selected

    def choose_trim(self, year: str, make: str, model: str, trim: TrimOption) -> VehicleIdentity:
        identity = VehicleIdentity(year=year, make=make, model=model, trim=trim.trim, gid=trim.gid or None)
        self.draft = dataclasses.replace(self.draft, year=year, make=make, model=model, selected=identity)
        return identity

    def set_mileage(self, mileage: int | None) -> None:
        self.draft = self.draft.with_mileage(mileage)

    @property
    def prompt(self) -> SubmitPrompt:
        return submit_prompt(self.draft)

    # ── Vehicle step, phase 2: value it and advance ─────────────────

    async def submit_vehicle(
        self,
        identity: VehicleIdentity | None = None,
        mileage: int | None = None,
        condition: str = "good",
    ) -> WizardState:
        if self.state.step is not WizardStep.VEHICLE:
            raise StepOrderError(f"Vehicle details are collected at step 'vehicle', not '{self.state.step.value}'")
        identity = identity or self.draft.selected
        mileage = mileage if mileage is not None else self.draft.mileage

        errors: dict[str, str] = {}
        if identity is None or not identity.is_resolved:
            errors["gid"] = "Select a trim to resolve the vehicle"
        if mileage is None:
            errors["mileage"] = "Mileage is required"
        if errors:
            raise StepValidationError(WizardStep.VEHICLE, errors)

        try:
            quote = await self.gateway.get_quote(identity.gid, mileage)
        except GatewayError as exc:
            logger.warning("Vehicle valuation failed for gid %s: %s", identity.gid, exc.message)
            raise

        output = VehicleStepOutput(
            year=identity.year,
            make=identity.make,
            model=identity.model,
            trim=identity.trim,
            gid=identity.gid,
            mileage=mileage,
            condition=condition,
            vehicle_base_price=quote.base_price,
            vehicle_price_adjustment=quote.price_adjustment,
            vehicle_desirability=quote.desirable,
        )
        self.state = advance(self.state, output, self.config)
        self.draft = dataclasses.replace(self.draft, selected=identity, mileage=mileage)
        return self.state

    # ── Remaining steps ─────────────────────────────────────────────

    def submit(self, output: Any) -> WizardState:
        self.state = advance(self.state, output, self.config)
        logger.info("Wizard advanced to step %s", self.state.step.value)
        return self.state

    def back(self) -> WizardState:
        self.state = retreat(self.state)
        return self.state

    def report(self) -> TradeInReport:
        return build_report(self.state, self.config)
