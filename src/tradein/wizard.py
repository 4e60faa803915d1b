"""Trade-in wizard state machine.

The wizard is a strictly linear sequence of steps. State is an immutable
``WizardState`` and every transition is a pure function returning a new
state, so a rejected transition can never leave a half-applied update.
"""

from __future__ import annotations

import dataclasses
from dataclasses import dataclass, field
from typing import Any, Mapping

from tradein.config import WizardConfig
from tradein.data_models import VehicleIdentity, VinCandidate
from tradein.steps import (
    STEP_ORDER,
    StepOrderError,
    StepValidationError,
    WizardStep,
    build_output,
    validate_output,
)
from tradein.vin import is_valid_vin


@dataclass(frozen=True)
class WizardState:
    step: WizardStep = WizardStep.VEHICLE
    outputs: Mapping[WizardStep, Any] = field(default_factory=dict)

    @property
    def is_complete(self) -> bool:
        return self.step is WizardStep.REPORT

    def output_for(self, step: WizardStep) -> Any | None:
        return self.outputs.get(step)

    def to_dict(self) -> dict[str, Any]:
        return {
            "step": self.step.value,
            "outputs": {s.value: dataclasses.asdict(o) for s, o in self.outputs.items()},
        }

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "WizardState":
        outputs = {
            WizardStep(name): build_output(WizardStep(name), payload)
            for name, payload in (data.get("outputs") or {}).items()
        }
        return cls(step=WizardStep(data.get("step", WizardStep.VEHICLE.value)), outputs=outputs)


def _index(step: WizardStep) -> int:
    return STEP_ORDER.index(step)


def advance(state: WizardState, output: Any, config: WizardConfig | None = None) -> WizardState:
    if state.is_complete:
        raise StepOrderError("The report is the final step")
    errors = validate_output(state.step, output, config)
    if errors:
        raise StepValidationError(state.step, errors)
    outputs = dict(state.outputs)
    outputs[state.step] = output
    return WizardState(step=STEP_ORDER[_index(state.step) + 1], outputs=outputs)


def retreat(state: WizardState) -> WizardState:
    # Later answers are kept; going back never invalidates them.
    idx = _index(state.step)
    if idx == 0:
        raise StepOrderError("Already at the first step")
    return dataclasses.replace(state, step=STEP_ORDER[idx - 1])


def current_output(state: WizardState) -> Any | None:
    return state.outputs.get(state.step)


# ── Vehicle step sub-protocol ───────────────────────────────────────

FIND_VEHICLE_LABEL = "Find A Vehicle"
GET_VALUE_LABEL = "Get Vehicle Value"


@dataclass(frozen=True)
class VehicleDraft:
    """In-progress answers on the vehicle step, before it is submitted."""

    vin: str = ""
    year: str = ""
    make: str = ""
    model: str = ""
    candidates: tuple[VinCandidate, ...] = ()
    selected: VehicleIdentity | None = None
    mileage: int | None = None

    def select(self, candidate: VinCandidate) -> "VehicleDraft":
        return dataclasses.replace(self, selected=candidate.to_identity())

    def with_mileage(self, mileage: int | None) -> "VehicleDraft":
        return dataclasses.replace(self, mileage=mileage)


@dataclass(frozen=True)
class SubmitPrompt:
    label: str
    enabled: bool


def submit_prompt(draft: VehicleDraft) -> SubmitPrompt:
    if draft.candidates or draft.selected is not None:
        ready = draft.selected is not None and draft.selected.is_resolved and draft.mileage is not None
        return SubmitPrompt(label=GET_VALUE_LABEL, enabled=ready)
    can_search = is_valid_vin(draft.vin) or all(
        v.strip() for v in (draft.year, draft.make, draft.model)
    )
    return SubmitPrompt(label=FIND_VEHICLE_LABEL, enabled=can_search)
