from __future__ import annotations

import dataclasses
import re
from enum import Enum
from typing import Any

from pydantic import TypeAdapter, ValidationError as PydanticValidationError

from tradein.config import WizardConfig
from tradein.data_models import (
    AdditionalStepOutput,
    ContactStepOutput,
    DamageStepOutput,
    FinancingStepOutput,
    SpecsStepOutput,
    VehicleStepOutput,
)


class WizardStep(str, Enum):
    VEHICLE = "vehicle"
    SPECS = "specs"
    FINANCING = "financing"
    DAMAGE = "damage"
    ADDITIONAL = "additional"
    CONTACT = "contact"
    REPORT = "report"


STEP_ORDER: tuple[WizardStep, ...] = tuple(WizardStep)

OUTPUT_TYPES: dict[WizardStep, type] = {
    WizardStep.VEHICLE: VehicleStepOutput,
    WizardStep.SPECS: SpecsStepOutput,
    WizardStep.FINANCING: FinancingStepOutput,
    WizardStep.DAMAGE: DamageStepOutput,
    WizardStep.ADDITIONAL: AdditionalStepOutput,
    WizardStep.CONTACT: ContactStepOutput,
}

_EMAIL_RE = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")
_PHONE_RE = re.compile(r"^\+?[\d\s-]{10,}$")


class StepValidationError(ValueError):
    """Raised when a step output is rejected; carries per-field messages."""

    def __init__(self, step: WizardStep, errors: dict[str, str]) -> None:
        self.step = step
        self.errors = errors
        detail = "; ".join(f"{k}: {v}" for k, v in errors.items())
        super().__init__(f"Step '{step.value}' is incomplete: {detail}")


class StepOrderError(RuntimeError):
    pass


def _validate_vehicle(out: VehicleStepOutput, config: WizardConfig) -> dict[str, str]:
    errors: dict[str, str] = {}
    for name in ("year", "make", "model", "trim"):
        if not str(getattr(out, name)).strip():
            errors[name] = f"{name.capitalize()} is required"
    if not out.gid:
        errors["gid"] = "Select a trim to resolve the vehicle"
    if out.mileage is None or out.mileage < 0:
        errors["mileage"] = "Mileage is required"
    if out.condition not in config.vehicle_conditions:
        errors["condition"] = "Select a vehicle condition"
    return errors


def _validate_specs(out: SpecsStepOutput, config: WizardConfig) -> dict[str, str]:
    errors: dict[str, str] = {}
    if out.exterior_color not in config.exterior_colors:
        errors["exterior_color"] = "Unknown exterior color"
    if out.interior_color not in config.interior_colors:
        errors["interior_color"] = "Unknown interior color"
    unknown = [e for e in out.engine_options if e not in config.engine_options]
    if unknown:
        errors["engine_options"] = f"Unknown engine options: {', '.join(unknown)}"
    return errors


def _validate_financing(out: FinancingStepOutput, config: WizardConfig) -> dict[str, str]:
    if out.financing_status not in config.financing_statuses:
        return {"financing_status": "Select a financing status"}
    return {}


def _validate_damage(out: DamageStepOutput, config: WizardConfig) -> dict[str, str]:
    errors: dict[str, str] = {}
    if out.has_accident and not out.accident_details.strip():
        errors["accident_details"] = "Please provide accident details"
    if out.needs_repairs and not out.repair_details.strip():
        errors["repair_details"] = "Please provide repair details"
    return errors


def _validate_additional(out: AdditionalStepOutput, config: WizardConfig) -> dict[str, str]:
    if out.has_modifications and not out.modification_details.strip():
        return {"modification_details": "Please provide modification details"}
    return {}


def _validate_contact(out: ContactStepOutput, config: WizardConfig) -> dict[str, str]:
    errors: dict[str, str] = {}
    if not out.first_name.strip():
        errors["first_name"] = "First name is required"
    if not out.last_name.strip():
        errors["last_name"] = "Last name is required"
    if not out.phone.strip():
        errors["phone"] = "Phone number is required"
    elif not _PHONE_RE.match(out.phone):
        errors["phone"] = "Please enter a valid phone number"
    if not out.email.strip():
        errors["email"] = "Email is required"
    elif not _EMAIL_RE.match(out.email):
        errors["email"] = "Please enter a valid email address"
    if not out.accept_terms:
        errors["accept_terms"] = "You must accept the terms of service"
    return errors


_VALIDATORS = {
    WizardStep.VEHICLE: _validate_vehicle,
    WizardStep.SPECS: _validate_specs,
    WizardStep.FINANCING: _validate_financing,
    WizardStep.DAMAGE: _validate_damage,
    WizardStep.ADDITIONAL: _validate_additional,
    WizardStep.CONTACT: _validate_contact,
}


def validate_output(step: WizardStep, output: Any, config: WizardConfig | None = None) -> dict[str, str]:
    """Return field errors for ``output`` as the answer to ``step`` (empty when valid)."""
    expected = OUTPUT_TYPES.get(step)
    if expected is None:
        raise StepOrderError(f"Step '{step.value}' does not collect any data")
    if not isinstance(output, expected):
        return {"output": f"Expected {expected.__name__}, got {type(output).__name__}"}
    return _VALIDATORS[step](output, config or WizardConfig())


_ADAPTERS: dict[WizardStep, TypeAdapter[Any]] = {step: TypeAdapter(t) for step, t in OUTPUT_TYPES.items()}


def build_output(step: WizardStep, data: dict[str, Any]) -> Any:
    """Build the output record for ``step`` from a plain mapping.

    Field types are checked here; business rules stay in ``validate_output``.
    """
    output_type = OUTPUT_TYPES.get(step)
    if output_type is None:
        raise StepOrderError(f"Step '{step.value}' does not collect any data")
    known = {f.name for f in dataclasses.fields(output_type)}
    unknown = sorted(set(data) - known)
    if unknown:
        raise StepValidationError(step, {"body": f"Unexpected fields: {', '.join(unknown)}"})
    try:
        return _ADAPTERS[step].validate_python(dict(data))
    except PydanticValidationError as exc:
        errors = {str(err["loc"][0]) if err["loc"] else "body": err["msg"] for err in exc.errors()}
        raise StepValidationError(step, errors) from exc
