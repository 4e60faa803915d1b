from __future__ import annotations

import dataclasses
from dataclasses import dataclass
from typing import Any

from tradein.config import WizardConfig
from tradein.steps import StepOrderError, WizardStep
from tradein.wizard import WizardState


MILEAGE_BELOW_AVERAGE = "Below Average"
MILEAGE_ABOVE_AVERAGE = "Above Average"


@dataclass(frozen=True)
class EstimatedValue:
    min: float
    max: float
    black_book_value: float
    tax_savings: float
    total_benefit: float


@dataclass(frozen=True)
class TradeInReport:
    vehicle: dict[str, Any]
    estimated_value: EstimatedValue
    mileage_status: str
    disclosures: dict[str, dict[str, Any]]

    def to_dict(self) -> dict[str, Any]:
        return dataclasses.asdict(self)


def estimate_value(base_price: float, adjustment: float, config: WizardConfig | None = None) -> EstimatedValue:
    cfg = config or WizardConfig()
    ceiling = base_price + adjustment
    tax_savings = round(base_price * cfg.tax_savings_rate, 2)
    return EstimatedValue(
        min=round(ceiling * cfg.estimate_floor_ratio, 2),
        max=round(ceiling, 2),
        black_book_value=base_price,
        tax_savings=tax_savings,
        total_benefit=round(base_price + tax_savings, 2),
    )


def build_report(state: WizardState, config: WizardConfig | None = None) -> TradeInReport:
    if not state.is_complete:
        raise StepOrderError(f"Report is not available at step '{state.step.value}'")
    vehicle = state.output_for(WizardStep.VEHICLE)
    if vehicle is None:
        raise StepOrderError("Vehicle step has not been completed")

    disclosures = {
        step.value: dataclasses.asdict(output)
        for step, output in state.outputs.items()
        if step is not WizardStep.VEHICLE
    }
    return TradeInReport(
        vehicle={
            "year": vehicle.year,
            "make": vehicle.make,
            "model": vehicle.model,
            "trim": vehicle.trim,
            "condition": vehicle.condition,
            "mileage": vehicle.mileage,
        },
        estimated_value=estimate_value(vehicle.vehicle_base_price, vehicle.vehicle_price_adjustment, config),
        mileage_status=MILEAGE_BELOW_AVERAGE if vehicle.vehicle_desirability else MILEAGE_ABOVE_AVERAGE,
        disclosures=disclosures,
    )
