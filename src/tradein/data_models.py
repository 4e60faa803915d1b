from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Literal


VehicleCondition = Literal["excellent", "good", "fair", "poor"]
FinancingStatus = Literal["financed", "leased", "owned"]


@dataclass(frozen=True)
class VehicleIdentity:
    year: str
    make: str
    model: str
    trim: str = ""
    gid: str | None = None

    @property
    def is_resolved(self) -> bool:
        return bool(self.gid)


@dataclass(frozen=True)
class VinCandidate:
    year: str
    make: str
    model: str
    trim: str
    gid: str

    def to_identity(self) -> VehicleIdentity:
        return VehicleIdentity(year=self.year, make=self.make, model=self.model, trim=self.trim, gid=self.gid)


@dataclass(frozen=True)
class CatalogOption:
    value: str
    label: str


@dataclass(frozen=True)
class TrimOption:
    trim: str
    gid: str = ""


@dataclass(frozen=True)
class PricingResult:
    trade_in_value: float
    base_price: float
    market_value: float


@dataclass(frozen=True)
class MileageAdjustment:
    adjustment: int
    desirable: bool
    base_miles: int
    current_miles: int


@dataclass(frozen=True)
class ValuationQuote:
    base_price: float
    market_value: float
    price_adjustment: int
    desirable: bool
    raw_provider_response: dict[str, Any] = field(default_factory=dict)


# ── Wizard step outputs ─────────────────────────────────────────────


@dataclass(frozen=True)
class VehicleStepOutput:
    year: str
    make: str
    model: str
    trim: str
    gid: str
    mileage: int
    vehicle_base_price: float
    vehicle_price_adjustment: int
    vehicle_desirability: bool
    condition: VehicleCondition = "good"


@dataclass(frozen=True)
class SpecsStepOutput:
    exterior_color: str = "agate-black"
    interior_color: str = "sandstone"
    engine_options: tuple[str, ...] = ()


@dataclass(frozen=True)
class FinancingStepOutput:
    financing_status: FinancingStatus = "owned"


@dataclass(frozen=True)
class DamageStepOutput:
    has_accident: bool = False
    accident_details: str = ""
    needs_repairs: bool = False
    repair_details: str = ""


@dataclass(frozen=True)
class AdditionalStepOutput:
    has_winter_tires: bool = False
    has_original_keys: bool = False
    has_modifications: bool = False
    modification_details: str = ""


@dataclass(frozen=True)
class ContactStepOutput:
    first_name: str
    last_name: str
    phone: str
    email: str
    accept_terms: bool = False
