"""Parsing layer for valuation provider payloads.

The provider names the same things differently across endpoint families
(``trade`` vs ``basePrice`` vs ``baseProjectedPrice``, bare strings vs
``{name}`` vs ``{model}``). Each accepted variant is declared here once;
everything downstream only sees the canonical records.
"""

from __future__ import annotations

import logging
from typing import Any

from pydantic import (
    AliasChoices,
    BaseModel,
    ConfigDict,
    Field,
    ValidationError as PydanticValidationError,
    field_validator,
    model_validator,
)

from gateway.errors import PartialDataError
from tradein.data_models import CatalogOption, PricingResult, TrimOption, VinCandidate

logger = logging.getLogger(__name__)

_CANDIDATE_CONTAINER_KEYS = ("vehicles", "styles", "results", "trims", "items")


class _Entry(BaseModel):
    model_config = ConfigDict(extra="ignore", coerce_numbers_to_str=True)

    @field_validator("*", mode="before")
    @classmethod
    def _strip(cls, value: Any) -> Any:
        return value.strip() if isinstance(value, str) else value


class _MakeEntry(_Entry):
    label: str | None = Field(default=None, validation_alias=AliasChoices("make", "name", "label"))


class _ModelEntry(_Entry):
    label: str | None = Field(default=None, validation_alias=AliasChoices("name", "model"))


class _StyleEntry(_Entry):
    style: str | None = None
    webmodel: str | None = None
    extended_gid: str | None = Field(default=None, validation_alias="extendedGid")
    gid: str | None = None

    @property
    def label(self) -> str:
        if self.style:
            return self.style
        return f"{self.webmodel or ''} {self.extended_gid or ''}".strip()


class _VehicleEntry(_Entry):
    gid: str | None = None
    year: str | None = Field(default=None, validation_alias=AliasChoices("year", "modelYear", "model_year"))
    make: str | None = None
    model: str | None = Field(default=None, validation_alias=AliasChoices("model", "webmodel"))
    trim: str | None = Field(default=None, validation_alias=AliasChoices("style", "trim", "series"))


# Provider field names per canonical field, in priority order. The first
# non-null one wins, so ``{"trade": null, "tradeInValue": 5}`` still prices.
_PRICING_FIELDS = {
    "trade_in_value": ("trade", "tradeInValue", "baseProjectedPrice"),
    "base_price": ("vehicleBasePrice", "basePrice", "baseProjectedPrice", "trade"),
    "market_value": ("market", "marketValue", "baseProjectedMarketPrice"),
}
_AVERAGE_MILEAGE_FIELDS = ("avgMileage", "basemiles")


def _first_non_null(payload: dict[str, Any], names: tuple[str, ...]) -> Any:
    for name in names:
        if payload.get(name) is not None:
            return payload[name]
    return None


class _PricingPayload(BaseModel):
    trade_in_value: float | None = None
    base_price: float | None = None
    market_value: float | None = None

    @model_validator(mode="before")
    @classmethod
    def _pick_fields(cls, data: Any) -> Any:
        if not isinstance(data, dict):
            return data
        return {name: _first_non_null(data, aliases) for name, aliases in _PRICING_FIELDS.items()}


class _MileageBaseline(BaseModel):
    average_mileage: int | None = None

    @model_validator(mode="before")
    @classmethod
    def _pick_field(cls, data: Any) -> Any:
        if not isinstance(data, dict):
            return data
        return {"average_mileage": _first_non_null(data, _AVERAGE_MILEAGE_FIELDS)}


def _as_list(payload: Any, what: str) -> list[Any]:
    if isinstance(payload, list):
        return payload
    logger.warning("Expected a list of %s from provider, got %s", what, type(payload).__name__)
    return []


def parse_pricing(payload: Any) -> PricingResult:
    if not isinstance(payload, dict):
        raise PartialDataError("Provider returned no pricing data")
    try:
        parsed = _PricingPayload.model_validate(payload)
    except PydanticValidationError as exc:
        fields = ", ".join(str(e["loc"][0]) for e in exc.errors() if e.get("loc"))
        raise PartialDataError(f"Provider returned non-numeric pricing fields: {fields}") from exc

    missing = [name for name, value in parsed.model_dump().items() if value is None]
    if missing:
        raise PartialDataError(f"Provider response is missing pricing fields: {', '.join(missing)}")
    return PricingResult(
        trade_in_value=parsed.trade_in_value,
        base_price=parsed.base_price,
        market_value=parsed.market_value,
    )


def parse_average_mileage(payload: Any, default: int) -> int:
    if not isinstance(payload, dict):
        raise PartialDataError("Provider returned no vehicle data")
    try:
        parsed = _MileageBaseline.model_validate(payload)
    except PydanticValidationError as exc:
        raise PartialDataError("Provider returned a non-numeric average mileage") from exc
    if parsed.average_mileage is None:
        return default
    return parsed.average_mileage


def parse_makes(payload: Any) -> list[CatalogOption]:
    makes: list[CatalogOption] = []
    for raw in _as_list(payload, "makes"):
        label = _label(raw, _MakeEntry)
        if label:
            makes.append(CatalogOption(value=label.lower(), label=label))
    return makes


def parse_models(payload: Any) -> list[str]:
    models: list[str] = []
    for raw in _as_list(payload, "models"):
        label = _label(raw, _ModelEntry)
        if label:
            models.append(label)
    return models


def parse_trims(payload: Any) -> list[TrimOption]:
    trims: list[TrimOption] = []
    for raw in _as_list(payload, "trims"):
        if isinstance(raw, str):
            if raw.strip():
                trims.append(TrimOption(trim=raw.strip()))
            continue
        entry = _validate_entry(raw, _StyleEntry)
        if entry is not None and entry.label:
            trims.append(TrimOption(trim=entry.label, gid=entry.gid or ""))
    return trims


def parse_vehicle_candidates(payload: Any, fallback_year: str = "") -> list[VinCandidate]:
    if isinstance(payload, dict):
        for key in _CANDIDATE_CONTAINER_KEYS:
            if isinstance(payload.get(key), list):
                payload = payload[key]
                break
        else:
            payload = [payload]

    candidates: list[VinCandidate] = []
    for raw in _as_list(payload, "vehicles"):
        entry = _validate_entry(raw, _VehicleEntry)
        if entry is None or not entry.gid:
            continue
        candidates.append(VinCandidate(
            year=entry.year or fallback_year,
            make=entry.make or "",
            model=entry.model or "",
            trim=entry.trim or "",
            gid=entry.gid,
        ))
    return candidates


def _label(raw: Any, entry_type: type[_Entry]) -> str:
    if isinstance(raw, str):
        return raw.strip()
    entry = _validate_entry(raw, entry_type)
    return (entry.label or "") if entry is not None else ""


def _validate_entry(raw: Any, entry_type: type[_Entry]) -> Any | None:
    if not isinstance(raw, dict):
        logger.debug("Dropping %s entry of type %s", entry_type.__name__, type(raw).__name__)
        return None
    try:
        return entry_type.model_validate(raw)
    except PydanticValidationError:
        logger.debug("Dropping malformed %s entry", entry_type.__name__)
        return None
