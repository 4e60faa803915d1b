from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from typing import Any

from gateway.errors import ValidationError, VehicleNotFoundError
from gateway.parsing import (
    parse_average_mileage,
    parse_makes,
    parse_models,
    parse_pricing,
    parse_trims,
    parse_vehicle_candidates,
)
from gateway.provider import AccuTradeClient
from tradein.data_models import (
    CatalogOption,
    MileageAdjustment,
    PricingResult,
    TrimOption,
    ValuationQuote,
    VinCandidate,
)
from tradein.mileage import LinearPolicy, MileagePolicy, compute_adjustment
from tradein.vin import is_valid_vin, model_year_from_vin, normalize_vin

logger = logging.getLogger(__name__)


@dataclass
class VehicleValue:
    gid: str
    pricing: PricingResult
    raw: dict[str, Any] = field(default_factory=dict)


def format_make(make: str) -> str:
    """Provider catalog paths expect ``Audi``, not ``audi`` or ``AUDI``."""
    make = make.strip()
    return make[:1].upper() + make[1:].lower()


def _require(**selectors: Any) -> None:
    missing = [name for name, value in selectors.items() if value is None or not str(value).strip()]
    if missing:
        verb = "is" if len(missing) == 1 else "are"
        raise ValidationError(f"{', '.join(n.capitalize() for n in missing)} {verb} required")


class ValuationGateway:
    """Vehicle lookups and valuation against the provider, in canonical shapes."""

    def __init__(
        self,
        client: AccuTradeClient,
        mileage_policy: MileagePolicy | None = None,
        default_average_mileage: int = 100_000,
    ) -> None:
        self.client = client
        self.mileage_policy = mileage_policy or LinearPolicy()
        self.default_average_mileage = default_average_mileage

    async def decode_vin(self, vin: str) -> list[VinCandidate]:
        vin = normalize_vin(vin)
        if not is_valid_vin(vin):
            raise ValidationError("Invalid VIN")

        payload = await self.client.vehicle_by_vin(vin)
        year = model_year_from_vin(vin)
        candidates = parse_vehicle_candidates(payload, fallback_year=str(year) if year else "")
        if not candidates:
            raise VehicleNotFoundError(f"No vehicles found for VIN {vin}")
        logger.info("Decoded VIN %s...%s into %d candidates", vin[:3], vin[-4:], len(candidates))
        return candidates

    async def _vehicle_payload(self, gid: str) -> Any:
        _require(gid=gid)
        # Shape is checked by the parsers; a non-object body is a PartialDataError.
        return await self.client.vehicle(gid.strip())

    async def get_vehicle_by_gid(self, gid: str) -> PricingResult:
        return parse_pricing(await self._vehicle_payload(gid))

    async def get_vehicle_value(self, gid: str) -> VehicleValue:
        payload = await self._vehicle_payload(gid)
        return VehicleValue(gid=gid, pricing=parse_pricing(payload), raw=payload)

    async def get_mileage_adjustment(self, gid: str, mileage: int | str) -> MileageAdjustment:
        current = _parse_mileage(mileage)
        payload = await self._vehicle_payload(gid)
        average = parse_average_mileage(payload, default=self.default_average_mileage)
        return compute_adjustment(self.mileage_policy, average, current)

    async def get_quote(self, gid: str, mileage: int | str) -> ValuationQuote:
        current = _parse_mileage(mileage)
        value, adjustment = await asyncio.gather(
            self.get_vehicle_value(gid),
            self.get_mileage_adjustment(gid, current),
        )
        return ValuationQuote(
            base_price=value.pricing.base_price,
            market_value=value.pricing.market_value,
            price_adjustment=adjustment.adjustment,
            desirable=adjustment.desirable,
            raw_provider_response=value.raw,
        )

    async def list_makes(self, year: str | None) -> list[CatalogOption]:
        _require(year=year)
        return parse_makes(await self.client.makes_by_year(year.strip()))

    async def list_models(self, year: str | None, make: str | None) -> list[str]:
        _require(year=year, make=make)
        return parse_models(await self.client.models(year.strip(), format_make(make)))

    async def list_trims(self, year: str | None, make: str | None, model: str | None) -> list[TrimOption]:
        _require(year=year, make=make, model=model)
        return parse_trims(await self.client.styles(year.strip(), format_make(make), model.strip()))

    async def lookup_manual(
        self, year: str | None, make: str | None, model: str | None, trim: str | None = None,
    ) -> list[VinCandidate]:
        _require(year=year, make=make, model=model)
        if trim is not None and trim.strip():
            payload = await self.client.vehicle_manual_with_trim(year.strip(), make.strip(), model.strip(), trim.strip())
        else:
            payload = await self.client.vehicle_manual(year.strip(), make.strip(), model.strip())
        candidates = parse_vehicle_candidates(payload, fallback_year=year.strip())
        if not candidates:
            raise VehicleNotFoundError(f"No vehicles found for {year} {make} {model}")
        return candidates


def _parse_mileage(mileage: int | str | None) -> int:
    if isinstance(mileage, bool):
        raise ValidationError("Mileage must be a whole number")
    if isinstance(mileage, int):
        value = mileage
    else:
        text = str(mileage or "").strip().replace(",", "")
        if not (text.isascii() and text.isdigit()):
            raise ValidationError("Mileage must be a whole number")
        value = int(text)
    if value < 0:
        raise ValidationError("Mileage cannot be negative")
    return value
