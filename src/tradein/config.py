from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True)
class WizardConfig:
    exterior_colors: tuple[str, ...] = (
        "agate-black",
        "oxford-white",
        "iconic-silver",
        "carbonized-gray",
        "rapid-red",
        "atlas-blue",
        "forged-green",
        "desert-gold",
    )
    interior_colors: tuple[str, ...] = (
        "onyx",
        "sandstone",
        "cognac",
        "space-gray",
        "ceramic",
        "navy-pier",
    )
    engine_options: tuple[str, ...] = ("3.5l-ecoboost", "3.0l-diesel")
    vehicle_conditions: tuple[str, ...] = ("excellent", "good", "fair", "poor")
    financing_statuses: tuple[str, ...] = ("financed", "leased", "owned")
    estimate_floor_ratio: float = 0.90
    tax_savings_rate: float = 0.13  # HST on the trade-in credit
