"""Mileage-based price adjustment policies.

Two adjustment rules are in use and neither is canonical yet, so the rule
is injected as a policy value instead of being hard-wired into the gateway.
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Union

from tradein.data_models import MileageAdjustment


@dataclass(frozen=True)
class LinearPolicy:
    """Currency units per 1000 miles of distance from the average."""

    rate_per_thousand: float = 100.0

    def adjust(self, average_mileage: int, actual_mileage: int) -> int:
        delta = (average_mileage - actual_mileage) / 1000 * self.rate_per_thousand
        # Half rounds toward +inf, not to even.
        return int(math.floor(delta + 0.5))


@dataclass(frozen=True)
class FlatPolicy:
    """Fixed bonus below the average, fixed penalty at or above it."""

    amount: int = 750

    def adjust(self, average_mileage: int, actual_mileage: int) -> int:
        return self.amount if actual_mileage < average_mileage else -self.amount


MileagePolicy = Union[LinearPolicy, FlatPolicy]


def build_policy(name: str, rate_per_thousand: float = 100.0, flat_amount: int = 750) -> MileagePolicy:
    key = name.strip().lower()
    if key == "linear":
        return LinearPolicy(rate_per_thousand=rate_per_thousand)
    if key == "flat":
        return FlatPolicy(amount=flat_amount)
    raise ValueError(f"Unknown mileage policy: {name!r} (expected 'linear' or 'flat')")


def compute_adjustment(policy: MileagePolicy, average_mileage: int, actual_mileage: int) -> MileageAdjustment:
    return MileageAdjustment(
        adjustment=policy.adjust(average_mileage, actual_mileage),
        desirable=actual_mileage < average_mileage,
        base_miles=average_mileage,
        current_miles=actual_mileage,
    )
