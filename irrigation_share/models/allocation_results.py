"""
Derived allocation results.

Ephemeral values produced by one invocation of the allocation engine:
coverage cells, per-supply-point farmer shares and per-farmer bills. None of
them persist across invocations; the engine rebuilds them in full each time.
"""

from dataclasses import dataclass, field
from typing import Any, Dict, List, Tuple

from shapely.geometry import MultiPolygon


# ═══════════════════════════════════════════════════════════════════════════
# 🧩 COVERAGE CELL
# ═══════════════════════════════════════════════════════════════════════════


@dataclass(frozen=True)
class CoverageCell:
    """A disjoint piece of a footprint and the farmers whose parcels cover it.

    The geometry may be disconnected (several separate pieces sharing the
    same farmer tag set); it is still one allocation unit.
    """

    geometry: MultiPolygon
    farmer_ids: Tuple[str, ...]

    def __post_init__(self) -> None:
        if not self.farmer_ids:
            raise ValueError("CoverageCell requires at least one farmer id")
        if len(set(self.farmer_ids)) != len(self.farmer_ids):
            raise ValueError(f"Duplicate farmer ids in cell: {self.farmer_ids}")

    def with_farmer(self, farmer_id: str) -> Tuple[str, ...]:
        """Farmer tag set extended by `farmer_id` (deduplicated, order kept)."""
        if farmer_id in self.farmer_ids:
            return self.farmer_ids
        return self.farmer_ids + (farmer_id,)


# ═══════════════════════════════════════════════════════════════════════════
# 📊 FAUCET SHARE
# ═══════════════════════════════════════════════════════════════════════════


@dataclass(frozen=True)
class FaucetShare:
    """A farmer's computed share of one supply point.

    Attributes:
        supply_point_id: Supply point the share belongs to
        farmer_id: Farmer receiving the share
        share: Fraction of the covered area (0-1, 6 decimal places)
        area: Absolute allocated area in m²
    """

    supply_point_id: str
    farmer_id: str
    share: float
    area: float

    def as_dict(self) -> Dict[str, Any]:
        return {
            "supply_point_id": self.supply_point_id,
            "farmer_id": self.farmer_id,
            "share": self.share,
            "area_m2": self.area,
        }

    @classmethod
    def from_dict(cls, d: Dict[str, Any]) -> "FaucetShare":
        return cls(
            supply_point_id=str(d["supply_point_id"]),
            farmer_id=str(d["farmer_id"]),
            share=float(d["share"]),
            area=float(d["area_m2"]),
        )


# ═══════════════════════════════════════════════════════════════════════════
# 💴 FARMER BILLING
# ═══════════════════════════════════════════════════════════════════════════


@dataclass(frozen=True)
class FarmerBilling:
    """Two-tier tariff bill for one farmer (currency: yen, volume: m³)."""

    farmer_id: str
    assessed_area_sqm: float
    base_fee: float
    base_volume_m3: float
    overage_volume_m3: float
    overage_fee: float
    total: float

    def as_dict(self) -> Dict[str, Any]:
        return {
            "farmer_id": self.farmer_id,
            "assessed_area_sqm": self.assessed_area_sqm,
            "base_fee_yen": self.base_fee,
            "base_volume_m3": self.base_volume_m3,
            "overage_volume_m3": self.overage_volume_m3,
            "overage_fee_yen": self.overage_fee,
            "total_yen": self.total,
        }


# ═══════════════════════════════════════════════════════════════════════════
# 📦 PIPELINE RESULT
# ═══════════════════════════════════════════════════════════════════════════


@dataclass
class AllocationResult:
    """Everything one pipeline invocation derived from a dataset snapshot."""

    zones: Dict[str, MultiPolygon] = field(default_factory=dict)
    cells: Dict[str, List[CoverageCell]] = field(default_factory=dict)
    shares: Dict[str, List[FaucetShare]] = field(default_factory=dict)
    water_usage: Dict[str, float] = field(default_factory=dict)
    billing: Dict[str, FarmerBilling] = field(default_factory=dict)

    @property
    def total_billed(self) -> float:
        return sum(b.total for b in self.billing.values())

    def summary(self) -> str:
        """Human-readable one-line summary."""
        return (
            f"{len(self.zones)} footprints, "
            f"{sum(len(c) for c in self.cells.values())} cells, "
            f"{len(self.billing)} bills totalling {self.total_billed:,.0f} yen"
        )
