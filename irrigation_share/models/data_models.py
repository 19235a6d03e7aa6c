"""
Typed data models for the irrigation dataset.

Architectural Overview:
=======================
This module contains the immutable dataclasses that make up one dataset
snapshot: farmers, supply points ("faucets") with their recorded farmer
shares, sprinklers and parcels. The allocation engine only ever reads a
Dataset; user actions produce a NEW Dataset (see dataset_store.py) instead of
mutating one in place.

Key Interactions:
-----------------
- Input: document.py builds a Dataset from a validated interchange document
- Output: as_dict() methods provide plain dicts for serialization/workers
- Navigation: Use VS Code outline (Ctrl+Shift+O) for quick navigation

Coordinates:
------------
All locations are (lon, lat) tuples in WGS84 decimal degrees. Parcel
geometry is a Shapely Polygon in the same coordinates.
"""

from dataclasses import dataclass, field, replace
from typing import Optional, Dict, Any, List, Tuple

from shapely.geometry import Polygon, mapping, shape


# ═══════════════════════════════════════════════════════════════════════════
# 👩‍🌾 FARMER SECTION
# ═══════════════════════════════════════════════════════════════════════════


@dataclass(frozen=True)
class Farmer:
    """A farmer who owns parcels and draws water through shared supply points."""

    id: str
    name: str
    notes: Optional[str] = None

    def as_dict(self) -> Dict[str, Any]:
        result = {"id": self.id, "name": self.name}
        if self.notes is not None:
            result["notes"] = self.notes
        return result

    @classmethod
    def from_dict(cls, d: Dict[str, Any]) -> "Farmer":
        return cls(id=str(d["id"]), name=str(d["name"]), notes=d.get("notes"))


# ═══════════════════════════════════════════════════════════════════════════
# 🚰 SUPPLY POINT SECTION
# ═══════════════════════════════════════════════════════════════════════════


@dataclass(frozen=True)
class FarmerShare:
    """A farmer's recorded share of one supply point's usage.

    Two values are kept apart on purpose:
    - share: the user-editable fraction (manual override)
    - computed_share: the last value produced by the allocation engine

    Recalculation writes computed_share and leaves share alone unless the
    caller explicitly asks to overwrite recorded shares.
    """

    farmer_id: str
    share: float
    computed_share: Optional[float] = None

    def as_dict(self) -> Dict[str, Any]:
        result: Dict[str, Any] = {"farmerId": self.farmer_id, "share": self.share}
        if self.computed_share is not None:
            result["computedShare"] = self.computed_share
        return result

    @classmethod
    def from_dict(cls, d: Dict[str, Any]) -> "FarmerShare":
        computed = d.get("computedShare")
        return cls(
            farmer_id=str(d["farmerId"]),
            share=float(d["share"]),
            computed_share=float(computed) if computed is not None else None,
        )


@dataclass(frozen=True)
class SupplyPoint:
    """A shared water source (faucet) feeding one or more sprinklers.

    The unit of usage billing: its annual draw is divided among farmers
    according to their share fractions.
    """

    id: str
    name: str
    location: Tuple[float, float]
    annual_draw_m3: float = 0.0
    farmer_shares: Tuple[FarmerShare, ...] = field(default_factory=tuple)

    def share_for(self, farmer_id: str) -> Optional[FarmerShare]:
        """Recorded share for a farmer, or None if the farmer has none."""
        for share in self.farmer_shares:
            if share.farmer_id == farmer_id:
                return share
        return None

    def references_farmer(self, farmer_id: str) -> bool:
        return self.share_for(farmer_id) is not None

    def with_shares(self, shares: List[FarmerShare]) -> "SupplyPoint":
        """Create a copy with a new share list, preserving all other fields."""
        return replace(self, farmer_shares=tuple(shares))

    def as_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "location": list(self.location),
            "annualWaterUsageM3": self.annual_draw_m3,
            "farmerShares": [s.as_dict() for s in self.farmer_shares],
        }


# ═══════════════════════════════════════════════════════════════════════════
# 💦 SPRINKLER SECTION
# ═══════════════════════════════════════════════════════════════════════════


@dataclass(frozen=True)
class Sprinkler:
    """A sprinkler head, optionally fed by one supply point.

    Sprinklers without a supply point contribute to no coverage footprint.
    """

    id: str
    name: str
    location: Tuple[float, float]
    supply_point_id: Optional[str] = None

    def as_dict(self) -> Dict[str, Any]:
        result: Dict[str, Any] = {
            "id": self.id,
            "name": self.name,
            "location": list(self.location),
        }
        if self.supply_point_id is not None:
            result["faucetId"] = self.supply_point_id
        return result


# ═══════════════════════════════════════════════════════════════════════════
# 🗺️ PARCEL SECTION
# ═══════════════════════════════════════════════════════════════════════════


@dataclass(frozen=True)
class Parcel:
    """A land parcel, optionally owned by a farmer.

    assessed_area_sqm is the authoritative billing area. When it is None the
    billing engine falls back to the geodesic area of `geometry`.
    Parcels without an owner are excluded from allocation.
    """

    id: str
    name: str
    geometry: Polygon
    farmer_id: Optional[str] = None
    assessed_area_sqm: Optional[float] = None

    def as_dict(self) -> Dict[str, Any]:
        result: Dict[str, Any] = {
            "id": self.id,
            "name": self.name,
            "geometry": mapping(self.geometry),
        }
        if self.farmer_id is not None:
            result["farmerId"] = self.farmer_id
        if self.assessed_area_sqm is not None:
            result["assessedAreaSqm"] = self.assessed_area_sqm
        return result

    @classmethod
    def from_dict(cls, d: Dict[str, Any]) -> "Parcel":
        """Create Parcel from as_dict() output (GeoJSON geometry mapping)."""
        assessed = d.get("assessedAreaSqm")
        return cls(
            id=str(d["id"]),
            name=str(d.get("name", d["id"])),
            geometry=shape(d["geometry"]),
            farmer_id=d.get("farmerId"),
            assessed_area_sqm=float(assessed) if assessed is not None else None,
        )


# ═══════════════════════════════════════════════════════════════════════════
# 📦 DATASET SECTION
# ═══════════════════════════════════════════════════════════════════════════


@dataclass(frozen=True)
class MapView:
    """Map viewport carried through the interchange document."""

    center: Tuple[float, float]
    zoom: float

    def __post_init__(self) -> None:
        if not 0 <= self.zoom <= 22:
            raise ValueError(f"zoom must be within 0..22, got {self.zoom}")


DEFAULT_MAP_VIEW = MapView(center=(24.8055, 125.2941), zoom=12)


@dataclass(frozen=True)
class Dataset:
    """Immutable snapshot of every entity the engine reads.

    Usage Examples:
    ---------------
    ```python
    dataset = Dataset(farmers=(alice,), parcels=(field_a,))
    dataset, removed = remove_farmer(dataset, alice.id)  # new snapshot
    ```
    """

    map_view: MapView = DEFAULT_MAP_VIEW
    farmers: Tuple[Farmer, ...] = field(default_factory=tuple)
    supply_points: Tuple[SupplyPoint, ...] = field(default_factory=tuple)
    sprinklers: Tuple[Sprinkler, ...] = field(default_factory=tuple)
    parcels: Tuple[Parcel, ...] = field(default_factory=tuple)

    def farmer(self, farmer_id: str) -> Optional[Farmer]:
        for farmer in self.farmers:
            if farmer.id == farmer_id:
                return farmer
        return None

    def supply_point(self, supply_point_id: str) -> Optional[SupplyPoint]:
        for supply_point in self.supply_points:
            if supply_point.id == supply_point_id:
                return supply_point
        return None

    def farmer_names(self) -> Dict[str, str]:
        """Mapping of farmer id -> display name."""
        return {f.id: f.name for f in self.farmers}
