"""
Dataset store: user actions over immutable dataset snapshots.

ARCHITECTURAL OVERVIEW:
=======================
Responsibility: Apply editing actions (add/update/remove farmers, upsert and
remove supply points, sprinklers and parcels, recalculate shares) to a
Dataset. Every action returns a NEW Dataset; the input snapshot is never
mutated, so the engine can always work on a consistent snapshot.

Referential integrity:
- remove_farmer refuses (returns False) while any parcel or supply point
  share still references the farmer
- remove_supply_point unassigns the sprinklers it fed

Share recalculation:
- Default: keep each user-entered share and refresh computed_share only
- overwrite_recorded=True: replace every share list with the engine output

Navigation Guide:
- empty_dataset / reset_dataset / create_id
- Farmer actions
- Supply point, sprinkler and parcel actions
- recalculate_farmer_shares
"""

import logging
import uuid
from dataclasses import replace
from typing import Dict, List, Optional, Tuple, TypeVar

from irrigation_share.config_types import AppConfig
from irrigation_share.models import (
    DEFAULT_MAP_VIEW,
    Dataset,
    Farmer,
    FarmerShare,
    FaucetShare,
    MapView,
    Parcel,
    Sprinkler,
    SupplyPoint,
)
from irrigation_share.share_calculator import calculate_faucet_shares

logger = logging.getLogger(__name__)

DEFAULT_FARMER_NAME = "新しい農家"

E = TypeVar("E", Farmer, SupplyPoint, Sprinkler, Parcel)


# ═══════════════════════════════════════════════════════════════════════════
# 📦 SNAPSHOT LIFECYCLE
# ═══════════════════════════════════════════════════════════════════════════


def create_id(prefix: str) -> str:
    """Entity id of the form '<prefix>-<uuid4>'."""
    return f"{prefix}-{uuid.uuid4()}"


def empty_dataset(map_view: MapView = DEFAULT_MAP_VIEW) -> Dataset:
    return Dataset(map_view=map_view)


def reset_dataset(dataset: Dataset) -> Dataset:
    """Drop every entity and restore the default map view."""
    return empty_dataset()


def set_map_view(dataset: Dataset, map_view: MapView) -> Dataset:
    return replace(dataset, map_view=map_view)


def _upsert(entities: Tuple[E, ...], entity: E) -> Tuple[E, ...]:
    """Replace the entity with the same id in place, or append it."""
    if any(item.id == entity.id for item in entities):
        return tuple(entity if item.id == entity.id else item for item in entities)
    return entities + (entity,)


def _without(entities: Tuple[E, ...], entity_id: str) -> Tuple[E, ...]:
    return tuple(item for item in entities if item.id != entity_id)


# ═══════════════════════════════════════════════════════════════════════════
# 👩‍🌾 FARMER ACTIONS
# ═══════════════════════════════════════════════════════════════════════════


def add_farmer(
    dataset: Dataset,
    name: str = DEFAULT_FARMER_NAME,
    notes: Optional[str] = None,
) -> Tuple[Dataset, Farmer]:
    """Append a new farmer with a fresh id; returns (dataset, farmer)."""
    farmer = Farmer(id=create_id("far"), name=name, notes=notes)
    return replace(dataset, farmers=dataset.farmers + (farmer,)), farmer


def update_farmer(dataset: Dataset, farmer_id: str, **updates) -> Dataset:
    """
    Update fields of one farmer (name, notes).

    Unknown farmer ids leave the dataset unchanged.
    """
    if "id" in updates:
        raise ValueError("Farmer id cannot be changed")
    return replace(
        dataset,
        farmers=tuple(
            replace(f, **updates) if f.id == farmer_id else f for f in dataset.farmers
        ),
    )


def is_farmer_referenced(dataset: Dataset, farmer_id: str) -> bool:
    """True while any parcel or supply point share points at the farmer."""
    return any(p.farmer_id == farmer_id for p in dataset.parcels) or any(
        sp.references_farmer(farmer_id) for sp in dataset.supply_points
    )


def remove_farmer(dataset: Dataset, farmer_id: str) -> Tuple[Dataset, bool]:
    """
    Remove a farmer unless something still references it.

    Returns:
        (new dataset, True) on success; (unchanged dataset, False) when a
        parcel or supply point share references the farmer
    """
    if is_farmer_referenced(dataset, farmer_id):
        logger.info(f"⚠️ Farmer {farmer_id} is still referenced, not removed")
        return dataset, False
    return replace(dataset, farmers=_without(dataset.farmers, farmer_id)), True


# ═══════════════════════════════════════════════════════════════════════════
# 🚰 SUPPLY POINT / SPRINKLER / PARCEL ACTIONS
# ═══════════════════════════════════════════════════════════════════════════


def upsert_supply_point(dataset: Dataset, supply_point: SupplyPoint) -> Dataset:
    return replace(dataset, supply_points=_upsert(dataset.supply_points, supply_point))


def remove_supply_point(dataset: Dataset, supply_point_id: str) -> Dataset:
    """Remove a supply point and unassign every sprinkler it fed."""
    sprinklers = tuple(
        replace(s, supply_point_id=None) if s.supply_point_id == supply_point_id else s
        for s in dataset.sprinklers
    )
    return replace(
        dataset,
        supply_points=_without(dataset.supply_points, supply_point_id),
        sprinklers=sprinklers,
    )


def upsert_sprinkler(dataset: Dataset, sprinkler: Sprinkler) -> Dataset:
    return replace(dataset, sprinklers=_upsert(dataset.sprinklers, sprinkler))


def remove_sprinkler(dataset: Dataset, sprinkler_id: str) -> Dataset:
    return replace(dataset, sprinklers=_without(dataset.sprinklers, sprinkler_id))


def upsert_parcel(dataset: Dataset, parcel: Parcel) -> Dataset:
    return replace(dataset, parcels=_upsert(dataset.parcels, parcel))


def remove_parcel(dataset: Dataset, parcel_id: str) -> Dataset:
    return replace(dataset, parcels=_without(dataset.parcels, parcel_id))


# ═══════════════════════════════════════════════════════════════════════════
# 🔄 SHARE RECALCULATION
# ═══════════════════════════════════════════════════════════════════════════


def _merge_shares(
    existing: Tuple[FarmerShare, ...],
    computed: List[FaucetShare],
) -> List[FarmerShare]:
    """
    Keep user-entered shares, refresh computed_share from the engine.

    Farmers new to the supply point take the computed value as their share.
    Recorded farmers the engine no longer sees are kept untouched after the
    computed ones.
    """
    by_farmer: Dict[str, FarmerShare] = {s.farmer_id: s for s in existing}
    merged: List[FarmerShare] = []

    for item in computed:
        recorded = by_farmer.pop(item.farmer_id, None)
        if recorded is not None:
            merged.append(replace(recorded, computed_share=item.share))
        else:
            merged.append(
                FarmerShare(
                    farmer_id=item.farmer_id,
                    share=item.share,
                    computed_share=item.share,
                )
            )

    merged.extend(s for s in existing if s.farmer_id in by_farmer)
    return merged


def recalculate_farmer_shares(
    dataset: Dataset,
    app_config: Optional[AppConfig] = None,
    overwrite_recorded: Optional[bool] = None,
) -> Dataset:
    """
    Run the share engine and write its results onto every supply point.

    Supply points without a footprint (no assigned sprinklers) keep their
    recorded shares unchanged.

    Args:
        dataset: Current snapshot
        app_config: Optional AppConfig (geometry, rounding, parallel settings)
        overwrite_recorded: Replace user-entered shares with computed ones.
            Defaults to app_config.shares.overwrite_recorded.

    Returns:
        New Dataset with updated supply point share lists
    """
    app_config = app_config or AppConfig()
    if overwrite_recorded is None:
        overwrite_recorded = app_config.shares.overwrite_recorded

    share_map = calculate_faucet_shares(dataset.sprinklers, dataset.parcels, app_config)

    supply_points = []
    for supply_point in dataset.supply_points:
        computed = share_map.get(supply_point.id)
        if computed is None:
            supply_points.append(supply_point)
            continue
        if overwrite_recorded:
            shares = [
                FarmerShare(farmer_id=c.farmer_id, share=c.share, computed_share=c.share)
                for c in computed
            ]
        else:
            shares = _merge_shares(supply_point.farmer_shares, computed)
        supply_points.append(supply_point.with_shares(shares))

    logger.debug(
        f"Recalculated shares for {len(share_map)} supply points "
        f"(overwrite_recorded={overwrite_recorded})"
    )
    return replace(dataset, supply_points=tuple(supply_points))
