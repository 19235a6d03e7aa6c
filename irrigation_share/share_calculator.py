#!/usr/bin/env python3
"""
Faucet Share Calculator

ARCHITECTURAL OVERVIEW:
=======================
Responsibility: Convert coverage cells into a normalized per-farmer share of
each supply point, and drive the zone -> cells -> shares chain for every
supply point in a dataset.

Share policy:
-------------
- Each cell's area is split EQUALLY among the k farmers tagged on it
  (undifferentiated shared water rights on double-claimed ground).
- covered area = Σ cell areas (not the footprint area)
- share = farmer area / covered area, rounded to 6 decimals
- shares <= EPSILON are dropped
- the rounding residual is folded into the largest share so a supply point's
  shares always sum to 1
- output sorted by share descending, then farmer id ascending

Navigation Guide:
- calculate_shares_for_zone: Cells -> shares for one footprint
- compute_zone_allocation: Footprint -> (cells, shares)
- compute_all_zone_allocations: All footprints, sequential or parallel
- calculate_faucet_shares: Sprinklers + parcels -> shares per supply point
"""

import logging
from typing import Dict, Iterable, List, Optional, Sequence, Tuple

from shapely.geometry import MultiPolygon

from irrigation_share.config_types import AppConfig
from irrigation_share.coverage_cells import build_coverage_cells
from irrigation_share.coverage_zones import build_faucet_zones
from irrigation_share.geometry_service import EPSILON, geodesic_area
from irrigation_share.models import CoverageCell, FaucetShare, Parcel, Sprinkler

logger = logging.getLogger(__name__)

SHARE_DECIMALS = 6


# ═══════════════════════════════════════════════════════════════════════════
# 📊 SHARES FOR ONE FOOTPRINT
# ═══════════════════════════════════════════════════════════════════════════


def _allocate_cell_areas(cells: Sequence[CoverageCell]) -> Tuple[Dict[str, float], float]:
    """Split each cell equally among its farmers; return (area per farmer, covered area)."""
    farmer_area: Dict[str, float] = {}
    covered_area = 0.0

    for cell in cells:
        cell_area = geodesic_area(cell.geometry)
        if cell_area <= EPSILON:
            continue
        covered_area += cell_area
        share_area = cell_area / len(cell.farmer_ids)
        for farmer_id in cell.farmer_ids:
            farmer_area[farmer_id] = farmer_area.get(farmer_id, 0.0) + share_area

    return farmer_area, covered_area


def _sort_key(share: FaucetShare) -> Tuple[float, str]:
    return (-share.share, share.farmer_id)


def calculate_shares_for_zone(
    supply_point_id: str,
    cells: Sequence[CoverageCell],
    decimals: int = SHARE_DECIMALS,
) -> List[FaucetShare]:
    """
    Compute each farmer's share of one supply point from its coverage cells.

    Args:
        supply_point_id: Supply point the cells belong to
        cells: Disjoint coverage cells of the footprint
        decimals: Rounding applied to share fractions

    Returns:
        List of FaucetShare sorted by share descending, farmer id ascending.
        Empty when the covered area is <= EPSILON.
    """
    farmer_area, covered_area = _allocate_cell_areas(cells)
    if covered_area <= EPSILON:
        return []

    shares = [
        FaucetShare(
            supply_point_id=supply_point_id,
            farmer_id=farmer_id,
            share=round(area / covered_area, decimals),
            area=area,
        )
        for farmer_id, area in farmer_area.items()
    ]
    shares = sorted((s for s in shares if s.share > EPSILON), key=_sort_key)
    if not shares:
        return []

    # Rounding can leave the total a few units of the last decimal off 1.0
    residual = round(1.0 - sum(s.share for s in shares), decimals)
    if residual != 0.0:
        top = shares[0]
        shares[0] = FaucetShare(
            supply_point_id=top.supply_point_id,
            farmer_id=top.farmer_id,
            share=round(top.share + residual, decimals),
            area=top.area,
        )
        shares.sort(key=_sort_key)

    return shares


def compute_zone_allocation(
    supply_point_id: str,
    zone: MultiPolygon,
    parcels: Iterable[Parcel],
    decimals: int = SHARE_DECIMALS,
) -> Tuple[List[CoverageCell], List[FaucetShare]]:
    """
    Partition one footprint and derive its shares.

    Returns:
        Tuple of (coverage cells, shares)
    """
    cells = build_coverage_cells(zone, parcels)
    shares = calculate_shares_for_zone(supply_point_id, cells, decimals)
    return cells, shares


# ═══════════════════════════════════════════════════════════════════════════
# 🔷 ALL FOOTPRINTS
# ═══════════════════════════════════════════════════════════════════════════


def compute_all_zone_allocations(
    zones: Dict[str, MultiPolygon],
    parcels: Sequence[Parcel],
    app_config: Optional[AppConfig] = None,
) -> Tuple[Dict[str, List[CoverageCell]], Dict[str, List[FaucetShare]]]:
    """
    Compute cells and shares for every footprint.

    Footprints are independent, so they may be dispatched to parallel workers
    (see parallel.share_orchestrator) without changing the results.

    Args:
        zones: supply_point_id -> footprint
        parcels: All parcels
        app_config: Optional AppConfig (parallel settings, share rounding)

    Returns:
        Tuple of (cells by supply point, shares by supply point), both keyed
        in the iteration order of `zones`
    """
    app_config = app_config or AppConfig()
    decimals = app_config.shares.decimals

    from irrigation_share.parallel.share_orchestrator import (
        compute_shares_parallel,
        should_use_parallel,
    )

    use_parallel, reason = should_use_parallel(len(zones), app_config)
    if use_parallel:
        logger.info(f"⚡ Parallel share computation: {reason}")
        return compute_shares_parallel(zones, parcels, app_config)

    logger.debug(f"Sequential share computation: {reason}")
    cells_by_zone: Dict[str, List[CoverageCell]] = {}
    shares_by_zone: Dict[str, List[FaucetShare]] = {}
    for supply_point_id, zone in zones.items():
        cells, shares = compute_zone_allocation(supply_point_id, zone, parcels, decimals)
        cells_by_zone[supply_point_id] = cells
        shares_by_zone[supply_point_id] = shares
    return cells_by_zone, shares_by_zone


def calculate_faucet_shares(
    sprinklers: Iterable[Sprinkler],
    parcels: Sequence[Parcel],
    app_config: Optional[AppConfig] = None,
) -> Dict[str, List[FaucetShare]]:
    """
    Compute every supply point's farmer shares from sprinklers and parcels.

    Supply points with no assigned sprinklers have no entry; supply points
    whose footprint covers no owned parcel map to an empty list.

    Args:
        sprinklers: Sprinkler entities
        parcels: Parcel entities
        app_config: Optional AppConfig (radius, circle steps, parallel)

    Returns:
        Dict mapping supply_point_id -> sorted list of FaucetShare
    """
    app_config = app_config or AppConfig()
    zones = build_faucet_zones(
        sprinklers,
        radius_m=app_config.sprinkler.radius_m,
        steps=app_config.sprinkler.circle_steps,
    )
    _, shares = compute_all_zone_allocations(zones, list(parcels), app_config)
    return shares
