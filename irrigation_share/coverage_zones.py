#!/usr/bin/env python3
"""
Supply Point Coverage Zone Computation Module

ARCHITECTURAL OVERVIEW:
=======================
Responsibility: Compute each supply point's coverage footprint using a buffer
union approach. Every sprinkler contributes a fixed-radius geodesic circle;
the circles of all sprinklers fed by the same supply point are unioned into
one multi-polygon footprint.

This is a PURE COMPUTATION module - no I/O, no shared state.

Key Features:
1. Group sprinklers by assigned supply point (orphans dropped)
2. Circle union per supply point (30m radius by default)
3. Footprint summary statistics

Navigation Guide:
- group_sprinklers_by_supply_point: Grouping step
- build_faucet_zones: Core computation logic
- get_zone_summary: Summary statistics

CONFIGURATION ARCHITECTURE:
- No CONFIG access - all functions accept explicit parameters
- radius_m controls circle radius
- Pure data-in, data-out design
"""

import logging
from typing import Dict, Any, Iterable, List, Optional

from shapely.geometry import MultiPolygon

from irrigation_share.geometry_service import (
    CIRCLE_STEPS,
    RADIUS_METERS,
    create_sprinkler_circle,
    geodesic_area,
    union_all,
)
from irrigation_share.models import Sprinkler


# ===========================================================================
# SPRINKLER GROUPING
# ===========================================================================


def group_sprinklers_by_supply_point(
    sprinklers: Iterable[Sprinkler],
) -> Dict[str, List[Sprinkler]]:
    """
    Group sprinklers by their supply point id.

    Sprinklers without a supply point are dropped. Group order follows the
    first appearance of each supply point id in the input.

    Args:
        sprinklers: Sprinkler entities

    Returns:
        Dict mapping supply_point_id -> list of sprinklers
    """
    grouped: Dict[str, List[Sprinkler]] = {}
    for sprinkler in sprinklers:
        if not sprinkler.supply_point_id:
            continue
        grouped.setdefault(sprinkler.supply_point_id, []).append(sprinkler)
    return grouped


# ===========================================================================
# COVERAGE ZONE COMPUTATION
# ===========================================================================


def build_faucet_zones(
    sprinklers: Iterable[Sprinkler],
    radius_m: float = RADIUS_METERS,
    steps: int = CIRCLE_STEPS,
    logger: Optional[logging.Logger] = None,
) -> Dict[str, MultiPolygon]:
    """
    Compute the coverage footprint of every supply point.

    Builds a geodesic circle around every assigned sprinkler and folds the
    circles of one supply point together with the union primitive. Supply
    points with no assigned sprinklers are absent from the result (absence,
    not an empty polygon).

    Args:
        sprinklers: Sprinkler entities
        radius_m: Circle radius in meters
        steps: Circle polygon vertices
        logger: Optional logger instance

    Returns:
        Dict mapping supply_point_id -> footprint MultiPolygon
    """
    grouped = group_sprinklers_by_supply_point(sprinklers)

    if logger:
        logger.info(
            f"   Computing coverage footprints for {len(grouped)} supply points "
            f"(radius={radius_m}m)..."
        )

    zones: Dict[str, MultiPolygon] = {}
    for supply_point_id, members in grouped.items():
        circles = [
            create_sprinkler_circle(s.location, radius_m, steps) for s in members
        ]
        zone = union_all(circles)
        if zone.is_empty:
            continue
        zones[supply_point_id] = zone

        if logger:
            logger.debug(
                f"      {supply_point_id}: {len(members)} sprinklers, "
                f"{geodesic_area(zone):.1f} m²"
            )

    return zones


# ===========================================================================
# SUMMARY STATISTICS
# ===========================================================================


def get_zone_summary(
    zones: Dict[str, MultiPolygon],
    covered_areas: Optional[Dict[str, float]] = None,
) -> List[Dict[str, Any]]:
    """
    Get summary statistics for supply point footprints.

    Args:
        zones: Footprints from build_faucet_zones
        covered_areas: Optional supply_point_id -> parcel-covered area (m²)

    Returns:
        List of dicts sorted by supply point id
    """
    summary = []
    for supply_point_id in sorted(zones):
        zone = zones[supply_point_id]
        footprint_area = geodesic_area(zone)
        row: Dict[str, Any] = {
            "supply_point_id": supply_point_id,
            "footprint_area_m2": footprint_area,
            "footprint_parts": len(zone.geoms),
        }
        if covered_areas is not None:
            covered = covered_areas.get(supply_point_id, 0.0)
            row["covered_area_m2"] = covered
            row["covered_pct"] = (
                100 * covered / footprint_area if footprint_area > 0 else 0.0
            )
        summary.append(row)
    return summary
