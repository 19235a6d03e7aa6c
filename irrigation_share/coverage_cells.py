#!/usr/bin/env python3
"""
Coverage Cell Partitioning Module

ARCHITECTURAL OVERVIEW:
=======================
Responsibility: Overlay one supply point footprint with farmer-owned parcels
and produce a set of mutually disjoint coverage cells, each tagged with the
farmers whose parcels overlap that exact sub-region.

Algorithm (incremental overlay):
--------------------------------
cells = []
for each owned parcel:
    overlap = footprint ∩ parcel                  (skip parcel if empty)
    for each existing cell:
        shared = cell ∩ overlap
        if shared is not empty:
            cell    = cell - shared               (dropped if it empties)
            overlap = overlap - shared
            new cell(shared, cell.farmers + farmer)
    new cell(overlap, [farmer])                   (if anything is left)
discard cells with area <= EPSILON

Cost is O(parcels × cells-so-far) boolean operations, fine for the tens of
parcels a footprint touches. Cell geometry may be disconnected; each cell is
still one allocation unit and is not split further.

Navigation Guide:
- build_coverage_cells: Core partition
- _overlay_parcel: One incremental overlay step
- owned_parcels: Filter for parcels that take part in allocation
"""

import logging
from typing import Iterable, List, Optional

from shapely.geometry import MultiPolygon
from shapely.geometry.base import BaseGeometry

from irrigation_share.geometry_service import (
    EPSILON,
    difference,
    geodesic_area,
    intersect,
    to_multipolygon,
)
from irrigation_share.models import CoverageCell, Parcel

logger = logging.getLogger(__name__)


def owned_parcels(parcels: Iterable[Parcel]) -> List[Parcel]:
    """Parcels with an owning farmer; unowned parcels are excluded from allocation."""
    return [p for p in parcels if p.farmer_id]


def _overlay_parcel(
    cells: List[CoverageCell],
    overlap: MultiPolygon,
    farmer_id: str,
) -> List[CoverageCell]:
    """
    Overlay one parcel's footprint overlap onto the existing cells.

    Args:
        cells: Current disjoint cells (not modified)
        overlap: footprint ∩ parcel, non-empty
        farmer_id: Owner of the parcel

    Returns:
        New disjoint cell list
    """
    remaining = overlap
    kept: List[CoverageCell] = []
    additions: List[CoverageCell] = []

    for cell in cells:
        shared = intersect(cell.geometry, remaining)
        if shared.is_empty:
            kept.append(cell)
            continue

        shrunk = difference(cell.geometry, shared)
        if not shrunk.is_empty:
            kept.append(CoverageCell(geometry=shrunk, farmer_ids=cell.farmer_ids))
        remaining = difference(remaining, shared)
        additions.append(
            CoverageCell(geometry=shared, farmer_ids=cell.with_farmer(farmer_id))
        )

    kept.extend(additions)

    if not remaining.is_empty:
        kept.append(CoverageCell(geometry=remaining, farmer_ids=(farmer_id,)))

    return kept


def build_coverage_cells(
    zone: Optional[BaseGeometry],
    parcels: Iterable[Parcel],
) -> List[CoverageCell]:
    """
    Partition a footprint into disjoint farmer-tagged coverage cells.

    Args:
        zone: Supply point footprint
        parcels: All parcels; unowned ones are ignored

    Returns:
        List of CoverageCell whose geometries never overlap each other and
        whose areas are all > EPSILON. Empty if nothing overlaps.
    """
    footprint = to_multipolygon(zone)
    if footprint.is_empty:
        return []

    cells: List[CoverageCell] = []
    for parcel in owned_parcels(parcels):
        overlap = intersect(footprint, parcel.geometry)
        if overlap.is_empty:
            continue
        cells = _overlay_parcel(cells, overlap, parcel.farmer_id)

    result = [c for c in cells if geodesic_area(c.geometry) > EPSILON]

    dropped = len(cells) - len(result)
    if dropped:
        logger.debug(f"Discarded {dropped} sliver cells (area <= {EPSILON} m²)")

    return result
