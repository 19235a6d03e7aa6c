"""
Orchestrator for parallel per-supply-point share computation.

ARCHITECTURAL OVERVIEW:
=======================
Responsibility: Dispatch every supply point footprint to parallel workers and
collect cells and shares back into the same structure the sequential path
produces. Footprints share no mutable state, so the fan-out changes timing
only, never results.

Patterns:
- should_use_parallel() check for config, job count and joblib availability
- Serialize inputs ONCE before dispatch (avoid per-worker overhead)
- joblib Parallel with delayed for process-based parallelism
- Result collection with error aggregation
- Inline sequential fallback when the pool itself fails

Key Functions:
- compute_shares_parallel(): Main entry point
- serialize_parcels() / deserialize_parcels(): Parcel transport
- serialize_geometry() / deserialize_geometry(): WKT transport

For Navigation: Use VS Code outline (Ctrl+Shift+O)
"""

import logging
import os
import time
from typing import Any, Dict, List, Optional, Sequence, Tuple

from shapely import wkt
from shapely.geometry import MultiPolygon
from shapely.geometry.base import BaseGeometry

from irrigation_share.config_types import AppConfig
from irrigation_share.geometry_service import EMPTY_GEOMETRY, to_multipolygon
from irrigation_share.models import CoverageCell, FaucetShare, Parcel

logger = logging.getLogger("irrigation_share.parallel.orchestrator")


# ═══════════════════════════════════════════════════════════════════════════
# 📐 GEOMETRY SERIALIZATION
# ═══════════════════════════════════════════════════════════════════════════


def serialize_geometry(geom: Optional[BaseGeometry]) -> Optional[str]:
    """
    Serialize a Shapely geometry to WKT string.

    Returns:
        WKT string representation, or None if geometry is empty/None
    """
    if geom is None or geom.is_empty:
        return None
    return geom.wkt


def deserialize_geometry(wkt_str: Optional[str]) -> MultiPolygon:
    """
    Deserialize WKT string back to a MultiPolygon.

    Returns:
        MultiPolygon, or EMPTY_GEOMETRY if input is None/empty
    """
    if not wkt_str:
        return EMPTY_GEOMETRY
    return to_multipolygon(wkt.loads(wkt_str))


# ═══════════════════════════════════════════════════════════════════════════
# 🗺️ PARCEL SERIALIZATION
# ═══════════════════════════════════════════════════════════════════════════


def serialize_parcels(parcels: Sequence[Parcel]) -> List[Dict[str, Any]]:
    """
    Serialize owned parcels to picklable records with WKT geometry.

    Unowned parcels never take part in allocation and are not shipped.
    """
    return [
        {
            "id": p.id,
            "name": p.name,
            "geometry": p.geometry.wkt,
            "farmer_id": p.farmer_id,
            "assessed_area_sqm": p.assessed_area_sqm,
        }
        for p in parcels
        if p.farmer_id
    ]


def deserialize_parcels(records: List[Dict[str, Any]]) -> List[Parcel]:
    """Reconstruct Parcel entities from serialize_parcels() records."""
    return [
        Parcel(
            id=r["id"],
            name=r["name"],
            geometry=wkt.loads(r["geometry"]),
            farmer_id=r.get("farmer_id"),
            assessed_area_sqm=r.get("assessed_area_sqm"),
        )
        for r in records
    ]


# ═══════════════════════════════════════════════════════════════════════════
# ⚙️ PARALLEL DECISION FUNCTIONS
# ═══════════════════════════════════════════════════════════════════════════


def should_use_parallel(
    n_supply_points: int,
    app_config: AppConfig,
) -> Tuple[bool, str]:
    """
    Determine if parallel processing should be used.

    Args:
        n_supply_points: Number of footprints to process.
        app_config: AppConfig with parallel settings.

    Returns:
        Tuple of (should_use: bool, reason: str).
    """
    parallel = app_config.parallel

    if not parallel.enabled:
        return False, "Parallel disabled in config"

    if n_supply_points < parallel.min_supply_points_for_parallel:
        return False, (
            f"Only {n_supply_points} supply points "
            f"(< {parallel.min_supply_points_for_parallel} threshold)"
        )

    try:
        from joblib import Parallel, delayed  # noqa: F401
    except ImportError:
        return False, "joblib not installed"

    return True, f"OK ({n_supply_points} supply points)"


def get_effective_worker_count(n_supply_points: int, app_config: AppConfig) -> int:
    """
    Calculate worker count based on job count and config.

    Returns:
        Number of workers to use (at least 1).
    """
    max_workers = app_config.parallel.max_workers

    if max_workers == -1:
        cpu_count = os.cpu_count() or 4
        max_workers = min(cpu_count, app_config.parallel.optimal_workers_default)

    return max(1, min(max_workers, n_supply_points))


# ═══════════════════════════════════════════════════════════════════════════
# 🚀 MAIN ORCHESTRATOR FUNCTION
# ═══════════════════════════════════════════════════════════════════════════


def compute_shares_parallel(
    zones: Dict[str, MultiPolygon],
    parcels: Sequence[Parcel],
    app_config: AppConfig,
) -> Tuple[Dict[str, List[CoverageCell]], Dict[str, List[FaucetShare]]]:
    """
    Compute cells and shares for every footprint across joblib workers.

    Args:
        zones: supply_point_id -> footprint
        parcels: All parcels
        app_config: AppConfig with parallel and share settings

    Returns:
        Tuple of (cells by supply point, shares by supply point), keyed in
        the iteration order of `zones`
    """
    from joblib import Parallel, delayed
    from irrigation_share.parallel.share_worker import worker_compute_zone_shares

    parallel = app_config.parallel
    decimals = app_config.shares.decimals
    n_workers = get_effective_worker_count(len(zones), app_config)

    logger.info(f"🚀 Dispatching {len(zones)} supply points to {n_workers} workers...")

    # Serialize inputs ONCE
    parcel_records = serialize_parcels(parcels)
    zone_records = {sp_id: serialize_geometry(zone) for sp_id, zone in zones.items()}

    try:
        dispatch_start = time.time()
        results_list = list(
            Parallel(
                n_jobs=n_workers,
                backend=parallel.backend,
                verbose=parallel.verbose,
            )(
                delayed(worker_compute_zone_shares)(
                    supply_point_id=sp_id,
                    zone_wkt=zone_wkt,
                    parcel_records=parcel_records,
                    decimals=decimals,
                )
                for sp_id, zone_wkt in zone_records.items()
            )
        )
        logger.info(
            f"   ⏱️ Parallel dispatch completed in {time.time() - dispatch_start:.1f}s"
        )

    except (ImportError, RuntimeError, OSError) as e:
        logger.warning(f"⚠️ Parallel dispatch failed: {e}")
        if not parallel.fallback_on_error:
            raise
        logger.info("📋 Falling back to inline sequential processing...")
        results_list = [
            worker_compute_zone_shares(sp_id, zone_wkt, parcel_records, decimals)
            for sp_id, zone_wkt in zone_records.items()
        ]

    return _collect_results(results_list, zones, parcels, decimals)


def _collect_results(
    results_list: List[Dict[str, Any]],
    zones: Dict[str, MultiPolygon],
    parcels: Sequence[Parcel],
    decimals: int,
) -> Tuple[Dict[str, List[CoverageCell]], Dict[str, List[FaucetShare]]]:
    """
    Rebuild cells and shares from worker result dicts.

    A supply point whose worker reported failure is recomputed inline on the
    original (unserialized) inputs, so a genuine error surfaces with its
    traceback rather than as a missing entry.
    """
    from irrigation_share.share_calculator import compute_zone_allocation

    by_id = {r["supply_point_id"]: r for r in results_list}
    failed = [sp_id for sp_id, r in by_id.items() if not r.get("success")]
    if failed:
        logger.warning(f"⚠️ {len(failed)} workers failed, recomputing inline: {failed}")

    cells_by_zone: Dict[str, List[CoverageCell]] = {}
    shares_by_zone: Dict[str, List[FaucetShare]] = {}

    for sp_id, zone in zones.items():
        result = by_id.get(sp_id)
        if result is None or not result.get("success"):
            cells, shares = compute_zone_allocation(sp_id, zone, parcels, decimals)
        else:
            cells = [
                CoverageCell(
                    geometry=deserialize_geometry(c["geometry"]),
                    farmer_ids=tuple(c["farmer_ids"]),
                )
                for c in result["cells"]
            ]
            shares = [FaucetShare.from_dict(s) for s in result["shares"]]
        cells_by_zone[sp_id] = cells
        shares_by_zone[sp_id] = shares

    return cells_by_zone, shares_by_zone
