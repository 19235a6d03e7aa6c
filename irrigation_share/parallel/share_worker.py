"""
Worker function for computing one supply point's shares.

ARCHITECTURAL OVERVIEW:
=======================
Responsibility: Partition one footprint and derive its farmer shares.
THIN WRAPPER pattern - calls existing functions from:
- share_calculator.py: compute_zone_allocation()

Follows the parallel worker conventions of this package:
- Accept only primitive/serializable parameters (WKT, dicts)
- Return dict with success/error status
- No business logic duplication
- Silent logging (debug only, to avoid interleaving)

For Navigation: Use VS Code outline (Ctrl+Shift+O)
"""

import logging
import time
from typing import Any, Dict, List

from irrigation_share.parallel.share_orchestrator import (
    deserialize_geometry,
    deserialize_parcels,
    serialize_geometry,
)


def _setup_worker_logging(supply_point_id: str) -> logging.Logger:
    """Named logger per supply point so parallel output can be told apart."""
    logger = logging.getLogger(f"irrigation_share.worker.{supply_point_id}")
    return logger


def worker_compute_zone_shares(
    supply_point_id: str,
    zone_wkt: str,
    parcel_records: List[Dict[str, Any]],
    decimals: int,
) -> Dict[str, Any]:
    """
    Compute cells and shares for a single supply point footprint.

    Args:
        supply_point_id: Supply point the footprint belongs to
        zone_wkt: Footprint as WKT
        parcel_records: Parcels serialized with serialize_parcels()
        decimals: Share rounding

    Returns:
        Dict with:
        - supply_point_id: str
        - success: bool
        - cells: List[{"geometry": wkt, "farmer_ids": [...]}]
        - shares: List[FaucetShare.as_dict()]
        - duration_seconds: float
        - error: Optional[str]
    """
    from irrigation_share.share_calculator import compute_zone_allocation

    logger = _setup_worker_logging(supply_point_id)
    start = time.perf_counter()

    try:
        zone = deserialize_geometry(zone_wkt)
        parcels = deserialize_parcels(parcel_records)
        cells, shares = compute_zone_allocation(supply_point_id, zone, parcels, decimals)
    except Exception as e:
        logger.warning(f"⚠️ Share computation failed for {supply_point_id}: {e}")
        return {
            "supply_point_id": supply_point_id,
            "success": False,
            "cells": [],
            "shares": [],
            "duration_seconds": time.perf_counter() - start,
            "error": str(e),
        }

    duration = time.perf_counter() - start
    logger.debug(f"{supply_point_id}: {len(cells)} cells in {duration:.2f}s")

    return {
        "supply_point_id": supply_point_id,
        "success": True,
        "cells": [
            {"geometry": serialize_geometry(c.geometry), "farmer_ids": list(c.farmer_ids)}
            for c in cells
        ],
        "shares": [s.as_dict() for s in shares],
        "duration_seconds": duration,
        "error": None,
    }
