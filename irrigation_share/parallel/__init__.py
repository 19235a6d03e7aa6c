"""
Irrigation Share Parallel Processing Module

Provides parallel per-supply-point share computation.
- Thin workers calling existing functions
- Serialization layer (WKT) for geometry transport
- Sequential fallback when the worker pool fails

Module Structure:
- share_orchestrator.py: Orchestrator + decision functions + serialization
- share_worker.py: Thin worker for a single supply point
"""

from irrigation_share.parallel.share_orchestrator import (
    # Orchestrator functions
    compute_shares_parallel,
    should_use_parallel,
    get_effective_worker_count,
    # Serialization functions
    serialize_parcels,
    deserialize_parcels,
    serialize_geometry,
    deserialize_geometry,
)
from irrigation_share.parallel.share_worker import worker_compute_zone_shares

__all__ = [
    # Orchestrator
    "compute_shares_parallel",
    "should_use_parallel",
    "get_effective_worker_count",
    # Serialization
    "serialize_parcels",
    "deserialize_parcels",
    "serialize_geometry",
    "deserialize_geometry",
    # Worker
    "worker_compute_zone_shares",
]
