#!/usr/bin/env python3
"""
Irrigation Share - Configuration

ARCHITECTURAL OVERVIEW:
=======================
Responsibility: Centralized configuration for the irrigation share allocation.
Single source of truth for sprinkler geometry, tariff, share policy,
parallel dispatch and file locations.

Configuration Sections (ordered by importance for day-to-day tuning):
1. sprinkler: Coverage radius and circle resolution
2. tariff: Two-tier billing constants
3. shares: Usage share source and recalculation policy
4. parallel: Per-supply-point parallel dispatch
5. document: Interchange document schema version
6. file_paths: Output and log locations (bottom - rarely changed)

Navigation Guide:
- Use VS Code outline (Ctrl+Shift+O) to jump between sections
"""

import os
from typing import Dict, Any, TypeVar, Callable, Optional

T = TypeVar("T")


def _env_or_default(
    key: str, default: T, type_fn: Optional[Callable[[str], T]] = None
) -> T:
    """
    Get value from environment variable or use default.

    Args:
        key: Environment variable name (e.g., "IRRIGATION_SPRINKLER_RADIUS_M")
        default: Default value if env var not set
        type_fn: Optional type conversion function (e.g., float, int)

    Returns:
        Value from environment (converted) or default

    Example:
        >>> _env_or_default("IRRIGATION_SPRINKLER_RADIUS_M", 30.0, float)
        30.0  # If env var not set
    """
    val = os.getenv(key)
    if val is not None:
        if type_fn is not None:
            return type_fn(val)
        return val  # type: ignore
    return default


def _env_bool(key: str, default: bool) -> bool:
    """
    Get boolean value from environment variable.

    Treats "true", "1", "yes" as True (case-insensitive).
    Any other value or unset returns default.
    """
    val = os.getenv(key)
    if val is None:
        return default
    return val.lower() in ("true", "1", "yes")


# ═══════════════════════════════════════════════════════════════════════════
# 🔧 ENVIRONMENT VARIABLE OVERRIDES
# ═══════════════════════════════════════════════════════════════════════════
# IRRIGATION_SPRINKLER_RADIUS_M  - float, coverage radius in meters (default: 30)
# IRRIGATION_CIRCLE_STEPS        - int, circle polygon vertices (default: 64)
# IRRIGATION_USAGE_SOURCE        - "computed" or "recorded" (default: "computed")
# IRRIGATION_OVERWRITE_SHARES    - "true"/"false", overwrite manual shares (default: false)
# IRRIGATION_PARALLEL            - "true"/"false", per-faucet parallelism (default: false)
# IRRIGATION_MAX_WORKERS         - int, worker count, -1 = auto (default: -1)
#
# Example usage:
#   export IRRIGATION_SPRINKLER_RADIUS_M=25
#   export IRRIGATION_PARALLEL=true
#   python -m irrigation_share.main data/miyako.json
# ═══════════════════════════════════════════════════════════════════════════

# ═══════════════════════════════════════════════════════════════════════════
# ⚙️ MASTER CONFIGURATION
# ═══════════════════════════════════════════════════════════════════════════

CONFIG: Dict[str, Any] = {
    # ═══════════════════════════════════════════════════════════════════════
    # 💦 SPRINKLER COVERAGE
    # ═══════════════════════════════════════════════════════════════════════
    "sprinkler": {
        # Throw radius of one sprinkler head
        "radius_m": _env_or_default("IRRIGATION_SPRINKLER_RADIUS_M", 30.0, float),
        # Vertices of the geodesic circle approximation
        "circle_steps": _env_or_default("IRRIGATION_CIRCLE_STEPS", 64, int),
    },
    # ═══════════════════════════════════════════════════════════════════════
    # 💴 TARIFF (two-tier: area base fee + volume overage)
    # ═══════════════════════════════════════════════════════════════════════
    "tariff": {
        "area_rate_yen_per_sqm": 2.0,
        # m³ of water included per m² of assessed area
        "base_volume_per_sqm": 0.26,
        "base_volume_factor": 1.2,
        "overage_rate_yen_per_m3": 15.0,
    },
    # ═══════════════════════════════════════════════════════════════════════
    # 📊 SHARE POLICY
    # ═══════════════════════════════════════════════════════════════════════
    "shares": {
        # "computed": bill from engine shares
        # "recorded": bill from the user-editable shares stored on each faucet
        "usage_source": _env_or_default("IRRIGATION_USAGE_SOURCE", "computed"),
        # False keeps manual overrides and only refreshes computedShare
        "overwrite_recorded": _env_bool("IRRIGATION_OVERWRITE_SHARES", False),
        "decimals": 6,
    },
    # ═══════════════════════════════════════════════════════════════════════
    # ⚡ PARALLEL PROCESSING
    # ═══════════════════════════════════════════════════════════════════════
    "parallel": {
        "enabled": _env_bool("IRRIGATION_PARALLEL", False),
        "max_workers": _env_or_default("IRRIGATION_MAX_WORKERS", -1, int),
        "optimal_workers_default": 8,
        # Footprints are cheap; only fan out for larger datasets
        "min_supply_points_for_parallel": 4,
        "fallback_on_error": True,
        "backend": "loky",
        "verbose": 0,
    },
    # ═══════════════════════════════════════════════════════════════════════
    # 📄 DOCUMENT INTERCHANGE
    # ═══════════════════════════════════════════════════════════════════════
    "document": {
        "schema_version": 1,
    },
    # ═══════════════════════════════════════════════════════════════════════
    # 📁 FILE PATHS
    # ═══════════════════════════════════════════════════════════════════════
    "file_paths": {
        "output_dir": "Output",
        "log_dir": "logs",
    },
}
