"""
Allocation pipeline.

ARCHITECTURAL OVERVIEW:
=======================
Responsibility: Run the full allocation chain over one immutable dataset
snapshot:

    sprinklers -> footprints -> coverage cells -> shares -> usage -> bills

Every stage is a pure function; nothing is cached between invocations, so
running the pipeline twice on the same dataset yields equal results with the
same ordering.

Usage source:
- "computed" (default): usage is split by the engine's area shares
- "recorded": usage is split by the user-editable shares stored on each
  supply point (manual overrides)

For Navigation: Use VS Code outline (Ctrl+Shift+O)
"""

import logging
import time
from typing import Optional

from irrigation_share.billing import calculate_farmer_billing
from irrigation_share.config_types import AppConfig
from irrigation_share.coverage_zones import build_faucet_zones, get_zone_summary
from irrigation_share.models import AllocationResult, Dataset
from irrigation_share.share_calculator import compute_all_zone_allocations
from irrigation_share.water_usage import (
    calculate_farmer_water_usage,
    recorded_shares_by_supply_point,
)


def run_allocation_pipeline(
    dataset: Dataset,
    app_config: Optional[AppConfig] = None,
    logger: Optional[logging.Logger] = None,
) -> AllocationResult:
    """
    Compute footprints, cells, shares, usage and billing for a dataset.

    Args:
        dataset: Immutable dataset snapshot
        app_config: Optional AppConfig (defaults used when omitted)
        logger: Optional logger for progress messages

    Returns:
        AllocationResult holding every derived value
    """
    app_config = app_config or AppConfig()
    start = time.perf_counter()

    zones = build_faucet_zones(
        dataset.sprinklers,
        radius_m=app_config.sprinkler.radius_m,
        steps=app_config.sprinkler.circle_steps,
        logger=logger,
    )

    cells, shares = compute_all_zone_allocations(
        zones, list(dataset.parcels), app_config
    )

    if app_config.shares.usage_source == "recorded":
        usage_shares = recorded_shares_by_supply_point(dataset.supply_points)
    else:
        usage_shares = shares

    water_usage = calculate_farmer_water_usage(dataset.supply_points, usage_shares)
    billing = calculate_farmer_billing(
        dataset.parcels, water_usage, app_config.tariff
    )

    result = AllocationResult(
        zones=zones,
        cells=cells,
        shares=shares,
        water_usage=water_usage,
        billing=billing,
    )

    if logger:
        covered = {
            sp_id: sum(s.area for s in sp_shares) for sp_id, sp_shares in shares.items()
        }
        for row in get_zone_summary(zones, covered):
            logger.info(
                f"      {row['supply_point_id']}: "
                f"{row['footprint_area_m2']:,.0f} m² footprint, "
                f"{row['covered_pct']:.1f}% covered by parcels"
            )
        logger.info(f"   💴 {result.summary()}")
        logger.info(f"   ⏱️ Pipeline completed in {time.perf_counter() - start:.2f}s")

    return result
