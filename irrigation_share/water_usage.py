"""
Farmer water usage aggregation.

Each supply point's annual draw is divided among farmers by share fraction
and summed across supply points. Supply points with zero, negative or
non-finite draw contribute nothing.
"""

import math
from typing import Dict, Iterable, List, Mapping, Sequence

from irrigation_share.models import FaucetShare, SupplyPoint


def _usable_volume(value: float) -> float:
    """Guard a volume to zero unless it is finite and positive."""
    try:
        v = float(value)
    except (TypeError, ValueError):
        return 0.0
    if not math.isfinite(v) or v <= 0:
        return 0.0
    return v


def calculate_farmer_water_usage(
    supply_points: Iterable[SupplyPoint],
    shares_by_supply_point: Mapping[str, Sequence[FaucetShare]],
) -> Dict[str, float]:
    """
    Aggregate annual usage volume per farmer.

    Args:
        supply_points: Supply points with their annual draw
        shares_by_supply_point: supply_point_id -> farmer shares

    Returns:
        Dict farmer_id -> annual usage (m³); only farmers with usage > 0
    """
    usage: Dict[str, float] = {}

    for supply_point in supply_points:
        total = _usable_volume(supply_point.annual_draw_m3)
        if total <= 0:
            continue
        for share in shares_by_supply_point.get(supply_point.id, ()):
            amount = _usable_volume(total * share.share)
            if amount <= 0:
                continue
            usage[share.farmer_id] = usage.get(share.farmer_id, 0.0) + amount

    return usage


def recorded_shares_by_supply_point(
    supply_points: Iterable[SupplyPoint],
) -> Dict[str, List[FaucetShare]]:
    """
    Expose the user-editable shares stored on each supply point as FaucetShare
    lists, so usage can be billed from manual overrides instead of the
    engine's computed shares.
    """
    return {
        sp.id: [
            FaucetShare(
                supply_point_id=sp.id,
                farmer_id=fs.farmer_id,
                share=fs.share,
                area=0.0,
            )
            for fs in sp.farmer_shares
        ]
        for sp in supply_points
    }
