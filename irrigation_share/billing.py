"""
Two-tier farmer billing.

Tariff:
    base fee       = assessed area × area rate
    base volume    = assessed area × base volume per m² × base volume factor
    overage volume = max(usage - base volume, 0)
    overage fee    = overage volume × overage rate
    total          = base fee + overage fee

Farmers with usage but no assessed area are billed for all usage as overage.
Farmers with neither assessed area nor usage get no record at all.
"""

import logging
import math
from typing import Dict, Iterable, Mapping, Optional

from irrigation_share.config_types import TariffConfig
from irrigation_share.geometry_service import geodesic_area
from irrigation_share.models import FarmerBilling, Parcel

logger = logging.getLogger(__name__)

DEFAULT_TARIFF = TariffConfig()


def _non_negative(value: Optional[float]) -> float:
    if value is None:
        return 0.0
    v = float(value)
    if not math.isfinite(v) or v < 0:
        return 0.0
    return v


def parcel_billing_area(parcel: Parcel) -> float:
    """Assessed area when present, otherwise the parcel's geodesic area (m²)."""
    if parcel.assessed_area_sqm is not None:
        return _non_negative(parcel.assessed_area_sqm)
    return _non_negative(geodesic_area(parcel.geometry))


def assessed_area_by_farmer(parcels: Iterable[Parcel]) -> Dict[str, float]:
    """Sum billing area across each farmer's parcels; unowned parcels are skipped."""
    area_by_farmer: Dict[str, float] = {}
    for parcel in parcels:
        if not parcel.farmer_id:
            continue
        area_by_farmer[parcel.farmer_id] = area_by_farmer.get(
            parcel.farmer_id, 0.0
        ) + parcel_billing_area(parcel)
    return area_by_farmer


def bill_farmer(
    farmer_id: str,
    area: float,
    usage: float,
    tariff: TariffConfig = DEFAULT_TARIFF,
) -> FarmerBilling:
    """Apply the tariff to one farmer's assessed area and usage volume."""
    area = _non_negative(area)
    usage = _non_negative(usage)

    base_fee = area * tariff.area_rate_yen_per_sqm
    base_volume = area * tariff.base_volume_per_sqm * tariff.base_volume_factor
    overage_volume = max(usage - base_volume, 0.0)
    overage_fee = overage_volume * tariff.overage_rate_yen_per_m3

    return FarmerBilling(
        farmer_id=farmer_id,
        assessed_area_sqm=area,
        base_fee=base_fee,
        base_volume_m3=base_volume,
        overage_volume_m3=overage_volume,
        overage_fee=overage_fee,
        total=base_fee + overage_fee,
    )


def calculate_farmer_billing(
    parcels: Iterable[Parcel],
    usage_by_farmer: Mapping[str, float],
    tariff: Optional[TariffConfig] = None,
) -> Dict[str, FarmerBilling]:
    """
    Bill every farmer that has assessed area or usage.

    Args:
        parcels: All parcels (assessed area is summed per owner)
        usage_by_farmer: farmer_id -> annual usage (m³)
        tariff: Tariff schedule (defaults to the standard rates)

    Returns:
        Dict farmer_id -> FarmerBilling, keyed in farmer id order
    """
    tariff = tariff or DEFAULT_TARIFF
    area_by_farmer = assessed_area_by_farmer(parcels)

    billing: Dict[str, FarmerBilling] = {}
    for farmer_id in sorted(set(area_by_farmer) | set(usage_by_farmer)):
        area = area_by_farmer.get(farmer_id, 0.0)
        usage = _non_negative(usage_by_farmer.get(farmer_id, 0.0))
        if area <= 0 and usage <= 0:
            continue
        billing[farmer_id] = bill_farmer(farmer_id, area, usage, tariff)

    logger.debug(f"Billed {len(billing)} farmers")
    return billing
