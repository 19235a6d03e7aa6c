"""Data models package for typed irrigation dataset and allocation results."""

from .data_models import (
    DEFAULT_MAP_VIEW,
    Dataset,
    Farmer,
    FarmerShare,
    MapView,
    Parcel,
    Sprinkler,
    SupplyPoint,
)

from .allocation_results import (
    AllocationResult,
    CoverageCell,
    FarmerBilling,
    FaucetShare,
)

__all__ = [
    # Dataset models
    "DEFAULT_MAP_VIEW",
    "Dataset",
    "Farmer",
    "FarmerShare",
    "MapView",
    "Parcel",
    "Sprinkler",
    "SupplyPoint",
    # Derived results
    "AllocationResult",
    "CoverageCell",
    "FarmerBilling",
    "FaucetShare",
]
