"""
Irrigation Share Allocation

Allocates shared irrigation-water costs among farmers whose parcels fall
inside overlapping sprinkler footprints, then bills each farmer under a
two-tier tariff.
"""

from irrigation_share.config import CONFIG
from irrigation_share.pipeline import run_allocation_pipeline

__all__ = ["run_allocation_pipeline", "CONFIG"]
