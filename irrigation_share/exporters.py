"""
Irrigation Share Export Module - CSV and GeoJSON exports.

ARCHITECTURAL OVERVIEW:
=======================
Responsibility: Write allocation results for use outside the application.

Export Formats:
- CSV: Per-supply-point farmer shares and per-farmer bills (pandas)
- GeoJSON: Coverage cells tagged with their farmers (geopandas, EPSG:4326)

Key Entry Points:
- export_shares_csv(): Shares table
- export_billing_csv(): Billing table
- export_coverage_cells_geojson(): Coverage cell layer
- coverage_summary(): Per-footprint statistics rows

For Navigation: Use VS Code outline (Ctrl+Shift+O)
"""

import json
import logging
from pathlib import Path
from typing import Any, Dict, List

import geopandas as gpd
import pandas as pd

from irrigation_share.coverage_zones import get_zone_summary
from irrigation_share.geometry_service import geodesic_area
from irrigation_share.models import AllocationResult, Dataset

logger = logging.getLogger("irrigation_share.exporters")

SHARES_CSV = "faucet_shares.csv"
BILLING_CSV = "farmer_billing.csv"
CELLS_GEOJSON = "coverage_cells.geojson"

SHARE_COLUMNS = [
    "supply_point_id",
    "supply_point_name",
    "farmer_id",
    "farmer_name",
    "share",
    "area_m2",
]
BILLING_COLUMNS = [
    "farmer_id",
    "farmer_name",
    "assessed_area_sqm",
    "usage_m3",
    "base_fee_yen",
    "base_volume_m3",
    "overage_volume_m3",
    "overage_fee_yen",
    "total_yen",
]


# ═══════════════════════════════════════════════════════════════════════════
# 📋 TABLES
# ═══════════════════════════════════════════════════════════════════════════


def shares_dataframe(result: AllocationResult, dataset: Dataset) -> pd.DataFrame:
    """One row per (supply point, farmer) share, in calculator order."""
    farmer_names = dataset.farmer_names()
    rows = []
    for supply_point_id, shares in result.shares.items():
        supply_point = dataset.supply_point(supply_point_id)
        for share in shares:
            row = share.as_dict()
            row["supply_point_name"] = supply_point.name if supply_point else ""
            row["farmer_name"] = farmer_names.get(share.farmer_id, "")
            rows.append(row)
    return pd.DataFrame(rows, columns=SHARE_COLUMNS)


def billing_dataframe(result: AllocationResult, dataset: Dataset) -> pd.DataFrame:
    """One row per billed farmer, in farmer id order."""
    farmer_names = dataset.farmer_names()
    rows = []
    for farmer_id, bill in result.billing.items():
        row = bill.as_dict()
        row["farmer_name"] = farmer_names.get(farmer_id, "")
        row["usage_m3"] = result.water_usage.get(farmer_id, 0.0)
        rows.append(row)
    return pd.DataFrame(rows, columns=BILLING_COLUMNS)


def coverage_summary(result: AllocationResult) -> List[Dict[str, Any]]:
    """
    Per-footprint statistics: footprint area, parcel-covered area and
    coverage cell count.
    """
    covered = {
        sp_id: sum(geodesic_area(c.geometry) for c in cells)
        for sp_id, cells in result.cells.items()
    }
    rows = get_zone_summary(result.zones, covered)
    for row in rows:
        row["cell_count"] = len(result.cells.get(row["supply_point_id"], []))
    return rows


# ═══════════════════════════════════════════════════════════════════════════
# 📤 CSV EXPORT
# ═══════════════════════════════════════════════════════════════════════════


def export_shares_csv(
    result: AllocationResult,
    dataset: Dataset,
    output_dir: Path,
    log: logging.Logger = None,
) -> Path:
    """
    Export computed shares to CSV (overwrites an existing file).

    Returns:
        Path to the written CSV
    """
    if log is None:
        log = logger

    output_dir = Path(output_dir)
    output_dir.mkdir(parents=True, exist_ok=True)
    csv_path = output_dir / SHARES_CSV

    df = shares_dataframe(result, dataset)
    df.to_csv(csv_path, index=False)

    log.info(f"   ✅ Exported {len(df)} shares to {csv_path.name}")
    return csv_path


def export_billing_csv(
    result: AllocationResult,
    dataset: Dataset,
    output_dir: Path,
    log: logging.Logger = None,
) -> Path:
    """
    Export farmer bills to CSV (overwrites an existing file).

    Returns:
        Path to the written CSV
    """
    if log is None:
        log = logger

    output_dir = Path(output_dir)
    output_dir.mkdir(parents=True, exist_ok=True)
    csv_path = output_dir / BILLING_CSV

    df = billing_dataframe(result, dataset)
    df.to_csv(csv_path, index=False)

    log.info(f"   ✅ Exported {len(df)} bills to {csv_path.name}")
    return csv_path


# ═══════════════════════════════════════════════════════════════════════════
# 🗺️ GEOJSON EXPORT
# ═══════════════════════════════════════════════════════════════════════════


def coverage_cells_geodataframe(result: AllocationResult) -> gpd.GeoDataFrame:
    """Coverage cells of every footprint as a WGS84 GeoDataFrame."""
    records = []
    geometries = []
    for supply_point_id, cells in result.cells.items():
        for index, cell in enumerate(cells):
            records.append(
                {
                    "supply_point_id": supply_point_id,
                    "cell_index": index,
                    "farmer_ids": ",".join(cell.farmer_ids),
                    "farmer_count": len(cell.farmer_ids),
                    "area_m2": round(geodesic_area(cell.geometry), 2),
                }
            )
            geometries.append(cell.geometry)
    return gpd.GeoDataFrame(records, geometry=geometries, crs="EPSG:4326")


def _write_empty_feature_collection(output_path: Path) -> None:
    """Write an empty GeoJSON FeatureCollection so consumers always find a file."""
    with open(output_path, "w", encoding="utf-8") as f:
        json.dump({"type": "FeatureCollection", "features": []}, f, indent=2)


def export_coverage_cells_geojson(
    result: AllocationResult,
    output_dir: Path,
    log: logging.Logger = None,
) -> Path:
    """
    Export coverage cells to GeoJSON.

    Each feature carries supply_point_id, cell_index, comma-joined
    farmer_ids, farmer_count and area_m2.

    Returns:
        Path to the written GeoJSON
    """
    if log is None:
        log = logger

    output_dir = Path(output_dir)
    output_dir.mkdir(parents=True, exist_ok=True)
    path = output_dir / CELLS_GEOJSON

    gdf = coverage_cells_geodataframe(result)
    if gdf.empty:
        _write_empty_feature_collection(path)
        log.info(f"   📄 Created empty {path.name} (no coverage cells)")
        return path

    path.write_text(gdf.to_json(), encoding="utf-8")
    log.info(f"   📄 GeoJSON exported: {path.name} ({len(gdf)} cells)")
    return path
