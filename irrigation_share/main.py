#!/usr/bin/env python3
"""
Irrigation Share Allocation - Main Entry Point

Loads an interchange document, refreshes every faucet's farmer shares,
runs the allocation pipeline and writes the outputs:
- faucet_shares.csv / farmer_billing.csv
- coverage_cells.geojson
- <document>_updated.json with refreshed computedShare values

Usage:
    python -m irrigation_share.main data/miyako.json
    python -m irrigation_share.main data/miyako.json --output-dir out --parallel
"""

import argparse
import logging
import sys
import time
from dataclasses import replace
from datetime import datetime
from pathlib import Path
from typing import List, Optional, Tuple

from irrigation_share.config import CONFIG
from irrigation_share.config_types import AppConfig
from irrigation_share.dataset_store import recalculate_farmer_shares
from irrigation_share.document import load_document, save_document
from irrigation_share.exporters import (
    coverage_summary,
    export_billing_csv,
    export_coverage_cells_geojson,
    export_shares_csv,
)
from irrigation_share.models import AllocationResult
from irrigation_share.pipeline import run_allocation_pipeline

# Fix Windows console encoding for emoji support
if sys.platform == "win32":
    sys.stdout.reconfigure(encoding="utf-8", errors="replace")
    sys.stderr.reconfigure(encoding="utf-8", errors="replace")

# ═══════════════════════════════════════════════════════════════════════════
# 🎯 MODULE-LEVEL CONFIG (Single Source of Truth)
# ═══════════════════════════════════════════════════════════════════════════
APP_CONFIG = AppConfig.from_dict(CONFIG)

WORKSPACE_ROOT = Path.cwd()


# ═══════════════════════════════════════════════════════════════════════════
# 📋 LOGGING SETUP
# ═══════════════════════════════════════════════════════════════════════════


def setup_logging(log_dir: Optional[Path] = None) -> Tuple[logging.Logger, Path]:
    """Configure logging with file and console handlers.

    Returns:
        Tuple of (logger, log_path). Each run writes its own
        allocation_{MMDD}_{HHMM}.log inside the log directory.
    """
    log_dir = log_dir or APP_CONFIG.file_paths.log_dir_path(WORKSPACE_ROOT)
    log_dir.mkdir(parents=True, exist_ok=True)

    # Compact timestamp: MMDD_HHMM
    timestamp = datetime.now().strftime("%m%d_%H%M")
    log_path = log_dir / f"allocation_{timestamp}.log"

    logger = logging.getLogger("irrigation_share")
    logger.setLevel(logging.INFO)
    logger.handlers.clear()

    # File handler
    fh = logging.FileHandler(log_path, encoding="utf-8")
    fh.setLevel(logging.INFO)
    fh.setFormatter(
        logging.Formatter(
            "%(asctime)s | %(levelname)-8s | %(message)s", datefmt="%Y-%m-%d %H:%M:%S"
        )
    )

    # Console handler
    ch = logging.StreamHandler(sys.stdout)
    ch.setLevel(logging.INFO)
    ch.setFormatter(logging.Formatter("%(message)s"))

    logger.addHandler(fh)
    logger.addHandler(ch)

    return logger, log_path


def _log_billing_summary(result: AllocationResult, logger: logging.Logger) -> None:
    logger.info("=" * 60)
    logger.info("💴 BILLING SUMMARY")
    logger.info("=" * 60)
    for farmer_id, bill in result.billing.items():
        usage = result.water_usage.get(farmer_id, 0.0)
        logger.info(
            f"   {farmer_id}: area {bill.assessed_area_sqm:,.1f} m², "
            f"usage {usage:,.1f} m³, overage {bill.overage_volume_m3:,.1f} m³, "
            f"total ¥{bill.total:,.0f}"
        )
    logger.info(f"   Total billed: ¥{result.total_billed:,.0f}")
    logger.info("=" * 60)


# ═══════════════════════════════════════════════════════════════════════════
# 🚀 RUN
# ═══════════════════════════════════════════════════════════════════════════


def run_allocation(
    document_path: Path,
    output_dir: Optional[Path] = None,
    app_config: Optional[AppConfig] = None,
    logger: Optional[logging.Logger] = None,
) -> AllocationResult:
    """
    Load a document, recalculate shares, run the pipeline and export results.

    Args:
        document_path: Interchange document to process
        output_dir: Output folder (defaults to file_paths.output_dir)
        app_config: Optional AppConfig (defaults to APP_CONFIG)
        logger: Optional logger (defaults to the package logger)

    Returns:
        AllocationResult of the pipeline run
    """
    app_config = app_config or APP_CONFIG
    logger = logger or logging.getLogger("irrigation_share")
    output_dir = Path(output_dir or app_config.file_paths.output_dir_path(WORKSPACE_ROOT))
    output_dir.mkdir(parents=True, exist_ok=True)

    timings = {}
    total_start = time.perf_counter()

    # Step 1: Load and validate
    logger.info("\nSTEP 1: Loading document")
    step_start = time.perf_counter()
    dataset = load_document(document_path)
    timings["1_load"] = time.perf_counter() - step_start

    # Step 2: Refresh faucet shares
    logger.info("\nSTEP 2: Recalculating farmer shares")
    step_start = time.perf_counter()
    dataset = recalculate_farmer_shares(dataset, app_config)
    timings["2_recalculate"] = time.perf_counter() - step_start
    logger.info(
        f"   overwrite_recorded={app_config.shares.overwrite_recorded}, "
        f"usage_source={app_config.shares.usage_source}"
    )

    # Step 3: Pipeline
    logger.info("\nSTEP 3: Running allocation pipeline")
    step_start = time.perf_counter()
    result = run_allocation_pipeline(dataset, app_config, logger=logger)
    timings["3_pipeline"] = time.perf_counter() - step_start

    # Step 4: Export
    logger.info("\nSTEP 4: Exporting outputs")
    step_start = time.perf_counter()
    export_shares_csv(result, dataset, output_dir, log=logger)
    export_billing_csv(result, dataset, output_dir, log=logger)
    export_coverage_cells_geojson(result, output_dir, log=logger)
    save_document(output_dir / f"{Path(document_path).stem}_updated.json", dataset)
    timings["4_export"] = time.perf_counter() - step_start

    for row in coverage_summary(result):
        logger.info(
            f"   {row['supply_point_id']}: {row['cell_count']} cells, "
            f"{row['covered_area_m2']:,.0f} / {row['footprint_area_m2']:,.0f} m² covered"
        )

    _log_billing_summary(result, logger)

    timings["total"] = time.perf_counter() - total_start
    for step, seconds in timings.items():
        logger.info(f"   ⏱️ {step}: {seconds:.2f}s")

    return result


def build_arg_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="irrigation_share",
        description="Allocate shared irrigation water costs among farmers.",
    )
    parser.add_argument("document", type=Path, help="Interchange document (JSON)")
    parser.add_argument(
        "--output-dir",
        type=Path,
        default=None,
        help="Output folder (default: file_paths.output_dir)",
    )
    parser.add_argument(
        "--overwrite-shares",
        action="store_true",
        help="Replace user-entered shares with computed shares",
    )
    parser.add_argument(
        "--parallel",
        action="store_true",
        help="Compute supply point footprints in parallel",
    )
    return parser


def main(argv: Optional[List[str]] = None) -> int:
    args = build_arg_parser().parse_args(argv)

    app_config = APP_CONFIG
    if args.overwrite_shares:
        app_config = replace(
            app_config, shares=replace(app_config.shares, overwrite_recorded=True)
        )
    if args.parallel:
        app_config = replace(
            app_config, parallel=replace(app_config.parallel, enabled=True)
        )

    logger, log_path = setup_logging(app_config.file_paths.log_dir_path(WORKSPACE_ROOT))
    logger.info("=" * 60)
    logger.info("🎯 Irrigation Share Allocation")
    logger.info("=" * 60)
    logger.info(f"   Log file: {log_path}")
    logger.info(f"   Sprinkler radius: {app_config.sprinkler.radius_m}m")

    try:
        run_allocation(args.document, args.output_dir, app_config, logger)
    except Exception as e:
        logger.error(f"❌ Allocation failed: {str(e)}")
        import traceback

        logger.error(traceback.format_exc())
        raise

    return 0


# ═══════════════════════════════════════════════════════════════════════════
# 🚀 ENTRY POINT
# ═══════════════════════════════════════════════════════════════════════════


if __name__ == "__main__":
    sys.exit(main())
