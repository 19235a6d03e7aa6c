"""
═══════════════════════════════════════════════════════════════════════════════
📋 UNIFIED CONFIGURATION TYPES
═══════════════════════════════════════════════════════════════════════════════

ARCHITECTURAL OVERVIEW
----------------------
Responsibility: Define all configuration dataclasses for the irrigation share
application. Wraps the CONFIG dictionary with typed, validated config objects.

Usage:
    from irrigation_share.config import CONFIG
    from irrigation_share.config_types import AppConfig

    # Create once at application startup
    app_config = AppConfig.from_dict(CONFIG)

    # Use throughout the application
    radius = app_config.sprinkler.radius_m

For Navigation: Use VS Code outline (Ctrl+Shift+O)

NAVIGATION GUIDE
----------------
# ═════ 1. SPRINKLER CONFIGURATION
# ═════ 2. TARIFF CONFIGURATION
# ═════ 3. SHARE POLICY CONFIGURATION
# ═════ 4. PARALLEL PROCESSING CONFIGURATION
# ═════ 5. FILE PATHS CONFIGURATION
# ═════ 6. APP CONFIG (MASTER FACADE)

═══════════════════════════════════════════════════════════════════════════════
"""

from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, Any


# ═══════════════════════════════════════════════════════════════════════════════
# 💦 1. SPRINKLER CONFIGURATION
# ═══════════════════════════════════════════════════════════════════════════════


@dataclass(frozen=True)
class SprinklerConfig:
    """
    Sprinkler coverage geometry.

    Attributes:
        radius_m: Coverage radius around every sprinkler, in meters.
        circle_steps: Vertices of the geodesic circle approximation.
    """

    radius_m: float = 30.0
    circle_steps: int = 64

    @classmethod
    def from_dict(cls, d: Dict[str, Any]) -> "SprinklerConfig":
        """Create SprinklerConfig from CONFIG['sprinkler'] dictionary."""
        return cls(
            radius_m=float(d.get("radius_m", 30.0)),
            circle_steps=int(d.get("circle_steps", 64)),
        )

    def __post_init__(self) -> None:
        """Validate sprinkler configuration."""
        if self.radius_m <= 0:
            raise ValueError(f"radius_m must be > 0, got {self.radius_m}")
        if self.circle_steps < 3:
            raise ValueError(f"circle_steps must be >= 3, got {self.circle_steps}")


# ═══════════════════════════════════════════════════════════════════════════════
# 💴 2. TARIFF CONFIGURATION
# ═══════════════════════════════════════════════════════════════════════════════


@dataclass(frozen=True)
class TariffConfig:
    """
    Two-tier tariff schedule.

    A farmer pays an area-based base fee that includes a base allotment of
    water; usage beyond the allotment is billed per cubic meter.

    Attributes:
        area_rate_yen_per_sqm: Base fee per m² of assessed area.
        base_volume_per_sqm: Included volume (m³) per m² of assessed area.
        base_volume_factor: Multiplier applied to the included volume.
        overage_rate_yen_per_m3: Price per m³ beyond the base allotment.
    """

    area_rate_yen_per_sqm: float = 2.0
    base_volume_per_sqm: float = 0.26
    base_volume_factor: float = 1.2
    overage_rate_yen_per_m3: float = 15.0

    @classmethod
    def from_dict(cls, d: Dict[str, Any]) -> "TariffConfig":
        """Create TariffConfig from CONFIG['tariff'] dictionary."""
        return cls(
            area_rate_yen_per_sqm=float(d.get("area_rate_yen_per_sqm", 2.0)),
            base_volume_per_sqm=float(d.get("base_volume_per_sqm", 0.26)),
            base_volume_factor=float(d.get("base_volume_factor", 1.2)),
            overage_rate_yen_per_m3=float(d.get("overage_rate_yen_per_m3", 15.0)),
        )

    def __post_init__(self) -> None:
        """Validate tariff rates."""
        for name in (
            "area_rate_yen_per_sqm",
            "base_volume_per_sqm",
            "base_volume_factor",
            "overage_rate_yen_per_m3",
        ):
            value = getattr(self, name)
            if value < 0:
                raise ValueError(f"{name} must be >= 0, got {value}")

    @property
    def base_volume_per_assessed_sqm(self) -> float:
        """Included m³ per m² after the allotment factor."""
        return self.base_volume_per_sqm * self.base_volume_factor


# ═══════════════════════════════════════════════════════════════════════════════
# 📊 3. SHARE POLICY CONFIGURATION
# ═══════════════════════════════════════════════════════════════════════════════

USAGE_SOURCES = ("computed", "recorded")


@dataclass(frozen=True)
class ShareConfig:
    """
    How shares feed billing and how recalculation treats manual overrides.

    Attributes:
        usage_source: "computed" bills from engine shares, "recorded" from the
            user-editable shares stored on each supply point.
        overwrite_recorded: Replace user-entered shares on recalculation
            instead of only refreshing the computed snapshot.
        decimals: Rounding applied to share fractions.
    """

    usage_source: str = "computed"
    overwrite_recorded: bool = False
    decimals: int = 6

    @classmethod
    def from_dict(cls, d: Dict[str, Any]) -> "ShareConfig":
        """Create ShareConfig from CONFIG['shares'] dictionary."""
        return cls(
            usage_source=d.get("usage_source", "computed"),
            overwrite_recorded=bool(d.get("overwrite_recorded", False)),
            decimals=int(d.get("decimals", 6)),
        )

    def __post_init__(self) -> None:
        """Validate share policy."""
        if self.usage_source not in USAGE_SOURCES:
            raise ValueError(
                f"usage_source must be one of {USAGE_SOURCES}, got {self.usage_source}"
            )
        if self.decimals < 1:
            raise ValueError(f"decimals must be >= 1, got {self.decimals}")


# ═══════════════════════════════════════════════════════════════════════════════
# ⚡ 4. PARALLEL PROCESSING CONFIGURATION
# ═══════════════════════════════════════════════════════════════════════════════


@dataclass(frozen=True)
class ParallelConfig:
    """
    Configuration for per-supply-point parallel processing.

    Attributes:
        enabled: Master toggle for parallel processing.
        max_workers: Number of workers (-1 = auto).
        optimal_workers_default: Default worker count when auto-detecting.
        min_supply_points_for_parallel: Minimum footprints to justify parallel.
        fallback_on_error: Fall back to sequential on pool errors.
        backend: Joblib backend ("loky" = process-based).
        verbose: Joblib verbosity level (0-10).
    """

    enabled: bool = False
    max_workers: int = -1
    optimal_workers_default: int = 8
    min_supply_points_for_parallel: int = 4
    fallback_on_error: bool = True
    backend: str = "loky"
    verbose: int = 0

    @classmethod
    def from_dict(cls, d: Dict[str, Any]) -> "ParallelConfig":
        """Create ParallelConfig from CONFIG['parallel'] dictionary."""
        return cls(
            enabled=d.get("enabled", False),
            max_workers=d.get("max_workers", -1),
            optimal_workers_default=d.get("optimal_workers_default", 8),
            min_supply_points_for_parallel=d.get("min_supply_points_for_parallel", 4),
            fallback_on_error=d.get("fallback_on_error", True),
            backend=d.get("backend", "loky"),
            verbose=d.get("verbose", 0),
        )

    def __post_init__(self) -> None:
        if self.max_workers == 0 or self.max_workers < -1:
            raise ValueError(f"max_workers must be -1 or >= 1, got {self.max_workers}")


# ═══════════════════════════════════════════════════════════════════════════════
# 📁 5. FILE PATHS CONFIGURATION
# ═══════════════════════════════════════════════════════════════════════════════


@dataclass(frozen=True)
class FilePathsConfig:
    """
    File path configuration for outputs.

    Attributes:
        output_dir: Directory for CSV/GeoJSON/document outputs.
        log_dir: Directory for log files.
    """

    output_dir: str = "Output"
    log_dir: str = "logs"

    @classmethod
    def from_dict(cls, d: Dict[str, Any]) -> "FilePathsConfig":
        """Create FilePathsConfig from CONFIG['file_paths'] dictionary."""
        return cls(
            output_dir=d.get("output_dir", "Output"),
            log_dir=d.get("log_dir", "logs"),
        )

    def output_dir_path(self, workspace_root: Path) -> Path:
        """Get output directory resolved against workspace root."""
        return workspace_root / self.output_dir

    def log_dir_path(self, workspace_root: Path) -> Path:
        """Get log directory resolved against workspace root."""
        return workspace_root / self.log_dir


# ═══════════════════════════════════════════════════════════════════════════════
# 🎛️ 6. APP CONFIG (MASTER FACADE)
# ═══════════════════════════════════════════════════════════════════════════════


@dataclass(frozen=True)
class AppConfig:
    """
    Master configuration object for the irrigation share application.

    Create it once at application startup using AppConfig.from_dict(CONFIG)
    and pass it to the functions that need settings.

    Attributes:
        sprinkler: Sprinkler coverage geometry.
        tariff: Two-tier tariff schedule.
        shares: Share policy.
        parallel: Parallel processing configuration.
        file_paths: File path configuration.
        schema_version: Interchange document schema version.

    Example:
        from irrigation_share.config import CONFIG
        from irrigation_share.config_types import AppConfig

        app_config = AppConfig.from_dict(CONFIG)
        result = run_allocation_pipeline(dataset, app_config)
    """

    sprinkler: SprinklerConfig = field(default_factory=SprinklerConfig)
    tariff: TariffConfig = field(default_factory=TariffConfig)
    shares: ShareConfig = field(default_factory=ShareConfig)
    parallel: ParallelConfig = field(default_factory=ParallelConfig)
    file_paths: FilePathsConfig = field(default_factory=FilePathsConfig)
    schema_version: int = 1

    @classmethod
    def from_dict(cls, config_dict: Dict[str, Any]) -> "AppConfig":
        """
        Create AppConfig from the CONFIG dictionary.

        Args:
            config_dict: The CONFIG dictionary from config.py.

        Returns:
            AppConfig instance with all settings populated.
        """
        return cls(
            sprinkler=SprinklerConfig.from_dict(config_dict.get("sprinkler", {})),
            tariff=TariffConfig.from_dict(config_dict.get("tariff", {})),
            shares=ShareConfig.from_dict(config_dict.get("shares", {})),
            parallel=ParallelConfig.from_dict(config_dict.get("parallel", {})),
            file_paths=FilePathsConfig.from_dict(config_dict.get("file_paths", {})),
            schema_version=int(
                config_dict.get("document", {}).get("schema_version", 1)
            ),
        )
