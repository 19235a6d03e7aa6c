"""
Unit tests for parallel per-supply-point share computation.

Uses the joblib "threading" backend so workers run in-process and the tests
stay fast and deterministic.

Run with: python -m pytest irrigation_share/_tests/test_parallel.py -v
"""

import pytest

from irrigation_share.config_types import AppConfig, ParallelConfig
from irrigation_share.coverage_zones import build_faucet_zones
from irrigation_share.geometry_service import geodesic_area
from irrigation_share.models import Parcel, Sprinkler
from irrigation_share.parallel import (
    compute_shares_parallel,
    deserialize_geometry,
    deserialize_parcels,
    get_effective_worker_count,
    serialize_geometry,
    serialize_parcels,
    should_use_parallel,
    worker_compute_zone_shares,
)
from irrigation_share.parallel import share_worker
from irrigation_share.share_calculator import compute_all_zone_allocations


@pytest.fixture
def parallel_config():
    return AppConfig(
        parallel=ParallelConfig(
            enabled=True,
            max_workers=2,
            min_supply_points_for_parallel=1,
            backend="threading",
        )
    )


@pytest.fixture
def scenario(point_at, make_square, make_rectangle):
    """Four supply points, each with two sprinklers, over a strip of parcels."""
    sprinklers = []
    for i in range(4):
        sprinklers.append(
            Sprinkler(id=f"s{i}a", name="a", location=point_at(i * 200, 0), supply_point_id=f"sp-{i}")
        )
        sprinklers.append(
            Sprinkler(id=f"s{i}b", name="b", location=point_at(i * 200 + 40, 0), supply_point_id=f"sp-{i}")
        )
    parcels = [
        Parcel(id="p1", name="p1", geometry=make_rectangle(-50, -50, 300, 0), farmer_id="f1"),
        Parcel(id="p2", name="p2", geometry=make_rectangle(-50, -10, 700, 50), farmer_id="f2"),
        Parcel(id="p3", name="p3", geometry=make_square(440, 0, 25), farmer_id="f3"),
        Parcel(id="p4", name="p4", geometry=make_square(640, 0, 25)),
    ]
    zones = build_faucet_zones(sprinklers)
    return zones, parcels


class TestSerialization:
    def test_geometry_round_trip(self, scenario):
        zones, _ = scenario
        zone = zones["sp-0"]
        restored = deserialize_geometry(serialize_geometry(zone))
        assert geodesic_area(restored) == pytest.approx(geodesic_area(zone))

    def test_empty_geometry(self):
        assert serialize_geometry(None) is None
        assert deserialize_geometry(None).is_empty
        assert deserialize_geometry("").is_empty

    def test_only_owned_parcels_are_shipped(self, scenario):
        _, parcels = scenario
        records = serialize_parcels(parcels)
        assert [r["id"] for r in records] == ["p1", "p2", "p3"]
        restored = deserialize_parcels(records)
        assert restored[0].farmer_id == "f1"
        assert restored[0].geometry.equals(parcels[0].geometry)


class TestParallelDecision:
    def test_disabled_by_default(self):
        use, reason = should_use_parallel(10, AppConfig())
        assert use is False
        assert "disabled" in reason

    def test_below_threshold(self):
        config = AppConfig(parallel=ParallelConfig(enabled=True, min_supply_points_for_parallel=4))
        use, reason = should_use_parallel(3, config)
        assert use is False
        assert "threshold" in reason

    def test_enabled(self, parallel_config):
        use, _ = should_use_parallel(4, parallel_config)
        assert use is True

    def test_worker_count_capped_by_jobs(self):
        config = AppConfig(parallel=ParallelConfig(max_workers=8))
        assert get_effective_worker_count(3, config) == 3
        assert get_effective_worker_count(0, config) == 1

    def test_auto_worker_count(self):
        config = AppConfig(parallel=ParallelConfig(max_workers=-1, optimal_workers_default=2))
        assert 1 <= get_effective_worker_count(100, config) <= 2


class TestWorker:
    def test_worker_success(self, scenario):
        zones, parcels = scenario
        result = worker_compute_zone_shares(
            "sp-0", serialize_geometry(zones["sp-0"]), serialize_parcels(parcels), 6
        )
        assert result["success"] is True
        assert result["error"] is None
        assert sum(s["share"] for s in result["shares"]) == pytest.approx(1.0, abs=1e-6)

    def test_worker_reports_failure(self, scenario):
        _, parcels = scenario
        result = worker_compute_zone_shares("sp-x", "NOT A WKT", serialize_parcels(parcels), 6)
        assert result["success"] is False
        assert result["error"]
        assert result["shares"] == []


class TestComputeSharesParallel:
    def test_parallel_matches_sequential(self, scenario, parallel_config):
        zones, parcels = scenario
        seq_cells, seq_shares = compute_all_zone_allocations(zones, parcels, AppConfig())
        par_cells, par_shares = compute_shares_parallel(zones, parcels, parallel_config)

        assert list(par_shares) == list(seq_shares)
        for sp_id in seq_shares:
            assert [(s.farmer_id, s.share) for s in par_shares[sp_id]] == [
                (s.farmer_id, s.share) for s in seq_shares[sp_id]
            ]
            assert [c.farmer_ids for c in par_cells[sp_id]] == [
                c.farmer_ids for c in seq_cells[sp_id]
            ]

    def test_dispatch_through_calculator(self, scenario, parallel_config):
        zones, parcels = scenario
        _, shares = compute_all_zone_allocations(zones, parcels, parallel_config)
        assert set(shares) == {"sp-0", "sp-1", "sp-2", "sp-3"}
        assert shares["sp-3"] and all(s.farmer_id == "f2" for s in shares["sp-3"])

    def test_failed_worker_is_recomputed_inline(self, scenario, parallel_config, monkeypatch):
        zones, parcels = scenario
        real_worker = share_worker.worker_compute_zone_shares

        def flaky_worker(supply_point_id, zone_wkt, parcel_records, decimals):
            if supply_point_id == "sp-1":
                return {"supply_point_id": supply_point_id, "success": False, "error": "boom"}
            return real_worker(supply_point_id, zone_wkt, parcel_records, decimals)

        monkeypatch.setattr(share_worker, "worker_compute_zone_shares", flaky_worker)

        _, shares = compute_shares_parallel(zones, parcels, parallel_config)
        _, expected = compute_all_zone_allocations(zones, parcels, AppConfig())
        assert [(s.farmer_id, s.share) for s in shares["sp-1"]] == [
            (s.farmer_id, s.share) for s in expected["sp-1"]
        ]
