"""
Unit tests for supply point footprint construction.

Run with: python -m pytest irrigation_share/_tests/test_coverage_zones.py -v
"""

import math

import pytest

from irrigation_share.coverage_zones import (
    build_faucet_zones,
    get_zone_summary,
    group_sprinklers_by_supply_point,
)
from irrigation_share.geometry_service import geodesic_area
from irrigation_share.models import Sprinkler


CIRCLE_AREA = math.pi * 30.0**2


@pytest.fixture
def sprinklers(point_at):
    return [
        Sprinkler(id="s1", name="S1", location=point_at(0, 0), supply_point_id="sp-1"),
        Sprinkler(id="s2", name="S2", location=point_at(20, 0), supply_point_id="sp-1"),
        Sprinkler(id="s3", name="S3", location=point_at(300, 0), supply_point_id="sp-2"),
        Sprinkler(id="s4", name="S4", location=point_at(600, 0), supply_point_id="sp-2"),
        Sprinkler(id="s5", name="Orphan", location=point_at(900, 0)),
    ]


class TestGrouping:
    def test_orphans_are_dropped(self, sprinklers):
        grouped = group_sprinklers_by_supply_point(sprinklers)
        assert list(grouped) == ["sp-1", "sp-2"]
        assert [s.id for s in grouped["sp-1"]] == ["s1", "s2"]

    def test_no_assigned_sprinklers(self, point_at):
        orphans = [Sprinkler(id="s", name="S", location=point_at(0, 0))]
        assert group_sprinklers_by_supply_point(orphans) == {}


class TestBuildFaucetZones:
    def test_one_footprint_per_supply_point(self, sprinklers):
        zones = build_faucet_zones(sprinklers)
        assert set(zones) == {"sp-1", "sp-2"}

    def test_overlapping_circles_are_unioned(self, sprinklers):
        zones = build_faucet_zones(sprinklers)
        zone = zones["sp-1"]
        assert len(zone.geoms) == 1
        area = geodesic_area(zone)
        assert CIRCLE_AREA < area < 2 * CIRCLE_AREA

    def test_distant_circles_stay_separate_parts(self, sprinklers):
        zones = build_faucet_zones(sprinklers)
        zone = zones["sp-2"]
        assert len(zone.geoms) == 2
        assert geodesic_area(zone) == pytest.approx(2 * CIRCLE_AREA, rel=0.01)

    def test_radius_is_configurable(self, sprinklers):
        zones = build_faucet_zones(sprinklers, radius_m=10.0)
        assert geodesic_area(zones["sp-2"]) == pytest.approx(
            2 * math.pi * 10.0**2, rel=0.01
        )

    def test_supply_point_without_sprinklers_is_absent(self, point_at):
        orphans = [Sprinkler(id="s", name="S", location=point_at(0, 0))]
        assert build_faucet_zones(orphans) == {}


class TestZoneSummary:
    def test_summary_rows_sorted_by_id(self, sprinklers):
        zones = build_faucet_zones(sprinklers)
        rows = get_zone_summary(zones)
        assert [r["supply_point_id"] for r in rows] == ["sp-1", "sp-2"]
        assert rows[1]["footprint_parts"] == 2
        assert "covered_pct" not in rows[0]

    def test_summary_with_covered_area(self, sprinklers):
        zones = build_faucet_zones(sprinklers)
        footprint = geodesic_area(zones["sp-1"])
        rows = get_zone_summary(zones, {"sp-1": footprint / 2})
        assert rows[0]["covered_pct"] == pytest.approx(50.0)
        assert rows[1]["covered_area_m2"] == 0.0
