"""
Shared fixtures: small WGS84 geometries near Miyako-jima.

All shapes are laid out in meters east/north of ORIGIN and converted to
lon/lat with the forward geodesic, so areas measured by geodesic_area()
match the intended metric sizes closely.
"""

from typing import Callable, Tuple

import pytest
from shapely.geometry import Polygon

from irrigation_share.geometry_service import WGS84_GEOD
from irrigation_share.models import Dataset, Farmer, Parcel, Sprinkler, SupplyPoint

ORIGIN = (125.2941, 24.8055)


def offset(east_m: float, north_m: float, origin=ORIGIN) -> Tuple[float, float]:
    """(lon, lat) of the point east_m / north_m meters from origin."""
    lon, lat = origin
    if east_m:
        lon, lat, _ = WGS84_GEOD.fwd(lon, lat, 90.0 if east_m > 0 else 270.0, abs(east_m))
    if north_m:
        lon, lat, _ = WGS84_GEOD.fwd(lon, lat, 0.0 if north_m > 0 else 180.0, abs(north_m))
    return (lon, lat)


def rectangle(west_m: float, south_m: float, east_m: float, north_m: float) -> Polygon:
    """Axis-aligned rectangle given in meters relative to ORIGIN."""
    return Polygon(
        [
            offset(west_m, south_m),
            offset(east_m, south_m),
            offset(east_m, north_m),
            offset(west_m, north_m),
            offset(west_m, south_m),
        ]
    )


def square(center_east_m: float, center_north_m: float, half_size_m: float) -> Polygon:
    return rectangle(
        center_east_m - half_size_m,
        center_north_m - half_size_m,
        center_east_m + half_size_m,
        center_north_m + half_size_m,
    )


@pytest.fixture
def make_rectangle() -> Callable[..., Polygon]:
    return rectangle


@pytest.fixture
def make_square() -> Callable[..., Polygon]:
    return square


@pytest.fixture
def point_at() -> Callable[..., Tuple[float, float]]:
    return offset


@pytest.fixture
def two_faucet_dataset() -> Dataset:
    """
    Two supply points 500 m apart.

    sp-a: one sprinkler at ORIGIN. Alice owns the west half of its
          footprint, Bob the east half.
    sp-b: one sprinkler 500 m east. Carol's parcel covers it entirely.
    """
    farmers = (
        Farmer(id="far-alice", name="Alice"),
        Farmer(id="far-bob", name="Bob"),
        Farmer(id="far-carol", name="Carol"),
    )
    supply_points = (
        SupplyPoint(id="sp-a", name="Faucet A", location=offset(0, 5), annual_draw_m3=1000.0),
        SupplyPoint(id="sp-b", name="Faucet B", location=offset(500, 5), annual_draw_m3=600.0),
    )
    sprinklers = (
        Sprinkler(id="spr-1", name="S1", location=ORIGIN, supply_point_id="sp-a"),
        Sprinkler(id="spr-2", name="S2", location=offset(500, 0), supply_point_id="sp-b"),
        Sprinkler(id="spr-3", name="Orphan", location=offset(250, 0)),
    )
    parcels = (
        Parcel(
            id="par-1",
            name="Alice west",
            geometry=rectangle(-50, -50, 0, 50),
            farmer_id="far-alice",
            assessed_area_sqm=5000.0,
        ),
        Parcel(
            id="par-2",
            name="Bob east",
            geometry=rectangle(0, -50, 50, 50),
            farmer_id="far-bob",
            assessed_area_sqm=5000.0,
        ),
        Parcel(
            id="par-3",
            name="Carol",
            geometry=square(500, 0, 50),
            farmer_id="far-carol",
        ),
        Parcel(id="par-4", name="Unowned", geometry=square(250, 0, 50)),
    )
    return Dataset(
        farmers=farmers,
        supply_points=supply_points,
        sprinklers=sprinklers,
        parcels=parcels,
    )
