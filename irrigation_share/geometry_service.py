#!/usr/bin/env python3
"""
Irrigation Share - Geometry Service

ARCHITECTURAL OVERVIEW:
=======================
Responsibility: Thin adapter over Shapely and pyproj that provides the
geometry primitives the allocation engine consumes. All coordinates are WGS84
decimal degrees (lon, lat). Boolean operations run on the planar lon/lat
coordinates; areas and circles are computed on the WGS84 ellipsoid.

Key Features:
1. Multi-polygon normalization with an explicit empty sentinel
2. Geodesic sprinkler circles (N-sided approximation)
3. Union / intersection / difference that never raise on "no overlap"
4. Geodesic area in square meters

Navigation Guide:
- EPSILON: The single area tolerance used across the engine
- to_multipolygon: Geometry normalization helper
- create_sprinkler_circle: Circle primitive
- union_all / intersect / difference: Boolean primitives
- geodesic_area: Area primitive

For Navigation: Use VS Code outline (Ctrl+Shift+O)
"""

import logging
from typing import Iterable, List, Optional, Tuple

import numpy as np
from pyproj import Geod
from shapely.errors import GEOSException
from shapely.geometry import GeometryCollection, MultiPolygon, Polygon
from shapely.geometry.base import BaseGeometry
from shapely.geometry.polygon import orient
from shapely.ops import unary_union
from shapely.validation import make_valid

# ═══════════════════════════════════════════════════════════════════════════
# 🔧 CONSTANTS
# ═══════════════════════════════════════════════════════════════════════════

# Square meters. "Effectively empty", "effectively equal" and
# "effectively covers" all compare against this one value.
EPSILON = 1e-6

# Default sprinkler coverage radius and circle resolution
RADIUS_METERS = 30.0
CIRCLE_STEPS = 64

EMPTY_GEOMETRY = MultiPolygon()

WGS84_GEOD = Geod(ellps="WGS84")

logger = logging.getLogger(__name__)


# ═══════════════════════════════════════════════════════════════════════════
# 🧹 NORMALIZATION
# ═══════════════════════════════════════════════════════════════════════════


def _polygon_parts(geom: BaseGeometry) -> List[Polygon]:
    """Extract the non-degenerate Polygon parts of any Shapely geometry."""
    if geom.is_empty:
        return []

    if isinstance(geom, Polygon):
        # A ring needs at least three distinct positions to bound any area
        return [geom] if len(geom.exterior.coords) > 3 else []

    if isinstance(geom, (MultiPolygon, GeometryCollection)):
        parts: List[Polygon] = []
        for g in geom.geoms:
            parts.extend(_polygon_parts(g))
        return parts

    # Lines and points carry no area
    return []


def to_multipolygon(geom: Optional[BaseGeometry]) -> MultiPolygon:
    """
    Normalize a geometry to a MultiPolygon of polygon parts.

    Handles Polygon, MultiPolygon and GeometryCollection results of boolean
    operations. Invalid input (self-intersecting rings) is repaired with
    make_valid before extraction. None and empty input map to
    EMPTY_GEOMETRY.

    Args:
        geom: Shapely geometry or None

    Returns:
        MultiPolygon (possibly EMPTY_GEOMETRY)
    """
    if geom is None or geom.is_empty:
        return EMPTY_GEOMETRY

    if not geom.is_valid:
        geom = make_valid(geom)

    parts = _polygon_parts(geom)
    if not parts:
        return EMPTY_GEOMETRY
    return MultiPolygon(parts)


def is_empty(geom: Optional[BaseGeometry]) -> bool:
    """True for None, empty geometries and geometries without polygon parts."""
    return to_multipolygon(geom).is_empty


# ═══════════════════════════════════════════════════════════════════════════
# 🔵 CIRCLE PRIMITIVE
# ═══════════════════════════════════════════════════════════════════════════


def create_sprinkler_circle(
    location: Tuple[float, float],
    radius_m: float = RADIUS_METERS,
    steps: int = CIRCLE_STEPS,
) -> Polygon:
    """
    Build a geodesic circle polygon around a sprinkler.

    Vertices are placed by solving the forward geodesic problem from the
    center at `steps` evenly spaced azimuths, so the radius is exact in
    meters on the WGS84 ellipsoid at any latitude.

    Args:
        location: (lon, lat) center in decimal degrees
        radius_m: Circle radius in meters
        steps: Number of polygon vertices

    Returns:
        Shapely Polygon in WGS84 coordinates
    """
    lon, lat = location
    azimuths = np.linspace(0.0, -360.0, steps, endpoint=False)
    lons, lats, _ = WGS84_GEOD.fwd(
        np.full(steps, lon, dtype=float),
        np.full(steps, lat, dtype=float),
        azimuths,
        np.full(steps, radius_m, dtype=float),
    )
    return Polygon(np.column_stack([lons, lats]))


# ═══════════════════════════════════════════════════════════════════════════
# ➕ BOOLEAN PRIMITIVES
# ═══════════════════════════════════════════════════════════════════════════


def _safe_op(op_name: str, fn, a: BaseGeometry, b: BaseGeometry) -> MultiPolygon:
    """Run a binary Shapely op, repairing inputs once on topology errors."""
    try:
        return to_multipolygon(fn(a, b))
    except GEOSException as e:
        logger.debug(f"{op_name} failed ({e}), retrying on repaired inputs")

    try:
        return to_multipolygon(fn(make_valid(a), make_valid(b)))
    except GEOSException as e:
        logger.warning(f"⚠️ {op_name} failed on repaired inputs: {e}")
        return EMPTY_GEOMETRY


def union_all(geometries: Iterable[BaseGeometry]) -> MultiPolygon:
    """
    Fold geometries together into one MultiPolygon.

    Empty inputs are skipped; an empty iterable yields EMPTY_GEOMETRY.
    """
    parts = [to_multipolygon(g) for g in geometries]
    parts = [p for p in parts if not p.is_empty]
    if not parts:
        return EMPTY_GEOMETRY

    try:
        return to_multipolygon(unary_union(parts))
    except GEOSException as e:
        logger.warning(f"⚠️ Union failed, folding pairwise: {e}")

    accumulator = parts[0]
    for current in parts[1:]:
        accumulator = _safe_op("Union", lambda x, y: x.union(y), accumulator, current)
    return accumulator


def intersect(a: Optional[BaseGeometry], b: Optional[BaseGeometry]) -> MultiPolygon:
    """Intersection of two geometries; EMPTY_GEOMETRY when they do not overlap."""
    a = to_multipolygon(a)
    b = to_multipolygon(b)
    if a.is_empty or b.is_empty:
        return EMPTY_GEOMETRY
    return _safe_op("Intersection", lambda x, y: x.intersection(y), a, b)


def difference(
    subject: Optional[BaseGeometry], clip: Optional[BaseGeometry]
) -> MultiPolygon:
    """Part of `subject` not covered by `clip`."""
    subject = to_multipolygon(subject)
    if subject.is_empty:
        return EMPTY_GEOMETRY
    clip = to_multipolygon(clip)
    if clip.is_empty:
        return subject
    return _safe_op("Difference", lambda x, y: x.difference(y), subject, clip)


# ═══════════════════════════════════════════════════════════════════════════
# 📐 AREA PRIMITIVE
# ═══════════════════════════════════════════════════════════════════════════


def geodesic_area(geom: Optional[BaseGeometry]) -> float:
    """
    Ellipsoidal area of a (multi-)polygon in square meters.

    Each polygon is oriented counter-clockwise with clockwise holes before
    measuring so that holes are subtracted regardless of input winding.

    Args:
        geom: Polygon, MultiPolygon or any geometry with polygon parts

    Returns:
        Area in m² (0.0 for empty input)
    """
    mp = to_multipolygon(geom)
    if mp.is_empty:
        return 0.0

    total = 0.0
    for poly in mp.geoms:
        area, _ = WGS84_GEOD.geometry_area_perimeter(orient(poly, sign=1.0))
        total += abs(area)
    return total


def is_effectively_empty(geom: Optional[BaseGeometry]) -> bool:
    """True when a geometry is empty or its area is within EPSILON of zero."""
    mp = to_multipolygon(geom)
    return mp.is_empty or geodesic_area(mp) <= EPSILON
