"""
Versioned JSON interchange document.

ARCHITECTURAL OVERVIEW:
=======================
Responsibility: The single hard validation boundary of the application.
A document is validated against the schema below before any entity is built,
so the allocation engine can assume well-formed input.

Document shape (schemaVersion 1):
    {
      "meta": {"schemaVersion": 1, "exportedAt": "..."},
      "map": {"center": [lat, lon], "zoom": 0..22},
      "farmers":    [{"id", "name", "notes"?}],
      "faucets":    [{"id", "name", "geometry": <Point Feature>,
                      "annualWaterUsageM3", "farmerShares": [...]}],
      "sprinklers": [{"id", "name", "geometry": <Point Feature>, "faucetId"?}],
      "parcels":    [{"id", "name", "geometry": <Polygon Feature>,
                      "farmerId"?, "assessedAreaSqm"?}]
    }

On load:
- absent computedShare defaults to the recorded share
- absent assessedAreaSqm is recomputed from the parcel geometry

Validation uses pydantic models; every failure is re-raised as
DocumentValidationError with the pydantic error report as message.
"""

import json
import logging
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, List, Literal, Mapping, Optional, Tuple, Union

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator
from shapely.geometry import mapping, shape

from irrigation_share.geometry_service import geodesic_area
from irrigation_share.models import (
    Dataset,
    Farmer,
    FarmerShare,
    MapView,
    Parcel,
    Sprinkler,
    SupplyPoint,
)

logger = logging.getLogger(__name__)

SCHEMA_VERSION = 1

Position = Tuple[float, float]


class DocumentValidationError(ValueError):
    """Raised when an interchange document does not match the schema."""


# ═══════════════════════════════════════════════════════════════════════════
# 📐 SCHEMA MODELS
# ═══════════════════════════════════════════════════════════════════════════


class _SchemaModel(BaseModel):
    model_config = ConfigDict(populate_by_name=True)


class PointGeometryModel(_SchemaModel):
    type: Literal["Point"]
    coordinates: Position


class PolygonGeometryModel(_SchemaModel):
    type: Literal["Polygon"]
    coordinates: List[List[Position]] = Field(..., min_length=1)

    @field_validator("coordinates")
    @classmethod
    def validate_rings(cls, v: List[List[Position]]) -> List[List[Position]]:
        for ring in v:
            if len(ring) < 4:
                raise ValueError("Polygon rings must contain at least 4 coordinates")
        return v


class PointFeatureModel(_SchemaModel):
    type: Literal["Feature"]
    geometry: PointGeometryModel
    properties: Optional[Dict[str, Any]] = None


class PolygonFeatureModel(_SchemaModel):
    type: Literal["Feature"]
    geometry: PolygonGeometryModel
    properties: Optional[Dict[str, Any]] = None


class FarmerModel(_SchemaModel):
    id: str
    name: str = Field(..., min_length=1)
    notes: Optional[str] = None


class FarmerShareModel(_SchemaModel):
    farmer_id: str = Field(..., alias="farmerId")
    share: float = Field(..., ge=0, le=1)
    computed_share: Optional[float] = Field(None, alias="computedShare", ge=0, le=1)


class FaucetModel(_SchemaModel):
    id: str
    name: str = Field(..., min_length=1)
    geometry: PointFeatureModel
    annual_water_usage_m3: float = Field(..., alias="annualWaterUsageM3", ge=0)
    farmer_shares: List[FarmerShareModel] = Field(..., alias="farmerShares")


class SprinklerModel(_SchemaModel):
    id: str
    name: str = Field(..., min_length=1)
    geometry: PointFeatureModel
    faucet_id: Optional[str] = Field(None, alias="faucetId")


class ParcelModel(_SchemaModel):
    id: str
    name: str = Field(..., min_length=1)
    geometry: PolygonFeatureModel
    farmer_id: Optional[str] = Field(None, alias="farmerId")
    assessed_area_sqm: Optional[float] = Field(None, alias="assessedAreaSqm", ge=0)


class MetaModel(_SchemaModel):
    schema_version: Literal[1] = Field(..., alias="schemaVersion")
    exported_at: Optional[str] = Field(None, alias="exportedAt")


class MapViewModel(_SchemaModel):
    center: Position
    zoom: float = Field(..., ge=0, le=22)


class DocumentModel(_SchemaModel):
    meta: MetaModel
    map_view: MapViewModel = Field(..., alias="map")
    farmers: List[FarmerModel]
    faucets: List[FaucetModel]
    sprinklers: List[SprinklerModel]
    parcels: List[ParcelModel]


# ═══════════════════════════════════════════════════════════════════════════
# 📥 PARSING
# ═══════════════════════════════════════════════════════════════════════════


def _to_supply_point(model: FaucetModel) -> SupplyPoint:
    shares = tuple(
        FarmerShare(
            farmer_id=s.farmer_id,
            share=s.share,
            computed_share=s.computed_share if s.computed_share is not None else s.share,
        )
        for s in model.farmer_shares
    )
    return SupplyPoint(
        id=model.id,
        name=model.name,
        location=tuple(model.geometry.geometry.coordinates),
        annual_draw_m3=model.annual_water_usage_m3,
        farmer_shares=shares,
    )


def _to_parcel(model: ParcelModel) -> Parcel:
    polygon = shape(model.geometry.geometry.model_dump())
    assessed = model.assessed_area_sqm
    if assessed is None:
        assessed = geodesic_area(polygon)
    return Parcel(
        id=model.id,
        name=model.name,
        geometry=polygon,
        farmer_id=model.farmer_id,
        assessed_area_sqm=assessed,
    )


def parse_document(data: Union[str, bytes, Mapping[str, Any]]) -> Dataset:
    """
    Validate an interchange document and build a Dataset from it.

    Args:
        data: Parsed JSON object, or JSON text

    Returns:
        Dataset snapshot

    Raises:
        DocumentValidationError: On invalid JSON or any schema violation
    """
    if isinstance(data, (str, bytes)):
        try:
            data = json.loads(data)
        except json.JSONDecodeError as e:
            raise DocumentValidationError(f"Document is not valid JSON: {e}") from e

    try:
        doc = DocumentModel.model_validate(data)
    except ValidationError as e:
        raise DocumentValidationError(f"Invalid document: {e}") from e

    return Dataset(
        map_view=MapView(center=tuple(doc.map_view.center), zoom=doc.map_view.zoom),
        farmers=tuple(
            Farmer(id=f.id, name=f.name, notes=f.notes) for f in doc.farmers
        ),
        supply_points=tuple(_to_supply_point(f) for f in doc.faucets),
        sprinklers=tuple(
            Sprinkler(
                id=s.id,
                name=s.name,
                location=tuple(s.geometry.geometry.coordinates),
                supply_point_id=s.faucet_id,
            )
            for s in doc.sprinklers
        ),
        parcels=tuple(_to_parcel(p) for p in doc.parcels),
    )


# ═══════════════════════════════════════════════════════════════════════════
# 📤 SERIALIZATION
# ═══════════════════════════════════════════════════════════════════════════


def _point_feature(location: Tuple[float, float]) -> Dict[str, Any]:
    return {
        "type": "Feature",
        "geometry": {"type": "Point", "coordinates": list(location)},
        "properties": None,
    }


def _utc_timestamp() -> str:
    now = datetime.now(timezone.utc)
    return now.isoformat(timespec="milliseconds").replace("+00:00", "Z")


def serialize_document(dataset: Dataset) -> Dict[str, Any]:
    """Convert a Dataset into a schemaVersion 1 document (JSON-ready dict)."""
    faucets = []
    for sp in dataset.supply_points:
        record = sp.as_dict()
        record.pop("location")
        record["geometry"] = _point_feature(sp.location)
        faucets.append(record)

    sprinklers = []
    for s in dataset.sprinklers:
        record = s.as_dict()
        record.pop("location")
        record["geometry"] = _point_feature(s.location)
        sprinklers.append(record)

    parcels = []
    for p in dataset.parcels:
        record = p.as_dict()
        record["geometry"] = {
            "type": "Feature",
            "geometry": json.loads(json.dumps(mapping(p.geometry))),
            "properties": None,
        }
        parcels.append(record)

    return {
        "meta": {"schemaVersion": SCHEMA_VERSION, "exportedAt": _utc_timestamp()},
        "map": {
            "center": list(dataset.map_view.center),
            "zoom": dataset.map_view.zoom,
        },
        "farmers": [f.as_dict() for f in dataset.farmers],
        "faucets": faucets,
        "sprinklers": sprinklers,
        "parcels": parcels,
    }


# ═══════════════════════════════════════════════════════════════════════════
# 💾 FILE I/O
# ═══════════════════════════════════════════════════════════════════════════


def load_document(path: Union[str, Path]) -> Dataset:
    """Read and validate a document file."""
    path = Path(path)
    logger.info(f"📂 Loading document: {path}")
    dataset = parse_document(path.read_text(encoding="utf-8"))
    logger.info(
        f"   Loaded {len(dataset.farmers)} farmers, "
        f"{len(dataset.supply_points)} faucets, "
        f"{len(dataset.sprinklers)} sprinklers, "
        f"{len(dataset.parcels)} parcels"
    )
    return dataset


def save_document(path: Union[str, Path], dataset: Dataset) -> Path:
    """Write a Dataset as a document file; returns the written path."""
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    with open(path, "w", encoding="utf-8") as f:
        json.dump(serialize_document(dataset), f, ensure_ascii=False, indent=2)
    logger.info(f"💾 Saved document: {path}")
    return path
