"""
Unit tests for the interchange document.

Tests:
1. Valid documents build a Dataset (defaults for computedShare / assessed area)
2. Schema violations raise DocumentValidationError
3. Serialization produces a document that parses back to the same entities

Run with: python -m pytest irrigation_share/_tests/test_document.py -v
"""

import copy
import json

import pytest
from shapely.geometry import mapping

from irrigation_share.document import (
    DocumentValidationError,
    load_document,
    parse_document,
    save_document,
    serialize_document,
)
from irrigation_share.geometry_service import geodesic_area


def _point_feature(lon, lat):
    return {
        "type": "Feature",
        "geometry": {"type": "Point", "coordinates": [lon, lat]},
        "properties": None,
    }


@pytest.fixture
def document(make_square, point_at):
    parcel_geometry = json.loads(json.dumps(mapping(make_square(0, 0, 50))))
    return {
        "meta": {"schemaVersion": 1, "exportedAt": "2025-01-01T00:00:00.000Z"},
        "map": {"center": [24.8055, 125.2941], "zoom": 14},
        "farmers": [
            {"id": "far-1", "name": "Alice"},
            {"id": "far-2", "name": "Bob", "notes": "east field"},
        ],
        "faucets": [
            {
                "id": "fau-1",
                "name": "Faucet 1",
                "geometry": _point_feature(*point_at(0, 5)),
                "annualWaterUsageM3": 1200,
                "farmerShares": [
                    {"farmerId": "far-1", "share": 0.6},
                    {"farmerId": "far-2", "share": 0.4, "computedShare": 0.5},
                ],
            }
        ],
        "sprinklers": [
            {
                "id": "spr-1",
                "name": "Sprinkler 1",
                "geometry": _point_feature(*point_at(0, 0)),
                "faucetId": "fau-1",
            },
            {"id": "spr-2", "name": "Sprinkler 2", "geometry": _point_feature(*point_at(80, 0))},
        ],
        "parcels": [
            {
                "id": "par-1",
                "name": "Parcel 1",
                "geometry": {"type": "Feature", "geometry": parcel_geometry, "properties": {}},
                "farmerId": "far-1",
                "assessedAreaSqm": 9000,
            },
            {
                "id": "par-2",
                "name": "Parcel 2",
                "geometry": {"type": "Feature", "geometry": parcel_geometry, "properties": None},
            },
        ],
    }


class TestParseDocument:
    def test_entities_are_built(self, document):
        dataset = parse_document(document)
        assert [f.name for f in dataset.farmers] == ["Alice", "Bob"]
        assert dataset.farmer("far-2").notes == "east field"
        assert dataset.map_view.zoom == 14
        sp = dataset.supply_point("fau-1")
        assert sp.annual_draw_m3 == 1200.0
        assert dataset.sprinklers[0].supply_point_id == "fau-1"
        assert dataset.sprinklers[1].supply_point_id is None

    def test_computed_share_defaults_to_share(self, document):
        sp = parse_document(document).supply_point("fau-1")
        assert sp.share_for("far-1").computed_share == 0.6
        assert sp.share_for("far-2").computed_share == 0.5

    def test_assessed_area_recomputed_when_absent(self, document):
        parcels = parse_document(document).parcels
        assert parcels[0].assessed_area_sqm == 9000.0
        assert parcels[1].assessed_area_sqm == pytest.approx(geodesic_area(parcels[1].geometry))
        assert parcels[1].farmer_id is None

    def test_accepts_json_text(self, document):
        dataset = parse_document(json.dumps(document))
        assert len(dataset.parcels) == 2


class TestValidationErrors:
    def _assert_rejected(self, document, match=None):
        with pytest.raises(DocumentValidationError, match=match):
            parse_document(document)

    @pytest.mark.parametrize("version", [0, 2, None])
    def test_wrong_schema_version(self, document, version):
        document["meta"]["schemaVersion"] = version
        self._assert_rejected(document, match="schemaVersion")

    def test_missing_section(self, document):
        del document["sprinklers"]
        self._assert_rejected(document, match="sprinklers")

    def test_short_ring(self, document):
        ring = document["parcels"][0]["geometry"]["geometry"]["coordinates"][0]
        document["parcels"][0]["geometry"]["geometry"]["coordinates"][0] = ring[:3]
        self._assert_rejected(document, match="at least 4 coordinates")

    def test_empty_name(self, document):
        document["farmers"][0]["name"] = ""
        self._assert_rejected(document)

    def test_share_out_of_range(self, document):
        document["faucets"][0]["farmerShares"][0]["share"] = 1.5
        self._assert_rejected(document)

    def test_negative_usage(self, document):
        document["faucets"][0]["annualWaterUsageM3"] = -1
        self._assert_rejected(document)

    def test_zoom_out_of_range(self, document):
        document["map"]["zoom"] = 23
        self._assert_rejected(document)

    def test_sprinkler_with_polygon_geometry(self, document):
        document["sprinklers"][0]["geometry"] = document["parcels"][0]["geometry"]
        self._assert_rejected(document)

    def test_invalid_json_text(self):
        self._assert_rejected("{not json")

    def test_is_a_value_error(self):
        assert issubclass(DocumentValidationError, ValueError)


class TestSerializeDocument:
    def test_serialized_document_parses_back(self, document):
        dataset = parse_document(document)
        serialized = serialize_document(dataset)

        assert serialized["meta"]["schemaVersion"] == 1
        assert serialized["meta"]["exportedAt"].endswith("Z")
        assert serialized["faucets"][0]["geometry"]["geometry"]["type"] == "Point"

        reparsed = parse_document(copy.deepcopy(serialized))
        assert reparsed.farmers == dataset.farmers
        assert reparsed.supply_points == dataset.supply_points
        assert reparsed.sprinklers == dataset.sprinklers
        assert [p.assessed_area_sqm for p in reparsed.parcels] == [
            p.assessed_area_sqm for p in dataset.parcels
        ]
        assert reparsed.parcels[0].geometry.equals(dataset.parcels[0].geometry)

    def test_serialized_document_is_json(self, document):
        text = json.dumps(serialize_document(parse_document(document)))
        assert json.loads(text)["map"]["center"] == [24.8055, 125.2941]

    def test_save_and_load(self, document, tmp_path):
        dataset = parse_document(document)
        path = save_document(tmp_path / "nested" / "doc.json", dataset)
        assert path.exists()
        loaded = load_document(path)
        assert loaded.supply_points == dataset.supply_points
