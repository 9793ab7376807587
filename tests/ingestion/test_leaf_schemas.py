"""Leaf payload decoding and normalization."""

import pytest
from pydantic import ValidationError

from parcelgraph.ingestion.schemas import (
    IpfsFactSheet,
    Layout,
    Property,
    RelationshipEdge,
    RootMetadataPayload,
    Structure,
    Tax,
    Utility,
)


class TestNormalization:
    def test_empty_and_null_become_none(self):
        record = Structure.model_validate(
            {"roof_condition": "", "roof_covering_material": None}
        )
        assert record.roof_condition is None
        assert record.roof_covering_material is None

    def test_zero_and_false_are_kept(self):
        utility = Utility.model_validate({"solar_panel_present": False})
        assert utility.solar_panel_present is False
        tax = Tax.model_validate({"yearly_tax_amount": 0, "tax_year": "2023"})
        assert tax.yearly_tax_amount == 0
        assert tax.tax_year == 2023

    def test_unknown_keys_ignored(self):
        record = Structure.model_validate({"number_of_stories": 1, "extra": "x"})
        assert record.number_of_stories == 1
        assert not hasattr(record, "extra")

    def test_built_year_coerced_to_string(self):
        record = Property.model_validate({"property_structure_built_year": 1987})
        assert record.property_structure_built_year == "1987"

    def test_unparseable_number_dropped(self):
        record = Structure.model_validate({"number_of_stories": "N/A"})
        assert record.number_of_stories is None

    def test_smart_home_features(self):
        assert Utility.model_validate({"smart_home_features": []}).smart_home_features is None
        record = Utility.model_validate({"smart_home_features": ["Thermostat", ""]})
        assert record.smart_home_features == ["Thermostat"]

    def test_layout_defaults(self):
        layout = Layout.model_validate({"space_type": "Bedroom"})
        assert layout.is_exterior is False
        assert layout.is_finished is False
        assert layout.space_index == 0

        layout = Layout.model_validate({"is_exterior": "maybe", "space_index": "x"})
        assert layout.is_exterior is False
        assert layout.space_index == 0

        layout = Layout.model_validate({"is_finished": True, "space_index": 3})
        assert layout.is_finished is True
        assert layout.space_index == 3

    def test_fact_sheet_url_defaults_to_empty(self):
        assert IpfsFactSheet.model_validate({}).ipfs_url == ""
        assert IpfsFactSheet.model_validate({"ipfs_url": None}).ipfs_url == ""

    @pytest.mark.parametrize("payload", [[], "text", 3, None])
    def test_non_object_rejected(self, payload):
        with pytest.raises(ValidationError):
            Structure.model_validate(payload)


class TestWireModels:
    def test_relationship_edge(self):
        edge = RelationshipEdge.model_validate({"from": {"/": "a"}, "to": {"/": "b"}})
        assert edge.from_.cid == "a"
        assert edge.to.cid == "b"

    def test_relationship_from_optional(self):
        assert RelationshipEdge.model_validate({"to": {"/": "b"}}).from_ is None

    @pytest.mark.parametrize(
        "payload",
        [{}, {"to": {"/": ""}}, {"to": "b"}, {"from": {"/": "a"}}],
    )
    def test_relationship_requires_to(self, payload):
        with pytest.raises(ValidationError):
            RelationshipEdge.model_validate(payload)

    @pytest.mark.parametrize("payload", [{}, {"label": ""}, {"label": 5}, ["County"]])
    def test_metadata_requires_label(self, payload):
        with pytest.raises(ValidationError):
            RootMetadataPayload.model_validate(payload)
