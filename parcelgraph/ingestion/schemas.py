"""
Wire and record models.

Gateway payloads are decoded into these pydantic models. Leaf models are
lenient: unknown keys are ignored, absent/null/empty values become None (or
the field default), and scalar fields coerce what they can and drop what they
cannot. Only a payload that is not a JSON object fails leaf validation.
"""

from __future__ import annotations

import math
from typing import Annotated, Any, Dict, List, Optional

from pydantic import BeforeValidator, ConfigDict, Field, model_validator

from parcelgraph.shared.models import LeafBaseModel, ParcelBaseModel

_TRUE_STRINGS = {"true", "yes", "y", "1"}
_FALSE_STRINGS = {"false", "no", "n", "0"}


def _is_absent(value: Any) -> bool:
    return value is None or value == "" or value == [] or value == {}


def _lenient_text(value: Any) -> Optional[str]:
    if _is_absent(value):
        return None
    if isinstance(value, str):
        return value
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, (int, float)):
        return str(value)
    return None


def _lenient_number(value: Any) -> Optional[float]:
    if _is_absent(value) or isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        return value
    if isinstance(value, str):
        try:
            return float(value.replace(",", "").strip())
        except ValueError:
            return None
    return None


def _lenient_int(value: Any) -> Optional[int]:
    number = _lenient_number(value)
    if number is None or not math.isfinite(number) or number != int(number):
        return None
    return int(number)


def _lenient_flag(value: Any) -> Optional[bool]:
    if isinstance(value, bool):
        return value
    if isinstance(value, str):
        lowered = value.strip().lower()
        if lowered in _TRUE_STRINGS:
            return True
        if lowered in _FALSE_STRINGS:
            return False
    if isinstance(value, int):
        return bool(value)
    return None


def _lenient_text_list(value: Any) -> Optional[List[str]]:
    if _is_absent(value):
        return None
    if isinstance(value, str):
        return [value]
    if isinstance(value, list):
        items = [_lenient_text(v) for v in value]
        return [v for v in items if v is not None] or None
    return None


Text = Annotated[Optional[str], BeforeValidator(_lenient_text)]
Number = Annotated[Optional[float], BeforeValidator(_lenient_number)]
Integer = Annotated[Optional[int], BeforeValidator(_lenient_int)]
Flag = Annotated[Optional[bool], BeforeValidator(_lenient_flag)]
TextList = Annotated[Optional[List[str]], BeforeValidator(_lenient_text_list)]


# ===== Wire models =====


class CidLink(LeafBaseModel):
    """`{"/": "<cid>"}`"""

    model_config = ConfigDict(populate_by_name=False)

    cid: str = Field(alias="/", min_length=1)


class RelationshipEdge(LeafBaseModel):
    from_: Optional[CidLink] = Field(default=None, alias="from")
    to: CidLink


class RootMetadataPayload(LeafBaseModel):
    label: str = Field(min_length=1)
    relationships: Optional[Dict[str, Any]] = None

    @model_validator(mode="before")
    @classmethod
    def require_object(cls, data: Any) -> Any:
        if not isinstance(data, dict):
            raise ValueError(f"metadata must be a JSON object, got {type(data).__name__}")
        return data


# ===== Leaf records =====


class LeafRecord(LeafBaseModel):
    """A leaf entity. `id` is the CID the record was fetched from."""

    id: Optional[str] = None
    request_identifier: Text = None

    @model_validator(mode="before")
    @classmethod
    def drop_absent_values(cls, data: Any) -> Any:
        if not isinstance(data, dict):
            raise ValueError(f"leaf payload must be a JSON object, got {type(data).__name__}")
        return {k: v for k, v in data.items() if not _is_absent(v)}


class RepeatableLeafRecord(LeafRecord):
    """Leaf that can occur many times per root; carries the root foreign key."""

    root_id: Optional[str] = None


class Structure(LeafRecord):
    roof_date: Text = None
    architectural_style_type: Text = None
    attachment_type: Text = None
    ceiling_condition: Text = None
    ceiling_height_average: Number = None
    ceiling_insulation_type: Text = None
    ceiling_structure_material: Text = None
    ceiling_surface_material: Text = None
    exterior_door_material: Text = None
    exterior_wall_condition: Text = None
    exterior_wall_insulation_type: Text = None
    exterior_wall_material_primary: Text = None
    exterior_wall_material_secondary: Text = None
    flooring_condition: Text = None
    flooring_material_primary: Text = None
    flooring_material_secondary: Text = None
    foundation_condition: Text = None
    foundation_material: Text = None
    foundation_type: Text = None
    foundation_waterproofing: Text = None
    gutters_condition: Text = None
    gutters_material: Text = None
    interior_door_material: Text = None
    interior_wall_condition: Text = None
    interior_wall_finish_primary: Text = None
    interior_wall_finish_secondary: Text = None
    interior_wall_structure_material: Text = None
    interior_wall_surface_material_primary: Text = None
    interior_wall_surface_material_secondary: Text = None
    number_of_stories: Number = None
    primary_framing_material: Text = None
    roof_age_years: Number = None
    roof_condition: Text = None
    roof_covering_material: Text = None
    roof_design_type: Text = None
    roof_material_type: Text = None
    roof_structure_material: Text = None
    roof_underlayment_type: Text = None
    secondary_framing_material: Text = None
    structural_damage_indicators: Text = None
    subfloor_material: Text = None
    window_frame_material: Text = None
    window_glazing_type: Text = None
    window_operation_type: Text = None
    window_screen_material: Text = None


class Address(LeafRecord):
    block: Text = None
    city_name: Text = None
    country_code: Text = None
    county_name: Text = None
    latitude: Number = None
    longitude: Number = None
    lot: Text = None
    municipality_name: Text = None
    plus_four_postal_code: Text = None
    postal_code: Text = None
    range: Text = None
    route_number: Text = None
    section: Text = None
    state_code: Text = None
    street_name: Text = None
    street_number: Text = None
    street_post_directional_text: Text = None
    street_pre_directional_text: Text = None
    street_suffix_type: Text = None
    township: Text = None
    unit_identifier: Text = None


class Property(LeafRecord):
    property_type: Text = None
    # Years arrive as numbers or strings; stored as strings
    property_structure_built_year: Text = None
    property_effective_built_year: Text = None
    parcel_identifier: Text = None
    area_under_air: Text = None
    historic_designation: Flag = None
    livable_floor_area: Text = None
    number_of_units: Number = None
    number_of_units_type: Text = None
    property_legal_description_text: Text = None
    subdivision: Text = None
    total_area: Text = None
    zoning: Text = None


class IpfsFactSheet(LeafRecord):
    ipfs_url: Text = ""
    full_generation_command: Text = None

    @model_validator(mode="after")
    def default_ipfs_url(self) -> "IpfsFactSheet":
        if self.ipfs_url is None:
            self.ipfs_url = ""
        return self


class Lot(LeafRecord):
    driveway_condition: Text = None
    driveway_material: Text = None
    fence_height: Text = None
    fence_length: Text = None
    fencing_type: Text = None
    landscaping_features: Text = None
    lot_area_sqft: Number = None
    lot_condition_issues: Text = None
    lot_length_feet: Number = None
    lot_size_acre: Number = None
    lot_type: Text = None
    lot_width_feet: Number = None
    view: Text = None


class Utility(LeafRecord):
    cooling_system_type: Text = None
    electrical_panel_capacity: Text = None
    electrical_wiring_type: Text = None
    electrical_wiring_type_other_description: Text = None
    heating_system_type: Text = None
    hvac_condensing_unit_present: Text = None
    hvac_unit_condition: Text = None
    hvac_unit_issues: Text = None
    plumbing_system_type: Text = None
    plumbing_system_type_other_description: Text = None
    public_utility_type: Text = None
    sewer_type: Text = None
    smart_home_features: TextList = None
    smart_home_features_other_description: Text = None
    solar_inverter_visible: Flag = None
    solar_panel_present: Flag = None
    solar_panel_type: Text = None
    solar_panel_type_other_description: Text = None
    water_source_type: Text = None


class FloodStormInformation(LeafRecord):
    community_id: Text = None
    effective_date: Text = None
    evacuation_zone: Text = None
    fema_search_url: Text = None
    flood_insurance_required: Flag = None
    flood_zone: Text = None
    map_version: Text = None
    panel_number: Text = None


class SalesHistory(RepeatableLeafRecord):
    ownership_transfer_date: Text = None
    purchase_price_amount: Number = None
    sale_type: Text = None


class Tax(RepeatableLeafRecord):
    first_year_building_on_tax_roll: Integer = None
    first_year_on_tax_roll: Integer = None
    monthly_tax_amount: Number = None
    period_end_date: Text = None
    period_start_date: Text = None
    property_assessed_value_amount: Number = None
    property_building_amount: Number = None
    property_land_amount: Number = None
    property_market_value_amount: Number = None
    property_taxable_value_amount: Number = None
    tax_year: Integer = None
    yearly_tax_amount: Number = None


class Person(RepeatableLeafRecord):
    birth_date: Text = None
    first_name: Text = None
    last_name: Text = None
    middle_name: Text = None
    prefix_name: Text = None
    suffix_name: Text = None
    us_citizenship_status: Text = None
    veteran_status: Flag = None


class Company(RepeatableLeafRecord):
    name: Text = None


class Layout(RepeatableLeafRecord):
    cabinet_style: Text = None
    clutter_level: Text = None
    condition_issues: Text = None
    countertop_material: Text = None
    decor_elements: Text = None
    design_style: Text = None
    fixture_finish_quality: Text = None
    floor_level: Text = None
    flooring_material_type: Text = None
    flooring_wear: Text = None
    furnished: Text = None
    has_windows: Flag = None
    is_exterior: Flag = False
    is_finished: Flag = False
    lighting_features: Text = None
    natural_light_quality: Text = None
    paint_condition: Text = None
    pool_condition: Text = None
    pool_equipment: Text = None
    pool_surface_type: Text = None
    pool_type: Text = None
    pool_water_quality: Text = None
    safety_features: Text = None
    size_square_feet: Number = None
    spa_type: Text = None
    space_index: Integer = 0
    space_type: Text = None
    view_type: Text = None
    visible_damage: Text = None
    window_design_type: Text = None
    window_material_type: Text = None
    window_treatment_type: Text = None

    @model_validator(mode="after")
    def apply_layout_defaults(self) -> "Layout":
        # Unparseable values come through as None; fall back to defaults
        if self.is_exterior is None:
            self.is_exterior = False
        if self.is_finished is None:
            self.is_finished = False
        if self.space_index is None:
            self.space_index = 0
        return self


class File(RepeatableLeafRecord):
    document_type: Text = None
    file_format: Text = None
    ipfs_url: Text = None
    name: Text = None
    original_url: Text = None


class Deed(RepeatableLeafRecord):
    deed_type: Text = None


# ===== Root record =====


class RootRecord(ParcelBaseModel):
    """Canonical per-property record with foreign keys to singleton leaves."""

    id: str
    property_hash: str
    submitter: Optional[str] = None
    content_hash: Optional[str] = None
    cid: Optional[str] = None
    label: Optional[str] = None
    id_source: Optional[str] = None
    timestamp: Optional[int] = None
    event_kind: Optional[str] = None
    structure_id: Optional[str] = None
    address_id: Optional[str] = None
    property_id: Optional[str] = None
    lot_id: Optional[str] = None
    utility_id: Optional[str] = None
    flood_storm_information_id: Optional[str] = None
    ipfs_fact_sheet_id: Optional[str] = None


ROOT_FOREIGN_KEYS = (
    "structure_id",
    "address_id",
    "property_id",
    "lot_id",
    "utility_id",
    "flood_storm_information_id",
    "ipfs_fact_sheet_id",
)
