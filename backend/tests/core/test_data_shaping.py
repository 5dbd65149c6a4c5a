# tests/core/test_data_shaping.py
"""
Tests for field selection on DTOs.
"""
from typing import List

import pytest
from pydantic import Field

from core.shaping import DataShapingService, LINKS_KEY, ShapedModel, parse_fields
from models.common_models import LinkDto

class SampleDto(ShapedModel):
    id: str
    name: str
    value: int
    links: List[LinkDto] = Field(default_factory=list)

@pytest.fixture
def service():
    return DataShapingService()

@pytest.fixture
def record():
    return SampleDto(id="e_1", name="x", value=5)

# ===== VALIDATION =====

@pytest.mark.parametrize("fields", [None, "", "   ", "id", "id,name", "ID, Name", "id,,value"])
def test_validate_accepts_declared_fields(service, fields):
    assert service.validate(SampleDto, fields) is True

@pytest.mark.parametrize("fields", ["unknown", "id,unknown", "Unknown", "links"])
def test_validate_rejects_undeclared_fields(service, fields):
    assert service.validate(SampleDto, fields) is False

def test_parse_fields_is_case_insensitive_and_skips_blanks():
    assert parse_fields(" Name, ,VALUE,") == {"name", "value"}
    assert parse_fields(None) == set()

# ===== SHAPING =====

def test_shape_single_field(service, record):
    assert service.shape_data(SampleDto, record, "name") == {"name": "x"}

def test_shape_without_fields_returns_all_declared_fields_in_order(service, record):
    shaped = service.shape_data(SampleDto, record, None)

    assert list(shaped) == ["id", "name", "value"]
    assert shaped == {"id": "e_1", "name": "x", "value": 5}

def test_shape_uses_declared_names_whatever_the_request_case(service, record):
    assert service.shape_data(SampleDto, record, "NAME,Value") == {"name": "x", "value": 5}

def test_shape_missing_record_is_empty(service):
    assert service.shape_data(SampleDto, None, "name") == {}

def test_shape_collection_with_links_factory(service):
    records = [SampleDto(id="e_1", name="a", value=1), SampleDto(id="e_2", name="b", value=2)]
    seen = []

    def links_factory(record):
        seen.append(record)
        return [LinkDto(href=f"http://test/entries/{record.id}", rel="self", method="GET")]

    shaped = service.shape_collection_data(SampleDto, records, "name", links_factory)

    assert [item["name"] for item in shaped] == ["a", "b"]
    assert shaped[0][LINKS_KEY][0].href == "http://test/entries/e_1"
    # The factory sees the full record, not the shaped one
    assert seen == records

def test_shape_collection_without_factory_has_no_links(service):
    shaped = service.shape_collection_data(SampleDto, [SampleDto(id="e_1", name="a", value=1)], None)

    assert shaped == [{"id": "e_1", "name": "a", "value": 1}]

def test_accessors_are_cached_per_type(service):
    first = service.get_accessors(SampleDto)
    second = service.get_accessors(SampleDto)

    assert first is second
    assert LINKS_KEY not in first
