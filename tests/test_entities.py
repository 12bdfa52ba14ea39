"""Tests for domain entities and parameter value variants."""

import re

import pytest

from specgen.errors import ParameterValidationError
from specgen.store.entities import (
    GeneratedContent,
    ListValues,
    Parameter,
    ParameterConfig,
    ToggleValues,
    ValueOption,
    generate_id,
    now_iso,
    parse_parameter_values,
)


class TestHelpers:
    """Tests for id and timestamp helpers."""

    def test_generate_id(self):
        assert generate_id("Science Fiction!") == "science-fiction"
        assert generate_id("  Tech -- Level  ") == "tech-level"

    def test_now_iso_fixed_width(self):
        assert re.fullmatch(r"\d{4}-\d{2}-\d{2}T\d{2}:\d{2}:\d{2}\.\d{6}Z", now_iso())


class TestParseParameterValues:
    """Tests for resolving raw values into variants."""

    def test_none(self):
        assert parse_parameter_values(None) is None

    def test_list_of_objects_and_strings(self):
        values = parse_parameter_values([{"label": "Low", "id": 1}, "High"])
        assert values == ListValues(items=[ValueOption(label="Low", id="1"), ValueOption(label="High")])

    def test_toggle(self):
        assert parse_parameter_values({"on": "Yes", "off": "No"}) == ToggleValues(on="Yes", off="No")

    def test_unrecognized_shape(self):
        with pytest.raises(ParameterValidationError):
            parse_parameter_values({"yes": "no"})
        with pytest.raises(ParameterValidationError):
            parse_parameter_values([42])

    def test_to_json(self):
        values = parse_parameter_values([{"label": "Low"}, {"label": "High", "id": "h"}])
        assert values.to_json() == [{"label": "Low"}, {"label": "High", "id": "h"}]


class TestParameterConfig:
    """Tests for numeric bounds."""

    def test_from_dict(self):
        config = ParameterConfig.from_dict({"min": "1", "max": 5})
        assert config.min == 1.0
        assert config.max == 5.0
        assert config.to_dict() == {"min": 1.0, "max": 5.0}

    def test_non_numeric(self):
        with pytest.raises(ParameterValidationError):
            ParameterConfig.from_dict({"min": "low"})

    def test_is_empty(self):
        assert ParameterConfig().is_empty()


class TestParameterCreate:
    """Tests for Parameter.create validation."""

    def test_derived_id(self):
        parameter = Parameter.create(name="Tech Level", type="text", category_id="science-fiction")
        assert parameter.id == "science-fiction-tech-level"

    def test_unknown_type(self):
        with pytest.raises(ParameterValidationError):
            Parameter.create(name="X", type="slider", category_id="c")

    def test_boolean_rejects_list(self):
        with pytest.raises(ParameterValidationError):
            Parameter.create(name="X", type="boolean", category_id="c", parameter_values=["a"])

    def test_to_dict(self):
        parameter = Parameter.create(
            name="Danger",
            type="range",
            category_id="c",
            parameter_config={"min": 0, "max": 10},
        )
        data = parameter.to_dict()
        assert data["type"] == "range"
        assert data["parameter_values"] is None
        assert data["parameter_config"] == {"min": 0.0, "max": 10.0}


class TestGeneratedContent:
    """Tests for GeneratedContent helpers."""

    def test_image_urls_only_with_blob(self):
        content = GeneratedContent.create(title="t")
        assert content.has_image is False
        assert content.image_urls()["image_url"] is None

        content.image_size_bytes = 10
        assert content.image_urls()["thumbnail_url"] == f"/api/images/{content.id}/thumbnail"
