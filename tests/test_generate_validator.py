"""Tests for $jsonSchema validator synthesis."""

import pytest

from mongodb_lens.generate_validator import bson_types_for, generate_validator
from mongodb_lens.models import TypeTag, ValidatorStrictness

from conftest import make_snapshot, make_stat


def _schema(validator):
    return validator["$jsonSchema"]


class TestRequiredThreshold:
    """A field is required at or above the strictness coverage threshold."""

    @pytest.mark.parametrize("strictness,threshold", [
        (ValidatorStrictness.STRICT, 90),
        (ValidatorStrictness.MODERATE, 75),
        (ValidatorStrictness.RELAXED, 60),
    ])
    def test_boundary_is_inclusive(self, strictness, threshold):
        at = make_snapshot("c", [make_stat("code", [TypeTag.STRING], threshold)])
        below = make_snapshot("c", [make_stat("code", [TypeTag.STRING], threshold - 1)])

        assert _schema(generate_validator(at, strictness))["required"] == ["code"]
        assert _schema(generate_validator(below, strictness))["required"] == []

    def test_nullable_field_is_never_required(self):
        snapshot = make_snapshot("c", [make_stat("email", [TypeTag.STRING, TypeTag.NULL], 100)])
        schema = _schema(generate_validator(snapshot, "relaxed"))
        assert schema["required"] == []
        assert set(schema["properties"]["email"]["bsonType"]) == {"string", "null"}


class TestValidatorShape:
    """Tests for the generated validator document."""

    def test_strict_forbids_additional_properties(self):
        snapshot = make_snapshot("c", [make_stat("name", [TypeTag.STRING], 100)])
        assert _schema(generate_validator(snapshot, ValidatorStrictness.STRICT))["additionalProperties"] is False
        assert "additionalProperties" not in _schema(generate_validator(snapshot, ValidatorStrictness.MODERATE))
        assert "additionalProperties" not in _schema(generate_validator(snapshot, ValidatorStrictness.RELAXED))

    def test_only_top_level_fields(self, order_documents):
        from mongodb_lens.get_schema import infer_schema
        snapshot = infer_schema("orders", order_documents)
        properties = _schema(generate_validator(snapshot))["properties"]
        assert list(properties) == ["orderId", "customer", "items", "tags", "status"]

    def test_type_mapping(self):
        snapshot = make_snapshot("c", [
            make_stat("_id", [TypeTag.OBJECT_REF], 100),
            make_stat("price", [TypeTag.NUMBER], 100),
            make_stat("active", [TypeTag.BOOLEAN], 100),
            make_stat("createdAt", [TypeTag.TIMESTAMP], 100),
            make_stat("meta", [TypeTag.OBJECT], 100),
            make_stat("tags", [TypeTag.ARRAY], 100),
        ])
        properties = _schema(generate_validator(snapshot))["properties"]
        assert properties["_id"]["bsonType"] == ["objectId"]
        assert set(properties["price"]["bsonType"]) == {"number", "double", "int"}
        assert properties["active"]["bsonType"] == ["bool"]
        assert properties["createdAt"]["bsonType"] == ["date"]
        assert properties["meta"]["bsonType"] == ["object"]
        assert properties["tags"]["bsonType"] == ["array"]

    def test_unmapped_types_are_omitted(self):
        snapshot = make_snapshot("c", [
            make_stat("blob", [TypeTag.UNDEFINED], 100),
            make_stat("mixed", [TypeTag.UNDEFINED, TypeTag.STRING], 100),
        ])
        properties = _schema(generate_validator(snapshot))["properties"]
        assert properties["blob"]["bsonType"] == []
        assert properties["mixed"]["bsonType"] == ["string"]

    def test_empty_and_sparse_snapshots(self):
        empty = make_snapshot("c", [], sample_size=0)
        assert _schema(generate_validator(empty, "strict")) == {
            "bsonType": "object",
            "required": [],
            "properties": {},
            "additionalProperties": False,
        }

        sparse = make_snapshot("c", [make_stat("rare", [TypeTag.NULL], 1)])
        schema = _schema(generate_validator(sparse, "strict"))
        assert schema["required"] == []
        assert schema["properties"]["rare"]["bsonType"] == ["null"]

    def test_unknown_strictness_raises(self):
        with pytest.raises(ValueError):
            generate_validator(make_snapshot("c", []), "lenient")

    def test_bson_types_deduplicated(self):
        assert bson_types_for([TypeTag.NUMBER, TypeTag.NUMBER]) == ["number", "double", "int"]
