"""Tests for text rendering of engine results."""

from bson import ObjectId

from mongodb_lens.analyze_query_patterns import analyze_query_patterns
from mongodb_lens.compare_schemas import compare_schemas
from mongodb_lens.formatting import (
    format_analysis, format_diff, format_example, format_schema, format_validation_rules, format_validator,
)
from mongodb_lens.generate_validator import generate_validator
from mongodb_lens.get_schema import infer_schema
from mongodb_lens.models import IndexDescriptor, IndexUsage, QuerySample


class TestFormatSchema:
    """Tests for format_schema."""

    def test_lists_fields_with_coverage(self, people_snapshot):
        text = format_schema(people_snapshot)
        assert text.splitlines() == [
            "Schema for 'people' (sampled 4 documents):",
            "- name: string (100% coverage) (example: A)",
            "- age: number | string (75% coverage) (example: 30)",
        ]

    def test_long_examples_are_truncated(self):
        example = format_example("x" * 80)
        assert len(example) == 48
        assert example.endswith("…")

    def test_object_ids_use_extended_json(self):
        oid = ObjectId("65a000000000000000000000")
        assert format_example(oid) == '{"$oid": "65a000000000000000000000"}'

    def test_null_only_field_has_no_example(self):
        text = format_schema(infer_schema("users", [{"deleted": None}]))
        assert text.splitlines()[1] == "- deleted: null (100% coverage)"


class TestFormatOthers:
    """Tests for diff, validator and analysis rendering."""

    def test_diff(self, people_snapshot):
        other = infer_schema("people_v2", [{"name": "A", "age": 3, "email": "a@example.com"}])
        text = format_diff(compare_schemas(people_snapshot, other))
        assert "Only in 'people_v2': email" in text
        assert "- age: number | string -> number" in text

    def test_identical_diff(self, people_snapshot):
        assert "Schemas are identical." in format_diff(compare_schemas(people_snapshot, people_snapshot))

    def test_validator(self, people_snapshot):
        text = format_validator(generate_validator(people_snapshot))
        assert text.startswith("{")
        assert '"required": [' in text

    def test_analysis(self, people_snapshot):
        indexes = [
            IndexDescriptor(name="_id_", key_pattern={"_id": 1}),
            IndexDescriptor(name="age_1", key_pattern={"age": 1}, usage=IndexUsage(ops=0)),
        ]
        samples = [QuerySample(filter_fields=["name"], filter_text='{"name": "A"}', execution_millis=400, scan_type="COLLSCAN")]
        text = format_analysis(analyze_query_patterns(people_snapshot, indexes, samples))
        assert "- age_1" in text
        assert '- {name: 1} for filter {"name": "A"} (seen 1x, avg 400.0ms, COLLSCAN)' in text
        assert "- age [mixed_types]" in text

    def test_validation_rules(self):
        assert format_validation_rules("users", {"has_validation": False}) == "Collection 'users' has no validation rules."
        text = format_validation_rules("users", {
            "has_validation": True,
            "validator": {"$jsonSchema": {"bsonType": "object"}},
            "validation_level": "strict",
            "validation_action": "warn",
        })
        assert text.startswith("Validation rules for 'users' (level: strict, action: warn):")
