"""End-to-end checks of the documented inference, comparison, validator and analysis scenarios."""

from mongodb_lens import (
    IndexDescriptor, IndexUsage, TypeTag, ValidatorStrictness, analyze_query_patterns, compare_schemas,
    generate_validator, infer_schema,
)

from conftest import make_snapshot, make_stat


def test_heterogeneous_age_field(people_documents):
    snapshot = infer_schema("people", people_documents)
    assert snapshot.fields["age"].observed_types == {TypeTag.NUMBER, TypeTag.STRING}
    assert snapshot.fields["age"].occurrence_count == 3
    assert snapshot.fields["age"].coverage_percent == 75
    assert snapshot.fields["name"].observed_types == {TypeTag.STRING}
    assert snapshot.fields["name"].coverage_percent == 100


def test_added_email_field():
    a = make_snapshot("a", [make_stat("name", [TypeTag.STRING], 10), make_stat("age", [TypeTag.NUMBER], 10)])
    b = make_snapshot("b", [
        make_stat("name", [TypeTag.STRING], 10),
        make_stat("age", [TypeTag.NUMBER], 10),
        make_stat("email", [TypeTag.STRING], 10),
    ])
    diff = compare_schemas(a, b)
    assert diff.target_only_fields == ["email"]
    assert diff.common_fields == ["name", "age"]
    assert diff.source_only_fields == []


def test_strict_required_boundary():
    at = make_snapshot("c", [make_stat("sku", [TypeTag.STRING], 90)])
    below = make_snapshot("c", [make_stat("sku", [TypeTag.STRING], 89)])
    assert "sku" in generate_validator(at, ValidatorStrictness.STRICT)["$jsonSchema"]["required"]
    assert "sku" not in generate_validator(below, ValidatorStrictness.STRICT)["$jsonSchema"]["required"]


def test_unused_email_index():
    snapshot = make_snapshot("users", [make_stat("email", [TypeTag.STRING], 100)])
    indexes = [
        IndexDescriptor(name="_id_", key_pattern={"_id": 1}),
        IndexDescriptor(name="email_1", key_pattern={"email": 1}, usage=IndexUsage(ops=0)),
    ]
    report = analyze_query_patterns(snapshot, indexes)
    assert "email_1" in report.unused_indexes
    assert "_id_" not in report.unused_indexes


def test_large_array_risk():
    snapshot = make_snapshot("posts", [make_stat("comments", [TypeTag.ARRAY], 100, example=list(range(120)))])
    report = analyze_query_patterns(snapshot, [])
    assert any(risk.field == "comments" and risk.kind == "large_array" for risk in report.schema_risks)
