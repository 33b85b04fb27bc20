"""Plain-text rendering of engine results for the LangChain tool layer."""
from typing import Any, Dict

from bson import json_util

from .models import AnalysisReport, SchemaDiff, SchemaSnapshot

EXAMPLE_MAX_CHARS = 50


def format_example(value: Any) -> str:
    if isinstance(value, str):
        text = value
    else:
        text = json_util.dumps(value)
    if len(text) > EXAMPLE_MAX_CHARS:
        text = text[:EXAMPLE_MAX_CHARS - 3] + "…"
    return text


def format_schema(snapshot: SchemaSnapshot) -> str:
    lines = [f"Schema for '{snapshot.collection_name}' (sampled {snapshot.sample_size} documents):"]
    for path, stat in snapshot.fields.items():
        types = " | ".join(tag.value for tag in stat.sorted_types)
        line = f"- {path}: {types} ({stat.coverage_percent}% coverage)"
        if stat.example_value is not None:
            line += f" (example: {format_example(stat.example_value)})"
        lines.append(line)
    return "\n".join(lines)


def format_diff(diff: SchemaDiff) -> str:
    summary = diff.summary
    lines = [
        f"Schema comparison: '{diff.source_name}' vs '{diff.target_name}'",
        f"Source fields: {summary.source_field_count}, target fields: {summary.target_field_count}, "
        f"common: {summary.common_field_count}, type mismatches: {summary.mismatch_count}",
    ]
    if diff.source_only_fields:
        lines.append(f"Only in '{diff.source_name}': {', '.join(diff.source_only_fields)}")
    if diff.target_only_fields:
        lines.append(f"Only in '{diff.target_name}': {', '.join(diff.target_only_fields)}")
    for mismatch in diff.type_mismatches:
        source_types = " | ".join(tag.value for tag in mismatch.source_types)
        target_types = " | ".join(tag.value for tag in mismatch.target_types)
        lines.append(f"- {mismatch.field}: {source_types} -> {target_types}")
    if not (diff.source_only_fields or diff.target_only_fields or diff.type_mismatches):
        lines.append("Schemas are identical.")
    return "\n".join(lines)


def format_validator(validator: Dict[str, Any]) -> str:
    return json_util.dumps(validator, indent=2)


def format_analysis(report: AnalysisReport) -> str:
    lines = [f"Query pattern analysis for '{report.collection_name}' ({report.query_sample_count} queries observed):"]

    lines.append("Unused indexes:")
    if report.unused_indexes:
        lines.extend(f"- {name}" for name in report.unused_indexes)
    else:
        lines.append("- none")

    lines.append("Index recommendations:")
    if not report.recommendations:
        lines.append("- none")
    for rec in report.recommendations:
        keys = ", ".join(f"{field}: 1" for field in rec.fields)
        if rec.rationale == "observed":
            lines.append(
                f"- {{{keys}}} for filter {rec.source_filter} "
                f"(seen {rec.occurrences}x, avg {rec.observed_millis}ms, {rec.scan_type or 'unknown scan'})"
            )
        else:
            lines.append(f"- {{{keys}}} (pattern-based, no timing evidence)")

    lines.append("Schema risks:")
    if not report.schema_risks:
        lines.append("- none")
    lines.extend(f"- {risk.field} [{risk.kind}]: {risk.detail}" for risk in report.schema_risks)
    return "\n".join(lines)


def format_validation_rules(collection_name: str, rules: Dict[str, Any]) -> str:
    if not rules.get("has_validation"):
        return f"Collection '{collection_name}' has no validation rules."
    return (
        f"Validation rules for '{collection_name}' "
        f"(level: {rules['validation_level']}, action: {rules['validation_action']}):\n"
        f"{json_util.dumps(rules['validator'], indent=2)}"
    )
