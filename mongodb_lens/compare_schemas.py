from .models import DiffSummary, SchemaDiff, SchemaSnapshot, TypeMismatch


def compare_schemas(source: SchemaSnapshot, target: SchemaSnapshot) -> SchemaDiff:
    """
    Compares the field paths and observed types of two schema snapshots.

    Field lists keep the discovery order of the snapshot they come from
    (source order for common fields). Types are compared as sets.
    """
    source_fields = source.fields
    target_fields = target.fields

    common = [path for path in source_fields if path in target_fields]
    source_only = [path for path in source_fields if path not in target_fields]
    target_only = [path for path in target_fields if path not in source_fields]

    mismatches = []
    for path in common:
        source_stat = source_fields[path]
        target_stat = target_fields[path]
        if source_stat.observed_types != target_stat.observed_types:
            mismatches.append(TypeMismatch(
                field=path,
                source_types=source_stat.sorted_types,
                target_types=target_stat.sorted_types,
            ))

    return SchemaDiff(
        source_name=source.collection_name,
        target_name=target.collection_name,
        common_fields=common,
        source_only_fields=source_only,
        target_only_fields=target_only,
        type_mismatches=mismatches,
        summary=DiffSummary(
            source_field_count=len(source_fields),
            target_field_count=len(target_fields),
            common_field_count=len(common),
            mismatch_count=len(mismatches),
        ),
    )
