import logging
from typing import Dict, List, Optional, Sequence, Tuple

from .models import (
    AnalysisReport, IndexDescriptor, IndexRecommendation, QuerySample, SchemaRisk, SchemaSnapshot, TypeTag,
)
from .utils import get_type_tag, strip_array_markers

logger = logging.getLogger(__name__)

SLOW_QUERY_MS = 100
MAX_RECOMMENDATIONS = 5
LARGE_ARRAY_THRESHOLD = 50

# Field-name conventions that usually end up in query filters
INDEX_CANDIDATE_SUBSTRINGS = ('id', 'key', 'date', 'time')
INDEX_CANDIDATE_NAMES = {'email', 'name', 'status'}


def find_unused_indexes(indexes: Sequence[IndexDescriptor]) -> List[str]:
    """Names of non-primary indexes with no recorded accesses (or no usage statistics)."""
    return [
        index.name for index in indexes
        if not index.is_primary and (index.usage is None or not index.usage.ops)
    ]


def _is_covered(filter_fields: Sequence[str], indexes: Sequence[IndexDescriptor]) -> bool:
    wanted = set(filter_fields)
    return any(wanted <= set(index.fields) for index in indexes)


def recommend_from_queries(
    query_samples: Sequence[QuerySample],
    indexes: Sequence[IndexDescriptor],
    slow_query_ms: float = SLOW_QUERY_MS,
    max_recommendations: int = MAX_RECOMMENDATIONS,
) -> List[IndexRecommendation]:
    """
    Recommends indexes for slow observed queries no existing index covers.

    Samples constraining the same set of fields are merged into one pattern,
    whatever the queried values, carrying the first filter seen, the number of
    occurrences and the mean execution time; the slowest patterns are kept.
    """
    patterns: Dict[Tuple[str, ...], Dict] = {}
    for sample in query_samples:
        if not sample.filter_fields:
            continue
        if sample.execution_millis <= slow_query_ms:
            continue
        if _is_covered(sample.filter_fields, indexes):
            continue

        pattern = patterns.setdefault(tuple(sorted(set(sample.filter_fields))), {
            "fields": list(sample.filter_fields),
            "filter_text": sample.filter_text,
            "count": 0,
            "total_millis": 0.0,
            "scan_type": sample.scan_type,
        })
        pattern["count"] += 1
        pattern["total_millis"] += sample.execution_millis

    recommendations = [
        IndexRecommendation(
            fields=pattern["fields"],
            rationale="observed",
            source_filter=pattern["filter_text"],
            observed_millis=round(pattern["total_millis"] / pattern["count"], 2),
            occurrences=pattern["count"],
            scan_type=pattern["scan_type"],
        )
        for pattern in patterns.values()
    ]
    recommendations.sort(key=lambda rec: rec.observed_millis, reverse=True)
    return recommendations[:max_recommendations]


def recommend_from_field_names(
    snapshot: SchemaSnapshot,
    indexes: Sequence[IndexDescriptor],
) -> List[IndexRecommendation]:
    """Pattern-based recommendations for fields whose names suggest they are queried."""
    leading_keys = {index.fields[0] for index in indexes if index.fields}
    recommendations = []
    for path in snapshot.fields:
        field = strip_array_markers(path)
        if field in leading_keys:
            continue
        name = field.rsplit(".", 1)[-1].lower()
        if name in INDEX_CANDIDATE_NAMES or any(part in name for part in INDEX_CANDIDATE_SUBSTRINGS):
            recommendations.append(IndexRecommendation(fields=[field], rationale="heuristic"))
    return recommendations


def find_schema_risks(
    snapshot: SchemaSnapshot,
    large_array_threshold: int = LARGE_ARRAY_THRESHOLD,
) -> List[SchemaRisk]:
    risks = []
    for path, stat in snapshot.fields.items():
        if TypeTag.ARRAY in stat.observed_types and get_type_tag(stat.example_value) is TypeTag.ARRAY:
            length = len(stat.example_value)
            if length > large_array_threshold:
                risks.append(SchemaRisk(
                    field=path,
                    kind="large_array",
                    detail=f"Example array has {length} elements (threshold {large_array_threshold}); "
                           f"large arrays grow documents and make multikey indexes expensive.",
                ))

        non_null = [tag.value for tag in stat.sorted_types if tag is not TypeTag.NULL]
        if len(non_null) > 1:
            risks.append(SchemaRisk(
                field=path,
                kind="mixed_types",
                detail=f"Field holds {', '.join(non_null)} values across documents.",
            ))
    return risks


def analyze_query_patterns(
    snapshot: SchemaSnapshot,
    indexes: Sequence[IndexDescriptor],
    query_samples: Optional[Sequence[QuerySample]] = None,
    slow_query_ms: float = SLOW_QUERY_MS,
    max_recommendations: int = MAX_RECOMMENDATIONS,
    large_array_threshold: int = LARGE_ARRAY_THRESHOLD,
) -> AnalysisReport:
    """
    Combines a schema snapshot, index metadata and optional query samples into
    unused-index findings, index recommendations and schema risks.

    Without query samples the recommendations fall back to field-name heuristics.
    """
    indexes = list(indexes or [])
    query_samples = list(query_samples or [])

    if query_samples:
        recommendations = recommend_from_queries(
            query_samples, indexes, slow_query_ms=slow_query_ms, max_recommendations=max_recommendations,
        )
    else:
        logger.debug(f"No query samples for '{snapshot.collection_name}', using field-name heuristics.")
        recommendations = recommend_from_field_names(snapshot, indexes)

    return AnalysisReport(
        collection_name=snapshot.collection_name,
        unused_indexes=find_unused_indexes(indexes),
        recommendations=recommendations,
        schema_risks=find_schema_risks(snapshot, large_array_threshold=large_array_threshold),
        query_sample_count=len(query_samples),
    )
