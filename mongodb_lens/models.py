from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, FrozenSet, List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator


# === Engine data model ===

class TypeTag(str, Enum):
    """Kind of a value observed at a field path."""
    NULL = "null"
    BOOLEAN = "boolean"
    NUMBER = "number"
    STRING = "string"
    ARRAY = "array"
    OBJECT = "object"
    OBJECT_REF = "objectRef"
    TIMESTAMP = "timestamp"
    UNDEFINED = "undefined"


class ValidatorStrictness(str, Enum):
    """How aggressively inferred structure becomes mandatory validation rules."""
    STRICT = "strict"
    MODERATE = "moderate"
    RELAXED = "relaxed"

    @property
    def required_coverage(self) -> int:
        """Minimum coverage percent (inclusive) for a field to be required."""
        return {"strict": 90, "moderate": 75, "relaxed": 60}[self.value]

    @property
    def forbids_additional_properties(self) -> bool:
        return self is ValidatorStrictness.STRICT


class _Frozen(BaseModel):
    model_config = ConfigDict(frozen=True)


class FieldStatistic(_Frozen):
    path: str
    observed_types: FrozenSet[TypeTag] = frozenset()
    occurrence_count: int = Field(0, ge=0)
    coverage_percent: int = Field(0, ge=0, le=100)
    example_value: Any = None

    @model_validator(mode="after")
    def _types_present_when_seen(self):
        if self.occurrence_count > 0 and not self.observed_types:
            raise ValueError(f"Field '{self.path}' was seen {self.occurrence_count} times but has no observed types.")
        return self

    @property
    def sorted_types(self) -> List[TypeTag]:
        return sorted(self.observed_types, key=lambda tag: tag.value)


class SchemaSnapshot(_Frozen):
    """Inferred field statistics for one collection at one point in time."""
    collection_name: str
    sample_size: int = Field(..., ge=0)
    fields: Dict[str, FieldStatistic] = Field(default_factory=dict)
    timestamp: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))

    @model_validator(mode="after")
    def _counts_within_sample(self):
        for path, stat in self.fields.items():
            if path != stat.path:
                raise ValueError(f"Field key '{path}' does not match statistic path '{stat.path}'.")
            if stat.occurrence_count > self.sample_size:
                raise ValueError(
                    f"Field '{path}' occurs {stat.occurrence_count} times in a sample of {self.sample_size}."
                )
        return self


class TypeMismatch(_Frozen):
    field: str
    source_types: List[TypeTag]
    target_types: List[TypeTag]


class DiffSummary(_Frozen):
    source_field_count: int
    target_field_count: int
    common_field_count: int
    mismatch_count: int


class SchemaDiff(_Frozen):
    source_name: str
    target_name: str
    common_fields: List[str] = Field(default_factory=list)
    source_only_fields: List[str] = Field(default_factory=list)
    target_only_fields: List[str] = Field(default_factory=list)
    type_mismatches: List[TypeMismatch] = Field(default_factory=list)
    summary: DiffSummary


class IndexUsage(_Frozen):
    ops: int = 0
    since: Optional[datetime] = None


class IndexDescriptor(_Frozen):
    name: str
    key_pattern: Dict[str, Any]
    unique: bool = False
    sparse: bool = False
    usage: Optional[IndexUsage] = None

    @property
    def fields(self) -> List[str]:
        return list(self.key_pattern.keys())

    @property
    def is_primary(self) -> bool:
        return self.name == "_id_"


class QuerySample(_Frozen):
    filter_fields: List[str] = Field(default_factory=list)
    filter_text: str = "{}"
    execution_millis: float = 0
    scan_type: Optional[str] = None
    timestamp: Optional[datetime] = None


class IndexRecommendation(_Frozen):
    fields: List[str]
    rationale: str = Field(..., description="'observed' when backed by profiled queries, 'heuristic' when pattern-based.")
    source_filter: Optional[str] = None
    observed_millis: Optional[float] = None
    occurrences: int = 0
    scan_type: Optional[str] = None

    @field_validator("rationale")
    @classmethod
    def _known_rationale(cls, value):
        if value not in ("observed", "heuristic"):
            raise ValueError(f"Unknown recommendation rationale '{value}'.")
        return value


class SchemaRisk(_Frozen):
    field: str
    kind: str
    detail: str


class AnalysisReport(_Frozen):
    collection_name: str
    unused_indexes: List[str] = Field(default_factory=list)
    recommendations: List[IndexRecommendation] = Field(default_factory=list)
    schema_risks: List[SchemaRisk] = Field(default_factory=list)
    query_sample_count: int = 0


# === Tool input models ===

class GetSchemaInput(BaseModel):
    collection_name: str = Field(..., min_length=1, description="Name of the collection to infer the schema for.")
    sample_size: int = Field(100, gt=0, description="Number of documents to sample for schema inference.")

class CompareSchemasInput(BaseModel):
    source_collection: str = Field(..., min_length=1, description="Collection whose schema is the baseline.")
    target_collection: str = Field(..., min_length=1, description="Collection compared against the baseline.")
    sample_size: int = Field(100, gt=0, description="Number of documents to sample from each collection.")

class GenerateValidatorInput(BaseModel):
    collection_name: str = Field(..., min_length=1, description="Collection to generate a $jsonSchema validator for.")
    strictness: ValidatorStrictness = Field(ValidatorStrictness.MODERATE, description="One of 'strict' (90% coverage required, no extra fields), 'moderate' (75%) or 'relaxed' (60%).")
    sample_size: int = Field(100, gt=0, description="Number of documents to sample for schema inference.")

class AnalyzeQueryPatternsInput(BaseModel):
    collection_name: str = Field(..., min_length=1, description="Collection to analyze.")
    duration_seconds: int = Field(10, ge=0, description="Seconds to observe live queries with the profiler. 0 skips observation and uses field-name heuristics.")
    sample_size: int = Field(100, gt=0, description="Number of documents to sample for schema inference.")

class GetValidationRulesInput(BaseModel):
    collection_name: str = Field(..., min_length=1, description="Collection whose current validation rules are returned.")
