from .toolkit import MongoToolkit
from .config import LensSettings
from .store import MongoStore
from .get_schema import infer_schema, generate_collection_schema
from .compare_schemas import compare_schemas
from .generate_validator import generate_validator
from .analyze_query_patterns import analyze_query_patterns
from .models import (
    TypeTag, ValidatorStrictness, FieldStatistic, SchemaSnapshot, SchemaDiff, TypeMismatch,
    IndexDescriptor, IndexUsage, IndexRecommendation, QuerySample, SchemaRisk, AnalysisReport,
)
from .exceptions import (
    MongoLensError, ConfigurationError, SchemaError, CollectionNotFoundError, EmptyCollectionError,
    ValidationError, AnalysisError,
)

__version__ = "0.1.0"

__all__ = [
    "MongoToolkit",
    "LensSettings",
    "MongoStore",
    "infer_schema",
    "generate_collection_schema",
    "compare_schemas",
    "generate_validator",
    "analyze_query_patterns",
    "TypeTag",
    "ValidatorStrictness",
    "FieldStatistic",
    "SchemaSnapshot",
    "SchemaDiff",
    "TypeMismatch",
    "IndexDescriptor",
    "IndexUsage",
    "IndexRecommendation",
    "QuerySample",
    "SchemaRisk",
    "AnalysisReport",
    "MongoLensError",
    "ConfigurationError",
    "SchemaError",
    "CollectionNotFoundError",
    "EmptyCollectionError",
    "ValidationError",
    "AnalysisError",
]
