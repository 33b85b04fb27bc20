import logging
import os
from functools import lru_cache
from typing import Any, Dict, List, Optional, Union

from pymongo import MongoClient
from pymongo.database import Database
from pymongo.errors import ConnectionFailure, OperationFailure
from pymongo.errors import ConfigurationError as PyMongoConfigurationError
from langchain_core.tools import StructuredTool
from pydantic import BaseModel
from pydantic import ValidationError as PydanticValidationError

from .analyze_query_patterns import analyze_query_patterns
from .compare_schemas import compare_schemas
from .config import LensSettings
from .exceptions import ConfigurationError, SchemaError, ValidationError
from .formatting import format_analysis, format_diff, format_schema, format_validation_rules, format_validator
from .generate_validator import generate_validator
from .get_schema import generate_collection_schema
from .models import (
    AnalysisReport, AnalyzeQueryPatternsInput, CompareSchemasInput, GenerateValidatorInput, GetSchemaInput,
    GetValidationRulesInput, IndexDescriptor, SchemaDiff, SchemaSnapshot, ValidatorStrictness,
)
from .store import MongoStore

logger = logging.getLogger(__name__)


class MongoToolkit:
    """
    Schema inference, comparison, validator generation and query-pattern
    analysis for one MongoDB database, exposed both as Python methods and as
    LangChain tools.

    Instantiate this class with your MongoDB connection URI and database name.
    Then, use the get_tools() method to retrieve configured LangChain tools.
    """
    _client: Optional[MongoClient] = None
    _db: Optional[Database] = None

    def __init__(self, mongo_uri: str, db_name: str, settings: Optional[LensSettings] = None):
        """
        Initializes the toolkit with connection details.

        Args:
            mongo_uri (str): The MongoDB connection URI (e.g., "mongodb://...", "mongodb+srv://...").
                             Should be loaded securely (e.g., from environment variables).
            db_name (str): The name of the target database.
            settings (LensSettings, optional): Analysis tunables. Defaults to LensSettings().
        """
        if not mongo_uri:
            raise ConfigurationError("mongo_uri cannot be empty.")
        if not db_name:
            raise ConfigurationError("db_name cannot be empty.")

        self.mongo_uri = mongo_uri
        self.db_name = db_name
        self.settings = settings or LensSettings()
        logger.info(f"MongoToolkit initialized for database '{self.db_name}'. Connection will be established on first use.")

    @classmethod
    def from_env(cls, environ=None) -> "MongoToolkit":
        """Builds a toolkit from MONGODB_URI, MONGODB_DATABASE and MONGODB_LENS_* variables."""
        environ = os.environ if environ is None else environ
        return cls(
            mongo_uri=environ.get("MONGODB_URI", ""),
            db_name=environ.get("MONGODB_DATABASE", ""),
            settings=LensSettings.from_env(environ),
        )

    def _get_db(self) -> Database:
        """Establishes connection (if needed) and returns the Database object."""
        if self._client is None or self._db is None:
            logger.info(f"Establishing new MongoDB connection to database '{self.db_name}'...")
            try:
                self._client = MongoClient(self.mongo_uri, serverSelectionTimeoutMS=5000)
                self._client.admin.command('ping')
                self._db = self._client[self.db_name]
                logger.info("MongoDB connection successful.")
            except PyMongoConfigurationError as e:
                self._client = None
                self._db = None
                raise ConfigurationError(f"Invalid MongoDB URI configuration: {e}") from e
            except ConnectionFailure as e:
                self._client = None
                self._db = None
                raise ConfigurationError(f"Could not connect to MongoDB: {e}") from e
        return self._db

    def _get_store(self) -> MongoStore:
        return MongoStore(self._get_db())

    def close(self):
        """Closes the MongoDB client connection, if open."""
        if self._client:
            logger.info("Closing MongoDB connection.")
            self._client.close()
            self._client = None
            self._db = None

    # === Engine operations ===

    def get_collection_schema(self, collection_name: str, sample_size: Optional[int] = None) -> SchemaSnapshot:
        """Samples a collection and returns its inferred schema snapshot."""
        store = self._get_store()
        try:
            return generate_collection_schema(store, collection_name, sample_size, settings=self.settings)
        except OperationFailure as e:
            raise SchemaError(f"MongoDB operation failed during schema generation: {e}") from e

    def compare_schemas(self, source_collection: str, target_collection: str, sample_size: Optional[int] = None) -> SchemaDiff:
        source = self.get_collection_schema(source_collection, sample_size)
        target = self.get_collection_schema(target_collection, sample_size)
        return compare_schemas(source, target)

    def generate_validator(
        self,
        collection_name: str,
        strictness: Union[ValidatorStrictness, str] = ValidatorStrictness.MODERATE,
        sample_size: Optional[int] = None,
    ) -> Dict[str, Any]:
        try:
            strictness = ValidatorStrictness(strictness)
        except ValueError as e:
            raise ValidationError(f"Unknown validator strictness '{strictness}'.") from e
        snapshot = self.get_collection_schema(collection_name, sample_size)
        return generate_validator(snapshot, strictness)

    def list_indexes(self, collection_name: str) -> List[IndexDescriptor]:
        return self._get_store().list_indexes(collection_name)

    def analyze_query_patterns(
        self,
        collection_name: str,
        duration_seconds: int = 0,
        sample_size: Optional[int] = None,
    ) -> AnalysisReport:
        """
        Analyzes indexes, schema and (optionally) live queries for a collection.

        With duration_seconds > 0 the profiler is raised for that many seconds
        and the queries it records drive the recommendations; otherwise
        recommendations come from field-name heuristics.
        """
        store = self._get_store()
        snapshot = self.get_collection_schema(collection_name, sample_size)
        indexes = store.list_indexes(collection_name)

        query_samples = []
        if duration_seconds:
            query_samples = store.observe_queries(
                collection_name, duration_seconds, max_seconds=self.settings.max_observation_seconds,
            )

        return analyze_query_patterns(
            snapshot,
            indexes,
            query_samples,
            slow_query_ms=self.settings.slow_query_ms,
            max_recommendations=self.settings.max_recommendations,
            large_array_threshold=self.settings.large_array_threshold,
        )

    def get_validation_rules(self, collection_name: str) -> Dict[str, Any]:
        return self._get_store().get_validation_rules(collection_name)

    # === LangChain tool wrappers ===

    @staticmethod
    def _validate_args(model: type, tool_name: str, kwargs: Dict[str, Any]) -> BaseModel:
        try:
            return model(**kwargs)
        except PydanticValidationError as e:
            raise ValidationError(f"Invalid input arguments for {tool_name}: {e}") from e

    def _get_schema_wrapper(self, **kwargs) -> str:
        args = self._validate_args(GetSchemaInput, "get_mongodb_collection_schema", kwargs)
        return format_schema(self.get_collection_schema(args.collection_name, args.sample_size))

    def _compare_schemas_wrapper(self, **kwargs) -> str:
        args = self._validate_args(CompareSchemasInput, "compare_mongodb_schemas", kwargs)
        return format_diff(self.compare_schemas(args.source_collection, args.target_collection, args.sample_size))

    def _generate_validator_wrapper(self, **kwargs) -> str:
        args = self._validate_args(GenerateValidatorInput, "generate_mongodb_validator", kwargs)
        return format_validator(self.generate_validator(args.collection_name, args.strictness, args.sample_size))

    def _analyze_query_patterns_wrapper(self, **kwargs) -> str:
        args = self._validate_args(AnalyzeQueryPatternsInput, "analyze_mongodb_query_patterns", kwargs)
        return format_analysis(self.analyze_query_patterns(args.collection_name, args.duration_seconds, args.sample_size))

    def _get_validation_rules_wrapper(self, **kwargs) -> str:
        args = self._validate_args(GetValidationRulesInput, "get_mongodb_validation_rules", kwargs)
        return format_validation_rules(args.collection_name, self.get_validation_rules(args.collection_name))

    @lru_cache(maxsize=1)
    def get_tools(self) -> List[StructuredTool]:
        """
        Returns a list of configured LangChain tools bound to this toolkit instance.
        """
        logger.info("Generating LangChain tools for MongoToolkit...")

        schema_tool = StructuredTool.from_function(
            name="get_mongodb_collection_schema",
            description=(
                f"Use this tool to infer the schema of a collection in the '{self.db_name}' MongoDB database. "
                "Returns every field path with its observed types, the percentage of sampled documents containing it, "
                "and an example value. Nested fields use dot notation; 'items[].sku' is a field inside an array of objects."
            ),
            func=self._get_schema_wrapper,
            args_schema=GetSchemaInput,
        )

        compare_tool = StructuredTool.from_function(
            name="compare_mongodb_schemas",
            description=(
                "Use this tool to compare the inferred schemas of two collections. "
                "Lists fields found only in either collection and fields whose types differ."
            ),
            func=self._compare_schemas_wrapper,
            args_schema=CompareSchemasInput,
        )

        validator_tool = StructuredTool.from_function(
            name="generate_mongodb_validator",
            description=(
                "Use this tool to generate a $jsonSchema validator from a collection's inferred schema. "
                "Only top-level fields are included. Returns the validator as Extended JSON; it is not applied."
            ),
            func=self._generate_validator_wrapper,
            args_schema=GenerateValidatorInput,
        )

        analyze_tool = StructuredTool.from_function(
            name="analyze_mongodb_query_patterns",
            description=(
                "Use this tool to find unused indexes, recommend new indexes and flag schema risks for a collection. "
                f"Set duration_seconds (max {self.settings.max_observation_seconds}) to observe live queries with the profiler; "
                "use 0 to rely on field-name heuristics only."
            ),
            func=self._analyze_query_patterns_wrapper,
            args_schema=AnalyzeQueryPatternsInput,
        )

        rules_tool = StructuredTool.from_function(
            name="get_mongodb_validation_rules",
            description="Use this tool to show the validation rules currently configured on a collection.",
            func=self._get_validation_rules_wrapper,
            args_schema=GetValidationRulesInput,
        )

        return [schema_tool, compare_tool, validator_tool, analyze_tool, rules_tool]
