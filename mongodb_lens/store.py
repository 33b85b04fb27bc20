import logging
import time
from contextlib import contextmanager
from datetime import datetime, timezone
from typing import Any, Dict, Iterator, List

from bson import json_util
from pymongo.database import Database
from pymongo.errors import OperationFailure, PyMongoError

from .exceptions import AnalysisError, CollectionNotFoundError, EmptyCollectionError, SchemaError, ValidationError
from .models import IndexDescriptor, IndexUsage, QuerySample
from .utils import extract_filter_fields

logger = logging.getLogger(__name__)

# Profiler level that records every operation
PROFILE_ALL = 2


class MongoStore:
    """
    Read access to one MongoDB database for the analysis engine.

    Every call names its collection explicitly; the store keeps no notion of a
    "current" collection, so one instance can serve concurrent analyses of
    different collections.
    """

    def __init__(self, database: Database):
        self.database = database

    @property
    def name(self) -> str:
        return self.database.name

    def collection_exists(self, collection_name: str) -> bool:
        return collection_name in self.database.list_collection_names(filter={"name": collection_name})

    def _require_collection(self, collection_name: str) -> None:
        if not self.collection_exists(collection_name):
            raise CollectionNotFoundError(f"Collection '{collection_name}' not found in database '{self.name}'.")

    def sample(self, collection_name: str, sample_size: int) -> List[Dict[str, Any]]:
        """Draws up to sample_size documents with server-side random selection, fully buffered."""
        self._require_collection(collection_name)
        logger.info(f"Sampling up to {sample_size} documents from '{collection_name}'...")
        try:
            documents = list(self.database[collection_name].aggregate([{"$sample": {"size": sample_size}}]))
        except OperationFailure as e:
            raise SchemaError(f"Operation failed while sampling {collection_name}: {e}") from e

        if not documents:
            raise EmptyCollectionError(f"Collection '{collection_name}' is empty.")
        logger.info(f"Retrieved {len(documents)} sample documents from '{collection_name}'.")
        return documents

    def list_indexes(self, collection_name: str) -> List[IndexDescriptor]:
        """Lists the collection's indexes, joined with $indexStats usage where the server provides it."""
        self._require_collection(collection_name)
        collection = self.database[collection_name]
        try:
            raw_indexes = list(collection.list_indexes())
        except OperationFailure as e:
            raise AnalysisError(f"Could not list indexes for '{collection_name}': {e}") from e

        usage_by_name = self._index_usage(collection_name)
        descriptors = []
        for index in raw_indexes:
            name = index["name"]
            descriptors.append(IndexDescriptor(
                name=name,
                key_pattern=dict(index["key"]),
                unique=bool(index.get("unique", False)),
                sparse=bool(index.get("sparse", False)),
                usage=usage_by_name.get(name),
            ))
        logger.info(f"Retrieved {len(descriptors)} indexes for collection '{collection_name}'.")
        return descriptors

    def _index_usage(self, collection_name: str) -> Dict[str, IndexUsage]:
        try:
            stats = list(self.database[collection_name].aggregate([{"$indexStats": {}}]))
        except OperationFailure as e:
            logger.warning(f"Index usage statistics unavailable for '{collection_name}': {e}")
            return {}

        usage = {}
        for entry in stats:
            accesses = entry.get("accesses") or {}
            usage[entry["name"]] = IndexUsage(ops=int(accesses.get("ops", 0)), since=accesses.get("since"))
        return usage

    @contextmanager
    def profiling(self, level: int = PROFILE_ALL) -> Iterator[Dict[str, Any]]:
        """
        Raises the database profiler to ``level`` for the duration of the block.

        The previous level and slowms are restored on every exit path, including
        errors and KeyboardInterrupt. Yields the previous profiler settings.
        """
        try:
            previous = self.database.command({"profile": -1})
        except OperationFailure as e:
            raise AnalysisError(f"Could not read profiler settings for '{self.name}': {e}") from e

        previous_level = previous.get("was", 0)
        previous_slowms = previous.get("slowms")
        try:
            self.database.command({"profile": level})
        except OperationFailure as e:
            raise AnalysisError(f"Could not enable profiling on '{self.name}': {e}") from e
        logger.info(f"Profiler level on '{self.name}' raised from {previous_level} to {level}.")

        try:
            yield previous
        except BaseException:
            self._restore_profiler(previous_level, previous_slowms, propagate=False)
            raise
        self._restore_profiler(previous_level, previous_slowms, propagate=True)

    def _restore_profiler(self, level: int, slowms: Any, propagate: bool) -> None:
        """Puts the profiler back to ``level``; a failure only raises when no other error is in flight."""
        restore = {"profile": level}
        if slowms is not None:
            restore["slowms"] = slowms
        try:
            self.database.command(restore)
            logger.info(f"Profiler level on '{self.name}' restored to {level}.")
        except PyMongoError as e:
            logger.error(f"Failed to restore profiler level {level} on '{self.name}': {e}")
            if propagate:
                raise AnalysisError(f"Could not restore profiler level {level} on '{self.name}': {e}") from e

    def observe_queries(self, collection_name: str, duration_seconds: float, max_seconds: float = 60) -> List[QuerySample]:
        """
        Profiles the collection for duration_seconds and returns the find operations seen.

        When the profiler cannot be read or raised (mongos, shared tiers, missing
        dbAdmin role) no queries are observed and an empty list is returned.
        """
        if duration_seconds <= 0 or duration_seconds > max_seconds:
            raise ValidationError(
                f"Observation window must be greater than 0 and at most {max_seconds} seconds, got {duration_seconds}."
            )
        self._require_collection(collection_name)

        started = datetime.now(timezone.utc)
        try:
            with self.profiling():
                logger.info(f"Observing queries on '{collection_name}' for {duration_seconds} seconds...")
                time.sleep(duration_seconds)
        except AnalysisError as e:
            logger.warning(f"Query observation unavailable for '{collection_name}': {e}")
            return []

        namespace = f"{self.name}.{collection_name}"
        try:
            entries = list(self.database["system.profile"].find(
                {"ns": namespace, "op": "query", "ts": {"$gte": started}}
            ))
        except OperationFailure as e:
            logger.warning(f"Could not read profiler output for '{namespace}': {e}")
            return []

        samples = [query_sample_from_profile(entry) for entry in entries]
        logger.info(f"Observed {len(samples)} queries on '{collection_name}'.")
        return samples

    def get_validation_rules(self, collection_name: str) -> Dict[str, Any]:
        """Returns the collection's current validator, validationLevel and validationAction."""
        infos = list(self.database.list_collections(filter={"name": collection_name}))
        if not infos:
            raise CollectionNotFoundError(f"Collection '{collection_name}' not found in database '{self.name}'.")
        options = infos[0].get("options") or {}
        return {
            "has_validation": bool(options.get("validator")),
            "validator": options.get("validator") or {},
            "validation_level": options.get("validationLevel", "strict"),
            "validation_action": options.get("validationAction", "error"),
        }


def query_sample_from_profile(entry: Dict[str, Any]) -> QuerySample:
    """Converts a system.profile document into a QuerySample."""
    command = entry.get("command") or {}
    query_filter = command.get("filter")
    if query_filter is None:
        # Profiler output from servers before 3.2
        query_filter = entry.get("query") or {}
    return QuerySample(
        filter_fields=extract_filter_fields(query_filter),
        filter_text=json_util.dumps(query_filter, sort_keys=True),
        execution_millis=entry.get("millis", 0),
        scan_type=entry.get("planSummary"),
        timestamp=entry.get("ts"),
    )
