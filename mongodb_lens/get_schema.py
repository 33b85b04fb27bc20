import logging
import math
from typing import Any, Dict, Optional, Sequence, Set

from .config import LensSettings
from .models import FieldStatistic, SchemaSnapshot, TypeTag
from .store import MongoStore
from .utils import DEFAULT_MAX_DEPTH, MISSING, collect_paths, get_type_tag, resolve_path

logger = logging.getLogger(__name__)


def coverage_percent(occurrence_count: int, sample_size: int) -> int:
    """Percentage of the sample containing a field, rounded half up."""
    if sample_size <= 0:
        return 0
    return int(math.floor(100 * occurrence_count / sample_size + 0.5))


class _FieldAccumulator:
    """Mutable per-path tally used while a snapshot is being built."""

    def __init__(self, path: str):
        self.path = path
        self.types: Set[TypeTag] = set()
        self.count = 0
        self.example: Any = None

    def add(self, value: Any) -> None:
        self.types.add(get_type_tag(value))
        self.count += 1
        if self.example is None and value is not None:
            self.example = value

    def freeze(self, sample_size: int) -> FieldStatistic:
        return FieldStatistic(
            path=self.path,
            observed_types=frozenset(self.types),
            occurrence_count=self.count,
            coverage_percent=coverage_percent(self.count, sample_size),
            example_value=self.example,
        )


def infer_schema(
    collection_name: str,
    documents: Sequence[Dict[str, Any]],
    max_depth: int = DEFAULT_MAX_DEPTH,
    array_sample_size: int = 1,
) -> SchemaSnapshot:
    """
    Builds a SchemaSnapshot from an already-buffered sample of documents.

    Two passes are made over the sample: the first collects the union of field
    paths across all documents, the second resolves every path in every
    document to tally observed types, occurrences and an example value.
    """
    documents = list(documents)

    paths: Dict[str, None] = {}
    for doc in documents:
        collect_paths(doc, paths, max_depth=max_depth, array_sample_size=array_sample_size)

    accumulators = {path: _FieldAccumulator(path) for path in paths}
    for doc in documents:
        for path, accumulator in accumulators.items():
            value = resolve_path(doc, path, array_sample_size=array_sample_size)
            if value is not MISSING:
                accumulator.add(value)

    sample_size = len(documents)
    logger.debug(f"Inferred {len(accumulators)} fields for '{collection_name}' from {sample_size} documents.")
    return SchemaSnapshot(
        collection_name=collection_name,
        sample_size=sample_size,
        fields={path: accumulator.freeze(sample_size) for path, accumulator in accumulators.items()},
    )


def generate_collection_schema(
    store: MongoStore,
    collection_name: str,
    sample_size: Optional[int] = None,
    settings: Optional[LensSettings] = None,
) -> SchemaSnapshot:
    """Samples a collection through the store and infers its schema.

    Raises CollectionNotFoundError before sampling when the collection does not
    exist, and EmptyCollectionError when the sample is empty.
    """
    settings = settings or LensSettings()
    sample_size = sample_size or settings.sample_size
    documents = store.sample(collection_name, sample_size)
    snapshot = infer_schema(
        collection_name,
        documents,
        max_depth=settings.max_depth,
        array_sample_size=settings.array_sample_size,
    )
    logger.info(f"Schema inference complete for '{collection_name}', identified {len(snapshot.fields)} fields.")
    return snapshot
