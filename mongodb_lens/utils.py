import logging
import re
from collections.abc import Mapping, Sequence
from datetime import datetime
from typing import Any, Dict, List, Optional

from bson import Binary, Code, DatetimeMS, DBRef, Decimal128, MaxKey, MinKey, ObjectId, Regex, Timestamp

from .models import TypeTag

logger = logging.getLogger(__name__)

# Suffix marking a path segment that steps into the elements of an array of objects
ARRAY_MARKER = "[]"

DEFAULT_MAX_DEPTH = 20

# Logical operators whose operand is an array of query documents
LOGICAL_QUERY_OPERATORS = {'$and', '$or', '$nor'}

# BSON values with no counterpart in the document model
OPAQUE_TYPES = (MinKey, MaxKey, Binary, bytes, bytearray, Code, Regex, re.Pattern)


class _Missing:
    """Marker for a path that does not resolve in a document."""
    _instance = None

    def __new__(cls):
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __repr__(self):
        return "MISSING"

    def __bool__(self):
        return False


MISSING = _Missing()


# === Type discrimination ===

def get_type_tag(value: Any) -> TypeTag:
    """Classifies a decoded BSON value.

    The order of checks matters: ``Code`` is a ``str``, ``Binary`` is ``bytes``
    and ``DBRef`` is structurally compound, so the opaque and reference kinds
    are resolved before the primitive ones.
    """
    if value is None: return TypeTag.NULL
    if value is MISSING or isinstance(value, OPAQUE_TYPES): return TypeTag.UNDEFINED
    if isinstance(value, Sequence) and not isinstance(value, (str, bytes, bytearray)): return TypeTag.ARRAY
    if isinstance(value, (ObjectId, DBRef)): return TypeTag.OBJECT_REF
    if isinstance(value, (datetime, Timestamp, DatetimeMS)): return TypeTag.TIMESTAMP
    if isinstance(value, bool): return TypeTag.BOOLEAN
    if isinstance(value, (int, float, Decimal128)): return TypeTag.NUMBER
    if isinstance(value, str): return TypeTag.STRING
    if isinstance(value, Mapping): return TypeTag.OBJECT
    return TypeTag.UNDEFINED


def _object_elements(array: Sequence, array_sample_size: int) -> List[Mapping]:
    """Returns the leading elements of an array that are objects, up to array_sample_size."""
    if not array or get_type_tag(array[0]) is not TypeTag.OBJECT:
        return []
    return [item for item in array[:array_sample_size] if get_type_tag(item) is TypeTag.OBJECT]


# === Field-path flattening ===

def collect_paths(
    document: Mapping,
    paths: Dict[str, None],
    max_depth: int = DEFAULT_MAX_DEPTH,
    array_sample_size: int = 1,
) -> Dict[str, None]:
    """Adds every dotted field path of ``document`` to the ordered ``paths`` accumulator.

    Arrays whose first element is an object are descended through their
    leading ``array_sample_size`` elements under a ``key[]`` segment; any other
    array is recorded as a single path. Object references and timestamps are
    terminal. Objects nested deeper than ``max_depth`` are recorded but not
    descended.
    """
    _collect_recursive(document, "", 0, paths, max_depth, array_sample_size)
    return paths


def _collect_recursive(obj, prefix, depth, paths, max_depth, array_sample_size):
    for key, value in obj.items():
        path = f"{prefix}.{key}" if prefix else str(key)
        paths.setdefault(path, None)

        tag = get_type_tag(value)
        if tag is TypeTag.OBJECT:
            children = [value]
            child_prefix = path
        elif tag is TypeTag.ARRAY:
            children = _object_elements(value, array_sample_size)
            child_prefix = f"{path}{ARRAY_MARKER}"
        else:
            continue

        if not children:
            continue
        if depth + 1 >= max_depth:
            logger.debug(f"Not descending into '{path}': maximum depth {max_depth} reached.")
            continue
        for child in children:
            _collect_recursive(child, child_prefix, depth + 1, paths, max_depth, array_sample_size)


def flatten_paths(document: Mapping, max_depth: int = DEFAULT_MAX_DEPTH, array_sample_size: int = 1) -> List[str]:
    """Returns the dotted field paths of a single document in discovery order."""
    return list(collect_paths(document, {}, max_depth=max_depth, array_sample_size=array_sample_size))


# === Path resolution ===

def resolve_path(document: Any, path: str, array_sample_size: int = 1) -> Any:
    """Resolves a dotted path (``[]`` segments included) in a document.

    Keys that themselves contain a ``.`` are matched literally, so a path
    collected from ``{"a.b": 1}`` resolves back to ``1``.

    Returns ``MISSING`` when any intermediate segment is absent or is not an object.
    """
    return _resolve_segments(document, path.split("."), array_sample_size)


def _resolve_segments(current, segments, array_sample_size):
    if not segments:
        return current
    if get_type_tag(current) is not TypeTag.OBJECT:
        return MISSING

    # Shortest key first; longer joins cover keys with literal dots
    for end in range(1, len(segments) + 1):
        key = ".".join(segments[:end])
        rest = segments[end:]
        if key.endswith(ARRAY_MARKER):
            array = current.get(key[:-len(ARRAY_MARKER)], MISSING)
            if get_type_tag(array) is not TypeTag.ARRAY:
                continue
            for element in _object_elements(array, array_sample_size):
                found = _resolve_segments(element, rest, array_sample_size)
                if found is not MISSING:
                    return found
        elif key in current:
            found = _resolve_segments(current[key], rest, array_sample_size)
            if found is not MISSING:
                return found
    return MISSING


def strip_array_markers(path: str) -> str:
    """Converts an internal field path to MongoDB dot notation (``items[].sku`` -> ``items.sku``)."""
    return path.replace(ARRAY_MARKER, "")


# === Query filter helpers ===

def extract_filter_fields(query_doc: Any, fields: Optional[Dict[str, None]] = None) -> List[str]:
    """Collects the field names a query filter constrains, in order of appearance.

    Fields inside ``$and``/``$or``/``$nor`` branches are included; other
    top-level operators (``$expr``, ``$text``, ``$where``, ``$comment``) name
    no fields and are skipped.
    """
    if fields is None:
        fields = {}
    if not isinstance(query_doc, Mapping):
        return list(fields)

    for key, value in query_doc.items():
        if key in LOGICAL_QUERY_OPERATORS:
            if isinstance(value, Sequence) and not isinstance(value, (str, bytes)):
                for sub_doc in value:
                    extract_filter_fields(sub_doc, fields)
        elif key.startswith('$'):
            continue
        elif key:
            fields.setdefault(key, None)
    return list(fields)
