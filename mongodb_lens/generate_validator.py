import logging
from typing import Any, Dict, List, Union

from .models import SchemaSnapshot, TypeTag, ValidatorStrictness
from .utils import ARRAY_MARKER

logger = logging.getLogger(__name__)

# Inferred type tag -> $jsonSchema bsonType aliases. Tags missing here are dropped.
BSON_TYPE_MAP = {
    TypeTag.NUMBER: ["number", "double", "int"],
    TypeTag.BOOLEAN: ["bool"],
    TypeTag.STRING: ["string"],
    TypeTag.ARRAY: ["array"],
    TypeTag.OBJECT: ["object"],
    TypeTag.NULL: ["null"],
    TypeTag.TIMESTAMP: ["date"],
    TypeTag.OBJECT_REF: ["objectId"],
}


def bson_types_for(tags) -> List[str]:
    """Maps observed type tags to a de-duplicated list of bsonType names."""
    bson_types: List[str] = []
    for tag in sorted(tags, key=lambda t: t.value):
        for bson_type in BSON_TYPE_MAP.get(tag, []):
            if bson_type not in bson_types:
                bson_types.append(bson_type)
    return bson_types


def generate_validator(
    snapshot: SchemaSnapshot,
    strictness: Union[ValidatorStrictness, str] = ValidatorStrictness.MODERATE,
) -> Dict[str, Any]:
    """
    Synthesizes a ``$jsonSchema`` validator document from a schema snapshot.

    Only top-level fields are described. A field is required when its coverage
    is at least the strictness threshold and it was never observed as null.
    Strict validators also reject fields not listed in ``properties``.
    """
    strictness = ValidatorStrictness(strictness)
    threshold = strictness.required_coverage

    properties: Dict[str, Any] = {}
    required: List[str] = []
    for path, stat in snapshot.fields.items():
        if "." in path:
            continue
        field_name = path.replace(ARRAY_MARKER, "")
        if field_name in properties:
            continue

        properties[field_name] = {"bsonType": bson_types_for(stat.observed_types)}
        if stat.coverage_percent >= threshold and TypeTag.NULL not in stat.observed_types:
            required.append(field_name)

    schema: Dict[str, Any] = {
        "bsonType": "object",
        "required": required,
        "properties": properties,
    }
    if strictness.forbids_additional_properties:
        schema["additionalProperties"] = False

    logger.debug(
        f"Generated {strictness.value} validator for '{snapshot.collection_name}': "
        f"{len(properties)} properties, {len(required)} required."
    )
    return {"$jsonSchema": schema}
