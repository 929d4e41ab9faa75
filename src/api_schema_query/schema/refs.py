"""$ref resolution and schema inlining.

Only local component references are supported:

  { "$ref": "#/components/schemas/Block" }

Inlining always builds new dictionaries; the schema map is never mutated.
"""

import logging
import re
from typing import Any

from api_schema_query import config
from api_schema_query.errors import CyclicSchemaReferenceError, UnresolvedReferenceError
from api_schema_query.schema.base import COMPOSITES, SchemaMap, SchemaObject

logger = logging.getLogger(__name__)

REF_PATTERN = re.compile(r"^#/components/schemas/(.+)$")


def is_ref(node: Any) -> bool:
    return isinstance(node, dict) and "$ref" in node


def ref_name(ref: str) -> str:
    """Return the definition name a local $ref points at."""
    match = REF_PATTERN.match(ref)
    if not match:
        raise UnresolvedReferenceError(ref)
    return match.group(1)


def resolve_ref(ref: str, defs: SchemaMap) -> SchemaObject:
    name = ref_name(ref)
    if name not in defs:
        raise UnresolvedReferenceError(ref)
    return defs[name]


def inline_value_refs(node: Any, defs: SchemaMap, max_depth: int | None = None) -> SchemaObject:
    """Return a copy of *node* with every $ref replaced by its inlined target.

    Raises CyclicSchemaReferenceError when a definition refers back to itself
    through any chain of references, or when nesting exceeds *max_depth*.
    """
    limit = config.MAX_SCHEMA_DEPTH if max_depth is None else max_depth
    return _inline(node, defs, chain=[], depth=0, limit=limit)


def inline_schema(root: str, defs: SchemaMap) -> SchemaObject:
    """Inline the named component schema."""
    if root not in defs:
        raise UnresolvedReferenceError(f"#/components/schemas/{root}")
    return inline_value_refs(defs[root], defs)


def _inline(node: Any, defs: SchemaMap, chain: list[str], depth: int, limit: int) -> Any:
    if depth > limit:
        raise CyclicSchemaReferenceError(chain, reason=f"depth above {limit}")

    if is_ref(node):
        name = ref_name(node["$ref"])
        if name in chain:
            raise CyclicSchemaReferenceError(chain + [name])
        logger.debug("Inlining $ref %s", name)
        return _inline(resolve_ref(node["$ref"], defs), defs, chain + [name], depth + 1, limit)

    if not isinstance(node, dict):
        return node

    schema = dict(node)

    for key in COMPOSITES:
        branches = schema.get(key)
        if isinstance(branches, list):
            schema[key] = [_inline(b, defs, chain, depth + 1, limit) for b in branches]

    properties = schema.get("properties")
    if isinstance(properties, dict):
        schema["properties"] = {
            name: _inline(prop, defs, chain, depth + 1, limit) for name, prop in properties.items()
        }

    if schema.get("type") == "array" and isinstance(schema.get("items"), dict):
        schema["items"] = _inline(schema["items"], defs, chain, depth + 1, limit)

    return schema
