"""Example synthesis for (possibly referencing) schemas."""

from typing import Any

from api_schema_query import config
from api_schema_query.errors import CyclicSchemaReferenceError, SchemaQueryError
from api_schema_query.schema.base import COMPOSITES, SchemaMap, SchemaObject
from api_schema_query.schema.refs import inline_value_refs, is_ref, ref_name, resolve_ref


def generate_examples(root: str, defs: SchemaMap) -> list[Any]:
    """Generate examples for a named component schema."""
    return generate_examples_rec(resolve_ref(f"#/components/schemas/{root}", defs), defs)


def generate_examples_rec(node: Any, defs: SchemaMap) -> list[Any]:
    """Recursively generate example values, flattening composite branches.

    Always returns at least one value.
    """
    return _examples(node, defs, chain=[], depth=0)


def inline_schema_with_example(node: Any, defs: SchemaMap, example: Any = None) -> SchemaObject:
    """Inline a schema and annotate it with an ``examples`` list."""
    schema = inline_value_refs(node, defs)
    schema["examples"] = [example] if example is not None else generate_examples_rec(schema, defs)
    return schema


def _examples(node: Any, defs: SchemaMap, chain: list[str], depth: int) -> list[Any]:
    if depth > config.MAX_SCHEMA_DEPTH:
        raise CyclicSchemaReferenceError(chain, reason=f"depth above {config.MAX_SCHEMA_DEPTH}")

    if is_ref(node):
        name = ref_name(node["$ref"])
        if name in chain:
            raise CyclicSchemaReferenceError(chain + [name])
        return _examples(resolve_ref(node["$ref"], defs), defs, chain + [name], depth + 1)

    if not isinstance(node, dict):
        return [None]

    if "example" in node:
        return [node["example"]]

    examples = node.get("examples")
    if isinstance(examples, list) and examples:
        return examples

    results: list[Any] = []
    for key in COMPOSITES:
        branches = node.get(key)
        if not isinstance(branches, list):
            continue
        for branch in branches:
            try:
                results.extend(_examples(branch, defs, chain, depth + 1))
            except SchemaQueryError:
                continue
        if results:
            return results

    schema_type = node.get("type")

    if schema_type == "object":
        properties = node.get("properties")
        if not properties:
            return [{}]
        obj = {}
        for name, prop in properties.items():
            prop_examples = _examples(prop, defs, chain, depth + 1)
            if prop_examples:
                obj[name] = prop_examples[0]
        return [obj]

    if schema_type == "array":
        items = node.get("items")
        if not items:
            return [[]]
        return [[_examples(items, defs, chain, depth + 1)[0]]]

    return [_primitive_fallback(node)]


def _primitive_fallback(schema: SchemaObject) -> Any:
    schema_type = schema.get("type")
    if schema_type == "string":
        enum = schema.get("enum")
        return enum[0] if enum else ""
    if schema_type in ("number", "integer"):
        minimum = schema.get("minimum")
        if isinstance(minimum, (int, float)) and not isinstance(minimum, bool):
            return minimum
        return 0
    if schema_type == "boolean":
        return False
    return None
