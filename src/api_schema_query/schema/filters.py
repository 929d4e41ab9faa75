"""Filter field discovery and filter body compilation.

A filterable field is marked in a request body schema by an operator wrapper,
an object with exactly one property named after a comparison operator:

  {"type": "object", "properties": {"Gt": {"type": "integer"}}}

Wrappers are usually nullable, i.e. nested in ``oneOf``/``anyOf`` next to
``{"type": "null"}``.
"""

import logging
import re
from typing import Any

from api_schema_query import config
from api_schema_query.errors import FilterExtractionDefectError
from api_schema_query.schema.base import FILTER_OPERATORS, FilterExpr, FilterField, FilterOperator, SchemaObject

logger = logging.getLogger(__name__)

SCALAR_TYPES = ("string", "number", "integer", "boolean")
ARRAY_MARKER = "[]"


def is_filter_op_wrapper(node: Any) -> bool:
    if not isinstance(node, dict) or node.get("type") != "object":
        return False
    properties = node.get("properties")
    if not isinstance(properties, dict):
        return False
    keys = list(properties)
    return len(keys) == 1 and keys[0] in FILTER_OPERATORS


def unwrap_filter_op(node: Any) -> tuple[str | None, list[Any] | None] | None:
    """Find an operator wrapper through oneOf/anyOf layers.

    Returns ``(type, examples)`` of the wrapped value schema, or None.
    """
    if not isinstance(node, dict):
        return None

    variants = node.get("oneOf")
    if not isinstance(variants, list):
        variants = node.get("anyOf")
    if not isinstance(variants, list):
        variants = []

    for variant in variants:
        unwrapped = unwrap_filter_op(variant)
        if unwrapped:
            return unwrapped

    if is_filter_op_wrapper(node):
        inner = next(iter(node["properties"].values()))
        examples = inner.get("examples") if isinstance(inner, dict) else None
        inner_type = inner.get("type") if isinstance(inner, dict) else None
        return inner_type, examples if isinstance(examples, list) else None

    return None


def default_examples(schema_type: str | None) -> list[Any]:
    if schema_type == "string":
        return ["example"]
    if schema_type in ("integer", "number"):
        return [0]
    if schema_type == "boolean":
        return [True]
    return []


def _append_array_suffix(parts: list[str]) -> list[str]:
    if not parts:
        return [ARRAY_MARKER]
    return parts[:-1] + [parts[-1] + ARRAY_MARKER]


def extract_body_filter_fields(schema: SchemaObject) -> list[FilterField]:
    """Walk an inlined request body schema and list its filterable fields."""
    fields: list[FilterField] = []

    def emit(parts: list[str], schema_type: str | None, examples: list[Any] | None) -> None:
        path = ".".join(parts)
        if not path:
            raise FilterExtractionDefectError(f"Filter field with empty path in schema: {schema!r}")
        fields.append(
            FilterField(
                path=path,
                type=schema_type,
                examples=examples if examples is not None else default_examples(schema_type),
            )
        )

    def walk(node: Any, parts: list[str], depth: int) -> None:
        if not isinstance(node, dict):
            return
        if depth > config.MAX_SCHEMA_DEPTH:
            raise FilterExtractionDefectError(f"Schema nesting too deep at {'.'.join(parts)!r}")

        leaf = unwrap_filter_op(node)
        if leaf:
            emit(parts, *leaf)
            return

        variants = node.get("oneOf") or node.get("anyOf")
        if isinstance(variants, list):
            for variant in variants:
                if isinstance(variant, dict) and variant.get("type") in ("object", "array"):
                    walk(variant, parts, depth + 1)
                    return

        node_type = node.get("type")

        if node_type == "object" and isinstance(node.get("properties"), dict):
            for name, child in node["properties"].items():
                walk(child, parts + [name], depth + 1)
            return

        if node_type == "array" and isinstance(node.get("items"), dict):
            walk(node["items"], _append_array_suffix(parts), depth + 1)
            return

        if node_type in SCALAR_TYPES:
            examples = node.get("examples")
            emit(parts, node_type, examples if isinstance(examples, list) else None)

    walk(schema, [], 0)
    return fields


def build_filter_body(exprs: list[FilterExpr]) -> dict[str, Any]:
    """Compile filter expressions into a nested request body.

    Array markers only affect discovery: ``utxos[].amount`` compiles to
    ``{"utxos": {"amount": {...}}}``. The same field and operator given twice
    keeps the last value.
    """
    body: dict[str, Any] = {}
    for expr in exprs:
        parts = [re.sub(r"\[\]$", "", p) for p in expr.field_path.split(".")]
        cursor = body
        for key in parts[:-1]:
            if not isinstance(cursor.get(key), dict):
                cursor[key] = {}
            cursor = cursor[key]

        last = parts[-1]
        if not isinstance(cursor.get(last), dict):
            cursor[last] = {}
        op = FilterOperator(expr.op).value
        if op in cursor[last]:
            logger.debug("Filter %s %s overwritten", expr.field_path, op)
        cursor[last][op] = expr.value
    return body


def build_filter_expr(field: FilterField, op: FilterOperator | str, raw: Any) -> FilterExpr:
    """Build a filter expression from user input, coercing text to the field type."""
    op = FilterOperator(op)
    if isinstance(raw, str):
        if op == FilterOperator.IN:
            value: Any = [_coerce(item.strip(), field.type) for item in raw.split(",") if item.strip()]
        else:
            value = _coerce(raw.strip(), field.type)
    else:
        value = raw
    return FilterExpr(field_path=field.path, op=op, value=value)


def _coerce(text: str, schema_type: str | None) -> Any:
    if schema_type == "integer":
        return int(text)
    if schema_type == "number":
        return float(text)
    if schema_type == "boolean":
        return text.lower() in ("true", "1", "yes")
    return text
