"""Display-field trees for tabular presentation of response rows."""

from functools import reduce
from typing import Any, Literal

from pydantic import BaseModel

from api_schema_query import config
from api_schema_query.schema.base import Endpoint, SchemaObject

PRIMITIVE_TYPES = ("string", "number", "boolean", "integer")


class DisplayField(BaseModel):
    name: str
    type: Literal["primitive", "object", "array"]
    is_key: bool = False
    children: dict[str, "DisplayField"] | None = None


class ViewLevel(BaseModel):
    rows: list[Any]
    display_fields: dict[str, DisplayField]
    label: str


def _parse_schema(schema: Any, field_name: str = "") -> DisplayField | None:
    if not isinstance(schema, dict):
        return None

    effective = schema
    for branch in schema.get("oneOf") or []:
        if isinstance(branch, dict) and branch.get("type") and branch["type"] != "null":
            effective = branch
            break

    schema_type = effective.get("type")
    if isinstance(schema_type, list):
        schema_type = next((t for t in schema_type if t != "null"), None)
    if not schema_type or schema_type == "null":
        return None

    if schema_type in PRIMITIVE_TYPES:
        kind = "primitive"
    elif schema_type == "array":
        kind = "array"
    else:
        kind = "object"

    field = DisplayField(name=field_name, type=kind, is_key=bool(effective.get(config.DISPLAY_KEY_MARKER)))

    if kind == "array" and effective.get("items"):
        item_field = _parse_schema(effective["items"], field_name)
        if item_field and item_field.children is not None:
            field.children = item_field.children
    elif kind == "object" and effective.get("properties"):
        children = {}
        for key, prop in effective["properties"].items():
            child = _parse_schema(prop, key)
            if child:
                children[key] = child
        field.children = children

    return field


def build_field_tree_from_root_schema(root_schema: SchemaObject) -> dict[str, DisplayField]:
    result = {}
    for key, prop in (root_schema.get("properties") or {}).items():
        field = _parse_schema(prop, key)
        if field:
            result[key] = field
    return result


def expand_schema_object_fields(
    tree: dict[str, DisplayField],
    prefix: str = "",
    is_root: bool = False,
) -> dict[str, DisplayField]:
    """Flatten nested object fields into dotted column paths.

    Key fields are kept only at the root level; key columns come first.
    """
    result: dict[str, DisplayField] = {}
    for key, field in tree.items():
        path = f"{prefix}.{key}" if prefix else key
        if field.is_key and not is_root:
            continue
        if field.type == "object":
            result.update(expand_schema_object_fields(field.children or {}, path))
        else:
            result[path] = field
    ordered = sorted(result.items(), key=lambda item: 0 if item[1].is_key else 1)
    return dict(ordered)


def cell_value(row: Any, column: str) -> Any:
    """Look up a dotted column path in a row, None when any part is missing."""
    return reduce(lambda acc, part: acc.get(part) if isinstance(acc, dict) else None, column.split("."), row)


class ViewStack:
    """Drill-down navigation over nested array columns."""

    def __init__(self):
        self.levels: list[ViewLevel] = []

    @property
    def current(self) -> ViewLevel | None:
        return self.levels[-1] if self.levels else None

    def open_root(self, endpoint: Endpoint, rows: list[Any]) -> ViewLevel:
        response = endpoint.response_bodies.get("200")
        schema = response.schema_obj if response else {}
        if schema.get("type") == "array":
            schema = schema.get("items") or {}
        tree = build_field_tree_from_root_schema(schema)
        level = ViewLevel(
            rows=rows,
            display_fields=expand_schema_object_fields(tree, "", True),
            label=endpoint.operation_id.split("_")[0] + "s",
        )
        self.levels = [level]
        return level

    def drill_down(self, value: Any, field: DisplayField) -> ViewLevel | None:
        """Open a nested array of records; returns None if the value has no records."""
        if field.type != "array" or not isinstance(value, list) or not value or not isinstance(value[0], dict):
            return None
        level = ViewLevel(
            rows=value,
            display_fields=expand_schema_object_fields(field.children or {}),
            label=field.name,
        )
        self.levels.append(level)
        return level

    def back(self) -> ViewLevel | None:
        if len(self.levels) > 1:
            self.levels.pop()
        return self.current

    @property
    def caption(self) -> str:
        if not self.levels:
            return ""
        if len(self.levels) > 1:
            return f"{self.levels[-2].label} / {self.levels[-1].label}"
        return self.levels[-1].label

    def headers(self) -> list[str]:
        return list(self.current.display_fields) if self.current else []
