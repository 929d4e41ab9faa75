import pytest

from api_schema_query.errors import FilterExtractionDefectError
from api_schema_query.schema.base import FilterExpr, FilterField, FilterOperator
from api_schema_query.schema.filters import (
    build_filter_body,
    build_filter_expr,
    extract_body_filter_fields,
    is_filter_op_wrapper,
)


def _op(name, inner):
    return {"oneOf": [{"type": "object", "properties": {name: inner}}]}


def _fields(schema):
    return [f.model_dump() for f in extract_body_filter_fields(schema)]


NESTED_ARRAYS = {
    "type": "object",
    "properties": {
        "utxos": {
            "type": "array",
            "items": {
                "type": "object",
                "properties": {
                    "address": _op("Eq", {"type": "string", "examples": ["example"]}),
                    "assets": {
                        "type": "array",
                        "items": {
                            "type": "object",
                            "properties": {
                                "name": _op("Eq", {"type": "string", "examples": ["example"]}),
                                "amount": _op("Gt", {"type": "integer", "examples": [0]}),
                            },
                        },
                    },
                },
            },
        },
    },
}


class TestFilterOpWrapper:
    def test_single_operator_key(self):
        assert is_filter_op_wrapper({"type": "object", "properties": {"In": {"type": "array"}}})

    def test_two_keys_is_not_a_wrapper(self):
        schema = {"type": "object", "properties": {"Eq": {}, "Ne": {}}}
        assert not is_filter_op_wrapper(schema)

    def test_non_operator_key(self):
        assert not is_filter_op_wrapper({"type": "object", "properties": {"hash": {}}})


class TestExtractFilterFields:
    def test_string_field_with_operator(self):
        schema = {
            "type": "object",
            "properties": {
                "hash": {
                    "oneOf": [
                        {"type": "null"},
                        {"type": "object", "properties": {"Eq": {"type": "string", "examples": ["a"]}}},
                    ]
                }
            },
        }
        assert _fields(schema) == [{"path": "hash", "type": "string", "examples": ["a"]}]

    def test_integer_field_with_operator(self):
        schema = {
            "type": "object",
            "properties": {
                "amount": {
                    "oneOf": [
                        {"type": "null"},
                        {
                            "type": "object",
                            "properties": {"Eq": {"type": "integer", "format": "int64", "minimum": 0, "examples": [0]}},
                        },
                    ]
                }
            },
        }
        assert _fields(schema) == [{"path": "amount", "type": "integer", "examples": [0]}]

    def test_operator_without_examples_uses_default(self):
        schema = {"type": "object", "properties": {"ok": _op("Eq", {"type": "boolean"})}}
        assert _fields(schema) == [{"path": "ok", "type": "boolean", "examples": [True]}]

    def test_anyof_wrapper(self):
        schema = {
            "type": "object",
            "properties": {"h": {"anyOf": [{"type": "null"}, {"type": "object", "properties": {"Ne": {"type": "string"}}}]}},
        }
        assert _fields(schema) == [{"path": "h", "type": "string", "examples": ["example"]}]

    def test_nested_object_fields(self):
        schema = {
            "type": "object",
            "properties": {
                "input": {
                    "oneOf": [
                        {"type": "null"},
                        {
                            "type": "object",
                            "properties": {
                                "id": _op("Eq", {"type": "string", "examples": ["example"]}),
                                "hash": _op("Eq", {"type": "string", "examples": ["example"]}),
                            },
                        },
                    ]
                }
            },
        }
        assert _fields(schema) == [
            {"path": "input.id", "type": "string", "examples": ["example"]},
            {"path": "input.hash", "type": "string", "examples": ["example"]},
        ]

    def test_arrays_and_nested_arrays(self):
        assert _fields(NESTED_ARRAYS) == [
            {"path": "utxos[].address", "type": "string", "examples": ["example"]},
            {"path": "utxos[].assets[].name", "type": "string", "examples": ["example"]},
            {"path": "utxos[].assets[].amount", "type": "integer", "examples": [0]},
        ]

    def test_root_array(self):
        schema = {"type": "array", "items": {"type": "integer"}}
        assert _fields(schema) == [{"path": "[]", "type": "integer", "examples": [0]}]

    def test_scalar_fields_without_operator(self):
        schema = {
            "type": "object",
            "properties": {
                "status": {"type": "string", "examples": ["example"]},
                "count": {"type": "integer"},
            },
        }
        assert _fields(schema) == [
            {"path": "status", "type": "string", "examples": ["example"]},
            {"path": "count", "type": "integer", "examples": [0]},
        ]

    def test_ignores_unrecognized_structures(self):
        schema = {"type": "object", "properties": {"unknown": {"oneOf": [{"type": "null"}]}}}
        assert _fields(schema) == []

    def test_root_scalar_is_a_defect(self):
        with pytest.raises(FilterExtractionDefectError):
            extract_body_filter_fields({"type": "string"})


class TestBuildFilterBody:
    def test_nested_array_path(self):
        body = build_filter_body([FilterExpr(field_path="utxos[].assets[].amount", op="Gt", value=0)])
        assert body == {"utxos": {"assets": {"amount": {"Gt": 0}}}}

    def test_shared_prefix_merges(self):
        body = build_filter_body(
            [
                FilterExpr(field_path="utxos[].address", op="Eq", value="a"),
                FilterExpr(field_path="utxos[].amount", op="Gt", value=1),
                FilterExpr(field_path="utxos[].amount", op="Lt", value=9),
            ]
        )
        assert body == {"utxos": {"address": {"Eq": "a"}, "amount": {"Gt": 1, "Lt": 9}}}

    def test_same_field_and_operator_last_wins(self):
        body = build_filter_body(
            [
                FilterExpr(field_path="hash", op="Eq", value="a"),
                FilterExpr(field_path="hash", op="Eq", value="b"),
            ]
        )
        assert body == {"hash": {"Eq": "b"}}

    def test_no_type_coercion(self):
        body = build_filter_body([FilterExpr(field_path="height", op="Ge", value="10")])
        assert body == {"height": {"Ge": "10"}}

    def test_round_trip_from_extracted_fields(self):
        for field in extract_body_filter_fields(NESTED_ARRAYS):
            body = build_filter_body([build_filter_expr(field, "Eq", field.examples[0])])
            node = body
            for part in field.path.replace("[]", "").split("."):
                node = node[part]
            assert node == {"Eq": field.examples[0]}


class TestBuildFilterExpr:
    def test_coerces_integer(self):
        expr = build_filter_expr(FilterField(path="amount", type="integer"), "Gt", "42")
        assert expr.value == 42
        assert expr.op == FilterOperator.GT

    def test_in_splits_values(self):
        expr = build_filter_expr(FilterField(path="amount", type="integer"), "In", "1, 2,3")
        assert expr.value == [1, 2, 3]

    def test_non_text_value_is_kept(self):
        expr = build_filter_expr(FilterField(path="hash", type="string"), FilterOperator.EQ, ["a"])
        assert expr.value == ["a"]

    def test_unknown_operator(self):
        with pytest.raises(ValueError):
            build_filter_expr(FilterField(path="hash", type="string"), "Like", "a")
