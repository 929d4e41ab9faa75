from pathlib import Path

from api_schema_query.schema.examples import generate_examples, generate_examples_rec, inline_schema_with_example
from api_schema_query.schema.loader import load_openapi, load_schema_map
from api_schema_query.schema.refs import inline_schema

FIXTURES = Path(__file__).parent / "fixtures"
DEFS = load_schema_map(load_openapi(FIXTURES / "explorer.yaml"))


class TestGenerateExamples:
    def test_complex_schema_with_refs(self):
        example = generate_examples("Block", DEFS)[0]
        assert set(example) == {"id", "height", "header", "transactions"}
        assert example["header"]["timestamp"] == "2024-01-01T00:00:00Z"
        assert isinstance(example["transactions"], list)
        assert example["transactions"][0]["hash"] == ""
        assert example["transactions"][0]["utxos"][0] == {"address": "addr1", "amount": 0}

    def test_is_deterministic(self):
        assert generate_examples("Block", DEFS) == generate_examples("Block", DEFS)

    def test_inlined_schema_gives_same_examples(self):
        assert generate_examples_rec(inline_schema("Block", DEFS), {}) == generate_examples("Block", DEFS)


class TestExamplePriority:
    def test_single_example_wins(self):
        assert generate_examples_rec({"type": "string", "example": "x", "examples": ["y"]}, {}) == ["x"]

    def test_examples_returned_verbatim(self):
        assert generate_examples_rec({"type": "integer", "examples": [1, 2]}, {}) == [1, 2]

    def test_empty_examples_fall_through(self):
        assert generate_examples_rec({"type": "integer", "examples": []}, {}) == [0]

    def test_composite_branches_are_concatenated(self):
        schema = {"oneOf": [{"type": "string", "examples": ["a"]}, {"type": "integer", "examples": [1, 2]}]}
        assert generate_examples_rec(schema, {}) == ["a", 1, 2]

    def test_failing_branch_is_skipped(self):
        schema = {"anyOf": [{"$ref": "#/components/schemas/Missing"}, {"type": "boolean"}]}
        assert generate_examples_rec(schema, {}) == [False]

    def test_object_without_properties(self):
        assert generate_examples_rec({"type": "object"}, {}) == [{}]

    def test_array_without_items(self):
        assert generate_examples_rec({"type": "array"}, {}) == [[]]

    def test_array_wraps_first_item_example(self):
        schema = {"type": "array", "items": {"type": "integer", "examples": [7, 8]}}
        assert generate_examples_rec(schema, {}) == [[7]]


class TestPrimitiveFallback:
    def test_string_enum(self):
        assert generate_examples_rec({"type": "string", "enum": ["asc", "desc"]}, {}) == ["asc"]

    def test_string(self):
        assert generate_examples_rec({"type": "string"}, {}) == [""]

    def test_number_minimum(self):
        assert generate_examples_rec({"type": "number", "minimum": 2.5}, {}) == [2.5]

    def test_integer(self):
        assert generate_examples_rec({"type": "integer"}, {}) == [0]

    def test_boolean(self):
        assert generate_examples_rec({"type": "boolean"}, {}) == [False]

    def test_unknown_type(self):
        assert generate_examples_rec({}, {}) == [None]
        assert generate_examples_rec({"type": "null"}, {}) == [None]


class TestInlineWithExample:
    def test_given_example(self):
        schema = inline_schema_with_example({"type": "string"}, {}, "xyz")
        assert schema == {"type": "string", "examples": ["xyz"]}

    def test_synthesized_example(self):
        schema = inline_schema_with_example({"$ref": "#/components/schemas/Utxo"}, DEFS)
        assert schema["examples"] == [{"address": "addr1", "amount": 0}]
        assert schema["properties"]["amount"]["minimum"] == 0
