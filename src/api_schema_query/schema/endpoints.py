"""OpenAPI operation parser.

Turns the ``paths`` section of an OpenAPI 3.x document into Endpoint models
keyed by operation id, with every schema inlined and annotated with examples.
"""

import itertools
import logging
import re
from typing import Any

from api_schema_query import config
from api_schema_query.errors import (
    InvalidRequestBodyMethodError,
    MissingRequestBodyContentError,
    MissingResponseBodyContentError,
    UnsupportedMethodError,
    UnsupportedParameterLocationError,
)
from api_schema_query.schema.base import (
    METHODS,
    Endpoint,
    EndpointMap,
    EntityParam,
    FilterField,
    FilterParam,
    ParamDefinition,
    ParamType,
    PathParam,
    QueryParam,
    ResponseBody,
    SchemaMap,
)
from api_schema_query.schema.examples import inline_schema_with_example
from api_schema_query.schema.filters import build_filter_body, build_filter_expr, extract_body_filter_fields

logger = logging.getLogger(__name__)

# Path item keys that are not operations
PATH_ITEM_FIELDS = ("summary", "description", "servers", "parameters", "$ref")

PathQueryParamValue = tuple[str, str, Any]  # (location, name, value)


def generate_endpoints(paths: dict, defs: SchemaMap) -> EndpointMap:
    """Build every operation of the document, keyed by operation id."""
    endpoints: EndpointMap = {}
    for path, path_item in (paths or {}).items():
        if not path_item:
            continue
        shared_params = path_item.get("parameters", [])
        for method, operation in path_item.items():
            if method in PATH_ITEM_FIELDS:
                continue
            endpoint = build_endpoint(path, to_http_method(method), operation, defs, shared_params)
            if endpoint.operation_id in endpoints:
                logger.warning(
                    "Duplicate operationId %s (%s %s), keeping the last definition",
                    endpoint.operation_id,
                    endpoint.method,
                    endpoint.path,
                )
            endpoints[endpoint.operation_id] = endpoint

    logger.info("Built %d endpoints", len(endpoints))
    return endpoints


def to_http_method(raw: str) -> str:
    upper = raw.upper()
    if upper not in METHODS:
        raise UnsupportedMethodError(raw)
    return upper


def to_camel(name: str) -> str:
    return re.sub(r"_([a-z])", lambda m: m.group(1).upper(), name)


def fallback_operation_id(method: str, path: str) -> str:
    sanitized = path.strip("/").replace("/", "_").replace("{", "").replace("}", "")
    return f"{sanitized or 'root'}_{method.lower()}"


def build_endpoint(
    path: str,
    method: str,
    operation: dict,
    defs: SchemaMap,
    shared_params: list[dict] | None = None,
) -> Endpoint:
    method = to_http_method(method)
    operation_id = operation.get("operationId") or fallback_operation_id(method, path)

    param_defs: list[ParamDefinition] = [
        _build_query_or_path_param(p, defs) for p in _merge_parameters(shared_params or [], operation.get("parameters", []))
    ]

    response_bodies = _build_responses(operation.get("responses"), defs, operation_id)
    ok = response_bodies.get("200")
    streaming = ok.streaming if ok else False

    request_body = operation.get("requestBody")
    if request_body:
        if method != config.ENTITY_METHOD:
            raise InvalidRequestBodyMethodError(operation_id, method)
        querying = streaming or method == "GET"
        param_defs.append(_build_request_body_param(request_body, querying, defs, operation_id))

    return Endpoint(
        operation_id=operation_id,
        method_name=to_camel(operation_id),
        title=operation.get("summary") or operation.get("description") or operation_id,
        method=method,
        path=path,
        param_defs=param_defs,
        response_bodies=response_bodies,
        streaming=streaming,
        tags=operation.get("tags", []),
    )


def _merge_parameters(shared: list[dict], own: list[dict]) -> list[dict]:
    """Operation parameters override path item parameters on (name, in)."""
    merged = {(p.get("name"), p.get("in")): p for p in shared}
    for p in own:
        merged[(p.get("name"), p.get("in"))] = p
    return list(merged.values())


def _pick_media_type(content: dict) -> str:
    for media_type in content:
        if re.search(r"json$", media_type, re.IGNORECASE):
            return media_type
    return next(iter(content))


def _build_query_or_path_param(param: dict, defs: SchemaMap) -> ParamDefinition:
    name = param["name"]
    location = param.get("in", "query")
    schema = inline_schema_with_example(param.get("schema", {}), defs, param.get("example"))
    if location == ParamType.PATH:
        return PathParam(name=name, schema_obj=schema)
    if location == ParamType.QUERY:
        return QueryParam(name=name, required=bool(param.get("required")), schema_obj=schema)
    raise UnsupportedParameterLocationError(name, location)


def _build_request_body_param(body: dict, querying: bool, defs: SchemaMap, operation_id: str) -> ParamDefinition:
    content = body.get("content")
    if not content:
        raise MissingRequestBodyContentError(operation_id)
    media_type = _pick_media_type(content)
    entry = content[media_type] or {}
    schema = inline_schema_with_example(entry.get("schema", {}), defs, entry.get("example"))
    required = bool(body.get("required"))
    if querying:
        fields = extract_body_filter_fields(schema)
        return FilterParam(name=media_type, required=required, fields=fields, schema_obj=schema)
    return EntityParam(name=media_type, required=required, schema_obj=schema)


def _build_response_body(response: dict, defs: SchemaMap, operation_id: str, status: str) -> ResponseBody:
    content = response["content"]
    if not content:
        raise MissingResponseBodyContentError(operation_id, status)
    media_type = _pick_media_type(content)
    entry = content[media_type] or {}
    schema = inline_schema_with_example(entry.get("schema", {}), defs, entry.get("example"))
    streaming = bool(re.search(r"ndjson$", media_type, re.IGNORECASE))
    return ResponseBody(schema_obj=schema, media_type=media_type, streaming=streaming)


def _build_responses(responses: dict | None, defs: SchemaMap, operation_id: str) -> dict[str, ResponseBody | None]:
    result: dict[str, ResponseBody | None] = {}
    for status, response in (responses or {}).items():
        status = str(status)
        if response and "content" in response:
            result[status] = _build_response_body(response, defs, operation_id, status)
        else:
            result[status] = None
    return result


def build_full_request(streaming: bool, path_query_params: list[PathQueryParamValue], body: Any = None) -> dict[str, Any]:
    """Assemble transport request options."""
    args: dict[str, Any] = {"throw_on_error": False}
    if streaming:
        args["stream_response"] = True
    for location, name, value in path_query_params:
        args.setdefault(str(ParamType(location).value), {})[name] = value
    if body is not None:
        args["body"] = body
    return args


def build_example_endpoint_params(param_defs: list[ParamDefinition], streaming: bool) -> dict[str, dict[str, Any]]:
    """Build example request options for every parameter variant.

    Variant ``all`` uses every parameter; each optional parameter adds a
    variant with the required parameters plus that one. Each variant expands
    over all combinations of the parameters' examples.
    """
    required = [p for p in param_defs if p.required]
    optional = [p for p in param_defs if not p.required]
    variants = [("all", required + optional)] + [(p.name, required + [p]) for p in optional]

    args_map: dict[str, dict[str, Any]] = {}
    for title, params in variants:
        example_sets = [p.schema_obj.get("examples") or [None] for p in params]
        combos = list(itertools.product(*example_sets))
        for index, combo in enumerate(combos):
            body = None
            values: list[PathQueryParamValue] = []
            for param, example in zip(params, combo):
                if param.location in (ParamType.ENTITY, ParamType.FILTER):
                    body = example
                else:
                    values.append((param.location, param.name, example))
            key = f"{title}-{index}" if len(combos) > 1 else title
            args_map[key] = build_full_request(streaming, values, body)
    return args_map


def extract_params_and_filter_fields(endpoint: Endpoint) -> tuple[list[ParamDefinition], list[FilterField], list[str]]:
    """Split an endpoint's inputs into path/query params, filter fields and required param names."""
    path_query_params: list[ParamDefinition] = []
    filter_fields: list[FilterField] = []
    for param in endpoint.param_defs:
        if isinstance(param, (PathParam, QueryParam)):
            path_query_params.append(param)
        elif isinstance(param, FilterParam):
            filter_fields.extend(param.fields)
    required_names = [p.name for p in path_query_params if p.required]
    return path_query_params, filter_fields, required_names


def build_request(
    endpoint: Endpoint,
    values: dict[str, Any],
    filter_selections: list[tuple[str, str, Any]] | None = None,
) -> dict[str, Any]:
    """Build request options from user-provided values.

    ``values`` maps path/query parameter names to values; each filter
    selection is ``(field_path, operator, raw_value)``.
    """
    path_query_params, filter_fields, _ = extract_params_and_filter_fields(endpoint)
    by_path = {f.path: f for f in filter_fields}

    exprs = []
    for field_path, op, raw in filter_selections or []:
        field = by_path.get(field_path) or FilterField(path=field_path, type=None)
        exprs.append(build_filter_expr(field, op, raw))
    body = build_filter_body(exprs) if exprs else None

    param_values = [(p.location, p.name, values[p.name]) for p in path_query_params if p.name in values]
    return build_full_request(endpoint.streaming, param_values, body)
