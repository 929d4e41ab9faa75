"""Unified data models for the endpoint and filter model.

Schemas themselves stay plain JSON dictionaries, exactly as loaded from the
OpenAPI document. Everything derived from them is expressed with these models.
"""

from enum import Enum
from typing import Annotated, Any, Literal, Union

from pydantic import BaseModel, ConfigDict, Field

SchemaObject = dict[str, Any]
SchemaMap = dict[str, SchemaObject]

COMPOSITES = ("oneOf", "anyOf", "allOf")
METHODS = ("GET", "POST", "PUT", "PATCH", "DELETE", "HEAD", "OPTIONS", "TRACE")


class ParamType(str, Enum):
    PATH = "path"
    QUERY = "query"
    ENTITY = "entity"  # POST body as a whole
    FILTER = "filter"  # body compiled from filter expressions


class FilterOperator(str, Enum):
    EQ = "Eq"
    NE = "Ne"
    LT = "Lt"
    LE = "Le"
    GT = "Gt"
    GE = "Ge"
    IN = "In"


FILTER_OPERATORS = [op.value for op in FilterOperator]


class FilterField(BaseModel):
    """A filterable leaf discovered in a request body schema."""

    path: str  # utxos[].assets[].amount
    type: str | None
    examples: list[Any] = []


class FilterExpr(BaseModel):
    """A runtime filter selection on one field."""

    field_path: str
    op: FilterOperator
    value: Any


class PathParam(BaseModel):
    location: Literal["path"] = "path"
    name: str
    required: Literal[True] = True
    schema_obj: SchemaObject  # scalar type


class QueryParam(BaseModel):
    location: Literal["query"] = "query"
    name: str
    required: bool = False
    schema_obj: SchemaObject  # scalar type


class EntityParam(BaseModel):
    location: Literal["entity"] = "entity"
    name: str  # media type
    required: bool = False
    schema_obj: SchemaObject  # arbitrary JSON body


class FilterParam(BaseModel):
    location: Literal["filter"] = "filter"
    name: str  # media type
    required: bool = False  # if false, the whole filter body is optional
    fields: list[FilterField]
    schema_obj: SchemaObject


ParamDefinition = Annotated[
    Union[PathParam, QueryParam, EntityParam, FilterParam],
    Field(discriminator="location"),
]


class ResponseBody(BaseModel):
    model_config = ConfigDict(frozen=True)

    schema_obj: SchemaObject
    media_type: str
    streaming: bool


class Endpoint(BaseModel):
    """A single API operation with its classified inputs and outputs."""

    model_config = ConfigDict(frozen=True)

    operation_id: str
    method_name: str  # camelCase client method name
    title: str
    method: str  # GET / POST / PUT / DELETE / PATCH
    path: str  # /blocks/{id}
    param_defs: list[ParamDefinition]
    response_bodies: dict[str, ResponseBody | None]  # {status_code: body or None}
    streaming: bool
    tags: list[str]


EndpointMap = dict[str, Endpoint]
