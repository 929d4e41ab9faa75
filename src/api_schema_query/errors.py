"""Error taxonomy for schema resolution, endpoint building and stream decoding."""


class SchemaQueryError(Exception):
    """Base class for all api-schema-query errors."""


class UnresolvedReferenceError(SchemaQueryError):
    def __init__(self, ref: str):
        super().__init__(f"Unresolved $ref {ref}")
        self.ref = ref


class CyclicSchemaReferenceError(SchemaQueryError):
    def __init__(self, chain: list[str], reason: str = "cycle"):
        super().__init__(f"Cyclic $ref ({reason}): {' -> '.join(chain)}")
        self.chain = chain


class UnsupportedMethodError(SchemaQueryError):
    def __init__(self, method: str):
        super().__init__(f"Unsupported HTTP method: {method}")
        self.method = method


class UnsupportedParameterLocationError(SchemaQueryError):
    def __init__(self, name: str, location: str):
        super().__init__(f"Unsupported parameter location for {name}: {location}")
        self.name = name
        self.location = location


class InvalidRequestBodyMethodError(SchemaQueryError):
    def __init__(self, operation_id: str, method: str):
        super().__init__(f"Operation {operation_id} with method {method} cannot have a requestBody defined")
        self.operation_id = operation_id
        self.method = method


class MissingRequestBodyContentError(SchemaQueryError):
    def __init__(self, operation_id: str):
        super().__init__(f"Request body of {operation_id} must have content defined")
        self.operation_id = operation_id


class MissingResponseBodyContentError(SchemaQueryError):
    def __init__(self, operation_id: str, status: str):
        super().__init__(f"Response {status} of {operation_id} has empty content")
        self.operation_id = operation_id
        self.status = status


class FilterExtractionDefectError(SchemaQueryError):
    """Raised when the filter walk produces a field that cannot be addressed."""


class StreamDecodeError(SchemaQueryError):
    def __init__(self, line: str, cause: Exception):
        super().__init__(f"Invalid NDJSON line {line[:80]!r}: {cause}")
        self.line = line
        self.cause = cause


class StreamTransportError(SchemaQueryError):
    """Raised when the transport result or its byte stream cannot be consumed."""
