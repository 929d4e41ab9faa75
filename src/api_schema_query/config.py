import os

OPENAPI_URL = os.getenv("API_OPENAPI_URL", "http://127.0.0.1:8000/apidoc/openapi.json")
BASE_URL = os.getenv("API_BASE_URL", "http://127.0.0.1:8000")
API_TOKEN = os.getenv("API_TOKEN", "")

MAX_SCHEMA_DEPTH = int(os.getenv("API_SCHEMA_MAX_DEPTH", "64"))
STREAM_CHUNK_SIZE = int(os.getenv("API_STREAM_CHUNK_SIZE", "8192"))
REQUEST_TIMEOUT = float(os.getenv("API_REQUEST_TIMEOUT", "30"))

# Only this method may carry a request body
ENTITY_METHOD = "POST"
# Schema extension marking a row-identity field
DISPLAY_KEY_MARKER = "x-key"
