"""Load OpenAPI documents from files or URLs."""

import json
import logging
from pathlib import Path

import requests
import yaml

from api_schema_query import config
from api_schema_query.schema.base import SchemaMap

logger = logging.getLogger(__name__)


def load_openapi(file_path: Path) -> dict:
    """Read an OpenAPI document in YAML or JSON."""
    text = file_path.read_text(encoding="utf-8")
    try:
        doc = yaml.safe_load(text)
    except yaml.YAMLError:
        # JSON that YAML rejects, e.g. tabs in indentation
        doc = json.loads(text)
    if not detect_document(doc):
        raise ValueError(f"{file_path} is not an OpenAPI document")
    logger.info("Loaded OpenAPI document %s", file_path)
    return doc


def fetch_openapi(url: str | None = None, session: requests.Session | None = None) -> dict:
    """Download an OpenAPI JSON document."""
    url = url or config.OPENAPI_URL
    http = session or requests.Session()
    response = http.get(url, timeout=config.REQUEST_TIMEOUT)
    response.raise_for_status()
    doc = response.json()
    if not detect_document(doc):
        raise ValueError(f"{url} did not return an OpenAPI document")
    logger.info("Fetched OpenAPI document from %s", url)
    return doc


def load_document(source: str) -> dict:
    """Load from an http(s) URL or a local path."""
    if source.startswith(("http://", "https://")):
        return fetch_openapi(source)
    return load_openapi(Path(source))


def detect_document(data: object) -> bool:
    return isinstance(data, dict) and ("openapi" in data or "swagger" in data)


def load_schema_map(doc: dict) -> SchemaMap:
    return (doc.get("components") or {}).get("schemas") or {}
