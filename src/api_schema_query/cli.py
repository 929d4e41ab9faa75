"""CLI entry point for api-schema-query."""

import asyncio
import json
import logging

import click
import requests

from api_schema_query.errors import SchemaQueryError
from api_schema_query.schema.base import Endpoint, EndpointMap, FILTER_OPERATORS
from api_schema_query.schema.endpoints import (
    build_example_endpoint_params,
    build_request,
    extract_params_and_filter_fields,
    generate_endpoints,
)
from api_schema_query.schema.loader import load_document, load_schema_map
from api_schema_query.stream.client import fetch_rows
from api_schema_query.stream.transport import RequestsTransport


def _load_endpoints(source: str) -> EndpointMap:
    try:
        doc = load_document(source)
        return generate_endpoints(doc.get("paths", {}), load_schema_map(doc))
    except (SchemaQueryError, ValueError, OSError, requests.RequestException) as e:
        raise click.ClickException(f"Cannot load {source}: {e}") from e


def _get_endpoint(endpoints: EndpointMap, operation_id: str) -> Endpoint:
    if operation_id not in endpoints:
        raise click.ClickException(f"Unknown operation: {operation_id}")
    return endpoints[operation_id]


def _parse_filter(value: str) -> tuple[str, str, str]:
    """Parse 'field.path:Op:value'."""
    parts = value.split(":", 2)
    if len(parts) != 3 or parts[1] not in FILTER_OPERATORS:
        raise click.BadParameter(f"expected PATH:OP:VALUE with OP in {', '.join(FILTER_OPERATORS)}, got {value!r}")
    return parts[0], parts[1], parts[2]


def _parse_param(value: str) -> tuple[str, str]:
    """Parse 'NAME=VALUE'."""
    name, sep, raw = value.partition("=")
    if not sep or not name:
        raise click.BadParameter(f"expected NAME=VALUE, got {value!r}")
    return name, raw


@click.group()
@click.option("-v", "--verbose", is_flag=True, help="Enable debug logging.")
def main(verbose: bool):
    """API Schema Query — inspect and query OpenAPI endpoints."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


@main.command()
@click.argument("doc")
@click.option("--tag", default=None, help="Only list endpoints with this tag.")
def endpoints(doc: str, tag: str | None):
    """List the operations of an OpenAPI document (file path or URL)."""
    eps = _load_endpoints(doc)
    for ep in eps.values():
        if tag and tag not in ep.tags:
            continue
        marker = " [stream]" if ep.streaming else ""
        click.echo(f"{ep.operation_id}\t{ep.method} {ep.path}{marker}\t{ep.title}")
    click.echo(f"Found {len(eps)} endpoints.")


@main.command()
@click.argument("doc")
@click.argument("operation_id")
def filters(doc: str, operation_id: str):
    """Show parameters and filterable fields of an operation."""
    ep = _get_endpoint(_load_endpoints(doc), operation_id)
    params, fields, required = extract_params_and_filter_fields(ep)
    for p in params:
        flag = "required" if p.name in required else "optional"
        examples = p.schema_obj.get("examples") or []
        click.echo(f"{p.location}\t{p.name}\t{flag}\t{json.dumps(examples[:1])}")
    for f in fields:
        click.echo(f"filter\t{f.path}\t{f.type}\t{json.dumps(f.examples[:1])}")


@main.command()
@click.argument("doc")
@click.argument("operation_id")
def examples(doc: str, operation_id: str):
    """Print example request options for every parameter variant."""
    ep = _get_endpoint(_load_endpoints(doc), operation_id)
    args_map = build_example_endpoint_params(ep.param_defs, ep.streaming)
    click.echo(json.dumps(args_map, indent=2, default=str))


@main.command()
@click.argument("doc")
@click.argument("operation_id")
@click.option("-p", "--param", "params", multiple=True, help="Path or query parameter as NAME=VALUE.")
@click.option("-f", "--filter", "filter_specs", multiple=True, help="Filter as PATH:OP:VALUE, e.g. 'utxos[].amount:Gt:10'.")
@click.option("--base-url", default=None, help="Server base URL (defaults to API_BASE_URL).")
def query(doc: str, operation_id: str, params: tuple[str, ...], filter_specs: tuple[str, ...], base_url: str | None):
    """Call an operation and print its rows as JSON lines."""
    ep = _get_endpoint(_load_endpoints(doc), operation_id)
    values = dict(_parse_param(p) for p in params)
    selections = [_parse_filter(f) for f in filter_specs]

    try:
        args = build_request(ep, values, selections)
    except (SchemaQueryError, ValueError) as e:
        raise click.ClickException(str(e)) from e

    transport = RequestsTransport(base_url=base_url) if base_url else RequestsTransport()
    errors: list[Exception] = []
    asyncio.run(
        fetch_rows(
            transport.for_endpoint(ep),
            ep,
            args,
            on_row=lambda row: click.echo(json.dumps(row)),
            on_error=errors.append,
        )
    )
    for error in errors:
        click.echo(f"Error: {error}", err=True)
    if errors:
        raise SystemExit(1)
