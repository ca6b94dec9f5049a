"""support-flows CLI - Main entry point."""

import json
import logging
import sys
from typing import Optional, Tuple

import click
from rich.console import Console

from .. import __version__
from ..attributes import AttributeRegistry
from ..canvas import FlowCatalog
from ..config import NodeCategory, get_settings
from ..errors import FlowError
from ..models import InputVariable
from ..nodes import derive_ports, get_node_registry
from ..variables import VariableResolver
from .output import format_output, print_error, print_report, print_warning

console = Console()


def _configure_logging(debug: bool) -> None:
    settings = get_settings()
    level = logging.DEBUG if debug or settings.debug else settings.log_level.upper()
    logging.basicConfig(
        level=level,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


def _read_json(path: str):
    with open(path, "r", encoding="utf-8") as fh:
        return json.load(fh)


def _load_attributes(path: Optional[str]) -> Optional[AttributeRegistry]:
    if not path:
        return None
    raw = _read_json(path)
    if not isinstance(raw, list):
        raise click.BadParameter("attribute file must contain a JSON array", param_hint="--attributes")
    return AttributeRegistry.from_dicts(raw)


def _parse_vars(pairs: Tuple[str, ...]) -> dict:
    values = {}
    for pair in pairs:
        if "=" not in pair:
            raise click.BadParameter(f"expected KEY=VALUE, got {pair!r}", param_hint="--var")
        key, value = pair.split("=", 1)
        values[key.strip()] = value
    return values


@click.group()
@click.version_option(version=__version__, prog_name="support-flows")
@click.option("--output", "-o", type=click.Choice(["table", "json", "yaml"]), default="table",
              help="Output format")
@click.option("--debug", is_flag=True, help="Enable debug logging")
@click.pass_context
def cli(ctx: click.Context, output: str, debug: bool):
    """support-flows - Inspect and validate support automation flows.

    \b
    Examples:
      support-flows validate welcome.json orders.json
      support-flows ports welcome.json
      support-flows node-types --category logic
      support-flows resolve "Hi {{contact.name}}" --var contact.name=Ana
    """
    ctx.ensure_object(dict)
    _configure_logging(debug)
    ctx.obj["output"] = output


@cli.command("validate")
@click.argument("paths", nargs=-1, required=True, type=click.Path(exists=True, dir_okay=False))
@click.option("--attributes", "-a", type=click.Path(exists=True, dir_okay=False),
              help="JSON array of custom attribute definitions")
@click.pass_context
def validate(ctx: click.Context, paths: Tuple[str, ...], attributes: Optional[str]):
    """Validate persisted flow documents.

    All files are loaded together, so start_flow nodes may target any of
    them. Exits with status 1 when a flow is not publishable.
    """
    try:
        catalog = FlowCatalog(attributes=_load_attributes(attributes))
        loaded = [catalog.load(_read_json(path)) for path in paths]
    except (OSError, ValueError, FlowError) as e:
        print_error(f"Failed to load flows: {e}")
        sys.exit(1)

    reports = [catalog.validate_flow(result.flow.id) for result in loaded]

    if ctx.obj["output"] == "table":
        for result, report in zip(loaded, reports):
            print_report(report, title=f"{result.flow.name or result.flow.id} ({result.flow.id})")
    else:
        format_output([r.to_dict() for r in reports], ctx.obj["output"])

    if not all(r.publishable for r in reports):
        sys.exit(1)


@cli.command("ports")
@click.argument("path", type=click.Path(exists=True, dir_okay=False))
@click.option("--node", "-n", "node_id", help="Only show this node")
@click.pass_context
def ports(ctx: click.Context, path: str, node_id: Optional[str]):
    """Show the derived output ports of each node in a flow."""
    try:
        catalog = FlowCatalog()
        result = catalog.load(_read_json(path))
    except (OSError, ValueError, FlowError) as e:
        print_error(f"Failed to load flow: {e}")
        sys.exit(1)

    registry = get_node_registry()
    rows = []
    for node in result.flow.nodes:
        if node_id and node.id != node_id:
            continue
        if not registry.is_known(node.type):
            print_warning(f"Skipping {node.id}: unknown node type {node.type!r}")
            continue
        rows.append({
            "node": node.id,
            "type": node.type,
            "ports": [p.id for p in derive_ports(node.type, node.data, registry)],
            "labels": [p.label for p in derive_ports(node.type, node.data, registry)],
        })

    if node_id and not rows:
        print_error(f"Node not found: {node_id}")
        sys.exit(1)

    format_output(rows, ctx.obj["output"], columns=["node", "type", "ports", "labels"])


@cli.command("node-types")
@click.option("--category", "-c", type=click.Choice([c.value for c in NodeCategory]),
              help="Filter by category")
@click.option("--search", "-s", help="Search by name or description")
@click.pass_context
def node_types(ctx: click.Context, category: Optional[str], search: Optional[str]):
    """List the available node types."""
    registry = get_node_registry()
    if search:
        nodes = registry.search(search)
    else:
        nodes = registry.list_all()
    if category:
        nodes = [n for n in nodes if n.category.value == category]

    format_output(
        [n.to_dict() for n in nodes],
        ctx.obj["output"],
        columns=["type", "category", "name", "accepts_input", "port_strategy"],
    )


@cli.command("resolve")
@click.argument("template")
@click.option("--var", "-v", "variables", multiple=True, help="Runtime value as KEY=VALUE")
@click.option("--input", "-i", "inputs", multiple=True, help="Declared flow input variable key")
@click.option("--attributes", "-a", type=click.Path(exists=True, dir_okay=False),
              help="JSON array of custom attribute definitions")
@click.pass_context
def resolve(
    ctx: click.Context,
    template: str,
    variables: Tuple[str, ...],
    inputs: Tuple[str, ...],
    attributes: Optional[str],
):
    """Resolve {{tokens}} in a template the way the builder checks them."""
    values = _parse_vars(variables)
    resolver = VariableResolver(
        [InputVariable(key=k) for k in inputs],
        _load_attributes(attributes),
    )
    result = resolver.resolve(template, values)

    if ctx.obj["output"] == "table":
        console.print(result.text, markup=False, highlight=False)
        for key in result.unknown_keys:
            print_warning(f"Unknown variable: {key}")
    else:
        format_output(
            {"text": result.text, "unknown": result.unknown_keys},
            ctx.obj["output"],
        )


if __name__ == "__main__":
    cli()
