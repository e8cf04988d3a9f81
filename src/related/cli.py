"""CLI entry point for the related-papers engine."""

from __future__ import annotations

import asyncio
import json
import logging
from pathlib import Path
from typing import Optional

import click
from rich.console import Console

console = Console()

LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"


def _load(ocr_json: Path):
    from bibliography.ocr import load_ocr_file

    return load_ocr_file(ocr_json)


@click.group()
@click.version_option(package_name="related-papers-cli")
@click.option("--verbose", "-v", is_flag=True, default=False, help="Log API calls and crawl phases.")
def cli(verbose: bool):
    """related - Rank papers related to a scanned document via its citation graph."""
    logging.basicConfig(level=logging.DEBUG if verbose else logging.WARNING, format=LOG_FORMAT)


# ---------------------------------------------------------------------------
# related find
# ---------------------------------------------------------------------------


@cli.command()
@click.argument("ocr_json", type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.option("--json", "as_json", is_flag=True, default=False, help="Print JSON instead of text.")
@click.option("--top", "-n", default=None, type=click.IntRange(1, 50), help="Number of ranked papers, 1-50 (default: RELATED_TOP_N).")
@click.option("--method", default=None, help="Graph construction method (default: RELATED_GRAPH_METHOD).")
def find(ocr_json: Path, as_json: bool, top: Optional[int], method: Optional[str]):
    """Rank papers related to a document and its references.

    OCR_JSON: layout JSON produced by the OCR service
    """
    from dataclasses import replace

    from related.config import load_settings
    from related.engine import related_papers_for_document
    from related.renderer import render_related

    try:
        document = _load(ocr_json)
        settings = load_settings()
        if top is not None:
            settings = replace(settings, top_n=top)
        response = asyncio.run(related_papers_for_document(document, method=method, settings=settings))
    except Exception as e:
        console.print(f"[red]Error: {e}[/red]")
        raise SystemExit(1)

    if as_json:
        click.echo(json.dumps(response.to_dict(), indent=2, ensure_ascii=False))
    else:
        render_related(response)


# ---------------------------------------------------------------------------
# related lookup
# ---------------------------------------------------------------------------


async def _lookup_document(document):
    from bibliography.metadata import extract_document_metadata
    from bibliography.parser import parse_references
    from related.backends.semanticscholar import SemanticScholarGraph
    from related.config import load_settings
    from related.lookup import lookup_titles
    from related.ratelimit import RateLimiter

    references = parse_references(document)
    metadata = extract_document_metadata(document)
    settings = load_settings()
    async with SemanticScholarGraph(RateLimiter(settings.max_requests_per_second)) as graph:
        return await lookup_titles(
            [r.search_term for r in references],
            graph,
            pdf_title=metadata.title or "",
        )


@cli.command()
@click.argument("ocr_json", type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.option("--json", "as_json", is_flag=True, default=False, help="Print JSON instead of text.")
def lookup(ocr_json: Path, as_json: bool):
    """Search each extracted reference by title.

    OCR_JSON: layout JSON produced by the OCR service
    """
    from related.renderer import render_lookup

    try:
        response = asyncio.run(_lookup_document(_load(ocr_json)))
    except Exception as e:
        console.print(f"[red]Error: {e}[/red]")
        raise SystemExit(1)

    if as_json:
        click.echo(json.dumps(response.to_dict(), indent=2, ensure_ascii=False))
    else:
        render_lookup(response)


# ---------------------------------------------------------------------------
# related env
# ---------------------------------------------------------------------------


@cli.group(invoke_without_command=True)
@click.pass_context
def env(ctx):
    """Show or configure API keys and tunables.

    Run without arguments to see current status.
    Use `related env set KEY value` to save a key to ~/.related-papers/.env.
    """
    if ctx.invoked_subcommand is not None:
        return

    from related.config import PERSISTENT_ENV, check_env, check_tunables
    from rich.markup import escape

    statuses = check_env()
    console.print("API Key Status:")
    console.print()
    for var, is_set, info in statuses:
        status = "[green]set[/green]" if is_set else "[red]not set[/red]"
        console.print(f"  {var}: {status}")
        console.print(f"    {info['description']}")
        console.print(f"    Used by: {', '.join(info['required_by'])}", style="dim")
        console.print()

    console.print("Tunables:")
    console.print()
    for name, value, default, description in check_tunables():
        shown = f"[green]{escape(value)}[/green]" if value is not None else f"default ({default})"
        console.print(f"  {name}: {shown}", highlight=False)
        console.print(f"    {description}", style="dim")
    console.print()

    console.print(f"Config file: {PERSISTENT_ENV}", style="dim")

    if not all(is_set for _, is_set, _ in statuses):
        console.print(
            "Tip: Run `related env set KEY value` to save a key persistently.",
            style="dim",
        )


@env.command("set")
@click.argument("key")
@click.argument("value")
def env_set(key: str, value: str):
    """Save a key or tunable to ~/.related-papers/.env.

    KEY: S2_API_KEY or one of the tunables listed in `related env`
    VALUE: the value to store
    """
    from related.config import VALID_KEYS, save_key

    key = key.upper()
    if key not in VALID_KEYS:
        console.print(f"[red]Unknown key: {key}[/red]")
        console.print(f"Valid keys: {', '.join(sorted(VALID_KEYS))}")
        raise SystemExit(1)

    path = save_key(key, value)
    console.print(f"Saved {key} to {path}")
