"""CLI entry point for reference extraction."""

from __future__ import annotations

import json
import logging
from pathlib import Path

import click
from rich.console import Console

console = Console()

LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"


@click.group()
@click.version_option(package_name="related-papers-cli")
@click.option("--verbose", "-v", is_flag=True, default=False, help="Log extraction details.")
def cli(verbose: bool):
    """refs - Rebuild bibliography entries from OCR layout JSON."""
    logging.basicConfig(level=logging.DEBUG if verbose else logging.WARNING, format=LOG_FORMAT)


@cli.command()
@click.argument("ocr_json", type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.option("--json", "as_json", is_flag=True, default=False, help="Print JSON instead of text.")
@click.option("--text", "show_text", is_flag=True, default=False, help="Show the stitched entry text.")
def extract(ocr_json: Path, as_json: bool, show_text: bool):
    """List the references found in an OCR result.

    OCR_JSON: layout JSON produced by the OCR service
    """
    from bibliography.parser import parse_references_file
    from bibliography.renderer import render_references

    try:
        references = parse_references_file(ocr_json)
    except (OSError, ValueError) as e:
        console.print(f"[red]Error: {e}[/red]")
        raise SystemExit(1)

    if as_json:
        click.echo(json.dumps([r.to_dict() for r in references], indent=2, ensure_ascii=False))
    else:
        render_references(references, show_text=show_text)


@cli.command()
@click.argument("ocr_json", type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.option("--json", "as_json", is_flag=True, default=False, help="Print JSON instead of text.")
def meta(ocr_json: Path, as_json: bool):
    """Show the title and DOI of the scanned document.

    OCR_JSON: layout JSON produced by the OCR service
    """
    from bibliography.metadata import extract_document_metadata_file
    from bibliography.renderer import render_metadata

    try:
        metadata = extract_document_metadata_file(ocr_json)
    except (OSError, ValueError) as e:
        console.print(f"[red]Error: {e}[/red]")
        raise SystemExit(1)

    if as_json:
        click.echo(json.dumps(metadata.to_dict(), indent=2, ensure_ascii=False))
    else:
        render_metadata(metadata)
