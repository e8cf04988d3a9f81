"""Rich terminal renderer for extracted references."""

from __future__ import annotations

from rich.console import Console
from rich.text import Text

from bibliography.models import DocumentMetadata, ParsedReference

console = Console()


def render_references(references: list[ParsedReference], *, show_text: bool = False) -> None:
    """Render extracted references with their search keys."""
    if not references:
        console.print("[yellow]No references found.[/yellow]")
        return

    dois = sum(1 for r in references if r.is_doi)
    console.print(f"Found {len(references)} references ({dois} with DOI)")
    console.print()

    for ref in references:
        line = Text()
        line.append(f"[{ref.ref_num}] ", style="bold cyan")
        if ref.is_doi:
            line.append("doi ", style="green")
        line.append(ref.search_term, style="bold")
        console.print(line)

        if show_text:
            console.print(f"     {ref.text}")

        pages = sorted({b.page_index for b in ref.source_blocks})
        if pages:
            label = "page" if len(pages) == 1 else "pages"
            console.print(
                f"     {label} {', '.join(str(p + 1) for p in pages)}"
                f" | {len(ref.raw_fragments)} fragment(s)",
                style="dim",
            )
        console.print()


def render_metadata(meta: DocumentMetadata) -> None:
    """Render the document's own title and DOI."""
    console.print(meta.title or "(title not found)", style="bold")
    if meta.doi:
        console.print(f"doi: {meta.doi}", style="dim")
    else:
        console.print("doi: (not found)", style="dim")
