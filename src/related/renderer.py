"""Rich terminal renderer for related-paper results."""

from __future__ import annotations

from rich.console import Console
from rich.text import Text

from related.models import PaperCard, RelatedPapersResponse, TitleLookupResponse

console = Console()


def _meta_line(card: PaperCard) -> str:
    parts = []
    if card.authors:
        parts.append(card.authors)
    if card.year:
        parts.append(str(card.year))
    if card.venue:
        parts.append(card.venue)
    return " | ".join(parts)


def render_related(response: RelatedPapersResponse, *, show_snippets: bool = True) -> None:
    """Render ranked papers with their scores and the run's counters."""
    console.print(response.pdf_title or "(untitled document)", style="bold")
    summary = (
        f"{response.resolved_citations} references resolved"
        f" | {response.total_candidates} candidates"
    )
    if response.seed_paper_id:
        summary += f" | seed {response.seed_paper_id}"
    else:
        summary += " | seed not found"
    console.print(summary, style="dim")
    console.print()

    if not response.ranked_papers:
        console.print("[yellow]No related papers found.[/yellow]")
        return

    for i, paper in enumerate(response.ranked_papers, 1):
        title_line = Text()
        title_line.append(f"[{i}] ", style="bold cyan")
        title_line.append(paper.title, style="bold")
        console.print(title_line)

        if paper.url:
            console.print(f"     {paper.url}", style="dim")

        meta = _meta_line(paper)
        if meta:
            console.print(f"     {meta}", style="dim")

        console.print(
            f"     score {paper.score:.3f} (coupling {paper.bc_score:.2f}, co-citation {paper.cc_score:.2f})",
            style="green",
        )

        if show_snippets and paper.snippet:
            console.print(f"     {paper.snippet}")

        console.print()


def render_lookup(response: TitleLookupResponse) -> None:
    """Render per-title search hits."""
    if response.pdf_title:
        console.print(response.pdf_title, style="bold")
    console.print(f"Searched {response.total_citations} reference titles")
    if response.academic_domains:
        console.print(f"Academic sources: {', '.join(response.academic_domains)}", style="dim")
    console.print()

    for lookup in response.results:
        console.print(Text(lookup.query, style="bold cyan"))
        if not lookup.results:
            console.print("     [yellow]no matches[/yellow]")
        for card in lookup.results:
            line = Text("   - ")
            line.append(card.title, style="bold" if card.is_academic else "")
            console.print(line)
            if card.url:
                console.print(f"     {card.url}", style="dim")
            meta = _meta_line(card)
            if meta:
                console.print(f"     {meta}", style="dim")
        console.print()
