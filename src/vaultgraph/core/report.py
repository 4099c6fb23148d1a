"""Markdown reports for path analyses and hub rankings."""

from __future__ import annotations

from datetime import datetime
import logging
from typing import List, Optional

from .models import (
    ConnectionInfo,
    ConnectionType,
    HubMetric,
    NoteImportance,
    PathAnalysis,
    PathResult,
)
from .resolver import note_basename
from .vault import DocumentSource

logger = logging.getLogger(__name__)


def connection_symbol(info: Optional[ConnectionInfo]) -> str:
    if info is None or info.type == ConnectionType.DIRECT:
        return " → "
    if info.type == ConnectionType.BACKLINK:
        return " ← "
    if info.type == ConnectionType.TAG:
        if info.common_tags:
            return f" #{', #'.join(info.common_tags)} → "
        return " #→ "
    return " !→ "


def path_to_markdown(result: PathResult, source: DocumentSource) -> str:
    """Render a path as wikilinks joined by connection symbols."""
    parts: List[str] = []
    for i, node in enumerate(result.path):
        last = i == len(result.path) - 1
        if source.exists(node):
            parts.append(f"[[{note_basename(node)}]]")
            if not last:
                info = result.connection_types[i] if i < len(result.connection_types) else None
                parts.append(connection_symbol(info))
        else:
            parts.append(node)
            if not last:
                parts.append(" → ")
    return "".join(parts)


def _footer(generated_at: datetime) -> List[str]:
    return ["---", f"Analysis generated: {generated_at.isoformat(timespec='seconds')}", "---"]


def analysis_to_markdown(
    analysis: PathAnalysis, source: DocumentSource, generated_at: Optional[datetime] = None
) -> str:
    generated_at = generated_at or datetime.now()
    start, end = note_basename(analysis.start), note_basename(analysis.end)
    lines = [f"# Connection Analysis: {start} → {end}", ""]

    if analysis.cancelled:
        lines += ["> Analysis was cancelled; results are incomplete.", ""]

    lines += ["## Shortest Path", ""]
    if analysis.shortest.found:
        lines += [
            f"Distance: {analysis.shortest.distance}",
            "",
            path_to_markdown(analysis.shortest, source),
            "",
        ]
    else:
        lines += ["No path found between these notes.", ""]

    if len(analysis.alternatives) > 1:
        lines += ["## Alternative Paths", ""]
        for index, result in enumerate(analysis.alternatives[1:], start=1):
            lines.append(f"{index}. ({result.distance} steps) {path_to_markdown(result, source)}")
        lines.append("")

    interior = {node: value for node, value in analysis.betweenness.items() if value > 0}
    if interior:
        lines += ["## Betweenness Centrality", ""]
        for node, value in sorted(interior.items(), key=lambda item: item[1], reverse=True):
            lines.append(f"- [[{note_basename(node)}]]: {value}/10")
        lines.append("")

    if analysis.clustering:
        lines += ["## Clustering Coefficient", ""]
        for node, value in analysis.clustering.items():
            lines.append(f"- [[{note_basename(node)}]]: {value * 100:.1f}%")
        lines.append("")

    return "\n".join(lines + _footer(generated_at)) + "\n"


def hubs_to_markdown(
    notes: List[NoteImportance],
    generated_at: Optional[datetime] = None,
    sort_by: HubMetric = HubMetric.PAGE_RANK,
) -> str:
    generated_at = generated_at or datetime.now()
    lines = [
        "# Hub Notes Analysis",
        "",
        f"## Top {len(notes)} Hub Notes by {HubMetric(sort_by).label}",
        "",
        "| Rank | Note | PageRank | In | Out | Total | Eigenvector | Bridging |",
        "|---|---|---|---|---|---|---|---|",
    ]
    for rank, note in enumerate(notes, start=1):
        lines.append(
            f"| {rank} | [[{note.basename}]] | {note.page_rank:.3f} | {note.in_degree} "
            f"| {note.out_degree} | {note.total_degree} | {note.eigenvector_centrality:.3f} "
            f"| {note.bridging_coefficient:.3f} |"
        )
    lines.append("")
    return "\n".join(lines + _footer(generated_at)) + "\n"


def report_file_name(prefix: str, now: Optional[datetime] = None) -> str:
    timestamp = (now or datetime.now()).isoformat(timespec="seconds").replace(":", "-")
    return f"{prefix} {timestamp}.md"


def export_report(
    source: DocumentSource, markdown: str, prefix: str = "Connection Analysis",
    now: Optional[datetime] = None,
) -> str:
    """Write ``markdown`` as a new note and return its path."""
    path = source.create_document(report_file_name(prefix, now), markdown)
    logger.info("Report exported", extra={"note_path": path})
    return path


__all__ = [
    "connection_symbol",
    "path_to_markdown",
    "analysis_to_markdown",
    "hubs_to_markdown",
    "report_file_name",
    "export_report",
]
