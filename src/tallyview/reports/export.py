"""Ensamblador de exportación de resultados (CSV/PDF).

English:
    Results export assembler (CSV/PDF).

    Rows are re-shaped from an :class:`AggregatedResults` object and nothing
    else: ranks, percentages and winner flags are copied, never recomputed,
    so an export always agrees with what the views show.
"""

from __future__ import annotations

import datetime as dt
import io
from dataclasses import asdict, dataclass
from typing import Any, Iterable, List, Mapping, Optional, Tuple
from xml.sax.saxutils import escape

import pandas as pd
import structlog
from reportlab.lib import colors
from reportlab.lib.pagesizes import A4
from reportlab.lib.styles import ParagraphStyle, getSampleStyleSheet
from reportlab.lib.units import cm
from reportlab.platypus import Paragraph, SimpleDocTemplate, Spacer, Table, TableStyle

from ..core.models import AggregatedResults

logger = structlog.get_logger(__name__)

RESULT_COLUMNS = [
    "position_name",
    "candidate_name",
    "party",
    "vote_count",
    "vote_percentage",
    "rank",
    "is_winner",
    "status",
]
AUDIT_LOG_COLUMNS = ["ID", "Time", "User", "Role", "Action", "Entity Type", "Entity ID"]
WINNER_LABEL = "Winner"
RUNNER_UP_LABEL = "Runner-up"


@dataclass(frozen=True)
class ResultRow:
    """Fila plana de exportación para un candidato.

    English: Flat export row for one candidate.
    """

    position_name: str
    candidate_name: str
    party: str
    vote_count: int
    vote_percentage: float
    rank: int
    is_winner: bool
    status: str


@dataclass(frozen=True)
class PositionRowGroup:
    """Filas de una posición, en el orden del agregado.

    English: One position's rows, in aggregate order.
    """

    position_id: int
    position_name: str
    total_votes: int
    rows: Tuple[ResultRow, ...] = ()


def assemble_rows(results: AggregatedResults) -> List[PositionRowGroup]:
    """Re-forma el agregado en grupos de filas por posición.

    English:
        Re-shape the aggregate into row groups, one per position. Values are
        copied from the ranked entries as-is.
    """
    groups: List[PositionRowGroup] = []
    for position in results.positions:
        rows = tuple(
            ResultRow(
                position_name=position.name,
                candidate_name=entry.display_name,
                party=entry.candidate.party or "",
                vote_count=entry.vote_count,
                vote_percentage=entry.vote_percentage,
                rank=entry.rank,
                is_winner=entry.is_winner,
                status=WINNER_LABEL if entry.is_winner else RUNNER_UP_LABEL,
            )
            for entry in position.ranked_candidates
        )
        groups.append(
            PositionRowGroup(
                position_id=position.id,
                position_name=position.name,
                total_votes=position.total_votes,
                rows=rows,
            )
        )
    return groups


def flatten_rows(groups: Iterable[PositionRowGroup]) -> List[ResultRow]:
    return [row for group in groups for row in group.rows]


def rows_to_dataframe(groups: Iterable[PositionRowGroup]) -> pd.DataFrame:
    records = [asdict(row) for row in flatten_rows(groups)]
    return pd.DataFrame.from_records(records, columns=RESULT_COLUMNS)


def rows_to_csv(groups: Iterable[PositionRowGroup]) -> str:
    """Exporta las filas como CSV con porcentajes a 2 decimales.

    English: Export the rows as CSV with percentages at 2 decimals.
    """
    frame = rows_to_dataframe(groups)
    return frame.to_csv(index=False, float_format="%.2f", lineterminator="\n")


def results_to_csv(results: AggregatedResults) -> str:
    return rows_to_csv(assemble_rows(results))


def _audit_user(entry: Mapping[str, Any]) -> str:
    email = entry.get("user_email")
    if email:
        return str(email)
    return f"User #{entry.get('user_id', '')}"


def _audit_time(value: Any) -> str:
    if isinstance(value, dt.datetime):
        return value.strftime("%Y-%m-%d %H:%M:%S")
    return "" if value is None else str(value)


def audit_log_to_csv(entries: Iterable[Mapping[str, Any]]) -> str:
    """Exporta registros de auditoría al CSV de administración.

    English:
        Export audit log entries to the admin CSV layout. ``User`` falls back
        to ``User #<user_id>`` when no email is present.
    """
    records = [
        [
            entry.get("id", ""),
            _audit_time(entry.get("created_at")),
            _audit_user(entry),
            entry.get("user_role") or "",
            entry.get("action") or "",
            entry.get("entity_type") or "",
            entry.get("entity_id") or "",
        ]
        for entry in entries
    ]
    frame = pd.DataFrame(records, columns=AUDIT_LOG_COLUMNS)
    return frame.to_csv(index=False, lineterminator="\n")


def _build_story(
    results: AggregatedResults,
    groups: List[PositionRowGroup],
    election_title: str,
    generated_at: dt.datetime,
) -> List[Any]:
    """Construye el flujo de elementos del PDF.

    English: Build the PDF story.
    """
    styles = getSampleStyleSheet()
    title_style = ParagraphStyle(
        "TallyviewTitle", parent=styles["Heading1"], fontSize=18, textColor=colors.HexColor("#0B1F3B")
    )
    section_style = ParagraphStyle(
        "TallyviewSection", parent=styles["Heading2"], fontSize=13, textColor=colors.HexColor("#163A63")
    )
    body_style = styles["BodyText"]

    story: List[Any] = []
    heading = election_title or results.title or f"Election #{results.election_id}"
    story.append(Paragraph(escape(heading), title_style))
    story.append(Spacer(1, 0.3 * cm))

    summary_table = Table(
        [
            ["Generated", generated_at.strftime("%Y-%m-%d %H:%M")],
            ["Status", results.status.value.capitalize()],
            ["Votes cast", str(results.vote_count)],
            ["Eligible voters", str(results.voter_count)],
            ["Turnout", f"{results.turnout_percentage:.2f}%"],
        ],
        colWidths=[5.0 * cm, 11.0 * cm],
    )
    summary_table.setStyle(
        TableStyle(
            [
                ("BACKGROUND", (0, 0), (0, -1), colors.HexColor("#E2E8F0")),
                ("GRID", (0, 0), (-1, -1), 0.4, colors.HexColor("#94A3B8")),
                ("FONTNAME", (0, 0), (-1, -1), "Helvetica"),
                ("FONTSIZE", (0, 0), (-1, -1), 9),
            ]
        )
    )
    story.append(summary_table)
    story.append(Spacer(1, 0.5 * cm))

    for group in groups:
        story.append(Paragraph(f"{escape(group.position_name)} ({group.total_votes} votes)", section_style))
        table_rows = [["Rank", "Candidate", "Party", "Votes", "%", "Status"]]
        table_rows += [
            [
                str(row.rank),
                row.candidate_name,
                row.party or "-",
                str(row.vote_count),
                f"{row.vote_percentage:.2f}",
                row.status,
            ]
            for row in group.rows
        ]
        if len(table_rows) == 1:
            table_rows.append(["-", "No candidates", "-", "-", "-", "-"])
        table = Table(table_rows, repeatRows=1)
        style = [
            ("GRID", (0, 0), (-1, -1), 0.35, colors.HexColor("#CBD5E1")),
            ("BACKGROUND", (0, 0), (-1, 0), colors.HexColor("#1E3A5F")),
            ("TEXTCOLOR", (0, 0), (-1, 0), colors.white),
            ("FONTSIZE", (0, 0), (-1, -1), 8),
        ]
        for offset, row in enumerate(group.rows, start=1):
            if row.is_winner:
                style.append(("BACKGROUND", (0, offset), (-1, offset), colors.HexColor("#DCFCE7")))
        table.setStyle(TableStyle(style))
        story.append(table)
        story.append(Spacer(1, 0.5 * cm))

    if not groups:
        story.append(Paragraph("No positions to report.", body_style))
    return story


def build_results_pdf(
    results: AggregatedResults,
    election_title: Optional[str] = None,
    generated_at: Optional[dt.datetime] = None,
) -> bytes:
    """Genera el PDF de resultados a partir de las filas ensambladas.

    English: Render the results PDF from the assembled rows.
    """
    generated_at = generated_at or dt.datetime.now(dt.timezone.utc)
    groups = assemble_rows(results)

    buffer = io.BytesIO()
    doc = SimpleDocTemplate(
        buffer,
        pagesize=A4,
        leftMargin=1.8 * cm,
        rightMargin=1.8 * cm,
        topMargin=1.6 * cm,
        bottomMargin=1.6 * cm,
        title=election_title or results.title,
    )

    def _footer(canvas_obj: Any, _doc: Any) -> None:
        canvas_obj.saveState()
        canvas_obj.setFont("Helvetica", 8)
        canvas_obj.setFillColor(colors.HexColor("#334155"))
        canvas_obj.drawString(1.8 * cm, 1.0 * cm, "Tallyview election results")
        canvas_obj.drawRightString(A4[0] - 1.8 * cm, 1.0 * cm, f"Page {canvas_obj.getPageNumber()}")
        canvas_obj.restoreState()

    story = _build_story(results, groups, election_title or "", generated_at)
    doc.build(story, onFirstPage=_footer, onLaterPages=_footer)
    logger.info("results_pdf_built", election_id=results.election_id, positions=len(groups))
    return buffer.getvalue()
