"""
======================== ÍNDICE / INDEX ========================
1. Descripción general / Overview
2. Componentes principales / Main components
3. Notas de mantenimiento / Maintenance notes

======================== ESPAÑOL ========================
Archivo: `src/tallyview/cli.py`.
Interfaz de línea de comandos de Tallyview: resultados, exportación y conteo
en vivo sin pantalla.

Componentes:
  - results
  - export
  - live

======================== ENGLISH ========================
File: `src/tallyview/cli.py`.
Tallyview command line interface: results, export and a headless live count.

Components:
  - results
  - export
  - live
"""

from __future__ import annotations

import time
from enum import Enum
from pathlib import Path
from typing import Optional

import typer

from .config import TallyviewSettings, load_config
from .core.aggregator import aggregate, winners
from .core.models import AggregatedResults, PositionResults
from .core.paginator import paginate
from .fetcher import FetchError, ResultsFetcher
from .logging import setup_logging
from .reports.export import build_results_pdf, results_to_csv
from .session import LiveCountSession

app = typer.Typer(help="Tallyview election results CLI")


class ExportFormat(str, Enum):
    CSV = "csv"
    PDF = "pdf"


def _settings() -> TallyviewSettings:
    try:
        settings = load_config()
    except ValueError as exc:
        typer.echo(str(exc), err=True)
        raise typer.Exit(code=1) from exc
    setup_logging(settings.LOG_LEVEL, settings.STORAGE_PATH)
    return settings


def _build_fetcher(settings: TallyviewSettings) -> ResultsFetcher:
    return ResultsFetcher.from_settings(settings)


def _fetch_results(settings: TallyviewSettings, election_id: int) -> AggregatedResults:
    with _build_fetcher(settings) as fetcher:
        try:
            election = fetcher.fetch_election(election_id)
        except FetchError as exc:
            typer.echo(f"Error: {exc}", err=True)
            raise typer.Exit(code=1) from exc
    return aggregate(election, tz=settings.TIMEZONE)


def _echo_position(position: PositionResults, page: int, limit: int) -> None:
    current = paginate(position.ranked_candidates, page=page, limit=limit)
    typer.echo(f"\n{position.name} ({position.total_votes} votes)")
    if not current.items:
        typer.echo("  No candidates")
        return
    for entry in current.items:
        party = f" ({entry.candidate.party})" if entry.candidate.party else ""
        marker = "  [WINNER]" if entry.is_winner else ""
        typer.echo(
            f"  {entry.rank}. {entry.display_name}{party}: "
            f"{entry.vote_count} votes, {entry.vote_percentage:.2f}%{marker}"
        )
    if current.total_pages > 1:
        typer.echo(f"  Page {current.page}/{current.total_pages}")


def _echo_header(results: AggregatedResults) -> None:
    typer.echo(f"{results.title or f'Election #{results.election_id}'} [{results.status.value}]")
    typer.echo(
        f"Turnout: {results.turnout_percentage:.2f}% ({results.vote_count}/{results.voter_count})"
    )
    if results.time_remaining is not None:
        typer.echo(f"Time remaining: {results.time_remaining.label}")


@app.callback()
def main() -> None:
    """Interfaz de línea de comandos de Tallyview.

    English: Tallyview command line interface.
    """


@app.command()
def results(
    election_id: int = typer.Argument(..., help="Election id"),
    page: int = typer.Option(1, "--page", min=1, help="Candidate page within each position"),
) -> None:
    """Muestra el ranking por posición.

    English: Print the ranking for every position.
    """
    settings = _settings()
    aggregated = _fetch_results(settings, election_id)
    _echo_header(aggregated)
    for position in aggregated.positions:
        _echo_position(position, page, settings.RESULTS_PAGE_LIMIT)

    typer.echo("\nWinners:")
    found = False
    for position, winner in winners(aggregated):
        found = True
        typer.echo(f"  {position.name}: {winner.display_name}")
    if not found:
        typer.echo("  None yet")


@app.command()
def export(
    election_id: int = typer.Argument(..., help="Election id"),
    fmt: ExportFormat = typer.Option(ExportFormat.CSV, "--format", case_sensitive=False),
    output: Optional[Path] = typer.Option(None, "--output", "-o", help="Destination file"),
) -> None:
    """Exporta los resultados a CSV o PDF.

    English: Export the results to CSV or PDF.
    """
    settings = _settings()
    aggregated = _fetch_results(settings, election_id)
    destination = output or Path(f"election_{election_id}_results.{fmt.value}")
    destination.parent.mkdir(parents=True, exist_ok=True)
    if fmt is ExportFormat.PDF:
        destination.write_bytes(build_results_pdf(aggregated, election_title=aggregated.title))
    else:
        destination.write_text(results_to_csv(aggregated), encoding="utf-8")
    typer.echo(f"Exported {fmt.value.upper()} to {destination}")


@app.command()
def live(
    election_id: int = typer.Argument(..., help="Election id"),
    ticks: Optional[int] = typer.Option(None, "--ticks", min=1, help="Stop after N refresh intervals"),
) -> None:
    """Conteo parcial en vivo sin pantalla.

    English:
        Headless live partial count. Runs until interrupted, or for
        ``--ticks`` refresh intervals.
    """
    settings = _settings()
    with _build_fetcher(settings) as fetcher:
        session = LiveCountSession.from_settings(fetcher, election_id, settings)
        if not session.refresh():
            typer.echo(f"Error: {session.error.value}", err=True)
            raise typer.Exit(code=1)

        def _show(current: Optional[AggregatedResults]) -> None:
            position = session.current_position()
            if current is None or position is None:
                return
            winner = position.winner
            leader = winner.display_name if winner else "no votes yet"
            typer.echo(f"[{current.turnout_percentage:.2f}%] {position.name}: {leader}")

        _show(session.results.value)
        unsubscribe = session.results.subscribe(_show)
        session.start()
        try:
            elapsed = 0
            while ticks is None or elapsed < ticks:
                time.sleep(settings.REFRESH_INTERVAL_SECONDS)
                elapsed += 1
        except KeyboardInterrupt:
            typer.echo("Stopping live count")
        finally:
            unsubscribe()
            session.stop()

        error = session.error.value
        if error is not None:
            typer.echo(f"Last refresh failed: {error}", err=True)


if __name__ == "__main__":
    app()
