"""Agregación, ranking y participación de resultados electorales.

English:
    Election results aggregation, ranking and turnout.

    Every consumer (live count, final results, bulletin and exports) goes
    through :func:`aggregate` so the numbers shown anywhere are the same.
    All helpers are total: zero denominators yield ``0.0`` and malformed
    counts are logged, never raised.
"""

from __future__ import annotations

from datetime import datetime, time, timedelta, tzinfo
from typing import Iterable, List, Optional, Sequence, Tuple
from zoneinfo import ZoneInfo

import structlog

from .models import (
    AggregatedResults,
    Candidate,
    Election,
    ElectionStatus,
    Position,
    PositionResults,
    RankedCandidate,
    TimeRemaining,
)

logger = structlog.get_logger(__name__)

DEFAULT_TIMEZONE = "Asia/Manila"
TOP_CANDIDATES = 3
MIN_CANDIDATES_PER_POSITION = 2
DEFAULT_START_TIME = time(0, 0)
DEFAULT_END_TIME = time(23, 59)

_FROZEN_STATUSES = {ElectionStatus.DRAFT, ElectionStatus.ARCHIVED}


def _count(value: Optional[int]) -> int:
    if not value or value < 0:
        return 0
    return int(value)


def ratio_percentage(numerator: Optional[int], denominator: Optional[int]) -> float:
    """Porcentaje redondeado a 2 decimales con división protegida.

    English: Percentage rounded to 2 decimals; ``0.0`` when the denominator is zero.
    """
    denominator = _count(denominator)
    if denominator == 0:
        return 0.0
    return round(_count(numerator) / denominator * 100, 2)


def vote_percentage(vote_count: Optional[int], voter_count: Optional[int]) -> float:
    """Votos del candidato sobre votantes habilitados.

    English: Candidate votes as a share of eligible voters.
    """
    return ratio_percentage(vote_count, voter_count)


def turnout_percentage(vote_count: Optional[int], voter_count: Optional[int]) -> float:
    """Boletas emitidas sobre votantes habilitados.

    English: Ballots cast as a share of eligible voters.
    """
    return ratio_percentage(vote_count, voter_count)


def rank_candidates(
    candidates: Sequence[Candidate], voter_count: Optional[int]
) -> Tuple[RankedCandidate, ...]:
    """Ordena por votos descendente conservando el orden original en empates.

    English:
        Sort by votes descending, keeping input order among ties (Python's
        sort is stable). Only rank 1 with at least one vote is a winner.
    """
    ordered = sorted(candidates, key=lambda candidate: -_count(candidate.vote_count))
    ranked: List[RankedCandidate] = []
    for index, candidate in enumerate(ordered):
        rank = index + 1
        votes = _count(candidate.vote_count)
        ranked.append(
            RankedCandidate(
                candidate=candidate,
                rank=rank,
                vote_percentage=vote_percentage(votes, voter_count),
                is_winner=rank == 1 and votes > 0,
            )
        )
    return tuple(ranked)


def aggregate_position(position: Position, voter_count: Optional[int]) -> PositionResults:
    """Resultados de una sola posición.

    English: Results for a single position.
    """
    if len(position.candidates) < MIN_CANDIDATES_PER_POSITION:
        logger.warning(
            "invariant_position_too_few_candidates",
            position_id=position.id,
            position_name=position.name,
            candidates=len(position.candidates),
        )
    ranked = rank_candidates(position.candidates, voter_count)
    return PositionResults(
        id=position.id,
        name=position.name,
        max_choices=position.max_choices,
        ranked_candidates=ranked,
        top3=ranked[:TOP_CANDIDATES],
        others=ranked[TOP_CANDIDATES:],
        total_votes=sum(entry.vote_count for entry in ranked),
    )


def _resolve_timezone(tz: Optional[tzinfo | str]) -> tzinfo:
    if tz is None:
        return ZoneInfo(DEFAULT_TIMEZONE)
    if isinstance(tz, str):
        return ZoneInfo(tz)
    return tz


def _localize(value: datetime, zone: tzinfo) -> datetime:
    if value.tzinfo is None:
        return value.replace(tzinfo=zone)
    return value.astimezone(zone)


def election_window(
    election: Election, tz: Optional[tzinfo | str] = None
) -> Tuple[Optional[datetime], Optional[datetime]]:
    """Inicio y cierre combinando fecha y hora en la zona configurada.

    English:
        Start and end datetimes combining date and time-of-day in the
        configured zone. Missing times default to 00:00 and 23:59.
    """
    zone = _resolve_timezone(tz)
    start = end = None
    if election.date_from is not None:
        start = datetime.combine(
            election.date_from, election.start_time or DEFAULT_START_TIME, tzinfo=zone
        )
    if election.date_to is not None:
        end = datetime.combine(election.date_to, election.end_time or DEFAULT_END_TIME, tzinfo=zone)
    return start, end


def compute_time_remaining(
    election: Election,
    now: Optional[datetime] = None,
    tz: Optional[tzinfo | str] = None,
) -> Optional[TimeRemaining]:
    """Cuenta regresiva para elecciones en curso.

    English:
        Countdown for ongoing elections; ``None`` for any other status or
        when no closing date is known.
    """
    if election.status != ElectionStatus.ONGOING:
        return None
    zone = _resolve_timezone(tz)
    _, end = election_window(election, zone)
    if end is None:
        return None
    current = _localize(now or datetime.now(zone), zone)
    remaining = end - current
    if remaining <= timedelta(0):
        return TimeRemaining(ended=True)

    total_seconds = int(remaining.total_seconds())
    days, rest = divmod(total_seconds, 86400)
    hours, rest = divmod(rest, 3600)
    minutes, seconds = divmod(rest, 60)
    return TimeRemaining(ended=False, days=days, hours=hours, minutes=minutes, seconds=seconds)


def derive_status(
    election: Election,
    now: Optional[datetime] = None,
    tz: Optional[tzinfo | str] = None,
) -> ElectionStatus:
    """Estado según la ventana de votación.

    English:
        Status implied by the voting window. Draft, archived and
        pending-approval elections keep their stored status.
    """
    if election.status in _FROZEN_STATUSES or election.needs_approval:
        return election.status
    zone = _resolve_timezone(tz)
    start, end = election_window(election, zone)
    if start is None or end is None:
        return election.status
    current = _localize(now or datetime.now(zone), zone)
    if current < start:
        return ElectionStatus.UPCOMING
    if current <= end:
        return ElectionStatus.ONGOING
    return ElectionStatus.COMPLETED


def _check_election_invariants(election: Election) -> None:
    if _count(election.vote_count) > _count(election.voter_count):
        logger.warning(
            "invariant_vote_count_exceeds_voters",
            election_id=election.id,
            vote_count=election.vote_count,
            voter_count=election.voter_count,
        )


def aggregate(
    election: Election,
    now: Optional[datetime] = None,
    tz: Optional[tzinfo | str] = None,
) -> AggregatedResults:
    """Agrega una instantánea de elección en resultados ordenados.

    Función pura: no hace E/S ni guarda estado. Llamarla dos veces con la
    misma entrada produce el mismo resultado.

    English:
        Aggregate an election snapshot into ranked results.

        Pure function: no I/O and no state. Calling it twice with the same
        input yields equal output.
    """
    _check_election_invariants(election)
    positions = tuple(
        aggregate_position(position, election.voter_count) for position in election.positions
    )
    results = AggregatedResults(
        election_id=election.id,
        title=election.title,
        status=election.status,
        positions=positions,
        turnout_percentage=turnout_percentage(election.vote_count, election.voter_count),
        vote_count=_count(election.vote_count),
        voter_count=_count(election.voter_count),
        time_remaining=compute_time_remaining(election, now, tz),
    )
    logger.debug(
        "election_aggregated",
        election_id=election.id,
        positions=len(positions),
        turnout_percentage=results.turnout_percentage,
    )
    return results


def winners(results: AggregatedResults) -> Iterable[Tuple[PositionResults, RankedCandidate]]:
    """Pares (posición, ganador) para las posiciones con ganador.

    English: (position, winner) pairs for positions that have a winner.
    """
    for position in results.positions:
        winner = position.winner
        if winner is not None:
            yield position, winner
