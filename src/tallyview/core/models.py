"""
======================== ÍNDICE / INDEX ========================
1. Descripción general / Overview
2. Componentes principales / Main components
3. Notas de mantenimiento / Maintenance notes

======================== ESPAÑOL ========================
Archivo: `src/tallyview/core/models.py`.
Este módulo forma parte de Tallyview y está documentado para facilitar
la navegación, mantenimiento y auditoría técnica.

Componentes detectados:
  - ElectionStatus
  - Candidate
  - Position
  - Election
  - RankedCandidate
  - PositionResults
  - TimeRemaining
  - AggregatedResults

Notas:
- Mantener esta cabecera sincronizada con cambios estructurales del archivo.
- Los modelos son instantáneas inmutables; nunca se persisten.

======================== ENGLISH ========================
File: `src/tallyview/core/models.py`.
This module is part of Tallyview and is documented to improve
navigation, maintenance, and technical auditability.

Detected components:
  - ElectionStatus
  - Candidate
  - Position
  - Election
  - RankedCandidate
  - PositionResults
  - TimeRemaining
  - AggregatedResults

Notes:
- Keep this header in sync with structural changes in the file.
- Models are immutable snapshots; they are never persisted.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date, time
from enum import Enum
from typing import Any, Dict, Optional, Tuple

from .names import candidate_display_name


class ElectionStatus(str, Enum):
    """Estados del ciclo de vida de una elección.

    English: Election lifecycle states.
    """

    DRAFT = "draft"
    UPCOMING = "upcoming"
    ONGOING = "ongoing"
    COMPLETED = "completed"
    ARCHIVED = "archived"


@dataclass(frozen=True)
class Candidate:
    """Candidato (persona o planilla) con su conteo bruto.

    Attributes:
        id (int): Identificador del candidato.
        first_name (str): Nombre; vacío para entradas de grupo.
        last_name (str): Apellido.
        vote_count (int): Votos registrados en esta posición.
        party (Optional[str]): Partylist al que pertenece.

    English:
        Candidate (person or ticket entry) with its raw tally.

    Attributes:
        id (int): Candidate identifier.
        first_name (str): First name; empty for group entries.
        last_name (str): Last name.
        vote_count (int): Votes recorded in this position.
        party (Optional[str]): Partylist the candidate belongs to.
    """

    id: int
    first_name: str = ""
    last_name: str = ""
    vote_count: int = 0
    party: Optional[str] = None
    slogan: Optional[str] = None
    platform: Optional[str] = None
    image_url: Optional[str] = None

    @property
    def display_name(self) -> str:
        return candidate_display_name(self.first_name, self.last_name, self.party)


@dataclass(frozen=True)
class Position:
    """Cargo electivo de la papeleta.

    English: Electable office on the ballot.
    """

    id: int
    name: str
    max_choices: int = 1
    candidates: Tuple[Candidate, ...] = ()


@dataclass(frozen=True)
class Election:
    """Instantánea de una elección tal como la entrega la API.

    English:
        Election snapshot as supplied by the API. ``voter_count`` is the
        number of eligible voters and ``vote_count`` the ballots cast.
    """

    id: int
    title: str = ""
    description: str = ""
    status: ElectionStatus = ElectionStatus.DRAFT
    needs_approval: bool = False
    date_from: Optional[date] = None
    date_to: Optional[date] = None
    start_time: Optional[time] = None
    end_time: Optional[time] = None
    voter_count: int = 0
    vote_count: int = 0
    created_by: Optional[str] = None
    created_by_role: Optional[str] = None
    positions: Tuple[Position, ...] = ()

    def __post_init__(self) -> None:
        # Plain strings such as "ongoing" are accepted and stored as the enum.
        if not isinstance(self.status, ElectionStatus):
            object.__setattr__(self, "status", ElectionStatus(self.status))


@dataclass(frozen=True)
class RankedCandidate:
    """Candidato con rango y porcentaje derivados.

    English: Candidate wrapped with derived rank, percentage and winner flag.
    """

    candidate: Candidate
    rank: int
    vote_percentage: float
    is_winner: bool

    @property
    def id(self) -> int:
        return self.candidate.id

    @property
    def vote_count(self) -> int:
        return self.candidate.vote_count

    @property
    def display_name(self) -> str:
        return self.candidate.display_name

    def as_dict(self) -> Dict[str, Any]:
        return {
            "id": self.candidate.id,
            "first_name": self.candidate.first_name,
            "last_name": self.candidate.last_name,
            "display_name": self.display_name,
            "party": self.candidate.party,
            "slogan": self.candidate.slogan,
            "platform": self.candidate.platform,
            "image_url": self.candidate.image_url,
            "vote_count": self.candidate.vote_count,
            "rank": self.rank,
            "vote_percentage": self.vote_percentage,
            "is_winner": self.is_winner,
        }


@dataclass(frozen=True)
class PositionResults:
    """Resultados ordenados de una posición.

    English:
        Ordered results for one position. ``top3`` and ``others`` partition
        ``ranked_candidates`` while keeping its order.
    """

    id: int
    name: str
    max_choices: int
    ranked_candidates: Tuple[RankedCandidate, ...] = ()
    top3: Tuple[RankedCandidate, ...] = ()
    others: Tuple[RankedCandidate, ...] = ()
    total_votes: int = 0

    @property
    def winner(self) -> Optional[RankedCandidate]:
        for entry in self.ranked_candidates:
            if entry.is_winner:
                return entry
        return None

    def as_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "max_choices": self.max_choices,
            "total_votes": self.total_votes,
            "ranked_candidates": [entry.as_dict() for entry in self.ranked_candidates],
            "top3": [entry.as_dict() for entry in self.top3],
            "others": [entry.as_dict() for entry in self.others],
        }


@dataclass(frozen=True)
class TimeRemaining:
    """Cuenta regresiva hasta el cierre de una elección en curso.

    English: Countdown until an ongoing election closes.
    """

    ended: bool
    days: int = 0
    hours: int = 0
    minutes: int = 0
    seconds: int = 0

    @property
    def label(self) -> str:
        if self.ended:
            return "Ended"
        if self.days > 0:
            return f"{self.days}d {self.hours}h {self.minutes}m"
        if self.hours > 0:
            return f"{self.hours}h {self.minutes}m {self.seconds}s"
        return f"{self.minutes}m {self.seconds}s"


@dataclass(frozen=True)
class AggregatedResults:
    """Salida completa del agregador para una elección.

    English: Full aggregator output for one election.
    """

    election_id: int
    title: str
    status: ElectionStatus
    positions: Tuple[PositionResults, ...] = ()
    turnout_percentage: float = 0.0
    vote_count: int = 0
    voter_count: int = 0
    time_remaining: Optional[TimeRemaining] = None

    def position(self, position_id: int) -> Optional[PositionResults]:
        for entry in self.positions:
            if entry.id == position_id:
                return entry
        return None

    def as_dict(self) -> Dict[str, Any]:
        return {
            "election_id": self.election_id,
            "title": self.title,
            "status": self.status.value,
            "positions": [entry.as_dict() for entry in self.positions],
            "turnout_percentage": self.turnout_percentage,
            "vote_count": self.vote_count,
            "voter_count": self.voter_count,
            "time_remaining": self.time_remaining.label if self.time_remaining else None,
        }
