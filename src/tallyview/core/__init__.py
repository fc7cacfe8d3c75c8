"""Núcleo de cálculo de resultados (sin E/S).

English: Results computation core (no I/O).
"""

from .aggregator import aggregate, compute_time_remaining, derive_status
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
from .names import candidate_display_name, format_display_name

__all__ = [
    "AggregatedResults",
    "Candidate",
    "Election",
    "ElectionStatus",
    "Position",
    "PositionResults",
    "RankedCandidate",
    "TimeRemaining",
    "aggregate",
    "candidate_display_name",
    "compute_time_remaining",
    "derive_status",
    "format_display_name",
]
