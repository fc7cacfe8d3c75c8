"""
======================== ÍNDICE / INDEX ========================
1. Descripción general / Overview
2. Componentes principales / Main components
3. Notas de mantenimiento / Maintenance notes

======================== ESPAÑOL ========================
Archivo: `conftest.py`.
Fixtures compartidas de Tallyview: bloqueo de red, limpieza de logging y
payloads de elección de ejemplo.

Componentes detectados:
  - block_network
  - reset_logging
  - election_payload
  - voter_codes_payload
  - votes_per_candidate_payload

======================== ENGLISH ========================
File: `conftest.py`.
Shared Tallyview fixtures: network blocking, logging cleanup and sample
election payloads.

Detected components:
  - block_network
  - reset_logging
  - election_payload
  - voter_codes_payload
  - votes_per_candidate_payload
"""

from __future__ import annotations

import logging
import socket
import sys
from pathlib import Path
from typing import Any, Dict, List

import pytest
import structlog

REPO_ROOT = Path(__file__).resolve().parent
SRC_ROOT = REPO_ROOT / "src"
if str(SRC_ROOT) not in sys.path:
    sys.path.insert(0, str(SRC_ROOT))


@pytest.fixture(autouse=True)
def block_network(monkeypatch: pytest.MonkeyPatch) -> None:
    """Impide conexiones de red reales en tests.

    English:
        Prevents real network connections in tests.
    """

    def guarded_connect(*args: Any, **kwargs: Any) -> None:
        raise RuntimeError("Network access is disabled during tests.")

    def guarded_create_connection(*args: Any, **kwargs: Any) -> None:
        raise RuntimeError("Network access is disabled during tests.")

    monkeypatch.setattr(socket.socket, "connect", guarded_connect, raising=True)
    monkeypatch.setattr(socket, "create_connection", guarded_create_connection, raising=True)


@pytest.fixture(autouse=True)
def reset_logging():
    """Quita handlers que un test haya instalado con ``setup_logging``.

    English: Drop handlers a test installed through ``setup_logging``.
    """
    yield
    root = logging.getLogger()
    for handler in list(root.handlers):
        root.removeHandler(handler)
        handler.close()
    structlog.reset_defaults()


@pytest.fixture
def election_payload() -> Dict[str, Any]:
    """Respuesta de ``/elections/{id}/details`` con dos posiciones.

    English: ``/elections/{id}/details`` response with two positions.
    """
    return {
        "election": {
            "id": 7,
            "title": "Student Council 2024",
            "status": "ongoing",
            "date_from": "2024-05-01",
            "date_to": "2024-05-03",
            "start_time": "08:00:00",
            "end_time": "17:00:00",
            "voter_count": 100,
            "vote_count": 80,
            "positions": [
                {
                    "id": 1,
                    "name": "President",
                    "max_choices": 1,
                    "candidates": [
                        {"id": 11, "first_name": "juan", "last_name": "cruz", "vote_count": 40, "party": "Alpha"},
                        {"id": 12, "first_name": "maria", "last_name": "dela cruz", "vote_count": 40},
                        {"id": 13, "first_name": "pedro", "last_name": "santos", "vote_count": 20},
                    ],
                },
                {
                    "id": 2,
                    "name": "Treasurer",
                    "max_choices": 1,
                    "candidates": [
                        {"id": 21, "first_name": "ana", "last_name": "reyes", "vote_count": None},
                        {"id": 22, "first_name": "", "last_name": "", "party": "independent crusaders"},
                    ],
                },
            ],
        }
    }


@pytest.fixture
def voter_codes_payload() -> List[Dict[str, Any]]:
    return [{"verificationCode": f"CODE-{index:03d}", "voteDate": "2024-05-01T09:00:00Z"} for index in range(120)]


@pytest.fixture
def votes_per_candidate_payload() -> Dict[str, Any]:
    return {
        "positions": [
            {
                "id": 1,
                "name": "President",
                "candidates": [
                    {
                        "id": 11,
                        "first_name": "Juan",
                        "last_name": "Cruz",
                        "voters": [{"verification_code": f"P-{index}"} for index in range(60)],
                    },
                    {"id": 12, "first_name": "Maria", "last_name": "Dela Cruz", "voters": []},
                ],
            }
        ]
    }
