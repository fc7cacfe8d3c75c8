"""
======================== ÍNDICE / INDEX ========================
1. Descripción general / Overview
2. Componentes principales / Main components

======================== ESPAÑOL ========================
Archivo: `tests/test_session.py`.
Sesiones de vista: conteo en vivo y boletín con un fetcher falso.

======================== ENGLISH ========================
File: `tests/test_session.py`.
View sessions: live count and bulletin against a fake fetcher.
"""

from datetime import datetime
from zoneinfo import ZoneInfo

import pytest

from tallyview.config import TallyviewSettings
from tallyview.core.paginator import ContentKind
from tallyview.fetcher import FetchError
from tallyview.schemas import parse_election_details, parse_voter_codes, parse_votes_per_candidate
from tallyview.session import BulletinSession, LiveCountSession, Observable

NOW = datetime(2024, 5, 1, 13, 45, tzinfo=ZoneInfo("Asia/Manila"))


class FakeFetcher:
    """Español: Fetcher en memoria con fallos programables.

    English: In-memory fetcher with scripted failures.
    """

    def __init__(self, election_payload, voter_codes=None, votes=None):
        self.election_payload = election_payload
        self.voter_codes = voter_codes or []
        self.votes = votes or {"positions": []}
        self.failures = []
        self.vote_failures = []
        self.calls = 0

    def fetch_election(self, election_id):
        self.calls += 1
        if self.failures:
            raise self.failures.pop(0)
        return parse_election_details(self.election_payload)

    def fetch_voter_codes(self, election_id):
        return parse_voter_codes(self.voter_codes)

    def fetch_votes_per_candidate(self, election_id):
        if self.vote_failures:
            raise self.vote_failures.pop(0)
        return parse_votes_per_candidate(self.votes)


def test_observable_notifies_on_change_only():
    seen = []
    value = Observable(0)
    unsubscribe = value.subscribe(seen.append)

    value.set(1)
    value.set(1)
    unsubscribe()
    value.set(2)

    assert seen == [1]
    assert value.version == 2


def test_live_refresh_aggregates_and_ticks_countdown(election_payload):
    """Español: Función test_live_refresh_aggregates_and_ticks_countdown del módulo tests/test_session.py.

    English: Function test_live_refresh_aggregates_and_ticks_countdown defined in tests/test_session.py.
    """
    session = LiveCountSession(FakeFetcher(election_payload), 7, clock=lambda: NOW)

    assert session.refresh()

    results = session.results.value
    assert results.turnout_percentage == 80.0
    assert session.countdown.value.label == "2d 3h 15m"
    assert session.current_position().name == "President"
    assert session.current_position().winner.display_name == "Cruz, Juan"


def test_live_refresh_keeps_carousel_position(election_payload):
    session = LiveCountSession(FakeFetcher(election_payload), 7, clock=lambda: NOW)
    session.refresh()

    assert session.advance_carousel() == 1
    session.refresh()

    assert session.position_cursor.index == 1
    assert session.current_position().name == "Treasurer"
    assert session.advance_carousel() == 0


def test_live_select_position_clamps(election_payload):
    session = LiveCountSession(FakeFetcher(election_payload), 7, clock=lambda: NOW)
    session.refresh()
    assert session.select_position(9) == 1


def test_fetch_error_is_exposed_and_retry_clears_it(election_payload):
    """Español: Un fallo de red queda en ``error`` hasta reintentar con éxito.

    English: A fetch failure stays in ``error`` until a successful retry.
    """
    fetcher = FakeFetcher(election_payload)
    fetcher.failures.append(FetchError("Service unavailable", status_code=503))
    session = LiveCountSession(fetcher, 7, clock=lambda: NOW)
    errors = []
    session.error.subscribe(errors.append)

    assert not session.refresh()
    assert session.error.value.status_code == 503
    assert session.results.value is None

    assert session.retry()
    assert session.error.value is None
    assert [error is None for error in errors] == [False, True]


def test_live_session_registers_and_stops_timers(election_payload):
    session = LiveCountSession(
        FakeFetcher(election_payload),
        7,
        refresh_seconds=60,
        countdown_seconds=60,
        carousel_seconds=60,
        clock=lambda: NOW,
    )
    with session:
        assert session.tasks.names == ["refresh", "countdown", "position_carousel"]
        assert session.tasks.any_running
    assert not session.tasks.any_running


@pytest.fixture
def bulletin(election_payload, voter_codes_payload, votes_per_candidate_payload):
    fetcher = FakeFetcher(election_payload, voter_codes_payload, votes_per_candidate_payload)
    session = BulletinSession(fetcher, 7, page_size=50, clock=lambda: NOW)
    session.refresh()
    return session


def test_bulletin_sequence_counts(bulletin):
    """Español: 120 códigos (3 páginas), 60 votantes (2 páginas) y 2 posiciones.

    English: 120 codes (3 pages), 60 voters (2 pages) and 2 positions.
    """
    sequence = bulletin.sequence()
    assert sequence.voter_code_pages == 3
    assert sequence.candidate_total == 2
    assert sequence.total == 7
    assert bulletin.cursor.total_items == 7


def test_bulletin_renders_each_kind(bulletin):
    first = bulletin.current_page()
    assert first.kind is ContentKind.VOTER_CODES
    assert first.title == "All Voters"
    assert len(first.entries) == 50
    assert first.page_count == 3

    for _ in range(3):
        bulletin.advance()
    candidate_page = bulletin.current_page()
    assert candidate_page.kind is ContentKind.CANDIDATE_CODES
    assert candidate_page.title == "President: Cruz, Juan"
    assert candidate_page.page_count == 2

    for _ in range(2):
        bulletin.advance()
    winners_page = bulletin.current_page()
    assert winners_page.kind is ContentKind.WINNERS
    assert winners_page.title == "President"
    assert [entry.rank for entry in winners_page.entries] == [1, 2, 3]

    bulletin.advance()
    bulletin.advance()
    assert bulletin.cursor.index == 0


def test_empty_bulletin_has_no_content(election_payload):
    payload = {"election": {**election_payload["election"], "positions": []}}
    session = BulletinSession(FakeFetcher(payload), 7, clock=lambda: NOW)
    session.refresh()

    assert session.current_page() is None
    assert session.advance() == 0


def test_bulletin_candidate_titles_match_results_names(election_payload):
    """Español: El título por candidato usa el mismo nombre que los resultados.

    English: Per-candidate titles use the same name as the aggregated results.
    """
    votes = {
        "positions": [
            {
                "id": 2,
                "name": "Treasurer",
                "candidates": [
                    {
                        "id": 22,
                        "first_name": "",
                        "last_name": "",
                        "party": "independent crusaders",
                        "voters": [{"verification_code": "T-1"}],
                    },
                    {
                        "id": 21,
                        "first_name": "ana",
                        "last_name": "reyes",
                        "party": "alpha party",
                        "voters": [{"verification_code": "T-2"}],
                    },
                ],
            }
        ]
    }
    session = BulletinSession(FakeFetcher(election_payload, votes=votes), 7, clock=lambda: NOW)
    session.refresh()

    treasurer = {entry.id: entry.display_name for entry in session.results.value.positions[1].ranked_candidates}
    slate_page = session.current_page()
    session.advance()
    person_page = session.current_page()

    assert slate_page.title == "Treasurer: Independent Crusaders"
    assert slate_page.title == f"Treasurer: {treasurer[22]}"
    assert person_page.title == "Treasurer: Reyes, Ana"
    assert person_page.title == f"Treasurer: {treasurer[21]}"


def test_bulletin_pages_candidate_voters_with_their_own_size(
    election_payload, voter_codes_payload, votes_per_candidate_payload
):
    """Español: ``CANDIDATE_CODES_PAGE_SIZE`` pagina las listas por candidato.

    English: ``CANDIDATE_CODES_PAGE_SIZE`` pages the per-candidate lists.
    """
    settings = TallyviewSettings(
        API_BASE_URL="https://results.example.org/api",
        VOTER_CODES_PAGE_SIZE=50,
        CANDIDATE_CODES_PAGE_SIZE=10,
    )
    fetcher = FakeFetcher(election_payload, voter_codes_payload, votes_per_candidate_payload)
    session = BulletinSession.from_settings(fetcher, 7, settings, clock=lambda: NOW)
    session.refresh()

    sequence = session.sequence()
    assert sequence.voter_code_pages == 3
    assert sequence.candidate_pages == [[6, 0]]
    assert session.cursor.total_items == 3 + 6 + 2

    session.cursor.go_to(3)
    candidate_page = session.current_page()
    assert candidate_page.kind is ContentKind.CANDIDATE_CODES
    assert len(candidate_page.entries) == 10
    assert candidate_page.page_count == 6


def test_bulletin_failed_refresh_keeps_previous_snapshot(
    election_payload, voter_codes_payload, votes_per_candidate_payload
):
    """Español: Un fallo a mitad del refresco no publica datos parciales.

    English: A failure midway through a refresh publishes no partial data.
    """
    fetcher = FakeFetcher(election_payload, voter_codes_payload, votes_per_candidate_payload)
    session = BulletinSession(fetcher, 7, page_size=50, clock=lambda: NOW)
    assert session.refresh()
    before = session.snapshot
    results = session.results.value

    fetcher.voter_codes = []
    fetcher.election_payload = {"election": {**election_payload["election"], "vote_count": 90}}
    fetcher.vote_failures.append(FetchError("Service unavailable", status_code=503))

    assert not session.refresh()
    assert session.error.value.status_code == 503
    assert session.snapshot is before
    assert session.results.value is results
    assert session.results.value.vote_count == 80
    assert len(session.voter_codes) == 120
    assert len(session.votes_per_candidate) == 1
    assert session.cursor.total_items == 7


def test_bulletin_renders_item_against_its_own_snapshot(
    election_payload, voter_codes_payload, votes_per_candidate_payload
):
    """Español: Un elemento resuelto antes de un refresco sigue siendo válido.

    English: An item resolved before a refresh still renders from its snapshot.
    """
    fetcher = FakeFetcher(election_payload, voter_codes_payload, votes_per_candidate_payload)
    session = BulletinSession(fetcher, 7, page_size=50, clock=lambda: NOW)
    session.refresh()
    held = session.snapshot
    item = session.sequence(held).resolve(4)

    fetcher.votes = {"positions": []}
    fetcher.voter_codes = voter_codes_payload[:10]
    assert session.refresh()

    page = session.render(item, held)
    assert page.title == "President: Cruz, Juan"
    assert page.page_index == 1
    assert len(page.entries) == 10

    session.cursor.go_to(4)
    current = session.current_page()
    assert session.sequence().total == 1 + 0 + 2
    assert current.kind is ContentKind.WINNERS
