import httpx
import pytest
from tenacity import wait_none

from tallyview.fetcher import AccessDeniedError, ElectionNotFoundError, FetchError, ResultsFetcher

BASE_URL = "https://api.example.com"
DETAILS_URL = f"{BASE_URL}/elections/7/details"


@pytest.fixture
def fetcher():
    client = ResultsFetcher(BASE_URL, token="secret", retry_attempts=3, wait=wait_none())
    yield client
    client.close()


def test_fetch_election_parses_details(httpx_mock, fetcher, election_payload):
    """Español: Función test_fetch_election_parses_details del módulo tests/test_fetcher.py.

    English: Function test_fetch_election_parses_details defined in tests/test_fetcher.py.
    """
    httpx_mock.add_response(url=DETAILS_URL, json=election_payload)

    election = fetcher.fetch_election(7)

    assert election.id == 7
    assert len(election.positions) == 2
    request = httpx_mock.get_request()
    assert request.headers["Authorization"] == "Bearer secret"


def test_forbidden_maps_to_access_denied(httpx_mock, fetcher):
    httpx_mock.add_response(url=DETAILS_URL, status_code=403, json={"message": "nope"})

    with pytest.raises(AccessDeniedError) as excinfo:
        fetcher.fetch_election(7)

    assert excinfo.value.status_code == 403
    assert not excinfo.value.retryable
    assert str(excinfo.value) == "Access denied: You do not have permission to view this election"


def test_not_found_maps_to_election_not_found(httpx_mock, fetcher):
    httpx_mock.add_response(url=DETAILS_URL, status_code=404, json={"message": "Election not found"})

    with pytest.raises(ElectionNotFoundError, match="Election not found"):
        fetcher.fetch_election(7)


def test_retries_unavailable_then_succeeds(httpx_mock, fetcher, election_payload):
    """Español: Un 503 transitorio se reintenta.

    English: A transient 503 is retried.
    """
    httpx_mock.add_response(url=DETAILS_URL, status_code=503)
    httpx_mock.add_response(url=DETAILS_URL, json=election_payload)

    election = fetcher.fetch_election(7)

    assert election.title == "Student Council 2024"
    assert len(httpx_mock.get_requests()) == 2


def test_gives_up_after_retry_attempts(httpx_mock, fetcher):
    for _ in range(3):
        httpx_mock.add_response(url=DETAILS_URL, status_code=503, json={"message": "maintenance"})

    with pytest.raises(FetchError, match="maintenance") as excinfo:
        fetcher.fetch_election(7)

    assert excinfo.value.status_code == 503
    assert excinfo.value.retryable


def test_transport_error_becomes_fetch_error(httpx_mock, fetcher):
    for _ in range(3):
        httpx_mock.add_exception(httpx.ConnectError("connection refused"), url=DETAILS_URL)

    with pytest.raises(FetchError) as excinfo:
        fetcher.fetch_election(7)

    assert excinfo.value.status_code is None
    assert excinfo.value.retryable


def test_server_error_is_not_retried(httpx_mock, fetcher):
    httpx_mock.add_response(url=DETAILS_URL, status_code=500, text="boom")

    with pytest.raises(FetchError) as excinfo:
        fetcher.fetch_election(7)

    assert excinfo.value.status_code == 500
    assert excinfo.value.retryable


def test_invalid_payload_is_not_retryable(httpx_mock, fetcher):
    httpx_mock.add_response(url=DETAILS_URL, json=["not", "an", "object"])

    with pytest.raises(FetchError) as excinfo:
        fetcher.fetch_election(7)

    assert not excinfo.value.retryable


def test_fetch_voter_codes_and_votes(httpx_mock, fetcher, voter_codes_payload, votes_per_candidate_payload):
    httpx_mock.add_response(url=f"{BASE_URL}/elections/7/voter-codes", json=voter_codes_payload)
    httpx_mock.add_response(url=f"{BASE_URL}/elections/7/votes-per-candidate", json=votes_per_candidate_payload)

    assert len(fetcher.fetch_voter_codes(7)) == 120
    assert fetcher.fetch_votes_per_candidate(7)[0].candidates[0].first_name == "Juan"
