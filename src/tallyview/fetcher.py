"""Cliente HTTP de resultados con reintentos.

Results HTTP client with retries.

This is the single hard-failure boundary of the package: transport errors
and non-2xx responses become :class:`FetchError`; everything past this point
degrades gracefully.
"""

from __future__ import annotations

from typing import Any, List, Optional

import httpx
import structlog
from tenacity import Retrying, retry_if_exception_type, stop_after_attempt, wait_exponential
from tenacity.wait import wait_base

from .config import TallyviewSettings
from .core.aggregator import DEFAULT_TIMEZONE
from .core.models import Election
from .schemas import (
    PayloadError,
    PositionVoters,
    VoterCode,
    parse_election_details,
    parse_voter_codes,
    parse_votes_per_candidate,
)

RETRYABLE_STATUS_CODES = {429, 502, 503, 504}
USER_AGENT = "Tallyview/0.3.0"


class FetchError(Exception):
    """Error controlado al obtener datos de la API.

    English:
        Controlled error while fetching API data. ``retryable`` tells the
        view whether a "Try Again" action makes sense.
    """

    def __init__(self, message: str, status_code: Optional[int] = None, retryable: bool = True) -> None:
        super().__init__(message)
        self.status_code = status_code
        self.retryable = retryable


class AccessDeniedError(FetchError):
    """HTTP 403 sobre la elección solicitada.

    English: HTTP 403 on the requested election.
    """


class ElectionNotFoundError(FetchError):
    """HTTP 404 sobre la elección solicitada.

    English: HTTP 404 on the requested election.
    """


class _RetryableStatus(Exception):
    def __init__(self, response: httpx.Response) -> None:
        super().__init__(f"Retryable status: {response.status_code}")
        self.response = response


def _error_message(response: httpx.Response) -> str:
    try:
        body = response.json()
    except ValueError:
        return response.text.strip() or f"Request failed with status {response.status_code}"
    if isinstance(body, dict) and body.get("message"):
        return str(body["message"])
    return f"Request failed with status {response.status_code}"


class ResultsFetcher:
    """Obtiene instantáneas de elecciones, códigos y votos por candidato.

    English:
        Fetches election snapshots, voter codes and per-candidate votes from
        the election API.
    """

    def __init__(
        self,
        base_url: str,
        token: Optional[str] = None,
        timeout_seconds: float = 30.0,
        retry_attempts: int = 3,
        timezone: str = DEFAULT_TIMEZONE,
        client: Optional[httpx.Client] = None,
        wait: Optional[wait_base] = None,
        logger: Optional[structlog.BoundLogger] = None,
    ) -> None:
        self.base_url = base_url.rstrip("/")
        self.token = token
        self.retry_attempts = max(1, retry_attempts)
        self.timezone = timezone
        self.wait = wait or wait_exponential(multiplier=1, min=1, max=10)
        self.logger = logger or structlog.get_logger(__name__)
        self._owns_client = client is None
        self._client = client or httpx.Client(timeout=httpx.Timeout(timeout_seconds))

    @classmethod
    def from_settings(cls, settings: TallyviewSettings, **kwargs: Any) -> "ResultsFetcher":
        return cls(
            base_url=settings.API_BASE_URL,
            token=settings.API_TOKEN,
            timeout_seconds=settings.REQUEST_TIMEOUT_SECONDS,
            retry_attempts=settings.RETRY_ATTEMPTS,
            timezone=settings.TIMEZONE,
            **kwargs,
        )

    def __enter__(self) -> "ResultsFetcher":
        return self

    def __exit__(self, *_exc: Any) -> None:
        self.close()

    def close(self) -> None:
        if self._owns_client:
            self._client.close()

    def _headers(self) -> dict[str, str]:
        headers = {"User-Agent": USER_AGENT, "Accept": "application/json"}
        if self.token:
            headers["Authorization"] = f"Bearer {self.token}"
        return headers

    def _request(self, url: str) -> httpx.Response:
        response = self._client.get(url, headers=self._headers())
        if response.status_code in RETRYABLE_STATUS_CODES:
            self.logger.warning("fetch_retryable_status", url=url, status_code=response.status_code)
            raise _RetryableStatus(response)
        return response

    def get_json(self, path: str) -> Any:
        """GET con reintentos; devuelve el JSON decodificado.

        English: GET with retries; returns the decoded JSON body.
        """
        url = f"{self.base_url}{path}"
        retrying = Retrying(
            retry=retry_if_exception_type((httpx.TransportError, _RetryableStatus)),
            stop=stop_after_attempt(self.retry_attempts),
            wait=self.wait,
            reraise=True,
        )
        try:
            for attempt in retrying:
                with attempt:
                    response = self._request(url)
        except httpx.TransportError as exc:
            self.logger.error("fetch_failed", url=url, error=str(exc))
            raise FetchError(f"Request failed for {url}: {exc}") from exc
        except _RetryableStatus as exc:
            status = exc.response.status_code
            self.logger.error("fetch_failed", url=url, status_code=status)
            raise FetchError(_error_message(exc.response), status_code=status) from exc

        if response.status_code == 403:
            raise AccessDeniedError(
                "Access denied: You do not have permission to view this election",
                status_code=403,
                retryable=False,
            )
        if response.status_code == 404:
            raise ElectionNotFoundError(_error_message(response), status_code=404, retryable=False)
        if response.status_code >= 400:
            self.logger.error("fetch_failed", url=url, status_code=response.status_code)
            raise FetchError(
                _error_message(response),
                status_code=response.status_code,
                retryable=response.status_code >= 500,
            )

        self.logger.debug("fetch_ok", url=url, status_code=response.status_code)
        try:
            return response.json()
        except ValueError as exc:
            raise FetchError(f"Expected JSON response from {url}", status_code=response.status_code) from exc

    def fetch_election(self, election_id: int) -> Election:
        """``GET /elections/{id}/details`` como instantánea de dominio.

        English: ``GET /elections/{id}/details`` as a domain snapshot.
        """
        payload = self.get_json(f"/elections/{election_id}/details")
        try:
            return parse_election_details(payload, timezone=self.timezone)
        except PayloadError as exc:
            raise FetchError(str(exc), retryable=False) from exc

    def fetch_voter_codes(self, election_id: int) -> List[VoterCode]:
        payload = self.get_json(f"/elections/{election_id}/voter-codes")
        try:
            return parse_voter_codes(payload)
        except PayloadError as exc:
            raise FetchError(str(exc), retryable=False) from exc

    def fetch_votes_per_candidate(self, election_id: int) -> List[PositionVoters]:
        payload = self.get_json(f"/elections/{election_id}/votes-per-candidate")
        try:
            return parse_votes_per_candidate(payload)
        except PayloadError as exc:
            raise FetchError(str(exc), retryable=False) from exc
