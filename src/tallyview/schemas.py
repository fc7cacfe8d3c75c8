"""Esquemas Pydantic para validar y normalizar las respuestas de la API.

Pydantic schemas to validate and normalize API responses.

Missing or null fields are defaulted here, once, so the aggregation core can
rely on a well-defined shape instead of scattered presence checks.
"""

from __future__ import annotations

import json
from datetime import date, datetime, time
from typing import Any, List, Optional
from zoneinfo import ZoneInfo

import structlog
from pydantic import (
    AliasChoices,
    BaseModel,
    ConfigDict,
    Field,
    ValidationError,
    ValidationInfo,
    field_validator,
    model_validator,
)

from .core.aggregator import DEFAULT_TIMEZONE
from .core.models import Candidate, Election, ElectionStatus, Position

logger = structlog.get_logger(__name__)


class PayloadError(ValueError):
    """Payload que no es JSON u objeto esperado.

    English: Payload that is not JSON or not the expected object.
    """


def _non_negative(value: Any) -> int:
    if value is None or value == "":
        return 0
    try:
        number = int(float(value))
    except (TypeError, ValueError):
        return 0
    return max(0, number)


def _optional_text(value: Any) -> Optional[str]:
    if value is None:
        return None
    text = str(value).strip()
    return text or None


class CandidatePayload(BaseModel):
    """Candidato tal como llega en ``/elections/{id}/details``.

    English: Candidate as received from ``/elections/{id}/details``.
    """

    model_config = ConfigDict(extra="ignore", populate_by_name=True)

    id: int = Field(validation_alias=AliasChoices("id", "candidate_id"))
    first_name: str = ""
    last_name: str = ""
    party: Optional[str] = Field(default=None, validation_alias=AliasChoices("party", "partylist_name"))
    slogan: Optional[str] = None
    platform: Optional[str] = None
    image_url: Optional[str] = None
    vote_count: int = 0

    @field_validator("first_name", "last_name", mode="before")
    @classmethod
    def _text_or_empty(cls, value: Any) -> str:
        return "" if value is None else str(value).strip()

    @field_validator("party", "slogan", "platform", "image_url", mode="before")
    @classmethod
    def _strip_optional(cls, value: Any) -> Optional[str]:
        return _optional_text(value)

    @field_validator("vote_count", mode="before")
    @classmethod
    def _default_count(cls, value: Any) -> int:
        return _non_negative(value)

    def to_domain(self) -> Candidate:
        return Candidate(
            id=self.id,
            first_name=self.first_name,
            last_name=self.last_name,
            vote_count=self.vote_count,
            party=self.party,
            slogan=self.slogan,
            platform=self.platform,
            image_url=self.image_url,
        )


class PositionPayload(BaseModel):
    """Posición; acepta las claves ``position_id``/``position_name`` de la papeleta.

    English: Position; accepts the ballot's ``position_id``/``position_name`` keys.
    """

    model_config = ConfigDict(extra="ignore", populate_by_name=True)

    id: int = Field(validation_alias=AliasChoices("id", "position_id"))
    name: str = Field(default="", validation_alias=AliasChoices("name", "position_name"))
    max_choices: int = 1
    candidates: List[CandidatePayload] = Field(default_factory=list)

    @field_validator("name", mode="before")
    @classmethod
    def _name_text(cls, value: Any) -> str:
        return "" if value is None else str(value).strip()

    @field_validator("max_choices", mode="before")
    @classmethod
    def _at_least_one(cls, value: Any) -> int:
        return max(1, _non_negative(value))

    @field_validator("candidates", mode="before")
    @classmethod
    def _candidates_list(cls, value: Any) -> List[Any]:
        return value or []

    def to_domain(self) -> Position:
        return Position(
            id=self.id,
            name=self.name,
            max_choices=self.max_choices,
            candidates=tuple(candidate.to_domain() for candidate in self.candidates),
        )


def _parse_date(value: Any, info: ValidationInfo) -> Optional[date]:
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        moment = value
    elif isinstance(value, date):
        return value
    else:
        text = str(value).strip()
        if "T" not in text:
            return date.fromisoformat(text[:10])
        moment = datetime.fromisoformat(text.replace("Z", "+00:00"))
    if moment.tzinfo is not None:
        zone_name = (info.context or {}).get("timezone", DEFAULT_TIMEZONE)
        moment = moment.astimezone(ZoneInfo(zone_name))
    return moment.date()


class ElectionPayload(BaseModel):
    """Elección con posiciones, normalizada desde las formas conocidas.

    English: Election with positions, normalized from the known payload shapes.
    """

    model_config = ConfigDict(extra="ignore", populate_by_name=True)

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
    positions: List[PositionPayload] = Field(default_factory=list)

    @model_validator(mode="before")
    @classmethod
    def _migrate_ballot_positions(cls, data: Any) -> Any:
        if not isinstance(data, dict):
            return data
        ballot = data.get("ballot")
        if not data.get("positions") and isinstance(ballot, dict) and ballot.get("positions"):
            data = {**data, "positions": ballot["positions"]}
        return data

    @field_validator("title", "description", mode="before")
    @classmethod
    def _text_or_empty(cls, value: Any) -> str:
        return "" if value is None else str(value).strip()

    @field_validator("status", mode="before")
    @classmethod
    def _known_status(cls, value: Any) -> ElectionStatus:
        text = str(value or "").strip().lower()
        try:
            return ElectionStatus(text)
        except ValueError:
            logger.warning("unknown_election_status", status=value)
            return ElectionStatus.DRAFT

    @field_validator("created_by", "created_by_role", mode="before")
    @classmethod
    def _strip_optional(cls, value: Any) -> Optional[str]:
        return _optional_text(value)

    @field_validator("needs_approval", mode="before")
    @classmethod
    def _falsy_approval(cls, value: Any) -> bool:
        return bool(value)

    @field_validator("date_from", "date_to", mode="before")
    @classmethod
    def _lenient_date(cls, value: Any, info: ValidationInfo) -> Optional[date]:
        return _parse_date(value, info)

    @field_validator("start_time", "end_time", mode="before")
    @classmethod
    def _empty_time(cls, value: Any) -> Any:
        return value or None

    @field_validator("voter_count", "vote_count", mode="before")
    @classmethod
    def _default_count(cls, value: Any) -> int:
        return _non_negative(value)

    @field_validator("positions", mode="before")
    @classmethod
    def _positions_list(cls, value: Any) -> List[Any]:
        return value or []

    def to_domain(self) -> Election:
        return Election(
            id=self.id,
            title=self.title,
            description=self.description,
            status=self.status,
            needs_approval=self.needs_approval,
            date_from=self.date_from,
            date_to=self.date_to,
            start_time=self.start_time,
            end_time=self.end_time,
            voter_count=self.voter_count,
            vote_count=self.vote_count,
            created_by=self.created_by,
            created_by_role=self.created_by_role,
            positions=tuple(position.to_domain() for position in self.positions),
        )


class VoterCode(BaseModel):
    """Código de verificación de un voto emitido.

    English: Verification code of a cast ballot.
    """

    model_config = ConfigDict(extra="ignore", populate_by_name=True)

    verification_code: str = Field(
        validation_alias=AliasChoices("verificationCode", "verification_code", "code")
    )
    vote_date: Optional[datetime] = Field(
        default=None, validation_alias=AliasChoices("voteDate", "vote_date", "created_at")
    )


class CandidateVoters(BaseModel):
    """Votantes (por código) de un candidato.

    English: Voters (by code) of one candidate.
    """

    model_config = ConfigDict(extra="ignore", populate_by_name=True)

    id: int = Field(validation_alias=AliasChoices("id", "candidate_id"))
    first_name: str = ""
    last_name: str = ""
    party: Optional[str] = Field(default=None, validation_alias=AliasChoices("party", "partylist_name"))
    voters: List[VoterCode] = Field(default_factory=list)

    @field_validator("first_name", "last_name", mode="before")
    @classmethod
    def _text_or_empty(cls, value: Any) -> str:
        return "" if value is None else str(value).strip()

    @field_validator("voters", mode="before")
    @classmethod
    def _voters_list(cls, value: Any) -> List[Any]:
        return value or []


class PositionVoters(BaseModel):
    """Votantes por candidato dentro de una posición.

    English: Per-candidate voters within one position.
    """

    model_config = ConfigDict(extra="ignore", populate_by_name=True)

    id: int = Field(validation_alias=AliasChoices("id", "position_id"))
    name: str = Field(default="", validation_alias=AliasChoices("name", "position_name"))
    candidates: List[CandidateVoters] = Field(default_factory=list)

    @field_validator("candidates", mode="before")
    @classmethod
    def _candidates_list(cls, value: Any) -> List[Any]:
        return value or []


def _parse_payload(data: dict | list | bytes | str) -> Any:
    """Parsea bytes/str JSON o devuelve el objeto ya decodificado.

    English: Parse JSON bytes/str, or pass through an already decoded object.
    """
    if isinstance(data, bytes):
        try:
            data = data.decode("utf-8")
        except UnicodeDecodeError as exc:
            raise PayloadError("Payload is not valid UTF-8") from exc
    if isinstance(data, str):
        try:
            return json.loads(data)
        except json.JSONDecodeError as exc:
            raise PayloadError("Payload is not valid JSON") from exc
    if isinstance(data, (dict, list)):
        return data
    raise PayloadError("Payload must be a dict, list, str or bytes")


def _unwrap_list(payload: Any, keys: tuple[str, ...]) -> List[Any]:
    if isinstance(payload, list):
        return payload
    if isinstance(payload, dict):
        for key in keys:
            value = payload.get(key)
            if isinstance(value, list):
                return value
            if isinstance(value, dict):
                return _unwrap_list(value, keys)
        return []
    raise PayloadError("Expected a list or an object wrapping a list")


def parse_election_details(
    data: dict | bytes | str, timezone: str = DEFAULT_TIMEZONE
) -> Election:
    """Valida ``{"election": {...}}`` y devuelve el modelo de dominio.

    English:
        Validate a ``{"election": {...}}`` details response and return the
        domain snapshot. A bare election object is accepted too.
    """
    payload = _parse_payload(data)
    if not isinstance(payload, dict):
        raise PayloadError("Election details must be a JSON object")
    raw = payload.get("election", payload)
    if not isinstance(raw, dict):
        raise PayloadError("Election details must contain an election object")
    try:
        model = ElectionPayload.model_validate(raw, context={"timezone": timezone})
    except ValidationError as exc:
        raise PayloadError(f"Invalid election payload: {exc}") from exc
    return model.to_domain()


def parse_voter_codes(data: dict | list | bytes | str) -> List[VoterCode]:
    """Lista plana de códigos de verificación.

    English: Flat list of verification codes.
    """
    items = _unwrap_list(_parse_payload(data), ("voterCodes", "voter_codes", "codes", "data"))
    codes: List[VoterCode] = []
    for item in items:
        try:
            codes.append(VoterCode.model_validate(item))
        except ValidationError as exc:
            logger.warning("voter_code_skipped", error=str(exc))
    return codes


def parse_votes_per_candidate(data: dict | list | bytes | str) -> List[PositionVoters]:
    """Posiciones con la lista de votantes de cada candidato.

    English: Positions with each candidate's voter list.
    """
    items = _unwrap_list(_parse_payload(data), ("positions", "data"))
    try:
        return [PositionVoters.model_validate(item) for item in items]
    except ValidationError as exc:
        raise PayloadError(f"Invalid votes-per-candidate payload: {exc}") from exc


def candidate_voter_counts(positions: List[PositionVoters]) -> List[List[int]]:
    """Cantidad de votantes por candidato, agrupados por posición.

    English: Voter counts per candidate, grouped by position.
    """
    return [[len(candidate.voters) for candidate in position.candidates] for position in positions]
