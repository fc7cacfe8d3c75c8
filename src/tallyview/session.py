"""Estado de vista por sesión: resultados en vivo y boletín.

English:
    Per-session view state for the live count and the bulletin.

    State lives on the session object the caller creates; nothing is kept in
    module globals. Data refreshes replace the aggregate in place and never
    touch the cursors a user is driving.
"""

from __future__ import annotations

import threading
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Callable, Generic, List, Optional, Tuple, TypeVar
from zoneinfo import ZoneInfo

import structlog

from .config import TallyviewSettings
from .core.aggregator import DEFAULT_TIMEZONE, aggregate, compute_time_remaining
from .core.models import AggregatedResults, Election, PositionResults, TimeRemaining
from .core.names import candidate_display_name
from .core.paginator import (
    DEFAULT_CODES_PAGE_SIZE,
    NO_CONTENT,
    CarouselCursor,
    CarouselItem,
    CarouselSequence,
    ContentKind,
    chunk,
    page_of_positions,
)
from .fetcher import FetchError, ResultsFetcher
from .logging import bind_context
from .scheduler import TaskGroup
from .schemas import PositionVoters, VoterCode, candidate_voter_counts

T = TypeVar("T")


class Observable(Generic[T]):
    """Valor observable con suscriptores (reemplaza contadores globales).

    English:
        Observable value with subscribers. Subscribers are called with the
        new value whenever :meth:`set` changes it.
    """

    def __init__(self, value: T) -> None:
        self._value = value
        self._subscribers: List[Callable[[T], None]] = []
        self._lock = threading.Lock()
        self.version = 0

    @property
    def value(self) -> T:
        return self._value

    def subscribe(self, callback: Callable[[T], None]) -> Callable[[], None]:
        with self._lock:
            self._subscribers.append(callback)

        def unsubscribe() -> None:
            with self._lock:
                if callback in self._subscribers:
                    self._subscribers.remove(callback)

        return unsubscribe

    def set(self, value: T) -> None:
        with self._lock:
            if value == self._value:
                return
            self._value = value
            self.version += 1
            subscribers = list(self._subscribers)
        for callback in subscribers:
            callback(value)


class _ViewSession:
    """Base de las vistas: resultados, error y timers propios.

    English: View base: results, error state and the timers it owns.
    """

    view_name = "view"

    def __init__(
        self,
        fetcher: ResultsFetcher,
        election_id: int,
        timezone: str = DEFAULT_TIMEZONE,
        clock: Optional[Callable[[], datetime]] = None,
        logger: Optional[structlog.BoundLogger] = None,
    ) -> None:
        self.fetcher = fetcher
        self.election_id = election_id
        self.timezone = timezone
        self.clock = clock or (lambda: datetime.now(ZoneInfo(timezone)))
        self.logger = bind_context(
            logger or structlog.get_logger(__name__), election_id=election_id, view=self.view_name
        )
        self.results: Observable[Optional[AggregatedResults]] = Observable(None)
        self.error: Observable[Optional[FetchError]] = Observable(None)
        self.tasks = TaskGroup(logger=self.logger)
        self._election: Optional[Election] = None

    def __enter__(self) -> "_ViewSession":
        self.start()
        return self

    def __exit__(self, *_exc: object) -> None:
        self.stop()

    @property
    def election(self) -> Optional[Election]:
        return self._election

    def _load(self) -> None:
        self._election = self.fetcher.fetch_election(self.election_id)
        self.results.set(aggregate(self._election, now=self.clock(), tz=self.timezone))

    def refresh(self) -> bool:
        """Vuelve a obtener y agregar; los errores quedan en ``error``.

        English:
            Re-fetch and re-aggregate. Fetch failures are stored in
            ``error`` for the view to show with a retry action.
        """
        try:
            self._load()
        except FetchError as exc:
            self.logger.warning("refresh_failed", error=str(exc), status_code=exc.status_code)
            self.error.set(exc)
            return False
        self.error.set(None)
        return True

    def retry(self) -> bool:
        return self.refresh()

    def _register_tasks(self) -> None:
        raise NotImplementedError

    def start(self) -> None:
        if not self.tasks.names:
            self._register_tasks()
        self.tasks.start_all()
        self.logger.info("view_started", tasks=self.tasks.names)

    def stop(self) -> None:
        self.tasks.stop_all()
        self.logger.info("view_stopped")


class LiveCountSession(_ViewSession):
    """Conteo parcial en vivo a pantalla completa.

    English:
        Full-screen live partial count: refreshes the snapshot, ticks the
        countdown and rotates the position carousel.
    """

    view_name = "live_count"

    def __init__(
        self,
        fetcher: ResultsFetcher,
        election_id: int,
        refresh_seconds: float = 1.0,
        countdown_seconds: float = 1.0,
        carousel_seconds: float = 10.0,
        **kwargs: Any,
    ) -> None:
        super().__init__(fetcher, election_id, **kwargs)
        self.refresh_seconds = refresh_seconds
        self.countdown_seconds = countdown_seconds
        self.carousel_seconds = carousel_seconds
        self.position_cursor = CarouselCursor()
        self.countdown: Observable[Optional[TimeRemaining]] = Observable(None)

    @classmethod
    def from_settings(
        cls, fetcher: ResultsFetcher, election_id: int, settings: TallyviewSettings, **kwargs: Any
    ) -> "LiveCountSession":
        return cls(
            fetcher,
            election_id,
            refresh_seconds=settings.REFRESH_INTERVAL_SECONDS,
            countdown_seconds=settings.COUNTDOWN_INTERVAL_SECONDS,
            carousel_seconds=settings.POSITION_CAROUSEL_SECONDS,
            timezone=settings.TIMEZONE,
            **kwargs,
        )

    def _load(self) -> None:
        super()._load()
        results = self.results.value
        if results is not None:
            self.position_cursor.total_items = len(results.positions)
        self.tick_countdown()

    def tick_countdown(self) -> Optional[TimeRemaining]:
        """Recalcula la cuenta regresiva desde el reloj, sin red.

        English: Recompute the countdown from the clock; no network call.
        """
        if self._election is None:
            return None
        remaining = compute_time_remaining(self._election, now=self.clock(), tz=self.timezone)
        self.countdown.set(remaining)
        return remaining

    def advance_carousel(self) -> int:
        results = self.results.value
        total = len(results.positions) if results else 0
        return self.position_cursor.advance(total)

    def select_position(self, index: int) -> int:
        return self.position_cursor.go_to(index)

    def current_position(self) -> Optional[PositionResults]:
        results = self.results.value
        if results is None:
            return None
        return page_of_positions(results.positions, self.position_cursor.index)

    def _register_tasks(self) -> None:
        self.tasks.add("refresh", self.refresh_seconds, self.refresh, run_immediately=True)
        self.tasks.add("countdown", self.countdown_seconds, self.tick_countdown)
        self.tasks.add("position_carousel", self.carousel_seconds, self.advance_carousel)


@dataclass(frozen=True)
class BulletinPage:
    """Contenido listo para mostrar en una diapositiva del boletín.

    English: Render-ready content for one bulletin slide.
    """

    kind: ContentKind
    title: str
    entries: Tuple[Any, ...] = ()
    page_index: int = 0
    page_count: int = 0


@dataclass(frozen=True)
class BulletinSnapshot:
    """Datos del boletín obtenidos juntos en un mismo refresco.

    English:
        Bulletin data fetched together in one refresh. The carousel resolves
        and renders against a single snapshot, so a refresh landing between
        the two steps cannot mix old indexes with new lists.
    """

    results: Optional[AggregatedResults] = None
    voter_codes: Tuple[VoterCode, ...] = ()
    votes_per_candidate: Tuple[PositionVoters, ...] = ()


class BulletinSession(_ViewSession):
    """Boletín público: códigos de votantes, votos por candidato y ganadores.

    English:
        Public bulletin: voter codes, per-candidate voter codes and the top
        three per position, rotated by a carousel.
    """

    view_name = "bulletin"

    def __init__(
        self,
        fetcher: ResultsFetcher,
        election_id: int,
        page_size: int = DEFAULT_CODES_PAGE_SIZE,
        candidate_page_size: Optional[int] = None,
        refresh_seconds: float = 1.0,
        carousel_seconds: float = 5.0,
        **kwargs: Any,
    ) -> None:
        super().__init__(fetcher, election_id, **kwargs)
        self.page_size = page_size
        self.candidate_page_size = page_size if candidate_page_size is None else candidate_page_size
        self.refresh_seconds = refresh_seconds
        self.carousel_seconds = carousel_seconds
        self.cursor = CarouselCursor()
        self._snapshot = BulletinSnapshot()
        self._snapshot_lock = threading.Lock()

    @classmethod
    def from_settings(
        cls, fetcher: ResultsFetcher, election_id: int, settings: TallyviewSettings, **kwargs: Any
    ) -> "BulletinSession":
        return cls(
            fetcher,
            election_id,
            page_size=settings.VOTER_CODES_PAGE_SIZE,
            candidate_page_size=settings.CANDIDATE_CODES_PAGE_SIZE,
            refresh_seconds=settings.REFRESH_INTERVAL_SECONDS,
            carousel_seconds=settings.BULLETIN_CAROUSEL_SECONDS,
            timezone=settings.TIMEZONE,
            **kwargs,
        )

    @property
    def snapshot(self) -> BulletinSnapshot:
        with self._snapshot_lock:
            return self._snapshot

    @property
    def voter_codes(self) -> Tuple[VoterCode, ...]:
        return self.snapshot.voter_codes

    @property
    def votes_per_candidate(self) -> Tuple[PositionVoters, ...]:
        return self.snapshot.votes_per_candidate

    def _load(self) -> None:
        # Nothing is published until all three fetches have succeeded.
        election = self.fetcher.fetch_election(self.election_id)
        voter_codes = self.fetcher.fetch_voter_codes(self.election_id)
        votes_per_candidate = self.fetcher.fetch_votes_per_candidate(self.election_id)
        snapshot = BulletinSnapshot(
            results=aggregate(election, now=self.clock(), tz=self.timezone),
            voter_codes=tuple(voter_codes),
            votes_per_candidate=tuple(votes_per_candidate),
        )
        with self._snapshot_lock:
            self._election = election
            self._snapshot = snapshot
            self.cursor.total_items = self.sequence(snapshot).total
        self.results.set(snapshot.results)

    def sequence(self, snapshot: Optional[BulletinSnapshot] = None) -> CarouselSequence:
        """Secuencia calculada con los totales de una instantánea.

        English: Sequence built from one snapshot's totals (the current one by default).
        """
        snapshot = snapshot or self.snapshot
        results = snapshot.results
        winner_pages = (
            [1 if position.ranked_candidates else 0 for position in results.positions]
            if results
            else []
        )
        return CarouselSequence.from_counts(
            voter_codes=len(snapshot.voter_codes),
            candidate_voters=candidate_voter_counts(list(snapshot.votes_per_candidate)),
            page_size=self.page_size,
            winner_pages=winner_pages,
            candidate_page_size=self.candidate_page_size,
        )

    def advance(self) -> int:
        return self.cursor.advance(self.sequence().total)

    def current_item(self) -> CarouselItem:
        return self.sequence().resolve(self.cursor.index)

    def current_page(self) -> Optional[BulletinPage]:
        snapshot = self.snapshot
        item = self.sequence(snapshot).resolve(self.cursor.index)
        return self.render(item, snapshot)

    def render(
        self, item: CarouselItem, snapshot: Optional[BulletinSnapshot] = None
    ) -> Optional[BulletinPage]:
        """Traduce un elemento del carrusel en contenido visible.

        English:
            Turn a carousel item into displayable content. ``item`` must come
            from the sequence of the same ``snapshot``.
        """
        if item is NO_CONTENT or item.kind is ContentKind.NONE:
            return None
        snapshot = snapshot or self.snapshot

        if item.kind is ContentKind.VOTER_CODES:
            pages = chunk(snapshot.voter_codes, self.page_size)
            return BulletinPage(
                kind=item.kind,
                title="All Voters",
                entries=tuple(pages[item.page_index]),
                page_index=item.page_index,
                page_count=len(pages),
            )

        if item.kind is ContentKind.CANDIDATE_CODES:
            position = snapshot.votes_per_candidate[item.position_index]
            candidate = position.candidates[item.candidate_index]
            pages = chunk(candidate.voters, self.candidate_page_size)
            name = candidate_display_name(candidate.first_name, candidate.last_name, candidate.party)
            return BulletinPage(
                kind=item.kind,
                title=f"{position.name}: {name}",
                entries=tuple(pages[item.page_index]),
                page_index=item.page_index,
                page_count=len(pages),
            )

        if snapshot.results is None:
            return None
        position_results = snapshot.results.positions[item.position_index]
        return BulletinPage(
            kind=item.kind,
            title=position_results.name,
            entries=position_results.top3,
            page_index=item.page_index,
            page_count=1,
        )

    def _register_tasks(self) -> None:
        self.tasks.add("refresh", self.refresh_seconds, self.refresh, run_immediately=True)
        self.tasks.add("bulletin_carousel", self.carousel_seconds, self.advance)
