"""Vistas paginadas y carrusel sobre resultados ya agregados.

English:
    Paged and carousel views over already aggregated results.

    Nothing here mutates the aggregate. The only state is the cursor a view
    holds; it is advanced by the owning view's timer and survives data
    refreshes.
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from enum import Enum
from typing import Generic, List, Optional, Sequence, Tuple, TypeVar

T = TypeVar("T")

DEFAULT_CODES_PAGE_SIZE = 50
DEFAULT_RESULTS_PAGE_LIMIT = 10


def clamp_index(index: int, length: int) -> int:
    """Limita ``index`` a ``[0, length - 1]`` (0 si está vacío).

    English: Clamp ``index`` into ``[0, length - 1]`` (0 when empty).
    """
    if length <= 0:
        return 0
    return max(0, min(index, length - 1))


def page_of_positions(positions: Sequence[T], page_index: int) -> Optional[T]:
    """Una posición por "página"; índices fuera de rango se limitan.

    English:
        Single-position page view. Out-of-range indexes are clamped;
        an empty sequence yields ``None``.
    """
    if not positions:
        return None
    return positions[clamp_index(page_index, len(positions))]


def chunk(items: Sequence[T], page_size: int = DEFAULT_CODES_PAGE_SIZE) -> List[List[T]]:
    """Divide en bloques de tamaño fijo; el último puede ser menor.

    English: Fixed-size chunking; the last chunk may be shorter.
    """
    if page_size < 1:
        raise ValueError(f"page_size must be >= 1, got {page_size}")
    return [list(items[start : start + page_size]) for start in range(0, len(items), page_size)]


@dataclass(frozen=True)
class Page(Generic[T]):
    """Página numerada (base 1) de una tabla de resultados.

    English: Numbered (1-based) page of a results table.
    """

    items: Tuple[T, ...]
    page: int
    limit: int
    total: int
    total_pages: int

    @property
    def has_next(self) -> bool:
        return self.page < self.total_pages

    @property
    def has_previous(self) -> bool:
        return self.page > 1


def paginate(items: Sequence[T], page: int = 1, limit: int = DEFAULT_RESULTS_PAGE_LIMIT) -> Page[T]:
    """Pagina una lista con página base 1 limitada al rango válido.

    English: Paginate a list with a 1-based page clamped to the valid range.
    """
    if limit < 1:
        raise ValueError(f"limit must be >= 1, got {limit}")
    total = len(items)
    total_pages = math.ceil(total / limit)
    current = max(1, min(page, total_pages)) if total_pages else 1
    start = (current - 1) * limit
    return Page(
        items=tuple(items[start : start + limit]),
        page=current,
        limit=limit,
        total=total,
        total_pages=total_pages,
    )


class ContentKind(str, Enum):
    """Tipos de contenido del carrusel del boletín.

    English: Bulletin carousel content kinds.
    """

    NONE = "none"
    VOTER_CODES = "voter_codes"
    CANDIDATE_CODES = "candidate_codes"
    WINNERS = "winners"


@dataclass(frozen=True)
class CarouselItem:
    """Contenido resuelto para un índice del carrusel.

    English:
        Content resolved for one carousel index. ``page_index`` is the page
        within the voter-code or per-candidate listing.
    """

    kind: ContentKind
    index: int = 0
    page_index: int = 0
    position_index: Optional[int] = None
    candidate_index: Optional[int] = None


NO_CONTENT = CarouselItem(kind=ContentKind.NONE)


class CarouselSequence:
    """Mapa índice lineal -> contenido, en orden fijo.

    Orden: todas las páginas de códigos de votantes, luego las páginas por
    candidato (agrupadas por posición y candidato), luego una página de
    ganadores por posición.

    English:
        Linear index -> content map in a fixed order: every voter-code page,
        then every per-candidate page (grouped by position then candidate,
        each candidate's pages contiguous), then winner pages per position.

        Build a fresh sequence from current totals on every tick; the total
        may change between ticks while votes arrive.
    """

    def __init__(
        self,
        voter_code_pages: int,
        candidate_pages: Sequence[Sequence[int]] = (),
        winner_pages: Optional[Sequence[int]] = None,
    ) -> None:
        self.voter_code_pages = max(0, voter_code_pages)
        self.candidate_pages = [[max(0, pages) for pages in position] for position in candidate_pages]
        if winner_pages is None:
            winner_pages = [1] * len(self.candidate_pages)
        self.winner_pages = [max(0, pages) for pages in winner_pages]

    @classmethod
    def from_counts(
        cls,
        voter_codes: int,
        candidate_voters: Sequence[Sequence[int]],
        page_size: int = DEFAULT_CODES_PAGE_SIZE,
        winner_pages: Optional[Sequence[int]] = None,
        candidate_page_size: Optional[int] = None,
    ) -> "CarouselSequence":
        """Construye la secuencia a partir de conteos de elementos.

        English:
            Build the sequence from raw item counts. Per-candidate listings
            use ``candidate_page_size`` when given, else ``page_size``.
        """
        if candidate_page_size is None:
            candidate_page_size = page_size
        if page_size < 1 or candidate_page_size < 1:
            raise ValueError(
                f"page sizes must be >= 1, got {page_size} and {candidate_page_size}"
            )
        return cls(
            voter_code_pages=math.ceil(max(0, voter_codes) / page_size),
            candidate_pages=[
                [math.ceil(max(0, count) / candidate_page_size) for count in position]
                for position in candidate_voters
            ],
            winner_pages=winner_pages,
        )

    @property
    def candidate_total(self) -> int:
        return sum(sum(position) for position in self.candidate_pages)

    @property
    def total(self) -> int:
        return self.voter_code_pages + self.candidate_total + sum(self.winner_pages)

    def resolve(self, index: int) -> CarouselItem:
        """Resuelve el índice; ``NO_CONTENT`` si la secuencia está vacía.

        English:
            Resolve ``index`` (wrapped modulo the total) to its content, or
            ``NO_CONTENT`` when the sequence is empty.
        """
        total = self.total
        if total == 0:
            return NO_CONTENT
        wrapped = index % total
        offset = wrapped

        if offset < self.voter_code_pages:
            return CarouselItem(kind=ContentKind.VOTER_CODES, index=wrapped, page_index=offset)
        offset -= self.voter_code_pages

        for position_index, position in enumerate(self.candidate_pages):
            for candidate_index, pages in enumerate(position):
                if offset < pages:
                    return CarouselItem(
                        kind=ContentKind.CANDIDATE_CODES,
                        index=wrapped,
                        page_index=offset,
                        position_index=position_index,
                        candidate_index=candidate_index,
                    )
                offset -= pages

        for position_index, pages in enumerate(self.winner_pages):
            if offset < pages:
                return CarouselItem(
                    kind=ContentKind.WINNERS,
                    index=wrapped,
                    page_index=offset,
                    position_index=position_index,
                )
            offset -= pages

        return NO_CONTENT


@dataclass
class CarouselCursor:
    """Cursor rotativo ``index = (index + 1) mod total``.

    English:
        Rotating cursor. It never terminates on its own; the owning view
        stops the timer that advances it. ``total_items == 0`` keeps the
        index at 0.
    """

    total_items: int = 0
    index: int = 0

    def advance(self, total_items: Optional[int] = None) -> int:
        if total_items is not None:
            self.total_items = max(0, total_items)
        if self.total_items == 0:
            self.index = 0
        else:
            self.index = (self.index + 1) % self.total_items
        return self.index

    def go_to(self, index: int) -> int:
        self.index = clamp_index(index, self.total_items)
        return self.index
