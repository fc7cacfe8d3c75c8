"""Normalización de nombres para candidatos y planillas.

English:
    Display-name normalization for candidates and ticket entries.

    A single candidate shape carries both individual people and group
    entries (partylist slates). Group entries must render as the group name
    alone, never as a "Last, First" pair.
"""

from __future__ import annotations

import re
from typing import Optional

NO_NAME = "No Name"
MAX_GROUP_NAME_WORDS = 2
_WORD_START = re.compile(r"\b\w")


def capitalize_words(value: Optional[str]) -> str:
    """Primera letra de cada palabra en mayúscula, resto en minúscula.

    English:
        Upper-case the first letter of each word, lower-case the rest. Word
        starts follow punctuation too, so "o'neil-cruz" becomes "O'Neil-Cruz".
    """
    if not value:
        return ""
    text = " ".join(value.split()).lower()
    return _WORD_START.sub(lambda match: match.group(0).upper(), text)


def is_group_name(value: Optional[str]) -> bool:
    """Indica si ``value`` parece nombre de grupo (1-2 palabras, sin coma).

    English: Whether ``value`` looks like a group name (one or two words, no comma).
    """
    if not value or not value.strip():
        return False
    if "," in value:
        return False
    return len(value.split()) <= MAX_GROUP_NAME_WORDS


def format_display_name(
    last_name: Optional[str],
    first_name: Optional[str],
    fallback_group_name: Optional[str] = None,
) -> str:
    """Formatea el nombre visible de un candidato.

    Reglas:
        1. ``fallback_group_name`` de una o dos palabras sin coma: entrada de
           grupo, se devuelve sólo el nombre del grupo capitalizado.
        2. Sin nombre de pila: apellido capitalizado, o el respaldo, o
           ``"No Name"``.
        3. Con ambos: ``"Apellido, Nombre"`` capitalizado.

    English:
        Format a candidate's display name.

        1. A one- or two-word ``fallback_group_name`` without a comma marks a
           group entry; the capitalized group name is returned alone.
        2. With no first name, return the capitalized last name, else the
           fallback, else ``"No Name"``.
        3. Otherwise return ``"Lastname, Firstname"`` with each word capitalized.
    """
    last = (last_name or "").strip()
    first = (first_name or "").strip()
    fallback = (fallback_group_name or "").strip()

    if is_group_name(fallback):
        return capitalize_words(fallback)

    if not first:
        return capitalize_words(last or fallback) or NO_NAME

    if not last:
        return capitalize_words(first)

    return f"{capitalize_words(last)}, {capitalize_words(first)}"


def candidate_display_name(
    first_name: Optional[str],
    last_name: Optional[str],
    party: Optional[str] = None,
) -> str:
    """Nombre visible de un candidato; sin nombres, la planilla lo representa.

    English:
        Display name of a candidate record. A record with neither first nor
        last name stands for its partylist slate, so the party is used as the
        group-name fallback.
    """
    has_name = bool((first_name or "").strip() or (last_name or "").strip())
    return format_display_name(last_name, first_name, None if has_name else party)
