"""URL slugs for published stories."""

from __future__ import annotations

import re
import unicodedata
from typing import Iterable

MAX_SLUG_LENGTH = 120


def slugify(text: str) -> str:
    """
    Lowercase ASCII slug: accents stripped, ``[a-z0-9-]`` only, dashes collapsed.

    "Eleição em São Paulo: o que muda?" -> "eleicao-em-sao-paulo-o-que-muda"
    """
    normalized = unicodedata.normalize("NFD", text or "")
    ascii_text = "".join(ch for ch in normalized if not unicodedata.combining(ch))
    ascii_text = ascii_text.lower().strip()
    ascii_text = re.sub(r"[^a-z0-9\s-]", "", ascii_text)
    ascii_text = re.sub(r"\s+", "-", ascii_text)
    ascii_text = re.sub(r"-{2,}", "-", ascii_text)
    return ascii_text.strip("-")


def ensure_unique_slug(slug: str, existing_slugs: Iterable[str], max_length: int = MAX_SLUG_LENGTH) -> str:
    """Return ``slug`` or the first free ``slug-2``, ``slug-3``... variant."""
    taken = set(existing_slugs)
    cleaned = (slug or "").strip()[:max_length].rstrip("-") or "noticia"

    candidate = cleaned
    suffix = 2
    while candidate in taken:
        suffix_str = f"-{suffix}"
        candidate = f"{cleaned[:max_length - len(suffix_str)].rstrip('-')}{suffix_str}"
        suffix += 1
    return candidate
