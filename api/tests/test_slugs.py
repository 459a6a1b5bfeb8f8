from __future__ import annotations

from lastupdate.utils.slugs import MAX_SLUG_LENGTH, ensure_unique_slug, slugify


def test_slugify_strips_accents_and_punctuation():
    assert slugify("Eleição em São Paulo: o que muda?") == "eleicao-em-sao-paulo-o-que-muda"
    assert slugify("  Copa   do -- Mundo  ") == "copa-do-mundo"
    assert slugify("!!!") == ""


def test_ensure_unique_slug():
    assert ensure_unique_slug("copa", []) == "copa"
    assert ensure_unique_slug("copa", ["copa"]) == "copa-2"
    assert ensure_unique_slug("copa", ["copa", "copa-2", "copa-3"]) == "copa-4"
    assert ensure_unique_slug("", []) == "noticia"


def test_ensure_unique_slug_respects_max_length():
    base = "a" * (MAX_SLUG_LENGTH + 20)
    first = ensure_unique_slug(base, [])
    second = ensure_unique_slug(base, [first])
    assert len(first) == MAX_SLUG_LENGTH
    assert len(second) == MAX_SLUG_LENGTH
    assert second.endswith("-2")
