"""Brazilian city names ("Nome - UF") for the profile city picker."""

from __future__ import annotations

import json
import logging
import unicodedata
from pathlib import Path
from typing import Any

import httpx

from ..settings import GEO_CACHE_PATH, GEO_FALLBACK_PATH
from .errors import UnavailableError

logger = logging.getLogger(__name__)

IBGE_MUNICIPALITIES_URL = "https://servicodados.ibge.gov.br/api/v1/localidades/municipios"
IBGE_TIMEOUT = 12


def _read_list(path: Path) -> list[str] | None:
    try:
        if not path.exists():
            return None
        data = json.loads(path.read_text(encoding="utf-8"))
    except (OSError, ValueError) as e:
        logger.warning(f"Could not read city list {path}: {e}")
        return None
    return data if isinstance(data, list) and data else None


def _write_list(path: Path, cities: list[str]) -> None:
    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(json.dumps(cities, ensure_ascii=False), encoding="utf-8")
    except OSError as e:
        logger.warning(f"Could not write city cache {path}: {e}")


def _dig(item: dict[str, Any], *keys: str) -> Any:
    for key in keys:
        if not isinstance(item, dict):
            return None
        item = item.get(key)
    return item


def state_of(item: dict[str, Any]) -> str | None:
    """State abbreviation; IBGE nests it differently depending on the record."""
    return (
        _dig(item, "microrregiao", "mesorregiao", "UF", "sigla")
        or _dig(item, "mesorregiao", "UF", "sigla")
        or _dig(item, "regiao-imediata", "regiao-intermediaria", "UF", "sigla")
        or _dig(item, "UF", "sigla")
    )


def display_name(item: dict[str, Any]) -> str | None:
    name = (item.get("nome") or "").strip()
    if not name:
        return None
    uf = state_of(item)
    return f"{name} - {uf}" if uf else name


def _sort_key(name: str) -> tuple[str, str]:
    folded = unicodedata.normalize("NFD", name.casefold())
    return "".join(ch for ch in folded if not unicodedata.combining(ch)), name


def fetch_ibge_cities() -> list[str]:
    """
    Download every municipality from the IBGE localities API.

    Raises:
        httpx.HTTPError: request failed
        ValueError: empty or malformed response
    """
    response = httpx.get(
        IBGE_MUNICIPALITIES_URL,
        headers={"Accept": "application/json"},
        timeout=IBGE_TIMEOUT,
    )
    response.raise_for_status()
    names = {name for name in (display_name(item) for item in response.json()) if name}
    if not names:
        raise ValueError("IBGE returned an empty city list")
    return sorted(names, key=_sort_key)


def list_cities(cache_path: Path = GEO_CACHE_PATH, fallback_path: Path = GEO_FALLBACK_PATH) -> list[str]:
    """
    Cached list first, then IBGE (refreshing the cache), then the bundled list.

    Raises:
        UnavailableError: none of the sources produced a list
    """
    cities = _read_list(cache_path)
    if cities:
        return cities

    try:
        cities = fetch_ibge_cities()
    except (httpx.HTTPError, ValueError) as e:
        logger.error(f"IBGE city fetch failed: {e}")
    else:
        _write_list(cache_path, cities)
        return cities

    cities = _read_list(fallback_path)
    if cities:
        return cities
    raise UnavailableError("Lista de cidades indisponível no momento.")
