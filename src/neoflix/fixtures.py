"""
Static fixture data for offline/demo mode and for seeding an empty graph.

Fixtures are loaded once per process and handed out frozen (tuples of
read-only mappings); nothing in request handling can mutate them.
"""
from __future__ import annotations

import json
import logging
from functools import lru_cache
from pathlib import Path
from types import MappingProxyType
from typing import Any, Iterable, Mapping, Sequence

from tqdm import tqdm

from . import config
from .database import GraphStore
from .params import MOVIE_SORTS, PERSON_SORTS, Order, Params, Sort

logger = logging.getLogger(__name__)

# Nested movie keys that become relationships when seeding
MOVIE_LINK_KEYS = ("genres", "actors", "directors")

SEED_MOVIES_QUERY = """
    UNWIND $rows AS row
    MERGE (m:Movie {tmdbId: row.tmdbId})
    SET m += row.properties
    FOREACH (name IN row.genres |
        MERGE (g:Genre {name: name})
        MERGE (m)-[:IN_GENRE]->(g))
    FOREACH (actor IN row.actors |
        MERGE (p:Person {tmdbId: actor.tmdbId})
        SET p.name = actor.name
        MERGE (p)-[r:ACTED_IN]->(m)
        SET r.role = actor.role)
    FOREACH (director IN row.directors |
        MERGE (p:Person {tmdbId: director.tmdbId})
        SET p.name = director.name
        MERGE (p)-[:DIRECTED]->(m))
"""

SEED_PEOPLE_QUERY = """
    UNWIND $rows AS row
    MERGE (p:Person {tmdbId: row.tmdbId})
    SET p += row
"""

SEED_GENRES_QUERY = """
    UNWIND $rows AS row
    MERGE (g:Genre {name: row.name})
"""

SEED_USERS_QUERY = """
    UNWIND $rows AS row
    MERGE (u:User {userId: row.userId})
    SET u += row
"""


def _freeze(value):
    if isinstance(value, dict):
        return MappingProxyType({k: _freeze(v) for k, v in value.items()})
    if isinstance(value, list):
        return tuple(_freeze(v) for v in value)
    return value


def thaw(value):
    """Plain, mutable copy of frozen fixture data."""
    if isinstance(value, Mapping):
        return {k: thaw(v) for k, v in value.items()}
    if isinstance(value, tuple):
        return [thaw(v) for v in value]
    return value


def _read(name: str):
    fixture = Path(config.FIXTURES_PATH) / f"{name}.json"
    with open(fixture, "r", encoding="utf-8") as f:
        data = json.load(f)
    logger.debug(f"Loaded fixture {fixture}")
    return data


@lru_cache(maxsize=None)
def load_fixture_list(name: str) -> tuple[Mapping[str, Any], ...]:
    """Records of the ``name`` fixture, read once and cached for the process."""
    data = _read(name)
    if not isinstance(data, list):
        raise ValueError(f"Fixture '{name}' is not a list")
    return _freeze(data)


def clear_cache() -> None:
    """Forget loaded fixtures (tests that point FIXTURES_PATH elsewhere)."""
    load_fixture_list.cache_clear()


def paginate(
    rows: Iterable[Mapping[str, Any]],
    params: Params | None,
    allowed: frozenset[Sort],
    default: Sort = Sort.TITLE,
    default_order: Order = Order.ASC,
) -> list[dict]:
    """
    Sort, skip and limit records in memory with the same rules the graph
    queries use: allow-listed sort key, rows without it dropped.
    """
    if params is None:
        return [thaw(row) for row in rows]

    field = params.sort_field(allowed, default)
    reverse = params.direction(default_order) == Order.DESC.value
    present = [row for row in rows if row.get(field) is not None]
    ordered = sorted(present, key=lambda row: row[field], reverse=reverse)
    window = ordered[params.skip:params.skip + params.limit]
    return [thaw(row) for row in window]


def offline_movies(params: Params) -> list[dict]:
    movies = [
        {k: v for k, v in movie.items() if k not in MOVIE_LINK_KEYS}
        for movie in load_fixture_list("popular")
    ]
    return [{**m, "favorite": False} for m in paginate(movies, params, MOVIE_SORTS, Sort.TITLE)]


def offline_people(params: Params) -> list[dict]:
    people = load_fixture_list("people")
    if params.query:
        people = [p for p in people if params.query in (p.get("name") or "")]
    return paginate(people, params, PERSON_SORTS, Sort.NAME)


def offline_genres() -> list[dict]:
    genres = [g for g in load_fixture_list("genres") if g.get("name") != config.NO_GENRE_SENTINEL]
    return sorted((thaw(g) for g in genres), key=lambda g: g["name"])


def _movie_seed_row(movie: Mapping[str, Any]) -> dict:
    movie = thaw(movie)
    return {
        "tmdbId": movie["tmdbId"],
        "properties": {k: v for k, v in movie.items() if k not in MOVIE_LINK_KEYS},
        "genres": movie.get("genres", []),
        "actors": movie.get("actors", []),
        "directors": movie.get("directors", []),
    }


def _batched(items: Sequence, size: int):
    for i in range(0, len(items), size):
        yield items[i:i + size]


def seed(store: GraphStore, batch_size: int | None = None, progress: bool = True) -> dict[str, int]:
    """
    Import the fixtures into the graph.

    MERGE-based, so re-running against a seeded database only refreshes
    properties.  Returns the number of records written per kind.
    """
    batch_size = batch_size or config.SEED_BATCH_SIZE
    plan = [
        ("people", SEED_PEOPLE_QUERY, [thaw(p) for p in load_fixture_list("people")]),
        ("genres", SEED_GENRES_QUERY, [{"name": g["name"]} for g in load_fixture_list("genres")]),
        ("movies", SEED_MOVIES_QUERY, [_movie_seed_row(m) for m in load_fixture_list("popular")]),
        ("users", SEED_USERS_QUERY, [thaw(u) for u in load_fixture_list("users")]),
    ]

    counts: dict[str, int] = {}
    for kind, query, rows in plan:
        batches = list(_batched(rows, batch_size))
        for chunk in tqdm(batches, desc=kind.capitalize(), disable=not progress):
            store.write(lambda tx: tx.rows(query, rows=chunk))
        counts[kind] = len(rows)
        logger.info(f"Seeded {len(rows)} {kind}")
    return counts
