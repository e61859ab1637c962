"""Query formulation and query-file IO.

Queries pair an activity with an actor, optionally followed by a third context
term such as a location or relationship:

    (chase, dog)            activity-actor
    (chase, dog, park)      activity-actor-location
"""
from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any, List, Sequence

from annotation.schemas import POS_NNS, POS_VBS, Query, QueryTerm

logger = logging.getLogger(__name__)


def formulate_queries(
    activity: str,
    actors: Sequence[str],
    contexts: Sequence[str] = (),
    with_pos: bool = True,
) -> List[Query]:
    """Build activity-actor(-context) query tuples.

    Activities are constrained to verb tags and actors/contexts to noun tags
    when ``with_pos`` is set.
    """
    verb_pos = POS_VBS if with_pos else None
    noun_pos = POS_NNS if with_pos else None
    activity_term = QueryTerm(activity, verb_pos)

    queries: List[Query] = []
    for actor in actors:
        actor_term = QueryTerm(actor, noun_pos)
        if contexts:
            queries.extend((activity_term, actor_term, QueryTerm(ctx, noun_pos)) for ctx in contexts)
        else:
            queries.append((activity_term, actor_term))
    return queries


def _term_from_json(raw: Any) -> QueryTerm:
    if isinstance(raw, str):
        return QueryTerm(raw)
    pos = raw.get("pos")
    return QueryTerm(raw["term"], frozenset(pos) if pos is not None else None)


def load_queries(path: Path) -> List[Query]:
    """Read queries from a JSON list of term lists.

    Terms are either plain strings or ``{"term": ..., "pos": [...]}`` objects.
    """
    if not path.exists():
        raise FileNotFoundError(f"Queries file not found: {path}")
    rows = json.loads(path.read_text(encoding="utf-8"))
    queries = [tuple(_term_from_json(t) for t in row) for row in rows]
    logger.info("Loaded %d queries from %s", len(queries), path)
    return queries


def save_queries(queries: Sequence[Query], path: Path) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    payload = [
        [{"term": t.term, "pos": sorted(t.pos) if t.pos is not None else None} for t in query]
        for query in queries
    ]
    path.write_text(json.dumps(payload, indent=2), encoding="utf-8")


def describe(query: Query) -> str:
    return " ".join(t.term for t in query)
