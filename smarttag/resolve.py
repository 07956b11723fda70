# smarttag/resolve.py

from __future__ import annotations

import logging
from typing import Dict, List, Optional, Tuple

from smarttag.models import CandidateTag, Conflict, Span, TagKind

logger = logging.getLogger(__name__)

KIND_ORDER = {kind: i for i, kind in enumerate(TagKind)}

Unit = List[CandidateTag]


def _value_key(tag: CandidateTag) -> str:
    if isinstance(tag.value, str):
        return tag.value.casefold()
    return repr(tag.value)


def _rank(tag: CandidateTag, priorities: Dict[str, int]) -> Tuple[float, int, int, int]:
    """
    Sort key, best first: highest confidence, then higher strategy
    priority, then earliest start, then shortest span.
    """
    return (-tag.confidence, -priorities.get(tag.source, 0), tag.span.start, tag.span.length())


def _unit_span(unit: Unit) -> Span:
    return Span(min(t.span.start for t in unit), max(t.span.end for t in unit))


def _unit_rank(unit: Unit, priorities: Dict[str, int]) -> Tuple[float, int, int, int]:
    return min(_rank(t, priorities) for t in unit)


def _drop_duplicates(tags: List[CandidateTag], priorities: Dict[str, int]) -> List[CandidateTag]:
    """
    Same kind over the same span: keep the best-ranked copy, whatever the
    value. Members of a group (a range's start and "Until" tags) share a
    span on purpose and pass through untouched.
    """
    best: Dict[Tuple, CandidateTag] = {}
    order: List[Tuple] = []
    for tag in tags:
        key = (tag.kind, tag.span.start, tag.span.end) if tag.group is None else ("group", tag.id)
        current = best.get(key)
        if current is None:
            order.append(key)
            best[key] = tag
        elif _rank(tag, priorities) < _rank(current, priorities):
            best[key] = tag
    return [best[k] for k in order]


def _dedupe_labels(labels: List[CandidateTag], priorities: Dict[str, int]) -> List[CandidateTag]:
    best: Dict[str, CandidateTag] = {}
    for tag in labels:
        key = _value_key(tag)
        if key not in best or _rank(tag, priorities) < _rank(best[key], priorities):
            best[key] = tag
    return list(best.values())


def _merge_same_person(tags: List[CandidateTag], priorities: Dict[str, int]) -> List[CandidateTag]:
    """
    Person tags that name the same person over overlapping text collapse to
    one, whichever heuristic or strategy produced them.
    """
    people = sorted(
        (t for t in tags if t.kind is TagKind.PERSON),
        key=lambda t: _rank(t, priorities),
    )
    kept_people: List[CandidateTag] = []
    for tag in people:
        if any(
            _value_key(k) == _value_key(tag) and k.span.overlaps(tag.span)
            for k in kept_people
        ):
            logger.debug("merged duplicate person %r from %s", tag.display_text, tag.source)
            continue
        kept_people.append(tag)

    kept_ids = {t.id for t in kept_people}
    return [t for t in tags if t.kind is not TagKind.PERSON or t.id in kept_ids]


def _units(tags: List[CandidateTag]) -> List[Unit]:
    units: Dict[str, Unit] = {}
    order: List[str] = []
    for tag in tags:
        key = tag.group or tag.id
        if key not in units:
            units[key] = []
            order.append(key)
        units[key].append(tag)
    return [units[k] for k in order]


def _clusters(units: List[Unit]) -> List[List[Unit]]:
    """Connected groups of units whose spans overlap, by sweep over start."""
    ordered = sorted(units, key=lambda u: (_unit_span(u).start, _unit_span(u).end))
    clusters: List[List[Unit]] = []
    reach = -1
    for unit in ordered:
        span = _unit_span(unit)
        if clusters and span.start < reach:
            clusters[-1].append(unit)
            reach = max(reach, span.end)
        else:
            clusters.append([unit])
            reach = span.end
    return clusters


def _settle_cluster(
    cluster: List[Unit], priorities: Dict[str, int]
) -> Tuple[List[CandidateTag], List[Conflict]]:
    if len(cluster) == 1:
        return list(cluster[0]), []

    ranked = sorted(cluster, key=lambda u: _unit_rank(u, priorities))
    top, runner_up = ranked[0], ranked[1]
    if (
        _unit_rank(top, priorities) == _unit_rank(runner_up, priorities)
        and _unit_span(top).overlaps(_unit_span(runner_up))
    ):
        everything = [t for unit in ranked for t in unit]
        logger.warning(
            "unresolved conflict over [%d, %d) between %d candidates",
            min(t.span.start for t in everything),
            max(t.span.end for t in everything),
            len(everything),
        )
        return [], [Conflict(span=_unit_span(everything), tags=everything, resolved=None)]

    accepted: List[Unit] = []
    beaten: Dict[int, List[Unit]] = {}
    for unit in ranked:
        span = _unit_span(unit)
        winner: Optional[int] = next(
            (i for i, a in enumerate(accepted) if _unit_span(a).overlaps(span)), None
        )
        if winner is None:
            accepted.append(unit)
        else:
            beaten.setdefault(winner, []).append(unit)

    kept: List[CandidateTag] = []
    conflicts: List[Conflict] = []
    for i, unit in enumerate(accepted):
        kept.extend(unit)
        losers = beaten.get(i)
        if not losers:
            continue
        members = list(unit) + [t for loser in losers for t in loser]
        resolved = min(unit, key=lambda t: _rank(t, priorities))
        conflicts.append(Conflict(span=_unit_span(members), tags=members, resolved=resolved))
        logger.debug(
            "%s %r won over %d candidate(s)",
            resolved.kind.value, resolved.original_text, len(members) - len(unit),
        )
    return kept, conflicts


def sort_tags(tags: List[CandidateTag]) -> List[CandidateTag]:
    return sorted(
        tags,
        key=lambda t: (t.span.start, t.span.end, KIND_ORDER[t.kind], t.source, t.display_text),
    )


def resolve_tags(
    tags: List[CandidateTag],
    priorities: Optional[Dict[str, int]] = None,
) -> Tuple[List[CandidateTag], List[Conflict]]:
    """
    Reconcile candidates from every strategy.

    - labels coexist with everything (one per category)
    - exact duplicates and same-person overlaps collapse silently
    - other overlapping candidates are ranked; losers are recorded in a
      Conflict next to the tag that beat them
    - a tie at the top of a cluster leaves it unresolved and drops it
    """
    priorities = priorities or {}

    labels = [t for t in tags if t.kind is TagKind.LABEL]
    others = [t for t in tags if t.kind is not TagKind.LABEL]

    labels = _dedupe_labels(labels, priorities)
    others = _drop_duplicates(others, priorities)
    others = _merge_same_person(others, priorities)

    kept: List[CandidateTag] = list(labels)
    conflicts: List[Conflict] = []
    for cluster in _clusters(_units(others)):
        cluster_kept, cluster_conflicts = _settle_cluster(cluster, priorities)
        kept.extend(cluster_kept)
        conflicts.extend(cluster_conflicts)

    conflicts.sort(key=lambda c: (c.span.start, c.span.end))
    return sort_tags(kept), conflicts
