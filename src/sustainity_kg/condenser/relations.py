"""Two-pass relation resolution over the merged record arena."""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import replace

from ..config.models import DomainRecord, Relation, RelationStatus


def build_index(arena: Sequence[DomainRecord]) -> dict[str, int]:
    """Pass 1: map the identifier of every complete record to its arena slot."""
    return {
        record.id: position
        for position, record in enumerate(arena)
        if record.is_complete
    }


def resolve_relations(
    arena: Sequence[DomainRecord], index: dict[str, int]
) -> tuple[list[DomainRecord], list[Relation]]:
    """
    Pass 2: mark every relation of every complete record.

    A relation is resolved when its target is in the identity index and
    unresolved otherwise. Relations of incomplete records stay pending.

    Returns:
        Tuple of (arena with marked relations, unresolved relations)
    """
    resolved_arena: list[DomainRecord] = []
    unresolved: list[Relation] = []

    for record in arena:
        if not record.is_complete or not record.relations:
            resolved_arena.append(record)
            continue

        marked: list[Relation] = []
        for relation in record.relations:
            if relation.target in index:
                marked.append(replace(relation, status=RelationStatus.RESOLVED))
            else:
                relation = replace(relation, status=RelationStatus.UNRESOLVED)
                marked.append(relation)
                unresolved.append(relation)
        resolved_arena.append(replace(record, relations=tuple(marked)))

    return resolved_arena, unresolved
