"""Field-by-field merging of records that share an identifier."""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from dataclasses import fields, replace
from typing import Any

from ..config.models import Completeness, DomainRecord, Relation
from ..errors import MergeConflict
from ..processors.base import missing_fields, sort_relations
from ..store.codec import dumps_canonical, record_to_dict

# Fields that are derived from the merge rather than folded from contributions
_DERIVED_FIELDS = frozenset(
    {"id", "provenance", "relations", "completeness", "missing_fields", "score"}
)


def revision_key(revision: str) -> tuple[int, int, str]:
    """Order revisions numerically when possible, textually otherwise."""
    try:
        return (1, int(revision), "")
    except ValueError:
        return (0, 0, revision)


def rank_contributions(records: Iterable[DomainRecord]) -> list[DomainRecord]:
    """
    Order contributions from most to least authoritative.

    Higher priority wins, then the newer revision, then the source name.
    The canonical encoding breaks exact ties so the order is total.
    """
    ranked = sorted(
        records,
        key=lambda r: (r.provenance.source, dumps_canonical(record_to_dict(r))),
    )
    ranked.sort(
        key=lambda r: (r.provenance.priority, revision_key(r.provenance.revision)),
        reverse=True,
    )
    return ranked


def merge_records(
    contributions: Iterable[DomainRecord],
    required_fields: Mapping[str, list[str]],
) -> tuple[DomainRecord, list[MergeConflict]]:
    """
    Merge all contributions for one identifier into a single record.

    Args:
        contributions: Records sharing one identifier
        required_fields: Required field names per category value

    Returns:
        Tuple of (merged record, conflicts encountered)

    Raises:
        ValueError: If there are no contributions
    """
    ranked = rank_contributions(contributions)
    if not ranked:
        raise ValueError("Cannot merge an empty set of contributions")

    winner = ranked[0]
    conflicts: list[MergeConflict] = []
    same: list[DomainRecord] = []
    for record in ranked:
        if record.category is winner.category:
            same.append(record)
        else:
            conflicts.append(
                MergeConflict(
                    winner.id, "category", winner.category.value, record.category.value
                )
            )

    values: dict[str, Any] = {}
    for f in fields(winner):
        if f.name in _DERIVED_FIELDS:
            continue
        if isinstance(getattr(winner, f.name), frozenset):
            values[f.name] = frozenset().union(*(getattr(r, f.name) for r in same))
        else:
            values[f.name] = _merge_scalar(winner.id, f.name, same, conflicts)

    if values.get("name"):
        values["aliases"] = values["aliases"] - {values["name"]}

    relations: dict[tuple[str, str], Relation] = {}
    for record in same:
        for relation in record.relations:
            relations.setdefault(relation.key, relation)

    merged = replace(
        winner,
        **values,
        relations=sort_relations(relations.values()),
        score=None,
    )

    missing = missing_fields(merged, required_fields.get(merged.category.value, []))
    merged = replace(
        merged,
        completeness=Completeness.INCOMPLETE if missing else Completeness.COMPLETE,
        missing_fields=frozenset(missing),
    )
    return merged, conflicts


def _merge_scalar(
    identifier: str,
    name: str,
    ranked: list[DomainRecord],
    conflicts: list[MergeConflict],
) -> Any:
    kept = None
    for record in ranked:
        value = getattr(record, name)
        if value is None:
            continue
        if kept is None:
            kept = value
        elif value != kept:
            conflicts.append(MergeConflict(identifier, name, kept, value))
    return kept
