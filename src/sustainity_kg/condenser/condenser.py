"""Condensing of built records into one immutable dataset."""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import replace
import logging

from ..config.models import (
    CondensedDataset,
    DatasetVersion,
    DomainRecord,
    Relation,
)
from ..config.schemas import BuilderConfig, ScoringConfig
from ..errors import IncompleteRecord, UnresolvedRelation
from ..utils.stats import RunStats
from .merge import merge_records
from .relations import build_index, resolve_relations
from .scoring import Scorer


class Condenser:
    """Merges, resolves and scores the records of one run.

    Records are collected in an arena keyed by identifier; identical
    contributions are stored once. Nothing is resolved until ``condense``
    runs, so relation targets may arrive in any order.
    """

    def __init__(
        self,
        builder_config: BuilderConfig,
        scoring_config: ScoringConfig,
        stats: RunStats | None = None,
    ):
        self.required_fields = builder_config.required_fields
        self.scorer = Scorer(scoring_config)
        self.stats = stats or RunStats()
        self._arena: dict[str, list[DomainRecord]] = {}
        self.logger = logging.getLogger(f"{__name__}.{self.__class__.__name__}")

    def add(self, record: DomainRecord) -> None:
        contributions = self._arena.setdefault(record.id, [])
        if record not in contributions:
            contributions.append(record)

    def add_all(self, records: Iterable[DomainRecord]) -> None:
        for record in records:
            self.add(record)

    def __len__(self) -> int:
        return len(self._arena)

    def condense(self, version: DatasetVersion) -> CondensedDataset:
        """
        Produce the dataset for a version.

        Args:
            version: Version tag of the resulting dataset

        Returns:
            Dataset holding the complete records sorted by identifier
        """
        self.logger.info(f"Condensing {len(self._arena)} identifiers")

        merged: list[DomainRecord] = []
        merge_conflicts = 0
        for identifier in sorted(self._arena):
            record, conflicts = merge_records(
                self._arena[identifier], self.required_fields
            )
            for conflict in conflicts:
                self.stats.record(conflict)
            merge_conflicts += len(conflicts)
            merged.append(record)

        index = build_index(merged)
        arena, unresolved = resolve_relations(merged, index)

        complete = [record for record in arena if record.is_complete]
        incomplete = [record for record in arena if not record.is_complete]

        published = [
            replace(record, relations=_resolved_only(record))
            for record in self.scorer.score_all(complete)
        ]

        for record in incomplete:
            self.stats.record(IncompleteRecord(record.id, record.missing_fields))
        unresolved.sort(key=_relation_order)
        for relation in unresolved:
            self.stats.record(
                UnresolvedRelation(
                    relation.source, relation.kind.value, relation.target
                )
            )

        self.logger.info(
            f"Condensed {len(published)} records "
            f"({len(incomplete)} incomplete, {len(unresolved)} unresolved relations, "
            f"{merge_conflicts} merge conflicts)"
        )

        return CondensedDataset(
            version=version,
            records=tuple(published),
            unresolved=tuple(unresolved),
            incomplete=tuple(incomplete),
            merge_conflicts=merge_conflicts,
        )


def _relation_order(relation: Relation) -> tuple[str, str, str]:
    return (relation.source, relation.kind.value, relation.target)


def _resolved_only(record: DomainRecord) -> tuple[Relation, ...]:
    return tuple(relation for relation in record.relations if relation.is_resolved)
