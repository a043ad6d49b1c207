"""Sustainability scoring from resolved certifications."""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import replace
import logging

from ..config.models import Category, DomainRecord, RelationKind
from ..config.schemas import ScoringConfig


class Scorer:
    """Scores records by the certifications they hold.

    A record's score is the sum of the weights of its distinct valid
    certifications, each scaled by the grade of the relation that grants it.
    Relations from the dump carry full grade; graded advisors such as the
    Fashion Transparency Index grant a fraction. A certification is valid
    when a resolved ``certified_by`` relation points at a certification
    record. Certifications themselves are not scored.
    """

    def __init__(self, config: ScoringConfig):
        self.config = config
        self.logger = logging.getLogger(f"{__name__}.{self.__class__.__name__}")

    def weight(self, certification_id: str) -> float:
        return float(
            self.config.weights.get(certification_id, self.config.default_weight)
        )

    def grades(
        self, record: DomainRecord, index: Mapping[str, DomainRecord]
    ) -> dict[str, float]:
        """Map each valid certification a record holds to its best grade."""
        held: dict[str, float] = {}
        _collect_grades(record, index, held)

        if (
            self.config.inherit_manufacturer_certifications
            and record.category is Category.PRODUCT
        ):
            for relation in record.relations_of(RelationKind.MANUFACTURED_BY):
                manufacturer = index.get(relation.target)
                if relation.is_resolved and manufacturer is not None:
                    _collect_grades(manufacturer, index, held)

        return held

    def score(
        self, record: DomainRecord, index: Mapping[str, DomainRecord]
    ) -> float | None:
        if record.category is Category.CERTIFICATION:
            return None
        held = self.grades(record, index)
        return float(sum(self.weight(cert) * held[cert] for cert in sorted(held)))

    def score_all(self, records: list[DomainRecord]) -> list[DomainRecord]:
        """Return the records with their scores set."""
        index = {record.id: record for record in records}
        scored = [
            replace(record, score=self.score(record, index)) for record in records
        ]
        self.logger.debug(f"Scored {len(scored)} records")
        return scored


def _collect_grades(
    record: DomainRecord, index: Mapping[str, DomainRecord], held: dict[str, float]
) -> None:
    for relation in record.relations_of(RelationKind.CERTIFIED_BY):
        if relation.is_resolved and _is_certification(index.get(relation.target)):
            grade = min(max(relation.confidence, 0.0), 1.0)
            held[relation.target] = max(grade, held.get(relation.target, 0.0))


def _is_certification(record: DomainRecord | None) -> bool:
    return record is not None and record.category is Category.CERTIFICATION
