"""Table-driven classification of raw entities into domain categories."""

from __future__ import annotations

from dataclasses import dataclass
import sys

from ..config.models import Category, RawEntity
from ..config.schemas import ClassificationRule, ClassifierConfig
from ..errors import ClassificationAmbiguous, ConfigError

# Explicitly listed entities outrank every property rule
_ENTITY_PRIORITY = sys.maxsize


@dataclass(frozen=True)
class ClassifierTable:
    """Immutable lookup form of the classifier configuration."""

    rules: tuple[ClassificationRule, ...]
    entities: dict[str, Category]

    @classmethod
    def from_config(cls, config: ClassifierConfig) -> ClassifierTable:
        for rule in config.rules:
            if rule.category is Category.IRRELEVANT:
                raise ConfigError(
                    f"Rule for {rule.property} cannot target 'irrelevant'"
                )
        return cls(rules=tuple(config.rules), entities=dict(config.entities))


class Classifier:
    """Maps a raw entity to a category according to a ``ClassifierTable``.

    Every rule whose property (and value, if the rule lists any) is claimed by
    the entity matches. The matches with the highest priority decide; if they
    disagree the classification is ambiguous.
    """

    def __init__(self, table: ClassifierTable):
        self.table = table

    def classify(self, entity: RawEntity) -> Category:
        """
        Classify an entity.

        Raises:
            ClassificationAmbiguous: If top-priority matches name different categories
        """
        matches: list[tuple[int, Category]] = []

        pinned = self.table.entities.get(entity.id)
        if pinned is not None:
            matches.append((_ENTITY_PRIORITY, pinned))

        for rule in self.table.rules:
            if self._matches(rule, entity):
                matches.append((rule.priority, rule.category))

        if not matches:
            return Category.IRRELEVANT

        top = max(priority for priority, _ in matches)
        categories = {category for priority, category in matches if priority == top}
        if len(categories) > 1:
            raise ClassificationAmbiguous(entity.id, [c.value for c in categories])
        return categories.pop()

    @staticmethod
    def _matches(rule: ClassificationRule, entity: RawEntity) -> bool:
        values = entity.claim_values(rule.property)
        if not values:
            return False
        if not rule.values:
            return True
        return any(
            (value.entity_id or value.value) in rule.values for value in values
        )
