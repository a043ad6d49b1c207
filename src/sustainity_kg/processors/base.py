"""Base builder class for turning raw entities into domain records."""

from abc import ABC, abstractmethod
from collections.abc import Iterable
from dataclasses import replace
import logging
from typing import Any

from ..config.models import (
    Completeness,
    DomainRecord,
    Provenance,
    RawEntity,
    Relation,
)
from ..config.schemas import BuilderConfig
from ..utils.countries import CountryTable
from ..utils.text_processing import normalize_text


def resolve_term(terms: dict[str, str], languages: Iterable[str]) -> str | None:
    """
    Pick a term through an ordered language fallback chain.

    Falls back to the first language in sorted order when none of the
    preferred languages is present, so the choice never depends on the
    order of the source mapping.
    """
    for lang in languages:
        value = normalize_text(terms.get(lang, ""))
        if value:
            return value

    for lang in sorted(terms):
        value = normalize_text(terms[lang])
        if value:
            return value

    return None


class BaseBuilder(ABC):
    """Abstract base class for per-category record builders."""

    record_type: type[DomainRecord]

    def __init__(
        self,
        source: str,
        priority: int,
        config: BuilderConfig,
        countries: CountryTable,
    ):
        """Initialize builder.

        Args:
            source: Name of the data source the entities come from
            priority: Authority of the source when merging
            config: Property tables to extract fields with
            countries: Country normalization table
        """
        self.source = source
        self.priority = priority
        self.config = config
        self.countries = countries
        self.required_fields = config.required_fields.get(
            self.record_type.category.value, []
        )
        self.logger = logging.getLogger(f"{__name__}.{self.__class__.__name__}")

    def build(self, entity: RawEntity) -> DomainRecord:
        """Build a record, marking it incomplete if required fields are missing."""
        fields = self._common_fields(entity)
        fields.update(self._extra_fields(entity, fields))
        record = self.record_type(**fields)

        is_valid, missing = self._validate_record(record)
        if not is_valid:
            missing_text = ", ".join(missing)
            self.logger.debug(f"{entity.id} is incomplete: missing {missing_text}")
            record = replace(
                record,
                completeness=Completeness.INCOMPLETE,
                missing_fields=frozenset(missing),
            )
        return record

    @abstractmethod
    def _extra_fields(
        self, entity: RawEntity, fields: dict[str, Any]
    ) -> dict[str, Any]:
        """Return the fields specific to the record variant.

        Args:
            entity: Entity the record is built from
            fields: Common fields extracted so far

        Returns:
            Additional keyword arguments for the record type
        """
        pass

    def _validate_record(self, record: DomainRecord) -> tuple[bool, list[str]]:
        """Check required fields and return the names of the missing ones."""
        missing = missing_fields(record, self.required_fields)
        return not missing, missing

    def _common_fields(self, entity: RawEntity) -> dict[str, Any]:
        languages = self.config.languages
        name = resolve_term(entity.labels, languages)

        return {
            "id": entity.id,
            "provenance": Provenance(
                source=self.source, revision=entity.revision, priority=self.priority
            ),
            "name": name,
            "description": resolve_term(entity.descriptions, languages),
            "aliases": self._aliases(entity, name),
            "country": self._country(entity),
            "external_ids": self._external_ids(entity),
            "relations": self._relations(entity),
        }

    def _aliases(self, entity: RawEntity, name: str | None) -> frozenset[str]:
        aliases: set[str] = set()
        for lang in self.config.languages:
            label = normalize_text(entity.labels.get(lang, ""))
            if label:
                aliases.add(label)
            for alias in entity.aliases.get(lang, ()):
                alias = normalize_text(alias)
                if alias:
                    aliases.add(alias)
        aliases.discard(name or "")
        return frozenset(aliases)

    def _country(self, entity: RawEntity) -> str | None:
        for property_id in self.config.country_properties:
            for value in entity.claim_values(property_id):
                code = self.countries.normalize(value.value, value.entity_id)
                if code:
                    return code
        return None

    def _external_ids(self, entity: RawEntity) -> frozenset[str]:
        identifiers: set[str] = set()
        for property_id, scheme in self.config.external_ids.items():
            for value in entity.claim_values(property_id):
                if value.value.strip():
                    identifiers.add(f"{scheme}:{value.value.strip()}")
        return frozenset(identifiers)

    def _relations(self, entity: RawEntity) -> tuple[Relation, ...]:
        relations: dict[tuple[str, str], Relation] = {}
        for property_id, kind in self.config.relations.items():
            for target in entity.entity_ids(property_id):
                if target == entity.id:
                    continue
                relation = Relation(
                    kind=kind, source=entity.id, target=target, provenance=self.source
                )
                relations.setdefault(relation.key, relation)
        return sort_relations(relations.values())


def sort_relations(relations: Iterable[Relation]) -> tuple[Relation, ...]:
    """Order relations canonically by kind and target."""
    return tuple(sorted(relations, key=lambda r: r.key))


def is_missing(value: object) -> bool:
    if value is None:
        return True
    if isinstance(value, (str, frozenset, tuple)):
        return len(value) == 0
    return False


def missing_fields(record: DomainRecord, required: Iterable[str]) -> list[str]:
    """Return the required fields a record leaves empty."""
    return [name for name in required if is_missing(getattr(record, name))]
