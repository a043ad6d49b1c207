"""Canonical data model for the Sustainity knowledge base."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from functools import cached_property
from typing import ClassVar


class Category(Enum):
    """Domain category an entity is classified into."""

    ORGANIZATION = "organization"
    PRODUCT = "product"
    CERTIFICATION = "certification"
    IRRELEVANT = "irrelevant"


class RelationKind(Enum):
    """Typed, directed edge between two canonical identifiers."""

    MANUFACTURED_BY = "manufactured_by"
    CERTIFIED_BY = "certified_by"
    FOLLOWS = "follows"
    FOLLOWED_BY = "followed_by"
    PARENT_ORGANIZATION = "parent_organization"
    OWNED_BY = "owned_by"


class RelationStatus(Enum):
    PENDING = "pending"
    RESOLVED = "resolved"
    UNRESOLVED = "unresolved"


class Completeness(Enum):
    COMPLETE = "complete"
    INCOMPLETE = "incomplete"


def _empty_str_dict() -> dict[str, str]:
    return {}


def _empty_aliases() -> dict[str, tuple[str, ...]]:
    return {}


def _empty_claims() -> dict[str, tuple[ClaimValue, ...]]:
    return {}


@dataclass(frozen=True)
class ClaimValue:
    """Value of a single claim.

    ``entity_id`` is set when the claim points at another entity, ``value``
    always holds a textual rendering of the claim.
    """

    value: str
    entity_id: str | None = None


@dataclass(frozen=True)
class RawEntity:
    """One entity as read from the dump."""

    id: str
    revision: str
    labels: dict[str, str] = field(default_factory=_empty_str_dict)
    descriptions: dict[str, str] = field(default_factory=_empty_str_dict)
    aliases: dict[str, tuple[str, ...]] = field(default_factory=_empty_aliases)
    claims: dict[str, tuple[ClaimValue, ...]] = field(default_factory=_empty_claims)

    def claim_values(self, property_id: str) -> tuple[ClaimValue, ...]:
        """Return the values claimed for a property, in dump order."""

        return self.claims.get(property_id, ())

    def entity_ids(self, property_id: str) -> list[str]:
        """Return the identifiers referenced by a property."""

        return [
            value.entity_id
            for value in self.claim_values(property_id)
            if value.entity_id is not None
        ]


@dataclass(frozen=True)
class Provenance:
    """Where a record came from and how authoritative that source is."""

    source: str
    revision: str
    priority: int = 0


@dataclass(frozen=True)
class Relation:
    """Directed edge from ``source`` to ``target``."""

    kind: RelationKind
    source: str
    target: str
    provenance: str
    confidence: float = 1.0
    status: RelationStatus = RelationStatus.PENDING

    @property
    def key(self) -> tuple[str, str]:
        return (self.kind.value, self.target)

    @property
    def is_resolved(self) -> bool:
        return self.status is RelationStatus.RESOLVED


@dataclass(frozen=True)
class DomainRecord:
    """Fields shared by all domain record variants."""

    id: str
    provenance: Provenance
    name: str | None = None
    description: str | None = None
    aliases: frozenset[str] = frozenset()
    country: str | None = None
    external_ids: frozenset[str] = frozenset()
    relations: tuple[Relation, ...] = ()
    completeness: Completeness = Completeness.COMPLETE
    missing_fields: frozenset[str] = frozenset()
    score: float | None = None

    category: ClassVar[Category]

    @property
    def is_complete(self) -> bool:
        return self.completeness is Completeness.COMPLETE

    def relations_of(self, kind: RelationKind) -> tuple[Relation, ...]:
        """Return the relations of the given kind in stored order."""

        return tuple(r for r in self.relations if r.kind is kind)


@dataclass(frozen=True)
class Organization(DomainRecord):
    websites: frozenset[str] = frozenset()
    domains: frozenset[str] = frozenset()

    category: ClassVar[Category] = Category.ORGANIZATION


@dataclass(frozen=True)
class Product(DomainRecord):
    category: ClassVar[Category] = Category.PRODUCT


@dataclass(frozen=True)
class Certification(DomainRecord):
    category: ClassVar[Category] = Category.CERTIFICATION


RECORD_TYPES: dict[Category, type[DomainRecord]] = {
    Category.ORGANIZATION: Organization,
    Category.PRODUCT: Product,
    Category.CERTIFICATION: Certification,
}


@dataclass(frozen=True)
class DatasetVersion:
    """Identifies one published dataset.

    ``number`` increases with every publish, ``revision`` digests the source
    fingerprints the dataset was built from.
    """

    number: int
    revision: str
    created_at: str


@dataclass(frozen=True)
class CondensedDataset:
    """Immutable result of one condensing run."""

    version: DatasetVersion
    records: tuple[DomainRecord, ...]
    unresolved: tuple[Relation, ...] = ()
    incomplete: tuple[DomainRecord, ...] = ()
    merge_conflicts: int = 0

    @cached_property
    def _index(self) -> dict[str, DomainRecord]:
        return {record.id: record for record in self.records}

    def get(self, identifier: str) -> DomainRecord | None:
        """Look up a published record by identifier."""

        return self._index.get(identifier)

    def of_category(self, category: Category) -> list[DomainRecord]:
        return [r for r in self.records if r.category is category]

    def content_bytes(self) -> bytes:
        """Canonical encoding of everything but the version tag."""

        from ..store.codec import encode_content

        return encode_content(self)


@dataclass(frozen=True)
class CacheEntry:
    """Records built from one source entity, keyed for incremental reruns."""

    source: str
    entity_id: str
    revision: str
    fingerprint: str
    category: Category | None = None
    records: tuple[DomainRecord, ...] = ()

    @property
    def key(self) -> str:
        return cache_key(self.source, self.entity_id)

    def matches(self, revision: str, fingerprint: str) -> bool:
        return self.revision == revision and self.fingerprint == fingerprint


def cache_key(source: str, entity_id: str) -> str:
    """Store key of a cache entry."""

    return f"{source}\x00{entity_id}"
