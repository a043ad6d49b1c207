"""Dispatch of classified entities to the per-category builders."""

from __future__ import annotations

import hashlib

from ..config.models import Category, DomainRecord, RawEntity
from ..config.schemas import BuilderConfig, ClassifierConfig
from ..store.codec import dumps_canonical
from ..utils.countries import CountryTable
from .advisors import CertificationAdvisor
from .base import BaseBuilder
from .certification import CertificationBuilder
from .organization import OrganizationBuilder
from .product import ProductBuilder


class RecordBuilder:
    """Builds domain records for one source."""

    def __init__(
        self,
        source: str,
        priority: int,
        config: BuilderConfig,
        advisors: list[CertificationAdvisor] | None = None,
    ):
        self.source = source
        self.priority = priority
        self.config = config
        self.advisors = advisors or []

        countries = CountryTable(config.countries)
        self._builders: dict[Category, BaseBuilder] = {
            Category.ORGANIZATION: OrganizationBuilder(
                source, priority, config, countries, advisors=self.advisors
            ),
            Category.PRODUCT: ProductBuilder(source, priority, config, countries),
            Category.CERTIFICATION: CertificationBuilder(
                source, priority, config, countries
            ),
        }

    def build(self, entity: RawEntity, category: Category) -> DomainRecord:
        """
        Build the record for a classified entity.

        Raises:
            ValueError: If the category has no builder (e.g. irrelevant)
        """
        builder = self._builders.get(category)
        if builder is None:
            raise ValueError(f"No builder for category {category.value}")
        return builder.build(entity)


def builder_fingerprint(
    builder: BuilderConfig,
    classifier: ClassifierConfig,
    priority: int,
    advisors: list[CertificationAdvisor],
) -> str:
    """
    Digest everything besides the entity itself that shapes a built record.

    Cache entries are only reused while this fingerprint is unchanged.
    """
    payload = {
        "builder": builder,
        "classifier": classifier,
        "priority": priority,
        "advisors": sorted(
            ":".join(
                str(part)
                for part in (
                    advisor.config.name,
                    advisor.config.priority,
                    advisor.config.match,
                    advisor.config.column,
                    advisor.config.score_column,
                    advisor.config.score_scale,
                    advisor.fingerprint,
                )
            )
            for advisor in advisors
        ),
    }
    return hashlib.sha256(dumps_canonical(payload)).hexdigest()[:16]
