"""Organization record builder."""

from typing import Any

from ..config.models import Organization, RawEntity, Relation
from ..utils.text_processing import extract_domain
from .advisors import CertificationAdvisor
from .base import BaseBuilder, sort_relations


class OrganizationBuilder(BaseBuilder):
    """Builds organizations with their websites and advised certifications."""

    record_type = Organization

    def __init__(self, *args: Any, advisors: list[CertificationAdvisor] | None = None):
        super().__init__(*args)
        self.advisors = advisors or []

    def _extra_fields(
        self, entity: RawEntity, fields: dict[str, Any]
    ) -> dict[str, Any]:
        websites = frozenset(
            value.value.strip()
            for value in entity.claim_values(self.config.website_property)
            if value.value.strip()
        )
        domains = frozenset(
            domain for domain in map(extract_domain, websites) if domain is not None
        )

        relations: dict[tuple[str, str], Relation] = {
            relation.key: relation for relation in fields["relations"]
        }
        for advisor in self.advisors:
            if advisor.certifies(entity.id, domains):
                relation = advisor.relation_for(entity.id, domains)
                relations.setdefault(relation.key, relation)

        return {
            "websites": websites,
            "domains": domains,
            "relations": sort_relations(relations.values()),
        }
