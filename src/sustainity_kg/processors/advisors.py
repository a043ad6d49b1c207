"""External lists of certified organizations."""

from __future__ import annotations

import csv
import hashlib
import io
import logging
from pathlib import Path

from ..config.models import Certification, Provenance, Relation, RelationKind
from ..config.schemas import AdvisorConfig
from ..errors import ConfigError
from ..utils.text_processing import extract_domain, normalize_text

logger = logging.getLogger(__name__)


class CertificationAdvisor:
    """Knows which organizations hold one certification.

    Holders are matched either by Wikidata identifier (e.g. a TCO list) or by
    website domain (e.g. the B Corp directory). An advisor with a score column
    (e.g. the Fashion Transparency Index) also grades each holder; the grade
    becomes the confidence of the relation it contributes.
    """

    def __init__(
        self,
        config: AdvisorConfig,
        holders: set[str],
        fingerprint: str,
        grades: dict[str, float] | None = None,
    ):
        self.config = config
        self.holders = holders
        self.fingerprint = fingerprint
        self.grades = grades or {}
        self.provenance = f"advisor:{config.name}"

    @classmethod
    def load(cls, config: AdvisorConfig) -> CertificationAdvisor:
        """Load an advisor from its CSV file."""
        path = Path(config.path)
        if not path.exists():
            raise ConfigError(f"Advisor file not found: {path}")

        content = path.read_bytes()
        fingerprint = hashlib.md5(content).hexdigest()

        try:
            text = content.decode("utf-8-sig")
        except UnicodeDecodeError as e:
            raise ConfigError(f"Advisor {config.name}: {path} is not UTF-8: {e}") from e

        try:
            reader = csv.DictReader(io.StringIO(text))
            fieldnames = reader.fieldnames or []
            rows = list(reader)
        except csv.Error as e:
            raise ConfigError(
                f"Advisor {config.name}: malformed CSV in {path}: {e}"
            ) from e

        columns = [config.column]
        if config.score_column is not None:
            columns.append(config.score_column)
        for column in columns:
            if column not in fieldnames:
                raise ConfigError(
                    f"Advisor {config.name}: column '{column}' not found in {path}"
                )

        holders: set[str] = set()
        grades: dict[str, float] = {}
        for row in rows:
            value = (row.get(config.column) or "").strip()
            if value and config.match == "domain":
                value = extract_domain(value) or ""
            if not value:
                continue
            holders.add(value)
            if config.score_column is not None:
                grade = _grade(row.get(config.score_column), config)
                grades[value] = max(grade, grades.get(value, 0.0))

        logger.info(
            f"Loaded {len(holders)} holders of {config.certification_id} "
            f"from advisor {config.name}"
        )
        return cls(config, holders, fingerprint, grades)

    @property
    def certification_id(self) -> str:
        return self.config.certification_id

    def _matches(self, entity_id: str, domains: frozenset[str]) -> set[str]:
        if self.config.match == "domain":
            return self.holders & domains
        return {entity_id} & self.holders

    def certifies(self, entity_id: str, domains: frozenset[str]) -> bool:
        """Check whether an organization holds the advised certification."""
        return bool(self._matches(entity_id, domains))

    def grade(self, entity_id: str, domains: frozenset[str]) -> float:
        """Return the holder's grade in ``[0, 1]``; ungraded holders get 1."""
        if self.config.score_column is None:
            return 1.0
        return max(
            (self.grades[key] for key in self._matches(entity_id, domains)),
            default=0.0,
        )

    def relation_for(
        self, entity_id: str, domains: frozenset[str] = frozenset()
    ) -> Relation:
        return Relation(
            kind=RelationKind.CERTIFIED_BY,
            source=entity_id,
            target=self.certification_id,
            provenance=self.provenance,
            confidence=self.grade(entity_id, domains),
        )

    def certification_record(self) -> Certification:
        """Certification contributed by this advisor, merged with the dump's own."""
        return Certification(
            id=self.certification_id,
            name=normalize_text(self.config.certification_name) or None,
            provenance=Provenance(
                source=self.provenance,
                revision=self.fingerprint,
                priority=self.config.priority,
            ),
        )


def _grade(raw: str | None, config: AdvisorConfig) -> float:
    text = (raw or "").strip().rstrip("%")
    try:
        value = float(text)
    except ValueError as e:
        raise ConfigError(
            f"Advisor {config.name}: invalid score '{raw}' in {config.score_column}"
        ) from e
    if not 0.0 <= value <= config.score_scale:
        raise ConfigError(
            f"Advisor {config.name}: score {value} outside 0..{config.score_scale}"
        )
    return value / config.score_scale


def load_advisors(configs: list[AdvisorConfig]) -> list[CertificationAdvisor]:
    """Load all enabled advisors in configuration order."""
    return [CertificationAdvisor.load(config) for config in configs if config.enabled]
