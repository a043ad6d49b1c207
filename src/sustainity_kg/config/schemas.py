"""Configuration schemas for the Sustainity KG Pipeline."""

from dataclasses import dataclass, field
from pathlib import Path
from typing import Literal

from .models import Category, RelationKind

LogLevel = Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]


@dataclass
class ProviderConfig:
    """Configuration for dump providers."""

    provider_type: Literal["file", "http"] = "file"

    # File provider parameters
    file_path: str | Path | None = None

    # HTTP provider parameters
    url: str = ""
    timeout: int = 60
    chunk_size: int = 1024 * 1024


@dataclass
class SourceConfig:
    """Configuration for one dump source."""

    name: str
    provider: ProviderConfig
    priority: int = 10
    enabled: bool = True


@dataclass
class StoreConfig:
    """Configuration for the LMDB store."""

    path: str | Path = "store"
    map_size: int = 64 * 1024**3
    keep_versions: int = 2
    commit_every: int = 5000


@dataclass
class ProcessingConfig:
    """Configuration for the worker pool."""

    workers: int | None = None
    queue_size: int = 10000
    log_every: int = 100000


@dataclass
class ClassificationRule:
    """Maps a property (and optionally some of its values) to a category."""

    property: str
    category: Category
    values: list[str] = field(default_factory=list[str])
    priority: int = 0


def _default_rules() -> list[ClassificationRule]:
    return [
        # instance of: business, enterprise, company, organization
        ClassificationRule("P31", Category.ORGANIZATION, ["Q4830453"], 10),
        ClassificationRule("P31", Category.ORGANIZATION, ["Q6881511"], 10),
        ClassificationRule("P31", Category.ORGANIZATION, ["Q783794"], 10),
        ClassificationRule("P31", Category.ORGANIZATION, ["Q43229"], 10),
        # instance of: certification scheme classes
        ClassificationRule("P31", Category.CERTIFICATION, ["Q196756"], 20),
        ClassificationRule("P31", Category.CERTIFICATION, ["Q1417257"], 20),
        ClassificationRule("P31", Category.CERTIFICATION, ["Q1364774"], 20),
        # has a manufacturer
        ClassificationRule("P176", Category.PRODUCT, [], 5),
        # has an official website
        ClassificationRule("P856", Category.ORGANIZATION, [], 1),
    ]


@dataclass
class ClassifierConfig:
    """Property/value to category table used by the classifier."""

    rules: list[ClassificationRule] = field(default_factory=_default_rules)
    entities: dict[str, Category] = field(default_factory=dict[str, Category])


def _default_languages() -> list[str]:
    return ["en", "mul", "de", "fr", "es", "it", "nl", "cs", "pl"]


def _default_country_properties() -> list[str]:
    return ["P17", "P495"]


def _default_external_ids() -> dict[str, str]:
    return {
        "P3962": "gtin",
        "P946": "isin",
        "P1278": "lei",
        "P3608": "vat",
    }


def _default_relations() -> dict[str, RelationKind]:
    return {
        "P176": RelationKind.MANUFACTURED_BY,
        "P790": RelationKind.CERTIFIED_BY,
        "P155": RelationKind.FOLLOWS,
        "P156": RelationKind.FOLLOWED_BY,
        "P749": RelationKind.PARENT_ORGANIZATION,
        "P127": RelationKind.OWNED_BY,
    }


def _default_required_fields() -> dict[str, list[str]]:
    return {
        "organization": ["name"],
        "product": ["name"],
        "certification": ["name"],
    }


@dataclass
class BuilderConfig:
    """Property tables the model builder extracts record fields with."""

    languages: list[str] = field(default_factory=_default_languages)
    country_properties: list[str] = field(default_factory=_default_country_properties)
    countries: dict[str, str] = field(default_factory=dict[str, str])
    website_property: str = "P856"
    external_ids: dict[str, str] = field(default_factory=_default_external_ids)
    relations: dict[str, RelationKind] = field(default_factory=_default_relations)
    required_fields: dict[str, list[str]] = field(
        default_factory=_default_required_fields
    )


@dataclass
class ScoringConfig:
    """Certification weights for the sustainability score."""

    weights: dict[str, float] = field(default_factory=dict[str, float])
    default_weight: float = 1.0
    inherit_manufacturer_certifications: bool = True


@dataclass
class AdvisorConfig:
    """External list of certified organizations."""

    name: str
    path: str | Path
    certification_id: str
    certification_name: str
    match: Literal["id", "domain"] = "id"
    column: str = "wikidata_id"
    score_column: str | None = None
    score_scale: float = 100.0
    priority: int = 5
    enabled: bool = True


@dataclass
class LoggingConfig:
    """Configuration for logging."""

    level: LogLevel = "INFO"
    format: str = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
    file_path: str | Path | None = None
    max_file_size: str = "10MB"
    backup_count: int = 5
    external_level: LogLevel = "WARNING"
    issue_levels: dict[str, str] = field(
        default_factory=lambda: {"merge_conflict": "DEBUG"}
    )


@dataclass
class PipelineConfig:
    """Main pipeline configuration."""

    schema_version: str = "1"
    sources: list[SourceConfig] = field(default_factory=list[SourceConfig])
    store: StoreConfig = field(default_factory=StoreConfig)
    processing: ProcessingConfig = field(default_factory=ProcessingConfig)
    classifier: ClassifierConfig = field(default_factory=ClassifierConfig)
    builder: BuilderConfig = field(default_factory=BuilderConfig)
    scoring: ScoringConfig = field(default_factory=ScoringConfig)
    advisors: list[AdvisorConfig] = field(default_factory=list[AdvisorConfig])
    logging: LoggingConfig = field(default_factory=LoggingConfig)
    cache_dir: str | Path = "cache"
