"""Shared test fixtures for the Sustainity KG Pipeline tests."""

from collections.abc import Iterator
import logging
from pathlib import Path
from typing import Any

import pytest
from sustainity_kg.config import BuilderConfig, ClassifierConfig, ScoringConfig
from sustainity_kg.config.models import (
    Certification,
    Organization,
    Product,
    Provenance,
    Relation,
    RelationKind,
)

from tests.helpers import DumpWriter, EntityFactory, entity, write_dump


@pytest.fixture
def make_entity() -> EntityFactory:
    """Factory for Wikidata-style entity documents."""
    return entity


@pytest.fixture
def make_dump(tmp_path: Path) -> DumpWriter:
    """Factory writing dumps into the test directory."""

    def _make_dump(
        entities: list[dict[str, Any]], name: str = "dump.json.gz"
    ) -> Path:
        return write_dump(tmp_path / name, entities)

    return _make_dump


@pytest.fixture
def sample_entities() -> list[dict[str, Any]]:
    """Acme makes Widget, which is certified by EcoCert.

    Widget appears before EcoCert, so its certification is a forward
    reference.
    """
    return [
        entity(
            "Q1",
            "Acme",
            lastrevid=101,
            items={"P31": ["Q4830453"], "P17": ["Q183"]},
            strings={"P856": ["https://www.acme.example/"]},
            description="Maker of widgets",
        ),
        entity(
            "Q2",
            "Widget",
            lastrevid=102,
            items={"P176": ["Q1"], "P790": ["Q3"]},
            strings={"P3962": ["4006381333931"]},
        ),
        entity("Q3", "EcoCert", lastrevid=103, items={"P31": ["Q196756"]}),
        entity("Q5", "Douglas Adams", lastrevid=104, items={"P31": ["Q5"]}),
    ]


@pytest.fixture
def sample_dump(make_dump: DumpWriter, sample_entities: list[dict[str, Any]]) -> Path:
    return make_dump(sample_entities)


@pytest.fixture
def builder_config() -> BuilderConfig:
    return BuilderConfig()


@pytest.fixture
def classifier_config() -> ClassifierConfig:
    return ClassifierConfig()


@pytest.fixture
def scoring_config() -> ScoringConfig:
    return ScoringConfig(weights={"Q3": 10.0}, default_weight=1.0)


@pytest.fixture
def sample_records() -> list[Organization | Product | Certification]:
    """Built records for the Acme scenario, relations still pending."""
    return [
        Organization(
            id="Q1",
            provenance=Provenance("wikidata", "101", 10),
            name="Acme",
            country="DE",
            websites=frozenset({"https://www.acme.example/"}),
            domains=frozenset({"acme.example"}),
        ),
        Product(
            id="Q2",
            provenance=Provenance("wikidata", "102", 10),
            name="Widget",
            external_ids=frozenset({"gtin:4006381333931"}),
            relations=(
                Relation(RelationKind.CERTIFIED_BY, "Q2", "Q3", "wikidata"),
                Relation(RelationKind.MANUFACTURED_BY, "Q2", "Q1", "wikidata"),
            ),
        ),
        Certification(
            id="Q3",
            provenance=Provenance("wikidata", "103", 10),
            name="EcoCert",
        ),
    ]


@pytest.fixture
def restore_logging() -> Iterator[None]:
    """Put back the root logger handlers replaced by setup_logging."""
    root = logging.getLogger()
    handlers, level = root.handlers[:], root.level
    yield
    for handler in root.handlers[:]:
        root.removeHandler(handler)
        handler.close()
    for handler in handlers:
        root.addHandler(handler)
    root.setLevel(level)
