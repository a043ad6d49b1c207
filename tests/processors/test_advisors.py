"""Tests for certification advisors."""

from pathlib import Path

import pytest
from sustainity_kg.config import AdvisorConfig, BuilderConfig
from sustainity_kg.config.models import Category, Certification, RelationKind
from sustainity_kg.dump import parse_entity
from sustainity_kg.errors import ConfigError
from sustainity_kg.processors import CertificationAdvisor, RecordBuilder, load_advisors

from tests.helpers import entity


@pytest.fixture
def bcorp_config(tmp_path: Path) -> AdvisorConfig:
    path = tmp_path / "bcorp.csv"
    path.write_text(
        "company,website\n"
        "Acme,https://www.ACME.example/about\n"
        "Other,other.example\n"
        "Nameless,\n",
        encoding="utf-8",
    )
    return AdvisorConfig(
        name="bcorp",
        path=path,
        certification_id="Q4894720",
        certification_name="B Corporation",
        match="domain",
        column="website",
    )


@pytest.fixture
def tco_config(tmp_path: Path) -> AdvisorConfig:
    path = tmp_path / "tco.csv"
    path.write_text("\ufeffwikidata_id,name\nQ1,Acme\nQ20,Other\n", encoding="utf-8")
    return AdvisorConfig(
        name="tco",
        path=path,
        certification_id="Q7669357",
        certification_name="TCO Certified",
    )



@pytest.fixture
def fti_config(tmp_path: Path) -> AdvisorConfig:
    path = tmp_path / "fti.csv"
    path.write_text(
        "wikidata_id,brand,score\nQ1,Acme,62%\nQ20,Other,8\nQ1,Acme Kids,40\n",
        encoding="utf-8",
    )
    return AdvisorConfig(
        name="fti",
        path=path,
        certification_id="fashion-transparency-index",
        certification_name="Fashion Transparency Index",
        score_column="score",
    )

class TestCertificationAdvisor:
    """Test loading and matching advisor lists."""

    def test_domain_holders(self, bcorp_config: AdvisorConfig) -> None:
        advisor = CertificationAdvisor.load(bcorp_config)
        assert advisor.holders == {"acme.example", "other.example"}
        assert advisor.certifies("Q1", frozenset({"acme.example"}))
        assert not advisor.certifies("Q1", frozenset({"unrelated.example"}))

    def test_id_holders_with_bom(self, tco_config: AdvisorConfig) -> None:
        advisor = CertificationAdvisor.load(tco_config)
        assert advisor.holders == {"Q1", "Q20"}
        assert advisor.certifies("Q20", frozenset())

    def test_missing_file(self, tco_config: AdvisorConfig, tmp_path: Path) -> None:
        tco_config.path = tmp_path / "missing.csv"
        with pytest.raises(ConfigError):
            CertificationAdvisor.load(tco_config)

    def test_missing_column(self, tco_config: AdvisorConfig) -> None:
        tco_config.column = "qid"
        with pytest.raises(ConfigError):
            CertificationAdvisor.load(tco_config)

    def test_certification_record(self, tco_config: AdvisorConfig) -> None:
        advisor = CertificationAdvisor.load(tco_config)
        record = advisor.certification_record()
        assert isinstance(record, Certification)
        assert record.id == "Q7669357"
        assert record.name == "TCO Certified"
        assert record.provenance.source == "advisor:tco"
        assert record.provenance.priority == 5

    def test_non_utf8_file(self, tco_config: AdvisorConfig) -> None:
        content = "wikidata_id,name\nQ1,Sch\u00f6n\n".encode("latin-1")
        Path(tco_config.path).write_bytes(content)
        with pytest.raises(ConfigError, match="not UTF-8"):
            CertificationAdvisor.load(tco_config)

    def test_graded_holders(self, fti_config: AdvisorConfig) -> None:
        advisor = CertificationAdvisor.load(fti_config)

        assert advisor.holders == {"Q1", "Q20"}
        assert advisor.grade("Q1", frozenset()) == 0.62
        assert advisor.grade("Q20", frozenset()) == 0.08
        assert advisor.grade("Q9", frozenset()) == 0.0
        assert advisor.relation_for("Q20").confidence == 0.08

    def test_ungraded_holders_have_full_grade(self, tco_config: AdvisorConfig) -> None:
        advisor = CertificationAdvisor.load(tco_config)
        assert advisor.relation_for("Q1").confidence == 1.0

    @pytest.mark.parametrize("score", ["high", "140", "-1"])
    def test_invalid_scores(self, fti_config: AdvisorConfig, score: str) -> None:
        Path(fti_config.path).write_text(f"wikidata_id,score\nQ1,{score}\n")
        with pytest.raises(ConfigError):
            CertificationAdvisor.load(fti_config)

    def test_missing_score_column(self, fti_config: AdvisorConfig) -> None:
        fti_config.score_column = "rating"
        with pytest.raises(ConfigError):
            CertificationAdvisor.load(fti_config)

    def test_disabled_advisors_are_skipped(
        self, tco_config: AdvisorConfig, bcorp_config: AdvisorConfig
    ) -> None:
        bcorp_config.enabled = False
        advisors = load_advisors([tco_config, bcorp_config])
        assert [a.config.name for a in advisors] == ["tco"]


class TestAdvisedOrganizations:
    """Test that builders attach advised certifications."""

    def test_certified_by_domain(
        self, builder_config: BuilderConfig, bcorp_config: AdvisorConfig
    ) -> None:
        advisor = CertificationAdvisor.load(bcorp_config)
        builder = RecordBuilder("wikidata", 10, builder_config, advisors=[advisor])
        raw = parse_entity(
            entity("Q1", "Acme", strings={"P856": ["http://acme.example"]})
        )

        record = builder.build(raw, Category.ORGANIZATION)

        [relation] = record.relations_of(RelationKind.CERTIFIED_BY)
        assert relation.target == "Q4894720"
        assert relation.provenance == "advisor:bcorp"

    def test_not_certified_without_matching_domain(
        self, builder_config: BuilderConfig, bcorp_config: AdvisorConfig
    ) -> None:
        advisor = CertificationAdvisor.load(bcorp_config)
        builder = RecordBuilder("wikidata", 10, builder_config, advisors=[advisor])
        raw = parse_entity(
            entity("Q9", "Elsewhere", strings={"P856": ["else.example"]})
        )

        record = builder.build(raw, Category.ORGANIZATION)

        assert record.relations_of(RelationKind.CERTIFIED_BY) == ()

    def test_products_are_not_advised(
        self, builder_config: BuilderConfig, tco_config: AdvisorConfig
    ) -> None:
        advisor = CertificationAdvisor.load(tco_config)
        builder = RecordBuilder("wikidata", 10, builder_config, advisors=[advisor])
        raw = parse_entity(entity("Q1", "Acme Phone", items={"P176": ["Q30"]}))

        record = builder.build(raw, Category.PRODUCT)

        assert record.relations_of(RelationKind.CERTIFIED_BY) == ()

    def test_graded_relation(
        self, builder_config: BuilderConfig, fti_config: AdvisorConfig
    ) -> None:
        advisor = CertificationAdvisor.load(fti_config)
        builder = RecordBuilder("wikidata", 10, builder_config, advisors=[advisor])
        raw = parse_entity(entity("Q1", "Acme"))

        record = builder.build(raw, Category.ORGANIZATION)

        [relation] = record.relations_of(RelationKind.CERTIFIED_BY)
        assert relation.target == "fashion-transparency-index"
        assert relation.confidence == 0.62
