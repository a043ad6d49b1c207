"""Tests for the dump reader."""

import gzip
from pathlib import Path
from typing import Any

import pytest
from sustainity_kg.dump import Codec, DumpReader, detect_codec, parse_line
from sustainity_kg.errors import DumpIoError, ParseError

from tests.helpers import DumpWriter, dump_bytes, entity


class TestDetectCodec:
    """Test codec detection."""

    @pytest.mark.parametrize(
        "name,codec",
        [
            ("dump.json.gz", Codec.GZIP),
            ("dump.json.bz2", Codec.BZIP2),
            ("dump.json.zst", Codec.ZSTD),
            ("dump.json", Codec.PLAIN),
        ],
    )
    def test_detects_codec(
        self,
        make_dump: DumpWriter,
        sample_entities: list[dict[str, Any]],
        name: str,
        codec: Codec,
    ) -> None:
        assert detect_codec(make_dump(sample_entities, name)) is codec

    def test_magic_bytes_win_over_extension(self, tmp_path: Path) -> None:
        path = tmp_path / "dump.json"
        path.write_bytes(gzip.compress(b"[]\n"))
        assert detect_codec(path) is Codec.GZIP

    def test_missing_file(self, tmp_path: Path) -> None:
        with pytest.raises(DumpIoError):
            detect_codec(tmp_path / "missing.json.gz")


class TestDumpReader:
    """Test streaming entities out of dumps."""

    @pytest.mark.parametrize(
        "name", ["dump.json.gz", "dump.json.bz2", "dump.json.zst", "dump.json"]
    )
    def test_reads_all_codecs(
        self, make_dump: DumpWriter, sample_entities: list[dict[str, Any]], name: str
    ) -> None:
        reader = DumpReader(make_dump(sample_entities, name))
        assert [e.id for e in reader] == ["Q1", "Q2", "Q3", "Q5"]

    def test_entity_fields(self, sample_dump: Path) -> None:
        acme = next(iter(DumpReader(sample_dump)))
        assert acme.revision == "101"
        assert acme.labels == {"en": "Acme"}
        assert acme.descriptions == {"en": "Maker of widgets"}
        assert acme.entity_ids("P17") == ["Q183"]
        assert acme.claim_values("P856")[0].value == "https://www.acme.example/"

    def test_plain_json_lines(self, tmp_path: Path) -> None:
        path = tmp_path / "dump.jsonl"
        path.write_text(
            '{"id": "Q1", "lastrevid": 7}\n{"id": "Q2", "lastrevid": 8}\n'
        )
        assert [e.id for e in DumpReader(path)] == ["Q1", "Q2"]

    def test_malformed_lines_are_reported_and_skipped(self, tmp_path: Path) -> None:
        path = tmp_path / "dump.json"
        path.write_bytes(
            b'[\n{"id": "Q1"},\n{"id": \n"not an object",\n{"labels": {}},\n'
            b'\xff\xfe,\n{"id": "Q2"}\n]\n'
        )
        errors: list[ParseError] = []

        entities = list(DumpReader(path, on_error=errors.append))

        assert [e.id for e in entities] == ["Q1", "Q2"]
        assert [e.line_number for e in errors] == [3, 4, 5, 6]

    def test_truncated_gzip_raises(
        self, tmp_path: Path, sample_entities: list[dict[str, Any]]
    ) -> None:
        data = gzip.compress(dump_bytes(sample_entities * 50))
        path = tmp_path / "truncated.json.gz"
        path.write_bytes(data[: len(data) // 2])

        with pytest.raises(DumpIoError):
            list(DumpReader(path))

    def test_restarts_from_offset(self, sample_dump: Path) -> None:
        lines = list(DumpReader(sample_dump).iter_lines())
        # "[", Q1, Q2, Q3, Q5, "]"
        assert len(lines) == 6
        offset_after_q2 = lines[2].offset

        resumed = DumpReader(sample_dump, start_offset=offset_after_q2)
        resumed_lines = list(resumed.iter_lines())

        assert resumed_lines[0].line_number == 4
        assert [e.id for e in DumpReader(sample_dump, offset_after_q2)] == ["Q3", "Q5"]
        assert resumed.offset == lines[-1].offset


class TestParseLine:
    """Test parsing single dump lines."""

    def test_framing_lines(self) -> None:
        assert parse_line(b"[\n", 1) is None
        assert parse_line(b"]\n", 1) is None
        assert parse_line(b"\n", 1) is None

    def test_revision_falls_back_to_content_digest(self) -> None:
        first = parse_line(b'{"id": "Q9"}\n', 1)
        second = parse_line(b'{"id": "Q9", "labels": {}}\n', 1)
        assert first is not None and second is not None
        assert first.revision != second.revision

    def test_deprecated_and_novalue_statements_are_ignored(self) -> None:
        document = entity("Q1", "Acme")
        document["claims"]["P17"] = [
            {"mainsnak": {"snaktype": "novalue"}, "rank": "normal"},
            {
                "mainsnak": {
                    "snaktype": "value",
                    "datavalue": {
                        "type": "wikibase-entityid",
                        "value": {"entity-type": "item", "numeric-id": 183},
                    },
                },
                "rank": "deprecated",
            },
            {
                "mainsnak": {
                    "snaktype": "value",
                    "datavalue": {
                        "type": "wikibase-entityid",
                        "value": {"entity-type": "item", "numeric-id": 142},
                    },
                },
                "rank": "preferred",
            },
        ]
        parsed = parse_line(dump_bytes([document]).splitlines()[1], 2)
        assert parsed is not None
        assert parsed.entity_ids("P17") == ["Q142"]

    def test_error_carries_line_number(self) -> None:
        with pytest.raises(ParseError) as exc_info:
            parse_line(b'{"id": 5}\n', 42)
        assert exc_info.value.line_number == 42
        assert "line 42" in str(exc_info.value)

    @pytest.mark.parametrize(
        "line",
        [
            b"{not json},\n",
            b"[1, 2],\n",
            b"[" * 200_000 + b",\n",
            b'{"id": "Q1", "labels": {"en": ' * 50_000 + b"\n",
            b"\xff\xfe\n",
        ],
    )
    def test_unparseable_lines(self, line: bytes) -> None:
        with pytest.raises(ParseError):
            parse_line(line, 7)

    def test_unpaired_surrogate_is_rejected(self) -> None:
        line = dump_bytes([entity("Q4", "bad \ud800 name")]).splitlines()[1]
        assert b"\\ud800" in line

        with pytest.raises(ParseError) as exc_info:
            parse_line(line, 2)
        assert "surrogate" in str(exc_info.value)

    def test_paired_surrogates_are_accepted(self) -> None:
        line = dump_bytes([entity("Q4", "Acme \U0001f331")]).splitlines()[1]
        assert b"\\ud83c\\udf31" in line

        parsed = parse_line(line, 2)

        assert parsed is not None
        assert parsed.labels["en"] == "Acme \U0001f331"
