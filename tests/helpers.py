"""Builders for Wikidata-style test dumps."""

import bz2
from collections.abc import Callable
import gzip
import json
from pathlib import Path
from typing import Any

import zstandard as zstd

EntityFactory = Callable[..., dict[str, Any]]
DumpWriter = Callable[..., Path]


def item_statement(value: str, rank: str = "normal") -> dict[str, Any]:
    """Statement pointing at another item."""
    return {
        "mainsnak": {
            "snaktype": "value",
            "datavalue": {
                "type": "wikibase-entityid",
                "value": {"entity-type": "item", "id": value},
            },
        },
        "rank": rank,
    }


def string_statement(value: str) -> dict[str, Any]:
    """Statement with a plain string value."""
    return {
        "mainsnak": {
            "snaktype": "value",
            "datavalue": {"type": "string", "value": value},
        },
        "rank": "normal",
    }


def entity(
    entity_id: str,
    label: str | None = None,
    lastrevid: int = 1,
    items: dict[str, list[str]] | None = None,
    strings: dict[str, list[str]] | None = None,
    description: str | None = None,
    aliases: list[str] | None = None,
) -> dict[str, Any]:
    """Build a Wikidata-style entity document."""
    claims: dict[str, list[dict[str, Any]]] = {}
    for property_id, values in (items or {}).items():
        claims.setdefault(property_id, []).extend(item_statement(v) for v in values)
    for property_id, values in (strings or {}).items():
        claims.setdefault(property_id, []).extend(string_statement(v) for v in values)

    document: dict[str, Any] = {
        "id": entity_id,
        "type": "item",
        "lastrevid": lastrevid,
        "labels": {"en": {"language": "en", "value": label}} if label else {},
        "descriptions": {},
        "aliases": {},
        "claims": claims,
    }
    if description:
        document["descriptions"]["en"] = {"language": "en", "value": description}
    if aliases:
        document["aliases"]["en"] = [{"language": "en", "value": a} for a in aliases]
    return document


def dump_bytes(entities: list[dict[str, Any]]) -> bytes:
    """Render entities with the array framing of Wikidata JSON dumps."""
    lines = ["["]
    lines.extend(
        json.dumps(document) + ("," if i < len(entities) - 1 else "")
        for i, document in enumerate(entities)
    )
    lines.append("]")
    return ("\n".join(lines) + "\n").encode("utf-8")


def write_dump(path: Path, entities: list[dict[str, Any]]) -> Path:
    """Write a dump compressed according to the file extension."""
    data = dump_bytes(entities)
    if path.suffix == ".gz":
        path.write_bytes(gzip.compress(data))
    elif path.suffix == ".bz2":
        path.write_bytes(bz2.compress(data))
    elif path.suffix in (".zst", ".zstd"):
        path.write_bytes(zstd.ZstdCompressor().compress(data))
    else:
        path.write_bytes(data)
    return path


