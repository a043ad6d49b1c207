"""Compact binary encoding of records, cache entries and dataset reports.

Values are rendered as canonical JSON (sorted keys, sets as sorted lists) and
compressed with zstandard, so equal values always encode to equal bytes.
Decoding rebuilds the frozen dataclasses with dacite.
"""

from __future__ import annotations

from dataclasses import fields, is_dataclass
from enum import Enum
import json
from pathlib import Path
from typing import Any

from dacite import Config, from_dict
import zstandard as zstd

from ..config.models import (
    RECORD_TYPES,
    CacheEntry,
    Category,
    CondensedDataset,
    DomainRecord,
    Relation,
)

COMPRESSION_LEVEL = 3

_DACITE_CONFIG = Config(
    strict=True,
    cast=[Enum],
    type_hooks={
        frozenset[str]: frozenset,
        tuple[Relation, ...]: tuple,
        float: float,
    },
)


def to_primitive(value: Any) -> Any:
    """Convert dataclasses, enums and collections into canonical JSON data."""
    if is_dataclass(value) and not isinstance(value, type):
        return {f.name: to_primitive(getattr(value, f.name)) for f in fields(value)}
    if isinstance(value, Enum):
        return value.value
    if isinstance(value, Path):
        return str(value)
    if isinstance(value, (set, frozenset)):
        return sorted(to_primitive(item) for item in value)
    if isinstance(value, (list, tuple)):
        return [to_primitive(item) for item in value]
    if isinstance(value, dict):
        return {str(k): to_primitive(v) for k, v in value.items()}
    return value


def dumps_canonical(data: Any) -> bytes:
    return json.dumps(
        to_primitive(data), sort_keys=True, separators=(",", ":"), ensure_ascii=False
    ).encode("utf-8")


def compress(raw: bytes) -> bytes:
    return zstd.ZstdCompressor(level=COMPRESSION_LEVEL).compress(raw)


def decompress(payload: bytes) -> bytes:
    return zstd.ZstdDecompressor().decompress(payload)


def record_to_dict(record: DomainRecord) -> dict[str, Any]:
    data: dict[str, Any] = to_primitive(record)
    data["category"] = record.category.value
    return data


def record_from_dict(data: dict[str, Any]) -> DomainRecord:
    data = dict(data)
    category = Category(data.pop("category"))
    record_type = RECORD_TYPES[category]
    return from_dict(data_class=record_type, data=data, config=_DACITE_CONFIG)


def relation_from_dict(data: dict[str, Any]) -> Relation:
    return from_dict(data_class=Relation, data=data, config=_DACITE_CONFIG)


def encode_record(record: DomainRecord) -> bytes:
    return compress(dumps_canonical(record_to_dict(record)))


def decode_record(payload: bytes) -> DomainRecord:
    return record_from_dict(json.loads(decompress(payload)))


def encode_cache_entry(entry: CacheEntry) -> bytes:
    data = {
        "source": entry.source,
        "entity_id": entry.entity_id,
        "revision": entry.revision,
        "fingerprint": entry.fingerprint,
        "category": entry.category.value if entry.category else None,
        "records": [record_to_dict(record) for record in entry.records],
    }
    return compress(dumps_canonical(data))


def decode_cache_entry(payload: bytes) -> CacheEntry:
    data = json.loads(decompress(payload))
    category = data["category"]
    return CacheEntry(
        source=data["source"],
        entity_id=data["entity_id"],
        revision=data["revision"],
        fingerprint=data["fingerprint"],
        category=Category(category) if category else None,
        records=tuple(record_from_dict(record) for record in data["records"]),
    )


def content_to_dict(dataset: CondensedDataset) -> dict[str, Any]:
    return {
        "records": [record_to_dict(record) for record in dataset.records],
        "unresolved": to_primitive(dataset.unresolved),
        "incomplete": [record_to_dict(record) for record in dataset.incomplete],
    }


def encode_content(dataset: CondensedDataset) -> bytes:
    """Canonical bytes of a dataset's content, excluding its version."""
    return dumps_canonical(content_to_dict(dataset))


def encode_report(dataset: CondensedDataset) -> bytes:
    data = {
        "version": to_primitive(dataset.version),
        "unresolved": to_primitive(dataset.unresolved),
        "incomplete": [record_to_dict(record) for record in dataset.incomplete],
        "merge_conflicts": dataset.merge_conflicts,
    }
    return compress(dumps_canonical(data))


def decode_report(payload: bytes) -> dict[str, Any]:
    data = json.loads(decompress(payload))
    return {
        "version": data["version"],
        "unresolved": [relation_from_dict(item) for item in data["unresolved"]],
        "incomplete": [record_from_dict(item) for item in data["incomplete"]],
        "merge_conflicts": data["merge_conflicts"],
    }


def encode_json(data: Any) -> bytes:
    """Uncompressed canonical JSON for small metadata values."""
    return dumps_canonical(data)


def decode_json(payload: bytes) -> Any:
    return json.loads(payload)
