"""LMDB implementation of the store interface."""

from __future__ import annotations

from collections.abc import Iterable, Iterator
from contextlib import contextmanager
import logging
from pathlib import Path
from typing import Any

import lmdb

from ..config.models import (
    CacheEntry,
    Category,
    CondensedDataset,
    DatasetVersion,
    DomainRecord,
    cache_key,
)
from ..errors import StoreError
from .codec import (
    decode_cache_entry,
    decode_json,
    decode_record,
    decode_report,
    encode_cache_entry,
    encode_json,
    encode_record,
    encode_report,
    to_primitive,
)
from .interface import StoreInterface

logger = logging.getLogger(__name__)

_DATABASES = ("records", "categories", "reports", "cache", "seen", "meta")

_CURRENT_VERSION = b"current_version"
_VERSIONS = b"versions"
_RUN_STATE = b"run_state"


def _version_prefix(number: int) -> bytes:
    return f"{number:08d}\x00".encode()


def _record_key(number: int, identifier: str) -> bytes:
    return _version_prefix(number) + identifier.encode()


def _category_prefix(number: int, category: Category) -> bytes:
    return _version_prefix(number) + f"{category.value}\x00".encode()


def _report_key(number: int) -> bytes:
    return f"{number:08d}".encode()


class LmdbStore(StoreInterface):
    """Versioned record store and build cache in one LMDB environment.

    A single process writes; readers open the environment with
    ``readonly=True``. Published versions are never rewritten.
    """

    def __init__(
        self,
        path: str | Path,
        map_size: int = 64 * 1024**3,
        keep_versions: int = 2,
        readonly: bool = False,
    ):
        """
        Open (and create unless read-only) the LMDB environment.

        Args:
            path: Directory holding the environment
            map_size: Maximum size of the memory map in bytes
            keep_versions: Number of published versions to retain
            readonly: Open for reading only

        Raises:
            StoreError: If the environment cannot be opened
        """
        self.path = Path(path)
        self.keep_versions = keep_versions
        self.readonly = readonly

        self.logger = logging.getLogger(f"{__name__}.{self.__class__.__name__}")

        try:
            if not readonly:
                self.path.mkdir(parents=True, exist_ok=True)
            self.env = lmdb.open(
                str(self.path),
                map_size=map_size,
                max_dbs=len(_DATABASES),
                readonly=readonly,
                create=not readonly,
            )
            self._dbs = {
                name: self.env.open_db(name.encode(), create=not readonly)
                for name in _DATABASES
            }
        except (lmdb.Error, OSError) as e:
            raise StoreError(f"Cannot open store at {self.path}: {e}") from e

        mode = "read-only" if readonly else "read-write"
        self.logger.debug(f"Opened store at {self.path} ({mode})")

    @contextmanager
    def _txn(self, write: bool = False) -> Iterator[lmdb.Transaction]:
        if write and self.readonly:
            raise StoreError(f"Store at {self.path} is opened read-only")
        try:
            with self.env.begin(write=write) as txn:
                yield txn
        except lmdb.Error as e:
            raise StoreError(f"Store operation failed: {e}") from e

    def _resolve_version(
        self, txn: lmdb.Transaction, version: int | None
    ) -> int | None:
        if version is not None:
            return version
        raw = txn.get(_CURRENT_VERSION, db=self._dbs["meta"])
        if raw is None:
            return None
        return decode_json(raw)["number"]

    # Published datasets

    def get(self, identifier: str, version: int | None = None) -> DomainRecord | None:
        with self._txn() as txn:
            number = self._resolve_version(txn, version)
            if number is None:
                return None
            raw = txn.get(_record_key(number, identifier), db=self._dbs["records"])
        return decode_record(raw) if raw is not None else None

    def scan(
        self, category: Category, version: int | None = None
    ) -> Iterator[DomainRecord]:
        with self._txn() as txn:
            number = self._resolve_version(txn, version)
            if number is None:
                return
            prefix = _category_prefix(number, category)
            records = self._dbs["records"]
            cursor = txn.cursor(db=self._dbs["categories"])
            if not cursor.set_range(prefix):
                return
            for key in cursor.iternext(keys=True, values=False):
                if not key.startswith(prefix):
                    break
                identifier = key[len(prefix) :].decode()
                raw = txn.get(_record_key(number, identifier), db=records)
                if raw is None:
                    raise StoreError(f"Category index points at missing {identifier}")
                yield decode_record(raw)

    def iter_records(self, version: int | None = None) -> Iterator[DomainRecord]:
        with self._txn() as txn:
            number = self._resolve_version(txn, version)
            if number is None:
                return
            prefix = _version_prefix(number)
            cursor = txn.cursor(db=self._dbs["records"])
            if not cursor.set_range(prefix):
                return
            for key, value in cursor:
                if not key.startswith(prefix):
                    break
                yield decode_record(value)

    def publish(self, dataset: CondensedDataset) -> DatasetVersion:
        version = dataset.version
        known = self.versions()
        if any(v.number == version.number for v in known):
            raise StoreError(f"Dataset version {version.number} already exists")

        with self._txn(write=True) as txn:
            records = self._dbs["records"]
            categories = self._dbs["categories"]
            number = version.number
            for record in dataset.records:
                txn.put(
                    _record_key(number, record.id), encode_record(record), db=records
                )
                txn.put(
                    _category_prefix(number, record.category) + record.id.encode(),
                    b"",
                    db=categories,
                )
            txn.put(
                _report_key(number), encode_report(dataset), db=self._dbs["reports"]
            )

        # Switch the published pointer only once the version is fully written
        retained = [*known, version]
        with self._txn(write=True) as txn:
            meta = self._dbs["meta"]
            txn.put(_VERSIONS, encode_json(retained), db=meta)
            txn.put(_CURRENT_VERSION, encode_json(version), db=meta)

        self.logger.info(
            f"Published version {version.number} with {len(dataset.records)} records"
        )

        expired = retained[: max(0, len(retained) - self.keep_versions)]
        if expired:
            self._drop_versions(expired, retained[len(expired) :])
        return version

    def _drop_versions(
        self, expired: list[DatasetVersion], remaining: list[DatasetVersion]
    ) -> None:
        with self._txn(write=True) as txn:
            for version in expired:
                prefix = _version_prefix(version.number)
                for name in ("records", "categories"):
                    cursor = txn.cursor(db=self._dbs[name])
                    if not cursor.set_range(prefix):
                        continue
                    while cursor.key().startswith(prefix):
                        if not cursor.delete():
                            break
                txn.delete(_report_key(version.number), db=self._dbs["reports"])
            txn.put(_VERSIONS, encode_json(remaining), db=self._dbs["meta"])
        self.logger.info(
            f"Dropped versions {', '.join(str(v.number) for v in expired)}"
        )

    def current_version(self) -> DatasetVersion | None:
        with self._txn() as txn:
            raw = txn.get(_CURRENT_VERSION, db=self._dbs["meta"])
        if raw is None:
            return None
        return DatasetVersion(**decode_json(raw))

    def versions(self) -> list[DatasetVersion]:
        with self._txn() as txn:
            raw = txn.get(_VERSIONS, db=self._dbs["meta"])
        if raw is None:
            return []
        return [DatasetVersion(**item) for item in decode_json(raw)]

    def get_report(self, version: int | None = None) -> dict[str, Any] | None:
        with self._txn() as txn:
            number = self._resolve_version(txn, version)
            if number is None:
                return None
            raw = txn.get(_report_key(number), db=self._dbs["reports"])
        return decode_report(raw) if raw is not None else None

    # Build cache

    def get_cache_entry(self, source: str, entity_id: str) -> CacheEntry | None:
        with self._txn() as txn:
            raw = txn.get(cache_key(source, entity_id).encode(), db=self._dbs["cache"])
        return decode_cache_entry(raw) if raw is not None else None

    def put_cache_entries(
        self,
        entries: Iterable[CacheEntry],
        run_id: str,
        checkpoint: dict[str, Any] | None = None,
        touched: Iterable[str] = (),
    ) -> None:
        stamp = run_id.encode()
        with self._txn(write=True) as txn:
            cache = self._dbs["cache"]
            seen = self._dbs["seen"]
            for entry in entries:
                key = entry.key.encode()
                txn.put(key, encode_cache_entry(entry), db=cache)
                txn.put(key, stamp, db=seen)
            for key in touched:
                txn.put(key.encode(), stamp, db=seen)
            if checkpoint is not None:
                txn.put(_RUN_STATE, encode_json(checkpoint), db=self._dbs["meta"])

    def iter_run_entries(self, run_id: str, source: str) -> Iterator[CacheEntry]:
        stamp = run_id.encode()
        prefix = cache_key(source, "").encode()
        with self._txn() as txn:
            cache = self._dbs["cache"]
            cursor = txn.cursor(db=self._dbs["seen"])
            if not cursor.set_range(prefix):
                return
            for key, value in cursor:
                if not key.startswith(prefix):
                    break
                if value != stamp:
                    continue
                raw = txn.get(key, db=cache)
                if raw is not None:
                    yield decode_cache_entry(raw)

    def prune_cache(self, run_id: str) -> int:
        stamp = run_id.encode()
        removed = 0
        with self._txn(write=True) as txn:
            seen = self._dbs["seen"]
            stale = [
                key
                for key, _ in txn.cursor(db=self._dbs["cache"])
                if txn.get(key, db=seen) != stamp
            ]
            for key in stale:
                txn.delete(key, db=self._dbs["cache"])
                txn.delete(key, db=seen)
                removed += 1
        if removed:
            self.logger.info(f"Pruned {removed} stale cache entries")
        return removed

    # Run state

    def load_run_state(self) -> dict[str, Any] | None:
        with self._txn() as txn:
            raw = txn.get(_RUN_STATE, db=self._dbs["meta"])
        return decode_json(raw) if raw is not None else None

    def save_run_state(self, state: dict[str, Any]) -> None:
        with self._txn(write=True) as txn:
            txn.put(_RUN_STATE, encode_json(to_primitive(state)), db=self._dbs["meta"])

    def clear_run_state(self) -> None:
        with self._txn(write=True) as txn:
            txn.delete(_RUN_STATE, db=self._dbs["meta"])

    def close(self) -> None:
        self.env.close()
        self.logger.debug(f"Closed store at {self.path}")
