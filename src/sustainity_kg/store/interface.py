"""Store interface definition."""

from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import Iterable, Iterator
from typing import Any

from ..config.models import (
    CacheEntry,
    Category,
    CondensedDataset,
    DatasetVersion,
    DomainRecord,
)


class StoreInterface(ABC):
    """Abstract interface for the versioned record store and build cache."""

    @abstractmethod
    def get(self, identifier: str, version: int | None = None) -> DomainRecord | None:
        """
        Point lookup of a published record.

        Args:
            identifier: Canonical identifier
            version: Dataset version number, defaults to the published one

        Returns:
            The record or None if it is not part of that version
        """
        pass

    @abstractmethod
    def scan(
        self, category: Category, version: int | None = None
    ) -> Iterator[DomainRecord]:
        """
        Iterate the records of one category in identifier order.

        Args:
            category: Category to scan
            version: Dataset version number, defaults to the published one
        """
        pass

    @abstractmethod
    def iter_records(self, version: int | None = None) -> Iterator[DomainRecord]:
        """Iterate all records of a version in identifier order."""
        pass

    @abstractmethod
    def publish(self, dataset: CondensedDataset) -> DatasetVersion:
        """
        Write a dataset as a new version and make it the published one.

        Args:
            dataset: Condensed dataset carrying an unused version number

        Returns:
            The published version
        """
        pass

    @abstractmethod
    def current_version(self) -> DatasetVersion | None:
        """Return the published version or None if nothing was published."""
        pass

    @abstractmethod
    def versions(self) -> list[DatasetVersion]:
        """Return all retained versions, oldest first."""
        pass

    @abstractmethod
    def get_report(self, version: int | None = None) -> dict[str, Any] | None:
        """Return the unresolved and incomplete listing of a version."""
        pass

    @abstractmethod
    def get_cache_entry(self, source: str, entity_id: str) -> CacheEntry | None:
        """Return the cached build result of one source entity."""
        pass

    @abstractmethod
    def put_cache_entries(
        self,
        entries: Iterable[CacheEntry],
        run_id: str,
        checkpoint: dict[str, Any] | None = None,
        touched: Iterable[str] = (),
    ) -> None:
        """
        Write cache entries, hit bookkeeping and the run checkpoint atomically.

        Args:
            entries: New or rebuilt cache entries
            run_id: Run that produced the entries
            checkpoint: Run state to persist in the same transaction
            touched: Keys of reused entries to stamp with ``run_id``
        """
        pass

    def touch_cache_entries(
        self,
        keys: Iterable[str],
        run_id: str,
        checkpoint: dict[str, Any] | None = None,
    ) -> None:
        """Stamp reused cache entries with the current run."""
        self.put_cache_entries((), run_id, checkpoint=checkpoint, touched=keys)

    @abstractmethod
    def iter_run_entries(self, run_id: str, source: str) -> Iterator[CacheEntry]:
        """Iterate the cache entries of a source stamped with ``run_id``."""
        pass

    @abstractmethod
    def prune_cache(self, run_id: str) -> int:
        """
        Drop cache entries not seen by a run.

        Returns:
            Number of entries removed
        """
        pass

    @abstractmethod
    def load_run_state(self) -> dict[str, Any] | None:
        pass

    @abstractmethod
    def save_run_state(self, state: dict[str, Any]) -> None:
        pass

    @abstractmethod
    def clear_run_state(self) -> None:
        pass

    @abstractmethod
    def close(self) -> None:
        pass

    def __enter__(self) -> StoreInterface:
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()
