"""Versioned LMDB record store and build cache."""

from .interface import StoreInterface
from .lmdb_store import LmdbStore

__all__ = ["LmdbStore", "StoreInterface"]
