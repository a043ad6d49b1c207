"""Identity resolution, merging and scoring of built records."""

from .condenser import Condenser
from .merge import merge_records, rank_contributions
from .relations import build_index, resolve_relations
from .scoring import Scorer

__all__ = [
    "Condenser",
    "Scorer",
    "build_index",
    "merge_records",
    "rank_contributions",
    "resolve_relations",
]
