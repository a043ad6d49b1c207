"""Streaming access to compressed entity dumps."""

from .parsing import parse_entity, parse_line
from .reader import Codec, DumpLine, DumpReader, detect_codec, open_dump

__all__ = [
    "Codec",
    "DumpLine",
    "DumpReader",
    "detect_codec",
    "open_dump",
    "parse_entity",
    "parse_line",
]
