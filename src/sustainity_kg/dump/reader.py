"""Streaming reader for compressed entity dumps."""

from __future__ import annotations

import bz2
from collections.abc import Callable, Iterator
from contextlib import contextmanager
from enum import Enum
import gzip
import io
import logging
from pathlib import Path
from typing import BinaryIO, NamedTuple
import zlib

import zstandard as zstd

from ..config.models import RawEntity
from ..errors import DumpIoError, ParseError
from .parsing import parse_line

logger = logging.getLogger(__name__)


class Codec(Enum):
    GZIP = "gzip"
    BZIP2 = "bzip2"
    ZSTD = "zstd"
    PLAIN = "plain"


_MAGIC: list[tuple[bytes, Codec]] = [
    (b"\x1f\x8b", Codec.GZIP),
    (b"BZh", Codec.BZIP2),
    (b"\x28\xb5\x2f\xfd", Codec.ZSTD),
]

_EXTENSIONS: dict[str, Codec] = {
    ".gz": Codec.GZIP,
    ".gzip": Codec.GZIP,
    ".bz2": Codec.BZIP2,
    ".zst": Codec.ZSTD,
    ".zstd": Codec.ZSTD,
}

_STREAM_ERRORS = (OSError, EOFError, zlib.error, zstd.ZstdError)


class DumpLine(NamedTuple):
    """One raw line together with its position in the decompressed stream."""

    line_number: int
    offset: int
    data: bytes


def detect_codec(path: str | Path) -> Codec:
    """
    Detect the compression codec of a dump.

    Magic bytes take precedence, the file extension is used when the header
    is not recognized.
    """
    path = Path(path)
    try:
        with open(path, "rb") as f:
            header = f.read(4)
    except OSError as e:
        raise DumpIoError(f"Cannot open dump {path}: {e}") from e

    for magic, codec in _MAGIC:
        if header.startswith(magic):
            return codec

    return _EXTENSIONS.get(path.suffix.lower(), Codec.PLAIN)


@contextmanager
def open_dump(path: str | Path) -> Iterator[BinaryIO]:
    """Open a dump as a binary stream of decompressed bytes."""
    path = Path(path)
    codec = detect_codec(path)
    logger.debug(f"Opening {path} as {codec.value}")

    with open(path, "rb") as raw:
        if codec is Codec.GZIP:
            with gzip.GzipFile(fileobj=raw, mode="rb") as stream:
                yield stream
        elif codec is Codec.BZIP2:
            with bz2.BZ2File(raw, mode="rb") as stream:
                yield stream
        elif codec is Codec.ZSTD:
            reader = zstd.ZstdDecompressor().stream_reader(raw, read_across_frames=True)
            with io.BufferedReader(reader) as stream:
                yield stream
        else:
            yield raw


class DumpReader:
    """Lazy, restartable reader producing raw entities from a dump.

    Only one line is held in memory at a time. ``offset`` counts bytes of the
    decompressed stream, so a run can resume from the offset of the last
    line it fully processed.
    """

    def __init__(
        self,
        path: str | Path,
        start_offset: int = 0,
        on_error: Callable[[ParseError], None] | None = None,
    ):
        self.path = Path(path)
        self.start_offset = start_offset
        self.on_error = on_error
        self.offset = start_offset
        self.line_number = 0
        self.logger = logging.getLogger(f"{__name__}.{self.__class__.__name__}")

    def iter_lines(self) -> Iterator[DumpLine]:
        """
        Yield raw lines after ``start_offset``.

        Raises:
            DumpIoError: If the stream is missing, truncated or corrupted
        """
        offset = 0
        line_number = 0
        if self.start_offset:
            self.logger.info(f"Resuming {self.path} from offset {self.start_offset}")

        try:
            with open_dump(self.path) as stream:
                for data in stream:
                    line_number += 1
                    offset += len(data)
                    if offset <= self.start_offset:
                        continue
                    self.offset = offset
                    self.line_number = line_number
                    yield DumpLine(line_number, offset, data)
        except DumpIoError:
            raise
        except _STREAM_ERRORS as e:
            raise DumpIoError(
                f"Failed reading {self.path} after line {line_number}: {e}"
            ) from e

    def __iter__(self) -> Iterator[RawEntity]:
        for line in self.iter_lines():
            try:
                entity = parse_line(line.data, line.line_number)
            except ParseError as e:
                self._report(e)
                continue
            if entity is not None:
                yield entity

    def _report(self, error: ParseError) -> None:
        if self.on_error is not None:
            self.on_error(error)
        else:
            self.logger.warning(f"Skipping malformed line in {self.path}: {error}")
