"""JSON lines export of published datasets."""

from __future__ import annotations

import json
import logging
from pathlib import Path

from .errors import StoreError
from .store import StoreInterface
from .store.codec import record_to_dict

logger = logging.getLogger(__name__)


def export_jsonl(
    store: StoreInterface, path: str | Path, version: int | None = None
) -> int:
    """
    Write the records of a published version as JSON lines in identifier order.

    Args:
        store: Store to read from
        path: Output file
        version: Dataset version number, defaults to the published one

    Returns:
        Number of records written

    Raises:
        StoreError: If there is no such version
    """
    number = version
    if number is None:
        current = store.current_version()
        if current is None:
            raise StoreError("No published dataset version to export")
        number = current.number
    elif all(v.number != number for v in store.versions()):
        raise StoreError(f"Dataset version {number} does not exist")

    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)

    count = 0
    with open(path, "w", encoding="utf-8") as f:
        for record in store.iter_records(number):
            line = json.dumps(
                record_to_dict(record), sort_keys=True, ensure_ascii=False
            )
            f.write(line + "\n")
            count += 1

    logger.info(f"Exported {count} records of version {number} to {path}")
    return count
