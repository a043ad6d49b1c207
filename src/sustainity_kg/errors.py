"""Error taxonomy of the condensing pipeline.

Only ``DumpIoError`` and ``StoreError`` abort a run. Every other error describes
a per-record issue that is counted in the run summary and processing continues.
"""

from __future__ import annotations


class SustainityError(Exception):
    """Base class for all pipeline errors."""

    kind: str = "error"
    fatal: bool = False


class ConfigError(SustainityError):
    """Configuration could not be loaded or failed validation."""

    kind = "config_error"
    fatal = True


class DumpIoError(SustainityError):
    """The dump is unreadable, truncated or corrupted."""

    kind = "io_error"
    fatal = True


class StoreError(SustainityError):
    """Writing to or reading from the store failed."""

    kind = "store_error"
    fatal = True


class ParseError(SustainityError):
    """A single dump line could not be parsed into an entity."""

    kind = "parse_error"

    def __init__(self, message: str, line_number: int, excerpt: str = ""):
        self.line_number = line_number
        self.excerpt = excerpt[:120]
        super().__init__(f"line {line_number}: {message} [{self.excerpt!r}]")


class ClassificationAmbiguous(SustainityError):
    """Rules of equal priority matched different categories."""

    kind = "ambiguous"

    def __init__(self, entity_id: str, categories: list[str]):
        self.entity_id = entity_id
        self.categories = sorted(categories)
        super().__init__(
            f"{entity_id} matches several categories: {', '.join(self.categories)}"
        )


class IncompleteRecord(SustainityError):
    """A record is missing required fields and is kept for later reconciliation."""

    kind = "incomplete"

    def __init__(self, entity_id: str, missing_fields: frozenset[str]):
        self.entity_id = entity_id
        self.missing_fields = missing_fields
        super().__init__(
            f"{entity_id} is missing {', '.join(sorted(missing_fields))}"
        )


class MergeConflict(SustainityError):
    """Two contributions for the same identifier disagree on a field."""

    kind = "merge_conflict"

    def __init__(self, entity_id: str, field_name: str, kept: object, dropped: object):
        self.entity_id = entity_id
        self.field_name = field_name
        super().__init__(
            f"{entity_id}.{field_name}: kept {kept!r}, dropped {dropped!r}"
        )


class UnresolvedRelation(SustainityError):
    """A relation target is not present in the identity index."""

    kind = "unresolved"

    def __init__(self, source: str, relation_kind: str, target: str):
        self.source = source
        self.relation_kind = relation_kind
        self.target = target
        super().__init__(f"{source} -[{relation_kind}]-> {target} is unresolved")


class WorkerError(SustainityError):
    """An unexpected exception escaped a builder worker for one entity."""

    kind = "worker_error"

    def __init__(self, entity_id: str, cause: BaseException):
        self.entity_id = entity_id
        super().__init__(f"building {entity_id} failed: {cause}")
