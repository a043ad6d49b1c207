"""Parsing of single dump lines into raw entities."""

from __future__ import annotations

import hashlib
import json
import re
from typing import Any

from ..config.models import ClaimValue, RawEntity
from ..errors import ParseError

_FRAMING = {b"", b"[", b"]"}

# JSON escape of a UTF-16 surrogate, paired or not
_SURROGATE_ESCAPE = re.compile(r"\\u[dD][89a-fA-F]")


def parse_line(data: bytes, line_number: int) -> RawEntity | None:
    """
    Parse one line of a Wikidata JSON dump.

    The dump is a JSON array with one entity per line, so the opening and
    closing brackets and the trailing commas are stripped. Plain JSON-lines
    files are accepted as well.

    Args:
        data: Raw line bytes including the line terminator
        line_number: One-based line number used in error reports

    Returns:
        The parsed entity, or None for framing lines

    Raises:
        ParseError: If the line is not a valid entity
    """
    stripped = data.strip()
    if stripped in _FRAMING:
        return None
    if stripped.endswith(b","):
        stripped = stripped[:-1]

    try:
        text = stripped.decode("utf-8")
    except UnicodeDecodeError as e:
        raise ParseError(f"invalid UTF-8: {e}", line_number, repr(stripped[:80])) from e

    try:
        payload = json.loads(text)
    except json.JSONDecodeError as e:
        raise ParseError(f"invalid JSON: {e.msg}", line_number, text) from e
    except RecursionError as e:
        raise ParseError("JSON nested too deeply", line_number, text) from e

    if not isinstance(payload, dict):
        raise ParseError("entity is not an object", line_number, text)

    if _SURROGATE_ESCAPE.search(text):
        try:
            json.dumps(payload, ensure_ascii=False).encode("utf-8")
        except UnicodeEncodeError as e:
            raise ParseError("unpaired UTF-16 surrogate", line_number, text) from e

    try:
        return parse_entity(payload, stripped)
    except (TypeError, AttributeError, KeyError, ValueError, RecursionError) as e:
        raise ParseError(f"malformed entity: {e}", line_number, text) from e


def parse_entity(payload: dict[str, Any], raw: bytes = b"") -> RawEntity:
    """Convert a decoded Wikidata entity object into a ``RawEntity``."""
    entity_id = payload.get("id")
    if not isinstance(entity_id, str) or not entity_id:
        raise ValueError("missing entity id")

    last_revision = payload.get("lastrevid")
    if last_revision is not None:
        revision = str(last_revision)
    else:
        revision = hashlib.md5(raw).hexdigest()

    aliases: dict[str, tuple[str, ...]] = {}
    for lang, items in (payload.get("aliases") or {}).items():
        values = tuple(
            item["value"] for item in items if isinstance(item.get("value"), str)
        )
        if values:
            aliases[lang] = values

    claims: dict[str, tuple[ClaimValue, ...]] = {}
    for property_id, statements in (payload.get("claims") or {}).items():
        values = tuple(
            value
            for value in (_parse_statement(statement) for statement in statements)
            if value is not None
        )
        if values:
            claims[property_id] = values

    return RawEntity(
        id=entity_id,
        revision=revision,
        labels=_parse_terms(payload.get("labels")),
        descriptions=_parse_terms(payload.get("descriptions")),
        aliases=aliases,
        claims=claims,
    )


def _parse_terms(terms: dict[str, Any] | None) -> dict[str, str]:
    if not terms:
        return {}
    return {
        lang: term["value"]
        for lang, term in terms.items()
        if isinstance(term, dict) and isinstance(term.get("value"), str)
    }


def _parse_statement(statement: dict[str, Any]) -> ClaimValue | None:
    """Return the value of a statement, None if it carries no usable value."""
    if statement.get("rank") == "deprecated":
        return None

    snak = statement.get("mainsnak") or {}
    if snak.get("snaktype", "value") != "value":
        return None

    datavalue = snak.get("datavalue")
    if not datavalue:
        return None

    value_type = datavalue.get("type")
    value = datavalue.get("value")

    if value_type == "wikibase-entityid":
        entity_id = value.get("id")
        if not entity_id and value.get("entity-type") == "item":
            entity_id = f"Q{value['numeric-id']}"
        if not entity_id:
            return None
        return ClaimValue(value=entity_id, entity_id=entity_id)

    if value_type == "string":
        return ClaimValue(value=str(value))

    if value_type == "monolingualtext":
        return ClaimValue(value=value["text"])

    if value_type == "quantity":
        return ClaimValue(value=str(value["amount"]).lstrip("+"))

    if value_type == "time":
        return ClaimValue(value=value["time"])

    return ClaimValue(value=json.dumps(value, sort_keys=True))
