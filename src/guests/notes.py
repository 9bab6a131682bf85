"""Codec for the free-form ``note`` column of the guests table.

A note carries the row's allergies and, for soft-deleted units, the deletion
timestamp. Current rows store a JSON object. Two older encodings still show up
in existing data and are read but never written:

* a ``[DELETED_AT:<timestamp>]`` marker somewhere in the text;
* plain text, which is the allergy description itself.

Decoding never raises: anything that is not a structured note degrades to the
freeform variant.
"""

import json
import logging
import re
from dataclasses import dataclass

from src.guests.dtos import NoteMeta

logger = logging.getLogger(__name__)

DELETED_AT_MARKER = re.compile(r"\[\s*DELETED_AT\s*:\s*([^\]]*[^\]\s])\s*\]", re.IGNORECASE)


@dataclass(frozen=True)
class StructuredNote:
    meta: NoteMeta


@dataclass(frozen=True)
class LegacyTimestampNote:
    deleted_at: str


@dataclass(frozen=True)
class LegacyFreeformNote:
    text: str


ParsedNote = StructuredNote | LegacyTimestampNote | LegacyFreeformNote


def _string_or_none(value) -> str | None:
    return value if isinstance(value, str) else None


def _parse_structured(text: str) -> StructuredNote | None:
    try:
        payload = json.loads(text)
    except (ValueError, RecursionError):
        return None
    if not isinstance(payload, dict):
        return None
    deleted_at = payload.get("deleted_at", payload.get("deletedAt"))
    return StructuredNote(
        NoteMeta(
            allergies=_string_or_none(payload.get("allergies")),
            deleted_at=_string_or_none(deleted_at),
        )
    )


def parse_note(text: str | None) -> ParsedNote | None:
    """Classify a raw note into one of the known encodings."""
    if text is None:
        return None

    structured = _parse_structured(text)
    if structured is not None:
        return structured

    match = DELETED_AT_MARKER.search(text)
    if match:
        return LegacyTimestampNote(deleted_at=match.group(1))

    logger.debug("Note is not structured, reading it as freeform allergies")
    return LegacyFreeformNote(text=text)


def decode_note(text: str | None) -> NoteMeta:
    """Decode a note into its metadata.

    Freeform text is stripped before it becomes the allergies, and blank text
    means no allergies.
    """
    parsed = parse_note(text)
    if isinstance(parsed, StructuredNote):
        return parsed.meta
    if isinstance(parsed, LegacyTimestampNote):
        return NoteMeta(allergies=None, deleted_at=parsed.deleted_at)
    if isinstance(parsed, LegacyFreeformNote):
        return NoteMeta(allergies=parsed.text.strip() or None, deleted_at=None)
    return NoteMeta()


def encode_note(meta: NoteMeta) -> str:
    return json.dumps({"allergies": meta.allergies, "deleted_at": meta.deleted_at})
