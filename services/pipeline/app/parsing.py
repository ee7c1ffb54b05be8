"""Normalisation of provider JSON into typed stage results.

Providers do not reliably honour the requested top-level shape: a request
for an array may come back as an array, as an object wrapping the array, or
as a single bare element. Each parser below accepts exactly those three
forms and rejects everything else as malformed.
"""

from __future__ import annotations

import json
import logging
import re
from typing import Any, Iterable

from pydantic import ValidationError

from manuscript_providers.exceptions import MalformedResponseError
from manuscript_schemas import BookConcept, BrainstormResult, OutlineChapter, normalise_concepts
from manuscript_schemas.models.book import CONCEPT_WRAPPER_KEYS

from .errors import ConceptUnavailableError

logger = logging.getLogger(__name__)

OUTLINE_WRAPPER_KEYS = ("chapters", "outline", "data")

_FENCE_PATTERN = re.compile(r"^```(?:json)?\s*(.*?)\s*```$", re.DOTALL)


def parse_json_payload(text: str, *, label: str) -> Any:
    """Decode a provider response, tolerating a Markdown code fence."""

    candidate = (text or "").strip()
    match = _FENCE_PATTERN.match(candidate)
    if match:
        candidate = match.group(1)
    try:
        return json.loads(candidate)
    except json.JSONDecodeError as exc:
        raise MalformedResponseError(f"{label} response was not valid JSON") from exc


def unwrap_items(payload: Any, wrapper_keys: Iterable[str], *, label: str) -> list[Any]:
    """Return ``payload`` as a list.

    Arrays are returned as-is. An object holding an array under one of
    ``wrapper_keys`` is unwrapped; any other object becomes a one-element
    list. Scalars are malformed.
    """

    if isinstance(payload, list):
        return payload
    if isinstance(payload, dict):
        for key in wrapper_keys:
            value = payload.get(key)
            if isinstance(value, list):
                return value
        return [payload]
    raise MalformedResponseError(f"{label} response must be a JSON array or object")


def parse_brainstorm(text: str) -> BrainstormResult:
    payload = parse_json_payload(text, label="Brainstorm")
    if not isinstance(payload, dict):
        raise MalformedResponseError("Brainstorm response must be a JSON object")
    try:
        return BrainstormResult.model_validate(payload)
    except ValidationError as exc:
        raise MalformedResponseError(f"Brainstorm response failed validation: {exc}") from exc


def parse_concepts(text: str) -> list[BookConcept]:
    items = unwrap_items(
        parse_json_payload(text, label="Concepts"), CONCEPT_WRAPPER_KEYS, label="Concepts"
    )
    concepts = _validate_items(items, BookConcept, label="Concept")
    if not concepts:
        raise MalformedResponseError("Concepts response contained no concepts")
    return concepts


def parse_outline(text: str) -> list[OutlineChapter]:
    items = unwrap_items(
        parse_json_payload(text, label="Outline"), OUTLINE_WRAPPER_KEYS, label="Outline"
    )
    chapters = _validate_items(items, OutlineChapter, label="Outline chapter")
    if not chapters:
        raise MalformedResponseError("Outline response contained no chapters")
    return chapters


def resolve_concept(raw: Any, index: int) -> BookConcept:
    """Pick concept ``index``, or the first one when the index is out of range."""

    concepts = normalise_concepts(raw)
    if not concepts:
        raise ConceptUnavailableError()
    if 0 <= index < len(concepts):
        return concepts[index]
    logger.info(
        "Concept index out of range; using first concept",
        extra={"concept_index": index, "concept_count": len(concepts)},
    )
    return concepts[0]


def _validate_items(items: list[Any], model, *, label: str) -> list:
    validated = []
    for position, item in enumerate(items):
        if not isinstance(item, dict):
            raise MalformedResponseError(f"{label} {position} is not a JSON object")
        try:
            validated.append(model.model_validate(item))
        except ValidationError as exc:
            raise MalformedResponseError(f"{label} {position} failed validation: {exc}") from exc
    return validated
