"""Tests for provider JSON normalisation and concept selection."""

import json

import pytest

from manuscript_providers.exceptions import MalformedResponseError
from manuscript_schemas import normalise_concepts

from services.pipeline.app.errors import ConceptUnavailableError
from services.pipeline.app.parsing import (
    parse_brainstorm,
    parse_concepts,
    parse_json_payload,
    parse_outline,
    resolve_concept,
)


CONCEPT = {"title": "Hive Minds", "tagline": "t", "description": "d", "targetMarket": "m"}


def test_fenced_json_is_accepted() -> None:
    payload = parse_json_payload('```json\n{"thesis": "x"}\n```', label="Test")
    assert payload == {"thesis": "x"}


def test_invalid_json_is_malformed() -> None:
    with pytest.raises(MalformedResponseError):
        parse_json_payload("not json", label="Test")


def test_brainstorm_requires_thesis() -> None:
    with pytest.raises(MalformedResponseError):
        parse_brainstorm(json.dumps({"topics": ["a"]}))
    result = parse_brainstorm(json.dumps({"thesis": "T", "researchQuestions": ["q?"]}))
    assert result.research_questions == ["q?"]


@pytest.mark.parametrize(
    "payload",
    [
        [CONCEPT, CONCEPT],
        {"concepts": [CONCEPT, CONCEPT]},
        {"data": [CONCEPT, CONCEPT]},
    ],
)
def test_concept_shapes_unwrap_to_list(payload) -> None:
    concepts = parse_concepts(json.dumps(payload))
    assert [concept.title for concept in concepts] == ["Hive Minds", "Hive Minds"]


def test_bare_concept_becomes_single_element() -> None:
    concepts = parse_concepts(json.dumps(CONCEPT))
    assert len(concepts) == 1
    assert concepts[0].target_market == "m"


def test_empty_concept_list_is_malformed() -> None:
    with pytest.raises(MalformedResponseError):
        parse_concepts("[]")


def test_scalar_concepts_payload_is_malformed() -> None:
    with pytest.raises(MalformedResponseError):
        parse_concepts('"three concepts"')


def test_outline_wrapper_and_numeric_ids() -> None:
    chapters = parse_outline(
        json.dumps({"outline": [{"id": 1, "title": "Foundations", "sections": ["a", "b"]}]})
    )
    assert chapters[0].id == "1"
    assert chapters[0].sections == ["a", "b"]


def test_outline_entry_without_title_is_malformed() -> None:
    with pytest.raises(MalformedResponseError):
        parse_outline(json.dumps({"chapters": [{"summary": "no title"}]}))


def test_stored_concepts_skip_invalid_entries() -> None:
    concepts = normalise_concepts({"concepts": [CONCEPT, {"tagline": "missing title"}]})
    assert [concept.title for concept in concepts] == ["Hive Minds"]
    assert normalise_concepts(None) == []
    assert normalise_concepts(CONCEPT)[0].title == "Hive Minds"


def test_resolve_concept_falls_back_to_first() -> None:
    raw = [dict(CONCEPT, title=f"Concept {index}") for index in range(3)]
    assert resolve_concept(raw, 2).title == "Concept 2"
    assert resolve_concept(raw, 7).title == "Concept 0"
    assert resolve_concept(raw, -1).title == "Concept 0"


def test_resolve_concept_without_concepts() -> None:
    with pytest.raises(ConceptUnavailableError) as excinfo:
        resolve_concept([], 0)
    assert excinfo.value.status_code == 400
