import json

import pytest

from backend.app.extraction.errors import MalformedResponseError
from backend.app.extraction.response_parser import (
    parse_extraction_response,
    recover_truncated_json,
    strip_code_fences,
)


def _turno(name, day):
    return {'nombre': name, 'fecha': f'2025-06-{day:02d}', 'horaInicio': '07:00', 'horaFin': '17:00'}


def test_plain_json_is_parsed_without_recovery():
    payload = {'metadata': {'supervisor': 'LAURA'}, 'agentes': [{'nombre': 'ANA'}], 'turnos': [_turno('ANA', 16)]}
    parsed = parse_extraction_response(json.dumps(payload))

    assert parsed.recovered is False
    assert parsed.metadata == {'supervisor': 'LAURA'}
    assert parsed.agents == [{'nombre': 'ANA'}]
    assert len(parsed.records) == 1


def test_code_fences_and_leading_prose_are_stripped():
    raw = "Here is the roster:\n```json\n{\"turnos\": []}\n```"
    assert strip_code_fences("```json\n{\"a\": 1}\n```") == '{"a": 1}'
    assert parse_extraction_response(raw).records == []


def test_records_fall_back_to_english_keys():
    parsed = parse_extraction_response(json.dumps({'records': [_turno('ANA', 16)], 'agents': [{'name': 'ANA'}]}))
    assert len(parsed.records) == 1
    assert parsed.agents == [{'name': 'ANA'}]


def test_truncated_response_keeps_complete_records():
    full = json.dumps({
        'metadata': {'fechaInicio': '2025-06-16'},
        'turnos': [_turno('ANA', 16), _turno('ANA', 17), _turno('ANA', 18)],
    })
    # Cut inside the third record
    truncated = full[:full.rindex('"horaInicio"')]

    parsed = parse_extraction_response(truncated)

    assert parsed.recovered is True
    assert [r['fecha'] for r in parsed.records] == ['2025-06-16', '2025-06-17']
    assert parsed.metadata == {'fechaInicio': '2025-06-16'}


def test_truncated_inside_string_without_element_boundary():
    repaired = recover_truncated_json('{"metadata": {"supervisor": "JUAN PER')
    assert json.loads(repaired) == {'metadata': {'supervisor': 'JUAN PER'}}


def test_escaped_quotes_and_braces_inside_strings_do_not_confuse_recovery():
    raw = '{"turnos": [{"nombre": "A \\"},{\\" B", "fecha": "2025-06-16"}, {"nombre": "C'
    parsed = parse_extraction_response(raw)
    assert parsed.recovered is True
    assert parsed.records == [{'nombre': 'A "},{" B', 'fecha': '2025-06-16'}]


def test_trailing_prose_after_document_is_dropped():
    parsed = parse_extraction_response('{"turnos": []}\nLet me know if you need anything else.')
    assert parsed.recovered is True
    assert parsed.records == []


def test_unrecoverable_response_raises_with_excerpt():
    with pytest.raises(MalformedResponseError) as excinfo:
        parse_extraction_response('I could not find a roster grid in this picture.')
    assert 'Could not interpret the extraction response' in str(excinfo.value)
    assert excinfo.value.excerpt.startswith('I could not find')


def test_non_object_top_level_is_malformed():
    with pytest.raises(MalformedResponseError):
        parse_extraction_response('[1, 2, 3]')
