import asyncio
import json
from datetime import date
from types import SimpleNamespace
from uuid import uuid4

import cv2
import numpy as np
import pytest

from backend.app.extraction import (
    MalformedResponseError,
    PreparedImage,
    UpstreamTimeoutError,
    UpstreamUnavailableError,
    analyze_schedule_images,
    prepare_image,
)
from backend.app.extraction.extractor import build_messages, build_system_prompt
from backend.app.extraction.matcher import normalize_name
from backend.app.extraction.vision_client import VisionResponse

TODAY = date(2025, 6, 18)
IMAGE = PreparedImage(label='roster.jpg', media_type='image/jpeg', base64_data='QUJD')


class FakeVisionClient:
    def __init__(self, text=None, error=None, finish_reason='stop'):
        self.text = text
        self.error = error
        self.finish_reason = finish_reason
        self.messages = None

    async def complete(self, messages):
        self.messages = messages
        if self.error is not None:
            raise self.error
        return VisionResponse(text=self.text, model='fake-vision', finish_reason=self.finish_reason, duration_s=1.5)


class AliasOnlyRepo:
    def __init__(self, agent, alias):
        self.agent = agent
        self.alias = normalize_name(alias)

    def get_by_cedula(self, cedula):
        return self.agent if cedula == self.agent.cedula else None

    def get_by_alias(self, alias):
        return self.agent if normalize_name(alias) == self.alias else None

    def search_by_name(self, name, active_only=True):
        return []

    def get_active_agents(self):
        return [self.agent]


def _shift(**fields):
    payload = {'nombre': 'Jesus Magallanes', 'fecha': '2025-06-16', 'horaInicio': '07:00', 'horaFin': '17:00'}
    payload.update(fields)
    return payload


def _response(shifts, metadata=None):
    return json.dumps({
        'metadata': metadata or {'supervisor': 'LAURA', 'campanas': ['AVC'], 'fechaInicio': '2025-06-16', 'fechaFin': '2025-06-16'},
        'agentes': [{'nombre': 'Jesus Magallanes', 'campana': 'AVC'}],
        'turnos': shifts,
    })


def _run(client, agent_repo=None, images=(IMAGE,)):
    return asyncio.run(
        analyze_schedule_images(list(images), vision_client=client, agent_repo=agent_repo, today=TODAY)
    )


def test_messages_carry_images_labels_and_today():
    second = IMAGE._replace(label='roster-2.jpg')
    messages = build_messages([IMAGE, second], TODAY)

    assert messages[0]['role'] == 'system'
    assert '2025-06-18' in messages[0]['content']
    content = messages[1]['content']
    assert content[0]['image_url']['url'] == 'data:image/jpeg;base64,QUJD'
    assert content[1]['text'] == '[Image 1 - roster.jpg]'
    assert content[3]['text'] == '[Image 2 - roster-2.jpg]'
    assert 'ALL of these images' in content[-1]['text']
    assert '{' in build_system_prompt(TODAY)


def test_alias_match_replaces_identity():
    agent = SimpleNamespace(
        id=uuid4(), cedula='111', full_name='JESUS ANTONIO MAGALLANES', is_active=True,
        campaign='AVC', supervisor='LAURA', contract=None,
    )
    result = _run(FakeVisionClient(_response([_shift()])), AliasOnlyRepo(agent, 'Jesus Magallanes'))

    record = result.records[0]
    assert record.person_cedula == '111'
    assert record.person_name == 'JESUS ANTONIO MAGALLANES'
    assert record.original_name_as_extracted == 'Jesus Magallanes'
    assert result.match_stats.matched == 1
    assert result.diagnostics['match_rate'] == 1.0


def test_split_shift_summary_without_lunch():
    shift = _shift(horaInicio='06:00', horaFin='10:00', esSplit=True, splitHoraInicio2='17:00',
                   splitHoraFin2='22:00', almuerzo='12:00-13:00')
    result = _run(FakeVisionClient(_response([shift])))

    record = result.records[0]
    assert record.duty_summary == '06:00-10:00 // 17:00-22:00'
    assert record.lunch_break is None
    assert result.match_stats.roster_available is False


def test_inconsistent_rest_day_is_cleaned():
    result = _run(FakeVisionClient(_response([_shift(esDescanso=True, horaInicio='07:00')])))

    record = result.records[0]
    assert record.start_time is None and record.end_time is None and record.lunch_break is None
    assert record.is_split_shift is False
    assert record.duty_summary == 'DESCANSO'


def test_truncated_response_keeps_complete_records():
    text = _response([_shift(), _shift(nombre='Luis Torres')])
    text = text[: text.rindex('Luis Torres') + 4]
    client = FakeVisionClient(text, finish_reason='length')

    result = _run(client)

    assert result.diagnostics['recovered_truncated_json'] is True
    assert result.diagnostics['raw_records'] == 1
    assert [record.person_name for record in result.records] == ['JESUS MAGALLANES']
    assert result.diagnostics['finish_reason'] == 'length'


def test_diagnostics_report_counters():
    result = _run(FakeVisionClient(_response([_shift(), {'nombre': None}])))

    diagnostics = result.diagnostics
    assert diagnostics['dropped_records'] == 1
    assert diagnostics['records'] == 1
    assert diagnostics['model'] == 'fake-vision'
    assert diagnostics['model_latency_s'] == 1.5
    assert [agent.name for agent in result.agents] == ['JESUS MAGALLANES']


def test_malformed_output_raises():
    with pytest.raises(MalformedResponseError) as exc_info:
        _run(FakeVisionClient('I could not read this roster, sorry.'))
    assert exc_info.value.excerpt.startswith('I could not read')


@pytest.mark.parametrize('error', [UpstreamUnavailableError('down'), UpstreamTimeoutError('slow')])
def test_upstream_errors_propagate(error):
    with pytest.raises(type(error)):
        _run(FakeVisionClient(error=error))


def test_no_images_is_rejected():
    with pytest.raises(ValueError):
        _run(FakeVisionClient(_response([])), images=())


def test_prepare_image_reencodes_as_jpeg():
    ok, png = cv2.imencode('.png', np.full((20, 30, 3), 255, dtype=np.uint8))
    assert ok

    prepared = prepare_image(png.tobytes(), 'grid.png')

    assert prepared.media_type == 'image/jpeg'
    assert prepared.label == 'grid.png'
    assert prepared.data_url.startswith('data:image/jpeg;base64,')


def test_prepare_image_rejects_garbage():
    with pytest.raises(ValueError):
        prepare_image(b'not an image', 'notes.txt')
