import json
import os
import unittest
from io import BytesIO

import cv2
import numpy as np

os.environ['DATABASE_URL'] = 'sqlite:///:memory:'

from backend.app import create_app, db
from backend.app.extraction import MalformedResponseError, UpstreamTimeoutError, UpstreamUnavailableError
from backend.app.extraction.vision_client import VisionResponse


class FakeVisionClient:
    is_configured = True

    def __init__(self):
        self.text = None
        self.error = None

    async def complete(self, messages):
        if self.error is not None:
            raise self.error
        return VisionResponse(text=self.text, model='fake-vision', finish_reason='stop', duration_s=0.1)


def _png_bytes():
    ok, buffer = cv2.imencode('.png', np.full((24, 32, 3), 200, dtype=np.uint8))
    assert ok
    return buffer.tobytes()


ROSTER_RESPONSE = json.dumps({
    'metadata': {'supervisor': None, 'campanas': ['AVC'], 'fechaInicio': '2025-06-16', 'fechaFin': '2025-06-17'},
    'agentes': [{'nombre': 'Jesus Magallanes'}, {'nombre': 'Pedro Nadie'}],
    'turnos': [
        {'nombre': 'Jesus Magallanes', 'fecha': '2025-06-16', 'horaInicio': '7:00 AM', 'horaFin': '5:00 PM',
         'almuerzo': '12:00-1:00'},
        {'nombre': 'Pedro Nadie', 'fecha': '2025-06-16', 'esDescanso': True},
    ],
})


class RosterApiTests(unittest.TestCase):
    def setUp(self):
        os.environ['DATABASE_URL'] = 'sqlite:///:memory:'
        self.vision = FakeVisionClient()
        self.app = create_app(vision_client=self.vision)
        self.client = self.app.test_client()
        self.app_context = self.app.app_context()
        self.app_context.push()
        db.create_all()

    def tearDown(self):
        db.session.remove()
        db.drop_all()
        self.app_context.pop()

    def _create_agent(self, **overrides):
        payload = {
            'cedula': '111',
            'full_name': 'Jesús Antonio Magallanes',
            'campaign': 'AVC',
            'supervisor': 'LAURA GOMEZ',
            'contract': 'C-7',
        }
        payload.update(overrides)
        return self.client.post('/api/agents', json=payload)

    def _analyze(self):
        return self.client.post(
            '/api/analyze',
            data={'images': [(BytesIO(_png_bytes()), 'roster.png', 'image/png')]},
            content_type='multipart/form-data',
        )

    def test_health(self):
        response = self.client.get('/api/health')
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.get_json(), {'ok': True, 'database': 'connected', 'vision_model_configured': True})

    def test_agent_crud_and_aliases(self):
        response = self._create_agent()
        self.assertEqual(response.status_code, 201)
        agent = response.get_json()['data']
        self.assertEqual(agent['full_name'], 'JESÚS ANTONIO MAGALLANES')
        self.assertIn('JESUS MAGALLANES', agent['aliases'])

        self.assertEqual(self._create_agent().status_code, 409)
        self.assertEqual(self._create_agent(cedula='222', supervisor='').status_code, 400)

        response = self.client.put(f"/api/agents/{agent['id']}", json={'contract': 'C-8'})
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.get_json()['data']['contract'], 'C-8')

        response = self.client.post(f"/api/agents/{agent['id']}/aliases", json={'alias': 'chucho'})
        self.assertEqual(response.status_code, 201)
        self.assertEqual(response.get_json()['data']['alias'], 'CHUCHO')
        response = self.client.post(f"/api/agents/{agent['id']}/aliases", json={'alias': 'Chucho '})
        self.assertEqual(response.status_code, 409)

        aliases = self.client.get(f"/api/agents/{agent['id']}/aliases").get_json()['data']
        self.assertIn('CHUCHO', [a['alias'] for a in aliases])

        self.assertEqual(self.client.delete(f"/api/agents/{agent['id']}").status_code, 200)
        self.assertEqual(self.client.get('/api/agents').get_json()['data'], [])
        listed = self.client.get('/api/agents?include_inactive=true').get_json()['data']
        self.assertEqual([a['is_active'] for a in listed], [False])

    def test_unknown_agent_returns_404(self):
        missing = '00000000-0000-0000-0000-000000000000'
        self.assertEqual(self.client.put(f'/api/agents/{missing}', json={'contract': 'X'}).status_code, 404)
        self.assertEqual(self.client.delete(f'/api/agents/{missing}').status_code, 404)
        self.assertEqual(self.client.get(f'/api/agents/{missing}/aliases').status_code, 404)

    def test_analyze_requires_images(self):
        response = self.client.post('/api/analyze', data={}, content_type='multipart/form-data')
        self.assertEqual(response.status_code, 400)
        self.assertFalse(response.get_json()['success'])

    def test_analyze_rejects_undecodable_image(self):
        response = self.client.post(
            '/api/analyze',
            data={'images': [(BytesIO(b'not really a png'), 'roster.png', 'image/png')]},
            content_type='multipart/form-data',
        )
        self.assertEqual(response.status_code, 400)

    def test_analyze_maps_pipeline_errors(self):
        cases = [
            (MalformedResponseError('Could not interpret'), 422),
            (UpstreamTimeoutError('timed out'), 504),
            (UpstreamUnavailableError('down'), 502),
        ]
        for error, status in cases:
            with self.subTest(status=status):
                self.vision.error = error
                self.assertEqual(self._analyze().status_code, status)

    def test_analyze_matches_roster_and_stores_images(self):
        self._create_agent()
        self.vision.text = ROSTER_RESPONSE

        response = self._analyze()
        self.assertEqual(response.status_code, 200)
        result = response.get_json()['data']

        self.assertEqual(result['match_stats'], {'total': 4, 'matched': 2, 'unmatched': 2, 'roster_available': True})
        self.assertEqual(result['metadata']['supervisor'], 'LAURA GOMEZ')
        jesus = [r for r in result['records'] if r['person_cedula'] == '111']
        self.assertEqual(len(jesus), 2)
        self.assertEqual(jesus[0]['duty_summary'], '07:00-17:00 D 1h')
        self.assertEqual(jesus[0]['contract_code'], 'C-7')

        self.assertEqual(len(result['image_paths']), 1)
        image = self.client.get(f"/api/files/analysis-images/{result['image_paths'][0]}")
        self.assertEqual(image.status_code, 200)
        self.assertEqual(image.mimetype, 'image/png')

    def test_generate_history_download_and_delete(self):
        records = [
            {'person_cedula': '111', 'person_name': 'jesus antonio magallanes', 'date': '2025-06-16',
             'day_of_week': 'Martes', 'start_time': '07:00', 'end_time': '17:00', 'lunch_break': '12:00-13:00'},
            {'person_cedula': '111', 'person_name': 'JESUS ANTONIO MAGALLANES', 'date': '2025-06-17',
             'day_of_week': 'Martes', 'is_rest_day': True, 'start_time': '07:00'},
        ]
        response = self.client.post('/api/generate', json={
            'records': records,
            'metadata': {'supervisor': 'LAURA GOMEZ', 'campaign': 'AVC', 'week_label': 'Semana 25'},
        })
        self.assertEqual(response.status_code, 201)
        generated = response.get_json()['data']
        analysis_id = generated['analysis_id']
        self.assertTrue(generated['files']['shifts'].endswith('Formato_Turnos_Programados.xlsx'))

        history = self.client.get('/api/history').get_json()['data']
        self.assertEqual([entry['id'] for entry in history], [analysis_id])
        self.assertEqual(history[0]['total_shifts'], 2)
        self.assertEqual(history[0]['total_rest_days'], 1)
        self.assertNotIn('records_json', history[0])

        entry = self.client.get(f'/api/history/{analysis_id}').get_json()['data']
        self.assertEqual(entry['week_start'], '2025-06-16')
        rest = entry['records_json'][1]
        self.assertIsNone(rest['start_time'])
        self.assertEqual(rest['duty_summary'], 'DESCANSO')
        self.assertEqual(entry['records_json'][0]['day_of_week'], 'Lunes')

        shifts_path = generated['files']['shifts'].split('/api/files/analysis-excels/', 1)[1]
        download = self.client.get(f'/api/files/analysis-excels/{shifts_path}')
        self.assertEqual(download.status_code, 200)
        self.assertIn('attachment', download.headers['Content-Disposition'])

        self.assertEqual(self.client.delete(f'/api/history/{analysis_id}').status_code, 200)
        self.assertEqual(self.client.get(f'/api/history/{analysis_id}').status_code, 404)
        self.assertEqual(self.client.get(f'/api/files/analysis-excels/{shifts_path}').status_code, 404)

    def test_generate_validates_payload(self):
        self.assertEqual(self.client.post('/api/generate', json={'records': []}).status_code, 400)
        response = self.client.post('/api/generate', json={'records': [{'person_name': 'X'}]})
        self.assertEqual(response.status_code, 400)

    def test_unknown_bucket_is_404(self):
        self.assertEqual(self.client.get('/api/files/other/file.xlsx').status_code, 404)


if __name__ == '__main__':
    unittest.main()
