import io
import json
from types import SimpleNamespace

import pytest

from app import create_app
from config import TestingConfig
from database.models import DiseaseReport
from services import vision_service
from services.vision_service import VisionService, VisionError


def leaf(**form):
    return {'image': (io.BytesIO(b'\xff\xd8fake-jpeg'), 'leaf.jpg', 'image/jpeg'), **form}


def test_missing_image(client):
    resp = client.post('/api/ai/disease-detection', data={'crop': 'Tomato'}, content_type='multipart/form-data')
    assert resp.status_code == 400
    assert resp.get_json()['error'] == "No image provided"


def test_sample_analysis_without_key_is_stored(app, client, farmer):
    user_id, headers = farmer
    resp = client.post('/api/ai/disease-detection', data=leaf(crop='Tomato'), headers=headers,
                       content_type='multipart/form-data')
    assert resp.status_code == 200
    body = resp.get_json()
    assert body['sample'] is True
    assert body['disease'] == 'Early Blight'
    assert set(body['recommendations']) == {'en', 'hi', 'mr'}

    with app.app_context():
        report = DiseaseReport.query.one()
        assert report.id == body['report_id']
        assert (report.user_id, report.crop_name, report.source) == (user_id, 'Tomato', 'sample')


def test_anonymous_upload_has_no_owner(app, client):
    client.post('/api/ai/disease-detection', data=leaf(), content_type='multipart/form-data')
    with app.app_context():
        assert DiseaseReport.query.one().user_id is None


def test_configured_model_result_is_returned(app, client, monkeypatch):
    app.config['GROQ_API_KEY'] = 'key'
    seen = {}

    def fake_analyze(image_bytes, crop_name="Crop", mime_type="image/jpeg"):
        seen.update(size=len(image_bytes), crop=crop_name, mime=mime_type)
        return {'disease': 'Leaf Rust', 'confidence': 0.91, 'severity': 'mild',
                'recommendations': {'en': ['Spray propiconazole']}}

    monkeypatch.setattr(VisionService, 'analyze_leaf_image', fake_analyze)
    body = client.post('/api/ai/disease-detection', data=leaf(crop='Wheat'),
                       content_type='multipart/form-data').get_json()

    assert body['sample'] is False
    assert body['disease'] == 'Leaf Rust'
    assert seen == {'size': 11, 'crop': 'Wheat', 'mime': 'image/jpeg'}
    with app.app_context():
        assert DiseaseReport.query.one().source == 'groq'


def test_model_failure_is_a_500(app, client, monkeypatch):
    app.config['GROQ_API_KEY'] = 'key'

    def broken(*args, **kwargs):
        raise VisionError("model unavailable")

    monkeypatch.setattr(VisionService, 'analyze_leaf_image', broken)
    resp = client.post('/api/ai/disease-detection', data=leaf(), content_type='multipart/form-data')
    assert resp.status_code == 500
    assert resp.get_json()['error'] == "Failed to analyze image"
    with app.app_context():
        assert DiseaseReport.query.count() == 0


class FakeCompletions:
    def __init__(self, content):
        self.content = content
        self.kwargs = None

    def create(self, **kwargs):
        self.kwargs = kwargs
        message = SimpleNamespace(content=self.content)
        return SimpleNamespace(choices=[SimpleNamespace(message=message)])


def fake_client(content):
    return SimpleNamespace(chat=SimpleNamespace(completions=FakeCompletions(content)))


def test_model_reply_is_parsed(app, monkeypatch):
    groq = fake_client(json.dumps({'disease': 'Healthy', 'confidence': '0.7', 'severity': 'none'}))
    monkeypatch.setattr(VisionService, 'client', lambda: groq)

    with app.app_context():
        result = VisionService.analyze_leaf_image(b'img', crop_name='Rice', mime_type='image/png')

    assert result == {'disease': 'Healthy', 'confidence': 0.7, 'severity': 'none', 'recommendations': {}}
    sent = groq.chat.completions.kwargs
    assert sent['model'] == app.config['GROQ_VISION_MODEL']
    image_part = sent['messages'][0]['content'][1]
    assert image_part['image_url']['url'].startswith('data:image/png;base64,')


def test_unparseable_reply_raises(app, monkeypatch):
    monkeypatch.setattr(VisionService, 'client', lambda: fake_client('not json'))
    with app.app_context(), pytest.raises(VisionError):
        VisionService.analyze_leaf_image(b'img')


def test_each_app_uses_its_own_groq_key(monkeypatch):
    keys = []

    class RecordingGroq:
        def __init__(self, api_key):
            keys.append(api_key)
            self.chat = fake_client(json.dumps({'disease': 'Healthy', 'confidence': 1})).chat

    monkeypatch.setattr(vision_service, 'Groq', RecordingGroq)
    for key in ('key-one', 'key-two'):
        app = create_app(TestingConfig)
        app.config['GROQ_API_KEY'] = key
        with app.app_context():
            VisionService.analyze_leaf_image(b'img')

    assert keys == ['key-one', 'key-two']
