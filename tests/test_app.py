"""
Tests for the Flask JSON API in app.py.
"""

import base64
import io
import json
import zipfile
from pathlib import Path

import pytest

from app import app
from merge_field_replacer import PLACEHOLDER_DOTS


@pytest.fixture
def client(tmp_path, monkeypatch):
    monkeypatch.delenv('APP_PASSWORD', raising=False)
    app.config['TESTING'] = True
    app.config['UPLOAD_FOLDER'] = str(tmp_path)
    with app.test_client() as client:
        yield client


class TestExtractEndpoint:
    """Test POST /api/extract."""

    def test_extract(self, client, sample_xml_with_merge_fields):
        response = client.post('/api/extract', json={'xml': sample_xml_with_merge_fields})

        assert response.status_code == 200
        payload = response.get_json()
        assert payload['success'] is True
        assert payload['fields']['mergeFields'] == ['step_info.q_companyname.q_companyname', 'client.name']
        assert payload['fields']['ifFields'] == []

    def test_missing_xml(self, client):
        response = client.post('/api/extract', json={})
        assert response.status_code == 400
        assert response.get_json()['error'] == 'No XML provided'

    def test_malformed_xml(self, client):
        response = client.post('/api/extract', json={'xml': '<w:document>'})
        assert response.status_code == 400
        assert 'Invalid XML' in response.get_json()['error']


class TestProcessEndpoint:
    """Test POST /api/process."""

    def test_process_with_data(self, client, sample_xml_with_if_field, single_owner_data):
        response = client.post('/api/process', json={
            'xml': sample_xml_with_if_field,
            'data': single_owner_data,
        })

        assert response.status_code == 200
        payload = response.get_json()
        assert payload['success'] is True
        assert 'Le bailleur est une personne unique.' in payload['xml']
        assert 'Les bailleurs sont plusieurs.' not in payload['xml']
        assert payload['warnings'] == []

    def test_process_with_json_string_data(self, client, sample_xml_with_if_field, single_owner_data):
        response = client.post('/api/process', json={
            'xml': sample_xml_with_if_field,
            'data': json.dumps(single_owner_data),
        })
        assert 'Le bailleur est une personne unique.' in response.get_json()['xml']

    def test_process_without_data(self, client, sample_xml_with_merge_fields):
        response = client.post('/api/process', json={'xml': sample_xml_with_merge_fields})
        assert response.get_json()['xml'].count(PLACEHOLDER_DOTS) == 2

    def test_warnings_returned(self, client, sample_xml_with_incomplete_merge_field):
        response = client.post('/api/process', json={'xml': sample_xml_with_incomplete_merge_field})
        assert response.get_json()['warnings'] == ['Incomplete MERGEFIELD structure: orphan.field']

    def test_invalid_data(self, client, sample_xml_with_if_field):
        response = client.post('/api/process', json={'xml': sample_xml_with_if_field, 'data': '{broken'})
        assert response.status_code == 400
        assert 'Invalid JSON' in response.get_json()['error']


class TestSimplifyEndpoint:
    """Test POST /api/simplify."""

    def test_simplify(self, client, sample_xml_for_simplify):
        response = client.post('/api/simplify', json={'xml': sample_xml_for_simplify})

        assert response.status_code == 200
        payload = response.get_json()
        assert payload['success'] is True
        assert 'rPr' not in payload['xml']
        assert 'Cellule' in payload['xml']

    def test_not_json(self, client):
        response = client.post('/api/simplify', data='plain text')
        assert response.status_code == 400


class TestProcessDocxEndpoint:
    """Test POST /api/process-docx."""

    def _upload(self, client, docx_path, filename='bail.docx', **form):
        data = {'file': (io.BytesIO(Path(docx_path).read_bytes()), filename)}
        data.update(form)
        return client.post('/api/process-docx', data=data, content_type='multipart/form-data')

    def test_process_docx(self, client, temp_docx, sample_xml_with_if_field, single_owner_data):
        response = self._upload(client, temp_docx(sample_xml_with_if_field), data=json.dumps(single_owner_data))

        assert response.status_code == 200
        assert response.mimetype == 'application/vnd.openxmlformats-officedocument.wordprocessingml.document'

        with zipfile.ZipFile(io.BytesIO(response.data)) as zf:
            document_xml = zf.read('word/document.xml').decode('utf-8')
        assert 'Le bailleur est une personne unique.' in document_xml
        assert 'Les bailleurs sont plusieurs.' not in document_xml

    def test_no_file(self, client):
        response = client.post('/api/process-docx', data={}, content_type='multipart/form-data')
        assert response.status_code == 400
        assert response.get_json()['error'] == 'No file provided'

    def test_wrong_extension(self, client, temp_docx, sample_xml_with_if_field):
        response = self._upload(client, temp_docx(sample_xml_with_if_field), filename='bail.txt')
        assert response.status_code == 400
        assert response.get_json()['error'] == 'Only .docx files are allowed'

    def test_invalid_data(self, client, temp_docx, sample_xml_with_if_field):
        response = self._upload(client, temp_docx(sample_xml_with_if_field), data='{broken')
        assert response.status_code == 400
        assert response.get_json()['error'].startswith('Processing failed')


class TestBasicAuth:
    """Test the optional APP_PASSWORD basic auth."""

    def test_no_password_no_auth(self, client, sample_xml_with_merge_fields):
        response = client.post('/api/extract', json={'xml': sample_xml_with_merge_fields})
        assert response.status_code == 200

    def test_password_required(self, client, monkeypatch, sample_xml_with_merge_fields):
        monkeypatch.setenv('APP_PASSWORD', 'secret')
        response = client.post('/api/extract', json={'xml': sample_xml_with_merge_fields})
        assert response.status_code == 401

    def test_valid_credentials(self, client, monkeypatch, sample_xml_with_merge_fields):
        monkeypatch.setenv('APP_PASSWORD', 'secret')
        token = base64.b64encode(b'admin:secret').decode('ascii')
        response = client.post('/api/extract', json={'xml': sample_xml_with_merge_fields},
                               headers={'Authorization': f'Basic {token}'})
        assert response.status_code == 200
