#!/usr/bin/env python3
"""
OOXML Templater - Web Interface
Flask JSON API for extracting, processing and simplifying document.xml templates
"""

from flask import Flask, request, send_file, jsonify, Response
from werkzeug.utils import secure_filename
import os
import tempfile
from pathlib import Path
from datetime import datetime

from data_context import DataContextError
from ooxml_processor import OoxmlProcessor
from ooxml_tree import OoxmlParseError
from template_processor import DocxTemplateProcessor

app = Flask(__name__)
app.secret_key = os.environ.get('SECRET_KEY', 'dev-secret-key-change-in-production')
app.config['MAX_CONTENT_LENGTH'] = int(os.environ.get('MAX_UPLOAD_MB', 16)) * 1024 * 1024
app.config['UPLOAD_FOLDER'] = tempfile.gettempdir()

ALLOWED_EXTENSIONS = {'docx'}
DOCX_MIMETYPE = 'application/vnd.openxmlformats-officedocument.wordprocessingml.document'


# Basic Authentication
def check_auth(username, password):
    """Check if username/password combination is valid"""
    app_password = os.environ.get('APP_PASSWORD')
    if not app_password:
        # No password set = no auth required (local development)
        return True
    return username == 'admin' and password == app_password


def authenticate():
    """Send a 401 response that enables basic auth"""
    return Response(
        'Login required. Please authenticate.', 401,
        {'WWW-Authenticate': 'Basic realm="OOXML Templater"'}
    )


@app.before_request
def require_auth():
    """Require authentication for all requests if APP_PASSWORD is set"""
    if not os.environ.get('APP_PASSWORD'):
        return  # No auth required in development
    auth = request.authorization
    if not auth or not check_auth(auth.username, auth.password):
        return authenticate()


def allowed_file(filename):
    """Check if file extension is allowed"""
    return '.' in filename and filename.rsplit('.', 1)[1].lower() in ALLOWED_EXTENSIONS


def _request_xml():
    payload = request.get_json(silent=True) or {}
    xml = payload.get('xml')
    if not isinstance(xml, str) or not xml.strip():
        return None, payload
    return xml, payload


@app.route('/api/extract', methods=['POST'])
def extract_fields():
    """Describe the MERGEFIELD and IF fields of a document.xml"""
    xml, _ = _request_xml()
    if xml is None:
        return jsonify({'error': 'No XML provided'}), 400

    try:
        fields = OoxmlProcessor(xml, verbose=False).extract_fields_as_json()
    except OoxmlParseError as e:
        return jsonify({'error': str(e)}), 400

    return jsonify({'success': True, 'fields': fields})


@app.route('/api/process', methods=['POST'])
def process_xml():
    """Substitute merge fields and resolve IF fields against the posted data"""
    xml, payload = _request_xml()
    if xml is None:
        return jsonify({'error': 'No XML provided'}), 400

    try:
        processor = OoxmlProcessor(xml, verbose=False)
        result = processor.process(payload.get('data'))
    except (OoxmlParseError, DataContextError) as e:
        return jsonify({'error': str(e)}), 400

    return jsonify({
        'success': True,
        'xml': result,
        'warnings': processor.warnings
    })


@app.route('/api/simplify', methods=['POST'])
def simplify_xml():
    """Strip presentation markup from a document.xml"""
    xml, _ = _request_xml()
    if xml is None:
        return jsonify({'error': 'No XML provided'}), 400

    try:
        result = OoxmlProcessor(xml, verbose=False).simplify_xml()
    except OoxmlParseError as e:
        return jsonify({'error': str(e)}), 400

    return jsonify({'success': True, 'xml': result})


@app.route('/api/process-docx', methods=['POST'])
def process_docx():
    """Process an uploaded .docx template and return the result"""
    if 'file' not in request.files:
        return jsonify({'error': 'No file provided'}), 400

    file = request.files['file']

    if file.filename == '':
        return jsonify({'error': 'No file selected'}), 400

    if not allowed_file(file.filename):
        return jsonify({'error': 'Only .docx files are allowed'}), 400

    # Save uploaded file
    filename = secure_filename(file.filename)
    timestamp = datetime.now().strftime('%Y%m%d_%H%M%S')
    input_filepath = os.path.join(app.config['UPLOAD_FOLDER'], f"{timestamp}_{filename}")
    file.save(input_filepath)

    output_filename = f"{Path(filename).stem}_processed_{timestamp}.docx"
    output_filepath = os.path.join(app.config['UPLOAD_FOLDER'], output_filename)

    processor = DocxTemplateProcessor(input_filepath, output_filepath, verbose=False)
    success = processor.process(request.form.get('data'),
                                simplify=request.form.get('simplify') == 'true')

    if not success:
        error = processor.errors[0] if processor.errors else 'unknown error'
        return jsonify({'error': f'Processing failed: {error}'}), 400

    return send_file(
        output_filepath,
        as_attachment=True,
        download_name=output_filename,
        mimetype=DOCX_MIMETYPE
    )


if __name__ == '__main__':
    app.run(debug=True, host='127.0.0.1', port=int(os.environ.get('PORT', 5001)))
