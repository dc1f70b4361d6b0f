import hashlib
import logging
import os

from flask import Flask, jsonify, render_template, request, send_from_directory
from werkzeug.exceptions import MethodNotAllowed

from epd_pipeline.config import Settings
from epd_pipeline.device import push_frame
from epd_pipeline.errors import DeviceError
from epd_pipeline.pipeline import BINARY_NAME, HEADER_NAME, STATS_NAME, Pipeline
from epd_pipeline.transforms import get_transform

log = logging.getLogger("epd_pipeline.app")


def store_upload(data, original_filename, upload_path):
    """Save the upload under its MD5 digest, keeping the original extension.

    The last value returned is False when an earlier upload already stored
    the same content.
    """
    md5_hash = hashlib.md5(data).hexdigest()
    extension = os.path.splitext(original_filename)[1].lower()
    filename = f"{md5_hash}{extension}"
    os.makedirs(upload_path, exist_ok=True)
    file_path = os.path.join(upload_path, filename)
    created = not os.path.exists(file_path)
    with open(file_path, 'wb') as f:
        f.write(data)
    os.chmod(file_path, 0o644)
    return filename, md5_hash, file_path, created


def create_app(settings=None):
    settings = settings or Settings.from_env()
    app = Flask(__name__)
    app.config['MAX_CONTENT_LENGTH'] = 32 * 1024 * 1024

    pipeline = Pipeline(transform=get_transform(settings.transform, settings.imagemagick_path))
    log.info("UPLOAD_PATH: %s", settings.upload_path)
    log.info("OUTPUT_PATH: %s", settings.output_path)
    log.info("Transform: %s", pipeline.transform.name)

    @app.route('/')
    def index():
        return render_template('index.html')

    @app.route('/upload', methods=['POST'])
    def upload():
        if 'image' not in request.files:
            return jsonify({'success': False, 'error': "No file uploaded. Please provide a file with the 'image' field."}), 400

        file = request.files['image']

        if file.filename == '':
            return jsonify({'success': False, 'error': 'No file selected'}), 400

        data = file.read()
        log.info("File uploaded: %s (%d bytes)", file.filename, len(data))

        try:
            filename, md5_hash, file_path, created = store_upload(data, file.filename, settings.upload_path)
        except OSError as e:
            log.error("Failed to store upload: %s", e)
            return jsonify({'success': False, 'error': f'Failed to store upload: {e}'}), 500

        result = pipeline.process(data, settings.output_path)
        response = {
            'success': result.success,
            'filename': filename,
            'md5': md5_hash,
            'size': len(data),
            'original_filename': file.filename,
            'processing': result.to_dict(),
        }

        if not result.success:
            if created:
                os.remove(file_path)
            response['error'] = f'Failed to process upload: {result.error}'
            return jsonify(response), 422

        if settings.device_url:
            with open(result.binary_path, 'rb') as f:
                frame = f.read()
            try:
                push_frame(settings.device_url, frame, timeout=settings.device_timeout)
                response['pushed'] = True
            except DeviceError as e:
                log.warning("Push to display failed: %s", e)
                response['pushed'] = False
                response['push_error'] = str(e)

        log.info("Upload successful: %s", filename)
        return jsonify(response)

    @app.route('/image.bin')
    def image_bin():
        return send_from_directory(settings.output_path, BINARY_NAME, mimetype='application/octet-stream')

    @app.route('/image.h')
    def image_header():
        return send_from_directory(settings.output_path, HEADER_NAME, mimetype='text/plain')

    @app.route('/stats')
    def stats():
        return send_from_directory(settings.output_path, STATS_NAME, mimetype='application/json')

    @app.errorhandler(MethodNotAllowed)
    def method_not_allowed(e):
        return jsonify({
            'success': False,
            'error': f'Method {request.method} is not allowed for {request.path}',
        }), 405

    return app


if __name__ == '__main__':
    logging.basicConfig(
        level=os.getenv('LOG_LEVEL', 'INFO'),
        format='[%(asctime)s] %(levelname)s %(name)s: %(message)s',
    )
    create_app().run(host='0.0.0.0', port=int(os.getenv('PORT', '5002')))
