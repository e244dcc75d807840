import os
from io import BytesIO
from flask import Blueprint, send_file
from ..services.storage_service import BUCKETS, EXCELS_BUCKET, StorageService
from .utils import api_response

files_bp = Blueprint('files', __name__, url_prefix='/api/files')


@files_bp.route('/<bucket>/<path:path>', methods=['GET'])
def download_file(bucket, path):
    """Serve a stored roster image or spreadsheet."""
    if bucket not in BUCKETS:
        return api_response(status_code=404, message="Unknown bucket", error="Not Found")

    stored = StorageService().get(bucket, path)
    if not stored:
        return api_response(status_code=404, message="File not found", error="Not Found")

    return send_file(
        BytesIO(stored.data),
        mimetype=stored.content_type,
        as_attachment=bucket == EXCELS_BUCKET,
        download_name=os.path.basename(path),
    )
