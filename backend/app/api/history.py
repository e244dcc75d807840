import logging
import traceback
from flask import Blueprint, request
from ..repositories.analysis_history_repository import AnalysisHistoryRepository
from ..services.storage_service import EXCELS_BUCKET, IMAGES_BUCKET, StorageService
from .utils import api_response, model_to_dict

logger = logging.getLogger(__name__)

history_bp = Blueprint('history', __name__, url_prefix='/api/history')
repo = AnalysisHistoryRepository()

MAX_HISTORY_LIMIT = 100


def serialize_history(entry, storage: StorageService, include_records: bool = False):
    data = model_to_dict(entry, exclude=() if include_records else ('records_json',))
    data['image_urls'] = storage.public_urls(IMAGES_BUCKET, entry.image_paths or [])
    data['files'] = {
        'shifts': storage.public_url(EXCELS_BUCKET, entry.shifts_excel_path),
        'template': storage.public_url(EXCELS_BUCKET, entry.template_excel_path),
    }
    return data


@history_bp.route('', methods=['GET'])
def list_history():
    """Most recent generated rosters, newest first."""
    try:
        limit = request.args.get('limit', 20, type=int) or 20
        limit = max(1, min(limit, MAX_HISTORY_LIMIT))
        storage = StorageService()
        entries = repo.list_recent(limit=limit)
        return api_response(data=[serialize_history(e, storage) for e in entries])
    except Exception as e:
        logger.exception("Failed to get analysis history")
        traceback.print_exc()
        return api_response(status_code=500, message="Failed to get analysis history", error=str(e))


@history_bp.route('/<uuid:analysis_id>', methods=['GET'])
def get_history_entry(analysis_id):
    entry = repo.get_by_id(analysis_id)
    if not entry:
        return api_response(status_code=404, message="Analysis not found", error="Not Found")
    return api_response(data=serialize_history(entry, StorageService(), include_records=True))


@history_bp.route('/<uuid:analysis_id>', methods=['DELETE'])
def delete_history_entry(analysis_id):
    """Delete a history entry together with its stored images and spreadsheets."""
    entry = repo.get_by_id(analysis_id)
    if not entry:
        return api_response(status_code=404, message="Analysis not found", error="Not Found")

    try:
        storage = StorageService()
        storage.delete(IMAGES_BUCKET, entry.image_paths or [])
        storage.delete(EXCELS_BUCKET, [entry.shifts_excel_path, entry.template_excel_path])
        repo.delete(analysis_id)
        return api_response(message="Analysis deleted successfully")
    except Exception as e:
        logger.exception("Failed to delete analysis %s", analysis_id)
        traceback.print_exc()
        return api_response(status_code=500, message="Failed to delete analysis", error=str(e))
