import logging
import os
import time
import traceback
from flask import Blueprint, request, current_app
from pydantic import ValidationError
from ..extraction import (
    MalformedResponseError,
    UpstreamTimeoutError,
    UpstreamUnavailableError,
    analyze_schedule_images,
    prepare_image,
)
from ..extraction.images import SUPPORTED_MEDIA_TYPES
from ..extraction.schemas import AnalysisMetadata, ShiftRecord
from ..extraction.shift_normalizer import refresh_derived_fields
from ..observability import extraction_metrics
from ..repositories.agent_repository import AgentRepository
from ..repositories.analysis_history_repository import AnalysisHistoryRepository
from ..services.excel_service import ExcelService, XLSX_FILENAMES, record_totals
from ..services.storage_service import (
    EXCELS_BUCKET,
    IMAGES_BUCKET,
    XLSX_CONTENT_TYPE,
    StorageService,
)
from .utils import api_response

logger = logging.getLogger(__name__)

analysis_bp = Blueprint('analysis', __name__, url_prefix='/api')

MAX_UPLOAD_IMAGES = int(os.environ.get('MAX_UPLOAD_IMAGES', '10'))
MAX_IMAGE_BYTES = int(os.environ.get('MAX_IMAGE_BYTES', str(20 * 1024 * 1024)))

agent_repo = AgentRepository()
history_repo = AnalysisHistoryRepository()
excel_service = ExcelService()


def _read_uploads():
    """Validate the multipart ``images`` field; returns (uploads, error_message)."""
    files = [f for f in request.files.getlist('images') if f and f.filename]
    if not files:
        return None, "No images were uploaded"
    if len(files) > MAX_UPLOAD_IMAGES:
        return None, f"At most {MAX_UPLOAD_IMAGES} images can be analyzed at once"

    uploads = []
    for file in files:
        mimetype = (file.mimetype or '').lower()
        if mimetype not in SUPPORTED_MEDIA_TYPES:
            return None, f"Unsupported image type for {file.filename}: {mimetype or 'unknown'}"
        data = file.read()
        if not data:
            return None, f"Empty file: {file.filename}"
        if len(data) > MAX_IMAGE_BYTES:
            return None, f"{file.filename} exceeds the {MAX_IMAGE_BYTES // (1024 * 1024)} MB limit"
        uploads.append((file.filename, mimetype, data))
    return uploads, None


@analysis_bp.route('/analyze', methods=['POST'])
async def analyze():
    """Extract shift records from one or more roster grid photos."""
    uploads, error_message = _read_uploads()
    if error_message:
        return api_response(status_code=400, message=error_message, error="Bad Request")

    try:
        images = [prepare_image(data, filename) for filename, _, data in uploads]
    except ValueError as e:
        return api_response(status_code=400, message="Could not read one of the images", error=str(e))

    vision_client = current_app.extensions['vision_client']
    try:
        result = await analyze_schedule_images(images, vision_client=vision_client, agent_repo=agent_repo)
    except MalformedResponseError as e:
        return api_response(status_code=422, message=str(e), error="Unprocessable Entity")
    except UpstreamTimeoutError as e:
        logger.error("Vision model timed out: %s", e)
        return api_response(status_code=504, message=str(e), error="Gateway Timeout")
    except UpstreamUnavailableError as e:
        logger.error("Vision model unavailable: %s", e)
        return api_response(status_code=502, message=str(e), error="Upstream Unavailable")
    except Exception as e:
        logger.exception("Failed to analyze roster images")
        traceback.print_exc()
        return api_response(status_code=500, message="Failed to analyze roster images", error=str(e))

    storage = StorageService()
    image_paths = []
    for filename, mimetype, data in uploads:
        try:
            image_paths.append(storage.put(IMAGES_BUCKET, storage.build_path(filename), data, mimetype))
        except Exception as e:
            logger.warning("Could not store roster image %s: %s", filename, e)
    result.image_paths = image_paths

    return api_response(data=result.model_dump(mode='json'), message="Roster analyzed successfully")


@analysis_bp.route('/generate', methods=['POST'])
def generate():
    """Render both spreadsheets from reviewed records, store them and write a history entry."""
    data = request.get_json(silent=True)
    if not data:
        return api_response(status_code=400, message="No data provided", error="Bad Request")

    raw_records = data.get('records')
    if not isinstance(raw_records, list) or not raw_records:
        return api_response(status_code=400, message="No shift records provided", error="Bad Request")

    try:
        records = [refresh_derived_fields(ShiftRecord.model_validate(raw)) for raw in raw_records]
        metadata = AnalysisMetadata.model_validate(data.get('metadata') or {})
    except ValidationError as e:
        return api_response(status_code=400, message="Invalid shift records", error=str(e))

    image_paths = [p for p in (data.get('image_paths') or []) if isinstance(p, str)]

    try:
        started_at = time.perf_counter()
        storage = StorageService()
        shifts_path = storage.put(
            EXCELS_BUCKET,
            storage.build_path(XLSX_FILENAMES['shifts']),
            excel_service.generate_shifts_workbook(records, metadata),
            XLSX_CONTENT_TYPE,
        )
        template_path = storage.put(
            EXCELS_BUCKET,
            storage.build_path(XLSX_FILENAMES['template']),
            excel_service.generate_template_workbook(records, metadata),
            XLSX_CONTENT_TYPE,
        )

        entry = history_repo.create(
            supervisor=metadata.supervisor,
            campaign=metadata.campaign or (', '.join(metadata.campaigns) or None),
            week_label=metadata.week_label,
            week_start=metadata.week_start or min(r.date for r in records),
            week_end=metadata.week_end or max(r.date for r in records),
            image_paths=image_paths,
            shifts_excel_path=shifts_path,
            template_excel_path=template_path,
            records_json=[r.model_dump(mode='json') for r in records],
            **record_totals(records),
        )
        extraction_metrics.observe_generation_latency(time.perf_counter() - started_at)
        logger.info("Generated roster spreadsheets for history entry %s (%d records)", entry.id, len(records))

        return api_response(
            data={
                'analysis_id': str(entry.id),
                'files': {
                    'shifts': storage.public_url(EXCELS_BUCKET, shifts_path),
                    'template': storage.public_url(EXCELS_BUCKET, template_path),
                },
            },
            message="Spreadsheets generated successfully",
            status_code=201,
        )
    except Exception as e:
        logger.exception("Failed to generate roster spreadsheets")
        traceback.print_exc()
        return api_response(status_code=500, message="Failed to generate spreadsheets", error=str(e))
