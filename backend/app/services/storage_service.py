import logging
import os
from typing import Iterable, List, Optional
from urllib.parse import quote

from werkzeug.utils import secure_filename

from ..repositories.stored_file_repository import StoredFileRepository
from ..utils import utc_now

logger = logging.getLogger(__name__)

IMAGES_BUCKET = 'analysis-images'
EXCELS_BUCKET = 'analysis-excels'
BUCKETS = {IMAGES_BUCKET, EXCELS_BUCKET}

XLSX_CONTENT_TYPE = 'application/vnd.openxmlformats-officedocument.spreadsheetml.sheet'


class StorageService:
    """Bucket/path blob store backed by the stored_files table."""

    def __init__(self, repo: Optional[StoredFileRepository] = None, public_base_url: Optional[str] = None):
        self.repo = repo or StoredFileRepository()
        self.public_base_url = (public_base_url if public_base_url is not None
                                else os.environ.get('PUBLIC_BASE_URL', '')).rstrip('/')

    @staticmethod
    def _check_bucket(bucket: str):
        if bucket not in BUCKETS:
            raise ValueError(f"Unknown storage bucket: {bucket}")

    @staticmethod
    def build_path(filename: str, prefix: Optional[str] = None) -> str:
        """Timestamped, filesystem-safe object path, e.g. ``1718000000000_roster.jpg``."""
        safe_name = secure_filename(filename or '') or 'file'
        stamp = int(utc_now().timestamp() * 1000)
        path = f'{stamp}_{safe_name}'
        return f'{prefix.strip("/")}/{path}' if prefix else path

    def put(self, bucket: str, path: str, data: bytes, content_type: str) -> str:
        """
        Store bytes under bucket/path (overwriting) and return the path.

        Raises:
            ValueError: unknown bucket
            SQLAlchemyError: if the store write fails
        """
        self._check_bucket(bucket)
        self.repo.upsert(bucket, path, data, content_type)
        logger.info("Stored %s/%s (%d bytes)", bucket, path, len(data))
        return path

    def get(self, bucket: str, path: str):
        self._check_bucket(bucket)
        return self.repo.get_by_path(bucket, path)

    def public_url(self, bucket: str, path: Optional[str]) -> Optional[str]:
        if not path:
            return None
        return f'{self.public_base_url}/api/files/{bucket}/{quote(path)}'

    def public_urls(self, bucket: str, paths: Iterable[str]) -> List[str]:
        return [self.public_url(bucket, path) for path in paths if path]

    def delete(self, bucket: str, paths: Iterable[str]) -> int:
        self._check_bucket(bucket)
        paths = [path for path in paths if path]
        deleted = self.repo.delete_paths(bucket, paths)
        if deleted:
            logger.info("Deleted %d object(s) from %s", deleted, bucket)
        return deleted
