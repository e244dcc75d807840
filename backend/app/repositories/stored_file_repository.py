from typing import List, Optional
from .base import BaseRepository
from ..models.storage import StoredFile


class StoredFileRepository(BaseRepository[StoredFile]):
    """Repository for blobs kept in the database (roster images and spreadsheets)."""
    
    def __init__(self):
        super().__init__(StoredFile)
    
    def get_by_path(self, bucket: str, path: str) -> Optional[StoredFile]:
        return self.session.query(StoredFile).filter_by(bucket=bucket, path=path).first()
    
    def upsert(self, bucket: str, path: str, data: bytes, content_type: str) -> StoredFile:
        """
        Store a blob, replacing any existing content at the same bucket/path.
        
        Raises:
            SQLAlchemyError: If database operation fails
        """
        instance = self.get_by_path(bucket, path)
        if instance is None:
            instance = StoredFile(bucket=bucket, path=path)
            self.session.add(instance)
        instance.data = data
        instance.content_type = content_type
        instance.file_size_bytes = len(data)
        self.commit()
        return instance
    
    def delete_paths(self, bucket: str, paths: List[str]) -> int:
        """
        Delete every blob in a bucket whose path is listed.
        
        Returns:
            Number of blobs deleted
        """
        if not paths:
            return 0
        count = self.session.query(StoredFile).filter(
            StoredFile.bucket == bucket,
            StoredFile.path.in_(paths)
        ).delete(synchronize_session=False)
        self.commit()
        return count
