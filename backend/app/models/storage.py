import uuid
from sqlalchemy import Index
from sqlalchemy.dialects.postgresql import UUID, BYTEA
from ..extensions import db
from ..utils import utc_now


class StoredFile(db.Model):
    __tablename__ = 'stored_files'

    id = db.Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    bucket = db.Column(db.Text, nullable=False)  # analysis-images, analysis-excels
    path = db.Column(db.Text, nullable=False)
    content_type = db.Column(db.Text, nullable=False)
    file_size_bytes = db.Column(db.Integer, nullable=False)
    data = db.Column(db.LargeBinary().with_variant(BYTEA, 'postgresql'), nullable=False)
    created_at = db.Column(db.DateTime(timezone=True), default=utc_now)

    __table_args__ = (
        Index('ix_stored_files_bucket', 'bucket'),
        db.UniqueConstraint('bucket', 'path', name='uq_stored_files_bucket_path'),
    )
