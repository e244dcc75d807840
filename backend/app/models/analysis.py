import uuid
from sqlalchemy import Index
from sqlalchemy.dialects.postgresql import UUID, JSONB
from ..extensions import db
from ..utils import utc_now

JSONType = db.JSON().with_variant(JSONB, 'postgresql')


class AnalysisHistory(db.Model):
    __tablename__ = 'analysis_history'

    id = db.Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    supervisor = db.Column(db.Text, nullable=True)
    campaign = db.Column(db.Text, nullable=True)
    week_label = db.Column(db.Text, nullable=True)
    week_start = db.Column(db.Date, nullable=True)
    week_end = db.Column(db.Date, nullable=True)

    # Totals
    total_agents = db.Column(db.Integer, nullable=False, default=0)
    total_shifts = db.Column(db.Integer, nullable=False, default=0)
    total_rest_days = db.Column(db.Integer, nullable=False, default=0)
    total_leave_days = db.Column(db.Integer, nullable=False, default=0)
    total_split_shifts = db.Column(db.Integer, nullable=False, default=0)

    # Storage paths
    image_paths = db.Column(JSONType, nullable=False, default=list)
    shifts_excel_path = db.Column(db.Text, nullable=True)   # "Formato Turnos Programados"
    template_excel_path = db.Column(db.Text, nullable=True)  # "Plantilla Programación Turnos"

    records_json = db.Column(JSONType, nullable=True)
    created_at = db.Column(db.DateTime(timezone=True), default=utc_now)

    __table_args__ = (
        Index('ix_analysis_history_created_at', 'created_at'),
    )
