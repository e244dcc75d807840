import uuid
from sqlalchemy import Index
from sqlalchemy.dialects.postgresql import UUID
from ..extensions import db
from ..utils import utc_now


class Agent(db.Model):
    __tablename__ = 'agents'

    id = db.Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    cedula = db.Column(db.Text, nullable=False, unique=True)
    full_name = db.Column(db.Text, nullable=False)
    campaign = db.Column(db.Text, nullable=False)
    supervisor = db.Column(db.Text, nullable=False)
    contract = db.Column(db.Text, nullable=True)
    is_active = db.Column(db.Boolean, nullable=False, default=True)
    created_at = db.Column(db.DateTime(timezone=True), default=utc_now)
    updated_at = db.Column(db.DateTime(timezone=True), default=utc_now, onupdate=utc_now)

    # Relationships
    aliases = db.relationship(
        'AgentAlias',
        backref='agent',
        cascade="all, delete-orphan",
        order_by='AgentAlias.alias',
    )

    __table_args__ = (
        Index('ix_agents_campaign', 'campaign'),
        Index('ix_agents_is_active', 'is_active'),
    )


class AgentAlias(db.Model):
    __tablename__ = 'agent_aliases'

    id = db.Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    agent_id = db.Column(UUID(as_uuid=True), db.ForeignKey('agents.id', ondelete='CASCADE'), nullable=False)
    alias = db.Column(db.Text, nullable=False)  # stored uppercase
    created_at = db.Column(db.DateTime(timezone=True), default=utc_now)

    __table_args__ = (
        Index('ix_agent_aliases_alias', 'alias'),
        db.UniqueConstraint('agent_id', 'alias', name='uq_agent_aliases_agent_alias'),
    )
