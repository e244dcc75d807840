"""initial_roster_schema

Revision ID: d4e5f6a7b8c9
Revises: 
Create Date: 2026-10-19 09:00:00.000000

"""
from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

# revision identifiers, used by Alembic.
revision = 'd4e5f6a7b8c9'
down_revision = None
branch_labels = None
depends_on = None


def upgrade():
    op.create_table(
        'agents',
        sa.Column('id', postgresql.UUID(as_uuid=True), primary_key=True),
        sa.Column('cedula', sa.Text(), nullable=False, unique=True),
        sa.Column('full_name', sa.Text(), nullable=False),
        sa.Column('campaign', sa.Text(), nullable=False),
        sa.Column('supervisor', sa.Text(), nullable=False),
        sa.Column('contract', sa.Text(), nullable=True),
        sa.Column('is_active', sa.Boolean(), nullable=False, server_default=sa.text('true')),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=True),
    )
    op.create_index('ix_agents_campaign', 'agents', ['campaign'])
    op.create_index('ix_agents_is_active', 'agents', ['is_active'])

    op.create_table(
        'agent_aliases',
        sa.Column('id', postgresql.UUID(as_uuid=True), primary_key=True),
        sa.Column('agent_id', postgresql.UUID(as_uuid=True), sa.ForeignKey('agents.id', ondelete='CASCADE'), nullable=False),
        sa.Column('alias', sa.Text(), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=True),
        sa.UniqueConstraint('agent_id', 'alias', name='uq_agent_aliases_agent_alias'),
    )
    op.create_index('ix_agent_aliases_alias', 'agent_aliases', ['alias'])

    op.create_table(
        'analysis_history',
        sa.Column('id', postgresql.UUID(as_uuid=True), primary_key=True),
        sa.Column('supervisor', sa.Text(), nullable=True),
        sa.Column('campaign', sa.Text(), nullable=True),
        sa.Column('week_label', sa.Text(), nullable=True),
        sa.Column('week_start', sa.Date(), nullable=True),
        sa.Column('week_end', sa.Date(), nullable=True),
        sa.Column('total_agents', sa.Integer(), nullable=False, server_default=sa.text('0')),
        sa.Column('total_shifts', sa.Integer(), nullable=False, server_default=sa.text('0')),
        sa.Column('total_rest_days', sa.Integer(), nullable=False, server_default=sa.text('0')),
        sa.Column('total_leave_days', sa.Integer(), nullable=False, server_default=sa.text('0')),
        sa.Column('total_split_shifts', sa.Integer(), nullable=False, server_default=sa.text('0')),
        sa.Column('image_paths', postgresql.JSONB(), nullable=False, server_default=sa.text("'[]'::jsonb")),
        sa.Column('shifts_excel_path', sa.Text(), nullable=True),
        sa.Column('template_excel_path', sa.Text(), nullable=True),
        sa.Column('records_json', postgresql.JSONB(), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=True),
    )
    op.create_index('ix_analysis_history_created_at', 'analysis_history', ['created_at'])

    op.create_table(
        'stored_files',
        sa.Column('id', postgresql.UUID(as_uuid=True), primary_key=True),
        sa.Column('bucket', sa.Text(), nullable=False),
        sa.Column('path', sa.Text(), nullable=False),
        sa.Column('content_type', sa.Text(), nullable=False),
        sa.Column('file_size_bytes', sa.Integer(), nullable=False),
        sa.Column('data', postgresql.BYTEA(), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=True),
        sa.UniqueConstraint('bucket', 'path', name='uq_stored_files_bucket_path'),
    )
    op.create_index('ix_stored_files_bucket', 'stored_files', ['bucket'])


def downgrade():
    op.drop_index('ix_stored_files_bucket', table_name='stored_files')
    op.drop_table('stored_files')
    op.drop_index('ix_analysis_history_created_at', table_name='analysis_history')
    op.drop_table('analysis_history')
    op.drop_index('ix_agent_aliases_alias', table_name='agent_aliases')
    op.drop_table('agent_aliases')
    op.drop_index('ix_agents_is_active', table_name='agents')
    op.drop_index('ix_agents_campaign', table_name='agents')
    op.drop_table('agents')
