"""Initial idea graph schema

Revision ID: 0001_initial
Revises:
Create Date: 2026-10-17 09:00:00.000000

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql
from pgvector.sqlalchemy import Vector

# revision identifiers, used by Alembic.
revision: str = '0001_initial'
down_revision: Union[str, Sequence[str], None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    """Upgrade schema."""
    op.execute("CREATE EXTENSION IF NOT EXISTS vector")

    op.create_table('projects',
        sa.Column('id', sa.UUID(), nullable=False),
        sa.Column('name', sa.String(), nullable=False),
        sa.Column('created_at', sa.TIMESTAMP(timezone=True), nullable=False),
        sa.PrimaryKeyConstraint('id')
    )

    op.create_table('documents',
        sa.Column('id', sa.UUID(), nullable=False),
        sa.Column('project_id', sa.UUID(), nullable=False),
        sa.Column('filename', sa.String(), nullable=False),
        sa.Column('source_handle', sa.String(), nullable=True, comment='Storage key of the uploaded PDF'),
        sa.Column('status', sa.String(), nullable=False, server_default='uploaded'),
        sa.Column('size_bytes', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('summary', sa.Text(), nullable=True),
        sa.Column('created_at', sa.TIMESTAMP(timezone=True), nullable=False),
        sa.Column('updated_at', sa.TIMESTAMP(timezone=True), nullable=False),
        sa.ForeignKeyConstraint(['project_id'], ['projects.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index('ix_documents_project_id', 'documents', ['project_id'])

    op.create_table('idea_nodes',
        sa.Column('id', sa.UUID(), nullable=False),
        sa.Column('project_id', sa.UUID(), nullable=False),
        sa.Column('label', sa.String(), nullable=False),
        sa.Column('summary', sa.Text(), nullable=False),
        sa.Column('tags', postgresql.JSONB(astext_type=sa.Text()), nullable=False),
        sa.Column('confidence', sa.Float(), nullable=True),
        sa.Column('embedding', Vector(), nullable=True),
        sa.Column('created_at', sa.TIMESTAMP(timezone=True), nullable=False),
        sa.ForeignKeyConstraint(['project_id'], ['projects.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index('ix_idea_nodes_project_id', 'idea_nodes', ['project_id'])

    op.create_table('edges',
        sa.Column('id', sa.UUID(), nullable=False),
        sa.Column('project_id', sa.UUID(), nullable=False),
        sa.Column('source_node_id', sa.UUID(), nullable=False),
        sa.Column('target_node_id', sa.UUID(), nullable=False),
        sa.Column('type', sa.String(), nullable=False),
        sa.Column('confidence', sa.Float(), nullable=False),
        sa.Column('reasoning', sa.Text(), nullable=True),
        sa.Column('created_at', sa.TIMESTAMP(timezone=True), nullable=False),
        sa.CheckConstraint('confidence >= 0 AND confidence <= 1', name='ck_edges_confidence_range'),
        sa.ForeignKeyConstraint(['project_id'], ['projects.id'], ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['source_node_id'], ['idea_nodes.id'], ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['target_node_id'], ['idea_nodes.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index('ix_edges_project_id', 'edges', ['project_id'])

    op.create_table('evidence_refs',
        sa.Column('id', sa.UUID(), nullable=False),
        sa.Column('node_id', sa.UUID(), nullable=True),
        sa.Column('edge_id', sa.UUID(), nullable=True),
        sa.Column('document_id', sa.UUID(), nullable=False),
        sa.Column('excerpt', sa.Text(), nullable=False),
        sa.Column('locator', sa.Text(), nullable=True, comment='Serialized locator JSON'),
        sa.Column('created_at', sa.TIMESTAMP(timezone=True), nullable=False),
        sa.CheckConstraint('(node_id IS NULL) <> (edge_id IS NULL)', name='ck_evidence_refs_single_owner'),
        sa.ForeignKeyConstraint(['node_id'], ['idea_nodes.id'], ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['edge_id'], ['edges.id'], ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['document_id'], ['documents.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index('ix_evidence_refs_node_id', 'evidence_refs', ['node_id'])
    op.create_index('ix_evidence_refs_edge_id', 'evidence_refs', ['edge_id'])
    op.create_index('ix_evidence_refs_document_id', 'evidence_refs', ['document_id'])

    op.create_table('jobs',
        sa.Column('id', sa.UUID(), nullable=False),
        sa.Column('project_id', sa.UUID(), nullable=False),
        sa.Column('type', sa.String(), nullable=False, comment='extraction | linking | locator_backfill'),
        sa.Column('status', sa.String(), nullable=False, server_default='pending'),
        sa.Column('error', sa.Text(), nullable=True),
        sa.Column('progress_current', sa.Integer(), nullable=True),
        sa.Column('progress_total', sa.Integer(), nullable=True),
        sa.Column('progress_message', sa.Text(), nullable=True),
        sa.Column('ideas_extracted', sa.Integer(), nullable=True),
        sa.Column('links_created', sa.Integer(), nullable=True),
        sa.Column('locators_updated', sa.Integer(), nullable=True),
        sa.Column('created_at', sa.TIMESTAMP(timezone=True), nullable=False),
        sa.Column('last_progress_at', sa.TIMESTAMP(timezone=True), nullable=True),
        sa.Column('completed_at', sa.TIMESTAMP(timezone=True), nullable=True),
        sa.ForeignKeyConstraint(['project_id'], ['projects.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index('ix_jobs_project_type_created', 'jobs', ['project_id', 'type', 'created_at'])

    op.create_table('candidate_pairs',
        sa.Column('id', sa.UUID(), nullable=False),
        sa.Column('job_id', sa.UUID(), nullable=False),
        sa.Column('source_node_id', sa.UUID(), nullable=False),
        sa.Column('target_node_id', sa.UUID(), nullable=False),
        sa.Column('similarity', sa.Float(), nullable=False),
        sa.Column('batch_index', sa.Integer(), nullable=False),
        sa.ForeignKeyConstraint(['job_id'], ['jobs.id'], ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['source_node_id'], ['idea_nodes.id'], ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['target_node_id'], ['idea_nodes.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index('ix_candidate_pairs_job_batch', 'candidate_pairs', ['job_id', 'batch_index'])


def downgrade() -> None:
    """Downgrade schema."""
    op.drop_index('ix_candidate_pairs_job_batch', table_name='candidate_pairs')
    op.drop_table('candidate_pairs')
    op.drop_index('ix_jobs_project_type_created', table_name='jobs')
    op.drop_table('jobs')
    op.drop_index('ix_evidence_refs_document_id', table_name='evidence_refs')
    op.drop_index('ix_evidence_refs_edge_id', table_name='evidence_refs')
    op.drop_index('ix_evidence_refs_node_id', table_name='evidence_refs')
    op.drop_table('evidence_refs')
    op.drop_index('ix_edges_project_id', table_name='edges')
    op.drop_table('edges')
    op.drop_index('ix_idea_nodes_project_id', table_name='idea_nodes')
    op.drop_table('idea_nodes')
    op.drop_index('ix_documents_project_id', table_name='documents')
    op.drop_table('documents')
    op.drop_table('projects')
