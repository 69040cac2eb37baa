"""Create submission journal and document registry tables.

Revision ID: 001
Revises: 
Create Date: 2026-10-19
"""
from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision = '001'
down_revision = None
branch_labels = None
depends_on = None


def upgrade() -> None:
    op.create_table(
        'anchor_submissions',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('report_id', sa.String(length=255), nullable=False),
        sa.Column('operation', sa.String(length=20), nullable=False),
        sa.Column('report_hash', sa.String(length=66), nullable=False),
        sa.Column('hash_method', sa.String(length=50), nullable=False),
        sa.Column('status', sa.String(length=20), nullable=False),
        sa.Column('transaction_hash', sa.String(length=66), nullable=True),
        sa.Column('block_number', sa.Integer(), nullable=True),
        sa.Column('metadata_json', sa.JSON(), nullable=True),
        sa.Column('error', sa.Text(), nullable=True),
        sa.Column('submitted_by', sa.String(length=255), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.Column('updated_at', sa.DateTime(), nullable=False),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_anchor_submissions_id', 'anchor_submissions', ['id'])
    op.create_index('ix_anchor_submissions_report_id', 'anchor_submissions', ['report_id'])
    op.create_index('ix_anchor_submissions_status', 'anchor_submissions', ['status'])
    op.create_index('ix_anchor_submissions_transaction_hash', 'anchor_submissions', ['transaction_hash'])
    op.create_index('ix_anchor_submissions_created_at', 'anchor_submissions', ['created_at'])

    op.create_table(
        'registered_documents',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('document_id', sa.String(length=255), nullable=False),
        sa.Column('name', sa.String(length=255), nullable=False),
        sa.Column('document_hash', sa.String(length=66), nullable=False),
        sa.Column('metadata_json', sa.JSON(), nullable=True),
        sa.Column('registered_by', sa.String(length=255), nullable=True),
        sa.Column('registered_at', sa.DateTime(), nullable=False),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_registered_documents_id', 'registered_documents', ['id'])
    op.create_index('ix_registered_documents_document_id', 'registered_documents', ['document_id'], unique=True)


def downgrade() -> None:
    op.drop_index('ix_registered_documents_document_id', table_name='registered_documents')
    op.drop_index('ix_registered_documents_id', table_name='registered_documents')
    op.drop_table('registered_documents')
    op.drop_index('ix_anchor_submissions_created_at', table_name='anchor_submissions')
    op.drop_index('ix_anchor_submissions_transaction_hash', table_name='anchor_submissions')
    op.drop_index('ix_anchor_submissions_status', table_name='anchor_submissions')
    op.drop_index('ix_anchor_submissions_report_id', table_name='anchor_submissions')
    op.drop_index('ix_anchor_submissions_id', table_name='anchor_submissions')
    op.drop_table('anchor_submissions')
