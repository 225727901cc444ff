"""create import_jobs

Revision ID: 001
Revises:
Create Date: 2026-10-18 10:00:00.000000

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = '001'
down_revision: Union[str, Sequence[str], None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    """Upgrade schema."""
    bind = op.get_bind()
    inspector = sa.inspect(bind)

    if not inspector.has_table('import_jobs'):
        op.create_table('import_jobs',
        sa.Column('id', sa.String(length=36), nullable=False),
        sa.Column('status', sa.String(length=32), nullable=False, server_default='pending'),
        sa.Column('import_type', sa.String(length=50), nullable=False, server_default='backfill_sources'),
        sa.Column('created_by', sa.String(length=255), nullable=False),
        sa.Column('account_scope', sa.String(length=255), nullable=True),
        sa.Column('owner_user_id', sa.String(length=255), nullable=True),
        sa.Column('deals_found', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('contacts_imported', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('contacts_skipped', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('contacts_errors', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('error_details', sa.JSON(), nullable=False),
        sa.Column('error_message', sa.Text(), nullable=True),
        sa.Column('checkpoint_data', sa.JSON(), nullable=True),
        sa.Column('generation', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('now()'), nullable=True),
        sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.text('now()'), nullable=True),
        sa.PrimaryKeyConstraint('id')
        )
        op.create_index(op.f('ix_import_jobs_status'), 'import_jobs', ['status'], unique=False)


def downgrade() -> None:
    """Downgrade schema."""
    bind = op.get_bind()
    inspector = sa.inspect(bind)

    if inspector.has_table('import_jobs'):
        op.drop_index(op.f('ix_import_jobs_status'), table_name='import_jobs')
        op.drop_table('import_jobs')
