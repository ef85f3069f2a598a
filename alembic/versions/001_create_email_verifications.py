"""Create email_verifications table

Revision ID: 001
Revises:
Create Date: 2026-10-19

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = '001'
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.create_table(
        'email_verifications',
        sa.Column('token', sa.String(length=36), nullable=False),
        sa.Column('address', sa.String(length=255), nullable=False),
        sa.Column('category', sa.String(length=64), nullable=False, server_default=''),
        sa.Column('username', sa.String(length=255), nullable=False, server_default=''),
        sa.Column('description', sa.Text(), nullable=False, server_default=''),
        sa.Column('request_settings', sa.JSON(), nullable=False),
        sa.Column('locals', sa.JSON(), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False, server_default=sa.text('now()')),
        sa.PrimaryKeyConstraint('token')
    )
    op.create_index(op.f('ix_email_verifications_address'), 'email_verifications', ['address'])
    op.create_index(op.f('ix_email_verifications_category'), 'email_verifications', ['category'])
    op.create_index(op.f('ix_email_verifications_username'), 'email_verifications', ['username'])
    op.create_index(op.f('ix_email_verifications_created_at'), 'email_verifications', ['created_at'])


def downgrade() -> None:
    op.drop_index(op.f('ix_email_verifications_created_at'), table_name='email_verifications')
    op.drop_index(op.f('ix_email_verifications_username'), table_name='email_verifications')
    op.drop_index(op.f('ix_email_verifications_category'), table_name='email_verifications')
    op.drop_index(op.f('ix_email_verifications_address'), table_name='email_verifications')
    op.drop_table('email_verifications')
