"""create_attendance_records

Revision ID: 3f9c2a71d0b4
Revises:
Create Date: 2026-10-19 09:00:00.000000

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = '3f9c2a71d0b4'
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.create_table(
        'users',
        sa.Column('id', sa.Uuid(), nullable=False),
        sa.Column('username', sa.String(length=100), nullable=False),
        sa.Column('email', sa.String(length=255), nullable=True),
        sa.Column('is_active', sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('username'),
        sa.UniqueConstraint('email'),
    )

    op.create_table(
        'attendance_records',
        sa.Column('id', sa.BigInteger(), autoincrement=False, nullable=False),
        sa.Column('owner_id', sa.Uuid(), nullable=False),
        sa.Column('punch_in_at', sa.DateTime(), nullable=False),
        sa.Column('punch_out_at', sa.DateTime(), nullable=True),
        sa.Column('is_half_day', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('status', sa.String(length=20), nullable=False, server_default='working'),
        sa.Column('duration_hours', sa.Float(), nullable=True),
        sa.Column('last_reminder_sent_at', sa.DateTime(), nullable=True),
        sa.Column('version', sa.Integer(), nullable=False, server_default='1'),
        sa.ForeignKeyConstraint(['owner_id'], ['users.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index(
        'ix_attendance_records_owner_id', 'attendance_records', ['owner_id', 'id'],
    )
    # at most one open shift per owner
    op.create_index(
        'uq_attendance_records_open_owner', 'attendance_records', ['owner_id'],
        unique=True,
        sqlite_where=sa.text('punch_out_at IS NULL'),
        postgresql_where=sa.text('punch_out_at IS NULL'),
    )


def downgrade() -> None:
    op.drop_index('uq_attendance_records_open_owner', table_name='attendance_records')
    op.drop_index('ix_attendance_records_owner_id', table_name='attendance_records')
    op.drop_table('attendance_records')
    op.drop_table('users')
