"""Initial migration - create the students table

Revision ID: 001_create_students
Revises: None
Create Date: 2026-10-17

Creates the students table with indexes for the course grouping,
the city filter and newest-first listing.
"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa

# revision identifiers
revision: str = '001_create_students'
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.create_table(
        'students',
        sa.Column('id', sa.String(36), primary_key=True),
        sa.Column('name', sa.Text(), nullable=False),
        sa.Column('marks', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('course', sa.Text(), nullable=False),
        sa.Column('city', sa.Text(), nullable=True),
        sa.Column('subjects', sa.JSON(), nullable=False, server_default='[]'),
        sa.Column('enrolled', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('created_at', sa.DateTime(),
                  server_default=sa.func.now(), nullable=False),
        sa.Column('updated_at', sa.DateTime(),
                  server_default=sa.func.now(), nullable=False),
    )

    op.create_index('ix_students_course', 'students', ['course'])
    op.create_index('ix_students_city', 'students', ['city'])
    op.create_index('ix_students_created_at', 'students', ['created_at'])


def downgrade() -> None:
    op.drop_index('ix_students_created_at', table_name='students')
    op.drop_index('ix_students_city', table_name='students')
    op.drop_index('ix_students_course', table_name='students')
    op.drop_table('students')
