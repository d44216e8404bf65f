"""create students table

Revision ID: 5c1d2e7f9a30
Revises:
Create Date: 2025-10-19 09:00:00.000000

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision: str = '5c1d2e7f9a30'
down_revision: Union[str, Sequence[str], None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade():
    op.create_table(
        'students',
        sa.Column('id', sa.Uuid(), primary_key=True),
        sa.Column('user_id', sa.Uuid(), nullable=False),
        sa.Column('name', sa.String(length=100), nullable=False),
        sa.Column('class', sa.String(length=8), nullable=False),
        sa.Column('section', sa.String(length=2), nullable=False),
        sa.Column('date_of_birth_day', sa.String(length=2), nullable=False),
        sa.Column('date_of_birth_month', sa.String(length=2), nullable=False),
        sa.Column('date_of_birth_year', sa.String(length=4), nullable=False),
        sa.Column('admission_no', sa.String(length=50), nullable=False),
        sa.Column('blood_group', sa.String(length=4), nullable=True),
        sa.Column('contact_no', sa.String(length=20), nullable=False),
        sa.Column('address', sa.String(length=500), nullable=False),
        sa.Column('photo_url', sa.String(length=1024), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=False),
    )
    op.create_index('ix_students_user_id', 'students', ['user_id'])
    op.create_index('ix_students_admission_no', 'students', ['admission_no'])

    # Owner-only access (admins see every row), keyed on per-transaction settings
    if op.get_bind().dialect.name == 'postgresql':
        op.execute("ALTER TABLE students ENABLE ROW LEVEL SECURITY")
        op.execute(
            "CREATE POLICY students_owner ON students "
            "USING (user_id::text = current_setting('app.current_user_id', true) "
            "OR current_setting('app.current_user_role', true) = 'admin') "
            "WITH CHECK (user_id::text = current_setting('app.current_user_id', true) "
            "OR current_setting('app.current_user_role', true) = 'admin')"
        )


def downgrade():
    if op.get_bind().dialect.name == 'postgresql':
        op.execute("DROP POLICY IF EXISTS students_owner ON students")
    op.drop_index('ix_students_admission_no', table_name='students')
    op.drop_index('ix_students_user_id', table_name='students')
    op.drop_table('students')
