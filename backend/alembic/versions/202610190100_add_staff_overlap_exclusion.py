"""add staff overlap exclusion constraint

Revision ID: 202610190100
Revises: 202610190000
Create Date: 2026-10-19 01:00:00.000000

Forbids two non-cancelled appointments for the same staff member whose
[date + start_time, date + end_time) ranges overlap. PostgreSQL only; other
backends rely on the clinic row lock taken by the appointment service.
"""
from typing import Sequence, Union

from alembic import op


# revision identifiers, used by Alembic.
revision: str = '202610190100'
down_revision: Union[str, None] = '202610190000'
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    if op.get_bind().dialect.name != 'postgresql':
        return

    # btree_gist provides the gist operator class for the integer equality part
    op.execute("CREATE EXTENSION IF NOT EXISTS btree_gist")
    op.execute("""
        ALTER TABLE appointments
        ADD CONSTRAINT excl_appointments_staff_overlap
        EXCLUDE USING gist (
            staff_id WITH =,
            tsrange(date + start_time, date + end_time, '[)') WITH &&
        )
        WHERE (status <> 'cancelled')
    """)


def downgrade() -> None:
    if op.get_bind().dialect.name != 'postgresql':
        return

    op.execute("ALTER TABLE appointments DROP CONSTRAINT IF EXISTS excl_appointments_staff_overlap")
