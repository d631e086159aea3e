"""initial_schema_baseline

Revision ID: 202610190000
Revises:
Create Date: 2026-10-19 00:00:00.000000

Creates the scheduling schema (clinics, staff, patients, appointments,
business hours, holidays, clinic settings) from the current model definitions.
"""
from typing import Sequence, Union
import sys
import os

# Add src directory to path to import models
sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..', '..', 'src'))

from alembic import op

# Import all models to ensure they're registered with Base.metadata
from core.database import Base
import models  # noqa: F401


# revision identifiers, used by Alembic.
revision: str = '202610190000'
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    """
    Create all tables from the SQLAlchemy models.

    Includes every index, check constraint, unique constraint and foreign key
    defined on the models.
    """
    Base.metadata.create_all(bind=op.get_bind())


def downgrade() -> None:
    """Drop all tables."""
    Base.metadata.drop_all(bind=op.get_bind())
