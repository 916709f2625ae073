"""add run_continuation.claimed_at

Revision ID: 8b2e5d6c1a93
Revises: 3f1c9a2b7d40
Create Date: 2026-03-09 14:20:00.000000

Continuations are no longer deleted when a scheduler claims them; claimed_at
marks the claim, and the row is removed once the resumed run records a step.
"""

from collections.abc import Sequence
from typing import Union

import sqlalchemy as sa
from alembic import op

revision: str = "8b2e5d6c1a93"
down_revision: Union[str, Sequence[str], None] = "3f1c9a2b7d40"
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    """Add run_continuation.claimed_at."""
    op.add_column(
        "run_continuation",
        sa.Column("claimed_at", sa.DateTime(timezone=True), nullable=True),
    )


def downgrade() -> None:
    """Drop run_continuation.claimed_at."""
    with op.batch_alter_table("run_continuation") as batch_op:
        batch_op.drop_column("claimed_at")
