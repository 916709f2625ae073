"""add workflow, execution_run and run_continuation tables

Revision ID: 3f1c9a2b7d40
Revises:
Create Date: 2026-03-02 09:00:00.000000

"""

from collections.abc import Sequence
from typing import Union

import sqlalchemy as sa
from alembic import op

# revision identifiers, used by Alembic.
revision: str = "3f1c9a2b7d40"
down_revision: Union[str, Sequence[str], None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    """Upgrade schema."""
    op.create_table(
        "workflow",
        sa.Column("id", sa.String(), nullable=False),
        sa.Column("org_id", sa.String(), nullable=False),
        sa.Column("name", sa.String(), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("trigger_type", sa.String(), nullable=False),
        sa.Column("is_active", sa.Boolean(), server_default=sa.true(), nullable=False),
        sa.Column("steps", sa.JSON(), nullable=False),
        sa.Column("execution_count", sa.Integer(), server_default=sa.text("0"), nullable=False),
        sa.Column("last_executed_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            server_default=sa.func.now(),
            nullable=False,
        ),
        sa.Column(
            "updated_at",
            sa.DateTime(timezone=True),
            server_default=sa.func.now(),
            nullable=False,
        ),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_workflow_org_id", "workflow", ["org_id"])
    op.create_index("ix_workflow_trigger_type", "workflow", ["trigger_type"])
    op.create_index(
        "ix_workflow_org_trigger_active", "workflow", ["org_id", "trigger_type", "is_active"]
    )

    op.create_table(
        "execution_run",
        sa.Column("id", sa.String(), nullable=False),
        sa.Column("org_id", sa.String(), nullable=False),
        sa.Column("workflow_id", sa.String(), nullable=False),
        sa.Column("trigger_event", sa.String(), nullable=False),
        sa.Column("trigger_data", sa.JSON(), nullable=True),
        sa.Column("steps_snapshot", sa.JSON(), nullable=False),
        sa.Column("status", sa.String(), nullable=False),
        sa.Column("steps_executed", sa.Integer(), nullable=False),
        sa.Column("steps_total", sa.Integer(), nullable=False),
        sa.Column("steps_failed", sa.Integer(), nullable=False),
        sa.Column("step_log", sa.JSON(), nullable=True),
        sa.Column("error_message", sa.Text(), nullable=True),
        sa.Column("started_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("completed_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("duration", sa.Integer(), nullable=True),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            server_default=sa.func.now(),
            nullable=False,
        ),
        sa.Column(
            "updated_at",
            sa.DateTime(timezone=True),
            server_default=sa.func.now(),
            nullable=False,
        ),
        sa.ForeignKeyConstraint(["workflow_id"], ["workflow.id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("id"),
        sa.CheckConstraint(
            "status IN ('running', 'completed', 'failed')",
            name="execution_run_status_check",
        ),
    )
    op.create_index("ix_execution_run_org_id", "execution_run", ["org_id"])
    op.create_index("ix_execution_run_workflow_id", "execution_run", ["workflow_id"])
    op.create_index("ix_execution_run_status", "execution_run", ["status"])
    op.create_index(
        "ix_execution_run_org_workflow_started",
        "execution_run",
        ["org_id", "workflow_id", "started_at"],
    )

    op.create_table(
        "run_continuation",
        sa.Column("id", sa.String(), nullable=False),
        sa.Column("run_id", sa.String(), nullable=False),
        sa.Column("next_step_index", sa.Integer(), nullable=False),
        sa.Column("resume_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("context", sa.JSON(), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.ForeignKeyConstraint(["run_id"], ["execution_run.id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("run_id"),
    )
    op.create_index("ix_run_continuation_resume_at", "run_continuation", ["resume_at"])


def downgrade() -> None:
    """Downgrade schema."""
    op.drop_index("ix_run_continuation_resume_at", table_name="run_continuation")
    op.drop_table("run_continuation")

    op.drop_index("ix_execution_run_org_workflow_started", table_name="execution_run")
    op.drop_index("ix_execution_run_status", table_name="execution_run")
    op.drop_index("ix_execution_run_workflow_id", table_name="execution_run")
    op.drop_index("ix_execution_run_org_id", table_name="execution_run")
    op.drop_table("execution_run")

    op.drop_index("ix_workflow_org_trigger_active", table_name="workflow")
    op.drop_index("ix_workflow_trigger_type", table_name="workflow")
    op.drop_index("ix_workflow_org_id", table_name="workflow")
    op.drop_table("workflow")
