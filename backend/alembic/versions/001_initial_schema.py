"""Initial schema — tools, problems, prompts, queued_jobs.

Revision ID: 001_initial
Revises: None
Create Date: 2026-10-19

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects.postgresql import UUID

revision: str = "001_initial"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.create_table(
        "tools",
        sa.Column("id", UUID(as_uuid=True), primary_key=True),
        sa.Column("url", sa.Text, nullable=False, unique=True),
        sa.Column("title", sa.Text, nullable=False),
        sa.Column("description", sa.Text, nullable=False),
        sa.Column("tag", sa.Text, nullable=False),
        sa.Column("category", sa.Text, nullable=False),
        sa.Column("problem_solves", sa.Text, nullable=False),
        sa.Column("who_can_use", sa.Text, nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
    )
    op.create_index("idx_tools_category", "tools", ["category"])

    op.create_table(
        "problems",
        sa.Column("id", UUID(as_uuid=True), primary_key=True),
        sa.Column("description", sa.Text, nullable=False),
        sa.Column("status", sa.String(20), nullable=False, server_default="pending"),
        sa.Column(
            "matched_tool_id", UUID(as_uuid=True),
            sa.ForeignKey("tools.id", ondelete="SET NULL"), nullable=True,
        ),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.CheckConstraint(
            "status IN ('solved', 'pending', 'opportunity')",
            name="ck_problems_status",
        ),
    )
    op.create_index("idx_problems_status", "problems", ["status"])

    op.create_table(
        "prompts",
        sa.Column("id", UUID(as_uuid=True), primary_key=True),
        sa.Column("function_name", sa.String(100), nullable=False, unique=True),
        sa.Column("system_prompt", sa.Text, nullable=False),
        sa.Column("user_prompt_template", sa.Text, nullable=False),
        sa.Column("version", sa.Integer, nullable=False, server_default="1"),
        sa.Column("is_active", sa.Boolean, nullable=False, server_default=sa.true()),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
    )

    op.create_table(
        "queued_jobs",
        sa.Column("id", UUID(as_uuid=True), primary_key=True),
        sa.Column("kind", sa.String(20), nullable=False),
        sa.Column("payload", sa.JSON, nullable=False),
        sa.Column("status", sa.String(20), nullable=False, server_default="pending"),
        sa.Column("attempts", sa.Integer, nullable=False, server_default="0"),
        sa.Column("locked_until", sa.DateTime(timezone=True), nullable=True),
        sa.Column("last_error", sa.Text, nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
    )
    op.create_index(
        "idx_queued_jobs_status_created", "queued_jobs", ["status", "created_at"],
    )

    # Full-text indexes only exist on PostgreSQL
    if op.get_bind().dialect.name == "postgresql":
        op.execute(
            "CREATE INDEX idx_tools_problem_solves ON tools "
            "USING gin(to_tsvector('english', problem_solves))"
        )
        op.execute(
            "CREATE INDEX idx_problems_description ON problems "
            "USING gin(to_tsvector('english', description))"
        )


def downgrade() -> None:
    op.drop_table("queued_jobs")
    op.drop_table("prompts")
    op.drop_table("problems")
    op.drop_table("tools")
