"""Initial schema: users, projects, issues, notes, events, protected branches, hooks.

Revision ID: 001
Revises:
Create Date: 2026-10-19

"""

from collections.abc import Sequence

import sqlalchemy as sa
from alembic import op
from sqlalchemy.dialects.postgresql import JSONB

# revision identifiers, used by Alembic.
revision: str = "001"
down_revision: str | None = None
branch_labels: str | Sequence[str] | None = None
depends_on: str | Sequence[str] | None = None


def _project_fk() -> sa.Column:
    return sa.Column(
        "project_id",
        sa.Integer,
        sa.ForeignKey("projects.id", ondelete="CASCADE"),
        nullable=False,
    )


def upgrade() -> None:
    """Create all tables with their uniqueness constraints."""
    op.create_table(
        "users",
        sa.Column("id", sa.Integer, primary_key=True),
        sa.Column("username", sa.String(255), nullable=False, unique=True),
        sa.Column("name", sa.String(255), nullable=False),
        sa.Column("email", sa.String(255), nullable=False, unique=True),
    )

    op.create_table(
        "projects",
        sa.Column("id", sa.Integer, primary_key=True),
        sa.Column("name", sa.String(255), nullable=False),
        sa.Column("path_with_namespace", sa.String(512), nullable=False, unique=True),
        sa.Column("description", sa.Text, nullable=True),
        sa.Column("default_branch", sa.String(255), nullable=True),
        sa.Column("branch_protection", sa.Integer, nullable=True),
        sa.Column("issues_tracker", sa.String(32), nullable=False, server_default="internal"),
        sa.Column("issues_tracker_url", sa.String(1024), nullable=True),
    )

    op.create_table(
        "issues",
        sa.Column("id", sa.Integer, primary_key=True),
        _project_fk(),
        sa.Column("iid", sa.Integer, nullable=False),
        sa.Column("title", sa.String(255), nullable=False),
        sa.Column("state", sa.String(32), nullable=False, server_default="opened"),
        sa.Column("updated_at", sa.DateTime, nullable=False, server_default=sa.func.now()),
        sa.UniqueConstraint("project_id", "iid", name="uq_issues_project_iid"),
    )

    # Cross-reference deduplication relies on uq_notes_project_issue_commit.
    op.create_table(
        "notes",
        sa.Column("id", sa.Integer, primary_key=True),
        _project_fk(),
        sa.Column(
            "issue_id",
            sa.Integer,
            sa.ForeignKey("issues.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("commit_id", sa.String(40), nullable=True),
        sa.Column("author_id", sa.Integer, sa.ForeignKey("users.id"), nullable=False),
        sa.Column("note", sa.Text, nullable=False),
        sa.Column("system", sa.Boolean, nullable=False, server_default=sa.false()),
        sa.Column("created_at", sa.DateTime, nullable=False, server_default=sa.func.now()),
        sa.UniqueConstraint(
            "project_id", "issue_id", "commit_id", name="uq_notes_project_issue_commit"
        ),
    )

    op.create_table(
        "events",
        sa.Column("id", sa.Integer, primary_key=True),
        _project_fk(),
        sa.Column("author_id", sa.Integer, sa.ForeignKey("users.id"), nullable=False),
        sa.Column("action", sa.Integer, nullable=False),
        sa.Column("data", JSONB, nullable=False),
        sa.Column("created_at", sa.DateTime, nullable=False, server_default=sa.func.now()),
    )
    op.create_index("ix_events_project_created", "events", ["project_id", "created_at"])

    op.create_table(
        "protected_branches",
        sa.Column("id", sa.Integer, primary_key=True),
        _project_fk(),
        sa.Column("name", sa.String(255), nullable=False),
        sa.Column(
            "developers_can_push", sa.Boolean, nullable=False, server_default=sa.false()
        ),
        sa.UniqueConstraint("project_id", "name", name="uq_protected_branches_project_name"),
    )

    op.create_table(
        "project_hooks",
        sa.Column("id", sa.Integer, primary_key=True),
        _project_fk(),
        sa.Column("url", sa.String(2048), nullable=False),
        sa.Column("push_events", sa.Boolean, nullable=False, server_default=sa.true()),
    )


def downgrade() -> None:
    """Drop all tables in reverse dependency order."""
    op.drop_table("project_hooks")
    op.drop_table("protected_branches")
    op.drop_index("ix_events_project_created", table_name="events")
    op.drop_table("events")
    op.drop_table("notes")
    op.drop_table("issues")
    op.drop_table("projects")
    op.drop_table("users")
