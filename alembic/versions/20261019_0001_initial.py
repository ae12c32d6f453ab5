"""initial schema: groups, tests, assignments, rosters, results

Revision ID: 20261019_0001
Revises:
Create Date: 2026-10-19
"""

from alembic import op
import sqlalchemy as sa


revision = "20261019_0001"
down_revision = None
branch_labels = None
depends_on = None


def upgrade() -> None:
    op.create_table(
        "coaches",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("full_name", sa.String(length=160), nullable=False),
        sa.Column("email", sa.String(length=200), nullable=False, unique=True),
        sa.Column("created_at", sa.DateTime(), nullable=False, server_default=sa.text("CURRENT_TIMESTAMP")),
    )

    op.create_table(
        "athletes",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("full_name", sa.String(length=160), nullable=False),
        sa.Column("email", sa.String(length=200), nullable=False, unique=True),
        sa.Column("created_at", sa.DateTime(), nullable=False, server_default=sa.text("CURRENT_TIMESTAMP")),
    )

    op.create_table(
        "groups",
        sa.Column("code", sa.String(length=16), primary_key=True),
        sa.Column("name", sa.String(length=120), nullable=False),
        sa.Column("description", sa.Text(), nullable=False, server_default=""),
        sa.Column("coach_id", sa.Integer(), sa.ForeignKey("coaches.id"), nullable=False),
        sa.Column("created_at", sa.DateTime(), nullable=False, server_default=sa.text("CURRENT_TIMESTAMP")),
        sa.Column("active", sa.Boolean(), nullable=False, server_default=sa.text("true")),
    )
    op.create_index("ix_groups_coach_id", "groups", ["coach_id"])

    op.create_table(
        "memberships",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("athlete_id", sa.Integer(), sa.ForeignKey("athletes.id"), nullable=False),
        sa.Column("group_code", sa.String(length=16), sa.ForeignKey("groups.code"), nullable=False),
        sa.Column("joined_at", sa.DateTime(), nullable=False, server_default=sa.text("CURRENT_TIMESTAMP")),
        sa.UniqueConstraint("athlete_id", "group_code", name="uq_membership_athlete_group"),
    )
    op.create_index("ix_memberships_athlete_id", "memberships", ["athlete_id"])
    op.create_index("ix_memberships_group_code", "memberships", ["group_code"])

    op.create_table(
        "test_definitions",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("coach_id", sa.Integer(), sa.ForeignKey("coaches.id"), nullable=False),
        sa.Column("name", sa.String(length=160), nullable=False),
        sa.Column("description", sa.Text(), nullable=False, server_default=""),
        sa.Column("metric_kind", sa.String(length=20), nullable=False),
        sa.Column("tiers", sa.JSON(), nullable=False, server_default="[]"),
        sa.Column("created_at", sa.DateTime(), nullable=False, server_default=sa.text("CURRENT_TIMESTAMP")),
    )
    op.create_index("ix_test_definitions_coach_id", "test_definitions", ["coach_id"])

    op.create_table(
        "assignments",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("test_id", sa.Integer(), sa.ForeignKey("test_definitions.id"), nullable=False),
        sa.Column("group_code", sa.String(length=16), sa.ForeignKey("groups.code"), nullable=False),
        sa.Column("coach_id", sa.Integer(), sa.ForeignKey("coaches.id"), nullable=False),
        sa.Column("assigned_on", sa.DateTime(), nullable=False, server_default=sa.text("CURRENT_TIMESTAMP")),
        sa.Column("due_on", sa.Date(), nullable=False),
        sa.UniqueConstraint("test_id", "group_code", "due_on", name="uq_assignment_test_group_due"),
    )
    op.create_index("ix_assignments_test_id", "assignments", ["test_id"])
    op.create_index("ix_assignments_group_code", "assignments", ["group_code"])
    op.create_index("ix_assignments_coach_id", "assignments", ["coach_id"])
    op.create_index("ix_assignments_assigned_on", "assignments", ["assigned_on"])
    op.create_index("ix_assignments_due_on", "assignments", ["due_on"])

    op.create_table(
        "assignment_roster",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("assignment_id", sa.Integer(), sa.ForeignKey("assignments.id"), nullable=False),
        sa.Column("athlete_id", sa.Integer(), sa.ForeignKey("athletes.id"), nullable=False),
        sa.Column("group_code_at_assignment", sa.String(length=16), nullable=False),
        sa.UniqueConstraint("assignment_id", "athlete_id", name="uq_roster_assignment_athlete"),
    )
    op.create_index("ix_assignment_roster_assignment_id", "assignment_roster", ["assignment_id"])
    op.create_index("ix_assignment_roster_athlete_id", "assignment_roster", ["athlete_id"])

    op.create_table(
        "results",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("assignment_id", sa.Integer(), sa.ForeignKey("assignments.id"), nullable=False),
        sa.Column("athlete_id", sa.Integer(), sa.ForeignKey("athletes.id"), nullable=False),
        sa.Column("value", sa.Float(), nullable=False),
        sa.Column("recorded_on", sa.DateTime(), nullable=False, server_default=sa.text("CURRENT_TIMESTAMP")),
    )
    op.create_index("ix_results_assignment_id", "results", ["assignment_id"])
    op.create_index("ix_results_athlete_id", "results", ["athlete_id"])

    op.create_table(
        "comments",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("result_id", sa.Integer(), sa.ForeignKey("results.id"), nullable=False),
        sa.Column("coach_id", sa.Integer(), sa.ForeignKey("coaches.id"), nullable=False),
        sa.Column("body", sa.Text(), nullable=False),
        sa.Column("commented_on", sa.DateTime(), nullable=False, server_default=sa.text("CURRENT_TIMESTAMP")),
        sa.CheckConstraint("length(body) > 0", name="ck_comment_body_not_empty"),
    )
    op.create_index("ix_comments_result_id", "comments", ["result_id"])
    op.create_index("ix_comments_coach_id", "comments", ["coach_id"])
    op.create_index("ix_comments_commented_on", "comments", ["commented_on"])


def downgrade() -> None:
    for table in (
        "comments",
        "results",
        "assignment_roster",
        "assignments",
        "test_definitions",
        "memberships",
        "groups",
        "athletes",
        "coaches",
    ):
        op.drop_table(table)
