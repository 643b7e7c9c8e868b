"""initial_schema

Revision ID: 0001
Revises:
Create Date: 2026-10-18

Creates all tables for TaskVerse:
users, organizations, organization_members, invitations, projects,
statuses, issues, comments, activity_logs, notifications.
"""
from typing import Sequence, Union
from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = "0001"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None

member_role = sa.Enum("owner", "admin", "member", name="memberrole")
project_type = sa.Enum("kanban", "scrum", name="projecttype")
status_category = sa.Enum("todo", "in_progress", "done", name="statuscategory")
issue_type = sa.Enum("story", "task", "bug", "epic", name="issuetype")
issue_priority = sa.Enum("none", "low", "medium", "high", "critical", name="issuepriority")
activity_type = sa.Enum(
    "status_changed", "assignee_changed", "comment_added", "issue_created", "issue_updated",
    "project_created", "member_invited", "member_joined", "member_role_changed", "member_removed",
    name="activitytype",
)
notification_type = sa.Enum("mention", "assignment", name="notificationtype")


def upgrade() -> None:
    # --- users ---
    op.create_table(
        "users",
        sa.Column("user_id", sa.String(36), primary_key=True),
        sa.Column("name", sa.String(100), nullable=False),
        sa.Column("email", sa.String(255), nullable=False, unique=True),
        sa.Column("avatar_url", sa.String(500), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
    )
    op.create_index("ix_users_email", "users", ["email"])

    # --- organizations ---
    op.create_table(
        "organizations",
        sa.Column("organization_id", sa.String(36), primary_key=True),
        sa.Column("name", sa.String(150), nullable=False),
        sa.Column("slug", sa.String(100), nullable=False, unique=True),
        sa.Column("owner_id", sa.String(36), sa.ForeignKey("users.user_id"), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
    )

    # --- organization_members ---
    op.create_table(
        "organization_members",
        sa.Column("member_id", sa.String(36), primary_key=True),
        sa.Column("organization_id", sa.String(36), sa.ForeignKey("organizations.organization_id"), nullable=False),
        sa.Column("user_id", sa.String(36), sa.ForeignKey("users.user_id"), nullable=False),
        sa.Column("role", member_role, nullable=False),
        sa.Column("joined_at", sa.DateTime(timezone=True), nullable=False),
        sa.UniqueConstraint("organization_id", "user_id", name="uq_member_org_user"),
    )
    op.create_index("ix_organization_members_organization_id", "organization_members", ["organization_id"])
    op.create_index("ix_organization_members_user_id", "organization_members", ["user_id"])

    # --- invitations ---
    op.create_table(
        "invitations",
        sa.Column("invitation_id", sa.String(36), primary_key=True),
        sa.Column("organization_id", sa.String(36), sa.ForeignKey("organizations.organization_id"), nullable=False),
        sa.Column("email", sa.String(255), nullable=False),
        sa.Column("role", member_role, nullable=False),
        sa.Column("token", sa.String(100), nullable=False, unique=True),
        sa.Column("invited_by_id", sa.String(36), sa.ForeignKey("users.user_id"), nullable=False),
        sa.Column("expires_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
    )
    op.create_index("ix_invitations_organization_id", "invitations", ["organization_id"])

    # --- projects ---
    op.create_table(
        "projects",
        sa.Column("project_id", sa.String(36), primary_key=True),
        sa.Column("organization_id", sa.String(36), sa.ForeignKey("organizations.organization_id"), nullable=False),
        sa.Column("name", sa.String(150), nullable=False),
        sa.Column("key", sa.String(5), nullable=False),
        sa.Column("type", project_type, nullable=False),
        sa.Column("lead_id", sa.String(36), sa.ForeignKey("users.user_id"), nullable=True),
        sa.Column("issue_counter", sa.Integer, nullable=False, server_default="0"),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.UniqueConstraint("organization_id", "key", name="uq_project_org_key"),
    )
    op.create_index("ix_projects_organization_id", "projects", ["organization_id"])

    # --- statuses ---
    op.create_table(
        "statuses",
        sa.Column("status_id", sa.String(36), primary_key=True),
        sa.Column("project_id", sa.String(36), sa.ForeignKey("projects.project_id"), nullable=False),
        sa.Column("name", sa.String(100), nullable=False),
        sa.Column("category", status_category, nullable=False),
        sa.Column("order", sa.Integer, nullable=False, server_default="0"),
    )
    op.create_index("ix_statuses_project_id", "statuses", ["project_id"])

    # --- issues ---
    op.create_table(
        "issues",
        sa.Column("issue_id", sa.String(36), primary_key=True),
        sa.Column("project_id", sa.String(36), sa.ForeignKey("projects.project_id"), nullable=False),
        sa.Column("key", sa.String(20), nullable=False),
        sa.Column("title", sa.String(255), nullable=False),
        sa.Column("description", sa.Text, nullable=True),
        sa.Column("type", issue_type, nullable=False),
        sa.Column("priority", issue_priority, nullable=False),
        sa.Column("status_id", sa.String(36), sa.ForeignKey("statuses.status_id"), nullable=False),
        sa.Column("assignee_id", sa.String(36), sa.ForeignKey("users.user_id"), nullable=True),
        sa.Column("reporter_id", sa.String(36), sa.ForeignKey("users.user_id"), nullable=False),
        sa.Column("due_date", sa.Date, nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("timeline_counter", sa.Integer, nullable=False, server_default="0"),
        sa.UniqueConstraint("project_id", "key", name="uq_issue_project_key"),
    )
    op.create_index("ix_issues_project_id", "issues", ["project_id"])

    # --- comments ---
    op.create_table(
        "comments",
        sa.Column("comment_id", sa.Integer, primary_key=True, autoincrement=True),
        sa.Column("issue_id", sa.String(36), sa.ForeignKey("issues.issue_id"), nullable=False),
        sa.Column("author_id", sa.String(36), sa.ForeignKey("users.user_id"), nullable=False),
        sa.Column("body", sa.Text, nullable=False),
        sa.Column("position", sa.Integer, nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
    )
    op.create_index("ix_comments_issue_id", "comments", ["issue_id"])

    # --- activity_logs ---
    op.create_table(
        "activity_logs",
        sa.Column("activity_id", sa.Integer, primary_key=True, autoincrement=True),
        sa.Column("organization_id", sa.String(36), sa.ForeignKey("organizations.organization_id"), nullable=False),
        sa.Column("issue_id", sa.String(36), sa.ForeignKey("issues.issue_id"), nullable=True),
        sa.Column("actor_id", sa.String(36), sa.ForeignKey("users.user_id"), nullable=False),
        sa.Column("type", activity_type, nullable=False),
        sa.Column("message", sa.Text, nullable=False),
        sa.Column("metadata", sa.JSON, nullable=True),
        sa.Column("position", sa.Integer, nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
    )
    op.create_index("ix_activity_logs_organization_id", "activity_logs", ["organization_id"])
    op.create_index("ix_activity_logs_issue_id", "activity_logs", ["issue_id"])

    # --- notifications ---
    op.create_table(
        "notifications",
        sa.Column("notification_id", sa.String(36), primary_key=True),
        sa.Column("recipient_id", sa.String(36), sa.ForeignKey("users.user_id"), nullable=False),
        sa.Column("type", notification_type, nullable=False),
        sa.Column("actor_id", sa.String(36), sa.ForeignKey("users.user_id"), nullable=False),
        sa.Column("issue_id", sa.String(36), sa.ForeignKey("issues.issue_id"), nullable=True),
        sa.Column("issue_key", sa.String(20), nullable=True),
        sa.Column("url", sa.String(500), nullable=False),
        sa.Column("extra", sa.JSON, nullable=True),
        sa.Column("read", sa.Boolean, nullable=False, server_default=sa.false()),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
    )
    op.create_index("ix_notifications_recipient_id", "notifications", ["recipient_id"])


def downgrade() -> None:
    op.drop_table("notifications")
    op.drop_table("activity_logs")
    op.drop_table("comments")
    op.drop_table("issues")
    op.drop_table("statuses")
    op.drop_table("projects")
    op.drop_table("invitations")
    op.drop_table("organization_members")
    op.drop_table("organizations")
    op.drop_table("users")
    for enum_type in (
        notification_type, activity_type, issue_priority, issue_type,
        status_category, project_type, member_role,
    ):
        enum_type.drop(op.get_bind(), checkfirst=True)
