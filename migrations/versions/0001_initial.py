"""initial schema: users/roles, lookups, issues, comments, attachments; seed lookups

Revision ID: 0001
Revises:
Create Date: 2026-10-18
"""
from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision = "0001"
down_revision = None
branch_labels = None
depends_on = None


def upgrade():
    # users table (username auth)
    op.create_table(
        "users",
        sa.Column("id", sa.Integer(), primary_key=True, nullable=False),
        sa.Column("full_name", sa.String(length=200), nullable=False),
        sa.Column("user_name", sa.String(length=50), nullable=False),
        sa.Column("password_hash", sa.String(length=255), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
    )
    op.create_index("ix_users_id", "users", ["id"], unique=False)
    op.create_index("ix_users_user_name", "users", ["user_name"], unique=True)

    # roles table
    op.create_table(
        "roles",
        sa.Column("id", sa.Integer(), primary_key=True, nullable=False),
        sa.Column("name", sa.String(length=50), nullable=False),
    )
    op.create_index("ix_roles_id", "roles", ["id"], unique=False)
    op.create_index("ix_roles_name", "roles", ["name"], unique=True)

    # user_roles association
    op.create_table(
        "user_roles",
        sa.Column("user_id", sa.Integer(), sa.ForeignKey("users.id", ondelete="CASCADE"), primary_key=True),
        sa.Column("role_id", sa.Integer(), sa.ForeignKey("roles.id", ondelete="CASCADE"), primary_key=True),
    )

    # lookups
    op.create_table(
        "categories",
        sa.Column("id", sa.Integer(), primary_key=True, nullable=False),
        sa.Column("name", sa.String(length=100), nullable=False),
    )
    op.create_index("ix_categories_id", "categories", ["id"], unique=False)
    op.create_index("ix_categories_name", "categories", ["name"], unique=True)

    op.create_table(
        "statuses",
        sa.Column("id", sa.Integer(), primary_key=True, nullable=False),
        sa.Column("name", sa.String(length=50), nullable=False),
    )
    op.create_index("ix_statuses_id", "statuses", ["id"], unique=False)
    op.create_index("ix_statuses_name", "statuses", ["name"], unique=True)

    op.create_table(
        "priorities",
        sa.Column("id", sa.Integer(), primary_key=True, nullable=False),
        sa.Column("name", sa.String(length=50), nullable=False),
        sa.Column("sort_order", sa.Integer(), nullable=False, server_default="0"),
    )
    op.create_index("ix_priorities_id", "priorities", ["id"], unique=False)
    op.create_index("ix_priorities_name", "priorities", ["name"], unique=True)

    # issues
    op.create_table(
        "issues",
        sa.Column("id", sa.Integer(), primary_key=True, nullable=False),
        sa.Column("title", sa.String(length=255), nullable=False),
        sa.Column("description", sa.Text(), nullable=False),
        sa.Column("latitude", sa.Float(), nullable=False),
        sa.Column("longitude", sa.Float(), nullable=False),
        sa.Column("category_id", sa.Integer(), sa.ForeignKey("categories.id"), nullable=False),
        sa.Column("status_id", sa.Integer(), sa.ForeignKey("statuses.id"), nullable=False),
        sa.Column("priority_id", sa.Integer(), sa.ForeignKey("priorities.id", ondelete="SET NULL"), nullable=True),
        sa.Column("reporter_id", sa.Integer(), sa.ForeignKey("users.id"), nullable=False),
        sa.Column("assignee_id", sa.Integer(), sa.ForeignKey("users.id", ondelete="SET NULL"), nullable=True),
        sa.Column("start_date", sa.DateTime(timezone=True), nullable=True),
        sa.Column("due_date", sa.DateTime(timezone=True), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.CheckConstraint(
            "start_date IS NULL OR due_date IS NULL OR due_date >= start_date",
            name="ck_issues_due_after_start",
        ),
    )
    op.create_index("ix_issues_id", "issues", ["id"], unique=False)
    for column in ("category_id", "status_id", "priority_id", "reporter_id", "assignee_id"):
        op.create_index(f"ix_issues_{column}", "issues", [column], unique=False)

    # comments (self-referencing for replies)
    op.create_table(
        "comments",
        sa.Column("id", sa.Integer(), primary_key=True, nullable=False),
        sa.Column("text", sa.Text(), nullable=False),
        sa.Column("issue_id", sa.Integer(), sa.ForeignKey("issues.id", ondelete="CASCADE"), nullable=False),
        sa.Column("author_id", sa.Integer(), sa.ForeignKey("users.id"), nullable=False),
        sa.Column("parent_id", sa.Integer(), sa.ForeignKey("comments.id", ondelete="CASCADE"), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
    )
    op.create_index("ix_comments_id", "comments", ["id"], unique=False)
    for column in ("issue_id", "author_id", "parent_id"):
        op.create_index(f"ix_comments_{column}", "comments", [column], unique=False)

    # attachments (owned by exactly one issue or comment)
    op.create_table(
        "attachments",
        sa.Column("id", sa.Integer(), primary_key=True, nullable=False),
        sa.Column("url", sa.String(length=512), nullable=False),
        sa.Column("public_id", sa.String(length=255), nullable=False),
        sa.Column("file_name", sa.String(length=255), nullable=False),
        sa.Column("file_type", sa.String(length=100), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.Column("issue_id", sa.Integer(), sa.ForeignKey("issues.id", ondelete="CASCADE"), nullable=True),
        sa.Column("comment_id", sa.Integer(), sa.ForeignKey("comments.id", ondelete="CASCADE"), nullable=True),
        sa.UniqueConstraint("public_id", name="uq_attachments_public_id"),
        sa.CheckConstraint("(issue_id IS NULL) <> (comment_id IS NULL)", name="ck_attachments_single_owner"),
    )
    op.create_index("ix_attachments_id", "attachments", ["id"], unique=False)
    op.create_index("ix_attachments_issue_id", "attachments", ["issue_id"], unique=False)
    op.create_index("ix_attachments_comment_id", "attachments", ["comment_id"], unique=False)

    # seed roles, statuses and priorities; categories and the admin are seeded at startup
    roles_table = sa.table("roles", sa.column("name", sa.String(length=50)))
    op.bulk_insert(roles_table, [{"name": "CITIZEN"}, {"name": "STAFF"}, {"name": "ADMIN"}])

    statuses_table = sa.table("statuses", sa.column("name", sa.String(length=50)))
    op.bulk_insert(statuses_table, [{"name": "OPEN"}, {"name": "IN_PROGRESS"}, {"name": "RESOLVED"}])

    priorities_table = sa.table(
        "priorities",
        sa.column("name", sa.String(length=50)),
        sa.column("sort_order", sa.Integer()),
    )
    op.bulk_insert(
        priorities_table,
        [
            {"name": "Highest", "sort_order": 5},
            {"name": "High", "sort_order": 4},
            {"name": "Medium", "sort_order": 3},
            {"name": "Low", "sort_order": 2},
            {"name": "Lowest", "sort_order": 1},
        ],
    )


def downgrade():
    op.drop_table("attachments")
    op.drop_table("comments")
    op.drop_table("issues")
    op.drop_table("priorities")
    op.drop_table("statuses")
    op.drop_table("categories")
    op.drop_table("user_roles")
    op.drop_table("roles")
    op.drop_table("users")
