"""Initial schema for Reviewflow.

Creates users, repositories, chats and subscriptions, merge requests with
their label/reviewer/approver associations, reviewer configuration
tables, synced comments, and the MR action log.

Revision ID: 001
Revises: None
Create Date: 2026-01-12
"""

from __future__ import annotations

from typing import Sequence, Union

import sqlalchemy as sa
from alembic import op

# revision identifiers, used by Alembic.
revision: str = "001"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def _timestamps() -> list[sa.Column]:
    return [
        sa.Column("id", sa.Uuid(), primary_key=True),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
    ]


def _fk(column: str, target: str, ondelete: str | None = "CASCADE", nullable: bool = False) -> sa.Column:
    return sa.Column(column, sa.Uuid(), sa.ForeignKey(target, ondelete=ondelete), nullable=nullable)


def upgrade() -> None:
    op.create_table(
        "users",
        *_timestamps(),
        sa.Column("gitlab_id", sa.Integer(), nullable=False, unique=True),
        sa.Column("username", sa.Text(), nullable=False),
        sa.Column("name", sa.Text(), nullable=True),
        sa.Column("email", sa.Text(), nullable=True),
        sa.Column("on_vacation", sa.Boolean(), nullable=False, server_default=sa.false()),
    )
    op.create_index("ix_users_email", "users", ["email"])

    op.create_table(
        "repositories",
        *_timestamps(),
        sa.Column("gitlab_id", sa.Integer(), nullable=False, unique=True),
        sa.Column("name", sa.Text(), nullable=False),
        sa.Column("web_url", sa.Text(), nullable=True),
    )

    op.create_table(
        "chats",
        *_timestamps(),
        sa.Column("chat_id", sa.Text(), nullable=False, unique=True),
        sa.Column("title", sa.Text(), nullable=True),
    )

    op.create_table(
        "chat_users",
        *_timestamps(),
        sa.Column("user_id", sa.Text(), nullable=False, unique=True),
        sa.Column("first_name", sa.Text(), nullable=True),
        sa.Column("last_name", sa.Text(), nullable=True),
    )

    op.create_table(
        "repository_subscriptions",
        *_timestamps(),
        _fk("repository_id", "repositories.id"),
        _fk("chat_ref_id", "chats.id"),
        sa.UniqueConstraint("repository_id", "chat_ref_id"),
    )
    op.create_index(
        "ix_repository_subscriptions_repository_id",
        "repository_subscriptions",
        ["repository_id"],
    )

    op.create_table(
        "labels",
        *_timestamps(),
        sa.Column("name", sa.Text(), nullable=False, unique=True),
    )

    op.create_table(
        "merge_requests",
        *_timestamps(),
        sa.Column("gitlab_id", sa.Integer(), nullable=False, unique=True),
        sa.Column("iid", sa.Integer(), nullable=False),
        _fk("repository_id", "repositories.id"),
        _fk("author_id", "users.id", ondelete=None),
        sa.Column("source_branch", sa.Text(), nullable=True),
        sa.Column("target_branch", sa.Text(), nullable=True),
        sa.Column("title", sa.Text(), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column(
            "state",
            sa.Enum("opened", "merged", "closed", name="mergerequeststate"),
            nullable=False,
        ),
        sa.Column("draft", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("web_url", sa.Text(), nullable=True),
        sa.Column("gitlab_created_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("merged_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("last_notified_state", sa.Text(), nullable=False, server_default=""),
        sa.UniqueConstraint("repository_id", "iid"),
    )
    op.create_index("ix_merge_requests_repository_id", "merge_requests", ["repository_id"])
    op.create_index("ix_merge_requests_gitlab_created_at", "merge_requests", ["gitlab_created_at"])

    for name, target in (
        ("merge_request_labels", ("label_id", "labels.id")),
        ("merge_request_reviewers", ("user_id", "users.id")),
        ("merge_request_approvers", ("user_id", "users.id")),
    ):
        op.create_table(
            name,
            sa.Column(
                "merge_request_id",
                sa.Uuid(),
                sa.ForeignKey("merge_requests.id", ondelete="CASCADE"),
                primary_key=True,
            ),
            sa.Column(
                target[0],
                sa.Uuid(),
                sa.ForeignKey(target[1], ondelete="CASCADE"),
                primary_key=True,
            ),
        )

    op.create_table(
        "label_reviewers",
        *_timestamps(),
        _fk("repository_id", "repositories.id"),
        sa.Column("label_name", sa.Text(), nullable=False),
        _fk("user_id", "users.id"),
        sa.UniqueConstraint("repository_id", "label_name", "user_id"),
    )

    op.create_table(
        "possible_reviewers",
        *_timestamps(),
        _fk("repository_id", "repositories.id"),
        _fk("user_id", "users.id"),
        sa.UniqueConstraint("repository_id", "user_id"),
    )

    op.create_table(
        "repository_slas",
        *_timestamps(),
        sa.Column(
            "repository_id",
            sa.Uuid(),
            sa.ForeignKey("repositories.id", ondelete="CASCADE"),
            nullable=False,
            unique=True,
        ),
        sa.Column("assign_count", sa.Integer(), nullable=False, server_default="1"),
    )

    for name in ("block_labels", "release_labels"):
        op.create_table(
            name,
            *_timestamps(),
            _fk("repository_id", "repositories.id"),
            sa.Column("label_name", sa.Text(), nullable=False),
            sa.UniqueConstraint("repository_id", "label_name"),
        )

    op.create_table(
        "release_managers",
        *_timestamps(),
        _fk("repository_id", "repositories.id"),
        _fk("user_id", "users.id"),
        sa.UniqueConstraint("repository_id", "user_id"),
    )

    op.create_table(
        "mr_comments",
        *_timestamps(),
        _fk("merge_request_id", "merge_requests.id"),
        sa.Column("gitlab_note_id", sa.Integer(), nullable=False, unique=True),
        sa.Column("gitlab_discussion_id", sa.Text(), nullable=True),
        _fk("author_id", "users.id"),
        sa.Column("body", sa.Text(), nullable=True),
        sa.Column("resolvable", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("resolved", sa.Boolean(), nullable=False, server_default=sa.false()),
        _fk("resolved_by_id", "users.id", ondelete="SET NULL", nullable=True),
        sa.Column("resolved_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("gitlab_created_at", sa.DateTime(timezone=True), nullable=False),
    )
    op.create_index("ix_mr_comments_merge_request_id", "mr_comments", ["merge_request_id"])

    op.create_table(
        "mr_actions",
        *_timestamps(),
        _fk("merge_request_id", "merge_requests.id"),
        sa.Column("action_type", sa.String(50), nullable=False),
        _fk("actor_id", "users.id", ondelete="SET NULL", nullable=True),
        _fk("target_user_id", "users.id", ondelete="SET NULL", nullable=True),
        sa.Column("timestamp", sa.DateTime(timezone=True), nullable=False),
        sa.Column("notified", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("metadata", sa.Text(), nullable=True),
    )
    op.create_index("ix_mr_actions_merge_request_id", "mr_actions", ["merge_request_id"])
    op.create_index("ix_mr_actions_action_type", "mr_actions", ["action_type"])
    op.create_index("ix_mr_actions_timestamp", "mr_actions", ["timestamp"])
    op.create_index("ix_mr_actions_notified", "mr_actions", ["notified"])
    # Drain queries filter on unnotified rows by type and time
    op.create_index(
        "ix_mr_actions_pending",
        "mr_actions",
        ["action_type", "timestamp"],
        postgresql_where=sa.text("notified = false"),
    )


def downgrade() -> None:
    op.drop_index("ix_mr_actions_pending", table_name="mr_actions")
    op.drop_table("mr_actions")
    op.drop_table("mr_comments")
    op.drop_table("release_managers")
    op.drop_table("release_labels")
    op.drop_table("block_labels")
    op.drop_table("repository_slas")
    op.drop_table("possible_reviewers")
    op.drop_table("label_reviewers")
    op.drop_table("merge_request_approvers")
    op.drop_table("merge_request_reviewers")
    op.drop_table("merge_request_labels")
    op.drop_table("merge_requests")
    sa.Enum(name="mergerequeststate").drop(op.get_bind(), checkfirst=True)
    op.drop_table("labels")
    op.drop_table("repository_subscriptions")
    op.drop_table("chat_users")
    op.drop_table("chats")
    op.drop_table("repositories")
    op.drop_table("users")
