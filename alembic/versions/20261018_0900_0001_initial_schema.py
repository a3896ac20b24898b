"""initial schema

Revision ID: 0001
Revises:
Create Date: 2026-10-18 09:00:00.000000+00:00

"""

from __future__ import annotations

from collections.abc import Sequence

import sqlalchemy as sa
from alembic import op
from sqlalchemy.dialects import postgresql

from notification_service.features.notifications.templates import DEFAULT_TEMPLATES

# revision identifiers, used by Alembic.
revision: str = "0001"
down_revision: str | None = None
branch_labels: str | Sequence[str] | None = None
depends_on: str | Sequence[str] | None = None

JSON_TYPE = postgresql.JSONB(astext_type=sa.Text()).with_variant(sa.JSON(), "sqlite")


def _timestamps() -> list[sa.Column]:
    return [
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False, comment="Auto-incrementing integer primary key"),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            server_default=sa.text("now()"),
            nullable=False,
            comment="Timestamp of record creation",
        ),
        sa.Column(
            "updated_at",
            sa.DateTime(timezone=True),
            server_default=sa.text("now()"),
            nullable=False,
            comment="Timestamp of last update",
        ),
    ]


def upgrade() -> None:
    """Create templates, delivery records and preferences; seed default templates."""
    templates = op.create_table(
        "notification_templates",
        sa.Column("name", sa.String(length=100), nullable=False, comment="Template identifier (e.g., 'welcome_user')"),
        sa.Column("type", sa.String(length=50), nullable=False, comment="Channel family the template was written for"),
        sa.Column("subject", sa.String(length=500), nullable=True, comment="Subject pattern"),
        sa.Column("body", sa.Text(), nullable=False, comment="Body pattern (HTML)"),
        sa.Column("variables", JSON_TYPE, nullable=True, comment="Declared variable names mapped to their types"),
        *_timestamps(),
        sa.PrimaryKeyConstraint("id", name=op.f("pk_notification_templates")),
        sa.UniqueConstraint("name", name=op.f("uq_notification_templates_name")),
    )

    op.create_table(
        "notifications",
        sa.Column("recipient_id", sa.Integer(), nullable=False, comment="User the notification is addressed to"),
        sa.Column(
            "recipient_email",
            sa.String(length=255),
            nullable=True,
            comment="Email address when known; required for the EMAIL channel",
        ),
        sa.Column("type", sa.String(length=100), nullable=False, comment="Originating event type (e.g., 'user.registered')"),
        sa.Column("channel", sa.String(length=20), nullable=False, comment="EMAIL, SSE or PUSH"),
        sa.Column("subject", sa.String(length=500), nullable=True),
        sa.Column("content", sa.Text(), nullable=False, comment="Rendered body"),
        sa.Column("template_id", sa.Integer(), nullable=True),
        sa.Column("status", sa.String(length=20), nullable=False, comment="PENDING, SENT, DELIVERED or FAILED"),
        sa.Column("sent_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("delivered_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("error_message", sa.Text(), nullable=True),
        sa.Column("retry_count", sa.Integer(), nullable=False, comment="Failed attempts so far"),
        *_timestamps(),
        sa.ForeignKeyConstraint(
            ["template_id"],
            ["notification_templates.id"],
            name=op.f("fk_notifications_template_id_notification_templates"),
            ondelete="SET NULL",
        ),
        sa.PrimaryKeyConstraint("id", name=op.f("pk_notifications")),
    )
    op.create_index("ix_notifications_status_retry", "notifications", ["status", "retry_count"], unique=False)
    op.create_index(
        "ix_notifications_recipient_created",
        "notifications",
        ["recipient_id", "created_at"],
        unique=False,
    )

    op.create_table(
        "notification_preferences",
        sa.Column("user_id", sa.Integer(), nullable=False, comment="Owner of the preferences"),
        sa.Column("email_enabled", sa.Boolean(), nullable=False),
        sa.Column("push_enabled", sa.Boolean(), nullable=False),
        sa.Column("sse_enabled", sa.Boolean(), nullable=False),
        sa.Column("email_frequency", sa.String(length=20), nullable=False, comment="IMMEDIATE, DAILY or WEEKLY"),
        sa.Column("categories", JSON_TYPE, nullable=True, comment="Per-category opt-in flags"),
        *_timestamps(),
        sa.PrimaryKeyConstraint("id", name=op.f("pk_notification_preferences")),
        sa.UniqueConstraint("user_id", name=op.f("uq_notification_preferences_user_id")),
    )

    op.bulk_insert(templates, [dict(definition) for definition in DEFAULT_TEMPLATES])


def downgrade() -> None:
    """Drop every notification table."""
    op.drop_table("notification_preferences")
    op.drop_index("ix_notifications_recipient_created", table_name="notifications")
    op.drop_index("ix_notifications_status_retry", table_name="notifications")
    op.drop_table("notifications")
    op.drop_table("notification_templates")
