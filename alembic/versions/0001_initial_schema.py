"""Create users, flashcard content and study event tables"""
from __future__ import annotations

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

# revision identifiers, used by Alembic.
revision = "0001_initial_schema"
down_revision = None
branch_labels = None
depends_on = None


def upgrade() -> None:
    op.create_table(
        "users",
        sa.Column("id", postgresql.UUID(as_uuid=True), primary_key=True, nullable=False),
        sa.Column("username", sa.String(length=50), nullable=False),
        sa.Column("email", sa.String(length=255), nullable=False),
        sa.Column("hashed_password", sa.String(length=255), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.text("timezone('utc', now())"), nullable=True),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.text("timezone('utc', now())"), nullable=True),
        sa.Column("last_login_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("is_active", sa.Boolean(), server_default=sa.text("true"), nullable=True),
    )
    op.create_index("ix_users_username", "users", ["username"], unique=True)
    op.create_index("ix_users_email", "users", ["email"], unique=True)

    op.create_table(
        "flashcard_sets",
        sa.Column("id", sa.Integer(), primary_key=True, nullable=False),
        sa.Column("user_id", postgresql.UUID(as_uuid=True), sa.ForeignKey("users.id", ondelete="CASCADE"), nullable=False),
        sa.Column("title", sa.String(length=100), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("is_public", sa.Boolean(), server_default=sa.text("false"), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.text("timezone('utc', now())"), nullable=True),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.text("timezone('utc', now())"), nullable=True),
    )
    op.create_index("ix_flashcard_sets_user_id", "flashcard_sets", ["user_id"], unique=False)

    op.create_table(
        "flashcards",
        sa.Column("id", sa.Integer(), primary_key=True, nullable=False),
        sa.Column("set_id", sa.Integer(), sa.ForeignKey("flashcard_sets.id", ondelete="CASCADE"), nullable=False),
        sa.Column("front", sa.Text(), nullable=False),
        sa.Column("back", sa.Text(), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.text("timezone('utc', now())"), nullable=True),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.text("timezone('utc', now())"), nullable=True),
    )
    op.create_index("ix_flashcards_set_id", "flashcards", ["set_id"], unique=False)

    op.create_table(
        "study_events",
        sa.Column("id", sa.Integer(), primary_key=True, nullable=False),
        sa.Column("user_id", postgresql.UUID(as_uuid=True), sa.ForeignKey("users.id", ondelete="CASCADE"), nullable=False),
        sa.Column("set_id", sa.Integer(), sa.ForeignKey("flashcard_sets.id", ondelete="CASCADE"), nullable=False),
        sa.Column("card_id", sa.Integer(), sa.ForeignKey("flashcards.id", ondelete="CASCADE"), nullable=False),
        sa.Column("status", sa.String(length=20), nullable=False),
        sa.Column("timestamp", sa.DateTime(timezone=True), server_default=sa.text("timezone('utc', now())"), nullable=False),
        sa.CheckConstraint("status IN ('correct', 'incorrect', 'skipped')", name="ck_study_events_status"),
    )
    op.create_index("ix_study_events_set_id", "study_events", ["set_id"], unique=False)
    op.create_index("ix_study_events_card_id", "study_events", ["card_id"], unique=False)
    op.create_index(
        "ix_study_events_user_card_latest",
        "study_events",
        ["user_id", "card_id", "timestamp", "id"],
        unique=False,
    )
    op.create_index("ix_study_events_user_timestamp", "study_events", ["user_id", "timestamp"], unique=False)

    op.create_table(
        "progress_resets",
        sa.Column("id", sa.Integer(), primary_key=True, nullable=False),
        sa.Column("user_id", postgresql.UUID(as_uuid=True), sa.ForeignKey("users.id", ondelete="CASCADE"), nullable=False),
        sa.Column("set_id", sa.Integer(), sa.ForeignKey("flashcard_sets.id", ondelete="CASCADE"), nullable=False),
        sa.Column("event_watermark", sa.Integer(), server_default=sa.text("0"), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.text("timezone('utc', now())"), nullable=False),
    )
    op.create_index("ix_progress_resets_user_id", "progress_resets", ["user_id"], unique=False)
    op.create_index("ix_progress_resets_set_id", "progress_resets", ["set_id"], unique=False)


def downgrade() -> None:
    op.drop_index("ix_progress_resets_set_id", table_name="progress_resets")
    op.drop_index("ix_progress_resets_user_id", table_name="progress_resets")
    op.drop_table("progress_resets")

    op.drop_index("ix_study_events_user_timestamp", table_name="study_events")
    op.drop_index("ix_study_events_user_card_latest", table_name="study_events")
    op.drop_index("ix_study_events_card_id", table_name="study_events")
    op.drop_index("ix_study_events_set_id", table_name="study_events")
    op.drop_table("study_events")

    op.drop_index("ix_flashcards_set_id", table_name="flashcards")
    op.drop_table("flashcards")

    op.drop_index("ix_flashcard_sets_user_id", table_name="flashcard_sets")
    op.drop_table("flashcard_sets")

    op.drop_index("ix_users_email", table_name="users")
    op.drop_index("ix_users_username", table_name="users")
    op.drop_table("users")
