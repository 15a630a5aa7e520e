"""initial schema

Revision ID: 0001_initial
Revises:
Create Date: 2026-10-19

"""

from __future__ import annotations

import sqlalchemy as sa
from alembic import op


revision = "0001_initial"
down_revision = None
branch_labels = None
depends_on = None


def upgrade() -> None:
    op.create_table(
        "users",
        sa.Column("id", sa.Uuid(), primary_key=True),
        sa.Column("clerk_id", sa.String(length=128), nullable=False, unique=True),
        sa.Column("full_name", sa.String(length=140), nullable=True),
        sa.Column("username", sa.String(length=80), nullable=True),
        sa.Column("email", sa.String(length=255), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
    )
    op.create_index("ix_users_clerk_id", "users", ["clerk_id"])
    op.create_index("ix_users_username", "users", ["username"])
    op.create_index("ix_users_email", "users", ["email"])

    op.create_table(
        "drafts",
        sa.Column("id", sa.Uuid(), primary_key=True),
        sa.Column("name", sa.String(length=120), nullable=False, server_default="Draft"),
        sa.Column("manager_id", sa.Uuid(), sa.ForeignKey("users.id"), nullable=False),
        sa.Column("draft_type", sa.String(length=20), nullable=False, server_default="snake"),
        sa.Column("status", sa.String(length=30), nullable=False, server_default="not_started"),
        sa.Column("current_pick_index", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("current_pick_started_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("time_limit_seconds", sa.Integer(), nullable=False, server_default="60"),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.CheckConstraint("draft_type IN ('snake', 'round_robin')", name="ck_drafts_draft_type"),
        sa.CheckConstraint(
            "status IN ('not_started', 'in_progress', 'paused', 'completed')", name="ck_drafts_status"
        ),
        sa.CheckConstraint("current_pick_index >= 0", name="ck_drafts_current_pick_index"),
    )
    op.create_index("ix_drafts_manager_id", "drafts", ["manager_id"])
    op.create_index("ix_drafts_status", "drafts", ["status"])

    op.create_table(
        "captains",
        sa.Column("id", sa.Uuid(), primary_key=True),
        sa.Column("draft_id", sa.Uuid(), sa.ForeignKey("drafts.id"), nullable=False),
        sa.Column("name", sa.String(length=120), nullable=False),
        sa.Column("draft_position", sa.Integer(), nullable=False),
        sa.Column("access_token", sa.String(length=64), nullable=False),
        sa.Column("player_id", sa.Uuid(), nullable=True),
        sa.Column("auto_pick_enabled", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("consecutive_timeout_picks", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("team_name", sa.String(length=80), nullable=True),
        sa.Column("team_color", sa.String(length=20), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.UniqueConstraint("draft_id", "draft_position", name="uq_captains_draft_position"),
    )
    op.create_index("ix_captains_draft_id", "captains", ["draft_id"])
    op.create_index("ix_captains_player_id", "captains", ["player_id"])

    op.create_table(
        "players",
        sa.Column("id", sa.Uuid(), primary_key=True),
        sa.Column("draft_id", sa.Uuid(), sa.ForeignKey("drafts.id"), nullable=False),
        sa.Column("name", sa.String(length=140), nullable=False),
        sa.Column("drafted_by_captain_id", sa.Uuid(), sa.ForeignKey("captains.id"), nullable=True),
        sa.Column("draft_pick_number", sa.Integer(), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        # Drafted-by and pick number are set together or cleared together.
        sa.CheckConstraint(
            "(drafted_by_captain_id IS NULL) = (draft_pick_number IS NULL)", name="ck_players_drafted_pair"
        ),
    )
    op.create_index("ix_players_draft_id", "players", ["draft_id"])
    op.create_index("ix_players_name", "players", ["name"])
    op.create_index("ix_players_drafted_by_captain_id", "players", ["drafted_by_captain_id"])

    op.create_table(
        "draft_picks",
        sa.Column("id", sa.Uuid(), primary_key=True),
        sa.Column("draft_id", sa.Uuid(), sa.ForeignKey("drafts.id"), nullable=False),
        sa.Column("captain_id", sa.Uuid(), sa.ForeignKey("captains.id"), nullable=False),
        sa.Column("player_id", sa.Uuid(), sa.ForeignKey("players.id"), nullable=False),
        sa.Column("pick_number", sa.Integer(), nullable=False),
        sa.Column("is_auto_pick", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("picked_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.UniqueConstraint("draft_id", "pick_number", name="uq_draft_picks_draft_pick_number"),
        sa.UniqueConstraint("draft_id", "player_id", name="uq_draft_picks_draft_player"),
        sa.CheckConstraint("pick_number >= 1", name="ck_draft_picks_pick_number"),
    )
    op.create_index("ix_draft_picks_draft_id", "draft_picks", ["draft_id"])
    op.create_index("ix_draft_picks_captain_id", "draft_picks", ["captain_id"])
    op.create_index("ix_draft_picks_player_id", "draft_picks", ["player_id"])
    op.create_index("ix_draft_picks_pick_number", "draft_picks", ["pick_number"])

    op.create_table(
        "captain_draft_queues",
        sa.Column("id", sa.Uuid(), primary_key=True),
        sa.Column("captain_id", sa.Uuid(), sa.ForeignKey("captains.id"), nullable=False),
        sa.Column("player_id", sa.Uuid(), sa.ForeignKey("players.id"), nullable=False),
        sa.Column("position", sa.Integer(), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.UniqueConstraint("captain_id", "player_id", name="uq_captain_draft_queues_captain_player"),
    )
    op.create_index("ix_captain_draft_queues_captain_id", "captain_draft_queues", ["captain_id"])
    op.create_index("ix_captain_draft_queues_player_id", "captain_draft_queues", ["player_id"])

    op.create_table(
        "audit_logs",
        sa.Column("id", sa.Uuid(), primary_key=True),
        sa.Column("draft_id", sa.Uuid(), nullable=False),
        sa.Column("action", sa.String(length=60), nullable=False),
        sa.Column("actor_type", sa.String(length=20), nullable=False),
        sa.Column("actor_id", sa.String(length=128), nullable=True),
        sa.Column("metadata", sa.JSON(), nullable=False),
        sa.Column("ip_address", sa.String(length=64), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
    )
    op.create_index("ix_audit_logs_draft_id", "audit_logs", ["draft_id"])
    op.create_index("ix_audit_logs_action", "audit_logs", ["action"])


def downgrade() -> None:
    op.drop_index("ix_audit_logs_action", table_name="audit_logs")
    op.drop_index("ix_audit_logs_draft_id", table_name="audit_logs")
    op.drop_table("audit_logs")

    op.drop_index("ix_captain_draft_queues_player_id", table_name="captain_draft_queues")
    op.drop_index("ix_captain_draft_queues_captain_id", table_name="captain_draft_queues")
    op.drop_table("captain_draft_queues")

    op.drop_index("ix_draft_picks_pick_number", table_name="draft_picks")
    op.drop_index("ix_draft_picks_player_id", table_name="draft_picks")
    op.drop_index("ix_draft_picks_captain_id", table_name="draft_picks")
    op.drop_index("ix_draft_picks_draft_id", table_name="draft_picks")
    op.drop_table("draft_picks")

    op.drop_index("ix_players_drafted_by_captain_id", table_name="players")
    op.drop_index("ix_players_name", table_name="players")
    op.drop_index("ix_players_draft_id", table_name="players")
    op.drop_table("players")

    op.drop_index("ix_captains_player_id", table_name="captains")
    op.drop_index("ix_captains_draft_id", table_name="captains")
    op.drop_table("captains")

    op.drop_index("ix_drafts_status", table_name="drafts")
    op.drop_index("ix_drafts_manager_id", table_name="drafts")
    op.drop_table("drafts")

    op.drop_index("ix_users_email", table_name="users")
    op.drop_index("ix_users_username", table_name="users")
    op.drop_index("ix_users_clerk_id", table_name="users")
    op.drop_table("users")
