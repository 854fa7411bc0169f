"""odds engine schema

Revision ID: 0001_odds_engine
Revises:
Create Date: 2026-10-19
"""

from alembic import op
import sqlalchemy as sa


revision = "0001_odds_engine"
down_revision = None
branch_labels = None
depends_on = None


def upgrade() -> None:
    op.create_table(
        "events",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("external_id", sa.String(length=128), nullable=False, unique=True),
        sa.Column("home_team", sa.String(length=128), nullable=False),
        sa.Column("away_team", sa.String(length=128), nullable=False),
        sa.Column("kickoff_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("status", sa.String(length=16), nullable=False, server_default="open"),
    )
    op.create_index("ix_events_external_id", "events", ["external_id"])
    op.create_index("ix_events_kickoff_at", "events", ["kickoff_at"])
    op.create_index("ix_events_status", "events", ["status"])

    op.create_table(
        "odds_policies",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("name", sa.String(length=64), nullable=False, unique=True),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("max_change_pct", sa.Numeric(5, 2), nullable=False, server_default="15.00"),
        sa.Column("min_minutes_between_changes", sa.Integer(), nullable=False, server_default="5"),
        sa.Column("min_odds", sa.Numeric(6, 2), nullable=False, server_default="1.01"),
        sa.Column("max_odds", sa.Numeric(6, 2), nullable=False, server_default="50.00"),
        sa.Column("volume_weight", sa.Numeric(5, 4), nullable=False, server_default="0.1000"),
        sa.Column("probability_weight", sa.Numeric(5, 4), nullable=False, server_default="0.7000"),
        sa.Column("market_weight", sa.Numeric(5, 4), nullable=False, server_default="0.2000"),
        sa.Column("house_margin_pct", sa.Numeric(5, 2), nullable=False, server_default="5.00"),
        sa.Column("notify_threshold_pct", sa.Numeric(5, 2), nullable=False, server_default="10.00"),
        sa.Column("auto_update", sa.Boolean(), nullable=False, server_default=sa.text("true")),
        sa.Column("refresh_interval_minutes", sa.Integer(), nullable=False, server_default="15"),
        sa.Column("freeze_minutes_before_start", sa.Integer(), nullable=False, server_default="30"),
        sa.Column("active", sa.Boolean(), nullable=False, server_default=sa.text("false")),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.text("now()")),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.text("now()")),
    )
    op.create_index("ix_odds_policies_active", "odds_policies", ["active"])

    op.create_table(
        "odds_quotes",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("event_id", sa.Integer(), sa.ForeignKey("events.id"), nullable=False),
        sa.Column("outcome", sa.String(length=32), nullable=False),
        sa.Column("market", sa.String(length=32), nullable=False),
        sa.Column("price", sa.Numeric(10, 2), nullable=False),
        sa.Column("state", sa.String(length=16), nullable=False, server_default="active"),
        sa.Column("revision", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.text("now()")),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.text("now()")),
    )
    op.create_index("ix_odds_quotes_event_id", "odds_quotes", ["event_id"])
    op.create_index("ix_odds_quotes_outcome", "odds_quotes", ["outcome"])
    op.create_index("ix_odds_quotes_market", "odds_quotes", ["market"])
    op.create_index("ix_odds_quote_event_state", "odds_quotes", ["event_id", "state"])
    op.create_index(
        "uq_odds_quote_active_outcome",
        "odds_quotes",
        ["event_id", "outcome"],
        unique=True,
        postgresql_where=sa.text("state = 'active'"),
    )

    op.create_table(
        "odds_changes",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("quote_id", sa.Integer(), sa.ForeignKey("odds_quotes.id"), nullable=False),
        sa.Column("event_id", sa.Integer(), sa.ForeignKey("events.id"), nullable=False),
        sa.Column("outcome", sa.String(length=32), nullable=False),
        sa.Column("previous_price", sa.Numeric(10, 2), nullable=False),
        sa.Column("new_price", sa.Numeric(10, 2), nullable=False),
        sa.Column("pct_change", sa.Numeric(7, 2), nullable=False),
        sa.Column("reason", sa.String(length=32), nullable=False),
        sa.Column("wager_count", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("market_wager_count", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("total_amount", sa.Numeric(15, 2), nullable=False, server_default="0"),
        sa.Column("detail", sa.Text(), nullable=True),
        sa.Column("revision", sa.Integer(), nullable=False),
        sa.Column("changed_at", sa.DateTime(timezone=True), nullable=False),
    )
    op.create_index("ix_odds_changes_quote_id", "odds_changes", ["quote_id"])
    op.create_index("ix_odds_changes_reason", "odds_changes", ["reason"])
    op.create_index("ix_odds_changes_changed_at", "odds_changes", ["changed_at"])
    op.create_index("ix_odds_change_event_outcome_time", "odds_changes", ["event_id", "outcome", "changed_at"])
    op.create_index("ix_odds_change_event_time", "odds_changes", ["event_id", "changed_at"])

    op.create_table(
        "wagering_volumes",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("event_id", sa.Integer(), sa.ForeignKey("events.id"), nullable=False),
        sa.Column("outcome", sa.String(length=32), nullable=False),
        sa.Column("market", sa.String(length=32), nullable=False),
        sa.Column("wager_count", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("total_amount", sa.Numeric(15, 2), nullable=False, server_default="0"),
        sa.Column("average_amount", sa.Numeric(12, 2), nullable=False, server_default="0"),
        sa.Column("min_amount", sa.Numeric(12, 2), nullable=True),
        sa.Column("max_amount", sa.Numeric(12, 2), nullable=True),
        sa.Column("share_pct", sa.Numeric(5, 2), nullable=False, server_default="0"),
        sa.Column("trend", sa.String(length=16), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.text("now()")),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.text("now()")),
        sa.UniqueConstraint("event_id", "outcome", name="uq_volume_event_outcome"),
    )
    op.create_index("ix_wagering_volumes_event_id", "wagering_volumes", ["event_id"])
    op.create_index("ix_wagering_volumes_market", "wagering_volumes", ["market"])


def downgrade() -> None:
    op.drop_table("wagering_volumes")
    op.drop_table("odds_changes")
    op.drop_table("odds_quotes")
    op.drop_table("odds_policies")
    op.drop_table("events")
