"""Initial card room ledger schema

Revision ID: 20261017_cardroom_initial
Revises:
Create Date: 2026-10-17
"""

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision = "20261017_cardroom_initial"
down_revision = None
branch_labels = None
depends_on = None


def _chip_columns():
    return [
        sa.Column("chips_100", sa.Integer(), nullable=False, server_default=sa.text("0")),
        sa.Column("chips_500", sa.Integer(), nullable=False, server_default=sa.text("0")),
        sa.Column("chips_5000", sa.Integer(), nullable=False, server_default=sa.text("0")),
        sa.Column("chips_10000", sa.Integer(), nullable=False, server_default=sa.text("0")),
    ]


def _session_chip_columns():
    columns = []
    for denomination in (100, 500, 5000, 10000):
        for state in ("opening", "current", "out"):
            columns.append(
                sa.Column(f"chips_{denomination}_{state}", sa.Integer(), nullable=False, server_default=sa.text("0"))
            )
    return columns


def upgrade():
    op.create_table(
        "players",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("player_code", sa.String(32), nullable=False),
        sa.Column("player_name", sa.String(128), nullable=False),
        sa.Column("phone_number", sa.String(32), nullable=True),
        sa.Column("credit_limit", sa.Integer(), nullable=False, server_default=sa.text("0")),
        sa.Column("stored_chips", sa.Integer(), nullable=False, server_default=sa.text("0")),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.text("1")),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.text("(CURRENT_TIMESTAMP)"), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.text("(CURRENT_TIMESTAMP)"), nullable=False),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("player_code"),
        sa.UniqueConstraint("phone_number"),
        sqlite_autoincrement=True,
    )
    with op.batch_alter_table("players", schema=None) as batch_op:
        batch_op.create_index("ix_players_is_active", ["is_active"], unique=False)

    op.create_table(
        "daily_sessions",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("session_date", sa.Date(), nullable=False),
        sa.Column("owner_float", sa.Integer(), nullable=False, server_default=sa.text("0")),
        sa.Column("opening_float", sa.Integer(), nullable=False, server_default=sa.text("0")),
        sa.Column("closing_float", sa.Integer(), nullable=True),
        sa.Column("primary_wallet", sa.Integer(), nullable=False, server_default=sa.text("0")),
        sa.Column("secondary_wallet", sa.Integer(), nullable=False, server_default=sa.text("0")),
        sa.Column("secondary_wallet_deposits", sa.Integer(), nullable=False, server_default=sa.text("0")),
        sa.Column("secondary_wallet_withdrawals", sa.Integer(), nullable=False, server_default=sa.text("0")),
        sa.Column("total_float_additions", sa.Integer(), nullable=False, server_default=sa.text("0")),
        sa.Column("float_addition_count", sa.Integer(), nullable=False, server_default=sa.text("0")),
        sa.Column("last_float_addition_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("outstanding_credit", sa.Integer(), nullable=False, server_default=sa.text("0")),
        sa.Column("cashier_credit_limit", sa.Integer(), nullable=False, server_default=sa.text("0")),
        sa.Column("chip_inventory_set", sa.Boolean(), nullable=False, server_default=sa.text("0")),
        *_session_chip_columns(),
        sa.Column("is_closed", sa.Boolean(), nullable=False, server_default=sa.text("0")),
        sa.Column("opened_at", sa.DateTime(timezone=True), server_default=sa.text("(CURRENT_TIMESTAMP)"), nullable=False),
        sa.Column("opened_by_user_id", sa.Integer(), nullable=True),
        sa.Column("closed_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("closed_by_user_id", sa.Integer(), nullable=True),
        sa.Column("reopened_from_session_id", sa.Integer(), nullable=True),
        sa.Column("version_id", sa.Integer(), nullable=False, server_default=sa.text("1")),
        sa.ForeignKeyConstraint(["reopened_from_session_id"], ["daily_sessions.id"]),
        sa.PrimaryKeyConstraint("id"),
        sqlite_autoincrement=True,
    )
    with op.batch_alter_table("daily_sessions", schema=None) as batch_op:
        batch_op.create_index("ix_daily_sessions_session_date", ["session_date"], unique=False)
        batch_op.create_index("ix_daily_sessions_is_closed", ["is_closed"], unique=False)
        batch_op.create_index(
            "uq_daily_sessions_open_date",
            ["session_date"],
            unique=True,
            sqlite_where=sa.text("is_closed = 0"),
            postgresql_where=sa.text("is_closed = false"),
        )

    op.create_table(
        "float_additions",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("session_id", sa.Integer(), nullable=False),
        sa.Column("float_amount", sa.Integer(), nullable=False),
        *_chip_columns(),
        sa.Column("total_chips_value", sa.Integer(), nullable=False, server_default=sa.text("0")),
        sa.Column("addition_type", sa.String(32), nullable=False, server_default="cash_only"),
        sa.Column("reason", sa.String(255), nullable=True),
        sa.Column("added_by_user_id", sa.Integer(), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.text("(CURRENT_TIMESTAMP)"), nullable=False),
        sa.ForeignKeyConstraint(["session_id"], ["daily_sessions.id"]),
        sa.PrimaryKeyConstraint("id"),
        sqlite_autoincrement=True,
    )
    with op.batch_alter_table("float_additions", schema=None) as batch_op:
        batch_op.create_index("ix_float_additions_session_id", ["session_id"], unique=False)
        batch_op.create_index("ix_float_additions_created_at", ["created_at"], unique=False)

    op.create_table(
        "session_summaries",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("session_id", sa.Integer(), nullable=False),
        sa.Column("session_date", sa.Date(), nullable=False),
        sa.Column("opening_float", sa.Integer(), nullable=False),
        sa.Column("closing_float", sa.Integer(), nullable=False),
        sa.Column("total_float_additions", sa.Integer(), nullable=False, server_default=sa.text("0")),
        sa.Column("total_deposits", sa.Integer(), nullable=False, server_default=sa.text("0")),
        sa.Column("total_withdrawals", sa.Integer(), nullable=False, server_default=sa.text("0")),
        sa.Column("total_expenses", sa.Integer(), nullable=False, server_default=sa.text("0")),
        sa.Column("chips_in_circulation", sa.Integer(), nullable=False, server_default=sa.text("0")),
        sa.Column("outstanding_credit", sa.Integer(), nullable=False, server_default=sa.text("0")),
        sa.Column("net_result", sa.Integer(), nullable=False, server_default=sa.text("0")),
        sa.Column("total_players", sa.Integer(), nullable=False, server_default=sa.text("0")),
        sa.Column("total_transactions", sa.Integer(), nullable=False, server_default=sa.text("0")),
        sa.Column("warnings", sa.JSON(), nullable=False),
        sa.Column("summary_data", sa.JSON(), nullable=False),
        sa.Column("closed_by_user_id", sa.Integer(), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.text("(CURRENT_TIMESTAMP)"), nullable=False),
        sa.ForeignKeyConstraint(["session_id"], ["daily_sessions.id"]),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("session_id"),
        sqlite_autoincrement=True,
    )
    with op.batch_alter_table("session_summaries", schema=None) as batch_op:
        batch_op.create_index("ix_session_summaries_session_date", ["session_date"], unique=False)

    op.create_table(
        "credit_requests",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("session_id", sa.Integer(), nullable=False),
        sa.Column("player_id", sa.Integer(), nullable=False),
        sa.Column("requested_amount", sa.Integer(), nullable=False),
        *_chip_columns(),
        sa.Column("status", sa.String(16), nullable=False, server_default="PENDING"),
        sa.Column("notes", sa.Text(), nullable=True),
        sa.Column("requested_by_user_id", sa.Integer(), nullable=True),
        sa.Column("decided_by_user_id", sa.Integer(), nullable=True),
        sa.Column("decided_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("decision_notes", sa.Text(), nullable=True),
        sa.Column("credit_id", sa.Integer(), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.text("(CURRENT_TIMESTAMP)"), nullable=False),
        sa.ForeignKeyConstraint(["session_id"], ["daily_sessions.id"]),
        sa.ForeignKeyConstraint(["player_id"], ["players.id"]),
        sa.PrimaryKeyConstraint("id"),
        sqlite_autoincrement=True,
    )
    with op.batch_alter_table("credit_requests", schema=None) as batch_op:
        batch_op.create_index("ix_credit_requests_session_id", ["session_id"], unique=False)
        batch_op.create_index("ix_credit_requests_player_id", ["player_id"], unique=False)
        batch_op.create_index("ix_credit_requests_status", ["status"], unique=False)

    op.create_table(
        "credits",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("session_id", sa.Integer(), nullable=False),
        sa.Column("player_id", sa.Integer(), nullable=False),
        sa.Column("credit_request_id", sa.Integer(), nullable=True),
        *_chip_columns(),
        sa.Column("credit_issued", sa.Integer(), nullable=False),
        sa.Column("credit_settled", sa.Integer(), nullable=False, server_default=sa.text("0")),
        sa.Column("credit_outstanding", sa.Integer(), nullable=False),
        sa.Column("is_fully_settled", sa.Boolean(), nullable=False, server_default=sa.text("0")),
        sa.Column("settled_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("issued_by_user_id", sa.Integer(), nullable=True),
        sa.Column("notes", sa.Text(), nullable=True),
        sa.Column("issued_at", sa.DateTime(timezone=True), server_default=sa.text("(CURRENT_TIMESTAMP)"), nullable=False),
        sa.ForeignKeyConstraint(["session_id"], ["daily_sessions.id"]),
        sa.ForeignKeyConstraint(["player_id"], ["players.id"]),
        sa.ForeignKeyConstraint(["credit_request_id"], ["credit_requests.id"]),
        sa.PrimaryKeyConstraint("id"),
        sqlite_autoincrement=True,
    )
    with op.batch_alter_table("credits", schema=None) as batch_op:
        batch_op.create_index("ix_credits_session_id", ["session_id"], unique=False)
        batch_op.create_index("ix_credits_player_id", ["player_id"], unique=False)
        batch_op.create_index("ix_credits_is_fully_settled", ["is_fully_settled"], unique=False)
        batch_op.create_index("ix_credits_issued_at", ["issued_at"], unique=False)
        batch_op.create_index("ix_credits_player_unsettled", ["player_id", "is_fully_settled"], unique=False)

    op.create_table(
        "ledger_transactions",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("session_id", sa.Integer(), nullable=False),
        sa.Column("kind", sa.String(32), nullable=False),
        sa.Column("player_id", sa.Integer(), nullable=True),
        sa.Column("player_name", sa.String(128), nullable=True),
        sa.Column("amount", sa.Integer(), nullable=False, server_default=sa.text("0")),
        sa.Column("chips_amount", sa.Integer(), nullable=False, server_default=sa.text("0")),
        *_chip_columns(),
        sa.Column("chip_effect", sa.String(16), nullable=False, server_default="none"),
        sa.Column("payment_mode", sa.String(32), nullable=True),
        sa.Column("category", sa.String(64), nullable=True),
        sa.Column("wallet_used", sa.String(16), nullable=False, server_default="none"),
        sa.Column("primary_delta", sa.Integer(), nullable=False, server_default=sa.text("0")),
        sa.Column("secondary_delta", sa.Integer(), nullable=False, server_default=sa.text("0")),
        sa.Column("credit_settled", sa.Integer(), nullable=False, server_default=sa.text("0")),
        sa.Column("reference_type", sa.String(32), nullable=True),
        sa.Column("reference_id", sa.Integer(), nullable=True),
        sa.Column("notes", sa.Text(), nullable=True),
        sa.Column("actor_user_id", sa.Integer(), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.text("(CURRENT_TIMESTAMP)"), nullable=False),
        sa.ForeignKeyConstraint(["session_id"], ["daily_sessions.id"]),
        sa.ForeignKeyConstraint(["player_id"], ["players.id"]),
        sa.PrimaryKeyConstraint("id"),
        sqlite_autoincrement=True,
    )
    with op.batch_alter_table("ledger_transactions", schema=None) as batch_op:
        batch_op.create_index("ix_ledger_transactions_session_id", ["session_id"], unique=False)
        batch_op.create_index("ix_ledger_transactions_kind", ["kind"], unique=False)
        batch_op.create_index("ix_ledger_transactions_player_id", ["player_id"], unique=False)
        batch_op.create_index("ix_ledger_transactions_created_at", ["created_at"], unique=False)
        batch_op.create_index("ix_ledger_transactions_session_kind", ["session_id", "kind"], unique=False)
        batch_op.create_index("ix_ledger_transactions_session_player", ["session_id", "player_id"], unique=False)

    op.create_table(
        "credit_settlements",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("credit_id", sa.Integer(), nullable=False),
        sa.Column("transaction_id", sa.Integer(), nullable=False),
        sa.Column("amount", sa.Integer(), nullable=False),
        *_chip_columns(),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.text("(CURRENT_TIMESTAMP)"), nullable=False),
        sa.ForeignKeyConstraint(["credit_id"], ["credits.id"]),
        sa.ForeignKeyConstraint(["transaction_id"], ["ledger_transactions.id"]),
        sa.PrimaryKeyConstraint("id"),
        sqlite_autoincrement=True,
    )
    with op.batch_alter_table("credit_settlements", schema=None) as batch_op:
        batch_op.create_index("ix_credit_settlements_credit_id", ["credit_id"], unique=False)
        batch_op.create_index("ix_credit_settlements_transaction_id", ["transaction_id"], unique=False)

    op.create_table(
        "notification_events",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("event_type", sa.String(64), nullable=False),
        sa.Column("session_id", sa.Integer(), nullable=True),
        sa.Column("payload", sa.JSON(), nullable=False),
        sa.Column("status", sa.String(16), nullable=False, server_default="PENDING"),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.text("(CURRENT_TIMESTAMP)"), nullable=False),
        sa.Column("dispatched_at", sa.DateTime(timezone=True), nullable=True),
        sa.ForeignKeyConstraint(["session_id"], ["daily_sessions.id"]),
        sa.PrimaryKeyConstraint("id"),
        sqlite_autoincrement=True,
    )
    with op.batch_alter_table("notification_events", schema=None) as batch_op:
        batch_op.create_index("ix_notification_events_event_type", ["event_type"], unique=False)
        batch_op.create_index("ix_notification_events_session_id", ["session_id"], unique=False)
        batch_op.create_index("ix_notification_events_status", ["status"], unique=False)


def downgrade():
    op.drop_table("notification_events")
    op.drop_table("credit_settlements")
    op.drop_table("ledger_transactions")
    op.drop_table("credits")
    op.drop_table("credit_requests")
    op.drop_table("session_summaries")
    op.drop_table("float_additions")
    op.drop_table("daily_sessions")
    op.drop_table("players")
