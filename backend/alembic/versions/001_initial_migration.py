"""Initial migration: create event, registration, match, matchset tables

Revision ID: 001_initial
Revises:
Create Date: 2026-10-19 00:00:00.000000

"""

import sqlalchemy as sa

from alembic import op

# revision identifiers, used by Alembic.
revision = "001_initial"
down_revision = None
branch_labels = None
depends_on = None


def upgrade() -> None:
    # Create event table
    op.create_table(
        "event",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("name", sa.String(), nullable=False),
        sa.Column("format", sa.String(), nullable=False),
        sa.Column("best_of", sa.Integer(), nullable=False, server_default="3"),
        sa.Column("has_third_place_match", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("losers_start_rounds_before_final", sa.Integer(), nullable=True),
        sa.Column("completed", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.Column("updated_at", sa.DateTime(), nullable=False),
        sa.PrimaryKeyConstraint("id"),
    )

    # Create registration table
    op.create_table(
        "registration",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("event_id", sa.Integer(), nullable=False),
        sa.Column("name", sa.String(), nullable=False),
        sa.Column("seed", sa.Integer(), nullable=True),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.PrimaryKeyConstraint("id"),
        sa.ForeignKeyConstraint(["event_id"], ["event.id"]),
        sa.UniqueConstraint("event_id", "seed", name="uq_registration_event_seed"),
        sa.UniqueConstraint("event_id", "name", name="uq_registration_event_name"),
    )
    op.create_index("ix_registration_event_id", "registration", ["event_id"])

    # Create match table (self-referencing advancement links)
    op.create_table(
        "match",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("event_id", sa.Integer(), nullable=False),
        sa.Column("group_id", sa.Integer(), nullable=True),
        sa.Column("round_number", sa.Integer(), nullable=False),
        sa.Column("match_number", sa.Integer(), nullable=False),
        sa.Column("bracket_position", sa.Integer(), nullable=True),
        sa.Column("bracket_type", sa.String(), nullable=True),
        sa.Column("registration_a_id", sa.Integer(), nullable=True),
        sa.Column("registration_b_id", sa.Integer(), nullable=True),
        sa.Column("winner_to_id", sa.Integer(), nullable=True),
        sa.Column("winner_to_slot", sa.Integer(), nullable=True),
        sa.Column("loser_to_id", sa.Integer(), nullable=True),
        sa.Column("loser_to_slot", sa.Integer(), nullable=True),
        sa.Column("is_bye", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("is_third_place", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("is_reset", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("played", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("winner_id", sa.Integer(), nullable=True),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.Column("updated_at", sa.DateTime(), nullable=False),
        sa.PrimaryKeyConstraint("id"),
        sa.ForeignKeyConstraint(["event_id"], ["event.id"]),
        sa.ForeignKeyConstraint(["registration_a_id"], ["registration.id"]),
        sa.ForeignKeyConstraint(["registration_b_id"], ["registration.id"]),
        sa.ForeignKeyConstraint(["winner_id"], ["registration.id"]),
        sa.ForeignKeyConstraint(["winner_to_id"], ["match.id"]),
        sa.ForeignKeyConstraint(["loser_to_id"], ["match.id"]),
        sa.UniqueConstraint("event_id", "bracket_position", name="uq_match_event_position"),
    )
    op.create_index("ix_match_event_id", "match", ["event_id"])

    # Create matchset table
    op.create_table(
        "matchset",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("match_id", sa.Integer(), nullable=False),
        sa.Column("set_number", sa.Integer(), nullable=False),
        sa.Column("score_a", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("score_b", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("played", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.PrimaryKeyConstraint("id"),
        sa.ForeignKeyConstraint(["match_id"], ["match.id"]),
        sa.UniqueConstraint("match_id", "set_number", name="uq_match_set_number"),
    )
    op.create_index("ix_matchset_match_id", "matchset", ["match_id"])


def downgrade() -> None:
    op.drop_index("ix_matchset_match_id", table_name="matchset")
    op.drop_table("matchset")
    op.drop_index("ix_match_event_id", table_name="match")
    op.drop_table("match")
    op.drop_index("ix_registration_event_id", table_name="registration")
    op.drop_table("registration")
    op.drop_table("event")
