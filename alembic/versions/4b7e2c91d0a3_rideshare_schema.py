"""rideshare_schema

Revision ID: 4b7e2c91d0a3
Revises: 
Create Date: 2026-10-19 09:12:04.318552

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = '4b7e2c91d0a3'
down_revision: Union[str, Sequence[str], None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    """Create tables: user, riderequest, vote."""
    op.create_table(
        "user",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("name", sa.String(), nullable=False),
        sa.Column("phone", sa.String(), nullable=True),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_table(
        "riderequest",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("owner_id", sa.Integer(), nullable=False),
        sa.Column("origin", sa.String(length=100), nullable=False),
        sa.Column("destination", sa.String(length=100), nullable=False),
        sa.Column("travel_date", sa.DateTime(), nullable=False),
        sa.Column("travel_time", sa.String(), nullable=False, server_default="00:00"),
        sa.Column("car_type", sa.String(), nullable=False, server_default="any"),
        sa.Column("max_persons", sa.Integer(), nullable=False, server_default="1"),
        sa.Column("current_occupancy", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("status", sa.String(), nullable=False, server_default="active"),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_riderequest_owner_id", "riderequest", ["owner_id"])
    op.create_index("ix_riderequest_status", "riderequest", ["status"])
    op.create_index("ix_riderequest_travel_date", "riderequest", ["travel_date"])
    op.create_index("ix_riderequest_created_at", "riderequest", ["created_at"])
    op.create_table(
        "vote",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("voter_id", sa.Integer(), nullable=False),
        sa.Column("request_id", sa.Uuid(), nullable=False),
        sa.Column("decision", sa.String(), nullable=False),
        sa.Column("note", sa.String(length=500), nullable=True),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.Column("updated_at", sa.DateTime(), nullable=False),
        sa.ForeignKeyConstraint(["request_id"], ["riderequest.id"]),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("voter_id", "request_id", name="uq_vote_voter_request"),
    )
    op.create_index("ix_vote_voter_id", "vote", ["voter_id"])
    op.create_index("ix_vote_request_id", "vote", ["request_id"])


def downgrade() -> None:
    """Drop all tables."""
    op.drop_index("ix_vote_request_id", table_name="vote")
    op.drop_index("ix_vote_voter_id", table_name="vote")
    op.drop_table("vote")
    op.drop_index("ix_riderequest_created_at", table_name="riderequest")
    op.drop_index("ix_riderequest_travel_date", table_name="riderequest")
    op.drop_index("ix_riderequest_status", table_name="riderequest")
    op.drop_index("ix_riderequest_owner_id", table_name="riderequest")
    op.drop_table("riderequest")
    op.drop_table("user")
