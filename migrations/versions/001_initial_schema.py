"""Initial schema: users, meeting_types, availability_rules, bookings.

Revision ID: 001_initial
Revises:
Create Date: 2025-02-23

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


revision: str = "001_initial"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None

rule_kind = sa.Enum("RECURRING", "DATE_SPECIFIC", name="rulekind")
booking_status = sa.Enum(
    "PENDING", "CONFIRMED", "CANCELLED", "RESCHEDULED", "COMPLETED", "NO_SHOW",
    name="bookingstatus",
)


def upgrade() -> None:
    op.create_table(
        "users",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("email", sa.String(), nullable=False),
        sa.Column("full_name", sa.String(), nullable=True),
        sa.Column("timezone", sa.String(), nullable=True),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(op.f("ix_users_email"), "users", ["email"], unique=True)

    op.create_table(
        "meeting_types",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("host_id", sa.Integer(), nullable=False),
        sa.Column("name", sa.String(), nullable=False),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default="true"),
        sa.Column("duration_minutes", sa.Integer(), nullable=False),
        sa.Column("buffer_before", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("buffer_after", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("max_bookings_per_day", sa.Integer(), nullable=True),
        sa.Column("required_notice_minutes", sa.Integer(), nullable=True),
        sa.Column("max_attendees", sa.Integer(), nullable=True),
        sa.ForeignKeyConstraint(["host_id"], ["users.id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(op.f("ix_meeting_types_host_id"), "meeting_types", ["host_id"], unique=False)

    op.create_table(
        "availability_rules",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("host_id", sa.Integer(), nullable=False),
        sa.Column("kind", rule_kind, nullable=False),
        sa.Column("day_of_week", sa.Integer(), nullable=True),
        sa.Column("specific_date", sa.Date(), nullable=True),
        sa.Column("start_time", sa.String(), nullable=False),
        sa.Column("end_time", sa.String(), nullable=False),
        sa.Column("is_blocked", sa.Boolean(), nullable=False, server_default="false"),
        sa.Column("block_reason", sa.String(), nullable=True),
        sa.ForeignKeyConstraint(["host_id"], ["users.id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("id"),
        sa.CheckConstraint("start_time < end_time", name="ck_availability_rules_time_order"),
    )
    op.create_index(op.f("ix_availability_rules_host_id"), "availability_rules", ["host_id"], unique=False)
    op.create_index(op.f("ix_availability_rules_kind"), "availability_rules", ["kind"], unique=False)
    op.create_index(
        op.f("ix_availability_rules_specific_date"), "availability_rules", ["specific_date"], unique=False
    )

    op.create_table(
        "bookings",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("host_id", sa.Integer(), nullable=False),
        sa.Column("meeting_type_id", sa.Integer(), nullable=True),
        sa.Column("title", sa.String(), nullable=False, server_default=""),
        sa.Column("start_utc", sa.DateTime(), nullable=False),
        sa.Column("end_utc", sa.DateTime(), nullable=False),
        sa.Column("status", booking_status, nullable=False),
        sa.Column("attendees", sa.JSON(), nullable=False),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.ForeignKeyConstraint(["host_id"], ["users.id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["meeting_type_id"], ["meeting_types.id"], ondelete="SET NULL"),
        sa.PrimaryKeyConstraint("id"),
        sa.CheckConstraint("start_utc < end_utc", name="ck_bookings_time_order"),
    )
    op.create_index(op.f("ix_bookings_host_id"), "bookings", ["host_id"], unique=False)
    op.create_index(op.f("ix_bookings_start_utc"), "bookings", ["start_utc"], unique=False)
    op.create_index(op.f("ix_bookings_status"), "bookings", ["status"], unique=False)

    if op.get_bind().dialect.name == "postgresql":
        # Authoritative no-double-booking guard for concurrent inserts
        op.execute("CREATE EXTENSION IF NOT EXISTS btree_gist")
        op.execute(
            """
            ALTER TABLE bookings ADD CONSTRAINT ex_bookings_host_no_overlap
            EXCLUDE USING gist (host_id WITH =, tsrange(start_utc, end_utc, '[)') WITH &&)
            WHERE (status IN ('PENDING', 'CONFIRMED'))
            """
        )


def downgrade() -> None:
    if op.get_bind().dialect.name == "postgresql":
        op.execute("ALTER TABLE bookings DROP CONSTRAINT IF EXISTS ex_bookings_host_no_overlap")
    op.drop_index(op.f("ix_bookings_status"), table_name="bookings")
    op.drop_index(op.f("ix_bookings_start_utc"), table_name="bookings")
    op.drop_index(op.f("ix_bookings_host_id"), table_name="bookings")
    op.drop_table("bookings")
    op.drop_index(op.f("ix_availability_rules_specific_date"), table_name="availability_rules")
    op.drop_index(op.f("ix_availability_rules_kind"), table_name="availability_rules")
    op.drop_index(op.f("ix_availability_rules_host_id"), table_name="availability_rules")
    op.drop_table("availability_rules")
    op.drop_index(op.f("ix_meeting_types_host_id"), table_name="meeting_types")
    op.drop_table("meeting_types")
    op.drop_index(op.f("ix_users_email"), table_name="users")
    op.drop_table("users")
    booking_status.drop(op.get_bind(), checkfirst=True)
    rule_kind.drop(op.get_bind(), checkfirst=True)
