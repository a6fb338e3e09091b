"""Initial migration: create profile, court, courtblock, reservation, competition, enrollment tables

Revision ID: 001_initial
Revises:
Create Date: 2026-03-01 00:00:00.000000

"""

import sqlalchemy as sa

from alembic import op

# revision identifiers, used by Alembic.
revision = "001_initial"
down_revision = None
branch_labels = None
depends_on = None


def upgrade() -> None:
    # Create profile table (id is the identity provider subject)
    op.create_table(
        "profile",
        sa.Column("id", sa.String(length=64), nullable=False),
        sa.Column("full_name", sa.String(), nullable=False),
        sa.Column("email", sa.String(), nullable=True),
        sa.Column("role", sa.String(), nullable=False),
        sa.PrimaryKeyConstraint("id"),
    )

    # Create court table
    op.create_table(
        "court",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("name", sa.String(), nullable=False),
        sa.Column("display_order", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column("slot_minutes", sa.Integer(), nullable=True),
        sa.Column("open_time", sa.Time(), nullable=True),
        sa.Column("close_time", sa.Time(), nullable=True),
        sa.Column("booking_seq", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_court_name", "court", ["name"], unique=True)

    # Create courtblock table
    op.create_table(
        "courtblock",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("court_id", sa.Integer(), nullable=False),
        sa.Column("start_time", sa.DateTime(), nullable=False),
        sa.Column("end_time", sa.DateTime(), nullable=False),
        sa.Column("reason", sa.String(), nullable=False, server_default="Manual block"),
        sa.Column("created_by", sa.String(length=64), nullable=True),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.PrimaryKeyConstraint("id"),
        sa.ForeignKeyConstraint(["court_id"], ["court.id"]),
        sa.ForeignKeyConstraint(["created_by"], ["profile.id"]),
    )
    op.create_index("ix_courtblock_court_id", "courtblock", ["court_id"])

    # Create reservation table
    op.create_table(
        "reservation",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("court_id", sa.Integer(), nullable=False),
        sa.Column("owner_id", sa.String(length=64), nullable=False),
        sa.Column("instructor_id", sa.String(length=64), nullable=True),
        sa.Column("kind", sa.String(), nullable=False, server_default="court"),
        sa.Column("start_time", sa.DateTime(), nullable=False),
        sa.Column("end_time", sa.DateTime(), nullable=False),
        sa.Column("status", sa.String(), nullable=False),
        sa.Column("manager_confirmed", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("notes", sa.String(), nullable=True),
        sa.Column("created_by", sa.String(length=64), nullable=True),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.Column("updated_at", sa.DateTime(), nullable=False),
        sa.PrimaryKeyConstraint("id"),
        sa.ForeignKeyConstraint(["court_id"], ["court.id"]),
        sa.ForeignKeyConstraint(["owner_id"], ["profile.id"]),
        sa.ForeignKeyConstraint(["instructor_id"], ["profile.id"]),
        sa.ForeignKeyConstraint(["created_by"], ["profile.id"]),
    )
    op.create_index("ix_reservation_court_start", "reservation", ["court_id", "start_time"])
    op.create_index("ix_reservation_owner_id", "reservation", ["owner_id"])

    # Create competition table
    op.create_table(
        "competition",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("name", sa.String(), nullable=False),
        sa.Column("max_participants", sa.Integer(), nullable=False),
        sa.Column("enrolled_count", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("phase", sa.String(), nullable=False, server_default="enrollment_open"),
        sa.Column("format", sa.String(), nullable=False),
        sa.Column("starts_on", sa.Date(), nullable=True),
        sa.Column("created_by", sa.String(length=64), nullable=True),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.Column("updated_at", sa.DateTime(), nullable=False),
        sa.PrimaryKeyConstraint("id"),
        sa.ForeignKeyConstraint(["created_by"], ["profile.id"]),
        sa.CheckConstraint("enrolled_count <= max_participants", name="ck_competition_capacity"),
        sa.CheckConstraint("enrolled_count >= 0", name="ck_competition_enrolled_nonnegative"),
    )

    # Create enrollment table
    op.create_table(
        "enrollment",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("competition_id", sa.Integer(), nullable=False),
        sa.Column("profile_id", sa.String(length=64), nullable=False),
        sa.Column("enrolled_by", sa.String(length=64), nullable=True),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.PrimaryKeyConstraint("id"),
        sa.ForeignKeyConstraint(["competition_id"], ["competition.id"]),
        sa.ForeignKeyConstraint(["profile_id"], ["profile.id"]),
        sa.ForeignKeyConstraint(["enrolled_by"], ["profile.id"]),
        sa.UniqueConstraint("competition_id", "profile_id", name="uq_enrollment_competition_profile"),
    )
    op.create_index("ix_enrollment_competition_id", "enrollment", ["competition_id"])


def downgrade() -> None:
    op.drop_index("ix_enrollment_competition_id", table_name="enrollment")
    op.drop_table("enrollment")
    op.drop_table("competition")
    op.drop_index("ix_reservation_owner_id", table_name="reservation")
    op.drop_index("ix_reservation_court_start", table_name="reservation")
    op.drop_table("reservation")
    op.drop_index("ix_courtblock_court_id", table_name="courtblock")
    op.drop_table("courtblock")
    op.drop_index("ix_court_name", table_name="court")
    op.drop_table("court")
    op.drop_table("profile")
