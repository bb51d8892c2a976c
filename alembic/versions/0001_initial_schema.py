"""users and appointments

Revision ID: 0001
Revises:
Create Date: 2026-10-19 09:00:00

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa

revision: str = "0001"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None

# Statuses that occupy a slot; a rescheduled appointment still holds its new one.
SLOT_HOLDING = (
    "status IN ('checked_in', 'confirmed', 'in_progress', 'reminded', "
    "'rescheduled', 'scheduled')"
)


def _timestamps() -> list[sa.Column]:
    return [
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False),
    ]


def upgrade() -> None:
    op.create_table(
        "users",
        sa.Column("user_id", sa.String(36), primary_key=True),
        sa.Column("role", sa.String(20), nullable=False),
        sa.Column("name", sa.String(100), nullable=False),
        sa.Column("email", sa.String(255), nullable=False, unique=True),
        sa.Column("phone", sa.String(20), nullable=True),
        sa.Column("is_active", sa.Boolean(), nullable=False),
        sa.Column("eligible_to_donate", sa.Boolean(), nullable=False),
        sa.Column("last_donation_date", sa.Date(), nullable=True),
        sa.Column("organization_name", sa.String(200), nullable=True),
        sa.Column("operating_hours", sa.JSON(), nullable=True),
        *_timestamps(),
    )
    op.create_index("ix_users_role", "users", ["role"])

    op.create_table(
        "appointments",
        sa.Column("appointment_id", sa.String(36), primary_key=True),
        sa.Column("donor_id", sa.String(36), sa.ForeignKey("users.user_id"), nullable=False),
        sa.Column(
            "blood_bank_id", sa.String(36), sa.ForeignKey("users.user_id"), nullable=False
        ),
        sa.Column("appointment_date", sa.Date(), nullable=False),
        sa.Column("start_time", sa.String(5), nullable=False),
        sa.Column("end_time", sa.String(5), nullable=False),
        sa.Column("duration_minutes", sa.Integer(), nullable=False),
        sa.Column("donation_type", sa.String(20), nullable=False),
        sa.Column("status", sa.String(20), nullable=False),
        sa.Column("priority", sa.String(20), nullable=False),
        sa.Column("original_date", sa.Date(), nullable=True),
        sa.Column("reschedule_count", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("rescheduled_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("rescheduled_by", sa.String(20), nullable=True),
        sa.Column("reschedule_reason", sa.Text(), nullable=True),
        sa.Column("cancellation_reason", sa.Text(), nullable=True),
        sa.Column("cancelled_by", sa.String(20), nullable=True),
        sa.Column("cancelled_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("checked_in_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("location", sa.JSON(), nullable=True),
        sa.Column("pre_screening", sa.JSON(), nullable=True),
        sa.Column("special_requirements", sa.JSON(), nullable=True),
        sa.Column("assigned_staff", sa.JSON(), nullable=True),
        sa.Column("consent_forms", sa.JSON(), nullable=True),
        sa.Column("feedback", sa.JSON(), nullable=True),
        sa.Column("notes", sa.Text(), nullable=True),
        sa.Column("internal_notes", sa.Text(), nullable=True),
        *_timestamps(),
        sa.CheckConstraint(
            "reschedule_count >= 0 AND reschedule_count <= 3",
            name="ck_appointments_reschedule_count",
        ),
    )
    op.create_index(
        "uq_appointments_bank_slot",
        "appointments",
        ["blood_bank_id", "appointment_date", "start_time"],
        unique=True,
        postgresql_where=sa.text(SLOT_HOLDING),
        sqlite_where=sa.text(SLOT_HOLDING),
    )
    op.create_index(
        "ix_appointments_bank_date_status",
        "appointments",
        ["blood_bank_id", "appointment_date", "status"],
    )
    op.create_index(
        "ix_appointments_donor_date", "appointments", ["donor_id", "appointment_date"]
    )


def downgrade() -> None:
    op.drop_index("ix_appointments_donor_date", table_name="appointments")
    op.drop_index("ix_appointments_bank_date_status", table_name="appointments")
    op.drop_index("uq_appointments_bank_slot", table_name="appointments")
    op.drop_table("appointments")
    op.drop_index("ix_users_role", table_name="users")
    op.drop_table("users")
