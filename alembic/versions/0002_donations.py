"""donor blood type and donation records

Revision ID: 0002
Revises: 0001
Create Date: 2026-10-19 12:00:00

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa

revision: str = "0002"
down_revision: Union[str, None] = "0001"
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.add_column("users", sa.Column("blood_type", sa.String(5), nullable=True))

    op.create_table(
        "donations",
        sa.Column("donation_id", sa.String(36), primary_key=True),
        sa.Column("donor_id", sa.String(36), sa.ForeignKey("users.user_id"), nullable=False),
        sa.Column(
            "blood_bank_id", sa.String(36), sa.ForeignKey("users.user_id"), nullable=False
        ),
        sa.Column(
            "appointment_id",
            sa.String(36),
            sa.ForeignKey("appointments.appointment_id"),
            nullable=True,
            unique=True,
        ),
        sa.Column("donation_type", sa.String(20), nullable=False),
        sa.Column("blood_type", sa.String(5), nullable=False),
        sa.Column("quantity_ml", sa.Integer(), nullable=False),
        sa.Column("donation_date", sa.Date(), nullable=False),
        sa.Column("status", sa.String(20), nullable=False),
        sa.Column("bag_number", sa.String(32), nullable=False, unique=True),
        sa.Column("expiration_date", sa.Date(), nullable=False),
        sa.Column("collected_by", sa.String(100), nullable=True),
        sa.Column("pre_screening", sa.JSON(), nullable=True),
        sa.Column("health_questionnaire", sa.JSON(), nullable=True),
        sa.Column("notes", sa.Text(), nullable=True),
        sa.Column("staff_notes", sa.Text(), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False),
        sa.CheckConstraint(
            "quantity_ml >= 350 AND quantity_ml <= 500", name="ck_donations_quantity"
        ),
    )
    op.create_index("ix_donations_donor_date", "donations", ["donor_id", "donation_date"])
    op.create_index("ix_donations_bank_date", "donations", ["blood_bank_id", "donation_date"])
    op.create_index(
        "ix_donations_blood_type_status", "donations", ["blood_type", "status"]
    )


def downgrade() -> None:
    op.drop_index("ix_donations_blood_type_status", table_name="donations")
    op.drop_index("ix_donations_bank_date", table_name="donations")
    op.drop_index("ix_donations_donor_date", table_name="donations")
    op.drop_table("donations")
    op.drop_column("users", "blood_type")
