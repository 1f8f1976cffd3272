"""add enquiries table

Revision ID: 002
Revises: 001
Create Date: 2026-10-19 14:00:00.000000

"""
from typing import Sequence, Union
from alembic import op
import sqlalchemy as sa

revision: str = "002"
down_revision: Union[str, None] = "001"
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.create_table(
        "enquiries",
        sa.Column("enquiry_id", sa.String(), nullable=False),
        sa.Column("applicant_nric", sa.String(length=9), nullable=False),
        sa.Column("project_name", sa.String(), nullable=False),
        sa.Column("question", sa.Text(), nullable=False),
        sa.Column("reply", sa.Text(), nullable=True),
        sa.Column("replied_by", sa.String(length=9), nullable=True),
        sa.Column("replied_at", sa.DateTime(), nullable=True),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.Column("updated_at", sa.DateTime(), server_default=sa.text("CURRENT_TIMESTAMP"), nullable=False),
        sa.PrimaryKeyConstraint("enquiry_id"),
    )
    op.create_index(op.f("ix_enquiries_applicant_nric"), "enquiries", ["applicant_nric"], unique=False)
    op.create_index(op.f("ix_enquiries_project_name"), "enquiries", ["project_name"], unique=False)
    op.create_index(op.f("ix_enquiries_created_at"), "enquiries", ["created_at"], unique=False)

    # Staff list a project's enquiries oldest first
    op.create_index("ix_enquiries_project_created", "enquiries", ["project_name", "created_at"])


def downgrade() -> None:
    op.drop_index("ix_enquiries_project_created", table_name="enquiries")
    op.drop_index(op.f("ix_enquiries_created_at"), table_name="enquiries")
    op.drop_index(op.f("ix_enquiries_project_name"), table_name="enquiries")
    op.drop_index(op.f("ix_enquiries_applicant_nric"), table_name="enquiries")
    op.drop_table("enquiries")
