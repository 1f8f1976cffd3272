"""Initial schema

Revision ID: 001
Revises:
Create Date: 2026-10-19 10:00:00.000000

"""
from typing import Sequence, Union
from alembic import op
import sqlalchemy as sa

revision: str = "001"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    """Create users, projects, project_flat_types and applications tables"""
    op.create_table(
        "users",
        sa.Column("nric", sa.String(length=9), nullable=False),
        sa.Column("name", sa.String(), nullable=False),
        sa.Column("age", sa.Integer(), nullable=False),
        sa.Column("marital_status", sa.String(), nullable=False),
        sa.Column("role", sa.String(), nullable=False),
        sa.Column("current_application_id", sa.String(), nullable=True),
        sa.Column("booked_flat_type", sa.String(), nullable=True),
        sa.Column("booked_project", sa.String(), nullable=True),
        sa.Column("assigned_project", sa.String(), nullable=True),
        sa.Column("registration_approved", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("created_at", sa.DateTime(), server_default=sa.text("CURRENT_TIMESTAMP"), nullable=False),
        sa.Column("updated_at", sa.DateTime(), server_default=sa.text("CURRENT_TIMESTAMP"), nullable=False),
        sa.PrimaryKeyConstraint("nric"),
    )
    op.create_index(op.f("ix_users_role"), "users", ["role"], unique=False)
    op.create_index(op.f("ix_users_assigned_project"), "users", ["assigned_project"], unique=False)

    op.create_table(
        "projects",
        sa.Column("name", sa.String(), nullable=False),
        sa.Column("neighborhood", sa.String(), nullable=False),
        sa.Column("opening_date", sa.Date(), nullable=False),
        sa.Column("closing_date", sa.Date(), nullable=False),
        sa.Column("manager_nric", sa.String(length=9), nullable=False),
        sa.Column("officer_slots", sa.Integer(), nullable=False, server_default="10"),
        sa.Column("officer_nrics", sa.JSON(), nullable=False),
        sa.Column("visible", sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column("created_at", sa.DateTime(), server_default=sa.text("CURRENT_TIMESTAMP"), nullable=False),
        sa.Column("updated_at", sa.DateTime(), server_default=sa.text("CURRENT_TIMESTAMP"), nullable=False),
        sa.PrimaryKeyConstraint("name"),
    )
    op.create_index(op.f("ix_projects_manager_nric"), "projects", ["manager_nric"], unique=False)

    op.create_table(
        "project_flat_types",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("project_name", sa.String(), nullable=False),
        sa.Column("flat_type", sa.String(), nullable=False),
        sa.Column("total_units", sa.Integer(), nullable=False),
        sa.Column("remaining_units", sa.Integer(), nullable=False),
        sa.Column("price", sa.Float(), nullable=False, server_default="0"),
        sa.ForeignKeyConstraint(["project_name"], ["projects.name"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("project_name", "flat_type", name="uq_project_flat_type"),
        sa.CheckConstraint(
            "remaining_units >= 0 AND remaining_units <= total_units",
            name="ck_remaining_units_range",
        ),
    )

    op.create_table(
        "applications",
        sa.Column("application_id", sa.String(), nullable=False),
        sa.Column("applicant_nric", sa.String(length=9), nullable=False),
        sa.Column("project_name", sa.String(), nullable=False),
        sa.Column("flat_type", sa.String(), nullable=False),
        sa.Column("status", sa.String(), nullable=False),
        sa.Column("withdrawal_requested", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.Column("booked_at", sa.DateTime(), nullable=True),
        sa.Column("updated_at", sa.DateTime(), server_default=sa.text("CURRENT_TIMESTAMP"), nullable=False),
        sa.PrimaryKeyConstraint("application_id"),
    )
    op.create_index(op.f("ix_applications_applicant_nric"), "applications", ["applicant_nric"], unique=False)
    op.create_index(op.f("ix_applications_project_name"), "applications", ["project_name"], unique=False)
    op.create_index(op.f("ix_applications_status"), "applications", ["status"], unique=False)
    op.create_index(op.f("ix_applications_created_at"), "applications", ["created_at"], unique=False)
    op.create_index("ix_applications_project_status", "applications", ["project_name", "status"])
    op.create_index("ix_applications_applicant", "applications", ["applicant_nric", "created_at"])


def downgrade() -> None:
    """Drop all tables"""
    op.drop_index("ix_applications_applicant", table_name="applications")
    op.drop_index("ix_applications_project_status", table_name="applications")
    op.drop_index(op.f("ix_applications_created_at"), table_name="applications")
    op.drop_index(op.f("ix_applications_status"), table_name="applications")
    op.drop_index(op.f("ix_applications_project_name"), table_name="applications")
    op.drop_index(op.f("ix_applications_applicant_nric"), table_name="applications")
    op.drop_table("applications")
    op.drop_table("project_flat_types")
    op.drop_index(op.f("ix_projects_manager_nric"), table_name="projects")
    op.drop_table("projects")
    op.drop_index(op.f("ix_users_assigned_project"), table_name="users")
    op.drop_index(op.f("ix_users_role"), table_name="users")
    op.drop_table("users")
