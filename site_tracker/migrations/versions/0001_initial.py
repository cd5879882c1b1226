"""Initial site tracker schema

Revision ID: 0001_initial
Revises:
Create Date: 2026-10-19 00:00:00
"""

from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

# revision identifiers, used by Alembic.
revision: str = "0001_initial"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None

user_role = postgresql.ENUM(
    "Admin",
    "Project Manager",
    "Data Analyst",
    "Field Assessor",
    "Viewer",
    name="user_role",
    create_type=False,
)
user_status = postgresql.ENUM("active", "inactive", "suspended", name="user_status", create_type=False)
asset_condition = postgresql.ENUM("Good", "Fair", "Poor", "Critical", name="asset_condition", create_type=False)
program_status = postgresql.ENUM("Active", "Inactive", "Planned", name="program_status", create_type=False)
related_entity_type = postgresql.ENUM(
    "site",
    "staff",
    "asset",
    "program",
    "user",
    "district",
    name="related_entity_type",
    create_type=False,
)

ENUM_TYPES = (user_role, user_status, asset_condition, program_status, related_entity_type)


def _site_fk() -> sa.ForeignKeyConstraint:
    return sa.ForeignKeyConstraint(["site_id"], ["sites.id"], ondelete="SET NULL")


def upgrade() -> None:
    bind = op.get_bind()
    for enum_type in ENUM_TYPES:
        enum_type.create(bind, checkfirst=True)

    op.create_table(
        "districts",
        sa.Column("id", sa.Integer(), primary_key=True, nullable=False),
        sa.Column("name", sa.String(length=255), nullable=False),
        sa.Column("region", sa.String(length=255), nullable=True),
        sa.Column("contact_person", sa.String(length=255), nullable=True),
        sa.Column("contact_email", sa.String(length=255), nullable=True),
        sa.Column("contact_phone", sa.String(length=64), nullable=True),
    )
    op.create_index("ix_districts_name", "districts", ["name"], unique=False)

    op.create_table(
        "users",
        sa.Column("id", sa.Integer(), primary_key=True, nullable=False),
        sa.Column("username", sa.String(length=100), nullable=False),
        sa.Column("password", sa.String(length=255), nullable=False),
        sa.Column("name", sa.String(length=255), nullable=False),
        sa.Column("role", user_role, nullable=False),
        sa.Column("email", sa.String(length=255), nullable=True),
        sa.Column("phone", sa.String(length=64), nullable=True),
        sa.Column("status", user_status, nullable=False, server_default="active"),
        sa.Column("last_login", sa.DateTime(timezone=True), nullable=True),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            nullable=False,
            server_default=sa.text("CURRENT_TIMESTAMP"),
        ),
        sa.Column(
            "updated_at",
            sa.DateTime(timezone=True),
            nullable=False,
            server_default=sa.text("CURRENT_TIMESTAMP"),
        ),
    )
    op.create_index("ix_users_username", "users", ["username"], unique=True)

    op.create_table(
        "sites",
        sa.Column("id", sa.Integer(), primary_key=True, nullable=False),
        sa.Column("site_id", sa.String(length=64), nullable=False),
        sa.Column("name", sa.String(length=255), nullable=False),
        sa.Column("type", sa.String(length=64), nullable=False),
        sa.Column("district", sa.String(length=255), nullable=False),
        sa.Column("physical_address", sa.Text(), nullable=True),
        sa.Column("gps_lat", sa.Float(), nullable=True),
        sa.Column("gps_lng", sa.Float(), nullable=True),
        sa.Column("host_department", sa.String(length=255), nullable=True),
        sa.Column("agreement_type", sa.String(length=64), nullable=True),
        sa.Column("agreement_details", sa.Text(), nullable=True),
        sa.Column("contract_number", sa.String(length=128), nullable=True),
        sa.Column("contract_term", sa.String(length=128), nullable=True),
        sa.Column("renewal_date", sa.String(length=10), nullable=True),
        sa.Column("contact_person", sa.String(length=255), nullable=True),
        sa.Column("contact_email", sa.String(length=255), nullable=True),
        sa.Column("contact_phone", sa.String(length=64), nullable=True),
        sa.Column("establishment_date", sa.String(length=10), nullable=True),
        sa.Column("operational_status", sa.String(length=64), nullable=False),
        sa.Column("assessment_status", sa.String(length=64), nullable=False),
        sa.Column("total_area", sa.Integer(), nullable=True),
        sa.Column("classrooms", sa.Integer(), nullable=True),
        sa.Column("offices", sa.Integer(), nullable=True),
        sa.Column("computer_labs", sa.Integer(), nullable=True),
        sa.Column("workshops", sa.Integer(), nullable=True),
        sa.Column("has_library", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("has_student_common_areas", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("has_staff_facilities", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("accessibility_features", sa.Text(), nullable=True),
        sa.Column("internet_connectivity", sa.String(length=255), nullable=True),
        sa.Column("security_features", sa.Text(), nullable=True),
        sa.Column("building_condition", sa.String(length=32), nullable=True),
        sa.Column("electrical_condition", sa.String(length=32), nullable=True),
        sa.Column("plumbing_condition", sa.String(length=32), nullable=True),
        sa.Column("interior_condition", sa.String(length=32), nullable=True),
        sa.Column("exterior_condition", sa.String(length=32), nullable=True),
        sa.Column("last_renovation_date", sa.String(length=10), nullable=True),
        sa.Column("notes", sa.Text(), nullable=True),
        sa.Column("images", sa.Text(), nullable=True),
        sa.Column("created_by", sa.Integer(), nullable=True),
        sa.Column("last_visited_by", sa.Integer(), nullable=True),
        sa.Column("last_visit_date", sa.DateTime(timezone=True), nullable=True),
        sa.ForeignKeyConstraint(["created_by"], ["users.id"], ondelete="SET NULL"),
        sa.ForeignKeyConstraint(["last_visited_by"], ["users.id"], ondelete="SET NULL"),
    )
    op.create_index("ix_sites_site_id", "sites", ["site_id"], unique=True)
    op.create_index("ix_sites_district", "sites", ["district"], unique=False)

    op.create_table(
        "staff",
        sa.Column("id", sa.Integer(), primary_key=True, nullable=False),
        sa.Column("staff_id", sa.String(length=64), nullable=False),
        sa.Column("first_name", sa.String(length=255), nullable=False),
        sa.Column("last_name", sa.String(length=255), nullable=False),
        sa.Column("position", sa.String(length=255), nullable=True),
        sa.Column("email", sa.String(length=255), nullable=True),
        sa.Column("phone", sa.String(length=64), nullable=True),
        sa.Column("verified", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("qualifications", sa.Text(), nullable=True),
        sa.Column("skills", sa.Text(), nullable=True),
        sa.Column("workload", sa.Integer(), nullable=True),
        sa.Column("department", sa.String(length=255), nullable=True),
        sa.Column("start_date", sa.String(length=10), nullable=True),
        sa.Column("contract_end_date", sa.String(length=10), nullable=True),
        sa.Column("employment_status", sa.String(length=64), nullable=True),
        sa.Column("notes", sa.Text(), nullable=True),
        sa.Column("site_id", sa.Integer(), nullable=True),
        _site_fk(),
    )
    op.create_index("ix_staff_staff_id", "staff", ["staff_id"], unique=True)
    op.create_index("ix_staff_site_id", "staff", ["site_id"], unique=False)

    op.create_table(
        "assets",
        sa.Column("id", sa.Integer(), primary_key=True, nullable=False),
        sa.Column("asset_id", sa.String(length=64), nullable=False),
        sa.Column("name", sa.String(length=255), nullable=False),
        sa.Column("type", sa.String(length=128), nullable=True),
        sa.Column("category", sa.String(length=128), nullable=False),
        sa.Column("manufacturer", sa.String(length=255), nullable=True),
        sa.Column("model", sa.String(length=255), nullable=True),
        sa.Column("serial_numbers", sa.Text(), nullable=False, server_default=sa.text("'[]'")),
        sa.Column("purchase_date", sa.String(length=10), nullable=True),
        sa.Column("purchase_price", sa.Float(), nullable=True),
        sa.Column("location", sa.String(length=255), nullable=True),
        sa.Column("assigned_to", sa.String(length=255), nullable=True),
        sa.Column("last_maintenance_date", sa.String(length=10), nullable=True),
        sa.Column("next_maintenance_date", sa.String(length=10), nullable=True),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("condition", asset_condition, nullable=False),
        sa.Column("acquisition_date", sa.String(length=10), nullable=True),
        sa.Column("last_service_date", sa.String(length=10), nullable=True),
        sa.Column("notes", sa.Text(), nullable=True),
        sa.Column("images", sa.Text(), nullable=True),
        sa.Column("site_id", sa.Integer(), nullable=True),
        _site_fk(),
    )
    op.create_index("ix_assets_asset_id", "assets", ["asset_id"], unique=True)
    op.create_index("ix_assets_site_id", "assets", ["site_id"], unique=False)

    op.create_table(
        "programs",
        sa.Column("id", sa.Integer(), primary_key=True, nullable=False),
        sa.Column("program_id", sa.String(length=64), nullable=False),
        sa.Column("name", sa.String(length=255), nullable=False),
        sa.Column("category", sa.String(length=128), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("enrollment_count", sa.Integer(), nullable=True),
        sa.Column("start_date", sa.String(length=10), nullable=True),
        sa.Column("end_date", sa.String(length=10), nullable=True),
        sa.Column("status", program_status, nullable=False),
        sa.Column("notes", sa.Text(), nullable=True),
        sa.Column("site_id", sa.Integer(), nullable=True),
        _site_fk(),
    )
    op.create_index("ix_programs_program_id", "programs", ["program_id"], unique=True)
    op.create_index("ix_programs_site_id", "programs", ["site_id"], unique=False)

    op.create_table(
        "activities",
        sa.Column("id", sa.Integer(), primary_key=True, nullable=False),
        sa.Column("type", sa.String(length=64), nullable=False),
        sa.Column("description", sa.Text(), nullable=False),
        sa.Column("related_entity_id", sa.Integer(), nullable=True),
        sa.Column("related_entity_type", related_entity_type, nullable=True),
        sa.Column("performed_by", sa.Integer(), nullable=True),
        sa.Column(
            "timestamp",
            sa.DateTime(timezone=True),
            nullable=False,
            server_default=sa.text("CURRENT_TIMESTAMP"),
        ),
        sa.Column("metadata", postgresql.JSONB(astext_type=sa.Text()), nullable=True),
        sa.ForeignKeyConstraint(["performed_by"], ["users.id"], ondelete="SET NULL"),
    )
    op.create_index("ix_activities_type", "activities", ["type"], unique=False)
    op.create_index("ix_activities_performed_by", "activities", ["performed_by"], unique=False)
    op.create_index("ix_activities_timestamp", "activities", ["timestamp"], unique=False)
    op.create_index(
        "ix_activities_related_entity",
        "activities",
        ["related_entity_type", "related_entity_id"],
        unique=False,
    )


def downgrade() -> None:
    op.drop_index("ix_activities_related_entity", table_name="activities")
    op.drop_index("ix_activities_timestamp", table_name="activities")
    op.drop_index("ix_activities_performed_by", table_name="activities")
    op.drop_index("ix_activities_type", table_name="activities")
    op.drop_table("activities")

    op.drop_index("ix_programs_site_id", table_name="programs")
    op.drop_index("ix_programs_program_id", table_name="programs")
    op.drop_table("programs")

    op.drop_index("ix_assets_site_id", table_name="assets")
    op.drop_index("ix_assets_asset_id", table_name="assets")
    op.drop_table("assets")

    op.drop_index("ix_staff_site_id", table_name="staff")
    op.drop_index("ix_staff_staff_id", table_name="staff")
    op.drop_table("staff")

    op.drop_index("ix_sites_district", table_name="sites")
    op.drop_index("ix_sites_site_id", table_name="sites")
    op.drop_table("sites")

    op.drop_index("ix_users_username", table_name="users")
    op.drop_table("users")

    op.drop_index("ix_districts_name", table_name="districts")
    op.drop_table("districts")

    bind = op.get_bind()
    for enum_type in reversed(ENUM_TYPES):
        enum_type.drop(bind, checkfirst=True)
