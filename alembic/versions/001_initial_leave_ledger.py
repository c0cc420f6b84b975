"""Initial leave ledger schema: employees, leave_types, leaves, audit_logs.

Revision ID: 001_initial_leave_ledger
Revises:
Create Date: 2026-10-17

- One ``leaves`` table holds requests, allotments, deduction history and
  penalty entries, told apart by ``kind``.
- ``version`` backs optimistic concurrency on allotment balance updates.
"""
from typing import Sequence, Union
from alembic import op
import sqlalchemy as sa

revision: str = "001_initial_leave_ledger"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None

LEAVE_KIND = sa.Enum("REQUEST", "ALLOTMENT", "DEDUCTION", "PENALTY", name="leave_kind")
LEAVE_STATUS = sa.Enum("PENDING", "APPROVED", "REJECTED", name="leave_status")
HALF_DAY_TYPE = sa.Enum("FIRST_HALF", "SECOND_HALF", name="half_day_type")


def upgrade() -> None:
    bind = op.get_bind()
    inspector = sa.inspect(bind)
    tables = inspector.get_table_names()

    if "employees" not in tables:
        op.create_table(
            "employees",
            sa.Column("id", sa.Integer(), nullable=False),
            sa.Column("emp_code", sa.String(), nullable=False),
            sa.Column("name", sa.String(), nullable=False),
            sa.Column("email", sa.String(), nullable=True),
            sa.Column("role", sa.String(), nullable=False, server_default="EMPLOYEE"),
            sa.Column("password_hash", sa.String(), nullable=True),
            sa.Column("join_date", sa.Date(), nullable=False),
            sa.Column("active", sa.Boolean(), nullable=False, server_default=sa.true()),
            sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.text("CURRENT_TIMESTAMP"), nullable=False),
            sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.text("CURRENT_TIMESTAMP"), nullable=False),
            sa.PrimaryKeyConstraint("id"),
        )
        op.create_index(op.f("ix_employees_id"), "employees", ["id"], unique=False)
        op.create_index(op.f("ix_employees_emp_code"), "employees", ["emp_code"], unique=True)
        op.create_index(op.f("ix_employees_email"), "employees", ["email"], unique=False)

    if "leave_types" not in tables:
        op.create_table(
            "leave_types",
            sa.Column("id", sa.Integer(), nullable=False),
            sa.Column("name", sa.String(), nullable=False),
            sa.Column("description", sa.Text(), nullable=True),
            sa.Column("max_days", sa.Numeric(8, 2), nullable=True),
            sa.Column("is_short_day", sa.Boolean(), nullable=False, server_default=sa.false()),
            sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.true()),
            sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.text("CURRENT_TIMESTAMP"), nullable=False),
            sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.text("CURRENT_TIMESTAMP"), nullable=False),
            sa.PrimaryKeyConstraint("id"),
        )
        op.create_index(op.f("ix_leave_types_id"), "leave_types", ["id"], unique=False)
        op.create_index(op.f("ix_leave_types_name"), "leave_types", ["name"], unique=True)

    if "leaves" not in tables:
        op.create_table(
            "leaves",
            sa.Column("id", sa.Integer(), nullable=False),
            sa.Column("kind", LEAVE_KIND, nullable=False),
            sa.Column("employee_id", sa.Integer(), nullable=False),
            sa.Column("leave_type_id", sa.Integer(), nullable=False),
            sa.Column("days", sa.Numeric(8, 4), nullable=False, server_default="0"),
            sa.Column("hours", sa.Integer(), nullable=True),
            sa.Column("minutes", sa.Integer(), nullable=True),
            sa.Column("remaining_days", sa.Numeric(8, 4), nullable=True),
            sa.Column("remaining_hours", sa.Integer(), nullable=True),
            sa.Column("remaining_minutes", sa.Integer(), nullable=True),
            sa.Column("carry_forward", sa.Boolean(), nullable=False, server_default=sa.false()),
            sa.Column("start_date", sa.Date(), nullable=False),
            sa.Column("end_date", sa.Date(), nullable=False),
            sa.Column("reason", sa.Text(), nullable=True),
            sa.Column("status", LEAVE_STATUS, nullable=False, server_default="PENDING"),
            sa.Column("half_day_type", HALF_DAY_TYPE, nullable=True),
            sa.Column("short_day_time", sa.String(11), nullable=True),
            sa.Column("approved_by_id", sa.Integer(), nullable=True),
            sa.Column("approved_at", sa.DateTime(timezone=True), nullable=True),
            sa.Column("rejection_reason", sa.Text(), nullable=True),
            sa.Column("allotted_by_id", sa.Integer(), nullable=True),
            sa.Column("allotted_at", sa.DateTime(timezone=True), nullable=True),
            sa.Column("source_leave_id", sa.Integer(), nullable=True),
            sa.Column("version", sa.Integer(), nullable=False, server_default="1"),
            sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.text("CURRENT_TIMESTAMP"), nullable=False),
            sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.text("CURRENT_TIMESTAMP"), nullable=False),
            sa.PrimaryKeyConstraint("id"),
            sa.ForeignKeyConstraint(["employee_id"], ["employees.id"]),
            sa.ForeignKeyConstraint(["leave_type_id"], ["leave_types.id"]),
            sa.ForeignKeyConstraint(["approved_by_id"], ["employees.id"]),
            sa.ForeignKeyConstraint(["allotted_by_id"], ["employees.id"]),
            sa.ForeignKeyConstraint(["source_leave_id"], ["leaves.id"], ondelete="SET NULL"),
            sa.CheckConstraint("start_date <= end_date", name="check_leave_start_le_end"),
        )
        op.create_index(op.f("ix_leaves_id"), "leaves", ["id"], unique=False)
        op.create_index(op.f("ix_leaves_kind"), "leaves", ["kind"], unique=False)
        op.create_index(op.f("ix_leaves_employee_id"), "leaves", ["employee_id"], unique=False)
        op.create_index(op.f("ix_leaves_leave_type_id"), "leaves", ["leave_type_id"], unique=False)
        op.create_index(op.f("ix_leaves_source_leave_id"), "leaves", ["source_leave_id"], unique=False)
        op.create_index("ix_leaves_employee_type_kind", "leaves", ["employee_id", "leave_type_id", "kind"], unique=False)

    if "audit_logs" not in tables:
        op.create_table(
            "audit_logs",
            sa.Column("id", sa.Integer(), nullable=False),
            sa.Column("actor_id", sa.Integer(), nullable=False),
            sa.Column("action", sa.String(), nullable=False),
            sa.Column("entity_type", sa.String(), nullable=False),
            sa.Column("entity_id", sa.Integer(), nullable=True),
            sa.Column("meta_json", sa.JSON(), nullable=True),
            sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
            sa.PrimaryKeyConstraint("id"),
            sa.ForeignKeyConstraint(["actor_id"], ["employees.id"]),
        )
        op.create_index(op.f("ix_audit_logs_id"), "audit_logs", ["id"], unique=False)


def downgrade() -> None:
    op.drop_table("audit_logs")
    op.drop_index("ix_leaves_employee_type_kind", table_name="leaves")
    op.drop_table("leaves")
    op.drop_table("leave_types")
    op.drop_table("employees")
    bind = op.get_bind()
    for enum_type in (HALF_DAY_TYPE, LEAVE_STATUS, LEAVE_KIND):
        enum_type.drop(bind, checkfirst=True)
