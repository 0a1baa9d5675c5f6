"""initial schema: tenants, users, invitations and tenant-owned resources

Revision ID: 0001_initial_schema
Revises:
Create Date: 2026-10-18
"""

from alembic import op
import sqlalchemy as sa
from sqlalchemy import text

# revision identifiers, used by Alembic.
revision = "0001_initial_schema"
down_revision = None
branch_labels = None
depends_on = None

# tables with a plain tenant_id FK, in creation order
TENANT_OWNED = (
    "clients",
    "leads",
    "opportunities",
    "quotations",
    "spaces",
    "services",
    "bookings",
    "access_logs",
    "invoices",
    "memberships",
    "activities",
)


def _id() -> sa.Column:
    return sa.Column("id", sa.Uuid(), primary_key=True)


def _tenant_fk() -> sa.Column:
    return sa.Column("tenant_id", sa.Uuid(), sa.ForeignKey("tenants.id", ondelete="CASCADE"), nullable=False)


def _created_at(name: str = "created_at") -> sa.Column:
    return sa.Column(name, sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False)


def _client_fk(ondelete: str = "SET NULL") -> sa.Column:
    return sa.Column("client_id", sa.Uuid(), sa.ForeignKey("clients.id", ondelete=ondelete), nullable=True)


def upgrade() -> None:
    op.create_table(
        "tenants",
        _id(),
        sa.Column("name", sa.String(200), nullable=False),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.true()),
        _created_at(),
        _created_at("updated_at"),
    )

    op.create_table(
        "users",
        _id(),
        sa.Column("external_id", sa.String(255), nullable=False),
        sa.Column("email", sa.String(320), nullable=False),
        sa.Column("full_name", sa.String(200), nullable=True),
        sa.Column("tenant_id", sa.Uuid(), sa.ForeignKey("tenants.id", ondelete="SET NULL"), nullable=True),
        sa.Column("role", sa.String(30), nullable=False, server_default="END_USER"),
        sa.Column("is_onboarded", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.true()),
        _created_at(),
        _created_at("updated_at"),
    )
    op.create_index("ix_users_external_id", "users", ["external_id"], unique=True)
    op.create_index("ix_users_email", "users", ["email"])
    op.create_index("ix_users_tenant_id", "users", ["tenant_id"])

    op.create_table(
        "invitations",
        _id(),
        sa.Column("tenant_id", sa.Uuid(), sa.ForeignKey("tenants.id", ondelete="CASCADE"), nullable=True),
        sa.Column("email", sa.String(320), nullable=False),
        sa.Column("role", sa.String(30), nullable=False),
        sa.Column("token", sa.String(200), nullable=False),
        sa.Column("status", sa.String(20), nullable=False, server_default="PENDING"),
        sa.Column("expires_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("invited_by_user_id", sa.Uuid(), sa.ForeignKey("users.id", ondelete="SET NULL"), nullable=True),
        sa.Column("accepted_by_user_id", sa.Uuid(), sa.ForeignKey("users.id", ondelete="SET NULL"), nullable=True),
        sa.Column("accepted_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("revoked_at", sa.DateTime(timezone=True), nullable=True),
        _created_at(),
        sa.UniqueConstraint("token", name="uq_invitations_token"),
    )
    op.create_index("ix_invitations_tenant_email", "invitations", ["tenant_id", "email"])
    op.create_index("ix_invitations_tenant_created_at", "invitations", ["tenant_id", "created_at"])
    op.create_index(
        "uq_invitations_pending_tenant_email",
        "invitations",
        ["tenant_id", "email"],
        unique=True,
        postgresql_where=text("status = 'PENDING'"),
    )

    op.create_table(
        "clients",
        _id(),
        _tenant_fk(),
        sa.Column("name", sa.String(200), nullable=False),
        sa.Column("email", sa.String(320), nullable=True),
        _created_at(),
    )
    op.create_table(
        "leads",
        _id(),
        _tenant_fk(),
        sa.Column("name", sa.String(200), nullable=False),
        sa.Column("email", sa.String(320), nullable=True),
        sa.Column("status", sa.String(32), nullable=False, server_default="new"),
        _created_at(),
    )
    op.create_table(
        "opportunities",
        _id(),
        _tenant_fk(),
        _client_fk(),
        sa.Column("title", sa.String(200), nullable=False),
        sa.Column("stage", sa.String(32), nullable=False, server_default="open"),
        _created_at(),
    )
    op.create_table(
        "quotations",
        _id(),
        _tenant_fk(),
        _client_fk(),
        sa.Column("number", sa.String(64), nullable=False),
        sa.Column("total", sa.Numeric(12, 2), nullable=False, server_default="0"),
        _created_at(),
    )
    op.create_table(
        "quotation_items",
        _id(),
        sa.Column("quotation_id", sa.Uuid(), sa.ForeignKey("quotations.id", ondelete="CASCADE"), nullable=False),
        sa.Column("description", sa.String(255), nullable=False),
        sa.Column("quantity", sa.Integer(), nullable=False, server_default="1"),
        sa.Column("unit_price", sa.Numeric(12, 2), nullable=False),
    )
    op.create_index("ix_quotation_items_quotation_id", "quotation_items", ["quotation_id"])

    op.create_table(
        "spaces",
        _id(),
        _tenant_fk(),
        sa.Column("name", sa.String(200), nullable=False),
        sa.Column("capacity", sa.Integer(), nullable=False, server_default="1"),
        _created_at(),
    )
    op.create_table(
        "services",
        _id(),
        _tenant_fk(),
        sa.Column("name", sa.String(200), nullable=False),
        sa.Column("price", sa.Numeric(12, 2), nullable=False, server_default="0"),
        _created_at(),
    )
    op.create_table(
        "bookings",
        _id(),
        _tenant_fk(),
        sa.Column("user_id", sa.Uuid(), sa.ForeignKey("users.id", ondelete="CASCADE"), nullable=False),
        sa.Column("space_id", sa.Uuid(), sa.ForeignKey("spaces.id", ondelete="SET NULL"), nullable=True),
        sa.Column("starts_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("ends_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("status", sa.String(32), nullable=False, server_default="confirmed"),
        _created_at(),
    )
    op.create_index("ix_bookings_user_id", "bookings", ["user_id"])

    op.create_table(
        "access_logs",
        _id(),
        _tenant_fk(),
        sa.Column("user_id", sa.Uuid(), sa.ForeignKey("users.id", ondelete="CASCADE"), nullable=False),
        sa.Column("event", sa.String(32), nullable=False),
        _created_at("occurred_at"),
    )
    op.create_index("ix_access_logs_user_id", "access_logs", ["user_id"])

    op.create_table(
        "invoices",
        _id(),
        _tenant_fk(),
        _client_fk(),
        sa.Column("number", sa.String(64), nullable=False),
        sa.Column("total", sa.Numeric(12, 2), nullable=False, server_default="0"),
        sa.Column("status", sa.String(32), nullable=False, server_default="draft"),
        _created_at(),
    )
    op.create_table(
        "memberships",
        _id(),
        _tenant_fk(),
        _client_fk(ondelete="CASCADE"),
        sa.Column("plan_name", sa.String(200), nullable=False),
        sa.Column("status", sa.String(32), nullable=False, server_default="active"),
        _created_at(),
    )
    op.create_table(
        "activities",
        _id(),
        _tenant_fk(),
        _client_fk(),
        sa.Column("kind", sa.String(32), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        _created_at(),
    )

    for table in TENANT_OWNED:
        op.create_index(f"ix_{table}_tenant_id", table, ["tenant_id"])


def downgrade() -> None:
    for table in reversed(TENANT_OWNED):
        op.drop_index(f"ix_{table}_tenant_id", table_name=table)

    op.drop_table("activities")
    op.drop_table("memberships")
    op.drop_table("invoices")
    op.drop_index("ix_access_logs_user_id", table_name="access_logs")
    op.drop_table("access_logs")
    op.drop_index("ix_bookings_user_id", table_name="bookings")
    op.drop_table("bookings")
    op.drop_table("services")
    op.drop_table("spaces")
    op.drop_index("ix_quotation_items_quotation_id", table_name="quotation_items")
    op.drop_table("quotation_items")
    op.drop_table("quotations")
    op.drop_table("opportunities")
    op.drop_table("leads")
    op.drop_table("clients")

    op.drop_index("uq_invitations_pending_tenant_email", table_name="invitations")
    op.drop_index("ix_invitations_tenant_created_at", table_name="invitations")
    op.drop_index("ix_invitations_tenant_email", table_name="invitations")
    op.drop_table("invitations")

    op.drop_index("ix_users_tenant_id", table_name="users")
    op.drop_index("ix_users_email", table_name="users")
    op.drop_index("ix_users_external_id", table_name="users")
    op.drop_table("users")
    op.drop_table("tenants")
