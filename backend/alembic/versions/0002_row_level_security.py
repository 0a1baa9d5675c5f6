"""enable row level security and install per-command policies

Revision ID: 0002_row_level_security
Revises: 0001_initial_schema
Create Date: 2026-10-18

POLICY_ROLES is the permission table as of this revision, in the shape of
cowork.auth.rls.policy_roles(). A change to the permission table ships as a
new revision that drops these policies and installs its own copy.
"""

from alembic import op

from cowork.auth.rls import render_disable_statements, render_enable_statements

# revision identifiers, used by Alembic.
revision = "0002_row_level_security"
down_revision = "0001_initial_schema"
branch_labels = None
depends_on = None

_END_USER_UP = ["CLIENT_ADMIN", "COWORK_ADMIN", "COWORK_USER", "END_USER", "SUPER_ADMIN"]
_CLIENT_ADMIN_UP = ["CLIENT_ADMIN", "COWORK_ADMIN", "COWORK_USER", "SUPER_ADMIN"]
_COWORK_USER_UP = ["COWORK_ADMIN", "COWORK_USER", "SUPER_ADMIN"]
_COWORK_ADMIN_UP = ["COWORK_ADMIN", "SUPER_ADMIN"]
_SUPER_ADMIN = ["SUPER_ADMIN"]


def _grants(view, create, update, delete):
    return {"view": view, "create": create, "update": update, "delete": delete}


_SALES = _grants(_COWORK_USER_UP, _COWORK_USER_UP, _COWORK_USER_UP, _COWORK_ADMIN_UP)
_FACILITY = _grants(_END_USER_UP, _COWORK_ADMIN_UP, _COWORK_ADMIN_UP, _COWORK_ADMIN_UP)

POLICY_ROLES = {
    "tenants": _grants(_END_USER_UP, _SUPER_ADMIN, _COWORK_ADMIN_UP, _SUPER_ADMIN),
    "users": _grants(_END_USER_UP, _COWORK_ADMIN_UP, _COWORK_ADMIN_UP, _COWORK_ADMIN_UP),
    "clients": _grants(_END_USER_UP, _COWORK_USER_UP, _COWORK_USER_UP, _COWORK_ADMIN_UP),
    "leads": _SALES,
    "opportunities": _SALES,
    "quotations": _SALES,
    "quotation_items": _SALES,
    "spaces": _FACILITY,
    "services": _FACILITY,
    "bookings": _grants(_END_USER_UP, _END_USER_UP, _END_USER_UP, _END_USER_UP),
    "access_logs": _grants(_END_USER_UP, _COWORK_USER_UP, _COWORK_ADMIN_UP, _SUPER_ADMIN),
    "invoices": _grants(_COWORK_USER_UP, _COWORK_ADMIN_UP, _COWORK_ADMIN_UP, _COWORK_ADMIN_UP),
    "memberships": _grants(_CLIENT_ADMIN_UP, _COWORK_ADMIN_UP, _COWORK_ADMIN_UP, _COWORK_ADMIN_UP),
    "activities": _SALES,
    "invitations": _grants(_CLIENT_ADMIN_UP, _CLIENT_ADMIN_UP, _COWORK_ADMIN_UP, _COWORK_ADMIN_UP),
}


def upgrade() -> None:
    for statement in render_enable_statements(POLICY_ROLES):
        op.execute(statement)


def downgrade() -> None:
    for statement in render_disable_statements(POLICY_ROLES):
        op.execute(statement)
