"""one pending platform invitation per email

Revision ID: 0003_pending_platform_invitation
Revises: 0002_row_level_security
Create Date: 2026-10-18

uq_invitations_pending_tenant_email treats NULL tenant ids as distinct, so
it never stops two PENDING platform (tenant_id IS NULL) invitations for the
same email.
"""

from alembic import op
from sqlalchemy import text

# revision identifiers, used by Alembic.
revision = "0003_pending_platform_invitation"
down_revision = "0002_row_level_security"
branch_labels = None
depends_on = None


def upgrade() -> None:
    op.create_index(
        "uq_invitations_pending_platform_email",
        "invitations",
        ["email"],
        unique=True,
        postgresql_where=text("tenant_id IS NULL AND status = 'PENDING'"),
    )


def downgrade() -> None:
    op.drop_index("uq_invitations_pending_platform_email", table_name="invitations")
