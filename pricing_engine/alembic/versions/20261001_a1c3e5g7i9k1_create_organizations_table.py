"""create organizations table

Revision ID: a1c3e5g7i9k1
Revises:
Create Date: 2026-10-01 00:00:00.000000

"""

import sqlalchemy as sa
from alembic import op

# revision identifiers, used by Alembic.
revision = "a1c3e5g7i9k1"
down_revision = None
branch_labels = None
depends_on = None

# Known default organization ID, served when no tenant header is sent
DEFAULT_ORG_ID = "00000000-0000-0000-0000-000000000001"


def upgrade() -> None:
    op.create_table(
        "organizations",
        sa.Column("id", sa.String(length=36), nullable=False),
        sa.Column("name", sa.String(length=255), nullable=False),
        sa.Column("default_currency", sa.String(length=3), nullable=False, server_default="USD"),
        sa.Column("timezone", sa.String(length=50), nullable=False, server_default="UTC"),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            server_default=sa.text("(CURRENT_TIMESTAMP)"),
        ),
        sa.Column(
            "updated_at",
            sa.DateTime(timezone=True),
            server_default=sa.text("(CURRENT_TIMESTAMP)"),
        ),
        sa.PrimaryKeyConstraint("id"),
    )
    op.execute(
        sa.text(
            "INSERT INTO organizations (id, name, default_currency, timezone) "
            "VALUES (:id, 'Default Organization', 'USD', 'UTC')"
        ).bindparams(id=DEFAULT_ORG_ID)
    )


def downgrade() -> None:
    op.drop_table("organizations")
