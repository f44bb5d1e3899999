"""create pricing_rules table

Revision ID: b2d4f6h8j0l2
Revises: a1c3e5g7i9k1
Create Date: 2026-10-01 00:00:01.000000

"""

import sqlalchemy as sa
from alembic import op

# revision identifiers, used by Alembic.
revision = "b2d4f6h8j0l2"
down_revision = "a1c3e5g7i9k1"
branch_labels = None
depends_on = None


def upgrade() -> None:
    op.create_table(
        "pricing_rules",
        sa.Column("id", sa.String(length=36), nullable=False),
        sa.Column("organization_id", sa.String(length=36), nullable=False),
        sa.Column("name", sa.String(length=255), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("rule_type", sa.String(length=30), nullable=False),
        sa.Column("priority", sa.Integer(), nullable=False, server_default="10"),
        sa.Column("position", sa.Integer(), nullable=False),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default="1"),
        sa.Column("is_stackable", sa.Boolean(), nullable=False, server_default="1"),
        sa.Column("start_date", sa.DateTime(timezone=True), nullable=False),
        sa.Column("end_date", sa.DateTime(timezone=True), nullable=True),
        sa.Column("max_usages", sa.Integer(), nullable=True),
        sa.Column("usage_count", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("conditions", sa.JSON(), nullable=False),
        sa.Column("actions", sa.JSON(), nullable=False),
        sa.Column("tags", sa.JSON(), nullable=False),
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
        sa.ForeignKeyConstraint(["organization_id"], ["organizations.id"], ondelete="RESTRICT"),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("organization_id", "position", name="uq_pricing_rules_org_position"),
    )
    op.create_index("ix_pricing_rules_organization_id", "pricing_rules", ["organization_id"])
    op.create_index("ix_pricing_rules_rule_type", "pricing_rules", ["rule_type"])
    op.create_index("ix_pricing_rules_is_active", "pricing_rules", ["is_active"])


def downgrade() -> None:
    op.drop_index("ix_pricing_rules_is_active", table_name="pricing_rules")
    op.drop_index("ix_pricing_rules_rule_type", table_name="pricing_rules")
    op.drop_index("ix_pricing_rules_organization_id", table_name="pricing_rules")
    op.drop_table("pricing_rules")
