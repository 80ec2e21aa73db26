"""add commission rules, rule bonuses and cash payment flags

Revision ID: 7d1f3a5c9e20
Revises: 4b2e7c91d0a3
Create Date: 2026-10-19
"""

from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision = "7d1f3a5c9e20"
down_revision = "4b2e7c91d0a3"
branch_labels = None
depends_on = None

PERCENT = sa.Numeric(9, 6)
MONEY = sa.Numeric(15, 2)


def upgrade() -> None:
    op.create_table(
        "commission_rules",
        sa.Column("id", sa.Uuid(), primary_key=True, nullable=False),
        sa.Column("desarrollo", sa.String(length=255), nullable=False),
        sa.Column("rule_name", sa.String(length=500), nullable=False),
        sa.Column("periodo_type", sa.String(length=20), nullable=False),
        sa.Column("periodo_value", sa.String(length=50), nullable=False),
        sa.Column("operador", sa.String(length=10), nullable=False),
        sa.Column("unidades_vendidas", sa.Integer(), nullable=False),
        sa.Column("porcentaje_comision", PERCENT, nullable=False),
        sa.Column("porcentaje_iva", PERCENT, nullable=False, server_default="0"),
        sa.Column("activo", sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column("prioridad", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("created_by", sa.String(length=64), nullable=True),
        sa.Column("updated_by", sa.String(length=64), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.CheckConstraint(
            "periodo_type IN ('trimestre', 'mensual', 'anual')", name="ck_commission_rules_periodo_type"
        ),
        sa.CheckConstraint("operador IN ('=', '>=', '<=')", name="ck_commission_rules_operador"),
        sa.CheckConstraint("unidades_vendidas > 0", name="ck_commission_rules_unidades"),
    )
    op.create_index("ix_commission_rules_desarrollo", "commission_rules", ["desarrollo"])
    op.create_index("ix_commission_rules_activo", "commission_rules", ["activo"])
    op.create_index("ix_commission_rules_periodo", "commission_rules", ["periodo_type", "periodo_value"])

    op.create_table(
        "commission_rule_bonuses",
        sa.Column("id", sa.Uuid(), primary_key=True, nullable=False),
        sa.Column(
            "sale_id",
            sa.Uuid(),
            sa.ForeignKey("commission_sales.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("rule_id", sa.Uuid(), nullable=False),
        sa.Column("rule_name", sa.String(length=500), nullable=False),
        sa.Column("percent", PERCENT, nullable=False),
        sa.Column("amount", MONEY, nullable=False, server_default="0"),
        sa.Column("iva_amount", MONEY, nullable=False, server_default="0"),
        sa.Column("period_label", sa.String(length=20), nullable=False),
        sa.Column("units_sold", sa.Integer(), nullable=False),
        sa.Column("units_required", sa.Integer(), nullable=False),
        sa.Column("operador", sa.String(length=10), nullable=False),
        sa.Column("fulfilled", sa.Boolean(), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.UniqueConstraint("sale_id", "rule_id", name="uq_commission_rule_bonuses_sale_rule"),
    )
    op.create_index("ix_commission_rule_bonuses_sale_id", "commission_rule_bonuses", ["sale_id"])

    # cash payments carry no IVA invoice; flagged per partner phase, mirrored on distributions
    op.add_column(
        "partner_commissions",
        sa.Column("sale_phase_is_cash_payment", sa.Boolean(), nullable=False, server_default=sa.false()),
    )
    op.add_column(
        "partner_commissions",
        sa.Column("post_sale_phase_is_cash_payment", sa.Boolean(), nullable=False, server_default=sa.false()),
    )
    op.add_column(
        "commission_distributions",
        sa.Column("is_cash_payment", sa.Boolean(), nullable=False, server_default=sa.false()),
    )


def downgrade() -> None:
    op.drop_column("commission_distributions", "is_cash_payment")
    op.drop_column("partner_commissions", "post_sale_phase_is_cash_payment")
    op.drop_column("partner_commissions", "sale_phase_is_cash_payment")

    op.drop_index("ix_commission_rule_bonuses_sale_id", table_name="commission_rule_bonuses")
    op.drop_table("commission_rule_bonuses")

    op.drop_index("ix_commission_rules_periodo", table_name="commission_rules")
    op.drop_index("ix_commission_rules_activo", table_name="commission_rules")
    op.drop_index("ix_commission_rules_desarrollo", table_name="commission_rules")
    op.drop_table("commission_rules")
