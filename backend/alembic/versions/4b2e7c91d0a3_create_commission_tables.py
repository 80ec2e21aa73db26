"""create commission tables

Revision ID: 4b2e7c91d0a3
Revises:
Create Date: 2026-10-19
"""

import uuid

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

# revision identifiers, used by Alembic.
revision = "4b2e7c91d0a3"
down_revision = None
branch_labels = None
depends_on = None

JSON_TYPE = sa.JSON().with_variant(postgresql.JSONB(), "postgresql")
PERCENT = sa.Numeric(9, 6)
MONEY = sa.Numeric(15, 2)


def _timestamps(*names: str) -> list[sa.Column]:
    return [
        sa.Column(name, sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False)
        for name in names
    ]


def upgrade() -> None:
    # -----------------------------------------------------
    # 1) Configuration
    # -----------------------------------------------------
    op.create_table(
        "commission_configs",
        sa.Column("id", sa.Uuid(), primary_key=True, nullable=False),
        sa.Column("desarrollo", sa.String(length=255), nullable=False),
        sa.Column("phase_sale_percent", PERCENT, nullable=False),
        sa.Column("phase_post_sale_percent", PERCENT, nullable=False),
        sa.Column("sale_pool_total_percent", PERCENT, nullable=False),
        sa.Column("sale_manager_percent", PERCENT, nullable=False),
        sa.Column("deal_owner_percent", PERCENT, nullable=False),
        sa.Column("external_advisor_percent", PERCENT, nullable=True),
        sa.Column("redistribute_unused_pool", sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column("operations_coordinator_percent", PERCENT, nullable=True),
        sa.Column("marketing_percent", PERCENT, nullable=True),
        sa.Column("legal_manager_percent", PERCENT, nullable=False),
        sa.Column("post_sale_coordinator_percent", PERCENT, nullable=False),
        sa.Column("customer_service_enabled", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("customer_service_percent", PERCENT, nullable=True),
        sa.Column("deliveries_enabled", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("deliveries_percent", PERCENT, nullable=True),
        sa.Column("bonds_enabled", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("bonds_percent", PERCENT, nullable=True),
        sa.Column("created_by", sa.String(length=64), nullable=True),
        sa.Column("updated_by", sa.String(length=64), nullable=True),
        *_timestamps("created_at", "updated_at"),
    )
    op.create_index("ix_commission_configs_desarrollo", "commission_configs", ["desarrollo"], unique=True)

    op.create_table(
        "commission_global_configs",
        sa.Column("id", sa.Uuid(), primary_key=True, nullable=False),
        sa.Column("config_key", sa.String(length=100), nullable=False, unique=True),
        sa.Column("config_value", PERCENT, nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("updated_by", sa.String(length=64), nullable=True),
        *_timestamps("updated_at"),
    )

    # -----------------------------------------------------
    # 2) Sales
    # -----------------------------------------------------
    op.create_table(
        "commission_sales",
        sa.Column("id", sa.Uuid(), primary_key=True, nullable=False),
        sa.Column("external_deal_id", sa.String(length=255), nullable=False),
        sa.Column("deal_name", sa.String(length=500), nullable=True),
        sa.Column("cliente_nombre", sa.String(length=500), nullable=True),
        sa.Column("desarrollo", sa.String(length=255), nullable=False),
        sa.Column("producto", sa.String(length=500), nullable=True),
        sa.Column("propietario_deal", sa.String(length=255), nullable=False),
        sa.Column("propietario_deal_id", sa.String(length=255), nullable=True),
        sa.Column("asesor_externo", sa.String(length=255), nullable=True),
        sa.Column("asesor_externo_id", sa.String(length=255), nullable=True),
        sa.Column("metros_cuadrados", sa.Numeric(10, 2), nullable=False),
        sa.Column("precio_por_m2", MONEY, nullable=False),
        sa.Column("valor_total", MONEY, nullable=False),
        sa.Column("fecha_firma", sa.Date(), nullable=False),
        sa.Column("commission_rate_percent", PERCENT, nullable=True),
        sa.Column("commission_calculated", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("commission_total", MONEY, nullable=False, server_default="0"),
        sa.Column("commission_sale_phase", MONEY, nullable=False, server_default="0"),
        sa.Column("commission_post_sale_phase", MONEY, nullable=False, server_default="0"),
        sa.Column("commission_unallocated", MONEY, nullable=False, server_default="0"),
        sa.Column("calculated_phase_sale_percent", PERCENT, nullable=True),
        sa.Column("calculated_phase_post_sale_percent", PERCENT, nullable=True),
        sa.Column("config_snapshot", JSON_TYPE, nullable=True),
        sa.Column("calculated_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("calculated_by", sa.String(length=64), nullable=True),
        *_timestamps("synced_at", "created_at", "updated_at"),
    )
    op.create_index("ix_commission_sales_external_deal_id", "commission_sales", ["external_deal_id"], unique=True)
    op.create_index("ix_commission_sales_desarrollo", "commission_sales", ["desarrollo"])
    op.create_index("ix_commission_sales_propietario_deal", "commission_sales", ["propietario_deal"])
    op.create_index("ix_commission_sales_fecha_firma", "commission_sales", ["fecha_firma"])
    op.create_index("ix_commission_sales_commission_calculated", "commission_sales", ["commission_calculated"])
    op.create_index("ix_commission_sales_desarrollo_fecha", "commission_sales", ["desarrollo", "fecha_firma"])

    # -----------------------------------------------------
    # 3) Staff distributions + adjustment trail
    # -----------------------------------------------------
    op.create_table(
        "commission_distributions",
        sa.Column("id", sa.Uuid(), primary_key=True, nullable=False),
        sa.Column(
            "sale_id",
            sa.Uuid(),
            sa.ForeignKey("commission_sales.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("role_type", sa.String(length=50), nullable=False),
        sa.Column("person_name", sa.String(length=255), nullable=False),
        sa.Column("person_id", sa.String(length=255), nullable=True),
        sa.Column("phase", sa.String(length=20), nullable=False),
        sa.Column("percent_assigned", PERCENT, nullable=False),
        sa.Column("role_percent", PERCENT, nullable=False),
        sa.Column("percent_basis", sa.String(length=10), nullable=False),
        sa.Column("amount_calculated", MONEY, nullable=False, server_default="0"),
        sa.Column("collection_status", sa.String(length=20), nullable=False, server_default="pending_invoice"),
        sa.Column("collected_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("status_updated_by", sa.String(length=64), nullable=True),
        *_timestamps("created_at", "updated_at"),
        sa.UniqueConstraint("sale_id", "role_type", "phase", name="uq_commission_distributions_sale_role_phase"),
    )
    op.create_index("ix_commission_distributions_sale_id", "commission_distributions", ["sale_id"])
    op.create_index("ix_commission_distributions_role_type", "commission_distributions", ["role_type"])
    op.create_index("ix_commission_distributions_phase", "commission_distributions", ["phase"])

    op.create_table(
        "commission_adjustments",
        sa.Column("id", sa.Uuid(), primary_key=True, nullable=False),
        sa.Column(
            "distribution_id",
            sa.Uuid(),
            sa.ForeignKey("commission_distributions.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column(
            "sale_id",
            sa.Uuid(),
            sa.ForeignKey("commission_sales.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("adjustment_type", sa.String(length=30), nullable=False),
        sa.Column("old_value", sa.Numeric(15, 6), nullable=True),
        sa.Column("new_value", sa.Numeric(15, 6), nullable=True),
        sa.Column("old_role_type", sa.String(length=50), nullable=True),
        sa.Column("new_role_type", sa.String(length=50), nullable=True),
        sa.Column("old_amount", MONEY, nullable=False),
        sa.Column("new_amount", MONEY, nullable=False),
        sa.Column("amount_impact", MONEY, nullable=False),
        sa.Column("adjusted_by", sa.String(length=64), nullable=False),
        sa.Column("adjusted_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.Column("reason", sa.Text(), nullable=True),
        sa.Column("notes", sa.Text(), nullable=True),
    )
    op.create_index("ix_commission_adjustments_distribution_id", "commission_adjustments", ["distribution_id"])
    op.create_index("ix_commission_adjustments_adjusted_by", "commission_adjustments", ["adjusted_by"])
    op.create_index("ix_commission_adjustments_sale_adjusted", "commission_adjustments", ["sale_id", "adjusted_at"])

    # -----------------------------------------------------
    # 4) Capital partners
    # -----------------------------------------------------
    op.create_table(
        "commission_product_partners",
        sa.Column("id", sa.Uuid(), primary_key=True, nullable=False),
        sa.Column(
            "commission_sale_id",
            sa.Uuid(),
            sa.ForeignKey("commission_sales.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("product_id", sa.String(length=255), nullable=True),
        sa.Column("socio_name", sa.String(length=500), nullable=False),
        sa.Column("participacion", PERCENT, nullable=False, server_default="0"),
        *_timestamps("synced_at", "created_at"),
        sa.UniqueConstraint("commission_sale_id", "socio_name", name="uq_product_partners_sale_socio"),
    )
    op.create_index(
        "ix_commission_product_partners_commission_sale_id", "commission_product_partners", ["commission_sale_id"]
    )
    op.create_index("ix_commission_product_partners_product_id", "commission_product_partners", ["product_id"])

    op.create_table(
        "partner_commissions",
        sa.Column("id", sa.Uuid(), primary_key=True, nullable=False),
        sa.Column(
            "commission_sale_id",
            sa.Uuid(),
            sa.ForeignKey("commission_sales.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("socio_name", sa.String(length=500), nullable=False),
        sa.Column("participacion", PERCENT, nullable=False),
        sa.Column("sale_phase_amount", MONEY, nullable=False, server_default="0"),
        sa.Column("post_sale_phase_amount", MONEY, nullable=False, server_default="0"),
        sa.Column("total_commission_amount", MONEY, nullable=False, server_default="0"),
        sa.Column(
            "sale_phase_collection_status", sa.String(length=20), nullable=False, server_default="pending_invoice"
        ),
        sa.Column(
            "post_sale_phase_collection_status", sa.String(length=20), nullable=False, server_default="pending_invoice"
        ),
        sa.Column("sale_phase_collected_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("post_sale_phase_collected_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("calculated_by", sa.String(length=64), nullable=True),
        sa.Column("updated_by", sa.String(length=64), nullable=True),
        *_timestamps("calculated_at", "updated_at"),
        sa.UniqueConstraint("commission_sale_id", "socio_name", name="uq_partner_commissions_sale_socio"),
    )
    op.create_index("ix_partner_commissions_commission_sale_id", "partner_commissions", ["commission_sale_id"])
    op.create_index(
        "ix_partner_commissions_sale_phase_collection_status", "partner_commissions", ["sale_phase_collection_status"]
    )
    op.create_index(
        "ix_partner_commissions_post_sale_phase_collection_status",
        "partner_commissions",
        ["post_sale_phase_collection_status"],
    )

    # -----------------------------------------------------
    # 5) Seed global indirect-role overrides at 0
    # -----------------------------------------------------
    global_configs = sa.table(
        "commission_global_configs",
        sa.column("id", sa.Uuid()),
        sa.column("config_key", sa.String()),
        sa.column("config_value", PERCENT),
        sa.column("description", sa.Text()),
    )
    op.bulk_insert(
        global_configs,
        [
            {
                "id": uuid.UUID("6f0d2a4e-3c1b-4d8e-9a57-0b1e2c3d4f01"),
                "config_key": "operations_coordinator_percent",
                "config_value": 0,
                "description": "Coordinador de Operaciones de Venta, % of total commission",
            },
            {
                "id": uuid.UUID("6f0d2a4e-3c1b-4d8e-9a57-0b1e2c3d4f02"),
                "config_key": "marketing_percent",
                "config_value": 0,
                "description": "Gerente de Marketing, % of total commission",
            },
        ],
    )


def downgrade() -> None:
    op.drop_table("partner_commissions")
    op.drop_table("commission_product_partners")
    op.drop_table("commission_adjustments")
    op.drop_table("commission_distributions")
    op.drop_index("ix_commission_sales_desarrollo_fecha", table_name="commission_sales")
    op.drop_table("commission_sales")
    op.drop_table("commission_global_configs")
    op.drop_index("ix_commission_configs_desarrollo", table_name="commission_configs")
    op.drop_table("commission_configs")
