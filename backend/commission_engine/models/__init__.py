# Import models here so Alembic can discover metadata.
from commission_engine.models.commission_config import CommissionConfig, CommissionGlobalConfig  # noqa: F401
from commission_engine.models.commission_sale import CommissionSale  # noqa: F401

# Engine output: staff distributions + their audit trail
from commission_engine.models.commission_distribution import CommissionDistribution  # noqa: F401
from commission_engine.models.commission_adjustment import CommissionAdjustment  # noqa: F401

# Capital partners ("socios") and their commissions
from commission_engine.models.partner import PartnerCommission, ProductPartner  # noqa: F401

# Volume rules per development and what they paid on each sale
from commission_engine.models.commission_rule import CommissionRule, CommissionRuleBonus  # noqa: F401
