# commission_engine/core/enums.py

from __future__ import annotations

import enum


class Phase(str, enum.Enum):
    SALE = "sale"            # paid on signing
    POST_SALE = "post_sale"  # paid on delivery / closeout

    @classmethod
    def parse(cls, value: "str | Phase") -> "Phase":
        """
        Accepts the canonical values plus the legacy spellings still sent by
        older clients: sale_phase / post_sale_phase / sale-phase / post-sale-phase.
        """
        if isinstance(value, Phase):
            return value
        v = (value or "").strip().lower().replace("-", "_")
        if v.endswith("_phase"):
            v = v[: -len("_phase")]
        try:
            return cls(v)
        except ValueError:
            raise ValueError(f"Unknown phase {value!r}. Allowed: sale, post_sale") from None


class RoleType(str, enum.Enum):
    # sale phase, direct (pool)
    SALE_MANAGER = "sale_manager"
    DEAL_OWNER = "deal_owner"
    EXTERNAL_ADVISOR = "external_advisor"
    # sale phase, indirect (percent of total commission)
    OPERATIONS_COORDINATOR = "operations_coordinator"
    MARKETING = "marketing"
    # post-sale phase
    LEGAL_MANAGER = "legal_manager"
    POST_SALE_COORDINATOR = "post_sale_coordinator"
    CUSTOMER_SERVICE = "customer_service"
    DELIVERIES = "deliveries"
    BONDS = "bonds"


class PercentBasis(str, enum.Enum):
    POOL = "pool"
    PHASE = "phase"
    TOTAL = "total"


class AdjustmentType(str, enum.Enum):
    PERCENT_CHANGE = "percent_change"
    AMOUNT_CHANGE = "amount_change"
    ROLE_CHANGE = "role_change"


class CollectionStatus(str, enum.Enum):
    PENDING_INVOICE = "pending_invoice"
    INVOICED = "invoiced"
    COLLECTED = "collected"


class PeriodType(str, enum.Enum):
    QUARTER = "trimestre"
    MONTH = "mensual"
    YEAR = "anual"


class RuleOperator(str, enum.Enum):
    EQ = "="
    GTE = ">="
    LTE = "<="


ROLE_DISPLAY_NAMES: dict[RoleType, str] = {
    RoleType.SALE_MANAGER: "Gerente de Ventas",
    RoleType.DEAL_OWNER: "Asesor Interno",
    RoleType.EXTERNAL_ADVISOR: "Asesor Externo",
    RoleType.OPERATIONS_COORDINATOR: "Coordinador de Operaciones de Venta",
    RoleType.MARKETING: "Gerente de Marketing",
    RoleType.LEGAL_MANAGER: "Gerente Legal",
    RoleType.POST_SALE_COORDINATOR: "Coordinador Postventas",
    RoleType.CUSTOMER_SERVICE: "Atención a Clientes",
    RoleType.DELIVERIES: "Entregas",
    RoleType.BONDS: "Fianzas",
}


# Roles that can hold a distribution in each phase
PHASE_ROLES: dict[Phase, frozenset[RoleType]] = {
    Phase.SALE: frozenset(
        {
            RoleType.SALE_MANAGER,
            RoleType.DEAL_OWNER,
            RoleType.EXTERNAL_ADVISOR,
            RoleType.OPERATIONS_COORDINATOR,
            RoleType.MARKETING,
        }
    ),
    Phase.POST_SALE: frozenset(
        {
            RoleType.LEGAL_MANAGER,
            RoleType.POST_SALE_COORDINATOR,
            RoleType.CUSTOMER_SERVICE,
            RoleType.DELIVERIES,
            RoleType.BONDS,
        }
    ),
}
