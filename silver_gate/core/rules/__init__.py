"""
Per-entity cleansing rules and pipeline configuration.
"""

from datetime import date

from silver_gate.core.models import Entity

from .base_rule import (
    DUPLICATE_ID,
    DUPLICATE_RECORD,
    INVALID_DATE_SEQUENCE,
    MISSING_MANDATORY_KEY,
    NEGATIVE_AMOUNT,
    UNPARSABLE_VALUE,
    BaseRuleSet,
    Rejection,
    RuleOutcome,
)
from .coercion import UnparsableValueError
from .crm_rules import CustomerRules, ProductRules, SalesLineRules
from .erp_rules import ErpCategoryRules, ErpCustomerDemoRules, ErpLocationRules
from .rule_config import PipelineConfig, PipelineConfigLoader, load_pipeline_config

RULE_SET_REGISTRY: dict[Entity, type[BaseRuleSet]] = {
    Entity.CUSTOMER: CustomerRules,
    Entity.PRODUCT: ProductRules,
    Entity.SALES_LINE: SalesLineRules,
    Entity.ERP_CUSTOMER_DEMO: ErpCustomerDemoRules,
    Entity.ERP_LOCATION: ErpLocationRules,
    Entity.ERP_CATEGORY: ErpCategoryRules,
}


def build_rule_set(entity: Entity, config: PipelineConfig, today: date | None = None) -> BaseRuleSet:
    """Instantiate the rule set for an entity with its configured options."""
    rule_set_class = RULE_SET_REGISTRY.get(entity)
    if not rule_set_class:
        raise ValueError(f"No rule set registered for entity: {entity}")
    return rule_set_class(today=today, **config.rule_options(entity))


__all__ = [
    "BaseRuleSet",
    "RuleOutcome",
    "Rejection",
    "UnparsableValueError",
    "CustomerRules",
    "ProductRules",
    "SalesLineRules",
    "ErpCustomerDemoRules",
    "ErpLocationRules",
    "ErpCategoryRules",
    "RULE_SET_REGISTRY",
    "build_rule_set",
    "PipelineConfig",
    "PipelineConfigLoader",
    "load_pipeline_config",
    "MISSING_MANDATORY_KEY",
    "DUPLICATE_RECORD",
    "DUPLICATE_ID",
    "UNPARSABLE_VALUE",
    "NEGATIVE_AMOUNT",
    "INVALID_DATE_SEQUENCE",
]
