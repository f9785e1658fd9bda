"""
Pipeline configuration management.

Loads quality-gate options from YAML files into a validated PipelineConfig.
"""

from pathlib import Path
from typing import Any, Literal

import yaml
from pydantic import BaseModel, Field, field_validator

from silver_gate.core.models import ENTITY_ORDER, Entity


class PipelineConfig(BaseModel):
    """
    Options that shape one batch run.

    Attributes:
        entity_order: Entities to process, in order
        on_unparsable: "fail" aborts the entity (nothing published) and the run;
                       "quarantine" sends the row to quarantine and continues
        enforce_date_sequence: Quarantine sales lines ordered after ship/due date
        max_customer_age_years: Oldest plausible ERP birth date
        bronze_schema: Staging schema name
        silver_schema: Cleansed schema name
    """

    entity_order: list[Entity] = Field(default_factory=lambda: list(ENTITY_ORDER), min_length=1)
    on_unparsable: Literal["fail", "quarantine"] = "fail"
    enforce_date_sequence: bool = True
    max_customer_age_years: int = Field(120, gt=0)
    bronze_schema: str = Field("bronze", pattern=r"^[a-z_][a-z0-9_]*$")
    silver_schema: str = Field("silver", pattern=r"^[a-z_][a-z0-9_]*$")

    @field_validator("entity_order")
    @classmethod
    def check_unique_entities(cls, v):
        """Validate that no entity is listed twice."""
        if len(set(v)) != len(v):
            raise ValueError("entity_order must not list an entity twice")
        return v

    def rule_options(self, entity: Entity) -> dict[str, Any]:
        """Rule-set options relevant to one entity."""
        if entity is Entity.SALES_LINE:
            return {"enforce_date_sequence": self.enforce_date_sequence}
        if entity is Entity.ERP_CUSTOMER_DEMO:
            return {"max_age_years": self.max_customer_age_years}
        return {}


class PipelineConfigLoader:
    """
    Loads pipeline options from a YAML configuration file.

    Expected YAML format:
    ```yaml
    pipeline:
      entity_order:
        - crm_cust_info
        - crm_prd_info
      on_unparsable: fail
      enforce_date_sequence: true
      max_customer_age_years: 120
      schemas:
        bronze: bronze
        silver: silver
    ```
    """

    def __init__(self, config_path: str | Path):
        """
        Initialize the config loader.

        Args:
            config_path: Path to the YAML configuration file
        """
        self.config_path = Path(config_path)
        if not self.config_path.exists():
            raise FileNotFoundError(f"Pipeline configuration file not found: {config_path}")

    def load(self) -> PipelineConfig:
        """
        Load and validate pipeline options.

        Returns:
            PipelineConfig

        Raises:
            ValueError: If YAML is invalid or missing the pipeline section
        """
        with open(self.config_path) as f:
            config = yaml.safe_load(f)

        if not config or "pipeline" not in config:
            raise ValueError("Configuration file must contain 'pipeline' section")

        section = dict(config["pipeline"] or {})
        schemas = section.pop("schemas", None) or {}
        if not isinstance(schemas, dict):
            raise ValueError("'schemas' must be a mapping of layer name to schema name")
        if "bronze" in schemas:
            section["bronze_schema"] = schemas["bronze"]
        if "silver" in schemas:
            section["silver_schema"] = schemas["silver"]

        return PipelineConfig(**section)


def load_pipeline_config(config_path: str | Path | None = None) -> PipelineConfig:
    """
    Load pipeline options, falling back to defaults when no file is given.

    Args:
        config_path: Optional YAML path

    Returns:
        PipelineConfig
    """
    if config_path is None:
        return PipelineConfig()
    return PipelineConfigLoader(config_path).load()
