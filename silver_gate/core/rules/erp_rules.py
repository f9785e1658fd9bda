"""
ERP rule sets: customer demographics, locations and product categories.

ERP identifiers are cleaned so they line up with the CRM customer key
(e.g. "NASAW00011000" and "AW-00011000" both become "AW00011000").
"""

from silver_gate.core.models import (
    Entity,
    ErpCategory,
    ErpCustomerDemo,
    ErpLocation,
    RawRecord,
)

from .base_rule import MISSING_MANDATORY_KEY, BaseRuleSet, RuleOutcome
from .coercion import clean_text, map_code, to_date, years_before

ERP_GENDER_CODES = {"M": "Male", "MALE": "Male", "F": "Female", "FEMALE": "Female"}
COUNTRY_CODES = {"US": "United States", "USA": "United States", "DE": "Germany"}

LEGACY_ID_PREFIX = "NAS"


def strip_legacy_prefix(cid: str) -> str:
    """Drop the legacy "NAS" prefix and the separator it may leave behind."""
    if cid.startswith(LEGACY_ID_PREFIX):
        cid = cid[len(LEGACY_ID_PREFIX):].lstrip("-").strip()
    return cid


class ErpCustomerDemoRules(BaseRuleSet):
    """
    Cleans ERP customer demographics.

    Options:
        max_age_years: Oldest plausible birth date, in years before today (default 120)
    """

    entity = Entity.ERP_CUSTOMER_DEMO
    mandatory_fields = ("cid",)

    def normalize(self, raw: RawRecord) -> RuleOutcome:
        missing = self.missing_key(raw)
        if missing:
            return RuleOutcome(rejection=missing)

        cid = strip_legacy_prefix(clean_text(raw.get("cid")))
        if not cid:
            return RuleOutcome.reject("cid", MISSING_MANDATORY_KEY)

        return RuleOutcome.accept(ErpCustomerDemo(
            cid=cid,
            bdate=self._plausible_birth_date(raw.get("bdate")),
            gen=map_code(raw.get("gen"), ERP_GENDER_CODES),
        ))

    def _plausible_birth_date(self, value: str | None):
        """Birth dates in the future or beyond max_age_years are nulled."""
        bdate = to_date("bdate", value)
        if bdate is None:
            return None
        earliest = years_before(self.today, self.options.get("max_age_years", 120))
        if bdate > self.today or bdate < earliest:
            return None
        return bdate


class ErpLocationRules(BaseRuleSet):
    """Cleans ERP locations: hyphen-free ids and spelled-out country names."""

    entity = Entity.ERP_LOCATION
    mandatory_fields = ("cid",)

    def normalize(self, raw: RawRecord) -> RuleOutcome:
        missing = self.missing_key(raw)
        if missing:
            return RuleOutcome(rejection=missing)

        cid = clean_text(raw.get("cid")).replace("-", "")
        if not cid:
            return RuleOutcome.reject("cid", MISSING_MANDATORY_KEY)

        country = clean_text(raw.get("cntry"))
        if country is None:
            country = "n/a"
        else:
            country = COUNTRY_CODES.get(country.upper(), country)

        return RuleOutcome.accept(ErpLocation(cid=cid, cntry=country))


class ErpCategoryRules(BaseRuleSet):
    """Cleans ERP product categories (trim only)."""

    entity = Entity.ERP_CATEGORY
    mandatory_fields = ("id",)

    def normalize(self, raw: RawRecord) -> RuleOutcome:
        missing = self.missing_key(raw)
        if missing:
            return RuleOutcome(rejection=missing)

        return RuleOutcome.accept(ErpCategory(
            id=clean_text(raw.get("id")),
            cat=clean_text(raw.get("cat")),
            subcat=clean_text(raw.get("subcat")),
            maintenance=clean_text(raw.get("maintenance")),
        ))
