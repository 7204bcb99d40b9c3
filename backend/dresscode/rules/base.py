"""
Base definitions for industry dress-code rules.

Every industry module defines one IndustryRules instance and registers it
with `register()`. The catalog is populated at import time and is read-only
afterwards.
"""

from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Mapping

from dresscode.errors import UnknownIndustry
from dresscode.schemas.schemas import IndustryType


@dataclass(frozen=True)
class IndustryRules:
    """Required/prohibited items and remediation text for one industry."""
    industry: IndustryType
    display_name: str
    required_items: tuple[str, ...]
    prohibited_items: tuple[str, ...]
    recognition_guidance: tuple[str, ...] = ()
    remediation: Mapping[str, str] = field(default_factory=dict)

    def as_dict(self) -> dict:
        return {
            "requiredItems": list(self.required_items),
            "prohibitedItems": list(self.prohibited_items),
        }


_CATALOG: dict[IndustryType, IndustryRules] = {}


def register(rules: IndustryRules) -> IndustryRules:
    if rules.industry in _CATALOG:
        raise ValueError(f"Rules for {rules.industry.value} already registered")
    _CATALOG[rules.industry] = rules
    return rules


def rules_for(industry: IndustryType | str) -> IndustryRules:
    """Return the rules for an industry; raises UnknownIndustry if none are registered."""
    try:
        key = IndustryType(industry)
    except ValueError:
        raise UnknownIndustry(f"Unknown industry: {industry}") from None
    try:
        return _CATALOG[key]
    except KeyError:
        raise UnknownIndustry(f"No rules registered for industry: {key.value}") from None


def catalog() -> Mapping[IndustryType, IndustryRules]:
    return MappingProxyType(_CATALOG)
