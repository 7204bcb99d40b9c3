"""
Fallback generator — canned compliance results used when the reasoning
backend is unconfigured, disabled, or fails in a way the orchestrator masks.

Each industry has one compliant and one non-compliant scenario. A scenario is
picked uniformly at random and returned as a fresh ComplianceResult.
Remediation advice comes from the industry rule catalog.
"""

import random

from dresscode.rules import rules_for
from dresscode.schemas.schemas import ComplianceResult, IndustryType


def _remedy(industry: IndustryType, title: str, key: str) -> dict:
    """Recommendation whose text is the catalog remediation for `key`."""
    return {"title": title, "description": rules_for(industry).remediation[key]}

HEALTHCARE_SCENARIOS: tuple[dict, ...] = (
    {
        "isCompliant": True,
        "issues": [],
        "compliantItems": [
            {"item": "Scrubs", "description": "Clean, properly fitted blue scrubs"},
            {"item": "ID Badge", "description": "Properly displayed at chest level"},
            {"item": "Footwear", "description": "Clean white closed-toe shoes"},
            {"item": "Hair containment", "description": "Hair is properly secured and not touching collar"},
        ],
        "recommendations": [
            {
                "title": "Consider reducing jewelry",
                "description": "While your current jewelry is within acceptable limits, consider "
                               "minimizing further for infection control purposes.",
            },
        ],
    },
    {
        "isCompliant": False,
        "issues": [
            {
                "type": "missing",
                "item": "ID Badge",
                "description": "No ID badge is visible in the image or mentioned in the description",
            },
            {
                "type": "prohibited",
                "item": "Footwear",
                "description": "Open-toed sandals are not permitted in healthcare settings",
            },
        ],
        "compliantItems": [
            {"item": "Scrubs", "description": "Properly wearing clean medical scrubs"},
        ],
        "recommendations": [
            _remedy(IndustryType.HEALTHCARE, "Display ID badge", "ID badge"),
            _remedy(IndustryType.HEALTHCARE, "Change footwear", "footwear"),
        ],
    },
)

CONSTRUCTION_SCENARIOS: tuple[dict, ...] = (
    {
        "isCompliant": True,
        "issues": [],
        "compliantItems": [
            {"item": "Hard Hat", "description": "ANSI-approved yellow hard hat in good condition"},
            {"item": "High-visibility clothing", "description": "Class 2 high-visibility vest with reflective strips"},
            {"item": "Safety footwear", "description": "Steel-toed boots that meet ASTM standards"},
            {"item": "Eye protection", "description": "Safety glasses with side shields"},
            {"item": "Proper workwear", "description": "Long-sleeve shirt and full-length pants"},
        ],
        "recommendations": [
            {
                "title": "Consider adding gloves",
                "description": "While not always required, task-appropriate gloves would provide "
                               "additional protection for your hands.",
            },
        ],
    },
    {
        "isCompliant": False,
        "issues": [
            {
                "type": "missing",
                "item": "Hard Hat",
                "description": "No hard hat is visible in the image or mentioned in the description",
            },
            {
                "type": "missing",
                "item": "Eye protection",
                "description": "No safety glasses or goggles are visible or mentioned",
            },
            {
                "type": "prohibited",
                "item": "Footwear",
                "description": "Regular sneakers do not provide adequate protection for construction sites",
            },
        ],
        "compliantItems": [
            {"item": "High-visibility clothing", "description": "Properly wearing high-visibility vest"},
        ],
        "recommendations": [
            _remedy(IndustryType.CONSTRUCTION, "Wear appropriate hard hat", "hard hat"),
            _remedy(IndustryType.CONSTRUCTION, "Use proper eye protection", "eye protection"),
            _remedy(IndustryType.CONSTRUCTION, "Upgrade footwear", "footwear"),
        ],
    },
)

SCENARIOS: dict[IndustryType, tuple[dict, ...]] = {
    IndustryType.HEALTHCARE: HEALTHCARE_SCENARIOS,
    IndustryType.CONSTRUCTION: CONSTRUCTION_SCENARIOS,
}


class FallbackGenerator:
    def __init__(self, rng: random.Random | None = None):
        self._rng = rng or random.Random()

    def scenarios(self, industry: IndustryType) -> list[ComplianceResult]:
        return [ComplianceResult.model_validate(s) for s in SCENARIOS[IndustryType(industry)]]

    def generate(self, industry: IndustryType) -> ComplianceResult:
        scenario = self._rng.choice(SCENARIOS[IndustryType(industry)])
        # model_validate builds new objects, so callers never share the canned dicts
        return ComplianceResult.model_validate(scenario)
