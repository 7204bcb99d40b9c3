"""Construction site PPE: head, visibility, foot and eye protection."""

from types import MappingProxyType

from dresscode.rules.base import IndustryRules, register
from dresscode.schemas.schemas import IndustryType

CONSTRUCTION_RULES = register(IndustryRules(
    industry=IndustryType.CONSTRUCTION,
    display_name="Construction",
    required_items=(
        "hard hat",
        "high-visibility vest or clothing",
        "safety boots or shoes",
        "eye protection",
        "appropriate workwear (pants, long-sleeve shirts)",
    ),
    prohibited_items=(
        "loose clothing",
        "jewelry",
        "sandals or casual shoes",
        "shorts (on most sites)",
        "damaged protective equipment",
    ),
    recognition_guidance=(
        "Hard hat requirements (type, condition, proper wear)",
        "High-visibility clothing standards (class rating, reflective elements, condition)",
        "Safety footwear specifications (steel/composite toe, ankle support, condition)",
        "Eye protection requirements and standards",
        "Hand protection appropriate for tasks",
        "Hearing protection when required",
        "Fall protection harness requirements",
        "Proper work clothing (no loose items, proper coverage, flame-resistant when needed)",
        "Weather-appropriate layers that maintain safety standards",
    ),
    remediation=MappingProxyType({
        "hard hat": "Always wear an approved hard hat that meets ANSI/ISEA Z89.1 standards. "
                    "Replace if damaged or older than 5 years.",
        "high-visibility": "Wear a high-visibility vest or clothing that meets Class 2 or 3 based on "
                           "your work environment. Ensure it's clean and reflective strips are intact.",
        "footwear": "Use steel-toed or composite-toed boots that meet ASTM F2413 standards. "
                    "Ensure they provide ankle support and puncture resistance.",
        "eye protection": "Wear safety glasses or goggles that meet ANSI Z87.1 standards. "
                          "Consider side shields for additional protection.",
        "gloves": "Use appropriate gloves for your specific task. Cut-resistant gloves for handling "
                  "sharp materials, insulated for electrical work, etc.",
    }),
))
