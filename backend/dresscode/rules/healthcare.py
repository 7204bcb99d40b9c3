"""Healthcare dress code: clinical uniforms, footwear, identification, hygiene."""

from types import MappingProxyType

from dresscode.rules.base import IndustryRules, register
from dresscode.schemas.schemas import IndustryType

HEALTHCARE_RULES = register(IndustryRules(
    industry=IndustryType.HEALTHCARE,
    display_name="Healthcare",
    required_items=(
        "scrubs or medical uniform",
        "closed-toe shoes",
        "ID badge",
        "clean uniform",
        "hair containment (if applicable)",
    ),
    prohibited_items=(
        "open-toed shoes",
        "excessive jewelry",
        "long nails",
        "strong perfume/cologne",
        "casual clothing (jeans, t-shirts)",
    ),
    recognition_guidance=(
        "Medical uniform/scrubs standards (color, fit, cleanliness, condition)",
        "Proper footwear (closed-toe, non-slip, clean, professional)",
        "ID badge placement and visibility",
        "Hair containment and coverage requirements",
        "Jewelry restrictions (minimal, secure, non-dangling)",
        "Nail length and polish regulations",
        "PPE requirements for specific roles (masks, gloves, eye protection)",
        "Professional appearance standards",
    ),
    remediation=MappingProxyType({
        "ID badge": "Ensure your ID badge is visible and properly displayed at chest level. "
                    "Contact your department administrator if you need a replacement.",
        "footwear": "Switch to closed-toe, non-slip shoes that meet healthcare facility guidelines. "
                    "Athletic shoes with leather uppers are recommended.",
        "hair": "Hair should be pulled back and secured above the collar. "
                "Use hair ties or clips to ensure proper containment.",
        "jewelry": "Remove excessive jewelry. Only simple rings, studs, and professional watches "
                   "are typically allowed.",
        "uniform": "Ensure your scrubs or medical uniform is clean, wrinkle-free, and fits properly. "
                   "Replace worn or stained items.",
    }),
))
