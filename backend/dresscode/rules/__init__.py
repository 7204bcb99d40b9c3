"""
Industry rule catalog.

Importing this package registers every industry, so the catalog is complete
before any request can be served.
"""

from dresscode.rules.base import IndustryRules, catalog, rules_for  # noqa: F401
from dresscode.rules import healthcare, construction  # noqa: F401
