from dresscode.models.compliance_check import ComplianceCheck  # noqa: F401
