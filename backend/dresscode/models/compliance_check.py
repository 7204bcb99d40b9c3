"""
Persisted compliance checks. One row per successful check; rows are never
updated or deleted by the service.
"""

from sqlalchemy import JSON, String, Text
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import Mapped, mapped_column

from dresscode.database import Base


class ComplianceCheck(Base):
    __tablename__ = "compliance_checks"

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    industry: Mapped[str] = mapped_column(String(20), index=True)
    image_base64: Mapped[str | None] = mapped_column(Text, nullable=True)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    result: Mapped[dict] = mapped_column(JSON().with_variant(JSONB, "postgresql"))
    timestamp: Mapped[str] = mapped_column(String(40))  # ISO-8601, UTC
