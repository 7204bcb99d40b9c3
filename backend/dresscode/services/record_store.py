"""
Record Store — append-only log of completed compliance checks.

Each append opens its own session and commits immediately, so a stored check
does not depend on the lifetime of the request that produced it. There is no
update or delete path.
"""

import base64
from datetime import datetime, timezone

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from dresscode.models import ComplianceCheck
from dresscode.schemas.schemas import ComplianceResult, IndustryType


def utc_timestamp() -> str:
    return datetime.now(timezone.utc).isoformat()


class RecordStore:
    def __init__(self, session_factory: async_sessionmaker[AsyncSession]):
        self._session_factory = session_factory

    async def append(
        self,
        industry: IndustryType,
        result: ComplianceResult,
        image: bytes | None = None,
        description: str | None = None,
        timestamp: str | None = None,
    ) -> ComplianceCheck:
        record = ComplianceCheck(
            industry=IndustryType(industry).value,
            image_base64=base64.b64encode(image).decode("ascii") if image is not None else None,
            description=description,
            result=result.to_wire(),
            timestamp=timestamp or utc_timestamp(),
        )
        async with self._session_factory() as session:
            session.add(record)
            await session.commit()
            await session.refresh(record)
        return record

    async def get(self, record_id: int) -> ComplianceCheck | None:
        async with self._session_factory() as session:
            return await session.get(ComplianceCheck, record_id)

    async def list_by_industry(self, industry: IndustryType, limit: int = 50) -> list[ComplianceCheck]:
        async with self._session_factory() as session:
            result = await session.execute(
                select(ComplianceCheck)
                .where(ComplianceCheck.industry == IndustryType(industry).value)
                .order_by(ComplianceCheck.id.desc())
                .limit(limit)
            )
            return list(result.scalars().all())
