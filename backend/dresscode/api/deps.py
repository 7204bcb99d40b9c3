"""
API Dependencies — process-wide services and the operator guard.

The runtime settings store, reasoning client factory and record store are
created once per process. The orchestrator is assembled per request from
those shared pieces, so every check reads the latest runtime settings.

Tests replace any of these through `app.dependency_overrides`.
"""

import hmac
import logging

from fastapi import Depends, Header, HTTPException

from dresscode.config import settings
from dresscode.database import async_session
from dresscode.services.fallback import FallbackGenerator
from dresscode.services.orchestrator import ComplianceOrchestrator, ReasoningClientFactory
from dresscode.services.record_store import RecordStore
from dresscode.services.result_validator import ResultValidator
from dresscode.services.runtime_settings import RuntimeSettingsStore

logger = logging.getLogger(__name__)

_runtime_settings = RuntimeSettingsStore.from_settings(settings)
_client_factory = ReasoningClientFactory(settings)
_record_store = RecordStore(async_session)
_fallback = FallbackGenerator()
_validator = ResultValidator(strict_consistency=settings.strict_result_consistency)


def get_runtime_settings() -> RuntimeSettingsStore:
    return _runtime_settings


def get_client_factory() -> ReasoningClientFactory:
    return _client_factory


def get_record_store() -> RecordStore:
    return _record_store


def get_orchestrator(
    runtime: RuntimeSettingsStore = Depends(get_runtime_settings),
    client_factory: ReasoningClientFactory = Depends(get_client_factory),
    record_store: RecordStore = Depends(get_record_store),
) -> ComplianceOrchestrator:
    return ComplianceOrchestrator(
        runtime,
        client_factory,
        record_store,
        fallback=_fallback,
        validator=_validator,
        max_image_bytes=settings.max_image_bytes,
        mask_backend_failures=settings.mask_backend_failures,
    )


# ── Operator guard ───────────────────────────────────────────────────────────

async def require_admin(x_admin_token: str | None = Header(None)) -> None:
    """
    Guard for the operator settings endpoints.

    When ADMIN_TOKEN is unset the endpoints are open (local development).
    """
    expected = settings.admin_token
    if not expected:
        return
    if not x_admin_token or not hmac.compare_digest(x_admin_token, expected):
        logger.warning("Rejected settings request with missing or invalid admin token")
        raise HTTPException(status_code=401, detail="Invalid or missing admin token")
