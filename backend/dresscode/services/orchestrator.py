"""
Compliance Orchestrator — runs one compliance check end to end.

    request → validate → pick backend (live reasoning client | fallback)
            → Result Validator → Record Store → ComplianceResult

Backend selection is re-read from the runtime settings store on every call.
Failures of the live backend are either masked by a fallback result or
translated into an OrchestrationError; nothing else leaves `check()`.

Masking policy:
    Unconfigured, quota exhaustion, contract violation  → fallback
    timeout, malformed reply, other unavailability      → 503, or fallback
                                                          when mask_backend_failures
    payload too large                                   → 413
"""

import asyncio
import logging
from dataclasses import dataclass
from enum import Enum
from typing import Awaitable, Callable

import httpx

from dresscode.config import Settings
from dresscode.errors import (
    BackendContractViolation,
    BackendPayloadTooLarge,
    InvalidRequest,
    MalformedReply,
    PayloadTooLarge,
    ReasoningError,
    ReasoningTimeout,
    ServiceUnavailable,
    ShapeError,
    Unavailable,
    Unconfigured,
)
from dresscode.middleware.metrics import (
    compliance_checks_total,
    fallback_substitutions_total,
    record_store_failures_total,
)
from dresscode.schemas.schemas import ComplianceResult, IndustryType
from dresscode.services.fallback import FallbackGenerator
from dresscode.services.reasoning_client import ReasoningClient
from dresscode.services.record_store import RecordStore
from dresscode.services.result_validator import ResultValidator
from dresscode.services.runtime_settings import RuntimeConfig, RuntimeSettingsStore

logger = logging.getLogger(__name__)

INVALID_INDUSTRY_MESSAGE = "Invalid industry. Please select a valid industry (healthcare or construction)."
MISSING_INPUT_MESSAGE = "Either image or description must be provided"


@dataclass(frozen=True)
class ComplianceRequest:
    industry: IndustryType | str
    image: bytes | None = None
    reference_images: tuple[bytes, ...] = ()
    description: str | None = None


class ResultSource(str, Enum):
    LIVE = "live"
    FALLBACK = "fallback"


@dataclass
class CheckOutcome:
    result: ComplianceResult
    source: ResultSource
    record_id: int | None = None
    substitution_reason: str | None = None


class ReasoningClientFactory:
    """Builds reasoning clients for the current credential, reusing one per key."""

    def __init__(
        self,
        settings: Settings,
        transport: httpx.AsyncBaseTransport | None = None,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ):
        self.settings = settings
        self._transport = transport
        self._sleep = sleep
        self._client: ReasoningClient | None = None

    def for_config(self, config: RuntimeConfig) -> ReasoningClient:
        client = self._client
        if client is None or client.api_key != config.api_key:
            client = ReasoningClient(
                config.api_key,
                base_url=self.settings.openai_base_url,
                model=self.settings.llm_model,
                mode=self.settings.reasoning_mode,
                timeout=self.settings.reasoning_timeout,
                max_tokens=self.settings.reasoning_max_tokens,
                poll_initial_delay=self.settings.reasoning_poll_initial_delay,
                poll_max_retries=self.settings.reasoning_poll_max_retries,
                transport=self._transport,
                sleep=self._sleep,
            )
            self._client = client
            logger.info("Reasoning client ready (mode=%s key=%s)", client.mode, client.fingerprint)
        return client


class ComplianceOrchestrator:
    def __init__(
        self,
        runtime: RuntimeSettingsStore,
        client_factory: ReasoningClientFactory,
        record_store: RecordStore,
        fallback: FallbackGenerator | None = None,
        validator: ResultValidator | None = None,
        *,
        max_image_bytes: int = 20 * 1024 * 1024,
        mask_backend_failures: bool = False,
    ):
        self.runtime = runtime
        self.client_factory = client_factory
        self.record_store = record_store
        self.fallback = fallback or FallbackGenerator()
        self.validator = validator or ResultValidator()
        self.max_image_bytes = max_image_bytes
        self.mask_backend_failures = mask_backend_failures

    # ------------------------------------------------------------------
    # public API
    # ------------------------------------------------------------------

    async def check(self, request: ComplianceRequest) -> ComplianceResult:
        return (await self.run(request)).result

    async def run(self, request: ComplianceRequest) -> CheckOutcome:
        industry, image, reference_images, description = self._validate_request(request)

        config = self.runtime.current()
        if config.use_live_backend:
            outcome = await self._run_live(config, industry, image, reference_images, description)
        else:
            reason = "disabled" if config.use_fallback else "unconfigured"
            logger.info("Using fallback result for %s check (%s)", industry.value, reason)
            outcome = CheckOutcome(
                result=self._fallback_result(industry),
                source=ResultSource.FALLBACK,
                substitution_reason=reason,
            )

        outcome.record_id = await self._persist(industry, outcome.result, image, description)
        compliance_checks_total.labels(
            industry=industry.value,
            source=outcome.source.value,
            outcome="compliant" if outcome.result.is_compliant else "non_compliant",
        ).inc()
        return outcome

    # ------------------------------------------------------------------
    # request validation
    # ------------------------------------------------------------------

    def _validate_request(
        self, request: ComplianceRequest,
    ) -> tuple[IndustryType, bytes | None, list[bytes], str | None]:
        try:
            industry = IndustryType(request.industry)
        except ValueError:
            raise InvalidRequest(INVALID_INDUSTRY_MESSAGE) from None

        image = request.image or None
        description = (request.description or "").strip() or None
        if image is None and description is None:
            raise InvalidRequest(MISSING_INPUT_MESSAGE)

        reference_images = [img for img in request.reference_images if img]
        for img in ([image] if image else []) + reference_images:
            if len(img) > self.max_image_bytes:
                raise PayloadTooLarge()
        return industry, image, reference_images, description

    # ------------------------------------------------------------------
    # backends
    # ------------------------------------------------------------------

    async def _run_live(
        self,
        config: RuntimeConfig,
        industry: IndustryType,
        image: bytes | None,
        reference_images: list[bytes],
        description: str | None,
    ) -> CheckOutcome:
        client = self.client_factory.for_config(config)
        try:
            candidate = await client.infer(industry, image, reference_images, description)
        except Unconfigured as exc:
            return self._substitute(industry, "unconfigured", exc)
        except BackendPayloadTooLarge as exc:
            raise PayloadTooLarge() from exc
        except Unavailable as exc:
            if exc.quota:
                return self._substitute(industry, "quota", exc)
            if self.mask_backend_failures:
                return self._substitute(industry, "unavailable", exc)
            logger.error("Reasoning backend unavailable for %s check: %s", industry.value, exc)
            raise ServiceUnavailable() from exc
        except (ReasoningTimeout, MalformedReply) as exc:
            reason = "timeout" if isinstance(exc, ReasoningTimeout) else "malformed_reply"
            if self.mask_backend_failures:
                return self._substitute(industry, reason, exc)
            logger.error("Reasoning backend %s for %s check: %s", reason, industry.value, exc)
            raise ServiceUnavailable() from exc
        except ReasoningError as exc:
            logger.error("Reasoning backend failed for %s check: %s", industry.value, exc)
            raise ServiceUnavailable() from exc

        try:
            result = self.validator.validate(candidate)
        except ShapeError as exc:
            violation = BackendContractViolation(f"Reasoning backend reply failed validation: {exc}")
            violation.__cause__ = exc
            return self._substitute(industry, "contract_violation", violation)
        return CheckOutcome(result=result, source=ResultSource.LIVE)

    def _substitute(self, industry: IndustryType, reason: str, error: Exception) -> CheckOutcome:
        logger.warning(
            "Live reasoning backend failed for %s check (%s: %s); substituting fallback result",
            industry.value, reason, error,
        )
        fallback_substitutions_total.labels(reason=reason).inc()
        return CheckOutcome(
            result=self._fallback_result(industry),
            source=ResultSource.FALLBACK,
            substitution_reason=reason,
        )

    def _fallback_result(self, industry: IndustryType) -> ComplianceResult:
        try:
            return self.validator.validate(self.fallback.generate(industry))
        except ShapeError as exc:
            logger.error("Fallback result for %s failed validation: %s", industry.value, exc)
            raise BackendContractViolation() from exc

    # ------------------------------------------------------------------
    # persistence
    # ------------------------------------------------------------------

    async def _persist(
        self,
        industry: IndustryType,
        result: ComplianceResult,
        image: bytes | None,
        description: str | None,
    ) -> int | None:
        try:
            record = await self.record_store.append(industry, result, image=image, description=description)
        except Exception as exc:
            record_store_failures_total.inc()
            logger.error("Failed to persist %s compliance check: %s", industry.value, exc, exc_info=True)
            return None
        return record.id
