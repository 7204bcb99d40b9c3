"""
Reasoning Client — adapter to the external LLM that judges an outfit.

Talks to an OpenAI-compatible REST API over httpx in one of two modes:

- chat:      one /chat/completions call, the reply arrives inline
- assistant: asynchronous job model (assistant → thread → run), the run is
             polled with exponential backoff until it completes or the
             retry bound is exhausted

Either way the reply text is reduced to a JSON object and handed back as an
untrusted candidate. Shape checking belongs to the Result Validator.
"""

import asyncio
import base64
import hashlib
import json
import logging
import re
import time
from dataclasses import dataclass
from enum import Enum
from typing import Awaitable, Callable

import httpx

from dresscode.errors import (
    BackendPayloadTooLarge,
    MalformedReply,
    ReasoningTimeout,
    Unavailable,
    Unconfigured,
)
from dresscode.middleware.metrics import reasoning_backend_duration_seconds
from dresscode.rules import IndustryRules, rules_for
from dresscode.schemas.schemas import IndustryType

logger = logging.getLogger(__name__)

BACKOFF_MULTIPLIER = 1.5
DEFAULT_MAX_RETRIES = 5

RESPONSE_FORMAT_INSTRUCTIONS = """Respond with JSON in this format:
{
  "isCompliant": boolean,
  "issues": [
    { "type": "missing"|"incorrect"|"prohibited", "item": string, "description": string }
  ],
  "compliantItems": [
    { "item": string, "description": string }
  ],
  "recommendations": [
    { "title": string, "description": string }
  ]
}"""


# ── Backoff / polling state machine ──────────────────────────────────────────

def backoff_delay(attempt: int, initial_delay: float = 1.0, multiplier: float = BACKOFF_MULTIPLIER) -> float:
    """Delay before poll number `attempt` (0-based): initial_delay * multiplier ** attempt."""
    if attempt < 0:
        raise ValueError("attempt must be >= 0")
    return initial_delay * (multiplier ** attempt)


class PollState(str, Enum):
    SUBMITTED = "submitted"
    POLLING = "polling"
    COMPLETED = "completed"
    TIMED_OUT = "timed_out"
    FAILED = "failed"


RUN_FAILURE_STATUSES = frozenset({"failed", "cancelled", "cancelling", "expired", "incomplete"})


@dataclass
class PollOutcome:
    state: PollState
    attempts: int
    last_status: str


class RunPoller:
    """
    Bounded poll loop for a submitted job.

    The status is fetched once on submission, then up to `max_retries` more
    times, sleeping backoff_delay(n) before poll n.
    """

    def __init__(
        self,
        max_retries: int = DEFAULT_MAX_RETRIES,
        initial_delay: float = 1.0,
        multiplier: float = BACKOFF_MULTIPLIER,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ):
        self.max_retries = max_retries
        self.initial_delay = initial_delay
        self.multiplier = multiplier
        self._sleep = sleep
        self.state = PollState.SUBMITTED

    async def wait(self, fetch_status: Callable[[], Awaitable[str]]) -> PollOutcome:
        self.state = PollState.SUBMITTED
        attempts = 0
        status = await fetch_status()
        while True:
            if status == "completed":
                self.state = PollState.COMPLETED
                break
            if status in RUN_FAILURE_STATUSES:
                self.state = PollState.FAILED
                break
            if attempts >= self.max_retries:
                self.state = PollState.TIMED_OUT
                break
            self.state = PollState.POLLING
            await self._sleep(backoff_delay(attempts, self.initial_delay, self.multiplier))
            status = await fetch_status()
            attempts += 1
        return PollOutcome(state=self.state, attempts=attempts, last_status=status)


# ── Reply parsing ────────────────────────────────────────────────────────────

_FENCED_JSON_RE = re.compile(r"```json\s*(.*?)```", re.DOTALL | re.IGNORECASE)
_FENCED_RE = re.compile(r"```\s*(.*?)```", re.DOTALL)


def _strip_think_tags(text: str) -> str:
    return re.sub(r"<think>.*?</think>\s*", "", text, flags=re.DOTALL).strip()


def extract_json_object(text: str | None) -> dict:
    """Locate and decode the JSON object in a reply, tolerating code fences."""
    if not text or not text.strip():
        raise MalformedReply("Empty reply from the reasoning backend")
    text = _strip_think_tags(text)

    candidates: list[str] = []
    for pattern in (_FENCED_JSON_RE, _FENCED_RE):
        match = pattern.search(text)
        if match:
            candidates.append(match.group(1))
    start, end = text.find("{"), text.rfind("}")
    if start != -1 and end > start:
        candidates.append(text[start:end + 1])

    for candidate in candidates:
        try:
            parsed = json.loads(candidate.strip())
        except json.JSONDecodeError:
            continue
        if isinstance(parsed, dict):
            return parsed
    raise MalformedReply("Could not extract a JSON object from the reasoning backend reply")


# ── Prompt construction ──────────────────────────────────────────────────────

def build_instructions(rules: IndustryRules) -> str:
    industry = rules.industry.value
    guidance = "\n".join(f"- {g}" for g in rules.recognition_guidance)
    required = ", ".join(rules.required_items)
    prohibited = ", ".join(rules.prohibited_items)
    return (
        f"You are a specialized dress code compliance expert for the {industry} industry.\n\n"
        f"For {industry}, check for:\n{guidance}\n\n"
        f"Required items: {required}.\n"
        f"Prohibited items: {prohibited}.\n\n"
        "Examine all provided images carefully, looking for both visible and missing elements. "
        "Distinguish between critical safety violations and minor issues, and give actionable "
        "recommendations.\n\n"
        f"{RESPONSE_FORMAT_INSTRUCTIONS}"
    )


def build_user_text(industry: IndustryType, description: str | None, has_image: bool, reference_count: int) -> str:
    parts: list[str] = []
    if description:
        parts.append(
            f"Analyze this {industry.value} worker's outfit description for dress code compliance: {description}"
        )
    if has_image:
        parts.append(f"Analyze this {industry.value} worker's outfit in the image for dress code compliance.")
    if reference_count:
        parts.append("Here are additional reference images from different angles to help with the assessment.")
    return "\n\n".join(parts)


def _data_url(image: bytes) -> str:
    return f"data:image/jpeg;base64,{base64.b64encode(image).decode('ascii')}"


# ── Error classification ─────────────────────────────────────────────────────

def _error_text(resp: httpx.Response) -> str:
    try:
        body = resp.json()
    except ValueError:
        return resp.text
    if isinstance(body, dict) and isinstance(body.get("error"), dict):
        err = body["error"]
        return f"{err.get('code') or ''} {err.get('message') or ''}".strip()
    return resp.text


def raise_for_backend_status(resp: httpx.Response) -> None:
    if resp.status_code < 400:
        return
    detail = _error_text(resp)
    lowered = detail.lower()
    # 429 is quota or rate limiting whatever the body says
    if resp.status_code == 429 or "quota" in lowered:
        raise Unavailable(f"Reasoning backend quota exhausted: {detail}", quota=True, status_code=resp.status_code)
    if resp.status_code == 413 or "payload size" in lowered or "too large" in lowered:
        raise BackendPayloadTooLarge(f"Reasoning backend rejected payload: {detail}")
    raise Unavailable(
        f"Reasoning backend returned HTTP {resp.status_code}: {detail}",
        status_code=resp.status_code,
    )


# ── Client ───────────────────────────────────────────────────────────────────

class ReasoningClient:
    def __init__(
        self,
        api_key: str,
        *,
        base_url: str = "https://api.openai.com/v1",
        model: str = "gpt-4o",
        mode: str = "assistant",
        timeout: float = 60.0,
        max_tokens: int = 1000,
        poll_initial_delay: float = 1.0,
        poll_max_retries: int = DEFAULT_MAX_RETRIES,
        transport: httpx.AsyncBaseTransport | None = None,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ):
        if mode not in ("assistant", "chat"):
            raise ValueError(f"Unsupported reasoning mode: {mode}")
        self.api_key = api_key
        self.base_url = base_url.rstrip("/")
        self.model = model
        self.mode = mode
        self.timeout = timeout
        self.max_tokens = max_tokens
        self.poll_initial_delay = poll_initial_delay
        self.poll_max_retries = poll_max_retries
        self._transport = transport
        self._sleep = sleep
        self._assistant_ids: dict[IndustryType, str] = {}

    @property
    def fingerprint(self) -> str:
        return hashlib.sha256(self.api_key.encode("utf-8")).hexdigest()[:12]

    def _http_client(self) -> httpx.AsyncClient:
        headers = {"Authorization": f"Bearer {self.api_key}"}
        if self.mode == "assistant":
            headers["OpenAI-Beta"] = "assistants=v2"
        timeout = httpx.Timeout(connect=10.0, read=self.timeout, write=30.0, pool=10.0)
        return httpx.AsyncClient(
            base_url=self.base_url, headers=headers, timeout=timeout, transport=self._transport,
        )

    # ------------------------------------------------------------------
    # public API
    # ------------------------------------------------------------------

    async def infer(
        self,
        industry: IndustryType,
        image: bytes | None = None,
        reference_images: list[bytes] | None = None,
        description: str | None = None,
    ) -> dict:
        if not self.api_key:
            raise Unconfigured("No API key configured for the reasoning backend")

        industry = IndustryType(industry)
        rules = rules_for(industry)
        reference_images = reference_images or []

        start = time.time()
        outcome = "error"
        try:
            async with self._http_client() as client:
                if self.mode == "chat":
                    text = await self._infer_chat(client, rules, image, reference_images, description)
                else:
                    text = await self._infer_assistant(client, rules, image, reference_images, description)
            candidate = extract_json_object(text)
            outcome = "ok"
            return candidate
        except httpx.TimeoutException as exc:
            raise Unavailable(f"Reasoning backend request timed out: {exc}") from exc
        except httpx.HTTPError as exc:
            raise Unavailable(f"Reasoning backend unreachable: {exc}") from exc
        finally:
            reasoning_backend_duration_seconds.labels(mode=self.mode, outcome=outcome).observe(
                time.time() - start
            )

    # ------------------------------------------------------------------
    # chat mode
    # ------------------------------------------------------------------

    async def _infer_chat(
        self,
        client: httpx.AsyncClient,
        rules: IndustryRules,
        image: bytes | None,
        reference_images: list[bytes],
        description: str | None,
    ) -> str:
        user_text = build_user_text(rules.industry, description, image is not None, len(reference_images))
        if image is not None:
            content: list[dict] | str = [{"type": "text", "text": user_text}]
            for img in [image, *reference_images]:
                content.append({"type": "image_url", "image_url": {"url": _data_url(img)}})
        else:
            content = user_text

        resp = await client.post("/chat/completions", json={
            "model": self.model,
            "messages": [
                {"role": "system", "content": build_instructions(rules)},
                {"role": "user", "content": content},
            ],
            "response_format": {"type": "json_object"},
            "max_tokens": self.max_tokens,
        })
        raise_for_backend_status(resp)

        try:
            return resp.json()["choices"][0]["message"]["content"]
        except (ValueError, KeyError, IndexError, TypeError) as exc:
            raise MalformedReply("Chat completion reply has no message content") from exc

    # ------------------------------------------------------------------
    # assistant mode
    # ------------------------------------------------------------------

    @staticmethod
    def _json(resp: httpx.Response) -> dict:
        raise_for_backend_status(resp)
        try:
            body = resp.json()
        except ValueError as exc:
            raise MalformedReply(f"Non-JSON response from {resp.request.url.path}") from exc
        if not isinstance(body, dict):
            raise MalformedReply(f"Unexpected response body from {resp.request.url.path}")
        return body

    async def _post(self, client: httpx.AsyncClient, url: str, **kwargs) -> dict:
        return self._json(await client.post(url, **kwargs))

    async def _get(self, client: httpx.AsyncClient, url: str, **kwargs) -> dict:
        return self._json(await client.get(url, **kwargs))

    @staticmethod
    def _require_id(body: dict, what: str) -> str:
        value = body.get("id")
        if not value:
            raise MalformedReply(f"Reasoning backend did not return an id for the {what}")
        return str(value)

    async def _ensure_assistant(self, client: httpx.AsyncClient, rules: IndustryRules) -> str:
        cached = self._assistant_ids.get(rules.industry)
        if cached:
            return cached
        data = await self._post(client, "/assistants", json={
            "name": f"{rules.display_name} Dress Code Compliance Assistant",
            "instructions": build_instructions(rules),
            "model": self.model,
            "response_format": {"type": "json_object"},
        })
        assistant_id = self._require_id(data, "assistant")
        self._assistant_ids[rules.industry] = assistant_id
        logger.info("Created %s assistant %s", rules.industry.value, assistant_id)
        return assistant_id

    async def _upload_image(self, client: httpx.AsyncClient, image: bytes, name: str) -> str:
        data = await self._post(
            client, "/files",
            data={"purpose": "assistants"},
            files={"file": (name, image, "image/jpeg")},
        )
        return self._require_id(data, "file")

    async def _infer_assistant(
        self,
        client: httpx.AsyncClient,
        rules: IndustryRules,
        image: bytes | None,
        reference_images: list[bytes],
        description: str | None,
    ) -> str:
        assistant_id = await self._ensure_assistant(client, rules)
        thread_id = self._require_id(await self._post(client, "/threads", json={}), "thread")

        user_text = build_user_text(rules.industry, description, image is not None, len(reference_images))
        await self._post(client, f"/threads/{thread_id}/messages", json={"role": "user", "content": user_text})

        images = ([image] if image is not None else []) + reference_images
        for idx, img in enumerate(images):
            file_id = await self._upload_image(client, img, f"outfit-{idx}.jpg")
            await self._post(client, f"/threads/{thread_id}/messages", json={
                "role": "user",
                "content": [{"type": "image_file", "image_file": {"file_id": file_id}}],
            })

        run = await self._post(client, f"/threads/{thread_id}/runs", json={
            "assistant_id": assistant_id,
            "instructions": f"Analyze the outfit for {rules.industry.value} dress code compliance.\n"
                            f"{RESPONSE_FORMAT_INSTRUCTIONS}",
        })
        run_id = self._require_id(run, "run")

        async def fetch_status() -> str:
            data = await self._get(client, f"/threads/{thread_id}/runs/{run_id}")
            return str(data.get("status", ""))

        poller = RunPoller(self.poll_max_retries, self.poll_initial_delay, sleep=self._sleep)
        result = await poller.wait(fetch_status)
        if result.state == PollState.TIMED_OUT:
            raise ReasoningTimeout(
                f"Assistant analysis timed out after {result.attempts} attempts",
                attempts=result.attempts,
            )
        if result.state == PollState.FAILED:
            raise Unavailable(f"Assistant run ended with status {result.last_status}")

        messages = await self._get(
            client, f"/threads/{thread_id}/messages", params={"order": "desc", "limit": 20},
        )
        return self._latest_assistant_text(messages)

    @staticmethod
    def _latest_assistant_text(messages: dict) -> str:
        data = messages.get("data") or []
        for msg in data:
            if msg.get("role") != "assistant":
                continue
            for part in msg.get("content") or []:
                if part.get("type") == "text":
                    return (part.get("text") or {}).get("value", "")
            raise MalformedReply("Assistant reply has no text content")
        raise MalformedReply("No response received from the assistant")
