"""Tests for the reasoning client: backoff, polling, reply parsing and HTTP modes."""

import json

import httpx
import pytest

from dresscode.errors import (
    BackendPayloadTooLarge,
    MalformedReply,
    ReasoningTimeout,
    Unavailable,
    Unconfigured,
)
from dresscode.schemas.schemas import IndustryType
from dresscode.services.reasoning_client import (
    PollState,
    ReasoningClient,
    RunPoller,
    backoff_delay,
    build_instructions,
    extract_json_object,
)
from dresscode.rules import rules_for
from tests.fakes import HARD_HAT_REPLY, FakeOpenAI, no_sleep


def make_client(backend: FakeOpenAI, mode: str = "assistant", **kwargs) -> ReasoningClient:
    return ReasoningClient(
        "sk-test",
        mode=mode,
        transport=backend.transport(),
        sleep=no_sleep,
        **kwargs,
    )


# ── Backoff schedule ─────────────────────────────────────────────────────────

class TestBackoff:
    def test_schedule_is_geometric(self):
        assert [backoff_delay(n) for n in range(4)] == pytest.approx([1.0, 1.5, 2.25, 3.375])

    def test_initial_delay_scales(self):
        assert backoff_delay(2, initial_delay=0.2) == pytest.approx(0.45)

    def test_negative_attempt_rejected(self):
        with pytest.raises(ValueError):
            backoff_delay(-1)


@pytest.mark.asyncio
class TestRunPoller:
    @staticmethod
    def _statuses(*values):
        it = iter(values)

        async def fetch():
            return next(it)
        return fetch

    async def test_completes_immediately(self):
        sleeps = []

        async def sleep(d):
            sleeps.append(d)

        outcome = await RunPoller(sleep=sleep).wait(self._statuses("completed"))
        assert outcome.state == PollState.COMPLETED
        assert outcome.attempts == 0
        assert sleeps == []

    async def test_completes_after_polling(self):
        sleeps = []

        async def sleep(d):
            sleeps.append(d)

        poller = RunPoller(max_retries=5, initial_delay=1.0, sleep=sleep)
        outcome = await poller.wait(self._statuses("queued", "in_progress", "completed"))
        assert outcome.state == PollState.COMPLETED
        assert outcome.attempts == 2
        assert sleeps == pytest.approx([1.0, 1.5])

    async def test_times_out_after_max_retries(self):
        sleeps = []

        async def sleep(d):
            sleeps.append(d)

        poller = RunPoller(max_retries=3, initial_delay=0.5, sleep=sleep)
        outcome = await poller.wait(self._statuses(*["in_progress"] * 10))
        assert outcome.state == PollState.TIMED_OUT
        assert outcome.attempts == 3
        assert sleeps == pytest.approx([0.5, 0.75, 1.125])

    async def test_failed_run_stops_polling(self):
        outcome = await RunPoller(sleep=no_sleep).wait(self._statuses("in_progress", "failed"))
        assert outcome.state == PollState.FAILED
        assert outcome.last_status == "failed"


# ── Reply parsing ────────────────────────────────────────────────────────────

class TestExtractJson:
    def test_bare_json(self):
        assert extract_json_object(json.dumps(HARD_HAT_REPLY)) == HARD_HAT_REPLY

    def test_json_fence(self):
        text = "Here is the analysis:\n```json\n" + json.dumps(HARD_HAT_REPLY) + "\n```\nThanks!"
        assert extract_json_object(text) == HARD_HAT_REPLY

    def test_plain_fence(self):
        text = "```\n" + json.dumps(HARD_HAT_REPLY) + "\n```"
        assert extract_json_object(text) == HARD_HAT_REPLY

    def test_json_embedded_in_prose(self):
        text = "Result: " + json.dumps(HARD_HAT_REPLY) + " -- end"
        assert extract_json_object(text) == HARD_HAT_REPLY

    def test_think_tags_removed(self):
        text = "<think>{not json}</think>\n" + json.dumps(HARD_HAT_REPLY)
        assert extract_json_object(text) == HARD_HAT_REPLY

    @pytest.mark.parametrize("text", ["", "   ", "no json here", "[1, 2, 3]", "{broken: json"])
    def test_malformed(self, text):
        with pytest.raises(MalformedReply):
            extract_json_object(text)


def test_instructions_include_catalog_items():
    rules = rules_for(IndustryType.CONSTRUCTION)
    text = build_instructions(rules)
    for item in rules.required_items + rules.prohibited_items:
        assert item in text
    assert '"isCompliant"' in text


# ── Chat mode ────────────────────────────────────────────────────────────────

@pytest.mark.asyncio
class TestChatMode:
    async def test_description_only(self):
        backend = FakeOpenAI()
        result = await make_client(backend, mode="chat").infer(
            IndustryType.CONSTRUCTION, description="jeans and a t-shirt",
        )
        assert result == HARD_HAT_REPLY
        assert backend.paths() == ["POST /chat/completions"]

        body = json.loads(backend.requests[0].content)
        assert body["response_format"] == {"type": "json_object"}
        assert body["messages"][0]["role"] == "system"
        assert "jeans and a t-shirt" in body["messages"][1]["content"]
        assert backend.requests[0].headers["Authorization"] == "Bearer sk-test"

    async def test_image_and_reference_images(self):
        backend = FakeOpenAI()
        await make_client(backend, mode="chat").infer(
            IndustryType.HEALTHCARE, image=b"main", reference_images=[b"side", b"back"],
        )
        content = json.loads(backend.requests[0].content)["messages"][1]["content"]
        image_parts = [p for p in content if p["type"] == "image_url"]
        assert len(image_parts) == 3
        assert image_parts[0]["image_url"]["url"].startswith("data:image/jpeg;base64,")

    async def test_missing_message_content(self):
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(200, json={"choices": []})

        client = ReasoningClient("sk-test", mode="chat", transport=httpx.MockTransport(handler))
        with pytest.raises(MalformedReply):
            await client.infer(IndustryType.HEALTHCARE, description="scrubs")


# ── Assistant mode ───────────────────────────────────────────────────────────

@pytest.mark.asyncio
class TestAssistantMode:
    async def test_job_flow(self):
        backend = FakeOpenAI(run_statuses=["queued", "in_progress", "completed"])
        result = await make_client(backend).infer(
            IndustryType.CONSTRUCTION, image=b"photo", reference_images=[b"ref"], description="vest",
        )
        assert result == HARD_HAT_REPLY
        assert backend.uploads == 2
        assert backend.run_polls == 3
        assert backend.paths()[:3] == ["POST /assistants", "POST /threads", "POST /threads/thread_1/messages"]
        assert backend.paths()[-1] == "GET /threads/thread_1/messages"
        assert backend.requests[0].headers["OpenAI-Beta"] == "assistants=v2"

    async def test_images_uploaded_for_assistants(self):
        backend = FakeOpenAI()
        await make_client(backend).infer(IndustryType.HEALTHCARE, image=b"photo")
        upload = next(r for r in backend.requests if r.url.path.endswith("/files"))
        assert b'name="purpose"' in upload.content
        assert b"assistants" in upload.content
        assert b"vision" not in upload.content

    async def test_assistant_created_once_per_industry(self):
        backend = FakeOpenAI()
        client = make_client(backend)
        await client.infer(IndustryType.HEALTHCARE, description="scrubs")
        await client.infer(IndustryType.HEALTHCARE, description="scrubs again")
        await client.infer(IndustryType.CONSTRUCTION, description="hard hat")
        assert backend.assistants_created == 2

    async def test_timeout_after_bounded_polling(self):
        backend = FakeOpenAI(run_statuses=["in_progress"])
        client = make_client(backend, poll_max_retries=4)
        with pytest.raises(ReasoningTimeout) as excinfo:
            await client.infer(IndustryType.HEALTHCARE, description="scrubs")
        assert excinfo.value.attempts == 4
        assert backend.run_polls == 5

    async def test_failed_run_is_unavailable(self):
        backend = FakeOpenAI(run_statuses=["failed"])
        with pytest.raises(Unavailable):
            await make_client(backend).infer(IndustryType.HEALTHCARE, description="scrubs")

    async def test_fenced_reply(self):
        backend = FakeOpenAI(reply="```json\n" + json.dumps(HARD_HAT_REPLY) + "\n```")
        assert await make_client(backend).infer(IndustryType.CONSTRUCTION, description="x") == HARD_HAT_REPLY

    async def test_unparseable_reply(self):
        backend = FakeOpenAI(reply="I cannot help with that.")
        with pytest.raises(MalformedReply):
            await make_client(backend).infer(IndustryType.CONSTRUCTION, description="x")


# ── Error classification ─────────────────────────────────────────────────────

@pytest.mark.asyncio
class TestErrors:
    async def test_missing_credential(self):
        client = ReasoningClient("", transport=FakeOpenAI().transport())
        with pytest.raises(Unconfigured):
            await client.infer(IndustryType.HEALTHCARE, description="scrubs")

    async def test_quota_exhausted(self):
        backend = FakeOpenAI(error=(429, {"error": {
            "code": "insufficient_quota", "message": "You exceeded your current quota",
        }}))
        with pytest.raises(Unavailable) as excinfo:
            await make_client(backend).infer(IndustryType.HEALTHCARE, description="scrubs")
        assert excinfo.value.quota is True

    async def test_rate_limited_counts_as_quota(self):
        backend = FakeOpenAI(error=(429, {"error": {
            "code": "rate_limit_exceeded", "message": "Rate limit reached for requests",
        }}))
        with pytest.raises(Unavailable) as excinfo:
            await make_client(backend, mode="chat").infer(IndustryType.CONSTRUCTION, description="jeans")
        assert excinfo.value.quota is True
        assert excinfo.value.status_code == 429

    async def test_rate_limited_payload_text_is_not_413(self):
        backend = FakeOpenAI(error=(429, {"error": {"message": "Request too large for tokens per min"}}))
        with pytest.raises(Unavailable) as excinfo:
            await make_client(backend, mode="chat").infer(IndustryType.HEALTHCARE, image=b"img")
        assert excinfo.value.quota is True

    async def test_server_error(self):
        backend = FakeOpenAI(error=(500, {"error": {"message": "boom"}}))
        with pytest.raises(Unavailable) as excinfo:
            await make_client(backend, mode="chat").infer(IndustryType.HEALTHCARE, description="scrubs")
        assert excinfo.value.quota is False
        assert excinfo.value.status_code == 500

    async def test_payload_too_large(self):
        backend = FakeOpenAI(error=(413, {"error": {"message": "Request payload size exceeds the limit"}}))
        with pytest.raises(BackendPayloadTooLarge):
            await make_client(backend, mode="chat").infer(IndustryType.HEALTHCARE, image=b"huge")

    async def test_network_error(self):
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("connection refused", request=request)

        client = ReasoningClient("sk-test", mode="chat", transport=httpx.MockTransport(handler))
        with pytest.raises(Unavailable):
            await client.infer(IndustryType.HEALTHCARE, description="scrubs")
