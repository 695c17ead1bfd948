from unittest.mock import MagicMock

import pytest

from assistant_relay.errors import (
    ConfigurationError,
    InvalidRequest,
    RemoteError,
    RunFailed,
    RunTimeout,
)
from assistant_relay.models import ThreadMessage
from assistant_relay.orchestrator import NO_REPLY, ConversationTurnOrchestrator, extract_reply
from assistant_relay.settings import AssistantConfig

from conftest import FakeBackend, FakeClock


def _orchestrator(
    config: AssistantConfig, backend: FakeBackend, clock: FakeClock
) -> ConversationTurnOrchestrator:
    return ConversationTurnOrchestrator(
        config,
        lambda _config: backend,
        clock=clock,
        sleep=clock.sleep,
    )


@pytest.mark.asyncio
async def test_new_thread_turn(config, fake_backend, fake_clock) -> None:
    """A first turn creates a thread and returns the joined assistant text."""
    result = await _orchestrator(config, fake_backend, fake_clock).run_turn("Hi")
    assert result.reply == "Hello\nthere"
    assert result.thread_id == "t1"
    assert result.response_id == "t1"
    assert fake_backend.calls == [
        ("create_thread",),
        ("append_message", "t1", "Hi"),
        ("start_run", "t1", "asst_1"),
        ("get_run", "t1", "run_1"),
        ("list_messages", "t1", 10),
    ]
    assert fake_backend.closed is True


@pytest.mark.asyncio
async def test_supplied_thread_skips_create(config, fake_backend, fake_clock) -> None:
    """Continuing a thread issues no create_thread call."""
    result = await _orchestrator(config, fake_backend, fake_clock).run_turn(
        "Again", thread_id="  thread_abc "
    )
    assert "create_thread" not in fake_backend.call_names()
    assert result.thread_id == "thread_abc"
    assert all(call[1] == "thread_abc" for call in fake_backend.calls)


@pytest.mark.asyncio
async def test_blank_thread_id_creates_one(config, fake_backend, fake_clock) -> None:
    result = await _orchestrator(config, fake_backend, fake_clock).run_turn("Hi", thread_id="   ")
    assert fake_backend.call_names().count("create_thread") == 1
    assert result.thread_id == "t1"


@pytest.mark.asyncio
@pytest.mark.parametrize("message", [None, ""])
async def test_missing_message(config, fake_clock, message) -> None:
    """An empty message is rejected before any backend is built."""
    factory = MagicMock()
    orchestrator = ConversationTurnOrchestrator(config, factory, clock=fake_clock, sleep=fake_clock.sleep)
    with pytest.raises(InvalidRequest, match="Missing message"):
        await orchestrator.run_turn(message)
    factory.assert_not_called()


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "config,reason",
    [
        (AssistantConfig(api_key=None, assistant_id="asst_1"), "OPENAI_API_KEY is missing"),
        (AssistantConfig(api_key="sk-test", assistant_id=None), "ASSISTANT_ID is missing"),
        (
            AssistantConfig(api_key="sk-proj-abc", assistant_id="asst_1"),
            "OPENAI_PROJECT_ID is required",
        ),
    ],
)
async def test_configuration_errors(config, reason, fake_clock) -> None:
    """Misconfiguration fails before any remote call."""
    factory = MagicMock()
    orchestrator = ConversationTurnOrchestrator(config, factory, clock=fake_clock, sleep=fake_clock.sleep)
    with pytest.raises(ConfigurationError, match=reason) as exc_info:
        await orchestrator.run_turn("Hi")
    assert exc_info.value.status_code == 500
    factory.assert_not_called()


@pytest.mark.asyncio
async def test_project_key_with_project(fake_backend, fake_clock) -> None:
    config = AssistantConfig(api_key="sk-proj-abc", assistant_id="asst_1", project_id="proj_1")
    result = await _orchestrator(config, fake_backend, fake_clock).run_turn("Hi")
    assert result.reply == "Hello\nthere"


@pytest.mark.asyncio
async def test_remote_error_short_circuits(config, fake_backend, fake_clock) -> None:
    """A 429 from start_run is passed through and nothing else runs."""
    body = '{"error": {"message": "Rate limit reached"}}'
    fake_backend.errors["start_run"] = RemoteError(429, body, thread_id="t1")
    with pytest.raises(RemoteError) as exc_info:
        await _orchestrator(config, fake_backend, fake_clock).run_turn("Hi")
    assert exc_info.value.status_code == 429
    assert exc_info.value.to_payload() == {"error": body, "threadId": "t1"}
    assert fake_backend.call_names() == ["create_thread", "append_message", "start_run"]
    assert fake_backend.closed is True


@pytest.mark.asyncio
async def test_run_failed_carries_thread(config, fake_backend, fake_clock) -> None:
    fake_backend.run_statuses = ["in_progress", "expired"]
    with pytest.raises(RunFailed) as exc_info:
        await _orchestrator(config, fake_backend, fake_clock).run_turn("Hi")
    assert exc_info.value.status_code == 502
    assert exc_info.value.to_payload() == {"error": "Run status: expired", "threadId": "t1"}
    assert "list_messages" not in fake_backend.call_names()


@pytest.mark.asyncio
async def test_run_timeout_carries_thread(config, fake_backend, fake_clock) -> None:
    fake_backend.run_statuses = ["in_progress"]
    with pytest.raises(RunTimeout) as exc_info:
        await _orchestrator(config, fake_backend, fake_clock).run_turn("Hi")
    assert exc_info.value.thread_id == "t1"
    assert exc_info.value.status_code == 502
    assert fake_clock.now > config.run_timeout_seconds


@pytest.mark.asyncio
async def test_custom_tunables(fake_backend, fake_clock) -> None:
    config = AssistantConfig(
        api_key="sk-test",
        assistant_id="asst_1",
        poll_interval_seconds=0.1,
        reply_history_limit=3,
    )
    fake_backend.run_statuses = ["queued", "completed"]
    await _orchestrator(config, fake_backend, fake_clock).run_turn("Hi")
    assert fake_clock.sleeps == [0.1]
    assert fake_backend.calls[-1] == ("list_messages", "t1", 3)


@pytest.mark.asyncio
async def test_empty_reply_sentinel(config, fake_backend, fake_clock) -> None:
    fake_backend.messages = [ThreadMessage(role="user", texts=["Hi"])]
    result = await _orchestrator(config, fake_backend, fake_clock).run_turn("Hi")
    assert result.reply == NO_REPLY


def test_extract_reply_uses_newest_assistant_message() -> None:
    messages = [
        ThreadMessage(role="user", texts=["question"]),
        ThreadMessage(role="assistant", texts=["newest", "", "part two"]),
        ThreadMessage(role="assistant", texts=["older"]),
    ]
    assert extract_reply(messages) == "newest\npart two"


def test_extract_reply_without_text() -> None:
    assert extract_reply([ThreadMessage(role="assistant", texts=[])]) == NO_REPLY
    assert extract_reply([]) == NO_REPLY
