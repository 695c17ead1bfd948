import asyncio
import logging
import time
from typing import Awaitable, Callable, List

from ..errors import InvalidRequest, RunFailed, RunTimeout
from ..models import ThreadMessage, TurnResult
from ..services.assistants_api import AssistantsBackend, get_assistants_backend
from ..settings import AssistantConfig
from .polling import RunPoller, RunState

logger = logging.getLogger(__name__)

NO_REPLY = "(no reply)"

BackendFactory = Callable[[AssistantConfig], AssistantsBackend]


def extract_reply(messages: List[ThreadMessage]) -> str:
    """Join the text segments of the newest assistant message.

    ``messages`` is ordered newest first. Falls back to NO_REPLY when no
    assistant message has any text.
    """
    for message in messages:
        if message.role == "assistant":
            return "\n".join(t for t in message.texts if t) or NO_REPLY
    return NO_REPLY


class ConversationTurnOrchestrator:
    """Runs one chat turn against the Assistants API.

    Steps are strictly sequential: ensure thread, append the user message,
    start a run, poll it to a terminal state, then read back the reply.
    Any failure stops the turn; nothing already done remotely is undone.
    """

    def __init__(
        self,
        config: AssistantConfig,
        backend_factory: BackendFactory = get_assistants_backend,
        *,
        clock: Callable[[], float] = time.monotonic,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ) -> None:
        self._config = config
        self._backend_factory = backend_factory
        self._clock = clock
        self._sleep = sleep

    async def run_turn(self, message: str | None, thread_id: str | None = None) -> TurnResult:
        """Relay ``message`` and return the assistant's reply.

        Args:
            message: User text; must be non-empty.
            thread_id: Thread to continue, or None to start a new one.

        Raises:
            InvalidRequest, ConfigurationError: before any remote call.
            RemoteError: a remote call returned a non-success status.
            RunFailed, RunTimeout: the run did not complete.
        """
        if not message:
            raise InvalidRequest("Missing message")
        self._config.validate()

        backend = self._backend_factory(self._config)
        try:
            return await self._run(backend, message, (thread_id or "").strip())
        finally:
            await backend.aclose()

    async def _run(self, backend: AssistantsBackend, message: str, thread_id: str) -> TurnResult:
        if not thread_id:
            thread_id = await backend.create_thread()
            logger.info("Created thread %s", thread_id)

        await backend.append_message(thread_id, message)
        logger.debug("Appended user message to thread %s (%d chars)", thread_id, len(message))

        run = await backend.start_run(thread_id, self._config.assistant_id)
        logger.info("Started run %s on thread %s (status=%s)", run.run_id, thread_id, run.status)

        poller = RunPoller(
            backend,
            thread_id,
            run,
            interval_seconds=self._config.poll_interval_seconds,
            budget_seconds=self._config.run_timeout_seconds,
            clock=self._clock,
            sleep=self._sleep,
        )
        state = await poller.wait()
        if state is RunState.FAILED:
            logger.warning(
                "Run %s on thread %s ended with status %s",
                run.run_id,
                thread_id,
                poller.last_status,
            )
            raise RunFailed(poller.last_status, thread_id)
        if state is RunState.TIMED_OUT:
            raise RunTimeout(thread_id)
        logger.info("Run %s completed after %d poll(s)", run.run_id, poller.polls)

        messages = await backend.list_messages(thread_id, self._config.reply_history_limit)
        reply = extract_reply(messages)
        return TurnResult(reply=reply, thread_id=thread_id, response_id=thread_id)
