import logging
from typing import Any, List, Protocol

from openai import APIStatusError, AsyncOpenAI

from ..errors import RemoteError
from ..models import RunSnapshot, ThreadMessage
from ..settings import AssistantConfig

logger = logging.getLogger(__name__)


class AssistantsBackend(Protocol):
    """Remote operations a conversation turn needs from the Assistants API."""

    async def create_thread(self) -> str: ...

    async def append_message(self, thread_id: str, content: str) -> None: ...

    async def start_run(self, thread_id: str, assistant_id: str) -> RunSnapshot: ...

    async def get_run(self, thread_id: str, run_id: str) -> RunSnapshot: ...

    async def list_messages(self, thread_id: str, limit: int) -> List[ThreadMessage]: ...

    async def aclose(self) -> None: ...


def _text_segments(message: Any) -> List[str]:
    """Return the non-empty text values of an SDK message, in order."""
    texts: List[str] = []
    for block in getattr(message, "content", None) or []:
        text = getattr(block, "text", None)
        value = getattr(text, "value", None)
        if value:
            texts.append(value)
    return texts


def _remote_error(exc: APIStatusError, thread_id: str | None = None) -> RemoteError:
    return RemoteError(exc.status_code, exc.response.text, thread_id=thread_id)


class OpenAIAssistantsBackend:
    """AssistantsBackend over the OpenAI SDK (Assistants v2, no tools).

    The SDK sends the bearer token, the assistants=v2 beta header and the
    project / organization headers. Retries are disabled.
    """

    def __init__(self, config: AssistantConfig, client: AsyncOpenAI | None = None) -> None:
        self._client = client or AsyncOpenAI(
            api_key=config.api_key,
            project=config.project_id,
            organization=config.organization_id,
            base_url=config.base_url,
            timeout=config.request_timeout_seconds,
            max_retries=0,
        )

    async def create_thread(self) -> str:
        try:
            thread = await self._client.beta.threads.create()
        except APIStatusError as e:
            raise _remote_error(e) from e
        return thread.id

    async def append_message(self, thread_id: str, content: str) -> None:
        try:
            await self._client.beta.threads.messages.create(
                thread_id,
                role="user",
                content=content,
            )
        except APIStatusError as e:
            raise _remote_error(e, thread_id) from e

    async def start_run(self, thread_id: str, assistant_id: str) -> RunSnapshot:
        try:
            run = await self._client.beta.threads.runs.create(
                thread_id,
                assistant_id=assistant_id,
            )
        except APIStatusError as e:
            raise _remote_error(e, thread_id) from e
        return RunSnapshot(run_id=run.id, status=run.status)

    async def get_run(self, thread_id: str, run_id: str) -> RunSnapshot:
        try:
            run = await self._client.beta.threads.runs.retrieve(
                run_id,
                thread_id=thread_id,
            )
        except APIStatusError as e:
            raise _remote_error(e, thread_id) from e
        return RunSnapshot(run_id=run.id, status=run.status)

    async def list_messages(self, thread_id: str, limit: int) -> List[ThreadMessage]:
        """Return up to `limit` messages of the thread, newest first."""
        try:
            page = await self._client.beta.threads.messages.list(
                thread_id,
                limit=limit,
                order="desc",
            )
        except APIStatusError as e:
            raise _remote_error(e, thread_id) from e
        return [
            ThreadMessage(role=m.role, texts=_text_segments(m)) for m in page.data
        ]

    async def aclose(self) -> None:
        await self._client.close()
        logger.debug("Assistants API client closed")


def get_assistants_backend(config: AssistantConfig) -> AssistantsBackend:
    """Build the SDK-backed AssistantsBackend for a validated config."""
    return OpenAIAssistantsBackend(config)
