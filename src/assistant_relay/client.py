import logging
from dataclasses import dataclass

import httpx

logger = logging.getLogger(__name__)


class ChatClientError(RuntimeError):
    """The relay answered with a non-200 status."""

    def __init__(self, status_code: int, message: str, thread_id: str | None = None) -> None:
        super().__init__(f"HTTP {status_code}: {message}")
        self.status_code = status_code
        self.message = message
        self.thread_id = thread_id


@dataclass
class ChatReply:
    reply: str
    thread_id: str
    response_id: str


class ChatClient:
    """Talks to POST /api/chat and carries the thread id between turns."""

    def __init__(
        self,
        api_url: str,
        thread_id: str | None = None,
        *,
        timeout: float = 60.0,
        transport: httpx.BaseTransport | None = None,
    ) -> None:
        self._api_url = api_url
        self._timeout = timeout
        self._transport = transport
        self.thread_id = thread_id

    def reset(self) -> None:
        """Forget the current thread so the next turn starts a new one."""
        self.thread_id = None

    def send(self, message: str) -> ChatReply:
        """Send one message and return the reply; raises ChatClientError on failure.

        The thread id from the response (or from an error that carries one)
        is remembered for the next call.
        """
        payload = {"message": message}
        if self.thread_id:
            payload["threadId"] = self.thread_id

        logger.info("POST %s thread_id=%s", self._api_url, self.thread_id or "<new>")
        with httpx.Client(timeout=self._timeout, transport=self._transport) as http:
            response = http.post(self._api_url, json=payload)

        try:
            data = response.json()
        except ValueError:
            data = {"error": response.text}
        if not isinstance(data, dict):
            data = {"error": response.text}

        if response.status_code != 200:
            thread_id = data.get("threadId")
            if thread_id:
                self.thread_id = thread_id
            logger.error("Chat request failed status=%s error=%s", response.status_code, data.get("error"))
            raise ChatClientError(
                response.status_code,
                str(data.get("error") or "Unknown error"),
                thread_id=thread_id,
            )

        self.thread_id = data["threadId"]
        return ChatReply(
            reply=data["reply"],
            thread_id=data["threadId"],
            response_id=data.get("responseId", data["threadId"]),
        )
