"""Errors raised while relaying a chat turn.

Every error knows the HTTP status and JSON payload it maps to, so the
HTTP layer renders them without further translation.
"""

from typing import Any, Dict


class ChatError(Exception):
    """Base class for all failures surfaced to the caller."""

    status_code = 500

    def __init__(self, message: str, thread_id: str | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.thread_id = thread_id

    def to_payload(self) -> Dict[str, Any]:
        payload: Dict[str, Any] = {"error": self.message}
        if self.thread_id:
            payload["threadId"] = self.thread_id
        return payload


class InvalidRequest(ChatError):
    """The caller's input is missing or malformed."""

    status_code = 400


class ConfigurationError(ChatError):
    """Credential, project scope or assistant id is missing or inconsistent."""

    status_code = 500


class RemoteError(ChatError):
    """A remote call returned a non-success status.

    The remote status and body are passed through verbatim.
    """

    def __init__(
        self, status_code: int, body: str, thread_id: str | None = None
    ) -> None:
        super().__init__(body, thread_id=thread_id)
        self.status_code = status_code
        self.body = body


class RunFailed(ChatError):
    """The run reached a terminal non-success status."""

    status_code = 502

    def __init__(self, status: str, thread_id: str) -> None:
        super().__init__(f"Run status: {status}", thread_id=thread_id)
        self.status = status


class RunTimeout(ChatError):
    """The polling budget ran out before the run finished."""

    status_code = 502

    def __init__(self, thread_id: str) -> None:
        super().__init__("Run timed out", thread_id=thread_id)


class UnexpectedError(ChatError):
    """Any other local fault."""

    status_code = 500

    def __init__(self, message: str | None = None) -> None:
        super().__init__(message or "Server error")
