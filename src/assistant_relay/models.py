from dataclasses import dataclass, field
from typing import List

from pydantic import BaseModel, ConfigDict, Field


@dataclass(frozen=True)
class RunSnapshot:
    """Last observed state of a remote run."""

    run_id: str
    status: str


@dataclass
class ThreadMessage:
    """A thread message reduced to its role and text segments, in order."""

    role: str
    texts: List[str] = field(default_factory=list)


@dataclass
class TurnResult:
    """Outcome of one successful conversation turn."""

    reply: str
    thread_id: str
    response_id: str


class ChatRequest(BaseModel):
    """Body of POST /api/chat."""

    model_config = ConfigDict(populate_by_name=True)

    message: str | None = None
    thread_id: str | None = Field(default=None, alias="threadId")
    prev_id: str | None = Field(default=None, alias="prevId")

    def continuation_id(self) -> str | None:
        """Thread id to continue, preferring threadId over prevId."""
        for candidate in (self.thread_id, self.prev_id):
            if candidate and candidate.strip():
                return candidate.strip()
        return None


class ChatResponse(BaseModel):
    """Body returned for a completed turn."""

    model_config = ConfigDict(populate_by_name=True)

    reply: str
    thread_id: str = Field(alias="threadId")
    response_id: str = Field(alias="responseId")

    @classmethod
    def from_result(cls, result: TurnResult) -> "ChatResponse":
        return cls(
            reply=result.reply,
            thread_id=result.thread_id,
            response_id=result.response_id,
        )
