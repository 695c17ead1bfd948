import sys
from pathlib import Path
from typing import Dict, List, Optional

import pytest


_root = Path(__file__).resolve().parents[1]
_src = _root / "src"
if _src.exists() and str(_src) not in sys.path:
    sys.path.insert(0, str(_src))

from assistant_relay.models import RunSnapshot, ThreadMessage  # noqa: E402
from assistant_relay.settings import AssistantConfig  # noqa: E402


class FakeBackend:
    """In-memory AssistantsBackend that records every call."""

    def __init__(
        self,
        thread_id: str = "t1",
        run_statuses: Optional[List[str]] = None,
        messages: Optional[List[ThreadMessage]] = None,
        errors: Optional[Dict[str, Exception]] = None,
    ) -> None:
        self.thread_id = thread_id
        self.initial_status = "queued"
        self.run_statuses = list(run_statuses if run_statuses is not None else ["completed"])
        self.messages = messages if messages is not None else []
        self.errors = errors or {}
        self.calls: List[tuple] = []
        self.closed = False

    def _record(self, name: str, *args) -> None:
        self.calls.append((name, *args))
        if name in self.errors:
            raise self.errors[name]

    def call_names(self) -> List[str]:
        return [c[0] for c in self.calls]

    async def create_thread(self) -> str:
        self._record("create_thread")
        return self.thread_id

    async def append_message(self, thread_id: str, content: str) -> None:
        self._record("append_message", thread_id, content)

    async def start_run(self, thread_id: str, assistant_id: str) -> RunSnapshot:
        self._record("start_run", thread_id, assistant_id)
        return RunSnapshot(run_id="run_1", status=self.initial_status)

    async def get_run(self, thread_id: str, run_id: str) -> RunSnapshot:
        self._record("get_run", thread_id, run_id)
        if len(self.run_statuses) > 1:
            status = self.run_statuses.pop(0)
        else:
            status = self.run_statuses[0]
        return RunSnapshot(run_id=run_id, status=status)

    async def list_messages(self, thread_id: str, limit: int) -> List[ThreadMessage]:
        self._record("list_messages", thread_id, limit)
        return self.messages

    async def aclose(self) -> None:
        self.closed = True


class FakeClock:
    """Monotonic clock that only moves when sleep() is awaited."""

    def __init__(self) -> None:
        self.now = 0.0
        self.sleeps: List[float] = []

    def __call__(self) -> float:
        return self.now

    async def sleep(self, seconds: float) -> None:
        self.sleeps.append(seconds)
        self.now += seconds


@pytest.fixture
def fake_backend() -> FakeBackend:
    return FakeBackend(
        messages=[ThreadMessage(role="assistant", texts=["Hello", "there"])],
    )


@pytest.fixture
def fake_clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def config() -> AssistantConfig:
    return AssistantConfig(api_key="sk-test", assistant_id="asst_1")
